# Models module for the Event Ticketing API
from app.models.event import (
    Event, EventCreate, EventUpdate, EventSearch, EventAvailability, EventPrice
)
from app.models.ticket import (
    Ticket, TicketWithEvent, TicketStatus, TicketQRCode,
    TicketValidationRequest, TicketValidationResponse,
    PurchaseRequest, PurchaseOutcome, CheckoutResult
)
from app.models.payment import (
    Payment, PaymentStatus, PaymentMethod, PaymentStatusUpdate,
    RevenueSummary, TransactionValidation, RefundResult, WebhookAck
)
from app.models.promotion import (
    Promotion, PromotionCreate, PromotionUpdate,
    ValidatePromotionRequest, PromotionValidation, DiscountRequest, DiscountResult
)
from app.models.user import User, UserRole
from app.models.webhook import GatewayEvent, TicketConfirmation, WebhookOutcome
