from fastapi import Request
from fastapi.responses import JSONResponse
import logging
from typing import Dict, Any
from app.core.logging import log_request_context

logger = logging.getLogger(__name__)

class APIError(Exception):
    """Error carrying the HTTP status and payload the API answers with"""

    def __init__(self, message: str, status_code: int = 500, details: Dict[str, Any] = None):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)

class AuthenticationError(APIError):
    """No valid session cookie"""

    def __init__(self, message: str = "Authentication required", details: Dict[str, Any] = None):
        super().__init__(message, 401, details)

class AuthorizationError(APIError):
    """Signed in, but the role or ownership check failed"""

    def __init__(self, message: str = "Access denied", details: Dict[str, Any] = None):
        super().__init__(message, 403, details)

class NotFoundError(APIError):
    """Requested record does not exist or was soft deleted"""

    def __init__(self, message: str = "Resource not found", details: Dict[str, Any] = None):
        super().__init__(message, 404, details)

class ValidationError(APIError):
    """Request violates a business rule"""

    def __init__(self, message: str = "Validation failed", details: Dict[str, Any] = None):
        super().__init__(message, 400, details)

class DatabaseError(APIError):
    """Unexpected result from PostgreSQL"""

    def __init__(self, message: str = "Database operation failed", details: Dict[str, Any] = None):
        super().__init__(message, 500, details)

class PaymentError(APIError):
    """The gateway refused to open a checkout or issue a refund"""

    def __init__(self, message: str = "Payment failed", details: Dict[str, Any] = None):
        super().__init__(message, 402, details)

class TicketError(APIError):
    """Ticket cannot be issued or its status cannot change"""

    def __init__(self, message: str = "Ticket operation failed", details: Dict[str, Any] = None):
        super().__init__(message, 400, details)

class WebhookSignatureError(APIError):
    """Gateway callback could not be authenticated"""

    def __init__(self, message: str = "Webhook signature verification failed", details: Dict[str, Any] = None):
        super().__init__(message, 400, details)

def _error_context(request: Request, exc: Exception) -> Dict[str, Any]:
    session = getattr(request.state, 'session_context', None)
    context = log_request_context(user_id=getattr(session, 'user_id', None))
    context.update({
        "error_type": type(exc).__name__,
        "path": request.url.path,
        "method": request.method
    })
    return context

async def api_exception_handler(request: Request, exc: APIError):
    """Render an APIError as the standard error body; 5xx are logged as errors"""
    context = _error_context(request, exc)
    context["status_code"] = exc.status_code

    log = logger.error if exc.status_code >= 500 else logger.warning
    log(f"{context['method']} {context['path']} -> {exc.status_code}: {exc.message}", extra={"context": context})

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": True,
            "message": exc.message,
            "details": exc.details,
            "timestamp": context["timestamp"]
        }
    )

async def general_exception_handler(request: Request, exc: Exception):
    """Last-resort 500. The traceback is logged and never sent to the client."""
    context = _error_context(request, exc)
    logger.error(f"Unhandled {context['error_type']} on {context['method']} {context['path']}: {exc}",
                 extra={"context": context}, exc_info=True)

    return JSONResponse(
        status_code=500,
        content={
            "error": True,
            "message": "Internal server error",
            "timestamp": context["timestamp"]
        }
    )
