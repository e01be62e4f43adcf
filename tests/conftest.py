"""
Configuración global de pytest y fixtures compartidos.
"""
import pytest
from typing import AsyncGenerator
from httpx import AsyncClient, ASGITransport
from unittest.mock import AsyncMock, patch

from app.main import app
from app.config import settings
from tests.utils.fakes import FakeStore
from tests.utils.mocks import mock_gateway


# Módulos que abren get_repositories() por su cuenta
REPOSITORY_CONSUMERS = [
    "app.services.events_service",
    "app.services.tickets_service",
    "app.services.payments_service",
    "app.services.promotions_service",
    "app.services.webhook_service",
    "app.core.middleware",
]

WEBHOOK_SECRET = "whsec_test_secret"


# ============================================================================
# Cliente HTTP Async
# ============================================================================

@pytest.fixture
async def client() -> AsyncGenerator[AsyncClient, None]:
    """Cliente HTTP async para hacer requests al API."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


# ============================================================================
# Base de datos en memoria
# ============================================================================

@pytest.fixture(autouse=True)
def store():
    """
    Reemplaza get_repositories en cada consumidor por repositorios en memoria,
    así ningún test abre el pool de asyncpg.
    """
    fake = FakeStore()
    patches = [patch(f"{module}.get_repositories", fake.get_repositories) for module in REPOSITORY_CONSUMERS]
    for p in patches:
        p.start()
    yield fake
    for p in patches:
        p.stop()


# ============================================================================
# Usuarios y sesiones
# ============================================================================

@pytest.fixture
def customer(store):
    return store.add_user(id="customer-1", email="customer@test.com", role="customer",
                          first_name="Ana", last_name="Buyer")


@pytest.fixture
def organizer(store):
    return store.add_user(id="organizer-1", email="organizer@test.com", role="event_organizer",
                          first_name="Olga", last_name="Organizer")


@pytest.fixture
def admin(store):
    return store.add_user(id="admin-1", email="admin@test.com", role="admin",
                          first_name="Adam", last_name="Admin")


@pytest.fixture
def login(store):
    """Crea una sesión para el usuario y devuelve los headers con la cookie."""
    def _login(user) -> dict:
        token = store.add_session(user.id)
        return {"Cookie": f"session-token={token}"}
    return _login


@pytest.fixture
def customer_headers(customer, login):
    return login(customer)


@pytest.fixture
def organizer_headers(organizer, login):
    return login(organizer)


@pytest.fixture
def admin_headers(admin, login):
    return login(admin)


# ============================================================================
# Mock de Servicios Externos
# ============================================================================

@pytest.fixture
def gateway():
    """Pasarela de pagos falsa usada por el checkout."""
    fake = mock_gateway()
    with patch("app.services.checkout_service.get_gateway", return_value=fake):
        yield fake


@pytest.fixture
def webhook_secret():
    """Configura STRIPE_WEBHOOK_SECRET para los tests de webhook."""
    with patch.object(settings, "stripe_webhook_secret", WEBHOOK_SECRET):
        yield WEBHOOK_SECRET


@pytest.fixture
def mock_email_service():
    """Mock del servicio de email."""
    with patch('app.services.email_service.send_email', new_callable=AsyncMock) as mock:
        mock.return_value = True
        yield mock
