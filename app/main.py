from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.openapi.utils import get_openapi
from app.config import settings
from app.database import DatabasePool
from app.core.logging import setup_logging
from app.core.exceptions import api_exception_handler, general_exception_handler, APIError
from app.core.middleware import session_validation_middleware, request_logging_middleware, SESSION_COOKIE

# Initialize logging
setup_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle - the pool is opened lazily, closed on shutdown"""
    yield
    await DatabasePool.close_pool()


app = FastAPI(
    title="Event Ticketing API",
    description="API for selling event tickets online",
    version="1.0.0",
    debug=settings.debug,
    docs_url="/docs",
    redirect_slashes=True,
    lifespan=lifespan
)


# Configure cookie authentication for Swagger UI
def custom_openapi():
    if app.openapi_schema:
        return app.openapi_schema
    openapi_schema = get_openapi(
        title="Event Ticketing API",
        version="1.0.0",
        description="Events, tickets, payments and promotions for online event ticketing",
        routes=app.routes,
    )
    openapi_schema.setdefault("components", {})["securitySchemes"] = {
        "cookieAuth": {
            "type": "apiKey",
            "in": "cookie",
            "name": SESSION_COOKIE
        }
    }

    # Public endpoints (no auth required)
    public_endpoints = [
        "/",
        "/health",
        "/events",
        "/events/upcoming",
        "/events/{event_id}",
        "/events/{event_id}/availability",
        "/events/{event_id}/price",
        "/tickets/validate",
        "/promotions/active",
        "/promotions/validate",
        "/promotions/discount",
        "/promotions/event/{event_id}",
    ]

    # Public prefixes
    public_prefixes = ["/payments/webhooks"]

    for path in openapi_schema["paths"]:
        if path in public_endpoints:
            continue
        if any(path.startswith(prefix) for prefix in public_prefixes):
            continue

        for method in openapi_schema["paths"][path]:
            if method in ["get", "post", "put", "delete", "patch"]:
                openapi_schema["paths"][path][method]["security"] = [{"cookieAuth": []}]

    app.openapi_schema = openapi_schema
    return app.openapi_schema

app.openapi = custom_openapi

# Exception handlers
app.add_exception_handler(APIError, api_exception_handler)
app.add_exception_handler(Exception, general_exception_handler)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins.split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Custom middleware (order matters - first added runs last)
# Execution order: session_validation → logging
app.middleware("http")(request_logging_middleware)   # runs last
app.middleware("http")(session_validation_middleware) # runs first

# Import and include routers
from app.routers import events, tickets, payments, promotions

app.include_router(events.router, prefix="/events", tags=["events"])
app.include_router(tickets.router, prefix="/tickets", tags=["tickets"])
app.include_router(payments.router, prefix="/payments", tags=["payments"])
app.include_router(promotions.router, prefix="/promotions", tags=["promotions"])


@app.get("/")
async def root():
    return {
        "service": "Event Ticketing API",
        "version": "1.0.0",
        "database": settings.db_name,
        "environment": settings.app_env
    }

@app.get("/health")
async def health():
    return {
        "status": "healthy",
        "database": settings.db_name,
        "host": settings.db_host
    }

# Auto-start server if run directly
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug
    )
