"""FastAPI application entry point."""
import logging
import uuid

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text

from bpm.core.config import settings
from bpm.db.session import engine

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

# ============================================================================
# Sentry Integration (optional, for production error tracking)
# ============================================================================

if settings.SENTRY_DSN and settings.ENV != "dev":
    import sentry_sdk
    from sentry_sdk.integrations.fastapi import FastApiIntegration
    from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

    sentry_sdk.init(
        dsn=settings.SENTRY_DSN,
        environment=settings.ENV,
        integrations=[
            FastApiIntegration(transaction_style="endpoint"),
            SqlalchemyIntegration(),
        ],
        traces_sample_rate=0.1,  # 10% of requests for performance monitoring
        send_default_pii=False,  # Don't send PII to Sentry
    )
    logging.info("Sentry initialized for error tracking")

# ============================================================================
# Rate Limiting
# ============================================================================

from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from bpm.core.errors import error_body, register_exception_handlers
from bpm.core.rate_limit import limiter
from bpm.core.request_context import reset_request_context, start_request_context


# ============================================================================
# FastAPI App
# ============================================================================

app = FastAPI(
    title="BPM API",
    description="Application lifecycle, payments and real-time notifications",
    version=settings.VERSION,
    docs_url="/docs" if settings.ENV == "dev" else None,
    redoc_url="/redoc" if settings.ENV == "dev" else None,
)


async def _rate_limit_exceeded(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    return JSONResponse(
        status_code=429,
        content=error_body(f"Rate limit exceeded: {exc.detail}"),
    )


# Add rate limiter
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded)
app.add_middleware(SlowAPIMiddleware)

register_exception_handlers(app)


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
    token = start_request_context(request_id)
    try:
        response = await call_next(request)
    finally:
        reset_request_context(token)
    response.headers["X-Request-ID"] = request_id
    return response


# CORS middleware - added last so it wraps everything else
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,  # Required for cookies
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "X-Requested-With", "X-Request-ID"],
    expose_headers=["X-Request-ID"],
)

# ============================================================================
# Routers
# ============================================================================

from bpm.routers import (
    applications,
    auth,
    clients,
    employees,
    messages,
    notifications,
    payments,
    status,
    tasks,
    tickets,
    websocket as ws_router,
)

app.include_router(auth.router, prefix="/auth", tags=["auth"])
app.include_router(applications.router, prefix="/applications", tags=["applications"])
app.include_router(status.router, prefix="/status", tags=["applications"])
app.include_router(employees.router, prefix="/employees", tags=["employees"])
app.include_router(payments.router, prefix="/payments", tags=["payments"])
app.include_router(notifications.router, prefix="/notifications", tags=["notifications"])
app.include_router(clients.router, prefix="/clients", tags=["clients"])
app.include_router(messages.router, prefix="/messages", tags=["messages"])
app.include_router(tasks.router, prefix="/tasks", tags=["tasks"])
app.include_router(tickets.router, prefix="/tickets", tags=["tickets"])

# WebSocket for real-time notifications (router already has /ws prefix)
app.include_router(ws_router.router)

# Dev router (ONLY mounted in dev mode)
if settings.ENV == "dev":
    from bpm.routers import dev
    app.include_router(dev.router, prefix="/dev", tags=["dev"])


# ============================================================================
# Health Check
# ============================================================================

@app.get("/health")
def health():
    """
    Health check endpoint.

    Verifies database connectivity and returns environment info.
    """
    with engine.connect() as conn:
        conn.execute(text("SELECT 1"))
    return {"status": "ok", "env": settings.ENV, "version": settings.VERSION}
