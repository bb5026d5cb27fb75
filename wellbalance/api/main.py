"""WellBalance API: FastAPI application."""
from __future__ import annotations

import logging

from wellbalance.logging_config import setup_logging
setup_logging()
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from wellbalance.db.engine import engine, get_session
from wellbalance.db.tables import Base
from wellbalance.errors import AuthenticationRequired, InvalidDate, MissingFields

# ── Sentry Error Tracking ────────────────────────
if settings.SENTRY_DSN:
    import sentry_sdk
    from sentry_sdk.integrations.fastapi import FastApiIntegration
    from sentry_sdk.integrations.logging import LoggingIntegration
    from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

    sentry_sdk.init(
        dsn=settings.SENTRY_DSN,
        environment=settings.SENTRY_ENVIRONMENT,
        traces_sample_rate=settings.SENTRY_TRACES_SAMPLE_RATE,
        integrations=[
            FastApiIntegration(),
            SqlalchemyIntegration(),
            LoggingIntegration(level=logging.WARNING, event_level=logging.ERROR),
        ],
        send_default_pii=False,
    )

logger = logging.getLogger(__name__)

VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Validate settings and create tables on startup."""
    from wellbalance.startup_checks import validate_settings
    validate_settings()

    # Register every table with Base.metadata
    import wellbalance.db.user_tables  # noqa: F401
    import wellbalance.db.tracking_tables  # noqa: F401
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables ready")

    yield

    logger.info("Shutting down: draining connections...")
    await engine.dispose()
    logger.info("Shutdown complete")


app = FastAPI(
    title="WellBalance API",
    version=VERSION,
    description="Nutrition tracking and wellness assistant for WellBalance",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Request ID tracing
from wellbalance.middleware.request_id import RequestIDMiddleware
app.add_middleware(RequestIDMiddleware)


# ---- Routers ----
from wellbalance.api.auth import router as auth_router
from wellbalance.api.chat import router as chat_router
from wellbalance.api.foods import router as foods_router
from wellbalance.api.meals import router as meals_router
from wellbalance.api.tracking import router as tracking_router

app.include_router(auth_router)
app.include_router(meals_router)
app.include_router(foods_router)
app.include_router(tracking_router)
app.include_router(chat_router)


@app.get("/api/v1/health")
@app.get("/health")
async def health(session: AsyncSession = Depends(get_session)):
    """Deep health check: validates DB connectivity."""
    try:
        await session.execute(text("SELECT 1"))
        db_status = "connected"
    except SQLAlchemyError:
        logger.exception("Health check could not reach the database")
        db_status = "error"
    status = "ok" if db_status == "connected" else "degraded"
    return {"status": status, "db": db_status, "version": VERSION}


# ── Error envelope ───────────────────────────────────────────────────────────

@app.exception_handler(AuthenticationRequired)
async def auth_required_handler(request: Request, exc: AuthenticationRequired):
    return JSONResponse(status_code=401, content={
        "error": "not_authenticated",
        "message": exc.message,
    })


@app.exception_handler(MissingFields)
async def missing_fields_handler(request: Request, exc: MissingFields):
    return JSONResponse(status_code=400, content={
        "error": "missing_fields",
        "message": str(exc),
        "fields": exc.fields,
    })


@app.exception_handler(InvalidDate)
async def invalid_date_handler(request: Request, exc: InvalidDate):
    return JSONResponse(status_code=400, content={
        "error": "invalid_date",
        "message": str(exc),
    })


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Return clean, structured validation errors instead of raw Pydantic output."""
    errors = []
    for err in exc.errors():
        field = ".".join(str(loc) for loc in err["loc"]) if err.get("loc") else "unknown"
        errors.append({"field": field, "message": err["msg"]})
    return JSONResponse(status_code=422, content={
        "error": "validation_error",
        "message": "Invalid request data",
        "details": errors,
    })


@app.exception_handler(HTTPException)
async def http_error_handler(request: Request, exc: HTTPException):
    """Consistent error envelope for all HTTP errors."""
    return JSONResponse(status_code=exc.status_code, content={
        "error": exc.detail if isinstance(exc.detail, str) else "error",
        "message": exc.detail,
    }, headers=getattr(exc, "headers", None))


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    """Catch-all for unhandled exceptions; never leaks stack traces."""
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={
        "error": "internal_error",
        "message": "Something went wrong. Please try again.",
    })
