import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

# Import models so every table is registered with SQLAlchemy Base
from . import models  # noqa: F401
from .config import APP_NAME, APP_VERSION
from .csrf import CSRF_ENABLED, CSRFMiddleware
from .database import Base, engine
from .domain.analytics.router import router as analytics_router
from .domain.availability.router import router as availability_router
from .domain.bookings.router import router as bookings_router
from .domain.calendars.router import router as calendars_router
from .domain.domains.router import router as domains_router
from .domain.event_types.router import public_router as public_event_types_router
from .domain.event_types.router import router as event_types_router
from .domain.health.router import router as health_router
from .domain.notifications.router import cron_router
from .domain.notifications.router import router as notifications_router
from .domain.payments.router import router as payments_router
from .domain.payments.router import webhooks_router as stripe_webhooks_router
from .domain.privacy.router import router as privacy_router
from .domain.security.router import audit_router, two_factor_router
from .domain.teams.router import router as teams_router
from .domain.users.router import auth_router, settings_router
from .domain.users.router import public_router as public_users_router
from .domain.users.router import router as users_router
from .security_headers import SecurityHeadersMiddleware

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Reduce verbosity of third-party libraries
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)

SECURITY_HEADERS_ENABLED = os.getenv("SECURITY_HEADERS_ENABLED", "true").lower() == "true"


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Application starting up...")
    try:
        Base.metadata.create_all(bind=engine, checkfirst=True)
        logger.info("Database tables created successfully")
    except Exception as e:
        # Ignore "already exists" errors from race conditions between workers
        error_msg = str(e)
        if "already exists" in error_msg or "duplicate key" in error_msg:
            logger.info("Database tables already exist (created by another worker)")
        else:
            logger.error(f"Failed to create database tables: {e}")

    try:
        from .rate_limiter import get_redis_client

        if get_redis_client() is not None:
            logger.info("Redis connection established")
        else:
            logger.info("Redis unavailable - caching and rate limiting use in-process state")
    except Exception as e:
        logger.warning(f"Redis connection failed - Rate limiting will operate in fail-open mode: {e}")

    yield
    logger.info("Application shutting down...")


app = FastAPI(title=f"{APP_NAME} API", version=APP_VERSION, lifespan=lifespan)


# ============================================================================
# ERROR CONTRACT
# ============================================================================


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Every handled error leaves as {"error": message}; dict details are sent as-is"""
    content = exc.detail if isinstance(exc.detail, dict) else {"error": exc.detail}
    return JSONResponse(status_code=exc.status_code, content=content, headers=getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Report the first validation issue as a 400 with the validator's own message"""
    errors = exc.errors()
    logger.warning(f"Validation error for {request.url.path}: {errors}")
    message = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
    if message.startswith("Value error, "):
        message = message[len("Value error, ") :]
    return JSONResponse(status_code=400, content={"error": message})


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(f"❌ Unhandled error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


@app.middleware("http")
async def log_requests(request: Request, call_next):
    try:
        response = await call_next(request)
        return response
    except Exception as e:
        logger.error(f"{request.method} {request.url.path} - Error: {str(e)}")
        raise


if SECURITY_HEADERS_ENABLED:
    app.add_middleware(SecurityHeadersMiddleware, exclude_paths=["/api/health", "/docs", "/openapi.json"])
    logger.info("Security headers enabled")
else:
    logger.warning("Security headers DISABLED - only use in development!")

if CSRF_ENABLED:
    app.add_middleware(CSRFMiddleware)
    logger.info("CSRF protection enabled")
else:
    logger.info("CSRF protection disabled")


# CORS Configuration
# Cookies (CSRF) require explicit origins rather than "*"
ALLOWED_ORIGINS = os.getenv("ALLOWED_ORIGINS", "http://localhost:3000,http://localhost:5173").split(",")

logger.info(f"CORS allowed origins: {ALLOWED_ORIGINS}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
    allow_headers=["*"],
    expose_headers=["*"],
)

# Routes
app.include_router(health_router)
app.include_router(auth_router)
app.include_router(users_router)
app.include_router(domains_router)
app.include_router(settings_router)
app.include_router(public_users_router)
app.include_router(event_types_router)
app.include_router(public_event_types_router)
app.include_router(availability_router)
app.include_router(bookings_router)
app.include_router(payments_router)
app.include_router(stripe_webhooks_router)
app.include_router(notifications_router)
app.include_router(cron_router)
app.include_router(two_factor_router)
app.include_router(audit_router)
app.include_router(teams_router)
app.include_router(calendars_router)
app.include_router(privacy_router)
app.include_router(analytics_router)


@app.get("/")
def root():
    return {"message": f"{APP_NAME} API is running"}
