"""SecureContact - FastAPI server for a contact form with anti-abuse protection."""

import asyncio
import logging
import os
from datetime import datetime, timezone

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from securecontact.admin.routes import router as admin_router
from securecontact.admin.service import AdminQueryService
from securecontact.auth.auth import AdminCredentials
from securecontact.auth.routes import router as auth_router
from securecontact.config import Settings, load_settings
from securecontact.contact.pipeline import IntakePipeline
from securecontact.contact.routes import router as contact_router
from securecontact.contact.verification import RecaptchaVerifier
from securecontact.security.banlist import BanRegistry
from securecontact.security.routes import feature_flags, router as security_router
from securecontact.security.scanner import ContentRiskScanner
from securecontact.shared.database import SessionLocal, init_db
from securecontact.shared.rate_limit_utils import RateLimiter

VERSION = "1.0.0"

logging.basicConfig(
    level=os.environ.get("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(
    title="SecureContact",
    description="Contact form backend with IP ban list, content scanning and message encryption",
    version=VERSION,
)

# Read once at import so the CORS middleware can use it
settings = load_settings()


def build_services(settings: Settings) -> None:
    """Create the long-lived collaborators and attach them to app.state."""
    ban_registry = BanRegistry(
        session_factory=SessionLocal,
        max_attempts=settings.max_failed_attempts,
        ban_duration_hours=settings.ban_duration_hours,
        failure_policy=settings.ban_check_policy,
    )
    verifier = None
    if settings.recaptcha_enabled:
        verifier = RecaptchaVerifier(settings.recaptcha_secret_key, min_score=settings.recaptcha_min_score)

    app.state.settings = settings
    app.state.ban_registry = ban_registry
    app.state.verifier = verifier
    app.state.intake_pipeline = IntakePipeline(
        ban_registry=ban_registry,
        scanner=ContentRiskScanner(failure_policy=settings.scanner_policy),
        encryption_key=settings.encryption_key,
        verifier=verifier,
    )
    app.state.admin_service = AdminQueryService(encryption_key=settings.encryption_key)
    app.state.admin_credentials = AdminCredentials.from_settings(settings)
    app.state.rate_limiters = {
        "contact": RateLimiter(
            "contact",
            settings.contact_rate_limit_max_requests,
            settings.contact_rate_limit_window_seconds,
        ),
        "login": RateLimiter(
            "login",
            settings.login_rate_limit_max_requests,
            settings.login_rate_limit_window_seconds,
        ),
    }


async def sweep_expired_bans(ban_registry: BanRegistry, interval_seconds: int) -> None:
    """Deactivate expired bans every interval_seconds, off the event loop."""
    while True:
        await asyncio.sleep(interval_seconds)
        try:
            await asyncio.to_thread(ban_registry.sweep_expired)
        except Exception as e:
            logging.error(f"Expired ban sweep failed: {str(e)}", exc_info=True)


@app.on_event("startup")
async def startup_event():
    try:
        init_db()
        logging.info("Database initialization completed on startup")
    except Exception as e:
        # Log error but don't crash the app; requests touching the store will fail with 500
        logging.error(f"Database initialization error on startup: {str(e)}")

    build_services(settings)
    app.state.ban_sweeper = None
    if settings.ban_sweep_interval_seconds > 0:
        app.state.ban_sweeper = asyncio.create_task(
            sweep_expired_bans(app.state.ban_registry, settings.ban_sweep_interval_seconds)
        )

    logging.info("SecureContact API started")
    logging.info(f"CORS enabled for: {settings.frontend_url}")
    logging.info(f"Message encryption: {'enabled' if settings.encryption_enabled else 'disabled'}")
    logging.info(f"reCAPTCHA: {'enabled' if settings.recaptcha_enabled else 'disabled'}")


@app.on_event("shutdown")
async def shutdown_event():
    sweeper = getattr(app.state, "ban_sweeper", None)
    if sweeper is not None:
        sweeper.cancel()
        try:
            await sweeper
        except asyncio.CancelledError:
            pass
    verifier = getattr(app.state, "verifier", None)
    if verifier is not None:
        await verifier.close()


app.include_router(contact_router)
app.include_router(auth_router)
app.include_router(admin_router)
app.include_router(security_router)

# CORS configuration - must be added before exception handlers
app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.frontend_url],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _cors_headers(request: Request) -> dict:
    """CORS headers for error responses built by the exception handlers."""
    headers = {}
    allowed_origin = settings.frontend_url
    origin = request.headers.get("origin")
    if origin and origin == allowed_origin:
        headers["Access-Control-Allow-Origin"] = origin
        headers["Access-Control-Allow-Credentials"] = "true"
    return headers


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Render HTTP errors as {"error": ...} bodies with CORS headers."""
    headers = _cors_headers(request)
    if getattr(exc, "headers", None):
        headers.update(exc.headers)

    if isinstance(exc.detail, dict):
        content = exc.detail
    else:
        content = {"error": str(exc.detail)}

    return JSONResponse(status_code=exc.status_code, content=jsonable_encoder(content), headers=headers)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Malformed or wrongly typed input is a 400 like every other validation failure."""
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": "Invalid request", "details": jsonable_encoder(exc.errors())},
        headers=_cors_headers(request),
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Log unexpected failures and hide their details from the caller."""
    logging.error(f"Unhandled exception: {str(exc)}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"error": "Internal server error"},
        headers=_cors_headers(request),
    )


@app.get("/api/health")
async def health(request: Request):
    return {
        "status": "OK",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": VERSION,
        "featureFlags": feature_flags(request),
    }
