"""
Interview Assistant API application.
"""
import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.routes import (
    admin,
    auth,
    discussions,
    health,
    meetings,
    payments,
    plans,
    subscriptions,
    users,
)
from app.core.config import get_settings
from app.core.exceptions import AppException
from app.core.logging_config import sanitize_log_data, setup_logging

settings = get_settings()

logger = logging.getLogger(__name__)


# ============================================
# FASTAPI APP INIT
# ============================================

app = FastAPI(title=settings.PROJECT_NAME, version=settings.VERSION)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "Stripe-Signature"],
)


# ============================================
# ERROR HANDLERS
# ============================================

@app.exception_handler(AppException)
async def app_exception_handler(request: Request, exc: AppException):
    if exc.status_code >= 500:
        logger.warning(f"{request.method} {request.url.path} -> {exc.status_code}: {exc.detail}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


def _describe_error(error: dict) -> str:
    location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
    message = error.get("msg", "Invalid value")
    return f"{location}: {message}" if location else message


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Request validation failures answer 400 with a readable first error."""
    errors = exc.errors()
    detail = _describe_error(errors[0]) if errors else "Invalid request"
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "detail": detail,
            "errors": [
                {"field": ".".join(str(p) for p in e.get("loc", ())), "message": e.get("msg", "")}
                for e in errors
            ],
        },
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )


# ============================================
# STARTUP
# ============================================

@app.on_event("startup")
def on_startup():
    setup_logging(settings.LOG_LEVEL)
    logger.info(f"Starting {settings.PROJECT_NAME} v{settings.VERSION}")
    logger.info(f"Config: {sanitize_log_data({'database_url': settings.DATABASE_URL, 'run_migrations': settings.RUN_MIGRATIONS, 'frontend_url': settings.FRONTEND_URL})}")
    logger.info(
        f"Stripe configured: {settings.stripe_enabled}, "
        f"LLM configured: {settings.llm_enabled} (model={settings.LLM_MODEL})"
    )

    if settings.RUN_MIGRATIONS:
        from app.db.migrate import run_migrations
        run_migrations(settings.DATABASE_URL)
    else:
        from app.db.init_db import init_db
        init_db()


# ============================================
# REGISTER ALL ROUTERS
# ============================================

app.include_router(auth.router)
app.include_router(users.router)
app.include_router(discussions.router)
app.include_router(plans.router)
app.include_router(subscriptions.router)
app.include_router(meetings.router)
app.include_router(payments.router)
app.include_router(admin.router)
app.include_router(health.router)


@app.get("/")
def root():
    return {"status": "Interview Assistant API running", "version": settings.VERSION}
