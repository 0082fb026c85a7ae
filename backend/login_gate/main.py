"""FastAPI main application."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.responses import PlainTextResponse

from login_gate.api.v1 import login
from login_gate.config import settings
from login_gate.core.exceptions import (
    ConfigurationError,
    CookieRequiredError,
    FormProtectionError,
)
from login_gate.core.logging_config import setup_logging
from login_gate.core.session import Registry, SessionStore
from login_gate.core.storage import RedisKeyValueStore, create_store
from login_gate.middleware.error_handler import ErrorHandlerMiddleware
from login_gate.middleware.request_logging import RequestLoggingMiddleware
from login_gate.middleware.security_headers import SecurityHeadersMiddleware
from login_gate.services.email_service import build_email_service
from login_gate.services.login_providers.registry import build_registry
from login_gate.services.system_news import build_news_source
from login_gate.services.user_directory import build_user_directory

logger = logging.getLogger(__name__)


def init_app_state(app: FastAPI) -> None:
    """Build the long-lived collaborators from settings.

    The provider registry is validated here so a broken configuration stops
    the application before it answers any request.
    """
    store = create_store()
    app.state.store = store
    app.state.session_store = SessionStore(store)
    app.state.registry = Registry(store)
    app.state.login_providers = build_registry()
    app.state.user_directory = build_user_directory(settings.BACKEND_USERS)
    app.state.news_source = build_news_source(settings.SYSTEM_NEWS)
    app.state.email_service = build_email_service()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    setup_logging()
    logger.info("Starting %s %s", settings.APP_NAME, settings.APP_VERSION)

    init_app_state(app)
    logger.info("Backend entry mounted at %s", settings.backend_path)

    yield

    if isinstance(app.state.store, RedisKeyValueStore):
        await app.state.store.close()
    logger.info("%s shutdown complete", settings.APP_NAME)


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    lifespan=lifespan,
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url=None,
    openapi_url="/openapi.json" if settings.DEBUG else None,
)

# Error handler - Catch uncaught exceptions
app.add_middleware(ErrorHandlerMiddleware)

# Security headers - Always apply
app.add_middleware(SecurityHeadersMiddleware)

# Request logging
app.add_middleware(RequestLoggingMiddleware)


@app.exception_handler(ConfigurationError)
async def configuration_error_handler(request: Request, exc: ConfigurationError):
    logger.error(
        "Login provider configuration error | provider=%s | field=%s | %s",
        exc.provider_identifier,
        exc.missing_field,
        exc,
    )
    return PlainTextResponse(
        "The backend login is not configured correctly.",
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )


@app.exception_handler(CookieRequiredError)
async def cookie_required_handler(request: Request, exc: CookieRequiredError):
    return PlainTextResponse(str(exc), status_code=status.HTTP_400_BAD_REQUEST)


@app.exception_handler(FormProtectionError)
async def form_protection_error_handler(request: Request, exc: FormProtectionError):
    logger.error("Form protection error on %s: %s", request.url.path, exc)
    return PlainTextResponse(str(exc), status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}


app.include_router(login.router, prefix=settings.backend_path.rstrip("/"), tags=["Backend Login"])
