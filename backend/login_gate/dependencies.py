"""FastAPI dependencies wiring the session entry controller per request."""

import logging

from fastapi import Depends, Request
from starlette.datastructures import UploadFile

from login_gate.config import settings
from login_gate.services.backend_auth import SessionAuthenticationState
from login_gate.services.form_protection import BackendFormProtection
from login_gate.services.login_providers.registry import LoginProviderRegistry, get_registry
from login_gate.services.password_reset_service import PasswordResetService
from login_gate.services.provider_selection import select_login_provider
from login_gate.services.session_entry import SessionEntryController, SessionRequestContext
from login_gate.utils.logging_utils import redact_username
from login_gate.utils.url_utils import BackendUrls

logger = logging.getLogger(__name__)


async def get_form_data(request: Request) -> dict[str, str]:
    """Parsed form body of a POST request (text fields only), else empty."""
    if request.method != "POST":
        return {}
    form = await request.form()
    return {key: value for key, value in form.items() if not isinstance(value, UploadFile)}


def get_backend_urls() -> BackendUrls:
    return BackendUrls()


def get_login_provider_registry(request: Request) -> LoginProviderRegistry:
    """Registry validated at startup; built lazily when startup was skipped."""
    registry = getattr(request.app.state, "login_providers", None)
    return registry if registry is not None else get_registry()


async def get_request_context(
    request: Request,
    form: dict[str, str] = Depends(get_form_data),
) -> SessionRequestContext:
    site_url = f"{request.url.scheme}://{request.url.netloc}{settings.SITE_PATH}"
    return SessionRequestContext.from_request_data(
        form,
        request.query_params,
        request.cookies,
        is_https=request.url.scheme == "https",
        login_url=str(request.url),
        site_url=site_url,
    )


async def get_authentication_state(
    request: Request,
    context: SessionRequestContext = Depends(get_request_context),
    form: dict[str, str] = Depends(get_form_data),
    registry: LoginProviderRegistry = Depends(get_login_provider_registry),
    urls: BackendUrls = Depends(get_backend_urls),
) -> SessionAuthenticationState:
    """
    Resume the backend session and process submitted credentials.

    Credentials are checked by the login provider the form was rendered for,
    before the controller runs; the controller only sees the result.
    """
    state = await SessionAuthenticationState.load(
        request.cookies.get(settings.SESSION_COOKIE_NAME),
        request.app.state.session_store,
        request.app.state.user_directory,
    )

    if not state.is_logged_in and form.get("username"):
        selection = select_login_provider(
            registry,
            context.login_provider,
            context.last_login_provider_cookie,
            is_https=context.is_https,
            cookie_path=urls.cookie_path,
        )
        provider = registry.get(selection.identifier).create_provider()
        if not await state.login(provider, form):
            logger.info(
                "Login attempt rejected | provider=%s | user=%s",
                selection.identifier,
                redact_username(form.get("username")),
            )

    return state


async def get_entry_controller(
    request: Request,
    context: SessionRequestContext = Depends(get_request_context),
    registry: LoginProviderRegistry = Depends(get_login_provider_registry),
    auth: SessionAuthenticationState = Depends(get_authentication_state),
    urls: BackendUrls = Depends(get_backend_urls),
) -> SessionEntryController:
    state = request.app.state
    form_protection = BackendFormProtection(auth.session, state.session_store, state.registry)
    password_reset = PasswordResetService(state.user_directory, state.email_service, urls=urls)
    return SessionEntryController(
        context=context,
        registry=registry,
        auth=auth,
        form_protection=form_protection,
        news_source=state.news_source,
        password_reset=password_reset,
        urls=urls,
    )
