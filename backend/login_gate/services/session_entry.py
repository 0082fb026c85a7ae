"""Session entry controller: login form, logout and post-login redirects.

The controller never writes a transport response itself. Every action returns
an :class:`EntryResult`: one outcome (render a form, redirect, or tell the
opener window to resume and close) plus an optional cookie remembering the
chosen login provider. The HTTP layer turns that into a response.
"""

import asyncio
import dataclasses
import secrets
from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable, Mapping, Optional, Sequence, Union

from email_validator import EmailNotValidError, validate_email

from login_gate.config import settings
from login_gate.core.exceptions import CookieRequiredError
from login_gate.core.logging_config import get_logger
from login_gate.services.backend_auth import AuthenticationStateProvider
from login_gate.services.form_protection import BackendFormProtection
from login_gate.services.interface_selector import build_interface_selector
from login_gate.services.login_providers.base import LoginView
from login_gate.services.login_providers.registry import LoginProviderRegistry
from login_gate.services.password_reset_service import PasswordResetService
from login_gate.services.provider_selection import (
    RememberProviderCookie,
    select_login_provider,
)
from login_gate.services.system_news import SystemNewsSource, get_login_news
from login_gate.utils.url_utils import FRONTEND_JUMP_TARGET, BackendUrls, sanitize_local_url

logger = get_logger(__name__)

SET_COOKIE_MARKER = "setCookie"


def _flag(value: Optional[str]) -> bool:
    return value not in (None, "", "0", "false")


@dataclass(frozen=True)
class SessionRequestContext:
    """The request fields the login flow looks at, captured once per request."""

    username: str = ""
    submit_value: str = ""
    login_provider: str = ""
    last_login_provider_cookie: str = ""
    logout: bool = False
    redirect_url: str = ""
    login_refresh: bool = False
    interface: str = ""
    is_https: bool = False
    has_session_cookie: bool = False
    login_url: str = ""
    site_url: str = ""

    @property
    def login_in_progress(self) -> bool:
        """Credentials or the login command were submitted."""
        return bool(self.username) or bool(self.submit_value)

    @classmethod
    def from_request_data(
        cls,
        body: Mapping[str, str],
        query: Mapping[str, str],
        cookies: Mapping[str, str],
        *,
        is_https: bool = False,
        login_url: str = "",
        site_url: str = "",
    ) -> "SessionRequestContext":
        """Build the context; body fields take precedence over query fields."""

        def field_value(name: str) -> Optional[str]:
            value = body.get(name)
            if value is None:
                value = query.get(name)
            return value

        return cls(
            username=field_value("username") or "",
            submit_value=field_value("commandLI") or "",
            login_provider=field_value("loginProvider") or "",
            last_login_provider_cookie=cookies.get(settings.LAST_LOGIN_PROVIDER_COOKIE, ""),
            logout=field_value("L") == "OUT",
            redirect_url=field_value("redirect_url") or "",
            login_refresh=_flag(field_value("loginRefresh")),
            interface=field_value("interface") or "",
            is_https=is_https,
            has_session_cookie=bool(cookies.get(settings.SESSION_COOKIE_NAME)),
            login_url=login_url,
            site_url=site_url,
        )


class FormKind(str, Enum):
    LOGIN = "login"
    LOGOUT = "logout"
    FORGOT_PASSWORD = "forgot_password"
    RESET_PASSWORD = "reset_password"


@dataclass(frozen=True)
class RenderForm:
    form_kind: FormKind
    provider_identifier: str
    redirect_target: str
    template: str
    variables: dict = field(default_factory=dict)


@dataclass(frozen=True)
class Redirect:
    target: str
    status_code: int = 303


@dataclass(frozen=True)
class CloseWindow:
    """Tell the window that opened the login popup to resume and close it."""


Outcome = Union[RenderForm, Redirect, CloseWindow]


@dataclass(frozen=True)
class EntryResult:
    outcome: Outcome
    remember_cookie: Optional[RememberProviderCookie] = None


class SessionEntryController:
    """
    Decides what a request to the backend login entry point gets.

    * anonymous: the login form (with ``hasLoginError`` if credentials were
      submitted and not accepted)
    * logged in with ``L=OUT``: log off and redirect
    * logged in: redirect to the post-login target (303), or on a login
      refresh restore the form protection token and close the popup
    """

    def __init__(
        self,
        context: SessionRequestContext,
        registry: LoginProviderRegistry,
        auth: AuthenticationStateProvider,
        form_protection: BackendFormProtection,
        news_source: SystemNewsSource,
        password_reset: PasswordResetService,
        urls: Optional[BackendUrls] = None,
        interfaces: Optional[Sequence[str]] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.context = context
        self.registry = registry
        self.auth = auth
        self.form_protection = form_protection
        self.news_source = news_source
        self.password_reset = password_reset
        self.urls = urls or BackendUrls()
        self.interfaces = list(settings.INTERFACES if interfaces is None else interfaces)
        self._sleep = sleep

        self.redirect_url = sanitize_local_url(context.redirect_url, context.site_url)
        # Target after login when neither an override nor an interface applies
        self.redirect_to_url = self.redirect_url or self.urls.main()

        selection = select_login_provider(
            registry,
            context.login_provider,
            context.last_login_provider_cookie,
            is_https=context.is_https,
            cookie_path=self.urls.cookie_path,
        )
        self.login_provider_identifier = selection.identifier
        self._remember_cookie = selection.remember_cookie

    @property
    def login_refresh(self) -> bool:
        return self.context.login_refresh

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    async def form_action(self) -> EntryResult:
        """Login/logout form, or the redirect that replaces it."""
        outcome = await self._handle_logout()
        if outcome is None:
            outcome = await self._check_redirect()
        if outcome is None:
            outcome = await self._render_login_logout_form()
        return self._result(outcome)

    async def refresh_action(self) -> EntryResult:
        """Form action with the login refresh flag forced on."""
        self.context = dataclasses.replace(self.context, login_refresh=True)
        return await self.form_action()

    async def logout_action(self) -> EntryResult:
        """Form action with ``L=OUT`` forced on."""
        self.context = dataclasses.replace(self.context, logout=True)
        return await self.form_action()

    async def forget_password_form_action(self) -> EntryResult:
        if self.auth.is_logged_in:
            return await self.form_action()
        view = self._create_view("Login/ForgetPasswordForm")
        view.assign("enablePasswordReset", self.password_reset.is_enabled())
        return self._render(FormKind.FORGOT_PASSWORD, view)

    async def initiate_password_reset_action(self, email: str) -> EntryResult:
        """Start a reset for ``email``; the response time says nothing about the address."""
        if self.auth.is_logged_in:
            return await self.form_action()
        view = self._create_view("Login/ForgetPasswordForm")
        view.assign_multiple(
            {"enablePasswordReset": self.password_reset.is_enabled(), "email": email}
        )
        if not self._is_valid_email(email):
            view.assign("invalidEmail", True)
        else:
            await self.password_reset.initiate_reset(email)
            view.assign("resetInitiated", True)

        await self._random_delay()
        return self._render(FormKind.FORGOT_PASSWORD, view)

    async def password_reset_action(self, token: str, identity: str, expires: str) -> EntryResult:
        """Form to enter a new password, reached through the emailed link."""
        if self.auth.is_logged_in:
            return await self.form_action()
        view = self._reset_view(token, identity, expires)
        if not await self.password_reset.is_valid_reset_token(token, identity, expires):
            view.assign("invalidToken", True)
        return self._render(FormKind.RESET_PASSWORD, view)

    async def password_reset_finish_action(
        self,
        token: str,
        identity: str,
        expires: str,
        password: str,
        password_repeat: str,
    ) -> EntryResult:
        if self.auth.is_logged_in:
            return await self.form_action()
        if not await self.password_reset.is_valid_reset_token(token, identity, expires):
            return await self.password_reset_action(token, identity, expires)

        view = self._reset_view(token, identity, expires)
        if await self.password_reset.reset_password(
            token, identity, expires, password, password_repeat
        ):
            view.assign("resetExecuted", True)
        else:
            view.assign("error", True)
        return self._render(FormKind.RESET_PASSWORD, view)

    # ------------------------------------------------------------------
    # Redirect handling
    # ------------------------------------------------------------------

    def resolve_redirect_target(self, interface: str, override: str = "") -> str:
        """Per-user override, then the requested interface, then the default target."""
        if override:
            return override
        if interface == "frontend":
            return FRONTEND_JUMP_TARGET
        if interface == "backend":
            return self.urls.main()
        return self.redirect_to_url

    async def _handle_logout(self) -> Optional[Outcome]:
        # A refresh popup never navigates away, so L=OUT is ignored there
        if not self.context.logout or self.login_refresh or not self.auth.is_logged_in:
            return None

        target = self.resolve_redirect_target(
            self.context.interface, self.auth.redirect_override()
        )
        await self.form_protection.clean()
        await self.auth.log_off()
        logger.info("backend_logout", target=target)
        return Redirect(target)

    async def _check_redirect(self) -> Optional[Outcome]:
        if not self.auth.is_logged_in:
            return None

        # The session cookie must have come back from an earlier response
        if not self.context.has_session_cookie:
            if self.context.submit_value == SET_COOKIE_MARKER:
                logger.error("session_cookie_missing_after_retry")
                raise CookieRequiredError()
            if not self.login_refresh:
                logger.info("session_cookie_missing_retrying")
                return Redirect(self.urls.set_cookie_retry())

        override = self.auth.redirect_override()
        interface = "" if override else self.context.interface
        target = self.resolve_redirect_target(interface, override)
        await self.auth.store_interface(interface)

        if self.login_refresh:
            await self.form_protection.set_session_token_from_registry()
            await self.form_protection.persist_session_token()
            logger.info("login_refresh_completed")
            return CloseWindow()

        await self.form_protection.store_session_token_in_registry()
        logger.info("login_redirect", target=target, interface=interface)
        return Redirect(target)

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    async def _render_login_logout_form(self) -> RenderForm:
        if not self.auth.is_logged_in:
            action = FormKind.LOGIN
            form_action_url = self.urls.login(self.login_provider_identifier, self.redirect_url)
        else:
            action = FormKind.LOGOUT
            form_action_url = self.urls.logout()

        user = self.auth.user
        view = self._create_view()
        view.assign_multiple(
            {
                "backendUser": user.public_view() if user else None,
                "hasLoginError": self.context.login_in_progress and not self.auth.is_logged_in,
                "action": action.value,
                "formActionUrl": form_action_url,
                "redirectUrl": self.redirect_url,
                "loginRefresh": self.login_refresh,
                "loginProviders": self.registry.as_view(),
                "loginNewsItems": await get_login_news(self.news_source),
            }
        )
        view.assign_multiple(
            build_interface_selector(
                self.interfaces,
                login_in_progress=self.context.login_in_progress,
                redirect_url=self.redirect_url,
                main_url=self.urls.main(),
            )
        )

        descriptor = self.registry.get(self.login_provider_identifier)
        descriptor.create_provider().render(view, self)

        return self._render(action, view)

    def _create_view(self, template: str = "Login/Form") -> LoginView:
        view = LoginView(template=template)
        view.assign_multiple(
            {
                "title": f"Login: {settings.SITENAME}",
                "referrerCheckEnabled": settings.ENFORCE_REFERRER,
                "loginUrl": self.context.login_url,
                "loginProviderIdentifier": self.login_provider_identifier,
            }
        )
        view.assign_multiple(self._styling())
        return view

    def _reset_view(self, token: str, identity: str, expires: str) -> LoginView:
        view = self._create_view("Login/ResetPasswordForm")
        view.assign_multiple(
            {
                "enablePasswordReset": self.password_reset.is_enabled(),
                "token": token,
                "identity": identity,
                "expirationDate": expires,
            }
        )
        return view

    @staticmethod
    def _styling() -> dict:
        styling = {
            "logo": settings.LOGIN_LOGO,
            "logoAlt": settings.LOGIN_LOGO_ALT or settings.SITENAME,
        }
        if settings.LOGIN_FOOTNOTE:
            styling["loginFootnote"] = settings.LOGIN_FOOTNOTE
        if settings.LOGIN_HIGHLIGHT_COLOR:
            styling["highlightColor"] = settings.LOGIN_HIGHLIGHT_COLOR
        if settings.LOGIN_BACKGROUND_IMAGE:
            styling["backgroundImage"] = settings.LOGIN_BACKGROUND_IMAGE
        return styling

    def _render(self, form_kind: FormKind, view: LoginView) -> RenderForm:
        return RenderForm(
            form_kind=form_kind,
            provider_identifier=self.login_provider_identifier,
            redirect_target=self.redirect_to_url,
            template=view.template,
            variables=view.variables,
        )

    def _result(self, outcome: Outcome) -> EntryResult:
        return EntryResult(outcome=outcome, remember_cookie=self._remember_cookie)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _is_valid_email(email: str) -> bool:
        if not email:
            return False
        try:
            validate_email(email, check_deliverability=False)
        except EmailNotValidError:
            return False
        return True

    async def _random_delay(self) -> None:
        """Sleep 200ms-3s (configurable) so timing does not reveal known addresses."""
        delay_ms = secrets.SystemRandom().randint(
            settings.PASSWORD_RESET_DELAY_MIN_MS, settings.PASSWORD_RESET_DELAY_MAX_MS
        )
        await self._sleep(delay_ms / 1000)
