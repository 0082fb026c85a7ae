"""Selection of the active login provider for a request."""

from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from login_gate.config import settings
from login_gate.services.login_providers.registry import LoginProviderRegistry

REMEMBER_PROVIDER_LIFETIME = timedelta(days=90)


@dataclass(frozen=True)
class RememberProviderCookie:
    """Set-Cookie directive remembering a non-primary provider."""

    value: str
    path: str
    secure: bool
    name: str = "last_login_provider"
    max_age: int = int(REMEMBER_PROVIDER_LIFETIME.total_seconds())
    httponly: bool = True
    samesite: str = "strict"


@dataclass(frozen=True)
class ProviderSelection:
    identifier: str
    remember_cookie: Optional[RememberProviderCookie] = None


def select_login_provider(
    registry: LoginProviderRegistry,
    requested: Optional[str],
    remembered: Optional[str],
    *,
    is_https: bool,
    cookie_path: str,
    cookie_name: Optional[str] = None,
) -> ProviderSelection:
    """
    Pick the provider for this request.

    The identifier named in the request wins if it is registered, then the one
    remembered in the cookie, then the primary provider. Choosing anything
    other than the primary provider yields a cookie directive so the choice
    survives the next visit.

    Args:
        registry: Validated provider registry
        requested: ``loginProvider`` request field
        remembered: Value of the last-login-provider cookie
        is_https: Whether the request came in over TLS (sets ``secure``)
        cookie_path: Path the cookie is scoped to
        cookie_name: Cookie name, defaults to LAST_LOGIN_PROVIDER_COOKIE

    Returns:
        ProviderSelection with the identifier and an optional cookie
    """
    primary = registry.primary.identifier

    if requested and requested in registry:
        identifier = requested
    elif remembered and remembered in registry:
        identifier = remembered
    else:
        identifier = primary

    if identifier == primary:
        return ProviderSelection(identifier=identifier)

    return ProviderSelection(
        identifier=identifier,
        remember_cookie=RememberProviderCookie(
            name=cookie_name or settings.LAST_LOGIN_PROVIDER_COOKIE,
            value=identifier,
            path=cookie_path,
            secure=is_https,
        ),
    )
