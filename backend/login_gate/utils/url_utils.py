"""Backend route URLs and local-URL sanitizing."""

import re
from typing import Optional
from urllib.parse import urlencode, urlsplit

from login_gate.config import settings

FRONTEND_JUMP_TARGET = "../"

# Control characters and backslashes are normalized differently by browsers
_UNSAFE_CHARS = re.compile(r"[\x00-\x1f\x7f\\]")


def sanitize_local_url(url: Optional[str], site_url: str = "") -> str:
    """
    Return ``url`` if it stays on this site, else an empty string.

    Accepted are relative URLs (``main``, ``../``, ``/backend/main?x=1``) and
    absolute URLs below ``site_url``. Scheme-relative URLs (``//evil.test``),
    other schemes (``javascript:``) and foreign hosts are rejected.
    The result is either ``""`` or ``url`` itself, so sanitizing twice gives
    the same value.

    Args:
        url: Redirect hint taken from the request
        site_url: Absolute URL of the site root, e.g. ``https://example.org/``

    Returns:
        The unchanged URL, or "" when it is not local
    """
    if not url:
        return ""

    if _UNSAFE_CHARS.search(url) or url != url.strip():
        return ""

    try:
        parts = urlsplit(url)
    except ValueError:
        return ""

    if not parts.scheme and not parts.netloc:
        if url.startswith("//"):
            return ""
        return url

    if site_url and parts.scheme in ("http", "https") and url.startswith(site_url):
        site_parts = urlsplit(site_url)
        if parts.netloc == site_parts.netloc:
            return url

    return ""


class BackendUrls:
    """Builds the backend routes relative to the configured backend path."""

    def __init__(self, backend_path: Optional[str] = None) -> None:
        self.backend_path = backend_path or settings.backend_path

    def build(self, route: str, params: Optional[dict] = None) -> str:
        url = self.backend_path + route
        query = {key: value for key, value in (params or {}).items() if value not in (None, "")}
        if query:
            url += "?" + urlencode(query)
        return url

    def main(self) -> str:
        return self.build("main")

    def login(self, login_provider: str = "", redirect_url: str = "") -> str:
        return self.build(
            "login", {"loginProvider": login_provider, "redirect_url": redirect_url}
        )

    def logout(self) -> str:
        return self.build("logout")

    def set_cookie_retry(self) -> str:
        """Login route re-issued with the marker that a cookie retry happened."""
        return self.build("login", {"commandLI": "setCookie"})

    def password_reset(self, token: str, identity: str, expires: int) -> str:
        return self.build(
            "login/password-reset", {"t": token, "i": identity, "e": str(expires)}
        )

    @property
    def cookie_path(self) -> str:
        return self.backend_path
