"""Error types raised while processing a backend login request."""

from typing import Optional


class LoginGateError(Exception):
    """Base class for errors that abort a login request."""


class ConfigurationError(LoginGateError):
    """The login provider configuration is empty or malformed.

    ``missing_field`` names the offending configuration key (``provider``,
    ``label``, ``icon-class``, ``sorting``) when a single entry is at fault,
    ``provider_identifier`` the entry itself.
    """

    def __init__(
        self,
        message: str,
        missing_field: Optional[str] = None,
        provider_identifier: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.missing_field = missing_field
        self.provider_identifier = provider_identifier


class CookieRequiredError(LoginGateError):
    """The client dropped the session cookie even after a retry round-trip."""

    def __init__(self, message: Optional[str] = None) -> None:
        super().__init__(
            message
            or "Login error: no session cookie was received. Please accept cookies "
            "from this site, otherwise you will not be able to use the backend."
        )


class FormProtectionError(LoginGateError):
    """The form protection session token could not be restored."""
