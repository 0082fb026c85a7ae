"""Form protection (CSRF) tokens bound to the backend session."""

import logging
from typing import Optional

from login_gate.core.exceptions import FormProtectionError
from login_gate.core.security import generate_random_token, hmac_digest, tokens_match
from login_gate.core.session import BackendSession, Registry, SessionStore

logger = logging.getLogger(__name__)


class BackendFormProtection:
    """
    Session-scoped form protection.

    The session token lives in the session data. On a normal login it is also
    copied into the user-keyed registry so a later refresh login (new session,
    same user) can restore it and keep forms rendered before the refresh valid.

    Form tokens are HMACs of the form identity keyed by the session token, so
    nothing but the session token has to be stored.
    """

    SESSION_KEY = "formProtectionSessionToken"
    REGISTRY_NAMESPACE = "core"

    def __init__(
        self,
        session: BackendSession,
        session_store: SessionStore,
        registry: Registry,
    ) -> None:
        self.session = session
        self.session_store = session_store
        self.registry = registry
        self._session_token: Optional[str] = session.data.get(self.SESSION_KEY)

    @property
    def _registry_key(self) -> str:
        return f"formProtectionSessionToken:{self.session.user_uid}"

    @property
    def session_token(self) -> str:
        """The session token, created on first use."""
        if not self._session_token:
            self._session_token = generate_random_token()
        return self._session_token

    def generate_token(self, form_name: str, action: str = "", form_instance_name: str = "") -> str:
        """Token for one form; the same inputs give the same token within a session."""
        if not form_name:
            raise ValueError("form_name must not be empty")
        return hmac_digest(self.session_token, f"{form_name}|{action}|{form_instance_name}")

    def validate_token(
        self,
        token: Optional[str],
        form_name: str,
        action: str = "",
        form_instance_name: str = "",
    ) -> bool:
        if not token or not self._session_token:
            logger.warning("Form protection: token check failed for form=%s", form_name)
            return False
        expected = self.generate_token(form_name, action, form_instance_name)
        if not tokens_match(expected, token):
            logger.warning("Form protection: token mismatch for form=%s", form_name)
            return False
        return True

    async def persist_session_token(self) -> None:
        """Write the session token into the stored session."""
        self.session.data[self.SESSION_KEY] = self.session_token
        await self.session_store.save(self.session)

    async def store_session_token_in_registry(self) -> None:
        """Persist a session token and keep a copy keyed by the logged-in user."""
        await self.persist_session_token()
        await self.registry.set(self.REGISTRY_NAMESPACE, self._registry_key, self.session_token)

    async def set_session_token_from_registry(self) -> None:
        """Adopt the token stored by an earlier login of the same user.

        Raises:
            FormProtectionError: if no token was stored for the user.
        """
        token = await self.registry.get(self.REGISTRY_NAMESPACE, self._registry_key)
        if not token:
            raise FormProtectionError(
                "Failed to restore the session token from the registry."
            )
        self._session_token = token

    async def clean(self) -> None:
        """Forget the session token, e.g. on log off."""
        self._session_token = None
        self.session.data.pop(self.SESSION_KEY, None)
        if self.session.user_uid is not None:
            await self.registry.remove(self.REGISTRY_NAMESPACE, self._registry_key)
