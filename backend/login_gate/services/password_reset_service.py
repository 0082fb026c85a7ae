"""Password reset for backend users who forgot their password.

A reset link carries three values: the raw token ``t``, an identity hash
``i`` (email + uid, so the link names no user) and the expiry timestamp ``e``.
Only the SHA-256 of the token is stored on the user; a successful reset or a
new request invalidates it.
"""

import logging
from datetime import timedelta
from typing import Optional

from login_gate.config import settings
from login_gate.core.security import (
    generate_random_token,
    hash_password,
    hash_token,
    tokens_match,
)
from login_gate.services.email_service import EmailService
from login_gate.services.user_directory import BackendUser, UserDirectory
from login_gate.utils.datetime_utils import from_timestamp, to_timestamp, utc_now
from login_gate.utils.logging_utils import redact_email
from login_gate.utils.url_utils import BackendUrls

logger = logging.getLogger(__name__)


def identity_hash(user: BackendUser) -> str:
    return hash_token(f"{user.email}|{user.uid}")


class PasswordResetService:
    """Issues and redeems password reset tokens."""

    def __init__(
        self,
        users: UserDirectory,
        email_service: EmailService,
        urls: Optional[BackendUrls] = None,
        enabled: Optional[bool] = None,
        token_lifetime_minutes: Optional[int] = None,
        min_password_length: Optional[int] = None,
    ) -> None:
        self.users = users
        self.email_service = email_service
        self.urls = urls or BackendUrls()
        self.enabled = settings.PASSWORD_RESET_ENABLED if enabled is None else enabled
        self.token_lifetime_minutes = (
            settings.PASSWORD_RESET_TOKEN_EXPIRE_MINUTES
            if token_lifetime_minutes is None
            else token_lifetime_minutes
        )
        self.min_password_length = (
            settings.PASSWORD_MIN_LENGTH if min_password_length is None else min_password_length
        )

    def is_enabled(self) -> bool:
        return self.enabled

    async def initiate_reset(self, email: str) -> None:
        """
        Mail a reset link to the user owning ``email``.

        Unknown addresses, disabled users and a disabled feature end silently;
        the caller must not reveal which case applied.
        """
        if not self.enabled:
            return

        user = await self.users.get_by_email(email)
        if user is None or user.disabled:
            logger.info("Password reset requested for unknown address %s", redact_email(email))
            return

        raw_token = generate_random_token()
        expires_at = utc_now() + timedelta(minutes=self.token_lifetime_minutes)
        user.password_reset_token_hash = hash_token(raw_token)
        user.password_reset_expires_at = expires_at
        await self.users.save(user)

        reset_path = self.urls.password_reset(
            raw_token, identity_hash(user), to_timestamp(expires_at)
        )
        delivered = await self.email_service.send_password_reset_email(
            user.email, reset_path, user.realname or user.username, self.token_lifetime_minutes
        )
        if not delivered:
            logger.warning("Password reset link for %s was not delivered", redact_email(user.email))
            return
        logger.info("Password reset requested for %s", redact_email(user.email))

    async def _find_user(self, token: str, identity: str, expires: str) -> Optional[BackendUser]:
        if not self.enabled or not token or not identity or not expires:
            return None
        try:
            expires_at = from_timestamp(int(expires))
        except (ValueError, OverflowError, OSError):
            return None
        if expires_at <= utc_now():
            return None

        token_hash = hash_token(token)
        for user in await self.users.all():
            if user.disabled or not user.password_reset_token_hash:
                continue
            if not tokens_match(identity_hash(user), identity):
                continue
            if user.password_reset_expires_at is None or user.password_reset_expires_at <= utc_now():
                return None
            if tokens_match(user.password_reset_token_hash, token_hash):
                return user
            return None
        return None

    async def is_valid_reset_token(self, token: str, identity: str, expires: str) -> bool:
        return await self._find_user(token, identity, expires) is not None

    async def reset_password(
        self,
        token: str,
        identity: str,
        expires: str,
        password: str,
        password_repeat: str,
    ) -> bool:
        """Set a new password; False if the token or the new password is unacceptable."""
        user = await self._find_user(token, identity, expires)
        if user is None:
            return False

        if not password or password != password_repeat:
            return False
        if len(password) < self.min_password_length:
            return False

        user.password_hash = hash_password(password)
        user.password_reset_token_hash = ""
        user.password_reset_expires_at = None
        await self.users.save(user)
        logger.info("Password reset completed for user uid=%s", user.uid)
        return True
