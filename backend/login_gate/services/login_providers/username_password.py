"""Username / password login provider."""

import logging
from typing import TYPE_CHECKING, Mapping, Optional

from login_gate.core.security import hash_password, verify_password
from login_gate.services.login_providers.base import LoginProvider, LoginView
from login_gate.services.user_directory import BackendUser, UserDirectory
from login_gate.utils.logging_utils import redact_username

if TYPE_CHECKING:
    from login_gate.services.session_entry import SessionEntryController

logger = logging.getLogger(__name__)

# Verified against when the username is unknown, so both paths cost one hash
_DUMMY_PASSWORD_HASH = hash_password("login-gate-timing-dummy")


class UsernamePasswordLoginProvider(LoginProvider):
    """Classic form with ``username`` and ``userident`` (password) fields."""

    template = "Login/UserPassLoginForm"

    def render(self, view: LoginView, controller: "SessionEntryController") -> None:
        view.template = self.template
        view.assign("presetUsername", controller.context.username or "")

    async def authenticate(
        self, form: Mapping[str, str], users: UserDirectory
    ) -> Optional[BackendUser]:
        username = (form.get("username") or "").strip()
        password = form.get("userident") or ""
        if not username or not password:
            return None

        user = await users.get_by_username(username)
        if user is None:
            verify_password(password, _DUMMY_PASSWORD_HASH)
            logger.info("Login failed: unknown user %s", redact_username(username))
            return None

        if not verify_password(password, user.password_hash):
            logger.info("Login failed: wrong password for user uid=%s", user.uid)
            return None

        if user.disabled:
            logger.info("Login failed: user uid=%s is disabled", user.uid)
            return None

        return user
