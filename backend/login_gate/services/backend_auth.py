"""Authentication state of the backend session."""

import logging
from abc import ABC, abstractmethod
from typing import Mapping, Optional

from login_gate.core.session import BackendSession, SessionStore
from login_gate.services.login_providers.base import LoginProvider
from login_gate.services.user_directory import BackendUser, UserDirectory

logger = logging.getLogger(__name__)


class AuthenticationStateProvider(ABC):
    """What the session entry controller needs to know about the user."""

    @property
    @abstractmethod
    def is_logged_in(self) -> bool:
        ...

    @property
    @abstractmethod
    def user(self) -> Optional[BackendUser]:
        ...

    @abstractmethod
    async def log_off(self) -> None:
        """End the authenticated session."""

    @abstractmethod
    def redirect_override(self) -> str:
        """Post-login target configured for the user, "" when none."""

    @abstractmethod
    async def store_interface(self, interface: str) -> None:
        """Remember which interface the user was routed into."""


class SessionAuthenticationState(AuthenticationStateProvider):
    """Authentication state backed by the session store and user directory."""

    def __init__(
        self,
        session: BackendSession,
        session_store: SessionStore,
        users: UserDirectory,
        user: Optional[BackendUser] = None,
    ) -> None:
        self.session = session
        self.session_store = session_store
        self.users = users
        self._user = user
        self.ended = False

    @classmethod
    async def load(
        cls, session_id: Optional[str], session_store: SessionStore, users: UserDirectory
    ) -> "SessionAuthenticationState":
        """Resume the session named by the session cookie, if any."""
        session = await session_store.load(session_id)
        user = None
        if session.user_uid is not None:
            user = await users.get_by_uid(session.user_uid)
            if user is None or user.disabled:
                logger.info("Dropping session of missing or disabled user uid=%s", session.user_uid)
                await session_store.delete(session)
                session.user_uid = None
                user = None
        return cls(session, session_store, users, user)

    @property
    def is_logged_in(self) -> bool:
        return self._user is not None

    @property
    def user(self) -> Optional[BackendUser]:
        return self._user

    async def login(self, provider: LoginProvider, form: Mapping[str, str]) -> bool:
        """Verify ``form`` with ``provider`` and start an authenticated session."""
        user = await provider.authenticate(form, self.users)
        if user is None:
            return False

        self.session.user_uid = user.uid
        self.session = await self.session_store.regenerate(self.session)
        self._user = user
        logger.info("Backend login: user uid=%s", user.uid)
        return True

    async def log_off(self) -> None:
        if self._user is not None:
            logger.info("Backend logoff: user uid=%s", self._user.uid)
        await self.session_store.delete(self.session)
        self.session.user_uid = None
        self.session.data = {}
        self._user = None
        self.ended = True

    def redirect_override(self) -> str:
        return self._user.redirect_to_url if self._user else ""

    async def store_interface(self, interface: str) -> None:
        if self._user is None:
            return
        self._user.uc["interfaceSetup"] = interface
        await self.users.save(self._user)
