"""Backend user sessions and the user-keyed registry."""

import secrets
from dataclasses import dataclass, field
from typing import Any, Optional

from login_gate.config import settings
from login_gate.core.storage import KeyValueStore


@dataclass
class BackendSession:
    """One browser session; ``user_uid`` is None while anonymous."""

    session_id: str
    user_uid: Optional[int] = None
    data: dict = field(default_factory=dict)
    is_new: bool = False

    @property
    def is_anonymous(self) -> bool:
        return self.user_uid is None


def generate_session_id() -> str:
    return secrets.token_urlsafe(32)


class SessionStore:
    """Loads and persists :class:`BackendSession` records."""

    KEY_PREFIX = "session:"

    def __init__(self, store: KeyValueStore, lifetime: Optional[int] = None) -> None:
        self.store = store
        self.lifetime = lifetime or settings.SESSION_LIFETIME_SECONDS

    def _key(self, session_id: str) -> str:
        return f"{self.KEY_PREFIX}{session_id}"

    async def load(self, session_id: Optional[str]) -> BackendSession:
        """Return the stored session, or a fresh anonymous one."""
        if session_id:
            record = await self.store.get(self._key(session_id))
            if record is not None:
                return BackendSession(
                    session_id=session_id,
                    user_uid=record.get("user_uid"),
                    data=record.get("data", {}),
                )
        return BackendSession(session_id=generate_session_id(), is_new=True)

    async def save(self, session: BackendSession) -> None:
        await self.store.set(
            self._key(session.session_id),
            {"user_uid": session.user_uid, "data": session.data},
            ttl=self.lifetime,
        )

    async def delete(self, session: BackendSession) -> None:
        await self.store.delete(self._key(session.session_id))

    async def regenerate(self, session: BackendSession) -> BackendSession:
        """Move the session to a new id (done on login against fixation)."""
        await self.delete(session)
        renewed = BackendSession(
            session_id=generate_session_id(),
            user_uid=session.user_uid,
            data=dict(session.data),
            is_new=True,
        )
        await self.save(renewed)
        return renewed


class Registry:
    """Long-lived namespaced values, kept across sessions."""

    KEY_PREFIX = "registry:"

    def __init__(self, store: KeyValueStore) -> None:
        self.store = store

    def _key(self, namespace: str, key: str) -> str:
        return f"{self.KEY_PREFIX}{namespace}:{key}"

    async def get(self, namespace: str, key: str, default: Any = None) -> Any:
        value = await self.store.get(self._key(namespace, key))
        return default if value is None else value

    async def set(self, namespace: str, key: str, value: Any) -> None:
        await self.store.set(self._key(namespace, key), value)

    async def remove(self, namespace: str, key: str) -> None:
        await self.store.delete(self._key(namespace, key))
