"""Backend user records and their lookup."""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, Optional

logger = logging.getLogger(__name__)


@dataclass
class BackendUser:
    """A backend account.

    ``redirect_to_url`` is the per-user override of the post-login target;
    ``uc`` holds persisted user settings such as the chosen interface.
    """

    uid: int
    username: str
    password_hash: str
    email: str = ""
    realname: str = ""
    disabled: bool = False
    redirect_to_url: str = ""
    uc: dict = field(default_factory=dict)
    password_reset_token_hash: str = ""
    password_reset_expires_at: Optional[datetime] = None

    def public_view(self) -> dict:
        """Fields that may be handed to the login view."""
        return {"uid": self.uid, "username": self.username, "realname": self.realname}


class UserDirectory(ABC):
    """Read/write access to backend users."""

    @abstractmethod
    async def get_by_uid(self, uid: int) -> Optional[BackendUser]:
        ...

    @abstractmethod
    async def get_by_username(self, username: str) -> Optional[BackendUser]:
        ...

    @abstractmethod
    async def get_by_email(self, email: str) -> Optional[BackendUser]:
        ...

    @abstractmethod
    async def all(self) -> list[BackendUser]:
        ...

    @abstractmethod
    async def save(self, user: BackendUser) -> None:
        ...


class InMemoryUserDirectory(UserDirectory):
    """User directory held in process memory."""

    def __init__(self, users: Iterable[BackendUser] = ()) -> None:
        self._users: dict[int, BackendUser] = {user.uid: user for user in users}

    async def get_by_uid(self, uid: int) -> Optional[BackendUser]:
        return self._users.get(uid)

    async def get_by_username(self, username: str) -> Optional[BackendUser]:
        for user in self._users.values():
            if user.username == username:
                return user
        return None

    async def get_by_email(self, email: str) -> Optional[BackendUser]:
        email = email.lower()
        for user in self._users.values():
            if user.email and user.email.lower() == email:
                return user
        return None

    async def all(self) -> list[BackendUser]:
        return list(self._users.values())

    async def save(self, user: BackendUser) -> None:
        self._users[user.uid] = user


def build_user_directory(records: list[dict]) -> InMemoryUserDirectory:
    """Create the directory from ``BACKEND_USERS`` settings records.

    Records without ``username`` or ``password_hash`` are skipped.
    """
    users = []
    for index, record in enumerate(records, start=1):
        if not record.get("username") or not record.get("password_hash"):
            logger.warning("Skipping backend user record %d: username/password_hash missing", index)
            continue
        users.append(
            BackendUser(
                uid=int(record.get("uid", index)),
                username=record["username"],
                password_hash=record["password_hash"],
                email=record.get("email", ""),
                realname=record.get("realname", ""),
                disabled=bool(record.get("disabled", False)),
                redirect_to_url=record.get("redirect_to_url", ""),
            )
        )
    return InMemoryUserDirectory(users)
