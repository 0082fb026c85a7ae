"""System news shown on the login screen."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable

from login_gate.config import settings
from login_gate.utils.datetime_utils import ensure_utc, from_timestamp, parse_datetime


@dataclass(frozen=True)
class SystemNewsItem:
    uid: int
    title: str
    content: str
    created: datetime


class SystemNewsSource(ABC):
    @abstractmethod
    async def fetch_all(self) -> list[SystemNewsItem]:
        """Return all news items in any order."""


class InMemorySystemNewsSource(SystemNewsSource):
    def __init__(self, items: Iterable[SystemNewsItem] = ()) -> None:
        self._items = list(items)

    async def fetch_all(self) -> list[SystemNewsItem]:
        return list(self._items)


def build_news_source(records: list[dict]) -> InMemorySystemNewsSource:
    """Create the source from ``SYSTEM_NEWS`` settings records.

    ``created`` may be an ISO 8601 string (with or without offset) or a unix
    timestamp; values without an offset are read as UTC. A record without
    ``created`` sorts as the oldest.
    """
    items = []
    for index, record in enumerate(records, start=1):
        created = record.get("created")
        items.append(
            SystemNewsItem(
                uid=int(record.get("uid", index)),
                title=record.get("title", ""),
                content=record.get("content", ""),
                created=from_timestamp(0) if created in (None, "") else parse_datetime(created),
            )
        )
    return InMemorySystemNewsSource(items)


async def get_login_news(source: SystemNewsSource, date_format: str = "") -> list[dict]:
    """News items for the login view, newest first."""
    items = sorted(
        await source.fetch_all(), key=lambda item: ensure_utc(item.created), reverse=True
    )
    date_format = date_format or settings.NEWS_DATE_FORMAT
    return [
        {
            "uid": item.uid,
            "date": item.created.strftime(date_format),
            "header": item.title,
            "content": item.content,
        }
        for item in items
    ]
