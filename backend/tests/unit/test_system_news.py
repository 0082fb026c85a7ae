"""Unit tests for login screen system news."""

from datetime import datetime, timezone

import pytest

from login_gate.services.system_news import (
    InMemorySystemNewsSource,
    SystemNewsItem,
    build_news_source,
    get_login_news,
)


@pytest.mark.unit
class TestLoginNews:
    @pytest.mark.asyncio
    async def test_newest_first_with_configured_format(self, news_source):
        items = await get_login_news(news_source, "%d-%m-%y")

        assert items == [
            {"uid": 2, "date": "12-05-26", "header": "New editor", "content": "The rich text editor was updated"},
            {"uid": 1, "date": "01-03-26", "header": "Maintenance", "content": "Backend offline on Sunday"},
        ]

    @pytest.mark.asyncio
    async def test_empty_source(self):
        assert await get_login_news(build_news_source([])) == []

    @pytest.mark.asyncio
    async def test_build_from_settings_records(self):
        source = build_news_source(
            [
                {"title": "Old", "content": "a", "created": "2025-01-01T10:00:00"},
                {"uid": 7, "title": "New", "content": "b", "created": "2025-06-01T10:00:00"},
            ]
        )

        items = await source.fetch_all()

        assert [item.uid for item in items] == [1, 7]
        assert items[1].created == datetime(2025, 6, 1, 10, 0, tzinfo=timezone.utc)
        news = await get_login_news(source, "%Y-%m-%d")
        assert [item["date"] for item in news] == ["2025-06-01", "2025-01-01"]

    @pytest.mark.asyncio
    async def test_mixed_offsets_and_missing_created(self):
        source = build_news_source(
            [
                {"uid": 1, "title": "Aware", "created": "2026-01-01T10:00:00+00:00"},
                {"uid": 2, "title": "Undated"},
                {"uid": 3, "title": "Zulu", "created": "2026-02-01T08:00:00Z"},
                {"uid": 4, "title": "Naive", "created": "2026-01-15T12:00:00"},
                {"uid": 5, "title": "Timestamp", "created": 1767225600},
                {"uid": 6, "title": "Shifted", "created": "2026-01-20T01:00:00+02:00"},
            ]
        )

        news = await get_login_news(source, "%Y-%m-%d %H:%M")

        assert [item["uid"] for item in news] == [3, 6, 4, 1, 5, 2]
        assert news[1]["date"] == "2026-01-19 23:00"
        assert news[-1]["date"] == "1970-01-01 00:00"

    @pytest.mark.asyncio
    async def test_items_with_naive_and_aware_datetimes_sort(self):
        source = InMemorySystemNewsSource(
            [
                SystemNewsItem(1, "Naive", "", datetime(2026, 3, 1, 9, 0)),
                SystemNewsItem(2, "Aware", "", datetime(2026, 4, 1, 9, 0, tzinfo=timezone.utc)),
            ]
        )

        assert [item["uid"] for item in await get_login_news(source)] == [2, 1]
