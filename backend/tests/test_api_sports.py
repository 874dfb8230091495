"""
API-Sports feed parsing and transport tests using httpx.MockTransport.
"""
from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any

import httpx
import pytest

from livesync.errors import FeedUnavailable
from livesync.feeds.api_sports import ApiSportsFeed, parse_fixture
from shared.utils.http_client import ProviderHTTPClient


def _item(fixture_id: int = 1035000, short: str = "2H", **goals: Any) -> dict[str, Any]:
    return {
        "fixture": {
            "id": fixture_id,
            "date": "2026-03-14T19:30:00+00:00",
            "status": {"short": short, "elapsed": 67},
        },
        "league": {"id": 39, "name": "Premier League"},
        "teams": {"home": {"name": "Manchester United"}, "away": {"name": "Liverpool"}},
        "goals": {"home": 1, "away": 0, **goals},
    }


class TestParseFixture:

    def test_basic(self) -> None:
        f = parse_fixture(_item())
        assert f is not None
        assert f.external_id == "1035000"
        assert f.home_team == "Manchester United"
        assert f.competition == "Premier League"
        assert f.status_code == "2H"
        assert (f.home_score, f.away_score) == (1, 0)
        assert f.elapsed == 67
        assert f.kickoff == datetime(2026, 3, 14, 19, 30, tzinfo=timezone.utc)

    def test_extra_time_score_used_after_penalties(self) -> None:
        f = parse_fixture(_item(short="PEN", home=1, away=1, extra={"home": 2, "away": 2}))
        assert (f.home_score, f.away_score) == (2, 2)

    def test_extra_ignored_during_play(self) -> None:
        f = parse_fixture(_item(short="2H", extra={"home": 5, "away": 5}))
        assert (f.home_score, f.away_score) == (1, 0)

    def test_missing_team_skipped(self) -> None:
        item = _item()
        item["teams"]["away"] = {}
        assert parse_fixture(item) is None

    def test_bad_date_becomes_none(self) -> None:
        item = _item()
        item["fixture"]["date"] = "not-a-date"
        assert parse_fixture(item).kickoff is None


def _feed(handler) -> ApiSportsFeed:
    client = ProviderHTTPClient("api_sports", "https://api.test", max_retries=1, transport=httpx.MockTransport(handler))
    return ApiSportsFeed(http_client=client)


class TestApiSportsFeed:

    @pytest.mark.asyncio
    async def test_live_fixtures(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"errors": [], "response": [_item(), {"fixture": {}}]})

        feed = _feed(handler)
        await feed.start()
        try:
            fixtures = await feed.get_live_fixtures()
        finally:
            await feed.close()
        assert [f.external_id for f in fixtures] == ["1035000"]
        assert seen[0].url.params["live"] == "all"

    @pytest.mark.asyncio
    async def test_date_range_queries_each_day(self) -> None:
        days: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            days.append(request.url.params["date"])
            return httpx.Response(200, json={"response": []})

        feed = _feed(handler)
        await feed.start()
        try:
            await feed.get_fixtures_by_date_range(date(2026, 3, 14), date(2026, 3, 15))
        finally:
            await feed.close()
        assert days == ["2026-03-14", "2026-03-15"]

    @pytest.mark.asyncio
    async def test_by_id_missing_returns_none(self) -> None:
        feed = _feed(lambda request: httpx.Response(200, json={"response": []}))
        await feed.start()
        try:
            assert await feed.get_fixture_by_id("42") is None
        finally:
            await feed.close()

    @pytest.mark.asyncio
    async def test_error_payload_raises_feed_unavailable(self) -> None:
        feed = _feed(lambda request: httpx.Response(200, json={"errors": {"requests": "limit reached"}, "response": []}))
        await feed.start()
        try:
            with pytest.raises(FeedUnavailable):
                await feed.get_live_fixtures()
        finally:
            await feed.close()

    @pytest.mark.asyncio
    async def test_http_error_raises_feed_unavailable(self) -> None:
        feed = _feed(lambda request: httpx.Response(403, json={}))
        await feed.start()
        try:
            with pytest.raises(FeedUnavailable) as exc_info:
                await feed.get_live_fixtures()
        finally:
            await feed.close()
        assert exc_info.value.call == "live"
