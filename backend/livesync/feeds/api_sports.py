"""
API-Sports (api-football v3) fixture feed.
Endpoints: /fixtures?live=all, /fixtures?date=YYYY-MM-DD, /fixtures?id=N. Auth via x-apisports-key.
"""
from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Any, Optional

from livesync.errors import FeedUnavailable
from livesync.models import ExternalFixture
from shared.config import Settings, get_settings
from shared.utils.http_client import ProviderHTTPClient
from shared.utils.logging import get_logger

logger = get_logger(__name__)

PROVIDER_NAME = "api_sports"
EXTRA_TIME_CODES = ("AET", "PEN")


def _parse_kickoff(raw: Optional[str]) -> Optional[datetime]:
    if not raw:
        return None
    try:
        return datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError:
        return None


def parse_fixture(item: dict[str, Any]) -> Optional[ExternalFixture]:
    """
    Convert one API-Sports fixture object. Returns None when ids or team names are missing.

    For AET/PEN the extra-time score is used when present; shoot-out goals never count.
    """
    fx = item.get("fixture") or {}
    teams = item.get("teams") or {}
    goals = item.get("goals") or {}
    league = item.get("league") or {}
    status = fx.get("status") or {}

    fixture_id = fx.get("id")
    home = (teams.get("home") or {}).get("name")
    away = (teams.get("away") or {}).get("name")
    if fixture_id is None or not home or not away:
        return None

    code = (status.get("short") or "NS").upper()
    home_score, away_score = goals.get("home"), goals.get("away")
    extra = goals.get("extra")
    if code in EXTRA_TIME_CODES and extra:
        home_score, away_score = extra.get("home", home_score), extra.get("away", away_score)

    return ExternalFixture(
        external_id=str(fixture_id),
        home_team=home,
        away_team=away,
        kickoff=_parse_kickoff(fx.get("date")),
        competition=league.get("name"),
        status_code=code,
        home_score=home_score,
        away_score=away_score,
        elapsed=status.get("elapsed"),
    )


class ApiSportsFeed:
    """ExternalFixtureFeed over API-Sports. Any transport or payload failure raises FeedUnavailable."""

    def __init__(self, http_client: Optional[ProviderHTTPClient] = None, settings: Optional[Settings] = None) -> None:
        settings = settings or get_settings()
        self._http = http_client or ProviderHTTPClient(
            provider_name=PROVIDER_NAME,
            base_url=settings.api_sports_base_url,
            headers={"x-apisports-key": settings.api_sports_api_key},
            timeout_s=settings.provider_request_timeout_s,
            max_retries=2,
        )

    async def start(self) -> None:
        await self._http.start()

    async def close(self) -> None:
        await self._http.close()

    async def _fixtures(self, call: str, params: dict[str, Any]) -> list[ExternalFixture]:
        try:
            payload = await self._http.get_json("/fixtures", params=params, endpoint=call)
        except Exception as e:
            raise FeedUnavailable(call, e) from e

        errors = payload.get("errors") if isinstance(payload, dict) else None
        if errors:
            # API-Sports reports quota and auth problems with a 200 and an errors object.
            raise FeedUnavailable(call, RuntimeError(str(errors)))

        fixtures: list[ExternalFixture] = []
        skipped = 0
        for item in (payload or {}).get("response") or []:
            parsed = parse_fixture(item)
            if parsed is None:
                skipped += 1
                continue
            fixtures.append(parsed)
        logger.debug("api_sports_fixtures", call=call, count=len(fixtures), skipped=skipped)
        return fixtures

    async def get_live_fixtures(self) -> list[ExternalFixture]:
        return await self._fixtures("live", {"live": "all"})

    async def get_fixtures_by_date_range(self, date_from: date, date_to: date) -> list[ExternalFixture]:
        fixtures: list[ExternalFixture] = []
        day = date_from
        while day <= date_to:
            fixtures.extend(await self._fixtures("date", {"date": day.isoformat()}))
            day += timedelta(days=1)
        return fixtures

    async def get_fixture_by_id(self, external_id: str) -> Optional[ExternalFixture]:
        found = await self._fixtures("by_id", {"id": external_id})
        return found[0] if found else None
