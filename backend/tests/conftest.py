"""
Shared factories for live-sync tests.
"""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional

import pytest

from livesync.config import LiveSyncSettings
from livesync.models import (
    CompetitionRef,
    ConfidenceTier,
    ExternalFixture,
    GameStatus,
    InternalGame,
    MatchCandidate,
    MatchMethod,
    SportType,
    TeamCandidate,
)
from shared.utils.timeutil import hours_between

NOW = datetime(2026, 3, 14, 20, 0, tzinfo=timezone.utc)

MAN_UTD = TeamCandidate(id="t-mu", name="Manchester United", short_name="Man Utd")
LIVERPOOL = TeamCandidate(id="t-liv", name="Liverpool")
ARSENAL = TeamCandidate(id="t-ars", name="Arsenal")
CHELSEA = TeamCandidate(id="t-che", name="Chelsea")
PREMIER_LEAGUE = CompetitionRef(id="c-pl", name="Premier League", sport=SportType.FOOTBALL)


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def settings() -> LiveSyncSettings:
    return LiveSyncSettings(_env_file=None)


@pytest.fixture
def make_game() -> Callable[..., InternalGame]:
    def factory(
        id: str = "A",
        home: TeamCandidate = MAN_UTD,
        away: TeamCandidate = LIVERPOOL,
        competition: CompetitionRef = PREMIER_LEAGUE,
        status: GameStatus = GameStatus.LIVE,
        scheduled_at: Optional[datetime] = None,
        **fields: Any,
    ) -> InternalGame:
        return InternalGame(
            id=id,
            home_team=home,
            away_team=away,
            competition=competition,
            status=status,
            scheduled_at=scheduled_at or NOW - timedelta(minutes=30),
            **fields,
        )

    return factory


@pytest.fixture
def make_fixture() -> Callable[..., ExternalFixture]:
    def factory(
        external_id: str = "F1",
        home_team: str = "Man Utd",
        away_team: str = "Liverpool FC",
        competition: Optional[str] = "Premier League",
        status_code: str = "2H",
        home_score: Optional[int] = 1,
        away_score: Optional[int] = 0,
        kickoff: Optional[datetime] = None,
        elapsed: Optional[int] = 67,
        no_kickoff: bool = False,
    ) -> ExternalFixture:
        return ExternalFixture(
            external_id=external_id,
            home_team=home_team,
            away_team=away_team,
            competition=competition,
            status_code=status_code,
            home_score=home_score,
            away_score=away_score,
            kickoff=None if no_kickoff else (kickoff or NOW - timedelta(minutes=30)),
            elapsed=elapsed,
        )

    return factory


@pytest.fixture
def make_candidate() -> Callable[..., MatchCandidate]:
    def factory(
        game: InternalGame,
        fixture: ExternalFixture,
        tier: ConfidenceTier = ConfidenceTier.HIGH,
        method: MatchMethod = MatchMethod.LIVE_POOL,
        reversed_sides: bool = False,
    ) -> MatchCandidate:
        return MatchCandidate(
            game=game,
            tier=tier,
            method=method,
            home_team_score=1.0,
            away_team_score=1.0,
            hours_apart=hours_between(fixture.kickoff, game.scheduled_at),
            reversed_sides=reversed_sides,
        )

    return factory
