"""
Domain models for live-game reconciliation.
Pydantic models are read from collaborators; dataclasses are transient per-pass values.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict


class GameStatus(str, Enum):
    UPCOMING = "UPCOMING"
    LIVE = "LIVE"
    FINISHED = "FINISHED"
    CANCELLED = "CANCELLED"
    RESCHEDULED = "RESCHEDULED"


class SportType(str, Enum):
    FOOTBALL = "FOOTBALL"
    RUGBY = "RUGBY"


class DecidedBy(str, Enum):
    """Which period the final score covers. Penalty shoot-outs record the 120-minute score."""
    FT = "FT"
    AET = "AET"


class ConfidenceTier(str, Enum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"

    @property
    def rank(self) -> int:
        return _TIER_RANK[self]

    def meets(self, minimum: "ConfidenceTier") -> bool:
        return self.rank >= minimum.rank


_TIER_RANK = {ConfidenceTier.LOW: 0, ConfidenceTier.MEDIUM: 1, ConfidenceTier.HIGH: 2}


class MatchMethod(str, Enum):
    LIVE_POOL = "live-pool-match"
    EXTERNAL_ID = "external-id-match"
    SCORED_POOL = "scored-pool-match"


class SkipReason(str, Enum):
    GAME_FINISHED = "game_finished"
    NOT_STARTED = "fixture_not_started"
    ALREADY_CLAIMED = "game_already_updated_this_pass"
    SPORT_MISMATCH = "sport_mismatch"
    LOW_CONFIDENCE_FINISH = "low_confidence_finish_attempt"
    LOW_CONFIDENCE_DATE = "low_confidence_date_difference"
    LOW_CONFIDENCE_COMPETITION = "low_confidence_competition_mismatch"


# ── Records ─────────────────────────────────────────────────────────────
class DomainModel(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)


class ExternalFixture(DomainModel):
    """One external-feed record for a single real-world match."""
    external_id: str
    home_team: str
    away_team: str
    kickoff: Optional[datetime] = None
    competition: Optional[str] = None
    status_code: str = "NS"
    home_score: Optional[int] = None
    away_score: Optional[int] = None
    elapsed: Optional[int] = None

    def label(self) -> str:
        return f"{self.home_team} vs {self.away_team}"


class TeamCandidate(DomainModel):
    id: str
    name: str
    short_name: Optional[str] = None


class CompetitionRef(DomainModel):
    id: str
    name: str
    sport: SportType = SportType.FOOTBALL


class InternalGame(DomainModel):
    id: str
    home_team: TeamCandidate
    away_team: TeamCandidate
    scheduled_at: datetime
    competition: CompetitionRef
    status: GameStatus = GameStatus.UPCOMING
    external_id: Optional[str] = None
    external_status: Optional[str] = None
    live_home_score: Optional[int] = None
    live_away_score: Optional[int] = None
    home_score: Optional[int] = None
    away_score: Optional[int] = None
    elapsed: Optional[int] = None
    decided_by: Optional[DecidedBy] = None
    finished_at: Optional[datetime] = None
    last_sync_at: Optional[datetime] = None

    def label(self) -> str:
        return f"{self.home_team.name} vs {self.away_team.name}"

    def has_team(self, team_id: str) -> bool:
        return team_id in (self.home_team.id, self.away_team.id)

    def current_live_score(self) -> tuple[Optional[int], Optional[int]]:
        return self.live_home_score, self.live_away_score

    def final_or_live_score(self) -> tuple[int, int]:
        """Final score if set, else last live score, else 0-0."""
        home = self.home_score if self.home_score is not None else (self.live_home_score or 0)
        away = self.away_score if self.away_score is not None else (self.live_away_score or 0)
        return home, away


class Bet(DomainModel):
    id: str
    game_id: str
    user_id: str
    home_score: int
    away_score: int
    points: Optional[int] = None


class GameUpdate(DomainModel):
    """Fields a decision asks the store to write. Only explicitly-set fields are persisted."""
    status: Optional[GameStatus] = None
    external_id: Optional[str] = None
    external_status: Optional[str] = None
    live_home_score: Optional[int] = None
    live_away_score: Optional[int] = None
    home_score: Optional[int] = None
    away_score: Optional[int] = None
    elapsed: Optional[int] = None
    decided_by: Optional[DecidedBy] = None
    finished_at: Optional[datetime] = None
    last_sync_at: Optional[datetime] = None

    def changes(self) -> dict:
        return self.model_dump(exclude_unset=True)


# ── Transient values ────────────────────────────────────────────────────
@dataclass(frozen=True)
class MatchCandidate:
    """A proposed (fixture -> internal game) binding with the evidence behind it."""
    game: InternalGame
    tier: ConfidenceTier
    method: MatchMethod
    home_team_score: float = 0.0
    away_team_score: float = 0.0
    competition_score: Optional[float] = None
    hours_apart: Optional[float] = None
    # Fixture lists the game's away side as its home side.
    reversed_sides: bool = False

    def oriented(self, home: Optional[int], away: Optional[int]) -> tuple[Optional[int], Optional[int]]:
        """A fixture-side score pair in the game's home/away order."""
        return (away, home) if self.reversed_sides else (home, away)


@dataclass(frozen=True)
class StaleBinding:
    """A stored external id that failed re-verification and must be cleared."""
    game: InternalGame
    external_id: str
    reason: str

    @property
    def was_wrongly_finished(self) -> bool:
        return self.game.status == GameStatus.FINISHED and self.game.external_id == self.external_id


@dataclass
class CandidateSearch:
    candidates: list[MatchCandidate] = field(default_factory=list)
    stale_bindings: list[StaleBinding] = field(default_factory=list)
    unmatched_reason: Optional[str] = None

    @property
    def best(self) -> Optional[MatchCandidate]:
        return self.candidates[0] if self.candidates else None
