"""
Result of one reconciliation pass, returned to the caller and snapshotted to Redis.
"""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import Field

from livesync.disambiguation import DisambiguationSuggestion
from livesync.models import DecidedBy, DomainModel, ExternalFixture, GameStatus


class UpdatedGame(DomainModel):
    id: str
    home_team: str
    away_team: str
    kind: str
    old_status: GameStatus
    new_status: GameStatus
    old_home_score: Optional[int] = None
    old_away_score: Optional[int] = None
    new_home_score: Optional[int] = None
    new_away_score: Optional[int] = None
    elapsed: Optional[int] = None
    external_status: Optional[str] = None
    decided_by: Optional[DecidedBy] = None

    @property
    def score_changed(self) -> bool:
        return (self.old_home_score, self.old_away_score) != (self.new_home_score, self.new_away_score)

    @property
    def status_changed(self) -> bool:
        return self.old_status != self.new_status


class FixtureOutcome(DomainModel):
    external_id: str
    home_team: str
    away_team: str
    competition: Optional[str] = None
    reason: str
    game_id: Optional[str] = None
    detail: str = ""

    @classmethod
    def of(cls, fixture: ExternalFixture, reason: str, game_id: Optional[str] = None, detail: str = "") -> "FixtureOutcome":
        return cls(
            external_id=fixture.external_id,
            home_team=fixture.home_team,
            away_team=fixture.away_team,
            competition=fixture.competition,
            reason=reason,
            game_id=game_id,
            detail=detail,
        )


class ClearedBinding(DomainModel):
    game_id: str
    external_id: str
    reason: str
    reset_to_upcoming: bool = False


class ReconciliationReport(DomainModel):
    synced_at: datetime
    message: str = ""
    in_progress: bool = False

    total_live_games: int = 0
    stale_live_games: int = 0
    external_fixtures: int = 0
    processed_count: int = 0
    matched_count: int = 0
    rejected_count: int = 0
    unmatched_count: int = 0
    skipped_count: int = 0
    error_count: int = 0
    feed_failures: list[str] = Field(default_factory=list)

    updated_games: list[UpdatedGame] = Field(default_factory=list)
    rejected: list[FixtureOutcome] = Field(default_factory=list)
    unmatched: list[FixtureOutcome] = Field(default_factory=list)
    finish_blocked: list[FixtureOutcome] = Field(default_factory=list)
    cleared_bindings: list[ClearedBinding] = Field(default_factory=list)
    auto_finished: list[str] = Field(default_factory=list)
    disambiguation: list[DisambiguationSuggestion] = Field(default_factory=list)

    @property
    def updated_count(self) -> int:
        return len(self.updated_games)
