"""
Reconciliation decisions: given a fixture and its best candidate game, what may be written?

Gates, in order:
    1. FINISHED games are never touched.
    2. Not-started / postponed fixtures carry no information.
    3. LIVE never regresses to UPCOMING.
    4. LOW tier is rejected for finishes, distant kickoffs and competition mismatches.
    5. FINISHED needs a loose competition match and a kickoff within the finish window.

The engine is pure: it reads its inputs and returns a decision; the runner applies it.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional, Union

from livesync.config import LiveSyncSettings, get_livesync_settings
from livesync.matching.competition import competitions_loosely_match
from livesync.models import (
    ConfidenceTier,
    DecidedBy,
    ExternalFixture,
    GameStatus,
    GameUpdate,
    InternalGame,
    MatchCandidate,
    SkipReason,
    StaleBinding,
)
from livesync.status import decided_by_for, is_half_time, is_not_started, map_status, normalize_code
from shared.utils.logging import get_logger
from shared.utils.timeutil import hours_between, utcnow

logger = get_logger(__name__)

AUTO_FINISH_EXTERNAL_STATUS = "FINISHED"

# Finish-safety clamp reasons
CLAMP_COMPETITION = "competition_mismatch"
CLAMP_KICKOFF_UNKNOWN = "kickoff_unknown"
CLAMP_DATE = "kickoff_too_far"
CLAMP_NO_SCORE = "final_score_unknown"


@dataclass(frozen=True)
class Skip:
    game_id: str
    reason: SkipReason
    detail: str = ""

    @property
    def is_rejection(self) -> bool:
        """LOW-confidence refusals count as rejections; the rest are plain skips."""
        return self.reason in (
            SkipReason.LOW_CONFIDENCE_FINISH,
            SkipReason.LOW_CONFIDENCE_DATE,
            SkipReason.LOW_CONFIDENCE_COMPETITION,
        )


@dataclass(frozen=True)
class ApplyLiveUpdate:
    game_id: str
    update: GameUpdate
    finish_blocked: Optional[str] = None


@dataclass(frozen=True)
class ApplyFinish:
    game_id: str
    update: GameUpdate
    final_home: int
    final_away: int
    decided_by: DecidedBy


Decision = Union[Skip, ApplyLiveUpdate, ApplyFinish]


class ReconciliationDecisionEngine:
    def __init__(self, settings: Optional[LiveSyncSettings] = None) -> None:
        self._settings = settings or get_livesync_settings()

    def decide(
        self,
        fixture: ExternalFixture,
        candidate: MatchCandidate,
        now: Optional[datetime] = None,
    ) -> Decision:
        now = now or utcnow()
        game = candidate.game
        s = self._settings

        if game.status == GameStatus.FINISHED:
            return Skip(game.id, SkipReason.GAME_FINISHED)
        if game.competition.sport != s.sport:
            return Skip(game.id, SkipReason.SPORT_MISMATCH, game.competition.sport.value)
        if is_not_started(fixture.status_code):
            return Skip(game.id, SkipReason.NOT_STARTED, normalize_code(fixture.status_code))

        target = map_status(fixture.status_code)
        if game.status == GameStatus.LIVE and target == GameStatus.UPCOMING:
            target = GameStatus.LIVE

        hours = candidate.hours_apart
        if hours is None:
            hours = hours_between(fixture.kickoff, game.scheduled_at)
        competition_ok = competitions_loosely_match(fixture.competition, game.competition.name)

        if not candidate.tier.meets(ConfidenceTier.MEDIUM):
            if target == GameStatus.FINISHED:
                return Skip(game.id, SkipReason.LOW_CONFIDENCE_FINISH, "LOW confidence cannot finish a game")
            if hours is not None and hours * 60 > s.low_max_date_diff_minutes:
                return Skip(game.id, SkipReason.LOW_CONFIDENCE_DATE, f"{hours:.1f}h apart")
            if not competition_ok:
                return Skip(
                    game.id,
                    SkipReason.LOW_CONFIDENCE_COMPETITION,
                    f"{fixture.competition!r} vs {game.competition.name!r}",
                )

        feed_home, feed_away = candidate.oriented(fixture.home_score, fixture.away_score)
        last_home, last_away = game.current_live_score()
        live_home = feed_home if feed_home is not None else last_home
        live_away = feed_away if feed_away is not None else last_away

        finish_blocked: Optional[str] = None
        if target == GameStatus.FINISHED:
            if not competition_ok:
                finish_blocked = CLAMP_COMPETITION
            elif hours is None:
                finish_blocked = CLAMP_KICKOFF_UNKNOWN
            elif hours * 60 > s.finish_max_date_diff_minutes:
                finish_blocked = CLAMP_DATE
            elif live_home is None or live_away is None:
                finish_blocked = CLAMP_NO_SCORE
            if finish_blocked:
                logger.warning(
                    "finish_rejected",
                    game_id=game.id,
                    game=game.label(),
                    fixture=fixture.label(),
                    tier=candidate.tier.value,
                    reason=finish_blocked,
                )
                target = game.status

        fields: dict[str, Any] = {
            "status": target,
            "external_status": normalize_code(fixture.status_code),
            "live_home_score": live_home,
            "live_away_score": live_away,
            "last_sync_at": now,
        }
        # An unverified competition never earns a binding.
        if competition_ok:
            fields["external_id"] = fixture.external_id
        if is_half_time(fixture.status_code):
            fields["elapsed"] = None
        elif fixture.elapsed is not None:
            fields["elapsed"] = fixture.elapsed

        if target != GameStatus.FINISHED:
            return ApplyLiveUpdate(game.id, GameUpdate(**fields), finish_blocked=finish_blocked)

        decided_by = decided_by_for(fixture.status_code)
        fields.update(
            home_score=live_home,
            away_score=live_away,
            decided_by=decided_by,
            finished_at=now,
        )
        return ApplyFinish(game.id, GameUpdate(**fields), live_home, live_away, decided_by)

    def auto_finish(self, game: InternalGame, now: Optional[datetime] = None) -> ApplyFinish:
        """Close a LIVE game the feed stopped reporting, with its last known score."""
        now = now or utcnow()
        home, away = game.final_or_live_score()
        update = GameUpdate(
            status=GameStatus.FINISHED,
            external_status=AUTO_FINISH_EXTERNAL_STATUS,
            home_score=home,
            away_score=away,
            decided_by=DecidedBy.FT,
            finished_at=now,
            last_sync_at=now,
        )
        return ApplyFinish(game.id, update, home, away, DecidedBy.FT)

    def clear_binding(self, stale: StaleBinding, now: Optional[datetime] = None) -> GameUpdate:
        """Drop a stale external id; a game it wrongly finished goes back to UPCOMING."""
        now = now or utcnow()
        if stale.was_wrongly_finished:
            return GameUpdate(
                external_id=None,
                external_status=None,
                status=GameStatus.UPCOMING,
                home_score=None,
                away_score=None,
                live_home_score=None,
                live_away_score=None,
                elapsed=None,
                decided_by=None,
                finished_at=None,
                last_sync_at=now,
            )
        return GameUpdate(external_id=None, external_status=None, last_sync_at=now)
