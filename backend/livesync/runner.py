"""
One reconciliation pass: LIVE games in, external fixtures matched, decisions applied.

Fixtures are processed strictly in feed order; each sees the effects of the ones
before it. A failure in one fixture is logged and never aborts the pass.
"""
from __future__ import annotations

import asyncio
import dataclasses
from datetime import datetime, timedelta
from typing import Awaitable, Callable, Optional, TypeVar, Union, assert_never

from livesync.candidates import NO_TEAM_MATCH, CandidateGameFinder
from livesync.config import LiveSyncSettings, get_livesync_settings
from livesync.decision import ApplyFinish, ApplyLiveUpdate, ReconciliationDecisionEngine, Skip
from livesync.disambiguation import CachedDisambiguator, DisambiguationRequest
from livesync.errors import FeedUnavailable, PersistenceFailure
from livesync.interfaces import BetStore, Disambiguator, ExternalFixtureFeed, GameStore
from livesync.models import ExternalFixture, GameStatus, GameUpdate, InternalGame, SkipReason, StaleBinding
from livesync.report import ClearedBinding, FixtureOutcome, ReconciliationReport, UpdatedGame
from livesync.scoring import calculate_bet_points, scoring_system_for_sport
from livesync.status import is_finished
from shared.utils.logging import get_logger, pass_context
from shared.utils.lru_cache import BoundedLRUCache
from shared.utils.metrics import (
    BINDINGS_CLEARED,
    FEED_FAILURES,
    FIXTURE_OUTCOMES,
    GAME_UPDATES,
    LIVE_GAMES,
    PASS_DURATION,
    atrack_latency,
)
from shared.utils.timeutil import ensure_utc, utcnow

logger = get_logger(__name__)

T = TypeVar("T")

NO_LIVE_GAMES_MESSAGE = "No LIVE games to sync"
IN_PROGRESS_MESSAGE = "Sync already in progress"


class _PassState:
    """Mutable bookkeeping for a single pass."""

    def __init__(self, report: ReconciliationReport, games: list[InternalGame], now: datetime) -> None:
        self.report = report
        self.now = now
        self.pool: dict[str, InternalGame] = {g.id: g for g in games}
        self.claimed: set[str] = set()
        self.touched: set[str] = set()
        self.disambiguation: dict[str, DisambiguationRequest] = {}

    def replace(self, game: InternalGame) -> None:
        if game.id in self.pool:
            self.pool[game.id] = game


class ReconciliationRunner:
    def __init__(
        self,
        feed: ExternalFixtureFeed,
        game_store: GameStore,
        bet_store: BetStore,
        settings: Optional[LiveSyncSettings] = None,
        finder: Optional[CandidateGameFinder] = None,
        engine: Optional[ReconciliationDecisionEngine] = None,
        disambiguator: Optional[Disambiguator] = None,
        disambiguation_cache: Optional[BoundedLRUCache] = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._settings = settings or get_livesync_settings()
        self._feed = feed
        self._games = game_store
        self._bets = bet_store
        self._finder = finder or CandidateGameFinder(settings=self._settings)
        self._engine = engine or ReconciliationDecisionEngine(self._settings)
        self._clock = clock
        self._disambiguator: Optional[CachedDisambiguator] = None
        if disambiguator is not None:
            cache = disambiguation_cache or BoundedLRUCache(
                capacity=self._settings.disambiguation_cache_size,
                ttl_s=self._settings.disambiguation_cache_ttl_s,
            )
            self._disambiguator = CachedDisambiguator(disambiguator, cache)
        self._lock = asyncio.Lock()

    async def run_reconciliation_pass(self) -> ReconciliationReport:
        if self._lock.locked():
            logger.warning("livesync_pass_already_running")
            return ReconciliationReport(synced_at=self._clock(), message=IN_PROGRESS_MESSAGE, in_progress=True)
        async with self._lock:
            with pass_context(self._settings.sport.value):
                async with atrack_latency(PASS_DURATION):
                    return await self._run_pass()

    async def _run_pass(self) -> ReconciliationReport:
        now = self._clock()
        s = self._settings
        report = ReconciliationReport(synced_at=now)

        live_games = await self._games.find_live_games(s.sport)
        LIVE_GAMES.set(len(live_games))
        report.total_live_games = len(live_games)
        if not live_games:
            logger.info("livesync_no_live_games", sport=s.sport.value)
            report.message = NO_LIVE_GAMES_MESSAGE
            return report

        stale_cutoff = now - timedelta(hours=s.stale_live_hours)
        report.stale_live_games = sum(1 for g in live_games if ensure_utc(g.scheduled_at) < stale_cutoff)

        fixtures = await self._collect_fixtures(live_games, report, now)
        report.external_fixtures = len(fixtures)
        logger.info(
            "livesync_pass_started",
            live_games=len(live_games),
            stale_live_games=report.stale_live_games,
            fixtures=len(fixtures),
        )

        state = _PassState(report, live_games, now)
        for fixture in fixtures:
            report.processed_count += 1
            try:
                await self._process_fixture(fixture, state)
            except PersistenceFailure as e:
                report.error_count += 1
                FIXTURE_OUTCOMES.labels(outcome="error").inc()
                logger.error("livesync_persistence_failed", fixture=fixture.label(), game_id=e.game_id, error=str(e.cause))
            except Exception as e:
                report.error_count += 1
                FIXTURE_OUTCOMES.labels(outcome="error").inc()
                logger.exception("livesync_fixture_failed", fixture=fixture.label(), error=str(e))

        await self._auto_finish_stale(state)
        await self._disambiguate(state)

        report.message = (
            f"Updated {report.updated_count} games "
            f"({report.matched_count} matched, {report.rejected_count} rejected, {report.unmatched_count} unmatched)"
        )
        logger.info(
            "livesync_pass_finished",
            updated=report.updated_count,
            matched=report.matched_count,
            rejected=report.rejected_count,
            unmatched=report.unmatched_count,
            auto_finished=len(report.auto_finished),
            errors=report.error_count,
        )
        return report

    # ── Feed ────────────────────────────────────────────────────────────

    async def _guarded(self, call: str, awaitable: Awaitable[T], report: ReconciliationReport) -> Optional[T]:
        try:
            return await awaitable
        except Exception as e:
            failure = e if isinstance(e, FeedUnavailable) else FeedUnavailable(call, e)
            FEED_FAILURES.labels(call=call).inc()
            report.feed_failures.append(call)
            logger.warning("livesync_feed_unavailable", call=call, error=str(failure))
            return None

    async def _collect_fixtures(
        self, live_games: list[InternalGame], report: ReconciliationReport, now: datetime
    ) -> list[ExternalFixture]:
        """Live + today's finished + by-id fixtures, one per external id, in feed order."""
        by_id: dict[str, ExternalFixture] = {}

        live = await self._guarded("live", self._feed.get_live_fixtures(), report) or []
        for f in live:
            by_id.setdefault(f.external_id, f)

        today = now.date()
        day = await self._guarded(
            "date_range", self._feed.get_fixtures_by_date_range(today, today), report
        ) or []
        for f in day:
            if is_finished(f.status_code):
                by_id.setdefault(f.external_id, f)

        for game in live_games:
            if not game.external_id:
                continue
            f = await self._guarded("by_id", self._feed.get_fixture_by_id(game.external_id), report)
            if f is not None:
                # Id lookups are the most reliable view of a fixture.
                by_id[f.external_id] = f
        return list(by_id.values())

    # ── Per fixture ─────────────────────────────────────────────────────

    def _cap(self, items: list) -> bool:
        return len(items) < self._settings.report_detail_limit

    async def _process_fixture(self, fixture: ExternalFixture, state: _PassState) -> None:
        report = state.report
        pool = list(state.pool.values())

        bound: Optional[InternalGame] = None
        if fixture.external_id and not any(g.external_id == fixture.external_id for g in pool):
            bound = await self._games.find_by_external_id(fixture.external_id)

        search = self._finder.search(fixture, pool, bound)
        for stale in search.stale_bindings:
            await self._clear_binding(stale, state)

        candidate = search.best
        if candidate is None:
            report.unmatched_count += 1
            FIXTURE_OUTCOMES.labels(outcome="unmatched").inc()
            reason = search.unmatched_reason or "no_candidate"
            if self._cap(report.unmatched):
                report.unmatched.append(FixtureOutcome.of(fixture, reason))
            logger.info("livesync_fixture_unmatched", fixture=fixture.label(), reason=reason)
            if reason != NO_TEAM_MATCH:
                # Fixtures with no team in our pool are simply not ours.
                self._queue_disambiguation(fixture, pool, reason, state)
            return

        # Re-read the candidate in case a stale-binding reset just changed it.
        game = state.pool.get(candidate.game.id, candidate.game)
        if game is not candidate.game:
            candidate = dataclasses.replace(candidate, game=game)
        state.touched.add(game.id)
        if game.id in state.claimed:
            report.skipped_count += 1
            FIXTURE_OUTCOMES.labels(outcome=SkipReason.ALREADY_CLAIMED.value).inc()
            logger.info("livesync_game_already_updated", fixture=fixture.label(), game_id=game.id)
            return

        decision = self._engine.decide(fixture, candidate, state.now)
        if isinstance(decision, Skip):
            self._record_skip(fixture, decision, pool, state)
            return

        report.matched_count += 1
        FIXTURE_OUTCOMES.labels(outcome="matched").inc()
        logger.info(
            "livesync_fixture_matched",
            fixture=fixture.label(),
            game_id=game.id,
            game=game.label(),
            tier=candidate.tier.value,
            method=candidate.method.value,
            home_score=round(candidate.home_team_score, 3),
            away_score=round(candidate.away_team_score, 3),
        )
        await self._apply(decision, game, state)
        state.claimed.add(game.id)

        if isinstance(decision, ApplyLiveUpdate) and decision.finish_blocked:
            if self._cap(report.finish_blocked):
                report.finish_blocked.append(
                    FixtureOutcome.of(fixture, decision.finish_blocked, game_id=game.id)
                )

    def _record_skip(self, fixture: ExternalFixture, skip: Skip, pool: list[InternalGame], state: _PassState) -> None:
        report = state.report
        FIXTURE_OUTCOMES.labels(outcome=skip.reason.value).inc()
        if skip.is_rejection:
            report.rejected_count += 1
            if self._cap(report.rejected):
                report.rejected.append(
                    FixtureOutcome.of(fixture, skip.reason.value, game_id=skip.game_id, detail=skip.detail)
                )
            logger.warning(
                "livesync_update_rejected",
                fixture=fixture.label(),
                game_id=skip.game_id,
                reason=skip.reason.value,
                detail=skip.detail,
            )
            self._queue_disambiguation(fixture, pool, skip.reason.value, state)
            return
        report.skipped_count += 1
        logger.debug("livesync_fixture_skipped", fixture=fixture.label(), game_id=skip.game_id, reason=skip.reason.value)

    # ── Writes ──────────────────────────────────────────────────────────

    async def _write(self, game_id: str, update: GameUpdate) -> InternalGame:
        try:
            return await self._games.update(game_id, update)
        except Exception as e:
            raise PersistenceFailure(game_id, e) from e

    async def _apply(
        self,
        decision: Union[ApplyLiveUpdate, ApplyFinish],
        game: InternalGame,
        state: _PassState,
        kind: Optional[str] = None,
    ) -> InternalGame:
        if isinstance(decision, ApplyFinish):
            kind = kind or "finish"
            # Points first: a game only leaves the LIVE pool once its bets are scored.
            await self._recalculate_points(game, decision.final_home, decision.final_away)
        elif isinstance(decision, ApplyLiveUpdate):
            kind = kind or "live"
        else:
            assert_never(decision)

        updated = await self._write(game.id, decision.update)
        state.replace(updated)

        GAME_UPDATES.labels(kind=kind).inc()
        state.report.updated_games.append(
            UpdatedGame(
                id=game.id,
                home_team=game.home_team.name,
                away_team=game.away_team.name,
                kind=kind,
                old_status=game.status,
                new_status=updated.status,
                old_home_score=game.live_home_score,
                old_away_score=game.live_away_score,
                new_home_score=updated.live_home_score,
                new_away_score=updated.live_away_score,
                elapsed=updated.elapsed,
                external_status=updated.external_status,
                decided_by=updated.decided_by,
            )
        )
        logger.info(
            "livesync_game_updated",
            game_id=game.id,
            kind=kind,
            status=updated.status.value,
            live_score=f"{updated.live_home_score}-{updated.live_away_score}",
        )
        return updated

    async def _recalculate_points(self, game: InternalGame, home: int, away: int) -> None:
        system = scoring_system_for_sport(game.competition.sport)
        try:
            bets = await self._bets.find_bets_for_game(game.id)
            for bet in bets:
                points = calculate_bet_points(bet, (home, away), system)
                await self._bets.update_points(bet.id, points)
        except Exception as e:
            raise PersistenceFailure(game.id, e) from e
        logger.info("livesync_points_recalculated", game_id=game.id, bets=len(bets), system=system.value)

    async def _clear_binding(self, stale: StaleBinding, state: _PassState) -> None:
        update = self._engine.clear_binding(stale, state.now)
        updated = await self._write(stale.game.id, update)
        state.replace(updated)
        BINDINGS_CLEARED.inc()
        state.report.cleared_bindings.append(
            ClearedBinding(
                game_id=stale.game.id,
                external_id=stale.external_id,
                reason=stale.reason,
                reset_to_upcoming=stale.was_wrongly_finished,
            )
        )
        logger.warning(
            "livesync_binding_cleared",
            game_id=stale.game.id,
            external_id=stale.external_id,
            reason=stale.reason,
            reset_to_upcoming=stale.was_wrongly_finished,
        )

    # ── Sweep ───────────────────────────────────────────────────────────

    async def _auto_finish_stale(self, state: _PassState) -> None:
        cutoff = state.now - timedelta(hours=self._settings.auto_finish_hours)
        for game in list(state.pool.values()):
            if game.status != GameStatus.LIVE or game.id in state.touched:
                continue
            if ensure_utc(game.scheduled_at) >= cutoff:
                continue
            decision = self._engine.auto_finish(game, state.now)
            try:
                await self._apply(decision, game, state, kind="auto_finish")
            except PersistenceFailure as e:
                state.report.error_count += 1
                logger.error("livesync_auto_finish_failed", game_id=game.id, error=str(e.cause))
                continue
            state.report.auto_finished.append(game.id)
            logger.warning(
                "livesync_game_auto_finished",
                game_id=game.id,
                game=game.label(),
                score=f"{decision.final_home}-{decision.final_away}",
            )

    # ── Disambiguation ──────────────────────────────────────────────────

    def _queue_disambiguation(
        self, fixture: ExternalFixture, pool: list[InternalGame], reason: str, state: _PassState
    ) -> None:
        if self._disambiguator is None:
            return
        request = DisambiguationRequest(fixture=fixture, candidate_games=tuple(pool), reason=reason)
        state.disambiguation.setdefault(request.key, request)

    async def _disambiguate(self, state: _PassState) -> None:
        if self._disambiguator is None or not state.disambiguation:
            return
        try:
            suggestions = await self._disambiguator.suggest(list(state.disambiguation.values()))
        except Exception as e:
            logger.warning("livesync_disambiguation_failed", error=str(e), requests=len(state.disambiguation))
            return
        state.report.disambiguation = list(suggestions.values())
