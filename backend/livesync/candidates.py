"""
Candidate search: which in-flight internal game does an external fixture describe?

Strategies, first success wins:
    1. strict live-pool match (both teams >= strict score, same LIVE game) -> HIGH
    2. stored external id, re-verified on teams, competition and date -> HIGH/MEDIUM,
       or a stale binding to clear
    3. scored match over the whole pool, ranked by competition then date -> MEDIUM/LOW
"""
from __future__ import annotations

from typing import Optional, Sequence

from livesync.config import LiveSyncSettings, get_livesync_settings
from livesync.matching.competition import competition_score, competitions_loosely_match
from livesync.matching.team_matcher import TeamMatch, TeamMatcher, teams_from_games
from livesync.models import (
    CandidateSearch,
    ConfidenceTier,
    ExternalFixture,
    GameStatus,
    InternalGame,
    MatchCandidate,
    MatchMethod,
    StaleBinding,
)
from shared.utils.logging import get_logger
from shared.utils.timeutil import hours_between

logger = get_logger(__name__)

# Unmatched reasons
NO_TEAM_MATCH = "no_team_match"
TEAM_CONFIDENCE_LOW = "team_confidence_below_threshold"
NO_GAME_WITH_BOTH_TEAMS = "no_game_with_both_teams"
OUTSIDE_WINDOWS = "outside_date_or_competition_window"


class CandidateGameFinder:
    def __init__(
        self,
        matcher: Optional[TeamMatcher] = None,
        settings: Optional[LiveSyncSettings] = None,
    ) -> None:
        self._settings = settings or get_livesync_settings()
        self._matcher = matcher or TeamMatcher(
            floor=self._settings.team_match_floor,
            cache_size=self._settings.team_name_cache_size,
        )

    @property
    def matcher(self) -> TeamMatcher:
        return self._matcher

    def find_candidates(
        self,
        fixture: ExternalFixture,
        pool: Sequence[InternalGame],
        bound: Optional[InternalGame] = None,
    ) -> list[MatchCandidate]:
        """Ranked candidates for a fixture; empty when unmatched."""
        return self.search(fixture, pool, bound).candidates

    def search(
        self,
        fixture: ExternalFixture,
        pool: Sequence[InternalGame],
        bound: Optional[InternalGame] = None,
    ) -> CandidateSearch:
        """
        Run the strategies for one fixture. `bound` is the game already storing the
        fixture's external id when it lives outside the pool (e.g. finished).
        """
        live_pool = [g for g in pool if g.status == GameStatus.LIVE]
        candidate = self._match_live_pool(fixture, live_pool)
        if candidate is not None:
            return CandidateSearch(candidates=[candidate])

        result = CandidateSearch()
        if fixture.external_id:
            candidate = self._match_external_id(fixture, pool, result, bound)
            if candidate is not None:
                result.candidates = [candidate]
                return result

        candidates, reason = self._match_scored_pool(fixture, pool)
        result.candidates = candidates
        if not candidates:
            result.unmatched_reason = reason
        return result

    # ── Helpers ─────────────────────────────────────────────────────────

    def _match_pair(
        self, fixture: ExternalFixture, pool: Sequence[InternalGame]
    ) -> tuple[Optional[TeamMatch], Optional[TeamMatch]]:
        teams = teams_from_games(pool)
        return (
            self._matcher.find_best_match(fixture.home_team, teams),
            self._matcher.find_best_match(fixture.away_team, teams),
        )

    @staticmethod
    def _game_with_both(
        pool: Sequence[InternalGame], home: TeamMatch, away: TeamMatch
    ) -> list[InternalGame]:
        if home.team.id == away.team.id:
            return []
        return [g for g in pool if g.has_team(home.team.id) and g.has_team(away.team.id)]

    # ── Strategy 1 ──────────────────────────────────────────────────────

    def _match_live_pool(
        self, fixture: ExternalFixture, live_pool: Sequence[InternalGame]
    ) -> Optional[MatchCandidate]:
        if not live_pool:
            return None
        home, away = self._match_pair(fixture, live_pool)
        strict = self._settings.strict_team_score
        if home is None or away is None or home.score < strict or away.score < strict:
            if home or away:
                logger.debug(
                    "live_pool_match_discarded",
                    fixture=fixture.label(),
                    home_score=round(home.score, 3) if home else None,
                    away_score=round(away.score, 3) if away else None,
                )
            return None
        games = self._game_with_both(live_pool, home, away)
        if not games:
            return None
        game = games[0]
        return MatchCandidate(
            game=game,
            tier=ConfidenceTier.HIGH,
            method=MatchMethod.LIVE_POOL,
            home_team_score=home.score,
            away_team_score=away.score,
            competition_score=competition_score(fixture.competition, game.competition.name),
            hours_apart=hours_between(fixture.kickoff, game.scheduled_at),
            reversed_sides=home.team.id == game.away_team.id,
        )

    # ── Strategy 2 ──────────────────────────────────────────────────────

    def _match_external_id(
        self,
        fixture: ExternalFixture,
        pool: Sequence[InternalGame],
        result: CandidateSearch,
        bound: Optional[InternalGame] = None,
    ) -> Optional[MatchCandidate]:
        if bound is None:
            bound = next((g for g in pool if g.external_id and g.external_id == fixture.external_id), None)
        if bound is None:
            return None

        def stale(reason: str) -> None:
            logger.warning(
                "external_id_binding_stale",
                game_id=bound.id,
                game=bound.label(),
                fixture=fixture.label(),
                external_id=fixture.external_id,
                reason=reason,
            )
            result.stale_bindings.append(StaleBinding(game=bound, external_id=fixture.external_id, reason=reason))

        verify_pool = list(pool)
        if all(g.id != bound.id for g in verify_pool):
            verify_pool.append(bound)
        home, away = self._match_pair(fixture, verify_pool)
        if (
            home is None
            or away is None
            or home.team.id == away.team.id
            or not bound.has_team(home.team.id)
            or not bound.has_team(away.team.id)
        ):
            stale("team_names_do_not_match")
            return None

        if not fixture.competition:
            # Nothing to verify against; leave the binding alone.
            return None
        if not competitions_loosely_match(fixture.competition, bound.competition.name):
            stale("competition_mismatch")
            return None

        hours = hours_between(fixture.kickoff, bound.scheduled_at)
        if hours is not None and hours > self._settings.external_id_max_days * 24:
            stale("date_too_far")
            return None

        if hours is not None and hours * 60 <= self._settings.external_id_high_window_minutes:
            tier = ConfidenceTier.HIGH
        else:
            tier = ConfidenceTier.MEDIUM
        return MatchCandidate(
            game=bound,
            tier=tier,
            method=MatchMethod.EXTERNAL_ID,
            home_team_score=home.score,
            away_team_score=away.score,
            competition_score=competition_score(fixture.competition, bound.competition.name),
            hours_apart=hours,
            reversed_sides=home.team.id == bound.away_team.id,
        )

    # ── Strategy 3 ──────────────────────────────────────────────────────

    def _match_scored_pool(
        self, fixture: ExternalFixture, pool: Sequence[InternalGame]
    ) -> tuple[list[MatchCandidate], str]:
        s = self._settings
        home, away = self._match_pair(fixture, pool)
        if home is None or away is None:
            return [], NO_TEAM_MATCH
        if home.score < s.strict_team_score or away.score < s.strict_team_score:
            return [], TEAM_CONFIDENCE_LOW

        games = self._game_with_both(pool, home, away)
        if not games:
            return [], NO_GAME_WITH_BOTH_TEAMS

        def build(game: InternalGame, tier: ConfidenceTier, comp: float, hours: Optional[float]) -> MatchCandidate:
            return MatchCandidate(
                game=game,
                tier=tier,
                method=MatchMethod.SCORED_POOL,
                home_team_score=home.score,
                away_team_score=away.score,
                competition_score=comp,
                hours_apart=hours,
                reversed_sides=home.team.id == game.away_team.id,
            )

        if fixture.kickoff is None:
            if len(games) == 1 and competitions_loosely_match(fixture.competition, games[0].competition.name):
                game = games[0]
                comp = competition_score(fixture.competition, game.competition.name)
                return [build(game, ConfidenceTier.MEDIUM, comp, None)], ""
            return [], OUTSIDE_WINDOWS

        scored: list[tuple[InternalGame, float, float]] = []
        for game in games:
            hours = hours_between(fixture.kickoff, game.scheduled_at)
            scored.append((game, competition_score(fixture.competition, game.competition.name), hours or 0.0))
        # Competition first, then closeness; sort is stable so input order breaks ties.
        scored.sort(key=lambda item: (-item[1], item[2]))

        medium_h = s.medium_window_minutes / 60
        low_h = s.low_window_minutes / 60
        medium = [
            build(g, ConfidenceTier.MEDIUM, comp, hours)
            for g, comp, hours in scored
            if hours <= medium_h and comp >= s.medium_competition_score
        ]
        if medium:
            return medium, ""

        low = [
            build(g, ConfidenceTier.LOW, comp, hours)
            for g, comp, hours in scored
            if (hours <= medium_h and comp >= s.low_competition_score_near)
            or (hours <= low_h and comp >= s.low_competition_score_far)
        ]
        if low:
            return low, ""
        return [], OUTSIDE_WINDOWS
