"""
Unit tests for the reconciliation decision gates.
"""
from __future__ import annotations

from datetime import timedelta

import pytest

from livesync.decision import (
    CLAMP_COMPETITION,
    ApplyFinish,
    ApplyLiveUpdate,
    ReconciliationDecisionEngine,
    Skip,
)
from livesync.models import (
    CompetitionRef,
    ConfidenceTier,
    DecidedBy,
    GameStatus,
    SkipReason,
    SportType,
    StaleBinding,
)

from conftest import NOW


@pytest.fixture
def engine(settings) -> ReconciliationDecisionEngine:
    return ReconciliationDecisionEngine(settings)


class TestGates:

    def test_finished_game_is_immutable(self, engine, make_game, make_fixture, make_candidate) -> None:
        game = make_game(status=GameStatus.FINISHED, home_score=1, away_score=1)
        fixture = make_fixture(status_code="FT", home_score=3, away_score=0)
        d = engine.decide(fixture, make_candidate(game, fixture), NOW)
        assert isinstance(d, Skip)
        assert d.reason == SkipReason.GAME_FINISHED

    @pytest.mark.parametrize("code", ["NS", "TBD", "PST", "CANC", "POST"])
    def test_not_started_skipped(self, engine, make_game, make_fixture, make_candidate, code: str) -> None:
        game = make_game()
        fixture = make_fixture(status_code=code)
        d = engine.decide(fixture, make_candidate(game, fixture), NOW)
        assert isinstance(d, Skip)
        assert d.reason == SkipReason.NOT_STARTED
        assert not d.is_rejection

    def test_sport_mismatch_skipped(self, engine, make_game, make_fixture, make_candidate) -> None:
        rugby = CompetitionRef(id="c-t14", name="Premier League", sport=SportType.RUGBY)
        game = make_game(competition=rugby)
        fixture = make_fixture()
        d = engine.decide(fixture, make_candidate(game, fixture), NOW)
        assert isinstance(d, Skip)
        assert d.reason == SkipReason.SPORT_MISMATCH

    def test_live_never_regresses(self, engine, make_game, make_fixture, make_candidate) -> None:
        game = make_game()
        fixture = make_fixture(status_code="XYZ")
        d = engine.decide(fixture, make_candidate(game, fixture), NOW)
        assert isinstance(d, ApplyLiveUpdate)
        assert d.update.status == GameStatus.LIVE


class TestLiveUpdates:

    def test_refreshes_scores_and_binding(self, engine, make_game, make_fixture, make_candidate) -> None:
        game = make_game(live_home_score=0, live_away_score=0)
        fixture = make_fixture(home_score=2, away_score=1, elapsed=71)
        d = engine.decide(fixture, make_candidate(game, fixture), NOW)
        assert isinstance(d, ApplyLiveUpdate)
        changes = d.update.changes()
        assert changes["live_home_score"] == 2
        assert changes["live_away_score"] == 1
        assert changes["elapsed"] == 71
        assert changes["external_id"] == "F1"
        assert changes["external_status"] == "2H"
        assert changes["last_sync_at"] == NOW

    def test_null_fixture_score_keeps_previous(self, engine, make_game, make_fixture, make_candidate) -> None:
        game = make_game(live_home_score=1, live_away_score=1)
        fixture = make_fixture(home_score=None, away_score=None)
        d = engine.decide(fixture, make_candidate(game, fixture), NOW)
        assert d.update.live_home_score == 1
        assert d.update.live_away_score == 1

    def test_half_time_clears_elapsed(self, engine, make_game, make_fixture, make_candidate) -> None:
        game = make_game(elapsed=45)
        fixture = make_fixture(status_code="HT", elapsed=45)
        d = engine.decide(fixture, make_candidate(game, fixture), NOW)
        assert isinstance(d, ApplyLiveUpdate)
        assert d.update.status == GameStatus.LIVE
        changes = d.update.changes()
        assert "elapsed" in changes
        assert changes["elapsed"] is None

    def test_upcoming_game_goes_live(self, engine, make_game, make_fixture, make_candidate) -> None:
        game = make_game(status=GameStatus.UPCOMING)
        fixture = make_fixture(status_code="1H")
        d = engine.decide(fixture, make_candidate(game, fixture, tier=ConfidenceTier.MEDIUM), NOW)
        assert isinstance(d, ApplyLiveUpdate)
        assert d.update.status == GameStatus.LIVE

    def test_same_inputs_same_decision(self, engine, make_game, make_fixture, make_candidate) -> None:
        game = make_game()
        fixture = make_fixture()
        c = make_candidate(game, fixture)
        assert engine.decide(fixture, c, NOW) == engine.decide(fixture, c, NOW)


class TestFinish:

    def test_high_confidence_finish(self, engine, make_game, make_fixture, make_candidate) -> None:
        game = make_game()
        fixture = make_fixture(status_code="FT", home_score=2, away_score=1, kickoff=game.scheduled_at + timedelta(minutes=5))
        d = engine.decide(fixture, make_candidate(game, fixture), NOW)
        assert isinstance(d, ApplyFinish)
        assert (d.final_home, d.final_away) == (2, 1)
        assert d.decided_by == DecidedBy.FT
        assert d.update.status == GameStatus.FINISHED
        assert d.update.home_score == 2
        assert d.update.finished_at == NOW

    @pytest.mark.parametrize("code", ["AET", "PEN"])
    def test_extra_time_decided_by(self, engine, make_game, make_fixture, make_candidate, code: str) -> None:
        game = make_game()
        fixture = make_fixture(status_code=code, home_score=1, away_score=1)
        d = engine.decide(fixture, make_candidate(game, fixture), NOW)
        assert isinstance(d, ApplyFinish)
        assert d.decided_by == DecidedBy.AET

    def test_medium_competition_mismatch_and_days_apart_not_finished(
        self, engine, make_game, make_fixture, make_candidate
    ) -> None:
        game = make_game(live_home_score=1, live_away_score=1)
        fixture = make_fixture(
            status_code="FT",
            home_score=2,
            away_score=1,
            competition="Championship",
            kickoff=game.scheduled_at + timedelta(days=3),
        )
        d = engine.decide(fixture, make_candidate(game, fixture, tier=ConfidenceTier.MEDIUM), NOW)
        assert isinstance(d, ApplyLiveUpdate)
        assert d.finish_blocked == CLAMP_COMPETITION
        assert d.update.status == GameStatus.LIVE
        assert d.update.live_home_score == 2
        changes = d.update.changes()
        assert "home_score" not in changes
        assert "external_id" not in changes

    def test_kickoff_too_far_not_finished(self, engine, make_game, make_fixture, make_candidate) -> None:
        game = make_game()
        fixture = make_fixture(status_code="FT", kickoff=game.scheduled_at + timedelta(minutes=45))
        d = engine.decide(fixture, make_candidate(game, fixture), NOW)
        assert isinstance(d, ApplyLiveUpdate)
        assert d.update.status == GameStatus.LIVE

    def test_unknown_final_score_not_finished(self, engine, make_game, make_fixture, make_candidate) -> None:
        game = make_game()
        fixture = make_fixture(status_code="FT", home_score=None, away_score=None)
        d = engine.decide(fixture, make_candidate(game, fixture), NOW)
        assert isinstance(d, ApplyLiveUpdate)

    def test_reversed_fixture_finishes_in_game_orientation(
        self, engine, make_game, make_fixture, make_candidate
    ) -> None:
        game = make_game()
        fixture = make_fixture(home_team="Liverpool", away_team="Man Utd", status_code="FT", home_score=2, away_score=0)
        d = engine.decide(fixture, make_candidate(game, fixture, reversed_sides=True), NOW)
        assert isinstance(d, ApplyFinish)
        assert (d.final_home, d.final_away) == (0, 2)
        assert (d.update.home_score, d.update.away_score) == (0, 2)
        assert (d.update.live_home_score, d.update.live_away_score) == (0, 2)


class TestOrientation:

    def test_reversed_live_score_swapped(self, engine, make_game, make_fixture, make_candidate) -> None:
        game = make_game()
        fixture = make_fixture(home_team="Liverpool", away_team="Man Utd", home_score=3, away_score=1)
        d = engine.decide(fixture, make_candidate(game, fixture, reversed_sides=True), NOW)
        assert isinstance(d, ApplyLiveUpdate)
        assert (d.update.live_home_score, d.update.live_away_score) == (1, 3)

    def test_reversed_missing_side_keeps_previous(self, engine, make_game, make_fixture, make_candidate) -> None:
        game = make_game(live_home_score=0, live_away_score=1)
        fixture = make_fixture(home_team="Liverpool", away_team="Man Utd", home_score=2, away_score=None)
        d = engine.decide(fixture, make_candidate(game, fixture, reversed_sides=True), NOW)
        assert isinstance(d, ApplyLiveUpdate)
        assert (d.update.live_home_score, d.update.live_away_score) == (0, 2)


class TestLowConfidence:

    def test_low_cannot_finish(self, engine, make_game, make_fixture, make_candidate) -> None:
        game = make_game()
        fixture = make_fixture(status_code="FT")
        d = engine.decide(fixture, make_candidate(game, fixture, tier=ConfidenceTier.LOW), NOW)
        assert isinstance(d, Skip)
        assert d.reason == SkipReason.LOW_CONFIDENCE_FINISH
        assert d.is_rejection

    def test_low_date_gap_rejected(self, engine, make_game, make_fixture, make_candidate) -> None:
        game = make_game()
        fixture = make_fixture(kickoff=game.scheduled_at + timedelta(minutes=90))
        d = engine.decide(fixture, make_candidate(game, fixture, tier=ConfidenceTier.LOW), NOW)
        assert isinstance(d, Skip)
        assert d.reason == SkipReason.LOW_CONFIDENCE_DATE

    def test_low_competition_mismatch_rejected(self, engine, make_game, make_fixture, make_candidate) -> None:
        game = make_game()
        fixture = make_fixture(competition="Championship")
        d = engine.decide(fixture, make_candidate(game, fixture, tier=ConfidenceTier.LOW), NOW)
        assert isinstance(d, Skip)
        assert d.reason == SkipReason.LOW_CONFIDENCE_COMPETITION

    def test_low_live_update_allowed(self, engine, make_game, make_fixture, make_candidate) -> None:
        game = make_game()
        fixture = make_fixture(kickoff=game.scheduled_at + timedelta(minutes=20))
        d = engine.decide(fixture, make_candidate(game, fixture, tier=ConfidenceTier.LOW), NOW)
        assert isinstance(d, ApplyLiveUpdate)


class TestSweepAndBindings:

    def test_auto_finish_uses_live_score(self, engine, make_game) -> None:
        d = engine.auto_finish(make_game(live_home_score=2, live_away_score=2), NOW)
        assert (d.final_home, d.final_away) == (2, 2)
        assert d.decided_by == DecidedBy.FT
        assert d.update.external_status == "FINISHED"
        assert d.update.status == GameStatus.FINISHED

    def test_auto_finish_prefers_final_score(self, engine, make_game) -> None:
        d = engine.auto_finish(make_game(home_score=3, away_score=0, live_home_score=2, live_away_score=0), NOW)
        assert (d.final_home, d.final_away) == (3, 0)

    def test_auto_finish_without_scores_is_nil_nil(self, engine, make_game) -> None:
        d = engine.auto_finish(make_game(), NOW)
        assert (d.final_home, d.final_away) == (0, 0)

    def test_clear_binding(self, engine, make_game) -> None:
        game = make_game(external_id="F9")
        changes = engine.clear_binding(StaleBinding(game, "F9", "competition_mismatch"), NOW).changes()
        assert changes["external_id"] is None
        assert "status" not in changes

    def test_clear_binding_resets_wrongly_finished(self, engine, make_game) -> None:
        game = make_game(status=GameStatus.FINISHED, external_id="F9", home_score=4, away_score=0)
        update = engine.clear_binding(StaleBinding(game, "F9", "team_names_do_not_match"), NOW)
        assert update.status == GameStatus.UPCOMING
        assert update.changes()["home_score"] is None
