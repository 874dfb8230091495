"""
Unit tests for bet scoring systems and status mapping.
"""
from __future__ import annotations

import pytest

from livesync.models import Bet, DecidedBy, GameStatus, SportType
from livesync.scoring import ScoringSystem, calculate_bet_points, scoring_system_for_sport
from livesync.status import decided_by_for, is_finished, is_not_started, map_status


def _bet(home: int, away: int) -> Bet:
    return Bet(id="b", game_id="g", user_id="u", home_score=home, away_score=away)


class TestFootballStandard:

    @pytest.mark.parametrize(
        "bet,actual,points",
        [
            ((2, 1), (2, 1), 3),
            ((1, 0), (2, 1), 1),
            ((1, 1), (0, 0), 1),
            ((0, 2), (2, 1), 0),
            ((1, 1), (2, 1), 0),
        ],
    )
    def test_points(self, bet, actual, points) -> None:
        assert calculate_bet_points(_bet(*bet), actual, ScoringSystem.FOOTBALL_STANDARD) == points


class TestRugbyProximity:

    @pytest.mark.parametrize(
        "bet,actual,points",
        [
            ((24, 20), (24, 20), 3),
            ((22, 17), (24, 20), 3),
            ((30, 10), (24, 20), 1),
            ((10, 30), (24, 20), 0),
            ((20, 24), (24, 20), 0),
        ],
    )
    def test_points(self, bet, actual, points) -> None:
        assert calculate_bet_points(_bet(*bet), actual, ScoringSystem.RUGBY_PROXIMITY) == points

    def test_system_for_sport(self) -> None:
        assert scoring_system_for_sport(SportType.RUGBY) == ScoringSystem.RUGBY_PROXIMITY
        assert scoring_system_for_sport(SportType.FOOTBALL) == ScoringSystem.FOOTBALL_STANDARD


class TestStatusMapping:

    @pytest.mark.parametrize("code", ["1H", "HT", "2H", "ET", "P", "ht"])
    def test_in_play_is_live(self, code: str) -> None:
        assert map_status(code) == GameStatus.LIVE

    @pytest.mark.parametrize("code", ["FT", "AET", "PEN"])
    def test_finished_codes(self, code: str) -> None:
        assert map_status(code) == GameStatus.FINISHED
        assert is_finished(code)

    def test_unknown_code_is_upcoming(self) -> None:
        assert map_status("???") == GameStatus.UPCOMING
        assert map_status(None) == GameStatus.UPCOMING

    def test_not_started(self) -> None:
        assert is_not_started("NS")
        assert is_not_started("pst")
        assert not is_not_started("1H")

    def test_decided_by(self) -> None:
        assert decided_by_for("PEN") == DecidedBy.AET
        assert decided_by_for("AET") == DecidedBy.AET
        assert decided_by_for("FT") == DecidedBy.FT
