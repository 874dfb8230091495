"""
Bet scoring systems. Points are recomputed for every bet whenever a game is finalized.
"""
from __future__ import annotations

from enum import Enum

from livesync.models import Bet, SportType

RUGBY_PROXIMITY_MARGIN = 5


class ScoringSystem(str, Enum):
    FOOTBALL_STANDARD = "FOOTBALL_STANDARD"
    RUGBY_PROXIMITY = "RUGBY_PROXIMITY"


def _outcome(home: int, away: int) -> int:
    return (home > away) - (home < away)


def calculate_bet_points(bet: Bet, actual: tuple[int, int], system: ScoringSystem) -> int:
    """
    FOOTBALL_STANDARD: 3 for the exact score, 1 for the right outcome, else 0.
    RUGBY_PROXIMITY: 3 when both scores are within 5 points in total, 1 for the right outcome, else 0.
    """
    home, away = actual
    correct_outcome = _outcome(bet.home_score, bet.away_score) == _outcome(home, away)

    if system == ScoringSystem.RUGBY_PROXIMITY:
        diff = abs(bet.home_score - home) + abs(bet.away_score - away)
        if diff <= RUGBY_PROXIMITY_MARGIN:
            return 3
        return 1 if correct_outcome else 0

    if bet.home_score == home and bet.away_score == away:
        return 3
    return 1 if correct_outcome else 0


def scoring_system_for_sport(sport: SportType) -> ScoringSystem:
    if sport == SportType.RUGBY:
        return ScoringSystem.RUGBY_PROXIMITY
    return ScoringSystem.FOOTBALL_STANDARD
