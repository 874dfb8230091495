from livesync.matching.competition import competition_score, competitions_loosely_match
from livesync.matching.normalizer import NameNormalizer, normalize_team_name
from livesync.matching.similarity import similarity
from livesync.matching.team_matcher import TeamMatch, TeamMatcher, teams_from_games

__all__ = [
    "NameNormalizer",
    "TeamMatch",
    "TeamMatcher",
    "competition_score",
    "competitions_loosely_match",
    "normalize_team_name",
    "similarity",
    "teams_from_games",
]
