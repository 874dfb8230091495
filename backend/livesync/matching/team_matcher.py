"""
Best-candidate team lookup for an external team name.

Exact normalized equality always wins; otherwise the highest Levenshtein ratio over a
candidate's name and short name. Ties keep the first candidate in input order. The
floor only rejects garbage; confidence gating happens in candidate ranking and the
decision engine.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

from livesync.matching.normalizer import NameNormalizer
from livesync.matching.similarity import similarity
from livesync.models import InternalGame, TeamCandidate
from shared.utils.logging import get_logger
from shared.utils.lru_cache import BoundedLRUCache

logger = get_logger(__name__)

METHOD_EXACT = "exact_normalized"
METHOD_FUZZY = "fuzzy"


@dataclass(frozen=True)
class TeamMatch:
    team: TeamCandidate
    score: float
    method: str


class TeamMatcher:
    def __init__(
        self,
        normalizer: Optional[NameNormalizer] = None,
        floor: float = 0.3,
        cache_size: int = 5000,
    ) -> None:
        self._normalizer = normalizer or NameNormalizer()
        self._floor = floor
        self._cache: BoundedLRUCache[str, str] = BoundedLRUCache(capacity=cache_size)

    @property
    def floor(self) -> float:
        return self._floor

    @property
    def cached_names(self) -> int:
        return len(self._cache)

    def _norm(self, name: Optional[str]) -> str:
        if not name:
            return ""
        cached = self._cache.get(name)
        if cached is None:
            cached = self._normalizer.normalize(name)
            self._cache.put(name, cached)
        return cached

    def _forms(self, team: TeamCandidate) -> list[str]:
        forms = [self._norm(team.name)]
        short = self._norm(team.short_name)
        if short:
            forms.append(short)
        return forms

    def find_best_match(
        self,
        external_name: str,
        candidates: Sequence[TeamCandidate],
    ) -> Optional[TeamMatch]:
        target = self._norm(external_name)
        if not target or not candidates:
            return None

        for team in candidates:
            if target in self._forms(team):
                return TeamMatch(team=team, score=1.0, method=METHOD_EXACT)

        best: Optional[TeamCandidate] = None
        best_score = 0.0
        for team in candidates:
            score = max(similarity(target, form) for form in self._forms(team))
            if score > best_score:
                best, best_score = team, score

        if best is None or best_score <= self._floor:
            logger.debug("team_match_none", external=external_name, best_score=round(best_score, 3))
            return None
        return TeamMatch(team=best, score=best_score, method=METHOD_FUZZY)


def teams_from_games(games: Iterable[InternalGame]) -> list[TeamCandidate]:
    """Unique teams of a game pool, first-seen order."""
    seen: dict[str, TeamCandidate] = {}
    for game in games:
        for team in (game.home_team, game.away_team):
            seen.setdefault(team.id, team)
    return list(seen.values())
