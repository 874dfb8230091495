"""
Optional second opinion for fixtures the rule-based matcher could not place.

Suggestions are advisory: the runner reports them and never writes from them. Answers
are memoized in a BoundedLRUCache keyed on the fixture teams, kickoff day and the set
of candidate games, so an unchanged situation is not asked about twice.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence

from livesync.interfaces import Disambiguator
from livesync.models import DomainModel, ExternalFixture, InternalGame
from shared.utils.logging import get_logger
from shared.utils.lru_cache import BoundedLRUCache

logger = get_logger(__name__)


@dataclass(frozen=True, eq=False)
class DisambiguationRequest:
    fixture: ExternalFixture
    candidate_games: tuple[InternalGame, ...]
    reason: str

    @property
    def key(self) -> str:
        f = self.fixture
        day = f.kickoff.date().isoformat() if f.kickoff else "no-date"
        ids = ",".join(sorted(g.id for g in self.candidate_games))
        return f"{f.home_team}|{f.away_team}|{day}|{ids}"


class DisambiguationSuggestion(DomainModel):
    external_id: str
    game_id: Optional[str] = None
    confidence: float = 0.0
    reasoning: Optional[str] = None
    cached: bool = False


class CachedDisambiguator:
    """Wraps a Disambiguator; only cache misses reach the inner implementation."""

    def __init__(
        self,
        inner: Disambiguator,
        cache: BoundedLRUCache[str, DisambiguationSuggestion],
    ) -> None:
        self._inner = inner
        self._cache = cache

    @property
    def cache(self) -> BoundedLRUCache[str, DisambiguationSuggestion]:
        return self._cache

    async def suggest(self, requests: Sequence[DisambiguationRequest]) -> dict[str, DisambiguationSuggestion]:
        results: dict[str, DisambiguationSuggestion] = {}
        misses: list[DisambiguationRequest] = []
        for req in requests:
            hit = self._cache.get(req.key)
            if hit is not None:
                results[req.key] = hit.model_copy(update={"cached": True})
            else:
                misses.append(req)

        if misses:
            fresh = await self._inner.suggest(misses)
            for req in misses:
                suggestion = fresh.get(req.key)
                if suggestion is None:
                    continue
                self._cache.put(req.key, suggestion)
                results[req.key] = suggestion

        logger.info(
            "disambiguation_done",
            requested=len(requests),
            cache_hits=len(requests) - len(misses),
            answered=len(results),
        )
        return results
