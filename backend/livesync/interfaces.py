"""
Collaborators the reconciliation runner depends on. All async; implementations live in
livesync.feeds, livesync.stores and livesync.disambiguation.
"""
from __future__ import annotations

from datetime import date
from typing import TYPE_CHECKING, Optional, Protocol, Sequence

from livesync.models import Bet, ExternalFixture, GameUpdate, InternalGame, SportType

if TYPE_CHECKING:
    from livesync.disambiguation import DisambiguationRequest, DisambiguationSuggestion


class ExternalFixtureFeed(Protocol):
    async def get_live_fixtures(self) -> list[ExternalFixture]: ...

    async def get_fixtures_by_date_range(self, date_from: date, date_to: date) -> list[ExternalFixture]: ...

    async def get_fixture_by_id(self, external_id: str) -> Optional[ExternalFixture]: ...


class GameStore(Protocol):
    async def find_live_games(self, sport: SportType) -> list[InternalGame]: ...

    async def find_by_id(self, game_id: str) -> Optional[InternalGame]: ...

    async def find_by_external_id(self, external_id: str) -> Optional[InternalGame]: ...

    async def update(self, game_id: str, update: GameUpdate) -> InternalGame: ...


class BetStore(Protocol):
    async def find_bets_for_game(self, game_id: str) -> list[Bet]: ...

    async def update_points(self, bet_id: str, points: int) -> None: ...


class Disambiguator(Protocol):
    """Suggests a game for a fixture the matcher could not place. Advisory only."""

    async def suggest(
        self, requests: Sequence["DisambiguationRequest"]
    ) -> dict[str, "DisambiguationSuggestion"]:
        """Keyed by DisambiguationRequest.key; fixtures with no answer are left out."""
        ...
