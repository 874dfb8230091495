"""
PostgreSQL-backed GameStore and BetStore.
ORM columns are named after the domain fields so rows validate straight into pydantic models.
"""
from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from sqlalchemy import DateTime, ForeignKey, Integer, String, func, select
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship, selectinload

from livesync.models import Bet, GameStatus, GameUpdate, InternalGame, SportType
from shared.utils.database import DatabaseManager
from shared.utils.logging import get_logger

logger = get_logger(__name__)


class Base(DeclarativeBase):
    pass


class CompetitionORM(Base):
    __tablename__ = "competitions"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    sport: Mapped[str] = mapped_column(String(20), nullable=False, default=SportType.FOOTBALL.value)


class TeamORM(Base):
    __tablename__ = "teams"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    short_name: Mapped[Optional[str]] = mapped_column(String(50))


class GameORM(Base):
    __tablename__ = "games"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    competition_id: Mapped[str] = mapped_column(String(64), ForeignKey("competitions.id"), nullable=False)
    home_team_id: Mapped[str] = mapped_column(String(64), ForeignKey("teams.id"), nullable=False)
    away_team_id: Mapped[str] = mapped_column(String(64), ForeignKey("teams.id"), nullable=False)
    scheduled_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=GameStatus.UPCOMING.value, index=True)
    external_id: Mapped[Optional[str]] = mapped_column(String(64), index=True)
    external_status: Mapped[Optional[str]] = mapped_column(String(20))
    live_home_score: Mapped[Optional[int]] = mapped_column(Integer)
    live_away_score: Mapped[Optional[int]] = mapped_column(Integer)
    home_score: Mapped[Optional[int]] = mapped_column(Integer)
    away_score: Mapped[Optional[int]] = mapped_column(Integer)
    elapsed: Mapped[Optional[int]] = mapped_column(Integer)
    decided_by: Mapped[Optional[str]] = mapped_column(String(10))
    finished_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    last_sync_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    competition: Mapped["CompetitionORM"] = relationship()
    home_team: Mapped["TeamORM"] = relationship(foreign_keys=[home_team_id])
    away_team: Mapped["TeamORM"] = relationship(foreign_keys=[away_team_id])


class BetORM(Base):
    __tablename__ = "bets"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    game_id: Mapped[str] = mapped_column(String(64), ForeignKey("games.id"), nullable=False, index=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    home_score: Mapped[int] = mapped_column(Integer, nullable=False)
    away_score: Mapped[int] = mapped_column(Integer, nullable=False)
    points: Mapped[Optional[int]] = mapped_column(Integer)


_GAME_LOAD = (
    selectinload(GameORM.competition),
    selectinload(GameORM.home_team),
    selectinload(GameORM.away_team),
)


def _column_value(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


class SqlGameStore:
    def __init__(self, db: DatabaseManager) -> None:
        self._db = db

    async def find_live_games(self, sport: SportType) -> list[InternalGame]:
        stmt = (
            select(GameORM)
            .join(GameORM.competition)
            .where(GameORM.status == GameStatus.LIVE.value, CompetitionORM.sport == sport.value)
            .options(*_GAME_LOAD)
            .order_by(GameORM.scheduled_at, GameORM.id)
        )
        async with self._db.read_session() as session:
            rows = (await session.execute(stmt)).scalars().all()
            return [InternalGame.model_validate(r) for r in rows]

    async def find_by_id(self, game_id: str) -> Optional[InternalGame]:
        async with self._db.read_session() as session:
            row = await session.get(GameORM, game_id, options=_GAME_LOAD)
            return InternalGame.model_validate(row) if row else None

    async def find_by_external_id(self, external_id: str) -> Optional[InternalGame]:
        stmt = select(GameORM).where(GameORM.external_id == external_id).options(*_GAME_LOAD).limit(1)
        async with self._db.read_session() as session:
            row = (await session.execute(stmt)).scalars().first()
            return InternalGame.model_validate(row) if row else None

    async def update(self, game_id: str, update: GameUpdate) -> InternalGame:
        changes = update.changes()
        async with self._db.write_session() as session:
            row = await session.get(GameORM, game_id, options=_GAME_LOAD)
            if row is None:
                raise LookupError(f"game {game_id} not found")
            for field, value in changes.items():
                setattr(row, field, _column_value(value))
            await session.flush()
            game = InternalGame.model_validate(row)
        logger.debug("game_row_updated", game_id=game_id, fields=sorted(changes))
        return game


class SqlBetStore:
    def __init__(self, db: DatabaseManager) -> None:
        self._db = db

    async def find_bets_for_game(self, game_id: str) -> list[Bet]:
        stmt = select(BetORM).where(BetORM.game_id == game_id).order_by(BetORM.id)
        async with self._db.read_session() as session:
            rows = (await session.execute(stmt)).scalars().all()
            return [Bet.model_validate(r) for r in rows]

    async def update_points(self, bet_id: str, points: int) -> None:
        async with self._db.write_session() as session:
            row = await session.get(BetORM, bet_id)
            if row is None:
                raise LookupError(f"bet {bet_id} not found")
            row.points = points
