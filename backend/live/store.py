"""
Fixture store: reads and writes the live-state fields of fixtures.
The reconciler is the only writer of these fields after a fixture is created.
"""
from __future__ import annotations

import abc
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import func, select, update

from shared.models.domain import FixtureLiveState
from shared.models.enums import TRACKED_PHASES, MatchPhase
from shared.models.orm import FixtureORM
from shared.utils.database import DatabaseManager
from shared.utils.logging import get_logger

logger = get_logger(__name__)

_TRACKED_VALUES = [p.value for p in TRACKED_PHASES]


def _aware(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite hands back naive datetimes; everything at rest is UTC."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def _to_state(row: FixtureORM) -> FixtureLiveState:
    return FixtureLiveState(
        fixture_id=row.id,
        external_id=row.external_id,
        kickoff_at=_aware(row.kickoff_at),
        phase=MatchPhase.parse(row.phase),
        phase_started_at=_aware(row.phase_started_at),
        base_minute=row.base_minute,
        home_score=row.home_score or 0,
        away_score=row.away_score or 0,
        last_live_update_at=_aware(row.last_live_update_at),
    )


class FixtureStore(abc.ABC):
    """Persistence contract shared by the reconciler and the read API."""

    @abc.abstractmethod
    async def list_tracked_live(self) -> list[FixtureLiveState]:
        """Fixtures in a started, unfinished phase that carry a provider id."""
        ...

    @abc.abstractmethod
    async def list_starting_soon(
        self, now: datetime, lookback: timedelta, lookahead: timedelta
    ) -> list[FixtureLiveState]:
        """Scheduled fixtures with a provider id and kickoff in [now - lookback, now + lookahead]."""
        ...

    @abc.abstractmethod
    async def list_late_scheduled(self, kickoff_before: datetime) -> list[FixtureLiveState]:
        """Scheduled fixtures with a provider id whose kickoff is earlier than kickoff_before."""
        ...

    @abc.abstractmethod
    async def apply_live_state(self, fixture_id: uuid.UUID, state: FixtureLiveState) -> bool:
        """
        Overwrite every live-state field of one fixture.

        Finished fixtures are never rewritten. Returns whether a row changed.
        """
        ...

    @abc.abstractmethod
    async def get_live_state(self, fixture_id: uuid.UUID) -> Optional[FixtureLiveState]:
        ...

    @abc.abstractmethod
    async def list_live_states(self) -> list[FixtureLiveState]:
        """Every fixture in a tracked phase, with or without a provider id."""
        ...


class SqlFixtureStore(FixtureStore):
    """SQLAlchemy implementation over the fixtures table."""

    def __init__(self, db: DatabaseManager) -> None:
        self._db = db

    async def list_tracked_live(self) -> list[FixtureLiveState]:
        async with self._db.read_session() as session:
            stmt = (
                select(FixtureORM)
                .where(
                    FixtureORM.phase.in_(_TRACKED_VALUES),
                    FixtureORM.external_id.is_not(None),
                )
                .order_by(FixtureORM.kickoff_at)
            )
            rows = (await session.execute(stmt)).scalars().all()
        return [_to_state(r) for r in rows]

    async def list_starting_soon(
        self, now: datetime, lookback: timedelta, lookahead: timedelta
    ) -> list[FixtureLiveState]:
        async with self._db.read_session() as session:
            stmt = (
                select(FixtureORM)
                .where(
                    FixtureORM.phase == MatchPhase.SCHEDULED.value,
                    FixtureORM.external_id.is_not(None),
                    FixtureORM.kickoff_at >= now - lookback,
                    FixtureORM.kickoff_at <= now + lookahead,
                )
                .order_by(FixtureORM.kickoff_at)
            )
            rows = (await session.execute(stmt)).scalars().all()
        return [_to_state(r) for r in rows]

    async def list_late_scheduled(self, kickoff_before: datetime) -> list[FixtureLiveState]:
        async with self._db.read_session() as session:
            stmt = (
                select(FixtureORM)
                .where(
                    FixtureORM.phase == MatchPhase.SCHEDULED.value,
                    FixtureORM.external_id.is_not(None),
                    FixtureORM.kickoff_at < kickoff_before,
                )
                .order_by(FixtureORM.kickoff_at)
            )
            rows = (await session.execute(stmt)).scalars().all()
        return [_to_state(r) for r in rows]

    async def apply_live_state(self, fixture_id: uuid.UUID, state: FixtureLiveState) -> bool:
        async with self._db.write_session() as session:
            stmt = (
                update(FixtureORM)
                .where(
                    FixtureORM.id == fixture_id,
                    FixtureORM.phase != MatchPhase.FINISHED.value,
                )
                .values(
                    phase=state.phase.value,
                    phase_started_at=state.phase_started_at,
                    base_minute=state.base_minute,
                    home_score=state.home_score,
                    away_score=state.away_score,
                    last_live_update_at=state.last_live_update_at,
                    updated_at=func.now(),
                )
                .execution_options(synchronize_session=False)
            )
            result = await session.execute(stmt)
        changed = (result.rowcount or 0) > 0
        if not changed:
            logger.info("fixture_live_state_not_applied", fixture_id=str(fixture_id), phase=state.phase.value)
        return changed

    async def get_live_state(self, fixture_id: uuid.UUID) -> Optional[FixtureLiveState]:
        async with self._db.read_session() as session:
            row = await session.get(FixtureORM, fixture_id)
        return _to_state(row) if row is not None else None

    async def list_live_states(self) -> list[FixtureLiveState]:
        async with self._db.read_session() as session:
            stmt = (
                select(FixtureORM)
                .where(FixtureORM.phase.in_(_TRACKED_VALUES))
                .order_by(FixtureORM.kickoff_at)
            )
            rows = (await session.execute(stmt)).scalars().all()
        return [_to_state(r) for r in rows]
