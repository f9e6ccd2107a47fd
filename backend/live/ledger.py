"""
Run ledger: append-only sync_runs rows, one per reconciler invocation.
"""
from __future__ import annotations

from sqlalchemy import select

from shared.models.domain import LedgerEntry
from shared.models.enums import JobType, ProviderName
from shared.models.orm import SyncRunORM
from shared.utils.database import DatabaseManager
from shared.utils.logging import get_logger
from shared.utils.metrics import LEDGER_WRITE_FAILURES

logger = get_logger(__name__)


class RunLedger:
    def __init__(self, db: DatabaseManager) -> None:
        self._db = db

    async def record(self, entry: LedgerEntry) -> bool:
        """
        Insert one ledger row in its own transaction.

        Never raises: a failed insert is logged and reported as False so the
        caller's primary work is never aborted by bookkeeping.
        """
        try:
            async with self._db.write_session() as session:
                session.add(
                    SyncRunORM(
                        job_type=entry.job_type.value,
                        provider=entry.provider.value,
                        success=entry.success,
                        upserted_fixtures=entry.upserted_fixtures,
                        upserted_leagues=entry.upserted_leagues,
                        upserted_teams=entry.upserted_teams,
                        error=entry.error,
                        params=entry.params,
                        created_at=entry.created_at,
                    )
                )
            return True
        except Exception as exc:
            LEDGER_WRITE_FAILURES.inc()
            logger.error(
                "ledger_write_failed",
                job_type=entry.job_type.value,
                success=entry.success,
                error=str(exc),
            )
            return False

    async def recent(self, job_type: JobType = JobType.SYNC_LIVE, limit: int = 20) -> list[LedgerEntry]:
        """Latest entries for one job type, newest first."""
        async with self._db.read_session() as session:
            stmt = (
                select(SyncRunORM)
                .where(SyncRunORM.job_type == job_type.value)
                .order_by(SyncRunORM.created_at.desc())
                .limit(limit)
            )
            rows = (await session.execute(stmt)).scalars().all()
        return [
            LedgerEntry(
                job_type=JobType(row.job_type),
                provider=ProviderName(row.provider),
                success=row.success,
                upserted_fixtures=row.upserted_fixtures or 0,
                upserted_leagues=row.upserted_leagues or 0,
                upserted_teams=row.upserted_teams or 0,
                error=row.error,
                params=row.params or {},
                created_at=row.created_at,
            )
            for row in rows
        ]
