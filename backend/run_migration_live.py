#!/usr/bin/env python3
"""
Apply the live-state schema: fixtures live columns and the sync_runs ledger.
Idempotent; safe on a database where the importer already created fixtures.
No psql required. From repo root: python3 backend/run_migration_live.py
Requires TP_DATABASE_URL (or DATABASE_URL) in the environment (or .env in backend/).
"""
import asyncio
import os
import sys

_backend_dir = os.path.dirname(os.path.abspath(__file__))
if _backend_dir not in sys.path:
    sys.path.insert(0, _backend_dir)
os.chdir(_backend_dir)

from sqlalchemy import text

from shared.config import get_settings
from shared.utils.database import DatabaseManager

STATEMENTS = (
    """
    CREATE TABLE IF NOT EXISTS fixtures (
        id                  UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        external_id         VARCHAR(64),
        provider            VARCHAR(32),
        league_external_id  VARCHAR(64),
        slug                VARCHAR(200),
        kickoff_at          TIMESTAMPTZ NOT NULL,
        created_at          TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        updated_at          TIMESTAMPTZ NOT NULL DEFAULT NOW()
    )
    """,
    "ALTER TABLE fixtures ADD COLUMN IF NOT EXISTS phase VARCHAR(16) NOT NULL DEFAULT 'scheduled'",
    "ALTER TABLE fixtures ADD COLUMN IF NOT EXISTS phase_started_at TIMESTAMPTZ",
    "ALTER TABLE fixtures ADD COLUMN IF NOT EXISTS base_minute SMALLINT",
    "ALTER TABLE fixtures ADD COLUMN IF NOT EXISTS home_score INTEGER NOT NULL DEFAULT 0",
    "ALTER TABLE fixtures ADD COLUMN IF NOT EXISTS away_score INTEGER NOT NULL DEFAULT 0",
    "ALTER TABLE fixtures ADD COLUMN IF NOT EXISTS last_live_update_at TIMESTAMPTZ",
    """
    DO $$
    BEGIN
        IF NOT EXISTS (SELECT 1 FROM pg_constraint WHERE conname = 'chk_phase_started_at') THEN
            ALTER TABLE fixtures ADD CONSTRAINT chk_phase_started_at
                CHECK ((phase = 'scheduled') = (phase_started_at IS NULL));
        END IF;
        IF NOT EXISTS (SELECT 1 FROM pg_constraint WHERE conname = 'chk_scores_non_negative') THEN
            ALTER TABLE fixtures ADD CONSTRAINT chk_scores_non_negative
                CHECK (home_score >= 0 AND away_score >= 0);
        END IF;
    END $$
    """,
    "CREATE INDEX IF NOT EXISTS ix_fixtures_phase_kickoff ON fixtures(phase, kickoff_at)",
    "CREATE INDEX IF NOT EXISTS ix_fixtures_external_id ON fixtures(external_id)",
    """
    CREATE TABLE IF NOT EXISTS sync_runs (
        id                  UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        job_type            VARCHAR(32) NOT NULL,
        provider            VARCHAR(32) NOT NULL,
        success             BOOLEAN     NOT NULL,
        upserted_fixtures   INTEGER DEFAULT 0,
        upserted_leagues    INTEGER DEFAULT 0,
        upserted_teams      INTEGER DEFAULT 0,
        error               TEXT,
        params              JSONB,
        created_at          TIMESTAMPTZ NOT NULL DEFAULT NOW()
    )
    """,
    "CREATE INDEX IF NOT EXISTS ix_sync_runs_job_created ON sync_runs(job_type, created_at)",
)


async def main() -> None:
    settings = get_settings()
    if settings.is_sqlite:
        print("TP_DATABASE_URL points at SQLite; use DatabaseManager.create_all() instead.")
        sys.exit(1)
    db = DatabaseManager(settings)
    await db.connect()
    try:
        async with db.write_session() as session:
            for statement in STATEMENTS:
                await session.execute(text(statement))
        print("Live migration applied: fixtures live-state columns and sync_runs ready.")
    except Exception as e:
        print(f"Error: {e}")
        sys.exit(1)
    finally:
        await db.disconnect()


if __name__ == "__main__":
    asyncio.run(main())
