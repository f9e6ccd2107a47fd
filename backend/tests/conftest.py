"""Shared fixtures: test settings, recording ledger, SQLite database."""
from __future__ import annotations

import pytest
import pytest_asyncio

from shared.config import Settings
from shared.utils.database import DatabaseManager

from fakes import FakeLedger


@pytest.fixture
def settings() -> Settings:
    return Settings(
        database_url="sqlite+aiosqlite:///:memory:",
        api_football_key="test-key",
        sync_admin_token="s3cret-token",
        allowed_league_ids=["39", "135"],
        provider_retry_delay_s=0.0,
        metrics_enabled=False,
    )


@pytest.fixture
def ledger() -> FakeLedger:
    return FakeLedger()


@pytest_asyncio.fixture
async def db(settings: Settings):
    manager = DatabaseManager(settings)
    await manager.connect()
    await manager.create_all()
    yield manager
    await manager.disconnect()
