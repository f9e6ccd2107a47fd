"""
Dependency injection for the API service.
Provides the database, fixture store, run ledger, live-feed provider and
reconciler to route handlers.
"""
from __future__ import annotations

from fastapi import Depends

from shared.config import Settings, get_settings
from shared.utils.database import DatabaseManager

from ingest.providers.base import LiveScoreProvider
from live.ledger import RunLedger
from live.reconciler import LiveReconciler
from live.store import FixtureStore, SqlFixtureStore

# Module-level singletons, initialized at startup
_db: DatabaseManager | None = None
_store: FixtureStore | None = None
_ledger: RunLedger | None = None
_provider: LiveScoreProvider | None = None


def init_dependencies(db: DatabaseManager, provider: LiveScoreProvider) -> None:
    """Initialize module-level singletons. Called once at startup."""
    global _db, _store, _ledger, _provider
    _db = db
    _store = SqlFixtureStore(db)
    _ledger = RunLedger(db)
    _provider = provider


def get_db() -> DatabaseManager:
    """FastAPI dependency: returns the shared DatabaseManager."""
    if _db is None:
        raise RuntimeError("DatabaseManager not initialized; call init_dependencies first")
    return _db


def get_store() -> FixtureStore:
    if _store is None:
        raise RuntimeError("FixtureStore not initialized; call init_dependencies first")
    return _store


def get_ledger() -> RunLedger:
    if _ledger is None:
        raise RuntimeError("RunLedger not initialized; call init_dependencies first")
    return _ledger


def get_provider() -> LiveScoreProvider:
    if _provider is None:
        raise RuntimeError("Live provider not initialized; call init_dependencies first")
    return _provider


def get_reconciler(
    store: FixtureStore = Depends(get_store),
    provider: LiveScoreProvider = Depends(get_provider),
    ledger: RunLedger = Depends(get_ledger),
    settings: Settings = Depends(get_settings),
) -> LiveReconciler:
    """FastAPI dependency: a reconciler bound to the shared store, feed and ledger."""
    return LiveReconciler(store=store, provider=provider, ledger=ledger, settings=settings)
