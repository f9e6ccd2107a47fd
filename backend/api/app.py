"""
FastAPI application factory for the TipPulse live API.

Creates the app with:
- Sync routes (cron/admin reconciler trigger, token validation, run ledger)
- Fixture live-minute read routes
- Middleware stack
- Health check endpoints
- Lifespan management (startup/shutdown)
"""
from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Dict, Union

from fastapi import FastAPI
from sqlalchemy import text

from shared.config import get_settings
from shared.utils.database import DatabaseManager
from shared.utils.logging import get_logger, setup_logging
from shared.utils.metrics import start_metrics_server

from api.dependencies import get_db, init_dependencies
from api.middleware import setup_middleware
from api.routes.fixtures import router as fixtures_router
from api.routes.sync import router as sync_router
from ingest.providers.api_football import ApiFootballProvider

logger = get_logger(__name__)

_CONNECT_RETRY_ATTEMPTS = 10
_CONNECT_RETRY_BASE_DELAY_S = 2.0


async def _connect_with_retry(connect_fn, name: str) -> None:
    """Call async connect_fn(); retry with exponential backoff on failure."""
    last_exc: Exception | None = None
    for attempt in range(1, _CONNECT_RETRY_ATTEMPTS + 1):
        try:
            await connect_fn()
            return
        except Exception as exc:
            last_exc = exc
            if attempt == _CONNECT_RETRY_ATTEMPTS:
                raise
            delay = _CONNECT_RETRY_BASE_DELAY_S * (2 ** (attempt - 1))
            logger.warning(
                "connect_retry",
                name=name,
                attempt=attempt,
                max_attempts=_CONNECT_RETRY_ATTEMPTS,
                delay_s=delay,
                error=str(exc),
            )
            await asyncio.sleep(delay)
    if last_exc:
        raise last_exc


@asynccontextmanager
async def _noop_lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """No-op lifespan for testing without a database."""
    yield


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager.
    Connects the database and the live-feed client on startup and closes
    both on shutdown.
    """
    settings = get_settings()
    setup_logging("api")
    start_metrics_server(settings.metrics_port)

    db = DatabaseManager(settings)
    await _connect_with_retry(db.connect, "Database")
    if settings.is_sqlite:
        await db.create_all()

    provider = ApiFootballProvider(settings)
    await provider.start()

    init_dependencies(db, provider)

    if not settings.api_football_key:
        logger.warning("api_football_key_missing")
    if not settings.sync_admin_token:
        logger.warning("sync_admin_token_missing")

    logger.info(
        "api_service_started",
        host=settings.api_host,
        port=settings.api_port,
        allowed_leagues=len(settings.allowed_league_ids),
    )

    yield

    await provider.close()
    await db.disconnect()
    logger.info("api_service_stopped")


def create_app(*, use_lifespan: bool = True) -> FastAPI:
    """Create and configure the FastAPI application. Set use_lifespan=False for testing without a database."""
    app = FastAPI(
        title="TipPulse Live API",
        description="Live match phase tracking and minute display",
        version="1.0.0",
        lifespan=lifespan if use_lifespan else _noop_lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # Middleware
    setup_middleware(app)

    # REST routes
    app.include_router(sync_router)
    app.include_router(fixtures_router)

    # Health check
    @app.get("/health", tags=["system"])
    async def health() -> dict[str, str]:
        return {"status": "ok", "service": "api"}

    @app.get("/ready", tags=["system"])
    async def readiness() -> Dict[str, Union[str, bool]]:
        """Readiness probe; checks the database."""
        db_ok = False
        try:
            db = get_db()
            async with db.read_session() as session:
                await session.execute(text("SELECT 1"))
                db_ok = True
        except Exception as exc:
            logger.warning("readiness_db_check_failed", error=str(exc))

        return {
            "status": "ok" if db_ok else "degraded",
            "database": db_ok,
        }

    return app


# For running with uvicorn directly
app = create_app()
