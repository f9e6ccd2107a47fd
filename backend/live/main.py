"""
Live worker entrypoint.
Runs the reconciler on a fixed interval for deployments without an external
cron. `python -m live.main --once` runs a single pass and exits.
"""
from __future__ import annotations

import asyncio
import signal
import sys
from pathlib import Path

# Ensure backend root is on path when run as python -m live.main
_backend = Path(__file__).resolve().parent.parent
if str(_backend) not in sys.path:
    sys.path.insert(0, str(_backend))

from shared.config import Settings, get_settings
from shared.models.enums import JobType
from shared.utils.database import DatabaseManager
from shared.utils.logging import get_logger, setup_logging
from shared.utils.metrics import start_metrics_server

from ingest.providers.api_football import ApiFootballProvider
from live.errors import LiveSyncError
from live.ledger import RunLedger
from live.reconciler import LiveReconciler
from live.store import SqlFixtureStore

logger = get_logger(__name__)


class LiveWorker:
    """Calls the reconciler every interval; each tick is independent."""

    def __init__(self, reconciler: LiveReconciler, settings: Settings) -> None:
        self._reconciler = reconciler
        self._interval_s = settings.live_sync_interval_s
        self._shutdown = asyncio.Event()

    async def tick(self) -> None:
        try:
            result = await self._reconciler.run()
            logger.info("live_worker_tick", **result.to_response())
        except LiveSyncError as exc:
            logger.warning("live_worker_tick_failed", error=str(exc))
        except Exception as exc:
            logger.error("live_worker_tick_error", error=str(exc), exc_info=True)

    async def run(self) -> None:
        while not self._shutdown.is_set():
            await self.tick()
            try:
                await asyncio.wait_for(self._shutdown.wait(), timeout=self._interval_s)
            except asyncio.TimeoutError:
                pass

    def request_shutdown(self) -> None:
        self._shutdown.set()


async def main() -> None:
    settings = get_settings()
    setup_logging("live-worker", job_type=JobType.SYNC_LIVE)
    run_once = "--once" in sys.argv[1:]
    if not run_once:
        start_metrics_server()

    db = DatabaseManager(settings)
    await db.connect()
    provider = ApiFootballProvider(settings)
    await provider.start()

    reconciler = LiveReconciler(
        store=SqlFixtureStore(db),
        provider=provider,
        ledger=RunLedger(db),
        settings=settings,
    )
    worker = LiveWorker(reconciler, settings)

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, worker.request_shutdown)
        except NotImplementedError:
            pass

    logger.info("live_worker_started", interval_s=settings.live_sync_interval_s, once=run_once)
    try:
        if run_once:
            await worker.tick()
        else:
            await worker.run()
    finally:
        await provider.close()
        await db.disconnect()
        logger.info("live_worker_stopped")


if __name__ == "__main__":
    asyncio.run(main())
