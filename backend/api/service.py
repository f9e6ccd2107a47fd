"""
Entrypoint for the sync and live-minute API (`tippulse-api`).

The database cron and the admin page both call this process, so it refuses
to start in production without a sync secret. PORT from the platform wins
over TP_API_PORT.
"""
from __future__ import annotations

import os

import uvicorn

from shared.config import Environment, Settings, get_settings


def resolve_port(settings: Settings) -> int:
    return int(os.environ.get("PORT") or settings.api_port)


def check_sync_secrets(settings: Settings) -> None:
    """Without a sync token or service key every POST /v1/sync/live would answer 500."""
    if settings.environment == Environment.PRODUCTION and not (
        settings.sync_admin_token or settings.service_role_key
    ):
        raise SystemExit("TP_SYNC_ADMIN_TOKEN or TP_SERVICE_ROLE_KEY must be set in production")


def main() -> None:
    settings = get_settings()
    check_sync_secrets(settings)

    uvicorn.run(
        "api.app:app",
        host=settings.api_host,
        port=resolve_port(settings),
        workers=settings.api_workers,
        log_level=settings.log_level.lower(),
        access_log=False,  # request logging middleware
        timeout_keep_alive=30,
    )


if __name__ == "__main__":
    main()
