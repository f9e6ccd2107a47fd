"""
Structured logging for the live-tracking services (API and live worker).

Every line carries the service, the feed provider and, inside a sync run,
the job type and run id. Token and key fields are masked before rendering.
"""
from __future__ import annotations

import logging
import sys
import uuid
from contextlib import contextmanager
from typing import Any, Iterator, MutableMapping

import structlog
from shared.config import Environment, get_settings
from shared.models.enums import JobType, ProviderName

# Log keys whose values are credentials (sync token, service key, provider key).
SECRET_KEYS = frozenset({"token", "api_key", "authorization", "x-cron-token", "x-sync-token", "x-apisports-key"})
MASK = "***"

# Loggers that emit one line per HTTP request or SQL statement.
QUIET_LOGGERS = ("uvicorn.access", "httpx", "httpcore", "asyncio", "aiosqlite", "sqlalchemy.engine")


def mask_secrets(
    logger: Any, method_name: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    for key in list(event_dict):
        if key.lower() in SECRET_KEYS and event_dict[key]:
            event_dict[key] = MASK
    return event_dict


def setup_logging(
    service_name: str,
    *,
    provider: ProviderName = ProviderName.API_FOOTBALL,
    job_type: JobType | None = None,
) -> None:
    """
    Configure structlog for one process.

    Args:
        service_name: "api" or "live-worker".
        provider: Live feed this process reconciles against.
        job_type: Bound for processes that only ever run one ledger job.
    """
    settings = get_settings()
    log_level = getattr(logging, settings.log_level.upper(), logging.INFO)

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        mask_secrets,
        structlog.processors.StackInfoRenderer(),
    ]

    if settings.environment == Environment.DEV:
        renderer: structlog.types.Processor = structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())
    else:
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[*shared_processors, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
            foreign_pre_chain=shared_processors,
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(log_level)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    structlog.contextvars.clear_contextvars()
    context: dict[str, Any] = {"service": service_name, "provider": provider.value}
    if settings.instance_id:
        context["instance_id"] = settings.instance_id
    if job_type is not None:
        context["job_type"] = job_type.value
    structlog.contextvars.bind_contextvars(**context)


@contextmanager
def sync_run_context(job_type: JobType) -> Iterator[str]:
    """Bind job_type and a fresh run_id to every log line emitted inside one sync run."""
    run_id = uuid.uuid4().hex[:12]
    with structlog.contextvars.bound_contextvars(job_type=job_type.value, run_id=run_id):
        yield run_id


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
