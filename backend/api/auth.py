"""
Shared-secret authorization for the sync endpoints.

Accepted credentials, any one of:
- x-cron-token header equal to TP_SYNC_ADMIN_TOKEN
- x-sync-token header equal to TP_SYNC_ADMIN_TOKEN
- Authorization: Bearer <TP_SERVICE_ROLE_KEY> (database cron path)
"""
from __future__ import annotations

import hmac
from typing import Optional

from fastapi import Depends, Request

from shared.config import Settings, get_settings
from shared.utils.logging import get_logger

logger = get_logger(__name__)

TOKEN_HEADERS = ("x-cron-token", "x-sync-token")


class SyncUnauthorized(Exception):
    """Missing or wrong sync credential; answered with 401."""


class SyncAuthNotConfigured(Exception):
    """No secret is configured to check credentials against; answered with 500."""


def token_matches(candidate: Optional[str], expected: Optional[str]) -> bool:
    """Constant-time comparison; empty values never match."""
    if not candidate or not expected:
        return False
    return hmac.compare_digest(candidate.encode("utf-8"), expected.encode("utf-8"))


def _bearer(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    scheme, _, token = value.partition(" ")
    if scheme.lower() != "bearer":
        return None
    return token.strip() or None


def is_sync_authorized(request: Request, settings: Settings) -> bool:
    for header in TOKEN_HEADERS:
        if token_matches(request.headers.get(header), settings.sync_admin_token):
            return True
    return token_matches(_bearer(request.headers.get("authorization")), settings.service_role_key)


async def require_sync_token(
    request: Request,
    settings: Settings = Depends(get_settings),
) -> None:
    """FastAPI dependency guarding the sync endpoints."""
    if not settings.sync_admin_token and not settings.service_role_key:
        logger.error("sync_auth_not_configured", path=request.url.path)
        raise SyncAuthNotConfigured()
    if not is_sync_authorized(request, settings):
        logger.warning(
            "sync_unauthorized",
            path=request.url.path,
            client=request.client.host if request.client else "unknown",
        )
        raise SyncUnauthorized()
