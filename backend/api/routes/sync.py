"""
Sync endpoints.

POST /v1/sync/live            Run one live reconciliation pass (cron / admin).
POST /v1/sync/validate-token  Check an admin sync token without running anything.
GET  /v1/sync/runs            Latest live-sync ledger entries.
"""
from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse

from shared.config import Settings, get_settings
from shared.models.enums import JobType
from shared.utils.logging import get_logger

from api.auth import require_sync_token, token_matches
from api.dependencies import get_ledger, get_reconciler
from api.middleware import GENERIC_ERROR_MESSAGE
from live.ledger import RunLedger
from live.reconciler import LiveReconciler

logger = get_logger(__name__)
router = APIRouter(prefix="/v1/sync", tags=["sync"])


@router.post("/live", dependencies=[Depends(require_sync_token)])
async def sync_live(
    reconciler: LiveReconciler = Depends(get_reconciler),
) -> JSONResponse:
    """
    Reconcile stored live state against the provider feed.

    Returns {success, matchesUpdated, providerCallSkipped, apiFixturesReturned?}.
    Any failure is a 500 with a generic body; the cause is only logged.
    """
    try:
        result = await reconciler.run()
    except Exception as exc:
        logger.error("sync_live_request_failed", error=str(exc), error_type=type(exc).__name__)
        return JSONResponse(status_code=500, content={"error": GENERIC_ERROR_MESSAGE})
    return JSONResponse(content=result.to_response())


@router.post("/validate-token")
async def validate_token(
    request: Request,
    settings: Settings = Depends(get_settings),
) -> JSONResponse:
    """Answer {valid: bool} for a {token} body."""
    try:
        body = await request.json()
    except ValueError:
        return JSONResponse(status_code=400, content={"valid": False})
    if not isinstance(body, dict):
        return JSONResponse(status_code=400, content={"valid": False})

    if not settings.sync_admin_token:
        logger.error("validate_token_secret_not_configured")
        return JSONResponse(status_code=500, content={"valid": False})

    token = body.get("token")
    valid = isinstance(token, str) and token_matches(token, settings.sync_admin_token)
    return JSONResponse(content={"valid": valid})


@router.get("/runs", dependencies=[Depends(require_sync_token)])
async def recent_runs(
    limit: int = Query(20, ge=1, le=200),
    ledger: RunLedger = Depends(get_ledger),
) -> dict[str, Any]:
    entries = await ledger.recent(JobType.SYNC_LIVE, limit=limit)
    return {"runs": [e.model_dump(mode="json") for e in entries]}
