"""
Fixture live-minute endpoints. Read-only; never calls the provider.

GET /v1/fixtures/live          All started, unfinished fixtures with their minute.
GET /v1/fixtures/{id}/minute   One fixture's live state and minute.
"""
from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from fastapi import APIRouter, Depends, HTTPException

from shared.config import Settings, get_settings
from shared.models.domain import FixtureLiveState, utcnow

from api.dependencies import get_store
from live.clock import RUNNING_REFRESH_S, format_score, live_minute_for
from live.store import FixtureStore

router = APIRouter(prefix="/v1/fixtures", tags=["fixtures"])


def _fixture_payload(state: FixtureLiveState, settings: Settings, now: datetime) -> dict[str, Any]:
    minute = live_minute_for(state, now, settings.display_timezone)
    return {
        "fixture": state.model_dump(mode="json"),
        "minute": minute.model_dump(mode="json"),
        "score": format_score(state.home_score, state.away_score),
    }


@router.get("/live")
async def live_fixtures(
    store: FixtureStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
) -> dict[str, Any]:
    now = utcnow()
    states = await store.list_live_states()
    items = [_fixture_payload(s, settings, now) for s in states]
    any_running = any(s.phase.is_running for s in states)
    return {
        "generated_at": now.isoformat(),
        "refresh_after_s": RUNNING_REFRESH_S if any_running else None,
        "fixtures": items,
    }


@router.get("/{fixture_id}/minute")
async def fixture_minute(
    fixture_id: uuid.UUID,
    store: FixtureStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
) -> dict[str, Any]:
    state = await store.get_live_state(fixture_id)
    if state is None:
        raise HTTPException(status_code=404, detail="Fixture not found")
    return _fixture_payload(state, settings, utcnow())
