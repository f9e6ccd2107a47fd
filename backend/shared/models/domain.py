"""
Pydantic v2 domain models shared by the API and the live worker.
These are the wire and internal representations, not ORM models.
"""
from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from shared.models.enums import JobType, MatchPhase, ProviderName


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ── Base ────────────────────────────────────────────────────────────────
class DomainModel(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)


# ── Fixture live state ──────────────────────────────────────────────────
class FixtureLiveState(DomainModel):
    """
    The live-state fields of one fixture, as persisted.

    This is the durable contract between the reconciler (writer) and the
    phase clock (reader). Writes always carry the full set of fields.
    """
    fixture_id: uuid.UUID
    external_id: Optional[str] = None
    kickoff_at: datetime
    phase: MatchPhase = MatchPhase.SCHEDULED
    phase_started_at: Optional[datetime] = None
    base_minute: Optional[int] = None
    home_score: int = 0
    away_score: int = 0
    last_live_update_at: Optional[datetime] = None


# ── Provider feed ───────────────────────────────────────────────────────
class ProviderFixture(DomainModel):
    """One in-progress match as reported by the live feed."""
    external_id: str
    league_external_id: str
    status_code: str
    home_goals: Optional[int] = None
    away_goals: Optional[int] = None
    kickoff_at: Optional[datetime] = None


class LiveSnapshot(DomainModel):
    """A single point-in-time view of the provider's live feed."""
    provider: ProviderName
    fixtures: list[ProviderFixture] = Field(default_factory=list)
    fetched_at: datetime = Field(default_factory=utcnow)

    def restricted_to(self, league_ids: set[str] | list[str]) -> dict[str, ProviderFixture]:
        """Lookup by external match id, keeping only allow-listed leagues."""
        allowed = {str(league_id) for league_id in league_ids}
        return {
            f.external_id: f
            for f in self.fixtures
            if f.league_external_id in allowed
        }


# ── Phase clock output ──────────────────────────────────────────────────
class LiveMinute(DomainModel):
    display_minute: str
    is_live: bool = False
    is_half_time: bool = False
    is_finished: bool = False
    is_penalties: bool = False
    phase: MatchPhase = MatchPhase.SCHEDULED
    refresh_after_s: Optional[float] = None


# ── Run ledger ──────────────────────────────────────────────────────────
class LedgerEntry(DomainModel):
    """One append-only row of the sync_runs ledger."""
    job_type: JobType
    provider: ProviderName = ProviderName.API_FOOTBALL
    success: bool
    upserted_fixtures: int = 0
    upserted_leagues: int = 0
    upserted_teams: int = 0
    error: Optional[str] = None
    params: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=utcnow)

    @classmethod
    def for_live_sync(
        cls,
        *,
        success: bool,
        matches_updated: int = 0,
        provider_call_skipped: Optional[bool] = None,
        api_fixtures_returned: Optional[int] = None,
        error: Optional[str] = None,
        **extra: Any,
    ) -> "LedgerEntry":
        params: dict[str, Any] = {
            "providerCallSkipped": provider_call_skipped,
            "apiFixturesReturned": api_fixtures_returned,
        }
        params.update({k: v for k, v in extra.items() if v is not None})
        return cls(
            job_type=JobType.SYNC_LIVE,
            success=success,
            upserted_fixtures=matches_updated,
            error=error,
            params=params,
        )


# ── Reconciler result ───────────────────────────────────────────────────
class SyncLiveResult(DomainModel):
    """Outcome of one reconciler invocation; serialised with camelCase keys."""
    success: bool = True
    matches_updated: int = Field(default=0, serialization_alias="matchesUpdated")
    provider_call_skipped: bool = Field(default=False, serialization_alias="providerCallSkipped")
    api_fixtures_returned: Optional[int] = Field(default=None, serialization_alias="apiFixturesReturned")
    message: Optional[str] = None
    update_errors: int = Field(default=0, exclude=True)

    def to_response(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)
