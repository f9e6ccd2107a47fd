"""
Live reconciler.

One invocation: read tracked and soon-to-start fixtures, gate, fetch the
provider's live feed once, diff it against stored phase/score, write the
changed fixtures as full live-state snapshots, and append one ledger entry.
Safe to run overlapping: every write is keyed by fixture id and carries the
whole live state, so the last writer leaves a self-consistent row.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from types import MappingProxyType
from typing import Callable, Mapping, Optional

import httpx

from shared.config import Settings, get_settings
from shared.models.domain import (
    FixtureLiveState,
    LedgerEntry,
    ProviderFixture,
    SyncLiveResult,
    utcnow,
)
from shared.models.enums import JobType, MatchPhase, UpdateKind
from shared.utils.logging import get_logger, sync_run_context
from shared.utils.metrics import (
    FIXTURE_UPDATE_ERRORS,
    FIXTURE_UPDATES,
    STARTING_SOON_FIXTURES,
    SYNC_DURATION,
    SYNC_RUNS,
    TRACKED_LIVE_FIXTURES,
    track_latency,
)

from ingest.providers.api_football import map_status
from ingest.providers.base import LiveScoreProvider
from live.errors import ConfigurationError, ProviderCallError
from live.gating import decide
from live.ledger import RunLedger
from live.phases import base_minute_for
from live.store import FixtureStore

logger = get_logger(__name__)

SKIPPED_MESSAGE = "No live or upcoming matches"

# (stored phase, mapped provider phase) pairs whose outcome is not the mapped phase.
# API-Football reports both extra-time legs as ET.
PHASE_OVERRIDES: Mapping[tuple[MatchPhase, MatchPhase], MatchPhase] = MappingProxyType({
    (MatchPhase.EXTRA_TIME_HALFTIME, MatchPhase.EXTRA_TIME_1): MatchPhase.EXTRA_TIME_2,
    (MatchPhase.EXTRA_TIME_2, MatchPhase.EXTRA_TIME_1): MatchPhase.EXTRA_TIME_2,
})

# Position of each phase in the match. A match never moves to a lower rank;
# SUSP/INT read as live and must not rewind a later phase.
PHASE_RANK: Mapping[MatchPhase, int] = MappingProxyType({
    phase: rank
    for rank, phase in enumerate((
        MatchPhase.SCHEDULED,
        MatchPhase.LIVE,
        MatchPhase.HALFTIME,
        MatchPhase.SECOND_HALF,
        MatchPhase.EXTRA_TIME_1,
        MatchPhase.EXTRA_TIME_HALFTIME,
        MatchPhase.EXTRA_TIME_2,
        MatchPhase.PENALTIES,
        MatchPhase.FINISHED,
    ))
})


@dataclass(frozen=True)
class PlannedWrite:
    state: FixtureLiveState
    kind: UpdateKind


def resolve_phase(stored: MatchPhase, mapped: MatchPhase) -> MatchPhase:
    """
    Next phase of a tracked fixture given the provider's mapped status.

    Codes that map behind the stored phase (postponed, unknown, suspended or
    interrupted on a started match) keep the stored phase.
    """
    phase = PHASE_OVERRIDES.get((stored, mapped), mapped)
    if PHASE_RANK[phase] < PHASE_RANK[stored]:
        return stored
    return phase


def _merge_score(stored: int, reported: Optional[int]) -> int:
    if reported is None:
        return stored
    return max(stored, reported)


def _enter_phase(
    current: FixtureLiveState,
    phase: MatchPhase,
    home: int,
    away: int,
    now: datetime,
) -> FixtureLiveState:
    return current.model_copy(
        update={
            "phase": phase,
            "phase_started_at": now,
            "base_minute": base_minute_for(phase),
            "home_score": home,
            "away_score": away,
            "last_live_update_at": now,
        }
    )


def plan_transition(
    current: FixtureLiveState,
    reported: Optional[ProviderFixture],
    now: datetime,
) -> Optional[PlannedWrite]:
    """
    Decide the write for one fixture against the provider snapshot.

    Returns None when the stored state already matches (no write).
    """
    if current.phase.is_terminal:
        return None

    if current.phase == MatchPhase.SCHEDULED:
        if reported is None:
            return None
        mapped = map_status(reported.status_code)
        if mapped == MatchPhase.SCHEDULED:
            return None
        home = _merge_score(current.home_score, reported.home_goals)
        away = _merge_score(current.away_score, reported.away_goals)
        return PlannedWrite(_enter_phase(current, mapped, home, away, now), UpdateKind.KICKOFF)

    if reported is None:
        # A started match no longer in the feed is over.
        state = _enter_phase(current, MatchPhase.FINISHED, current.home_score, current.away_score, now)
        return PlannedWrite(state, UpdateKind.DROPPED_FROM_FEED)

    phase = resolve_phase(current.phase, map_status(reported.status_code))
    home = _merge_score(current.home_score, reported.home_goals)
    away = _merge_score(current.away_score, reported.away_goals)

    if phase != current.phase:
        return PlannedWrite(_enter_phase(current, phase, home, away, now), UpdateKind.PHASE_CHANGE)

    if home != current.home_score or away != current.away_score:
        state = current.model_copy(
            update={"home_score": home, "away_score": away, "last_live_update_at": now}
        )
        return PlannedWrite(state, UpdateKind.SCORE_ONLY)

    return None


class LiveReconciler:
    """Runs one reconciliation pass per call to run()."""

    def __init__(
        self,
        store: FixtureStore,
        provider: LiveScoreProvider,
        ledger: RunLedger,
        settings: Settings | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._store = store
        self._provider = provider
        self._ledger = ledger
        self._settings = settings or get_settings()
        self._clock = clock

    def _check_configuration(self) -> None:
        if not self._settings.api_football_key:
            raise ConfigurationError("API-Football key is not configured (TP_API_FOOTBALL_KEY)")

    async def run(self) -> SyncLiveResult:
        """
        Execute one invocation.

        Raises:
            ConfigurationError: Provider key missing; nothing was read or written.
            ProviderCallError: The live feed request failed; no fixture was written.
        """
        now = self._clock()
        with (
            sync_run_context(JobType.SYNC_LIVE),
            track_latency(SYNC_DURATION, job_type=JobType.SYNC_LIVE.value),
        ):
            try:
                self._check_configuration()
                result = await self._reconcile(now)
            except Exception as exc:
                SYNC_RUNS.labels(job_type=JobType.SYNC_LIVE.value, outcome="failed").inc()
                logger.error("live_sync_failed", error=str(exc), error_type=type(exc).__name__)
                await self._ledger.record(LedgerEntry.for_live_sync(success=False, error=str(exc)))
                raise

        outcome = "skipped" if result.provider_call_skipped else "success"
        SYNC_RUNS.labels(job_type=JobType.SYNC_LIVE.value, outcome=outcome).inc()
        return result

    async def _reconcile(self, now: datetime) -> SyncLiveResult:
        tracked = await self._store.list_tracked_live()
        soon = await self._store.list_starting_soon(
            now,
            timedelta(minutes=self._settings.live_lookback_minutes),
            timedelta(minutes=self._settings.live_lookahead_minutes),
        )
        TRACKED_LIVE_FIXTURES.set(len(tracked))
        STARTING_SOON_FIXTURES.set(len(soon))

        gate = decide(len(tracked), len(soon))
        logger.info("live_sync_gate", tracked_live=gate.tracked_live, starting_soon=gate.starting_soon)
        if not gate.proceed:
            await self._ledger.record(
                LedgerEntry.for_live_sync(
                    success=True,
                    matches_updated=0,
                    provider_call_skipped=True,
                    message=gate.reason,
                )
            )
            logger.info("live_sync_skipped", reason=gate.reason)
            return SyncLiveResult(
                success=True,
                matches_updated=0,
                provider_call_skipped=True,
                message=SKIPPED_MESSAGE,
            )

        try:
            snapshot = await self._provider.fetch_live()
        except (httpx.HTTPError, ValueError) as exc:
            raise ProviderCallError(f"{self._provider.name.value} live feed request failed: {exc}") from exc

        # Kickoffs delayed past the lookback window do not open the gate, but
        # once the feed is fetched they are still started from it.
        late = await self._store.list_late_scheduled(
            now - timedelta(minutes=self._settings.live_lookback_minutes)
        )

        lookup = snapshot.restricted_to(self._settings.allowed_league_ids)
        logger.info(
            "live_feed_received",
            api_fixtures=len(snapshot.fixtures),
            allowed_fixtures=len(lookup),
        )

        updated = 0
        errors = 0
        for current in [*tracked, *soon, *late]:
            plan = plan_transition(current, lookup.get(current.external_id or ""), now)
            if plan is None:
                continue
            try:
                applied = await self._store.apply_live_state(current.fixture_id, plan.state)
            except Exception as exc:
                errors += 1
                FIXTURE_UPDATE_ERRORS.inc()
                logger.error(
                    "fixture_update_failed",
                    fixture_id=str(current.fixture_id),
                    kind=plan.kind.value,
                    error=str(exc),
                )
                continue
            if not applied:
                continue
            updated += 1
            FIXTURE_UPDATES.labels(kind=plan.kind.value).inc()
            logger.info(
                "fixture_live_state_written",
                fixture_id=str(current.fixture_id),
                kind=plan.kind.value,
                from_phase=current.phase.value,
                to_phase=plan.state.phase.value,
                score=f"{plan.state.home_score}-{plan.state.away_score}",
            )

        await self._ledger.record(
            LedgerEntry.for_live_sync(
                success=True,
                matches_updated=updated,
                provider_call_skipped=False,
                api_fixtures_returned=len(snapshot.fixtures),
                trackedLive=len(tracked),
                startingSoon=len(soon),
                lateScheduled=len(late),
                updateErrors=errors,
            )
        )
        logger.info(
            "live_sync_completed",
            matches_updated=updated,
            update_errors=errors,
            api_fixtures=len(snapshot.fixtures),
        )
        return SyncLiveResult(
            success=True,
            matches_updated=updated,
            provider_call_skipped=False,
            api_fixtures_returned=len(snapshot.fixtures),
            update_errors=errors,
        )
