"""
Phase clock: derives the display minute of a fixture from its last recorded
phase transition. Pure; the current time is always passed in.
"""
from __future__ import annotations

import math
from datetime import datetime, timezone
from functools import lru_cache
from typing import Optional, Union
from zoneinfo import ZoneInfo

from shared.models.domain import FixtureLiveState, LiveMinute
from shared.models.enums import MatchPhase

from live.phases import LIVE_FALLBACK_LABEL, PHASE_CEILING, PHASE_LABEL

DEFAULT_DISPLAY_TZ = "Europe/Rome"
RUNNING_REFRESH_S = 1.0
NO_KICKOFF_LABEL = "--"


@lru_cache(maxsize=16)
def _zone(name: str) -> ZoneInfo:
    return ZoneInfo(name)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def kickoff_label(kickoff_at: Optional[datetime], display_tz: str = DEFAULT_DISPLAY_TZ) -> str:
    """Kickoff as HH:MM (24h) in the display timezone."""
    if kickoff_at is None:
        return NO_KICKOFF_LABEL
    return _as_utc(kickoff_at).astimezone(_zone(display_tz)).strftime("%H:%M")


def running_minute_label(phase: MatchPhase, base_minute: int, elapsed_minutes: int) -> str:
    """
    Label for a running phase: "<minute>'" or "<ceiling>+<n>" once the
    regulation ceiling is reached (a first half at exactly 45 shows "45+0").
    """
    minute = base_minute + max(0, elapsed_minutes)
    ceiling = PHASE_CEILING.get(phase)
    if ceiling is not None and minute >= ceiling:
        return f"{ceiling}+{minute - ceiling}"
    return f"{minute}'"


def compute_live_minute(
    phase: Union[MatchPhase, str, None],
    phase_started_at: Optional[datetime],
    base_minute: Optional[int],
    kickoff_at: Optional[datetime],
    now: datetime,
    display_tz: str = DEFAULT_DISPLAY_TZ,
) -> LiveMinute:
    """
    Compute the display label and status flags for one fixture.

    Args:
        phase: Stored phase; unknown or missing values render as scheduled.
        phase_started_at: When the current phase was recorded as starting.
        base_minute: Match-clock minute at phase_started_at.
        kickoff_at: Scheduled kickoff, used only for the scheduled label.
        now: The current instant. Naive datetimes are taken as UTC.
        display_tz: IANA zone for the kickoff label.
    """
    current = phase if isinstance(phase, MatchPhase) else MatchPhase.parse(phase)

    if current == MatchPhase.SCHEDULED:
        return LiveMinute(
            display_minute=kickoff_label(kickoff_at, display_tz),
            phase=current,
        )

    if current.is_running:
        if phase_started_at is None or base_minute is None:
            # Phase written but timing fields not yet populated.
            label = LIVE_FALLBACK_LABEL
        else:
            elapsed_s = (_as_utc(now) - _as_utc(phase_started_at)).total_seconds()
            elapsed_minutes = math.floor(elapsed_s / 60)
            label = running_minute_label(current, base_minute, elapsed_minutes)
        return LiveMinute(
            display_minute=label,
            is_live=True,
            phase=current,
            refresh_after_s=RUNNING_REFRESH_S,
        )

    return LiveMinute(
        display_minute=PHASE_LABEL[current],
        is_half_time=current.is_break,
        is_finished=current == MatchPhase.FINISHED,
        is_penalties=current == MatchPhase.PENALTIES,
        phase=current,
    )


def live_minute_for(
    state: FixtureLiveState, now: datetime, display_tz: str = DEFAULT_DISPLAY_TZ
) -> LiveMinute:
    return compute_live_minute(
        state.phase,
        state.phase_started_at,
        state.base_minute,
        state.kickoff_at,
        now,
        display_tz,
    )


def format_score(home_score: Optional[int], away_score: Optional[int]) -> str:
    """Score as "H - A"; missing values read as 0."""
    home = home_score if home_score is not None else 0
    away = away_score if away_score is not None else 0
    return f"{home} - {away}"
