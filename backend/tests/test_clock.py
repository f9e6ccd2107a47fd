"""
Unit tests for the phase clock: labels, flags, stoppage time and the kickoff label.

Run: pytest backend/tests/test_clock.py -v
"""
from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from shared.models.enums import MatchPhase

from live.clock import compute_live_minute, format_score, kickoff_label, live_minute_for
from fakes import NOW, make_state


def _minute(phase, started_ago_min=None, base=None, kickoff=NOW, now=NOW):
    started = None if started_ago_min is None else now - timedelta(minutes=started_ago_min)
    return compute_live_minute(phase, started, base, kickoff, now)


# ── Fixed labels ────────────────────────────────────────────────────────

@pytest.mark.parametrize(
    "phase,label,flags",
    [
        (MatchPhase.HALFTIME, "HT", (False, True, False, False)),
        (MatchPhase.EXTRA_TIME_HALFTIME, "ET HT", (False, True, False, False)),
        (MatchPhase.PENALTIES, "PEN", (False, False, False, True)),
        (MatchPhase.FINISHED, "FT", (False, False, True, False)),
    ],
)
def test_fixed_labels_and_flags(phase: MatchPhase, label: str, flags: tuple) -> None:
    m = _minute(phase, started_ago_min=3, base=45)
    assert m.display_minute == label
    assert (m.is_live, m.is_half_time, m.is_finished, m.is_penalties) == flags
    assert m.refresh_after_s is None


def test_half_time_ignores_timestamps() -> None:
    assert _minute(MatchPhase.HALFTIME).display_minute == "HT"
    assert _minute(MatchPhase.HALFTIME, started_ago_min=90, base=0).display_minute == "HT"


# ── Running phases ──────────────────────────────────────────────────────

def test_first_half_stoppage() -> None:
    m = _minute(MatchPhase.LIVE, started_ago_min=46, base=0)
    assert m.display_minute == "45+1"
    assert m.is_live is True
    assert m.refresh_after_s == 1.0


def test_first_half_at_ceiling_shows_plus_zero() -> None:
    assert _minute(MatchPhase.LIVE, started_ago_min=45, base=0).display_minute == "45+0"


def test_first_half_regular_minute() -> None:
    assert _minute(MatchPhase.LIVE, started_ago_min=12, base=0).display_minute == "12'"


def test_partial_minute_floors() -> None:
    started = NOW - timedelta(minutes=12, seconds=59)
    m = compute_live_minute(MatchPhase.LIVE, started, 0, NOW, NOW)
    assert m.display_minute == "12'"


@pytest.mark.parametrize(
    "phase,base,elapsed,label",
    [
        (MatchPhase.SECOND_HALF, 45, 20, "65'"),
        (MatchPhase.SECOND_HALF, 45, 48, "90+3"),
        (MatchPhase.EXTRA_TIME_1, 90, 7, "97'"),
        (MatchPhase.EXTRA_TIME_1, 90, 16, "105+1"),
        (MatchPhase.EXTRA_TIME_2, 105, 14, "119'"),
        (MatchPhase.EXTRA_TIME_2, 105, 17, "120+2"),
    ],
)
def test_running_phase_minutes(phase: MatchPhase, base: int, elapsed: int, label: str) -> None:
    assert _minute(phase, started_ago_min=elapsed, base=base).display_minute == label


def test_missing_phase_start_falls_back_to_live() -> None:
    m = _minute(MatchPhase.SECOND_HALF, started_ago_min=None, base=45)
    assert m.display_minute == "LIVE"
    assert m.is_live is True


def test_missing_base_minute_falls_back_to_live() -> None:
    assert _minute(MatchPhase.LIVE, started_ago_min=5, base=None).display_minute == "LIVE"


def test_clock_skew_clamps_to_base() -> None:
    started = NOW + timedelta(minutes=2)
    m = compute_live_minute(MatchPhase.SECOND_HALF, started, 45, NOW, NOW)
    assert m.display_minute == "45'"


def test_naive_timestamps_read_as_utc() -> None:
    started = (NOW - timedelta(minutes=30)).replace(tzinfo=None)
    m = compute_live_minute(MatchPhase.LIVE, started, 0, NOW, NOW)
    assert m.display_minute == "30'"


def test_deterministic_for_frozen_now() -> None:
    started = NOW - timedelta(minutes=33)
    first = compute_live_minute(MatchPhase.LIVE, started, 0, NOW, NOW)
    second = compute_live_minute(MatchPhase.LIVE, started, 0, NOW, NOW)
    assert first == second


# ── Scheduled ───────────────────────────────────────────────────────────

def test_scheduled_shows_kickoff_in_rome_winter() -> None:
    kickoff = datetime(2026, 3, 14, 19, 45, tzinfo=timezone.utc)
    m = _minute(MatchPhase.SCHEDULED, kickoff=kickoff)
    assert m.display_minute == "20:45"
    assert not (m.is_live or m.is_half_time or m.is_finished or m.is_penalties)


def test_scheduled_shows_kickoff_in_rome_summer() -> None:
    assert kickoff_label(datetime(2026, 7, 1, 18, 0, tzinfo=timezone.utc)) == "20:00"


def test_kickoff_label_other_zone() -> None:
    kickoff = datetime(2026, 3, 14, 19, 45, tzinfo=timezone.utc)
    assert kickoff_label(kickoff, "Europe/London") == "19:45"


def test_unknown_phase_reads_as_scheduled() -> None:
    kickoff = datetime(2026, 3, 14, 19, 45, tzinfo=timezone.utc)
    m = compute_live_minute("abandoned-ish", None, None, kickoff, NOW)
    assert m.phase == MatchPhase.SCHEDULED
    assert m.display_minute == "20:45"
    assert compute_live_minute(None, None, None, kickoff, NOW).display_minute == "20:45"


def test_phase_accepts_stored_string() -> None:
    assert _minute("2h", started_ago_min=1, base=45).display_minute == "46'"


def test_live_minute_for_state() -> None:
    state = make_state(MatchPhase.SECOND_HALF, started_ago=timedelta(minutes=10))
    assert live_minute_for(state, NOW).display_minute == "55'"


# ── Score formatting ────────────────────────────────────────────────────

def test_format_score() -> None:
    assert format_score(2, 1) == "2 - 1"
    assert format_score(None, 3) == "0 - 3"
    assert format_score(None, None) == "0 - 0"
