"""Domain enumerations for the TipPulse live pipeline."""
from __future__ import annotations

from enum import Enum


class MatchPhase(str, Enum):
    SCHEDULED = "scheduled"
    LIVE = "live"  # first half
    HALFTIME = "ht"
    SECOND_HALF = "2h"
    EXTRA_TIME_1 = "et1"
    EXTRA_TIME_HALFTIME = "et_ht"
    EXTRA_TIME_2 = "et2"
    PENALTIES = "pens"
    FINISHED = "finished"

    @classmethod
    def parse(cls, value: str | None) -> "MatchPhase":
        """Lenient parse; unknown or missing values read as SCHEDULED."""
        try:
            return cls((value or "").strip().lower())
        except ValueError:
            return cls.SCHEDULED

    @property
    def is_running(self) -> bool:
        """Match clock is ticking."""
        return self in (
            MatchPhase.LIVE,
            MatchPhase.SECOND_HALF,
            MatchPhase.EXTRA_TIME_1,
            MatchPhase.EXTRA_TIME_2,
        )

    @property
    def is_break(self) -> bool:
        return self in (MatchPhase.HALFTIME, MatchPhase.EXTRA_TIME_HALFTIME)

    @property
    def is_tracked(self) -> bool:
        """Started but not finished: the reconciler follows it every poll."""
        return self not in (MatchPhase.SCHEDULED, MatchPhase.FINISHED)

    @property
    def is_terminal(self) -> bool:
        return self == MatchPhase.FINISHED


TRACKED_PHASES: tuple[MatchPhase, ...] = tuple(p for p in MatchPhase if p.is_tracked)


class ProviderName(str, Enum):
    API_FOOTBALL = "api-football"


class JobType(str, Enum):
    """Ledger job types; the bulk importers share the sync_runs table."""
    SYNC_LIVE = "sync-live"
    SYNC_LEAGUES = "sync-leagues"
    SYNC_FIXTURES = "sync-fixtures"
    SYNC_TODAY = "sync-today"


class UpdateKind(str, Enum):
    """What a reconciler write did to a fixture (metrics label)."""
    PHASE_CHANGE = "phase_change"
    SCORE_ONLY = "score_only"
    KICKOFF = "kickoff"
    DROPPED_FROM_FEED = "dropped_from_feed"
