"""
Phase lookup tables.
Adding a phase or changing a baseline is a data change here, not a code change.
"""
from __future__ import annotations

from types import MappingProxyType
from typing import Mapping, Optional

from shared.models.enums import MatchPhase

# Display minute at the instant a phase starts.
PHASE_BASE_MINUTE: Mapping[MatchPhase, int] = MappingProxyType({
    MatchPhase.LIVE: 0,
    MatchPhase.HALFTIME: 45,
    MatchPhase.SECOND_HALF: 45,
    MatchPhase.EXTRA_TIME_1: 90,
    MatchPhase.EXTRA_TIME_HALFTIME: 105,
    MatchPhase.EXTRA_TIME_2: 105,
    MatchPhase.PENALTIES: 120,
})

# Regulation end of each running phase; minutes at or past it render as stoppage.
PHASE_CEILING: Mapping[MatchPhase, int] = MappingProxyType({
    MatchPhase.LIVE: 45,
    MatchPhase.SECOND_HALF: 90,
    MatchPhase.EXTRA_TIME_1: 105,
    MatchPhase.EXTRA_TIME_2: 120,
})

# Fixed labels for phases whose display does not depend on elapsed time.
PHASE_LABEL: Mapping[MatchPhase, str] = MappingProxyType({
    MatchPhase.HALFTIME: "HT",
    MatchPhase.EXTRA_TIME_HALFTIME: "ET HT",
    MatchPhase.PENALTIES: "PEN",
    MatchPhase.FINISHED: "FT",
})

LIVE_FALLBACK_LABEL = "LIVE"


def base_minute_for(phase: MatchPhase) -> Optional[int]:
    return PHASE_BASE_MINUTE.get(phase)
