"""
Pre-call gating: skip the provider request when nothing needs it.
Inputs are counts read fresh from the fixture store on every invocation.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

SKIP_REASON = "No live or upcoming matches, skipped provider call"


@dataclass(frozen=True)
class GateDecision:
    proceed: bool
    tracked_live: int
    starting_soon: int
    reason: Optional[str] = None


def decide(tracked_live: int, starting_soon: int) -> GateDecision:
    if tracked_live <= 0 and starting_soon <= 0:
        return GateDecision(
            proceed=False,
            tracked_live=max(0, tracked_live),
            starting_soon=max(0, starting_soon),
            reason=SKIP_REASON,
        )
    return GateDecision(proceed=True, tracked_live=tracked_live, starting_soon=starting_soon)
