"""Invocation-level failures of the live reconciler."""
from __future__ import annotations


class LiveSyncError(Exception):
    """Aborts a whole reconciler invocation; recorded once in the ledger."""


class ConfigurationError(LiveSyncError):
    """A required secret or key is not configured."""


class ProviderCallError(LiveSyncError):
    """The single live-feed request failed after the HTTP client's retries."""
