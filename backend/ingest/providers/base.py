"""
Abstract base class for live-score feed providers.
Defines the contract that every provider connector must implement.
"""
from __future__ import annotations

import abc

from shared.models.domain import LiveSnapshot
from shared.models.enums import ProviderName
from shared.utils.http_client import ProviderHTTPClient


class LiveScoreProvider(abc.ABC):
    """
    Abstract base class for live-score providers.

    A provider answers one question per poll: which matches are in progress
    right now. The base class handles the HTTP client lifecycle.
    """

    def __init__(self, name: ProviderName, http_client: ProviderHTTPClient) -> None:
        self._name = name
        self._http = http_client

    @property
    def name(self) -> ProviderName:
        return self._name

    async def start(self) -> None:
        """Initialize the provider HTTP client."""
        await self._http.start()

    async def close(self) -> None:
        """Shutdown the provider HTTP client."""
        await self._http.close()

    @abc.abstractmethod
    async def fetch_live(self) -> LiveSnapshot:
        """
        Fetch every in-progress match in a single request.

        Raises:
            httpx.HTTPError: When the request fails after the client's retries.
        """
        ...
