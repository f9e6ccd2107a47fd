"""
Async HTTP client wrapper for provider requests.
Includes bounded retries with linear backoff, an explicit timeout, and metrics.
"""
from __future__ import annotations

import asyncio
import time
from typing import Any, Optional

import httpx

from shared.config import get_settings
from shared.utils.logging import get_logger
from shared.utils.metrics import PROVIDER_LATENCY, PROVIDER_REQUESTS

logger = get_logger(__name__)


class ProviderHTTPClient:
    """
    Async HTTP client tailored for sports data provider APIs.
    Handles timeouts, retries, and records metrics per request.
    """

    def __init__(
        self,
        provider_name: str,
        base_url: str,
        headers: dict[str, str] | None = None,
        timeout_s: float | None = None,
        max_retries: int | None = None,
        retry_delay_s: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        settings = get_settings()
        self._provider = provider_name
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout_s or settings.provider_request_timeout_s
        self._max_retries = max(1, max_retries or settings.provider_max_retries)
        self._retry_delay_s = (
            settings.provider_retry_delay_s if retry_delay_s is None else retry_delay_s
        )
        self._default_headers = headers or {}
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def timeout_s(self) -> float:
        return self._timeout

    async def start(self) -> None:
        """Initialize the underlying httpx client."""
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            headers=self._default_headers,
            timeout=httpx.Timeout(self._timeout, connect=5.0),
            follow_redirects=True,
            transport=self._transport,
        )

    async def close(self) -> None:
        """Close the underlying httpx client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def _backoff(self, attempt: int) -> None:
        await asyncio.sleep(self._retry_delay_s * attempt)

    async def get(
        self,
        path: str,
        params: dict[str, Any] | None = None,
        extra_headers: dict[str, str] | None = None,
        endpoint: str = "unknown",
    ) -> httpx.Response:
        """
        Perform a GET request with retry, metrics, and structured logging.

        Timeouts, transport errors, 429 and 5xx responses are retried up to
        max_retries attempts in total, sleeping retry_delay_s * attempt in
        between. Other 4xx responses raise immediately.

        Raises:
            httpx.HTTPStatusError: On non-retryable HTTP errors or exhausted retries.
            httpx.TimeoutException: If every attempt timed out.
            httpx.TransportError: If every attempt failed to connect.
        """
        if not self._client:
            raise RuntimeError("ProviderHTTPClient not started. Call start() first.")

        last_exc: Optional[Exception] = None

        for attempt in range(1, self._max_retries + 1):
            start_time = time.perf_counter()
            status = "unknown"
            try:
                resp = await self._client.get(path, params=params, headers=extra_headers)
                status = str(resp.status_code)
                resp.raise_for_status()
                elapsed_ms = (time.perf_counter() - start_time) * 1000
                logger.debug(
                    "provider_request_success",
                    provider=self._provider,
                    path=path,
                    status=resp.status_code,
                    latency_ms=round(elapsed_ms, 2),
                    attempt=attempt,
                )
                return resp

            except httpx.HTTPStatusError as exc:
                last_exc = exc
                code = exc.response.status_code
                retryable = code == 429 or code >= 500
                logger.warning(
                    "provider_http_error",
                    provider=self._provider,
                    path=path,
                    status=code,
                    attempt=attempt,
                    retryable=retryable,
                )
                if not retryable:
                    raise

            except httpx.TimeoutException as exc:
                last_exc = exc
                status = "timeout"
                logger.warning(
                    "provider_timeout",
                    provider=self._provider,
                    path=path,
                    attempt=attempt,
                    timeout_s=self._timeout,
                )

            except httpx.TransportError as exc:
                last_exc = exc
                status = "error"
                logger.warning(
                    "provider_transport_error",
                    provider=self._provider,
                    path=path,
                    attempt=attempt,
                    error=str(exc),
                )

            finally:
                PROVIDER_REQUESTS.labels(
                    provider=self._provider, endpoint=endpoint, status=status
                ).inc()
                PROVIDER_LATENCY.labels(provider=self._provider).observe(
                    time.perf_counter() - start_time
                )

            if attempt < self._max_retries:
                await self._backoff(attempt)

        logger.error(
            "provider_retries_exhausted",
            provider=self._provider,
            path=path,
            attempts=self._max_retries,
        )
        if last_exc:
            raise last_exc
        raise RuntimeError(f"Provider request failed after {self._max_retries} attempts")
