"""
Async HTTP client for external fixture feeds.
Retries timeouts, 429s and 5xx responses; records latency and status per endpoint.
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

MAX_RETRY_AFTER_S = 10.0


class ProviderHTTPClient:
    """
    httpx.AsyncClient wrapper bound to one provider's base URL.
    4xx responses other than 429 are raised immediately; everything else is retried.
    """

    def __init__(
        self,
        provider_name: str,
        base_url: str,
        headers: dict[str, str] | None = None,
        timeout_s: float | None = None,
        max_retries: int = 2,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        settings = get_settings()
        self._provider = provider_name
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout_s or settings.provider_request_timeout_s
        self._max_retries = max(1, max_retries)
        self._default_headers = headers or {}
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def provider(self) -> str:
        return self._provider

    async def start(self) -> None:
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            headers=self._default_headers,
            timeout=httpx.Timeout(self._timeout, connect=5.0),
            follow_redirects=True,
            transport=self._transport,
        )

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "ProviderHTTPClient":
        await self.start()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    async def get_json(self, path: str, params: dict[str, Any] | None = None, endpoint: str = "unknown") -> Any:
        resp = await self.get(path, params=params, endpoint=endpoint)
        return resp.json()

    async def get(
        self,
        path: str,
        params: dict[str, Any] | None = None,
        endpoint: str = "unknown",
    ) -> httpx.Response:
        """
        GET with retries.

        Raises:
            httpx.HTTPStatusError: non-retryable status, or retries exhausted on one.
            httpx.TimeoutException: retries exhausted on timeouts.
        """
        if not self._client:
            raise RuntimeError("ProviderHTTPClient not started. Call start() first.")

        last_exc: Optional[Exception] = None
        for attempt in range(1, self._max_retries + 1):
            start_time = time.perf_counter()
            status = "unknown"
            retry_in: Optional[float] = None
            try:
                resp = await self._client.get(path, params=params)
                status = str(resp.status_code)

                if resp.status_code == 429:
                    logger.warning("provider_rate_limited", provider=self._provider, path=path, attempt=attempt)
                    retry_in = min(float(resp.headers.get("Retry-After", "2")), MAX_RETRY_AFTER_S)
                elif resp.status_code >= 500:
                    logger.warning(
                        "provider_server_error",
                        provider=self._provider,
                        path=path,
                        status=resp.status_code,
                        attempt=attempt,
                    )
                    retry_in = 1.0 * attempt

                if retry_in is None or attempt == self._max_retries:
                    resp.raise_for_status()
                    logger.debug(
                        "provider_request_success",
                        provider=self._provider,
                        path=path,
                        status=resp.status_code,
                        latency_ms=round((time.perf_counter() - start_time) * 1000, 2),
                    )
                    return resp

            except httpx.TimeoutException as exc:
                status = "timeout"
                last_exc = exc
                logger.warning("provider_timeout", provider=self._provider, path=path, attempt=attempt)
                retry_in = 1.0 * attempt

            except httpx.HTTPStatusError as exc:
                last_exc = exc
                logger.error(
                    "provider_http_error",
                    provider=self._provider,
                    path=path,
                    status=exc.response.status_code,
                    attempt=attempt,
                )
                raise

            except httpx.TransportError as exc:
                status = "error"
                last_exc = exc
                logger.error(
                    "provider_request_error",
                    provider=self._provider,
                    path=path,
                    error=str(exc),
                    attempt=attempt,
                )
                retry_in = 1.0 * attempt

            finally:
                PROVIDER_REQUESTS.labels(provider=self._provider, endpoint=endpoint, status=status).inc()
                PROVIDER_LATENCY.labels(provider=self._provider).observe(time.perf_counter() - start_time)

            if attempt < self._max_retries and retry_in:
                await asyncio.sleep(retry_in)

        if last_exc:
            raise last_exc
        raise RuntimeError(f"Provider request failed after {self._max_retries} attempts")
