"""
Async HTTP client wrapper for fixture feed requests.
Bounded timeout, metrics per request, and a single failure type for callers.
"""
from __future__ import annotations

import time
from typing import Any, Optional

import httpx

from shared.config import get_settings
from shared.errors import UpstreamUnavailable
from shared.utils.logging import get_logger
from shared.utils.metrics import UPSTREAM_LATENCY, UPSTREAM_REQUESTS

logger = get_logger(__name__)


class ProviderHTTPClient:
    """
    Async HTTP client tailored for sports data feeds.

    Does not retry: a failed request surfaces immediately as
    ``UpstreamUnavailable`` and the caller decides whether to try again.
    """

    def __init__(
        self,
        provider_name: str,
        base_url: str,
        headers: dict[str, str] | None = None,
        timeout_s: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        settings = get_settings()
        self._provider = provider_name
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout_s or settings.upstream_timeout_s
        self._default_headers = headers or {}
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def start(self) -> None:
        """Initialize the underlying httpx client."""
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            headers=self._default_headers,
            timeout=httpx.Timeout(self._timeout, connect=5.0),
            follow_redirects=True,
            limits=httpx.Limits(max_connections=50, max_keepalive_connections=20),
            transport=self._transport,
        )

    async def close(self) -> None:
        """Close the underlying httpx client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def get_json(
        self,
        path: str,
        params: dict[str, Any] | None = None,
        league: str = "unknown",
    ) -> Any:
        """
        Perform a GET request and decode the JSON body.

        Args:
            path: API path relative to base_url.
            params: Query parameters.
            league: League label for metrics and logs.

        Raises:
            UpstreamUnavailable: On timeout, transport failure, non-2xx status
                or an undecodable body.
        """
        if not self._client:
            raise RuntimeError("ProviderHTTPClient not started. Call start() first.")

        start_time = time.perf_counter()
        status = "error"
        try:
            resp = await self._client.get(path, params=params)
            status = str(resp.status_code)
            if not resp.is_success:
                logger.warning(
                    "upstream_http_error",
                    provider=self._provider,
                    path=path,
                    league=league,
                    status=resp.status_code,
                )
                raise UpstreamUnavailable(
                    f"{self._provider} answered {resp.status_code} for league {league}",
                    upstream_status=resp.status_code,
                    league_id=league,
                )
            try:
                payload = resp.json()
            except ValueError as exc:
                status = "bad_body"
                raise UpstreamUnavailable(
                    f"{self._provider} returned an unreadable body for league {league}",
                    upstream_status=resp.status_code,
                    league_id=league,
                ) from exc

            logger.debug(
                "upstream_request_success",
                provider=self._provider,
                path=path,
                league=league,
                latency_ms=round((time.perf_counter() - start_time) * 1000, 2),
            )
            return payload

        except httpx.TimeoutException as exc:
            status = "timeout"
            logger.warning("upstream_timeout", provider=self._provider, path=path, league=league)
            raise UpstreamUnavailable(
                f"{self._provider} timed out after {self._timeout}s for league {league}",
                league_id=league,
            ) from exc

        except httpx.HTTPError as exc:
            status = "transport"
            logger.error(
                "upstream_request_error",
                provider=self._provider,
                path=path,
                league=league,
                error=str(exc),
            )
            raise UpstreamUnavailable(
                f"{self._provider} unreachable for league {league}: {exc}",
                league_id=league,
            ) from exc

        finally:
            UPSTREAM_LATENCY.labels(provider=self._provider).observe(time.perf_counter() - start_time)
            UPSTREAM_REQUESTS.labels(provider=self._provider, league=league, status=status).inc()
