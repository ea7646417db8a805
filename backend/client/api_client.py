"""
HTTP client for the preference endpoints.

Talks to ``/v1/preferences`` with the caller's bearer session token. Every
failure (transport, timeout, non-2xx, unreadable body) surfaces as
``PreferenceAPIError`` so the sync layer has one thing to roll back on.
"""
from __future__ import annotations

from typing import Any, Optional

import httpx

from shared.models.domain import PreferencesPatch, PreferencesUpdate, UserPreferences
from shared.utils.logging import get_logger

logger = get_logger(__name__)

PREFERENCES_PATH = "/v1/preferences"
DEFAULT_TIMEOUT_S = 10.0


class PreferenceAPIError(Exception):
    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class PreferenceAPIClient:
    """Async client for reading and patching the caller's preferences."""

    def __init__(
        self,
        base_url: str,
        token: str,
        timeout_s: float = DEFAULT_TIMEOUT_S,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers={
                "Authorization": f"Bearer {token}",
                "Accept": "application/json",
                "User-Agent": "MatchLog-Client/1.0",
            },
            timeout=httpx.Timeout(timeout_s),
            transport=transport,
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "PreferenceAPIClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def get_preferences(self) -> UserPreferences:
        payload = await self._request("GET", PREFERENCES_PATH)
        try:
            return UserPreferences.model_validate(payload.get("preferences") or {})
        except ValueError as exc:
            raise PreferenceAPIError(f"Malformed preferences response: {exc}") from exc

    async def update_preferences(self, patch: PreferencesPatch) -> PreferencesUpdate:
        payload = await self._request("PUT", PREFERENCES_PATH, json=patch.to_document())
        try:
            return PreferencesUpdate.model_validate(payload)
        except ValueError as exc:
            raise PreferenceAPIError(f"Malformed preferences response: {exc}") from exc

    async def _request(self, method: str, path: str, json: Optional[dict[str, Any]] = None) -> dict[str, Any]:
        try:
            resp = await self._client.request(method, path, json=json)
        except httpx.TimeoutException as exc:
            logger.warning("preference_api_timeout", method=method, path=path)
            raise PreferenceAPIError(f"{method} {path} timed out") from exc
        except httpx.HTTPError as exc:
            logger.warning("preference_api_transport_error", method=method, path=path, error=str(exc))
            raise PreferenceAPIError(f"{method} {path} failed: {exc}") from exc

        if resp.status_code >= 400:
            logger.warning("preference_api_error_status", method=method, path=path, status=resp.status_code)
            raise PreferenceAPIError(f"{method} {path} returned {resp.status_code}", status_code=resp.status_code)

        try:
            payload = resp.json()
        except ValueError as exc:
            raise PreferenceAPIError(f"{method} {path} returned a non-JSON body", resp.status_code) from exc
        if not isinstance(payload, dict):
            raise PreferenceAPIError(f"{method} {path} returned an unexpected body", resp.status_code)
        return payload
