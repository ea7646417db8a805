"""
Abstract base class for fixture feed providers.
Defines the contract every provider connector implements.
"""
from __future__ import annotations

import abc
import time
from datetime import date

from shared.errors import UpstreamUnavailable, ValidationError
from shared.leagues import LEAGUES_BY_ID
from shared.models.domain import Fixture, League
from shared.utils.clock import DateLike, parse_calendar_date
from shared.utils.http_client import ProviderHTTPClient
from shared.utils.logging import get_logger

logger = get_logger(__name__)


class BaseProvider(abc.ABC):
    """
    Abstract base class for fixture providers.

    The base class owns the HTTP lifecycle and argument checks; subclasses
    only map one league/day request onto the provider's API and schema.
    """

    def __init__(self, name: str, http_client: ProviderHTTPClient) -> None:
        self._name = name
        self._http = http_client

    @property
    def name(self) -> str:
        return self._name

    async def start(self) -> None:
        await self._http.start()

    async def close(self) -> None:
        await self._http.close()

    async def fetch_league_fixtures(self, day: DateLike, league: League) -> list[Fixture]:
        """
        Fetch normalized fixtures for one league on one date.

        Raises:
            ValidationError: Bad date or a league that is not configured.
            UpstreamUnavailable: The feed failed; never reported as an empty list.
        """
        target = parse_calendar_date(day)
        if LEAGUES_BY_ID.get(league.league_id) != league:
            raise ValidationError(f"League {league.league_id} is not a tracked league.")

        start = time.perf_counter()
        try:
            fixtures = await self._fetch_league_fixtures(target, league)
        except UpstreamUnavailable as exc:
            logger.warning(
                "provider_fetch_failed",
                provider=self._name,
                league=league.league_id,
                date=target.isoformat(),
                upstream_status=exc.upstream_status,
            )
            raise

        logger.debug(
            "provider_fetch_ok",
            provider=self._name,
            league=league.league_id,
            date=target.isoformat(),
            fixtures=len(fixtures),
            latency_ms=round((time.perf_counter() - start) * 1000, 2),
        )
        return fixtures

    @abc.abstractmethod
    async def _fetch_league_fixtures(self, day: date, league: League) -> list[Fixture]:
        """Provider-specific fetch and normalization for one league/day."""
        ...
