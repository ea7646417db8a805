"""
TheSportsDB provider connector.
Day schedule per league via ``eventsday.php``; free tier key "123".
"""
from __future__ import annotations

from datetime import date
from typing import Any, Optional

import httpx

from shared.config import get_settings
from shared.models.domain import Fixture, League
from shared.utils.http_client import ProviderHTTPClient
from shared.utils.logging import get_logger

from ingest.providers.base import BaseProvider

logger = get_logger(__name__)

PROVIDER_NAME = "thesportsdb"
TBD = "TBD"


def _safe_score(val: Any) -> Optional[int]:
    """Scores stay None until reported; "0" is a real score."""
    if val is None:
        return None
    text = str(val).strip()
    if not text:
        return None
    try:
        return int(text)
    except ValueError:
        return None


def _text(val: Any, default: str) -> str:
    if val is None:
        return default
    text = str(val).strip()
    return text or default


def normalize_event(event: dict[str, Any], league: League) -> Optional[Fixture]:
    """
    Map one raw TheSportsDB event onto a Fixture.

    Returns None for records without an event id or a usable date, and for
    records that belong to a different league than the one requested.
    """
    event_id = _text(event.get("idEvent"), "")
    date_str = _text(event.get("dateEvent"), "")
    if not event_id or not date_str:
        return None
    try:
        event_date = date.fromisoformat(date_str)
    except ValueError:
        return None

    league_id = _text(event.get("idLeague"), league.league_id)
    if league_id != league.league_id:
        return None

    return Fixture(
        fixture_id=event_id,
        league_id=league_id,
        league_name=_text(event.get("strLeague"), league.display_name),
        date=event_date,
        kickoff_time=_text(event.get("strTime"), ""),
        home_team=_text(event.get("strHomeTeam"), TBD),
        away_team=_text(event.get("strAwayTeam"), TBD),
        home_score=_safe_score(event.get("intHomeScore")),
        away_score=_safe_score(event.get("intAwayScore")),
    )


class TheSportsDBProvider(BaseProvider):
    """TheSportsDB fixture connector."""

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout_s: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        settings = get_settings()
        key = api_key or settings.thesportsdb_api_key
        root = (base_url or settings.thesportsdb_base_url).rstrip("/")
        http_client = ProviderHTTPClient(
            provider_name=PROVIDER_NAME,
            base_url=f"{root}/{key}",
            timeout_s=timeout_s,
            transport=transport,
        )
        super().__init__(name=PROVIDER_NAME, http_client=http_client)

    async def _fetch_league_fixtures(self, day: date, league: League) -> list[Fixture]:
        data = await self._http.get_json(
            "/eventsday.php",
            params={"d": day.isoformat(), "l": league.upstream_query_key},
            league=league.league_id,
        )
        events = data.get("events") if isinstance(data, dict) else None

        fixtures: list[Fixture] = []
        dropped = 0
        for event in events or []:
            if not isinstance(event, dict):
                dropped += 1
                continue
            fixture = normalize_event(event, league)
            if fixture is None:
                dropped += 1
                continue
            fixtures.append(fixture)

        if dropped:
            logger.debug(
                "tsdb_events_dropped",
                league=league.league_id,
                date=day.isoformat(),
                dropped=dropped,
            )
        return fixtures
