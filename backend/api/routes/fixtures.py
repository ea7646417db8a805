"""
Fixtures REST endpoint.

GET /v1/fixtures?date=YYYY-MM-DD[&leagueOrder=a,b] : The day's fixtures grouped
by league, filtered and ordered by the caller's preferences, together with the
caller's watched and notified marks for that date.
"""
from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Depends, Query

from shared.utils.clock import parse_calendar_date

from api.auth import get_current_user_id
from api.composer import FixtureViewComposer
from api.dependencies import get_composer

router = APIRouter(prefix="/v1", tags=["fixtures"])


def parse_league_order(raw: Optional[str]) -> Optional[list[str]]:
    """Comma-separated league ids; blanks dropped. None or empty means no override."""
    if not raw:
        return None
    order = [part.strip() for part in raw.split(",") if part.strip()]
    return order or None


@router.get("/fixtures")
async def get_fixtures(
    date_str: str = Query(..., alias="date", description="Date in YYYY-MM-DD format."),
    league_order: Optional[str] = Query(
        None,
        alias="leagueOrder",
        description="Comma-separated league ids overriding the stored order for this request.",
    ),
    user_id: str = Depends(get_current_user_id),
    composer: FixtureViewComposer = Depends(get_composer),
) -> dict[str, Any]:
    target = parse_calendar_date(date_str)
    view = await composer.compose_day(user_id, target, parse_league_order(league_order))
    return view.to_wire()
