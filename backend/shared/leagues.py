"""
Static league configuration.

The tracked competitions are fixed at deploy time; their order here is the
default display order.
"""
from __future__ import annotations

from shared.models.domain import League

_BADGE_BASE = "https://www.thesportsdb.com/images/media/league/badge"

TRACKED_LEAGUES: tuple[League, ...] = (
    League(
        league_id="4328",
        display_name="English Premier League",
        upstream_query_key="4328",
        badge_url=f"{_BADGE_BASE}/i6o0kh1549879062.png",
    ),
    League(
        league_id="4335",
        display_name="Spanish La Liga",
        upstream_query_key="4335",
        badge_url=f"{_BADGE_BASE}/ja4it51687628717.png",
    ),
    League(
        league_id="4332",
        display_name="Italian Serie A",
        upstream_query_key="4332",
        badge_url=f"{_BADGE_BASE}/67q3q21679951383.png",
    ),
    League(
        league_id="4331",
        display_name="German Bundesliga",
        upstream_query_key="4331",
        badge_url=f"{_BADGE_BASE}/teqh1b1679952008.png",
    ),
    League(
        league_id="4334",
        display_name="French Ligue 1",
        upstream_query_key="4334",
        badge_url=f"{_BADGE_BASE}/9f7z9d1742983155.png",
    ),
    League(
        league_id="4339",
        display_name="Turkish Super Lig",
        upstream_query_key="4339",
        badge_url=f"{_BADGE_BASE}/h7xx231601671132.png",
    ),
    League(
        league_id="4480",
        display_name="UEFA Champions League",
        upstream_query_key="4480",
        badge_url=f"{_BADGE_BASE}/facv1u1742998896.png",
    ),
)

LEAGUES_BY_ID: dict[str, League] = {league.league_id: league for league in TRACKED_LEAGUES}
