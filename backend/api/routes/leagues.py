"""
League REST endpoint.

GET /v1/leagues : The tracked league configuration, in display order.
"""
from __future__ import annotations

from typing import Any

from fastapi import APIRouter

from shared.leagues import TRACKED_LEAGUES

router = APIRouter(prefix="/v1/leagues", tags=["leagues"])


@router.get("")
async def list_leagues() -> dict[str, Any]:
    return {"leagues": [league.to_wire() for league in TRACKED_LEAGUES]}
