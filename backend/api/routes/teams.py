"""
GET /v1/teams : Teams the caller has watched, grouped by league.
"""
from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends

from store.marks import MarkStore

from api.auth import get_current_user_id
from api.dependencies import get_marks

router = APIRouter(prefix="/v1", tags=["teams"])


@router.get("/teams")
async def teams_by_league(
    user_id: str = Depends(get_current_user_id),
    marks: MarkStore = Depends(get_marks),
) -> dict[str, Any]:
    groups = await marks.teams_by_league(user_id)
    return {"teamsByLeague": [group.to_wire() for group in groups]}
