"""
Watched-mark endpoints.

POST   /v1/watched : Mark a fixture watched (snapshot body); re-marking replaces the snapshot.
DELETE /v1/watched : Remove a watched mark; removing an absent mark is a no-op.
GET    /v1/watched/list : Every watched mark of the caller, newest first.
"""
from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends
from pydantic import Field

from shared.models.domain import DomainModel, FixtureSnapshot
from store.marks import MarkStore

from api.auth import get_current_user_id
from api.dependencies import get_marks

router = APIRouter(prefix="/v1/watched", tags=["watched"])


class UnmarkRequest(DomainModel):
    fixture_id: str = Field(min_length=1)


@router.post("")
async def mark_watched(
    snapshot: FixtureSnapshot,
    user_id: str = Depends(get_current_user_id),
    marks: MarkStore = Depends(get_marks),
) -> dict[str, Any]:
    record = await marks.mark_watched(user_id, snapshot)
    return {"record": record.to_wire()}


@router.delete("")
async def unmark_watched(
    body: UnmarkRequest,
    user_id: str = Depends(get_current_user_id),
    marks: MarkStore = Depends(get_marks),
) -> dict[str, bool]:
    await marks.unmark_watched(user_id, body.fixture_id)
    return {"ok": True}


@router.get("/list")
async def list_watched(
    user_id: str = Depends(get_current_user_id),
    marks: MarkStore = Depends(get_marks),
) -> dict[str, Any]:
    records = await marks.list_watched_for_user(user_id)
    return {"events": [record.to_wire() for record in records]}
