"""
Notified-mark endpoints.

GET    /v1/notified?fixtureId= : One notified mark; 404 when the caller has none for the fixture.
POST   /v1/notified : Record that a local reminder was scheduled.
DELETE /v1/notified : Remove the mark after the reminder is cancelled.
GET    /v1/notified/list : Every notified mark of the caller, soonest first.
"""
from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query

from shared.models.domain import NotifySnapshot
from store.marks import MarkStore

from api.auth import get_current_user_id
from api.dependencies import get_marks
from api.routes.watched import UnmarkRequest

router = APIRouter(prefix="/v1/notified", tags=["notified"])


@router.get("")
async def get_notified(
    fixture_id: str = Query(..., alias="fixtureId", min_length=1),
    user_id: str = Depends(get_current_user_id),
    marks: MarkStore = Depends(get_marks),
) -> dict[str, Any]:
    record = await marks.get_notified(user_id, fixture_id)
    return {"record": record.to_wire()}


@router.post("")
async def mark_notified(
    snapshot: NotifySnapshot,
    user_id: str = Depends(get_current_user_id),
    marks: MarkStore = Depends(get_marks),
) -> dict[str, Any]:
    record = await marks.mark_notified(user_id, snapshot)
    return {"record": record.to_wire()}


@router.delete("")
async def unmark_notified(
    body: UnmarkRequest,
    user_id: str = Depends(get_current_user_id),
    marks: MarkStore = Depends(get_marks),
) -> dict[str, bool]:
    await marks.unmark_notified(user_id, body.fixture_id)
    return {"ok": True}


@router.get("/list")
async def list_notified(
    user_id: str = Depends(get_current_user_id),
    marks: MarkStore = Depends(get_marks),
) -> dict[str, Any]:
    records = await marks.list_notified_for_user(user_id)
    return {"events": [record.to_wire() for record in records]}
