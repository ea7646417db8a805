"""
Preference endpoints.

GET /v1/preferences : Stored preferences, or the empty defaults for a new user.
PUT /v1/preferences : Partial update; each supplied key replaces the stored list,
                      absent keys are left untouched.
"""
from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends

from shared.models.domain import PreferencesPatch
from store.preferences import PreferenceStore

from api.auth import get_current_user_id
from api.dependencies import get_preference_store

router = APIRouter(prefix="/v1/preferences", tags=["preferences"])


@router.get("")
async def get_preferences(
    user_id: str = Depends(get_current_user_id),
    store: PreferenceStore = Depends(get_preference_store),
) -> dict[str, Any]:
    preferences = await store.get_preferences(user_id)
    return {"preferences": preferences.to_wire()}


@router.put("")
async def update_preferences(
    patch: PreferencesPatch,
    user_id: str = Depends(get_current_user_id),
    store: PreferenceStore = Depends(get_preference_store),
) -> dict[str, Any]:
    update = await store.update_preferences(user_id, patch)
    return update.to_wire()
