"""
Caller identity for API routes.

Clients send ``Authorization: Bearer <session token>``; the token is looked
up in the ``sessions`` table written by the sign-in flow. Token issuance
itself lives outside this service.
"""
from __future__ import annotations

from typing import Optional

from fastapi import Depends, Header
from sqlalchemy import select

from shared.errors import Unauthorized
from shared.models.orm import SessionORM
from shared.utils.clock import Clock
from shared.utils.database import DatabaseManager
from shared.utils.logging import get_logger

from api.dependencies import get_clock, get_db

logger = get_logger(__name__)

BEARER_PREFIX = "Bearer "


async def get_current_user_id(
    authorization: Optional[str] = Header(None),
    db: DatabaseManager = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> str:
    """Resolve the bearer session token to a user id or fail with 401."""
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        raise Unauthorized("Not authenticated.")

    token = authorization[len(BEARER_PREFIX):].strip()
    if not token:
        raise Unauthorized("Not authenticated.")

    async with db.read_session() as session:
        user_id = await session.scalar(
            select(SessionORM.user_id)
            .where(SessionORM.session_token == token, SessionORM.expires > clock.now())
            .limit(1)
        )

    if not user_id:
        logger.info("auth_rejected", reason="unknown_or_expired_session")
        raise Unauthorized("Invalid or expired session.")
    return user_id
