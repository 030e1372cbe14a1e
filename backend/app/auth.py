"""
Authentication — JWT bearer tokens resolved to the calling Actor.

- HTTP: Authorization: Bearer <jwt> (from /api/auth/login or /api/auth/register)
- WebSocket: ?token=<jwt>
"""

import logging
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy import select
from sqlalchemy.ext.asyncio import async_sessionmaker

from app.database import get_session_factory
from app.errors import AuthenticationError
from app.models import User
from app.schemas import Actor
from app.services.auth_service import decode_access_token

logger = logging.getLogger(__name__)

_bearer_scheme = HTTPBearer(auto_error=False)


def actor_from_user(user: User) -> Actor:
    return Actor(
        user_id=user.id,
        role=user.role,
        subscription_tier=user.subscription_tier,
        is_active=user.is_active,
    )


async def resolve_token(token: Optional[str], session_factory: async_sessionmaker) -> Actor:
    """Verify a JWT and load its (active) user. Raises AuthenticationError."""
    if not token:
        raise AuthenticationError("Access token is required")

    payload = decode_access_token(token)
    if not payload or not payload.get("sub"):
        raise AuthenticationError("Invalid or expired token. Please log in again.")

    async with session_factory() as db:
        result = await db.execute(select(User).where(User.id == payload["sub"]))
        user = result.scalar_one_or_none()
    if not user:
        raise AuthenticationError("User not found")
    if not user.is_active:
        raise AuthenticationError("Account is disabled")
    return actor_from_user(user)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(_bearer_scheme),
    session_factory: async_sessionmaker = Depends(get_session_factory),
) -> Actor:
    """Require a JWT and return the resolved Actor."""
    return await resolve_token(credentials.credentials if credentials else None, session_factory)
