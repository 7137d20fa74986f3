"""
shared/middleware/auth.py
FastAPI dependency functions for authentication and authorization.
Missing or unusable credentials are 401; a valid credential with the
wrong role is 403.
"""

import logging
import uuid
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from redis.exceptions import RedisError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from config.database import get_db
from config.redis_client import RedisCache, get_redis
from shared.models.models import User, UserRole
from shared.utils.exceptions import Forbidden, Unauthenticated
from shared.utils.security import verify_access_token

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


class TokenData:
    def __init__(self, payload: dict, raw: str):
        self.user_id: str = payload["sub"]
        self.role: UserRole = UserRole(payload["role"])
        self.email: str = payload["email"]
        self.jti: Optional[str] = payload.get("jti")
        self.payload = payload
        self.raw = raw


async def get_token_data(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    redis=Depends(get_redis),
) -> TokenData:
    """
    Extract and validate JWT from Authorization header.
    Checks deny-list in Redis to handle revoked tokens (logout).
    """
    if not credentials:
        raise Unauthenticated("Access token required")

    try:
        payload = verify_access_token(credentials.credentials)
        token_data = TokenData(payload, credentials.credentials)
    except (JWTError, KeyError, ValueError):
        raise Unauthenticated("Invalid or expired token")

    # Check if token has been revoked (logged out)
    if token_data.jti and redis is not None:
        try:
            revoked = await RedisCache(redis).is_token_revoked(token_data.jti)
        except RedisError as e:
            logger.warning(f"Deny-list check skipped, Redis unavailable: {e}")
            revoked = False
        if revoked:
            raise Unauthenticated("Invalid or expired token")

    return token_data


async def get_current_user(
    token_data: TokenData = Depends(get_token_data),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Load full User object from database using JWT sub claim."""
    try:
        user_id = uuid.UUID(token_data.user_id)
    except ValueError:
        raise Unauthenticated("Invalid or expired token")

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()

    if not user:
        raise Unauthenticated("User profile not found")
    return user


class RoleRequired:
    """Dependency factory for role-based access control."""

    def __init__(self, *roles: UserRole):
        self.roles = roles

    async def __call__(
        self,
        current_user: User = Depends(get_current_user),
    ) -> User:
        if current_user.role not in self.roles:
            raise Forbidden("Insufficient permissions")
        return current_user


# Convenience role dependencies
require_admin = RoleRequired(UserRole.ADMIN)
require_admin_or_parent = RoleRequired(UserRole.ADMIN, UserRole.PARENT_RELATIVE)
