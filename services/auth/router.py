"""
services/auth/router.py
Email/password account endpoints.
Implements: Register → (verify email) → Login → JWT issue → Logout
"""

import logging

from fastapi import APIRouter, Depends, status
from jose import JWTError
from redis.exceptions import RedisError
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from config.database import get_db
from config.redis_client import RedisCache, get_redis
from config.settings import settings
from shared.middleware.auth import TokenData, get_current_user, get_token_data
from shared.models.models import User, UserRole
from shared.schemas.schemas import (
    ApiResponse,
    LoginRequest,
    LoginResponse,
    RegisterRequest,
    RegisterResponse,
    UserResponse,
)
from shared.utils.exceptions import Conflict, Unauthenticated, ValidationError
from shared.utils.security import (
    create_access_token,
    create_email_verification_token,
    get_token_remaining_ttl,
    hash_password,
    verify_email_verification_token,
    verify_password,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Authentication"])


# ── Endpoints ─────────────────────────────────────────────────

@router.post(
    "/register",
    response_model=ApiResponse[RegisterResponse],
    status_code=status.HTTP_201_CREATED,
)
async def register(data: RegisterRequest, db: AsyncSession = Depends(get_db)):
    """
    Create a PARENT_RELATIVE account. The verification link is logged,
    not mailed; there is no outbound email integration.
    """
    email = data.email.lower()
    existing = await db.scalar(select(User.id).where(User.email == email))
    if existing:
        raise Conflict("Email already registered")

    user = User(
        email=email,
        password_hash=hash_password(data.password),
        role=UserRole.PARENT_RELATIVE,
        email_verified=False,
    )
    db.add(user)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise Conflict("Email already registered")

    token = create_email_verification_token(str(user.id), user.email)
    logger.info(
        f"Verification link for {user.email}: {settings.FRONTEND_URL}/verify-email/{token}"
    )
    return ApiResponse(
        data=RegisterResponse(id=user.id, email=user.email),
        message="Registration successful. Please check your email to verify your account.",
    )


@router.post("/login", response_model=ApiResponse[LoginResponse])
async def login(data: LoginRequest, db: AsyncSession = Depends(get_db)):
    user = await db.scalar(select(User).where(User.email == data.email.lower()))
    if not user or not verify_password(data.password, user.password_hash):
        raise Unauthenticated("Invalid email or password")

    access_token, _ = create_access_token(
        user_id=str(user.id),
        role=user.role.value,
        email=user.email,
    )
    return ApiResponse(
        data=LoginResponse(
            user=UserResponse.model_validate(user),
            token=access_token,
            expires_in=settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        ),
        message="Login successful",
    )


@router.get("/profile", response_model=ApiResponse[UserResponse])
async def get_profile(current_user: User = Depends(get_current_user)):
    """Returns the authenticated user's account."""
    return ApiResponse(data=UserResponse.model_validate(current_user))


@router.post("/logout", response_model=ApiResponse[None])
async def logout(
    current_user: User = Depends(get_current_user),
    token_data: TokenData = Depends(get_token_data),
    redis=Depends(get_redis),
):
    """Deny-list the access token's jti until it would have expired anyway."""
    ttl = get_token_remaining_ttl(token_data.payload)
    if token_data.jti and ttl > 0 and redis is not None:
        try:
            await RedisCache(redis).revoke_token(token_data.jti, ttl)
        except RedisError as e:
            logger.warning(f"Token revocation skipped for user {current_user.id}: {e}")
    return ApiResponse(message="Logged out successfully")


@router.get("/verify-email/{token}", response_model=ApiResponse[UserResponse])
async def verify_email(token: str, db: AsyncSession = Depends(get_db)):
    try:
        payload = verify_email_verification_token(token)
    except JWTError:
        raise ValidationError("Invalid or expired verification token")

    user = await db.scalar(
        select(User).where(User.email == payload.get("email"))
    )
    if not user or str(user.id) != payload.get("sub"):
        raise ValidationError("Invalid or expired verification token")

    if not user.email_verified:
        user.email_verified = True
        await db.commit()
        await db.refresh(user)
    return ApiResponse(
        data=UserResponse.model_validate(user),
        message="Email verified successfully",
    )
