"""
services/interest/router.py
Interest ledger: a user signals interest in someone else's approved
profile. Withdrawal is a soft delete (is_active = False).
"""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy import and_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from config.database import get_db
from shared.middleware.auth import get_current_user
from shared.models.models import Interest, Profile, ProfileStatus, User
from shared.schemas.schemas import (
    ApiResponse,
    ExpressInterestRequest,
    InterestResponse,
    ProfileSummary,
    UserSummary,
)
from shared.utils.exceptions import Conflict, Forbidden, InvalidOperation, NotFound

router = APIRouter(prefix="/api/interests", tags=["Interests"])


# ── Helpers ───────────────────────────────────────────────────

def _enrich(
    interest: Interest,
    profile: Optional[Profile] = None,
    user: Optional[User] = None,
) -> InterestResponse:
    return InterestResponse.model_validate(interest).model_copy(
        update={
            "profile": ProfileSummary.model_validate(profile) if profile else None,
            "user": UserSummary.model_validate(user) if user else None,
        }
    )


async def _get_approved_profile_of(user: User, db: AsyncSession) -> Profile:
    profile = await db.scalar(
        select(Profile).where(
            Profile.submitted_by_id == user.id,
            Profile.status == ProfileStatus.APPROVED,
        )
    )
    if not profile:
        raise NotFound("No approved profile found")
    return profile


# ── Endpoints ─────────────────────────────────────────────────

@router.post(
    "",
    response_model=ApiResponse[InterestResponse],
    status_code=status.HTTP_201_CREATED,
)
async def express_interest(
    data: ExpressInterestRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Express interest in an approved profile.
    - Not in your own profile
    - One active interest per (user, profile); the partial unique index
      uq_interests_active_pair catches concurrent duplicates
    """
    profile = await db.scalar(
        select(Profile).where(
            Profile.id == data.profile_id,
            Profile.status == ProfileStatus.APPROVED,
        )
    )
    if not profile:
        raise NotFound("Profile not found or not approved")
    if profile.submitted_by_id == current_user.id:
        raise InvalidOperation("Cannot express interest in your own profile")

    existing = await db.scalar(
        select(Interest.id).where(
            Interest.interested_user_id == current_user.id,
            Interest.target_profile_id == data.profile_id,
            Interest.is_active.is_(True),
        )
    )
    if existing:
        raise Conflict("Interest already expressed for this profile")

    interest = Interest(
        interested_user_id=current_user.id,
        target_profile_id=data.profile_id,
        notes=data.notes,
        is_active=True,
    )
    db.add(interest)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise Conflict("Interest already expressed for this profile")

    await db.refresh(interest)
    return ApiResponse(
        data=InterestResponse.model_validate(interest),
        message="Interest expressed successfully",
    )


@router.delete("/{interest_id}", response_model=ApiResponse[None])
async def withdraw_interest(
    interest_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Soft-delete: the row stays, is_active goes False."""
    interest = await db.scalar(select(Interest).where(Interest.id == interest_id))
    if not interest:
        raise NotFound("Interest not found")
    if interest.interested_user_id != current_user.id:
        raise Forbidden("Not authorized to withdraw this interest")

    if interest.is_active:
        interest.is_active = False
        await db.commit()
    return ApiResponse(message="Interest withdrawn successfully")


@router.get("/my", response_model=ApiResponse[List[InterestResponse]])
async def get_my_interests(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Active interests the caller has expressed, newest first, with a target profile summary."""
    result = await db.execute(
        select(Interest, Profile)
        .join(Profile, Profile.id == Interest.target_profile_id)
        .where(
            Interest.interested_user_id == current_user.id,
            Interest.is_active.is_(True),
        )
        .order_by(Interest.created_at.desc())
    )
    return ApiResponse(data=[_enrich(i, profile=p) for i, p in result.all()])


@router.get("/received", response_model=ApiResponse[List[InterestResponse]])
async def get_received_interests(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Active interests in the caller's approved profile, with who expressed them."""
    my_profile = await _get_approved_profile_of(current_user, db)

    result = await db.execute(
        select(Interest, User)
        .join(User, User.id == Interest.interested_user_id)
        .where(
            Interest.target_profile_id == my_profile.id,
            Interest.is_active.is_(True),
        )
        .order_by(Interest.created_at.desc())
    )
    return ApiResponse(data=[_enrich(i, user=u) for i, u in result.all()])


@router.get("/mutual", response_model=ApiResponse[List[InterestResponse]])
async def get_mutual_interests(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    The caller's active interests in profile B where B's owner also has an
    active interest in the caller's approved profile. The reverse interest
    must come from B's owner; any other admirer does not make a match.
    """
    my_profile = await _get_approved_profile_of(current_user, db)
    reverse = aliased(Interest)

    result = await db.execute(
        select(Interest, Profile)
        .join(Profile, Profile.id == Interest.target_profile_id)
        .join(
            reverse,
            and_(
                reverse.interested_user_id == Profile.submitted_by_id,
                reverse.target_profile_id == my_profile.id,
                reverse.is_active.is_(True),
            ),
        )
        .where(
            Interest.interested_user_id == current_user.id,
            Interest.is_active.is_(True),
        )
        .order_by(Interest.created_at.desc())
    )
    return ApiResponse(data=[_enrich(i, profile=p) for i, p in result.all()])
