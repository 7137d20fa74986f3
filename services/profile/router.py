"""
services/profile/router.py
Biodata profile lifecycle.
States: PENDING → APPROVED | REJECTED (admin)
        PENDING | APPROVED | REJECTED → PENDING (owner edits, needs re-approval)
        any non-withdrawn → WITHDRAWN (owner, terminal)

Only APPROVED profiles are visible to anyone but their owner.
"""

import logging
from datetime import date
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import case, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from config.database import get_db
from shared.middleware.auth import get_current_user
from shared.models.models import (
    Gender,
    ImmigrationStatus,
    MaritalStatus,
    Profile,
    ProfileStatus,
    ReligiousPracticeLevel,
    User,
)
from shared.schemas.schemas import ApiResponse, ProfileFormData, ProfileResponse
from shared.utils.exceptions import Conflict, Forbidden, InvalidState, NotFound

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/profiles", tags=["Profiles"])


# ── Helpers ───────────────────────────────────────────────────

def _years_ago(years: int, today: Optional[date] = None) -> date:
    today = today or date.today()
    try:
        return today.replace(year=today.year - years)
    except ValueError:  # Feb 29 in a non-leap target year
        return today.replace(year=today.year - years, day=28)


async def _get_owned_profile(
    profile_id: UUID,
    current_user: User,
    db: AsyncSession,
    verb: str,
) -> Profile:
    profile = await db.scalar(select(Profile).where(Profile.id == profile_id))
    if not profile:
        raise NotFound("Profile not found")
    if profile.submitted_by_id != current_user.id:
        raise Forbidden(f"Not authorized to {verb} this profile")
    return profile


# ── Public listing ────────────────────────────────────────────

@router.get("", response_model=ApiResponse[List[ProfileResponse]])
async def list_profiles(
    gender: Optional[Gender] = Query(None),
    min_age: Optional[int] = Query(None, alias="minAge", ge=18, le=100),
    max_age: Optional[int] = Query(None, alias="maxAge", ge=18, le=100),
    education: Optional[str] = Query(None, max_length=255),
    country: Optional[str] = Query(None, max_length=100),
    immigration_status: Optional[ImmigrationStatus] = Query(None, alias="immigrationStatus"),
    religious_practice: Optional[ReligiousPracticeLevel] = Query(None, alias="religiousPractice"),
    marital_status: Optional[MaritalStatus] = Query(None, alias="maritalStatus"),
    db: AsyncSession = Depends(get_db),
):
    """Public: approved profiles, newest first, with optional filters."""
    query = (
        select(Profile)
        .where(Profile.status == ProfileStatus.APPROVED)
        .order_by(Profile.created_at.desc())
    )

    if gender:
        query = query.where(Profile.gender == gender)
    if min_age is not None:
        query = query.where(Profile.date_of_birth <= _years_ago(min_age))
    if max_age is not None:
        query = query.where(Profile.date_of_birth > _years_ago(max_age + 1))
    if education:
        query = query.where(func.lower(Profile.education_degree) == education.strip().lower())
    if country:
        query = query.where(Profile.current_residence.ilike(f"%{country.strip()}%"))
    if immigration_status:
        query = query.where(Profile.immigration_status == immigration_status)
    if religious_practice:
        query = query.where(Profile.religious_practice == religious_practice)
    if marital_status:
        query = query.where(Profile.marital_status == marital_status)

    result = await db.execute(query)
    return ApiResponse(data=[ProfileResponse.model_validate(p) for p in result.scalars()])


# ── Owner operations ──────────────────────────────────────────

@router.post(
    "",
    response_model=ApiResponse[ProfileResponse],
    status_code=status.HTTP_201_CREATED,
)
async def create_profile(
    data: ProfileFormData,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Submit a biodata profile for review.
    - One live (non-withdrawn) profile per user; the partial unique index
      uq_profiles_live_owner catches concurrent submissions
    - Always starts PENDING
    """
    existing = await db.scalar(
        select(Profile.id).where(
            Profile.submitted_by_id == current_user.id,
            Profile.status != ProfileStatus.WITHDRAWN,
        )
    )
    if existing:
        raise Conflict("User already has a profile")

    profile = Profile(
        **data.to_columns(),
        submitted_by_id=current_user.id,
        status=ProfileStatus.PENDING,
    )
    db.add(profile)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise Conflict("User already has a profile")

    await db.refresh(profile)
    logger.info(f"Profile {profile.id} submitted by user {current_user.id}")
    return ApiResponse(
        data=ProfileResponse.model_validate(profile),
        message="Profile created successfully and submitted for review",
    )


@router.get("/my", response_model=ApiResponse[Optional[ProfileResponse]])
async def get_my_profile(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """The caller's own profile in any status, or null. A live profile wins over withdrawn ones."""
    profile = await db.scalar(
        select(Profile)
        .where(Profile.submitted_by_id == current_user.id)
        .order_by(
            case((Profile.status == ProfileStatus.WITHDRAWN, 1), else_=0),
            Profile.created_at.desc(),
        )
        .limit(1)
    )
    return ApiResponse(data=ProfileResponse.model_validate(profile) if profile else None)


@router.get("/{profile_id}", response_model=ApiResponse[ProfileResponse])
async def get_profile(
    profile_id: UUID,
    db: AsyncSession = Depends(get_db),
):
    """Public: a single profile, only while APPROVED. Other states look absent."""
    profile = await db.scalar(
        select(Profile).where(
            Profile.id == profile_id,
            Profile.status == ProfileStatus.APPROVED,
        )
    )
    if not profile:
        raise NotFound("Profile not found")
    return ApiResponse(data=ProfileResponse.model_validate(profile))


@router.put("/{profile_id}", response_model=ApiResponse[ProfileResponse])
async def update_profile(
    profile_id: UUID,
    data: ProfileFormData,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Replace all biodata fields. The profile drops back to PENDING and any
    previous approval or rejection is discarded.
    """
    profile = await _get_owned_profile(profile_id, current_user, db, "update")
    if profile.status == ProfileStatus.WITHDRAWN:
        raise InvalidState("Profile has been withdrawn")

    for field, value in data.to_columns().items():
        setattr(profile, field, value)
    profile.status = ProfileStatus.PENDING
    profile.rejection_reason = None
    profile.published_at = None

    await db.commit()
    await db.refresh(profile)
    return ApiResponse(
        data=ProfileResponse.model_validate(profile),
        message="Profile updated successfully and resubmitted for review",
    )


@router.delete("/{profile_id}", response_model=ApiResponse[None])
async def withdraw_profile(
    profile_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Withdraw (soft delete). Withdrawing an already withdrawn profile is a no-op."""
    profile = await _get_owned_profile(profile_id, current_user, db, "delete")
    if profile.status != ProfileStatus.WITHDRAWN:
        profile.status = ProfileStatus.WITHDRAWN
        await db.commit()
    return ApiResponse(message="Profile withdrawn successfully")
