"""
services/admin/router.py
Admin-only endpoints: profile approval queue, user roles,
dashboard counters, and the admin action log.

State changes are committed first; the audit record is appended
afterwards on a best-effort basis (see services/admin/audit.py).
"""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from config.database import get_db
from services.admin.audit import record_admin_action
from shared.middleware.auth import require_admin
from shared.models.models import (
    AdminAction,
    AdminActionType,
    Interest,
    Profile,
    ProfileStatus,
    User,
    UserRole,
    utcnow,
)
from shared.schemas.schemas import (
    AdminActionResponse,
    AdminStatsResponse,
    ApiResponse,
    ApproveProfileRequest,
    PendingProfileResponse,
    ProfileResponse,
    RejectProfileRequest,
    UpdateRoleRequest,
    UserResponse,
)
from shared.utils.exceptions import InvalidState, NotFound

router = APIRouter(prefix="/api/admin", tags=["Admin"])

ACTION_LOG_LIMIT = 100


# ── Helpers ────────────────────────────────────────────────────────────────────

async def _get_profile_or_404(profile_id: UUID, db: AsyncSession) -> Profile:
    profile = await db.scalar(select(Profile).where(Profile.id == profile_id))
    if not profile:
        raise NotFound("Profile not found")
    return profile


async def _transition_from_pending(
    db: AsyncSession,
    profile: Profile,
    **values,
) -> Profile:
    """
    Move a PENDING profile to a new status with a conditional update, so two
    admins acting at once cannot both succeed.
    """
    if profile.status != ProfileStatus.PENDING:
        raise InvalidState("Profile is not pending approval")

    result = await db.execute(
        update(Profile)
        .where(Profile.id == profile.id, Profile.status == ProfileStatus.PENDING)
        .values(updated_at=utcnow(), **values)
    )
    if result.rowcount == 0:
        await db.rollback()
        raise InvalidState("Profile is not pending approval")

    await db.commit()
    await db.refresh(profile)
    return profile


# ── Approval Queue ─────────────────────────────────────────────────────────────

@router.get("/profiles/pending", response_model=ApiResponse[List[PendingProfileResponse]])
async def get_pending_profiles(
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Profiles awaiting review, oldest first (FIFO queue), with the submitter's account."""
    result = await db.execute(
        select(Profile)
        .options(selectinload(Profile.submitted_by))
        .where(Profile.status == ProfileStatus.PENDING)
        .order_by(Profile.created_at.asc())
    )
    return ApiResponse(
        data=[PendingProfileResponse.model_validate(p) for p in result.scalars()]
    )


@router.post("/profiles/{profile_id}/approve", response_model=ApiResponse[ProfileResponse])
async def approve_profile(
    profile_id: UUID,
    data: Optional[ApproveProfileRequest] = None,
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Publish a pending profile. Stamps publishedAt."""
    profile = await _get_profile_or_404(profile_id, db)
    profile = await _transition_from_pending(
        db,
        profile,
        status=ProfileStatus.APPROVED,
        published_at=utcnow(),
    )
    body = ProfileResponse.model_validate(profile)

    await record_admin_action(
        db,
        AdminActionType.APPROVE_PROFILE,
        admin_id=current_user.id,
        profile_id=profile_id,
        notes=data.notes if data else None,
    )
    return ApiResponse(data=body, message="Profile approved successfully")


@router.post("/profiles/{profile_id}/reject", response_model=ApiResponse[ProfileResponse])
async def reject_profile(
    profile_id: UUID,
    data: RejectProfileRequest,
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Reject a pending profile with a reason. The owner may edit and resubmit."""
    profile = await _get_profile_or_404(profile_id, db)
    profile = await _transition_from_pending(
        db,
        profile,
        status=ProfileStatus.REJECTED,
        rejection_reason=data.reason,
    )
    body = ProfileResponse.model_validate(profile)

    await record_admin_action(
        db,
        AdminActionType.REJECT_PROFILE,
        admin_id=current_user.id,
        profile_id=profile_id,
        reason=data.reason,
        notes=data.notes,
    )
    return ApiResponse(data=body, message="Profile rejected successfully")


# ── Dashboard ──────────────────────────────────────────────────────────────────

@router.get("/stats", response_model=ApiResponse[AdminStatsResponse])
async def get_stats(
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """
    Dashboard counters. Six independent reads, not a snapshot: under
    concurrent writes the numbers may not add up exactly.
    """
    def count_profiles(status: ProfileStatus):
        return select(func.count(Profile.id)).where(Profile.status == status)

    total_users = await db.scalar(select(func.count(User.id)))
    total_profiles = await db.scalar(select(func.count(Profile.id)))
    pending_profiles = await db.scalar(count_profiles(ProfileStatus.PENDING))
    approved_profiles = await db.scalar(count_profiles(ProfileStatus.APPROVED))
    rejected_profiles = await db.scalar(count_profiles(ProfileStatus.REJECTED))
    active_interests = await db.scalar(
        select(func.count(Interest.id)).where(Interest.is_active.is_(True))
    )

    return ApiResponse(
        data=AdminStatsResponse(
            total_users=total_users or 0,
            total_profiles=total_profiles or 0,
            pending_profiles=pending_profiles or 0,
            approved_profiles=approved_profiles or 0,
            rejected_profiles=rejected_profiles or 0,
            active_interests=active_interests or 0,
        )
    )


# ── Users & Roles ──────────────────────────────────────────────────────────────

@router.get("/users", response_model=ApiResponse[List[UserResponse]])
async def list_users(
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(select(User).order_by(User.created_at.desc()))
    return ApiResponse(data=[UserResponse.model_validate(u) for u in result.scalars()])


@router.patch("/users/{user_id}/role", response_model=ApiResponse[UserResponse])
async def update_user_role(
    user_id: UUID,
    data: UpdateRoleRequest,
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Promote to ADMIN or set back to PARENT_RELATIVE. No other role can be assigned."""
    user = await db.scalar(select(User).where(User.id == user_id))
    if not user:
        raise NotFound("User not found")

    user.role = UserRole(data.role)
    await db.commit()
    await db.refresh(user)
    body = UserResponse.model_validate(user)

    await record_admin_action(
        db,
        AdminActionType.UPDATE_USER_ROLE,
        admin_id=current_user.id,
        notes=f"Changed role to {data.role}",
    )
    return ApiResponse(data=body, message="User role updated successfully")


# ── Action Log ─────────────────────────────────────────────────────────────────

@router.get("/actions", response_model=ApiResponse[List[AdminActionResponse]])
async def get_admin_actions(
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Most recent admin actions, newest first. Append-only, never editable."""
    result = await db.execute(
        select(AdminAction)
        .options(selectinload(AdminAction.admin), selectinload(AdminAction.profile))
        .order_by(AdminAction.created_at.desc())
        .limit(ACTION_LOG_LIMIT)
    )
    return ApiResponse(
        data=[AdminActionResponse.model_validate(a) for a in result.scalars()]
    )
