"""
tests/test_admin.py
Tests for admin-only endpoints: approval queue, user roles, stats, action log.
"""

import uuid

import pytest
from httpx import AsyncClient
from sqlalchemy import select

from shared.models.models import (
    AdminAction,
    AdminActionType,
    Profile,
    ProfileStatus,
    User,
    UserRole,
)
from tests.conftest import auth_headers, make_profile, make_user, reload


# ── Access Control ─────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_parent_cannot_access_admin_endpoints(client: AsyncClient, parent_user: User):
    response = await client.get("/api/admin/profiles/pending", headers=auth_headers(parent_user))
    assert response.status_code == 403
    assert response.json()["error"] == "Insufficient permissions"


@pytest.mark.asyncio
async def test_unauthenticated_cannot_access_admin(client: AsyncClient):
    response = await client.get("/api/admin/stats")
    assert response.status_code == 401


# ── Approval Queue ─────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_pending_queue_oldest_first(
    client: AsyncClient, db, admin_user: User, parent_user: User, other_user: User
):
    await make_profile(db, parent_user, status=ProfileStatus.PENDING, name="First In")
    await make_profile(db, other_user, status=ProfileStatus.PENDING, name="Second In")
    third = await make_user(db, "third@example.com")
    await make_profile(db, third, status=ProfileStatus.APPROVED, name="Already Live")

    response = await client.get("/api/admin/profiles/pending", headers=auth_headers(admin_user))
    assert response.status_code == 200
    data = response.json()["data"]
    assert [p["name"] for p in data] == ["First In", "Second In"]
    assert data[0]["submittedBy"]["email"] == parent_user.email


@pytest.mark.asyncio
async def test_approve_profile(client: AsyncClient, db, admin_user: User, parent_user: User):
    profile = await make_profile(db, parent_user, status=ProfileStatus.PENDING)

    response = await client.post(
        f"/api/admin/profiles/{profile.id}/approve",
        json={"notes": "Looks complete"},
        headers=auth_headers(admin_user),
    )
    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "Profile approved successfully"
    assert body["data"]["status"] == "APPROVED"
    assert body["data"]["publishedAt"] is not None

    # Now publicly visible
    listing = await client.get("/api/profiles")
    assert [p["id"] for p in listing.json()["data"]] == [str(profile.id)]

    # Action recorded
    actions = await client.get("/api/admin/actions", headers=auth_headers(admin_user))
    logged = actions.json()["data"]
    assert len(logged) == 1
    assert logged[0]["action"] == "APPROVE_PROFILE"
    assert logged[0]["adminId"] == str(admin_user.id)
    assert logged[0]["profile"] == {"id": str(profile.id), "name": profile.name}
    assert logged[0]["notes"] == "Looks complete"


@pytest.mark.asyncio
async def test_reject_profile(client: AsyncClient, db, admin_user: User, parent_user: User):
    profile = await make_profile(db, parent_user, status=ProfileStatus.PENDING)

    response = await client.post(
        f"/api/admin/profiles/{profile.id}/reject",
        json={"reason": "Missing education details"},
        headers=auth_headers(admin_user),
    )
    assert response.status_code == 200
    assert response.json()["data"]["status"] == "REJECTED"
    assert response.json()["data"]["rejectionReason"] == "Missing education details"

    action = await db.scalar(select(AdminAction))
    assert action.action == AdminActionType.REJECT_PROFILE
    assert action.reason == "Missing education details"


@pytest.mark.asyncio
async def test_reject_requires_reason(client: AsyncClient, db, admin_user: User, parent_user: User):
    profile = await make_profile(db, parent_user, status=ProfileStatus.PENDING)

    response = await client.post(
        f"/api/admin/profiles/{profile.id}/reject",
        json={"reason": "   "},
        headers=auth_headers(admin_user),
    )
    assert response.status_code == 400
    assert response.json()["error"] == "Rejection reason is required"

    profile = await reload(db, Profile, profile.id)
    assert profile.status == ProfileStatus.PENDING


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "status", [ProfileStatus.APPROVED, ProfileStatus.REJECTED, ProfileStatus.WITHDRAWN]
)
@pytest.mark.parametrize("decision", ["approve", "reject"])
async def test_decision_requires_pending(
    client: AsyncClient, db, admin_user: User, parent_user: User, status, decision
):
    profile = await make_profile(db, parent_user, status=status)

    response = await client.post(
        f"/api/admin/profiles/{profile.id}/{decision}",
        json={"reason": "Not suitable"},
        headers=auth_headers(admin_user),
    )
    assert response.status_code == 400
    assert response.json()["error"] == "Profile is not pending approval"

    profile = await reload(db, Profile, profile.id)
    assert profile.status == status
    assert await db.scalar(select(AdminAction)) is None


@pytest.mark.asyncio
async def test_approve_without_body(client: AsyncClient, db, admin_user: User, parent_user: User):
    profile = await make_profile(db, parent_user, status=ProfileStatus.PENDING)

    response = await client.post(
        f"/api/admin/profiles/{profile.id}/approve",
        headers=auth_headers(admin_user),
    )
    assert response.status_code == 200
    assert response.json()["data"]["status"] == "APPROVED"

    action = await db.scalar(select(AdminAction))
    assert action.action == AdminActionType.APPROVE_PROFILE
    assert action.notes is None


@pytest.mark.asyncio
async def test_approve_missing_profile(client: AsyncClient, admin_user: User):
    response = await client.post(
        f"/api/admin/profiles/{uuid.uuid4()}/approve",
        json={},
        headers=auth_headers(admin_user),
    )
    assert response.status_code == 404
    assert response.json()["error"] == "Profile not found"


# ── Users & Roles ──────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_list_users_newest_first(client: AsyncClient, admin_user: User, parent_user: User):
    response = await client.get("/api/admin/users", headers=auth_headers(admin_user))
    assert response.status_code == 200
    emails = [u["email"] for u in response.json()["data"]]
    assert emails == [parent_user.email, admin_user.email]
    assert "passwordHash" not in response.json()["data"][0]


@pytest.mark.asyncio
async def test_promote_user_to_admin(client: AsyncClient, db, admin_user: User, parent_user: User):
    response = await client.patch(
        f"/api/admin/users/{parent_user.id}/role",
        json={"role": "ADMIN"},
        headers=auth_headers(admin_user),
    )
    assert response.status_code == 200
    assert response.json()["data"]["role"] == "ADMIN"

    user = await reload(db, User, parent_user.id)
    assert user.role == UserRole.ADMIN

    action = await db.scalar(select(AdminAction))
    assert action.action == AdminActionType.UPDATE_USER_ROLE
    assert action.notes == "Changed role to ADMIN"
    assert action.profile_id is None


@pytest.mark.asyncio
@pytest.mark.parametrize("role", ["CANDIDATE", "SUPERUSER", ""])
async def test_unassignable_roles_rejected(
    client: AsyncClient, admin_user: User, parent_user: User, role
):
    response = await client.patch(
        f"/api/admin/users/{parent_user.id}/role",
        json={"role": role},
        headers=auth_headers(admin_user),
    )
    assert response.status_code == 400
    assert response.json()["error"] == "Invalid role"


@pytest.mark.asyncio
async def test_update_role_unknown_user(client: AsyncClient, admin_user: User):
    response = await client.patch(
        f"/api/admin/users/{uuid.uuid4()}/role",
        json={"role": "ADMIN"},
        headers=auth_headers(admin_user),
    )
    assert response.status_code == 404
    assert response.json()["error"] == "User not found"


# ── Dashboard ──────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_stats(client: AsyncClient, db, admin_user: User, parent_user: User, other_user: User):
    third = await make_user(db, "third@example.com")
    await make_profile(db, parent_user, status=ProfileStatus.PENDING)
    approved = await make_profile(db, other_user, status=ProfileStatus.APPROVED)
    await make_profile(db, third, status=ProfileStatus.REJECTED)

    await client.post(
        "/api/interests",
        json={"profileId": str(approved.id)},
        headers=auth_headers(parent_user),
    )

    response = await client.get("/api/admin/stats", headers=auth_headers(admin_user))
    assert response.status_code == 200
    assert response.json()["data"] == {
        "totalUsers": 4,
        "totalProfiles": 3,
        "pendingProfiles": 1,
        "approvedProfiles": 1,
        "rejectedProfiles": 1,
        "activeInterests": 1,
    }
