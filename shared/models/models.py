"""
shared/models/models.py
All SQLAlchemy ORM models for the Biodata Referral Platform.
UUID primary keys throughout; portable column types so the same models
run on PostgreSQL (asyncpg) and SQLite (aiosqlite).
"""

import uuid
from datetime import date, datetime, timezone
from enum import Enum as PyEnum
from typing import List, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Uuid,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from config.database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ── Enumerations ──────────────────────────────────────────────

class UserRole(str, PyEnum):
    ADMIN = "ADMIN"
    PARENT_RELATIVE = "PARENT_RELATIVE"
    CANDIDATE = "CANDIDATE"


class ProfileStatus(str, PyEnum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    WITHDRAWN = "WITHDRAWN"


class Gender(str, PyEnum):
    MALE = "MALE"
    FEMALE = "FEMALE"


class MaritalStatus(str, PyEnum):
    NEVER_MARRIED = "NEVER_MARRIED"
    DIVORCED = "DIVORCED"
    WIDOWED = "WIDOWED"


class Complexion(str, PyEnum):
    VERY_FAIR = "VERY_FAIR"
    FAIR = "FAIR"
    WHEATISH = "WHEATISH"
    BROWN = "BROWN"
    DARK = "DARK"


class ImmigrationStatus(str, PyEnum):
    CITIZEN = "CITIZEN"
    PERMANENT_RESIDENT = "PERMANENT_RESIDENT"
    TEMPORARY_VISA = "TEMPORARY_VISA"
    STUDENT_VISA = "STUDENT_VISA"
    WORK_VISA = "WORK_VISA"
    OTHER = "OTHER"


class ReligiousPracticeLevel(str, PyEnum):
    VERY_PRACTICING = "VERY_PRACTICING"
    PRACTICING = "PRACTICING"
    MODERATE = "MODERATE"
    BASIC = "BASIC"


class AdminActionType(str, PyEnum):
    APPROVE_PROFILE = "APPROVE_PROFILE"
    REJECT_PROFILE = "REJECT_PROFILE"
    UPDATE_USER_ROLE = "UPDATE_USER_ROLE"


# ── Mixins ────────────────────────────────────────────────────

class TimestampMixin:
    """Adds created_at and updated_at to any model."""
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )


# ── Models ────────────────────────────────────────────────────

class User(TimestampMixin, Base):
    """Account. Registered as PARENT_RELATIVE; only an admin changes the role."""
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[UserRole] = mapped_column(
        Enum(UserRole), nullable=False, default=UserRole.PARENT_RELATIVE
    )
    email_verified: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    profiles: Mapped[List["Profile"]] = relationship(back_populates="submitted_by")
    interests: Mapped[List["Interest"]] = relationship(back_populates="interested_user")

    __table_args__ = (Index("ix_users_role", "role"),)

    def __repr__(self) -> str:
        return f"<User {self.email} ({self.role})>"


class Profile(TimestampMixin, Base):
    """
    Biodata submitted by a user. Visible to others only while APPROVED.
    At most one non-withdrawn profile per submitting user.
    """
    __tablename__ = "profiles"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    # Basic info
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    gender: Mapped[Gender] = mapped_column(Enum(Gender), nullable=False)
    date_of_birth: Mapped[date] = mapped_column(Date, nullable=False)
    country_of_birth: Mapped[str] = mapped_column(String(100), nullable=False)
    height: Mapped[str] = mapped_column(String(50), nullable=False)
    complexion: Mapped[Complexion] = mapped_column(Enum(Complexion), nullable=False)

    # Education
    education_degree: Mapped[str] = mapped_column(String(255), nullable=False)
    education_degree_other: Mapped[Optional[str]] = mapped_column(String(255))
    education_subject: Mapped[str] = mapped_column(String(255), nullable=False)
    education_year: Mapped[int] = mapped_column(Integer, nullable=False)
    education_institute: Mapped[str] = mapped_column(String(255), nullable=False)

    # Profession
    profession: Mapped[str] = mapped_column(String(255), nullable=False)
    profession_other: Mapped[Optional[str]] = mapped_column(String(255))
    company: Mapped[Optional[str]] = mapped_column(String(255))

    marital_status: Mapped[MaritalStatus] = mapped_column(Enum(MaritalStatus), nullable=False)

    # Parents
    father_occupation: Mapped[str] = mapped_column(String(255), nullable=False)
    father_education: Mapped[Optional[str]] = mapped_column(String(255))
    mother_occupation: Mapped[str] = mapped_column(String(255), nullable=False)
    mother_education: Mapped[Optional[str]] = mapped_column(String(255))
    parents_location: Mapped[str] = mapped_column(String(255), nullable=False)

    # Current status
    current_residence: Mapped[str] = mapped_column(String(255), nullable=False)
    citizenship: Mapped[str] = mapped_column(String(100), nullable=False)
    immigration_status: Mapped[ImmigrationStatus] = mapped_column(
        Enum(ImmigrationStatus), nullable=False
    )
    immigration_details: Mapped[Optional[str]] = mapped_column(Text)

    willing_to_relocate: Mapped[bool] = mapped_column(Boolean, nullable=False)
    willing_to_live_with_in_laws: Mapped[bool] = mapped_column(Boolean, nullable=False)

    # Religious practice
    religious_practice: Mapped[ReligiousPracticeLevel] = mapped_column(
        Enum(ReligiousPracticeLevel), nullable=False
    )
    prays_five_time_daily: Mapped[bool] = mapped_column(Boolean, nullable=False)
    attends_mosque_regularly: Mapped[bool] = mapped_column(Boolean, nullable=False)
    halaal_earning: Mapped[bool] = mapped_column(Boolean, nullable=False)
    halaal_food: Mapped[bool] = mapped_column(Boolean, nullable=False)

    # Lifestyle
    drinks_alcohol: Mapped[bool] = mapped_column(Boolean, nullable=False)
    smokes: Mapped[bool] = mapped_column(Boolean, nullable=False)
    hobbies: Mapped[Optional[str]] = mapped_column(Text)
    has_pets: Mapped[bool] = mapped_column(Boolean, nullable=False)
    pet_details: Mapped[Optional[str]] = mapped_column(Text)

    # Spouse preferences
    spouse_age_range_min: Mapped[int] = mapped_column(Integer, nullable=False)
    spouse_age_range_max: Mapped[int] = mapped_column(Integer, nullable=False)
    spouse_education: Mapped[Optional[str]] = mapped_column(String(255))
    spouse_citizenship: Mapped[Optional[str]] = mapped_column(String(100))
    spouse_min_height: Mapped[Optional[str]] = mapped_column(String(50))

    about_you: Mapped[str] = mapped_column(Text, nullable=False)
    about_spouse: Mapped[str] = mapped_column(Text, nullable=False)
    siblings: Mapped[Optional[list]] = mapped_column(JSON)  # [{gender, age, maritalStatus, profession}]

    has_parent_consent: Mapped[bool] = mapped_column(Boolean, nullable=False)
    agreed_to_terms: Mapped[bool] = mapped_column(Boolean, nullable=False)

    # Lifecycle
    status: Mapped[ProfileStatus] = mapped_column(
        Enum(ProfileStatus), nullable=False, default=ProfileStatus.PENDING
    )
    rejection_reason: Mapped[Optional[str]] = mapped_column(Text)
    published_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    submitted_by_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )

    submitted_by: Mapped["User"] = relationship(back_populates="profiles")

    __table_args__ = (
        Index("ix_profiles_status_created", "status", "created_at"),
        Index("ix_profiles_submitted_by_id", "submitted_by_id"),
        # One live profile per user; withdrawn ones don't count
        Index(
            "uq_profiles_live_owner",
            "submitted_by_id",
            unique=True,
            postgresql_where=text("status <> 'WITHDRAWN'"),
            sqlite_where=text("status <> 'WITHDRAWN'"),
        ),
    )

    def __repr__(self) -> str:
        return f"<Profile {self.name} ({self.status})>"


class Interest(TimestampMixin, Base):
    """Directed, revocable edge: interested user → target profile. Soft-deleted via is_active."""
    __tablename__ = "interests"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    interested_user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    target_profile_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text)

    interested_user: Mapped["User"] = relationship(back_populates="interests")
    target_profile: Mapped["Profile"] = relationship()

    __table_args__ = (
        Index("ix_interests_target_active", "target_profile_id", "is_active"),
        Index("ix_interests_user_active", "interested_user_id", "is_active"),
        Index(
            "uq_interests_active_pair",
            "interested_user_id",
            "target_profile_id",
            unique=True,
            postgresql_where=text("is_active"),
            sqlite_where=text("is_active = 1"),
        ),
    )


class AdminAction(Base):
    """Immutable log of privileged actions."""
    __tablename__ = "admin_actions"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    action: Mapped[AdminActionType] = mapped_column(Enum(AdminActionType), nullable=False)
    reason: Mapped[Optional[str]] = mapped_column(Text)
    notes: Mapped[Optional[str]] = mapped_column(Text)
    admin_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id"), nullable=False)
    profile_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("profiles.id", ondelete="SET NULL")
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )

    admin: Mapped["User"] = relationship()
    profile: Mapped[Optional["Profile"]] = relationship()

    __table_args__ = (
        Index("ix_admin_actions_admin_id", "admin_id"),
        Index("ix_admin_actions_created_at", "created_at"),
    )
