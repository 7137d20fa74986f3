"""
shared/schemas/schemas.py
All Pydantic v2 request/response schemas for the platform.
Field names are snake_case (matching ORM columns); JSON on the wire is camelCase.
"""

import uuid
from datetime import date, datetime
from typing import Any, Generic, List, Optional, Sequence, TypeVar

from pydantic import (
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

from shared.models.models import (
    AdminActionType,
    Complexion,
    Gender,
    ImmigrationStatus,
    MaritalStatus,
    ProfileStatus,
    ReligiousPracticeLevel,
    UserRole,
)

T = TypeVar("T")

OTHER = "Other"
ASSIGNABLE_ROLES = {UserRole.ADMIN.value, UserRole.PARENT_RELATIVE.value}


# ── Base ──────────────────────────────────────────────────────

class BaseSchema(BaseModel):
    model_config = ConfigDict(
        from_attributes=True,
        use_enum_values=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


class ApiResponse(BaseSchema, Generic[T]):
    """Envelope shared by every endpoint."""
    success: bool = True
    data: Optional[T] = None
    message: Optional[str] = None


# ── Validation messages ───────────────────────────────────────
# Human-readable message per wire field, used when a built-in constraint
# (missing, too short, wrong type) fails on that field.

FIELD_MESSAGES = {
    "email": "Invalid email format",
    "name": "Name must be at least 2 characters",
    "dateOfBirth": "Date of birth is required",
    "countryOfBirth": "Country of birth is required",
    "height": "Height is required",
    "educationDegree": "Education degree is required",
    "educationSubject": "Education subject is required",
    "educationInstitute": "Education institute is required",
    "profession": "Profession is required",
    "fatherOccupation": "Father occupation is required",
    "motherOccupation": "Mother occupation is required",
    "parentsLocation": "Parents location is required",
    "currentResidence": "Current residence is required",
    "citizenship": "Citizenship is required",
    "aboutYou": "Please write at least 50 characters about yourself",
    "aboutSpouse": "Please write at least 50 characters about your ideal spouse",
    "profileId": "Invalid profile ID",
    "reason": "Rejection reason is required",
}


def describe_validation_error(errors: Sequence[dict]) -> str:
    """Reduce a pydantic/FastAPI error list to the first violated rule's message."""
    if not errors:
        return "Validation error"
    err = errors[0]
    msg = err.get("msg", "Validation error")
    # Messages raised by our own validators win
    ctx_error = (err.get("ctx") or {}).get("error")
    if err.get("type") == "value_error" and ctx_error:
        return str(ctx_error)

    path = [str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path")]
    if not path:
        return "Request body is required" if err.get("type") == "missing" else msg
    if len(path) == 1 and path[0] in FIELD_MESSAGES:
        return FIELD_MESSAGES[path[0]]
    if err.get("type") == "value_error":
        return msg.removeprefix("Value error, ")
    return f"{'.'.join(path)}: {msg}"


# ── Auth / User ───────────────────────────────────────────────

class RegisterRequest(BaseSchema):
    email: EmailStr
    password: str

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        if len(v) < 8:
            raise ValueError("Password must be at least 8 characters long")
        return v


class LoginRequest(BaseSchema):
    email: EmailStr
    password: str

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        if not v:
            raise ValueError("Password is required")
        return v


class UserSummary(BaseSchema):
    id: uuid.UUID
    email: str


class UserResponse(BaseSchema):
    id: uuid.UUID
    email: str
    role: UserRole
    email_verified: bool
    created_at: datetime
    updated_at: datetime


class RegisterResponse(BaseSchema):
    id: uuid.UUID
    email: str


class LoginResponse(BaseSchema):
    user: UserResponse
    token: str
    token_type: str = "bearer"
    expires_in: int  # seconds


# ── Biodata ───────────────────────────────────────────────────

class SiblingInfo(BaseSchema):
    gender: Gender
    age: int = Field(..., ge=0, le=120)
    marital_status: MaritalStatus
    profession: Optional[str] = None


class ProfileFields(BaseSchema):
    """Biodata fields and their shape constraints, shared by requests and responses."""

    # Basic info
    name: str = Field(..., min_length=2, max_length=255)
    gender: Gender
    date_of_birth: date
    country_of_birth: str = Field(..., min_length=1, max_length=100)
    height: str = Field(..., min_length=1, max_length=50)
    complexion: Complexion

    # Education
    education_degree: str = Field(..., min_length=1, max_length=255)
    education_degree_other: Optional[str] = Field(None, max_length=255)
    education_subject: str = Field(..., min_length=1, max_length=255)
    education_year: int
    education_institute: str = Field(..., min_length=1, max_length=255)

    # Profession
    profession: str = Field(..., min_length=1, max_length=255)
    profession_other: Optional[str] = Field(None, max_length=255)
    company: Optional[str] = Field(None, max_length=255)

    marital_status: MaritalStatus

    # Parents
    father_occupation: str = Field(..., min_length=1, max_length=255)
    father_education: Optional[str] = Field(None, max_length=255)
    mother_occupation: str = Field(..., min_length=1, max_length=255)
    mother_education: Optional[str] = Field(None, max_length=255)
    parents_location: str = Field(..., min_length=1, max_length=255)

    # Current status
    current_residence: str = Field(..., min_length=1, max_length=255)
    citizenship: str = Field(..., min_length=1, max_length=100)
    immigration_status: ImmigrationStatus
    immigration_details: Optional[str] = Field(None, max_length=2000)

    willing_to_relocate: bool
    willing_to_live_with_in_laws: bool

    # Religious practice
    religious_practice: ReligiousPracticeLevel
    prays_five_time_daily: bool
    attends_mosque_regularly: bool
    halaal_earning: bool
    halaal_food: bool

    # Lifestyle
    drinks_alcohol: bool
    smokes: bool
    hobbies: Optional[str] = Field(None, max_length=2000)
    has_pets: bool
    pet_details: Optional[str] = Field(None, max_length=2000)

    # Spouse preferences
    spouse_age_range_min: int = Field(..., ge=18, le=65)
    spouse_age_range_max: int = Field(..., ge=18, le=65)
    spouse_education: Optional[str] = Field(None, max_length=255)
    spouse_citizenship: Optional[str] = Field(None, max_length=100)
    spouse_min_height: Optional[str] = Field(None, max_length=50)

    about_you: str = Field(..., min_length=50, max_length=5000)
    about_spouse: str = Field(..., min_length=50, max_length=5000)
    siblings: Optional[List[SiblingInfo]] = None

    has_parent_consent: bool
    agreed_to_terms: bool


class ProfileFormData(ProfileFields):
    """
    The full biodata contract. Every create and update re-validates all of it.

    Conditional rules:
    - educationDegree "Other"     → educationDegreeOther required
    - profession "Other"          → professionOther required
    - immigrationStatus OTHER     → immigrationDetails required
    - hasPets                     → petDetails required
    - spouseAgeRangeMin ≤ spouseAgeRangeMax
    """

    @field_validator("date_of_birth")
    @classmethod
    def validate_date_of_birth(cls, v: date) -> date:
        if v >= date.today():
            raise ValueError("Date of birth must be in the past")
        return v

    @field_validator("education_year")
    @classmethod
    def validate_education_year(cls, v: int) -> int:
        current_year = date.today().year
        if v < 1980 or v > current_year:
            raise ValueError(f"Education year must be between 1980 and {current_year}")
        return v

    @field_validator("has_parent_consent")
    @classmethod
    def validate_parent_consent(cls, v: bool) -> bool:
        if v is not True:
            raise ValueError("Parent consent is required")
        return v

    @field_validator("agreed_to_terms")
    @classmethod
    def validate_terms(cls, v: bool) -> bool:
        if v is not True:
            raise ValueError("You must agree to terms and conditions")
        return v

    @model_validator(mode="after")
    def validate_cross_field_rules(self) -> "ProfileFormData":
        if self.spouse_age_range_min > self.spouse_age_range_max:
            raise ValueError("Spouse minimum age cannot exceed maximum age")
        if self.education_degree == OTHER and not (self.education_degree_other or "").strip():
            raise ValueError("Please specify your education degree")
        if self.profession == OTHER and not (self.profession_other or "").strip():
            raise ValueError("Please specify your profession")
        if (
            self.immigration_status == ImmigrationStatus.OTHER
            and not (self.immigration_details or "").strip()
        ):
            raise ValueError("Please provide immigration details")
        if self.has_pets and not (self.pet_details or "").strip():
            raise ValueError("Please describe your pets")
        return self

    def to_columns(self) -> dict[str, Any]:
        """Column values for the profiles table (siblings stored as camelCase JSON)."""
        values = self.model_dump(exclude={"siblings"})
        values["siblings"] = (
            [s.model_dump(mode="json", by_alias=True) for s in self.siblings]
            if self.siblings
            else None
        )
        return values


class ProfileResponse(ProfileFields):
    id: uuid.UUID
    status: ProfileStatus
    rejection_reason: Optional[str] = None
    published_at: Optional[datetime] = None
    submitted_by_id: uuid.UUID
    created_at: datetime
    updated_at: datetime


class SubmitterSummary(UserSummary):
    created_at: datetime


class PendingProfileResponse(ProfileResponse):
    submitted_by: SubmitterSummary


# ── Interest ──────────────────────────────────────────────────

class ExpressInterestRequest(BaseSchema):
    profile_id: uuid.UUID
    notes: Optional[str] = Field(None, max_length=1000)


class ProfileSummary(BaseSchema):
    id: uuid.UUID
    name: str
    profession: str
    current_residence: str
    gender: Gender
    education_degree: str
    education_subject: str


class InterestResponse(BaseSchema):
    id: uuid.UUID
    interested_user_id: uuid.UUID
    target_profile_id: uuid.UUID
    is_active: bool
    notes: Optional[str]
    created_at: datetime
    updated_at: datetime
    # Joined
    profile: Optional[ProfileSummary] = None
    user: Optional[UserSummary] = None


# ── Admin ─────────────────────────────────────────────────────

class ApproveProfileRequest(BaseSchema):
    notes: Optional[str] = Field(None, max_length=1000)


class RejectProfileRequest(BaseSchema):
    reason: str = Field(..., min_length=1, max_length=1000)
    notes: Optional[str] = Field(None, max_length=1000)

    @field_validator("reason")
    @classmethod
    def validate_reason(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Rejection reason is required")
        return v


class UpdateRoleRequest(BaseSchema):
    role: str

    @field_validator("role")
    @classmethod
    def validate_role(cls, v: str) -> str:
        if v not in ASSIGNABLE_ROLES:
            raise ValueError("Invalid role")
        return v


class AdminStatsResponse(BaseSchema):
    total_users: int
    total_profiles: int
    pending_profiles: int
    approved_profiles: int
    rejected_profiles: int
    active_interests: int


class ProfileRef(BaseSchema):
    id: uuid.UUID
    name: str


class AdminActionResponse(BaseSchema):
    id: uuid.UUID
    action: AdminActionType
    reason: Optional[str]
    notes: Optional[str]
    admin_id: uuid.UUID
    profile_id: Optional[uuid.UUID]
    created_at: datetime
    admin: Optional[UserSummary] = None
    profile: Optional[ProfileRef] = None
