"""
tests/test_schemas.py
Biodata validation rules and the validation error message mapping.
"""

import uuid
from datetime import date, datetime

import pytest
from pydantic import ValidationError

from shared.schemas.schemas import (
    ProfileFormData,
    ProfileResponse,
    RegisterRequest,
    UpdateRoleRequest,
    describe_validation_error,
)
from tests.conftest import biodata


def first_error(model, payload) -> str:
    with pytest.raises(ValidationError) as exc:
        model.model_validate(payload)
    return describe_validation_error(exc.value.errors())


def test_valid_biodata_accepted():
    form = ProfileFormData.model_validate(biodata())
    assert form.name == "Ayesha Rahman"
    assert form.date_of_birth == date(1996, 4, 12)


def test_to_columns_stores_siblings_as_camel_json():
    columns = ProfileFormData.model_validate(biodata()).to_columns()
    assert columns["siblings"] == [
        {"gender": "MALE", "age": 31, "maritalStatus": "DIVORCED", "profession": "Doctor"}
    ]
    assert columns["gender"] == "FEMALE"
    assert "submitted_by_id" not in columns


def test_to_columns_without_siblings():
    columns = ProfileFormData.model_validate(biodata(siblings=None)).to_columns()
    assert columns["siblings"] is None


@pytest.mark.parametrize(
    "overrides, message",
    [
        ({"profession": "Other"}, "Please specify your profession"),
        ({"immigrationStatus": "OTHER"}, "Please provide immigration details"),
        ({"educationYear": 1975}, f"Education year must be between 1980 and {date.today().year}"),
        ({"aboutSpouse": "short"}, "Please write at least 50 characters about your ideal spouse"),
        ({"citizenship": ""}, "Citizenship is required"),
    ],
)
def test_biodata_rule_messages(overrides, message):
    assert first_error(ProfileFormData, biodata(**overrides)) == message


@pytest.mark.parametrize(
    "overrides",
    [
        {"profession": "Other", "professionOther": "Calligrapher"},
        {"immigrationStatus": "OTHER", "immigrationDetails": "Refugee claimant"},
        {"hasPets": True, "petDetails": "One cat"},
        {"educationDegree": "Other", "educationDegreeOther": "Hafiz"},
    ],
)
def test_conditional_fields_satisfied(overrides):
    ProfileFormData.model_validate(biodata(**overrides))


def test_sibling_age_bounds():
    payload = biodata(siblings=[{"gender": "MALE", "age": 200, "maritalStatus": "NEVER_MARRIED"}])
    assert first_error(ProfileFormData, payload).startswith("siblings.0.age:")


def test_missing_required_field():
    payload = biodata()
    del payload["fatherOccupation"]
    assert first_error(ProfileFormData, payload) == "Father occupation is required"


def test_register_messages():
    assert first_error(RegisterRequest, {"email": "x", "password": "longenough"}) == "Invalid email format"
    assert (
        first_error(RegisterRequest, {"email": "a@b.com", "password": "1234567"})
        == "Password must be at least 8 characters long"
    )


def test_update_role_only_assignable_roles():
    assert UpdateRoleRequest(role="PARENT_RELATIVE").role == "PARENT_RELATIVE"
    assert first_error(UpdateRoleRequest, {"role": "CANDIDATE"}) == "Invalid role"


def test_describe_validation_error_fallbacks():
    assert describe_validation_error([]) == "Validation error"
    assert (
        describe_validation_error([{"type": "missing", "loc": ("body",), "msg": "Field required"}])
        == "Request body is required"
    )
    assert (
        describe_validation_error(
            [{"type": "int_parsing", "loc": ("query", "minAge"), "msg": "Input should be a valid integer"}]
        )
        == "minAge: Input should be a valid integer"
    )


def test_profile_response_does_not_rerun_input_rules():
    # A stored row may predate the current input rules
    stored = biodata(hasParentConsent=False, agreedToTerms=False, educationYear=1975, hasPets=True, petDetails=None)
    stored.update(
        id=str(uuid.uuid4()),
        status="APPROVED",
        submittedById=str(uuid.uuid4()),
        createdAt=datetime(2020, 1, 1).isoformat(),
        updatedAt=datetime(2020, 1, 1).isoformat(),
    )

    response = ProfileResponse.model_validate(stored)
    assert response.education_year == 1975
    assert response.has_parent_consent is False

    with pytest.raises(ValidationError):
        ProfileFormData.model_validate(stored)
