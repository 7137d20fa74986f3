"""
tests/conftest.py
Shared fixtures: a throwaway SQLite database per test, fakeredis in place of
Redis, seeded users, and an httpx client bound to the ASGI app.
"""

import os
from typing import Optional

# Must be set before config.settings is imported
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["JWT_SECRET_KEY"] = "test-secret-key"
os.environ["ADMIN_EMAIL"] = ""
os.environ["ADMIN_PASSWORD"] = ""

import pytest
import pytest_asyncio
from fakeredis import aioredis as fake_aioredis
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

import config.database as database_module
from config.database import Base, get_db
from config.redis_client import get_redis
from main import app
from shared.models.models import Profile, ProfileStatus, User, UserRole
from shared.schemas.schemas import ProfileFormData
from shared.utils.security import create_access_token, hash_password

TEST_PASSWORD = "correct-horse-battery"
TEST_PASSWORD_HASH = hash_password(TEST_PASSWORD)


# ── Helpers ───────────────────────────────────────────────────

def auth_headers(user: User) -> dict:
    """Bearer header with a fresh access token for the given user."""
    token, _ = create_access_token(str(user.id), user.role.value, user.email)
    return {"Authorization": f"Bearer {token}"}


def biodata(**overrides) -> dict:
    """A complete, valid biodata payload (camelCase, as a client sends it)."""
    payload = {
        "name": "Ayesha Rahman",
        "gender": "FEMALE",
        "dateOfBirth": "1996-04-12",
        "countryOfBirth": "Bangladesh",
        "height": "5'4\"",
        "complexion": "WHEATISH",
        "educationDegree": "Masters",
        "educationSubject": "Computer Science",
        "educationYear": 2020,
        "educationInstitute": "University of Toronto",
        "profession": "Software Engineer",
        "company": "Shopify",
        "maritalStatus": "NEVER_MARRIED",
        "fatherOccupation": "Engineer",
        "fatherEducation": "Bachelors",
        "motherOccupation": "Pharmacist",
        "motherEducation": "Masters",
        "parentsLocation": "Toronto, Canada",
        "currentResidence": "Toronto, Canada",
        "citizenship": "Canadian",
        "immigrationStatus": "CITIZEN",
        "willingToRelocate": True,
        "willingToLiveWithInLaws": False,
        "religiousPractice": "PRACTICING",
        "praysFiveTimeDaily": True,
        "attendsMosqueRegularly": False,
        "halaalEarning": True,
        "halaalFood": True,
        "drinksAlcohol": False,
        "smokes": False,
        "hobbies": "Reading, hiking",
        "hasPets": False,
        "spouseAgeRangeMin": 27,
        "spouseAgeRangeMax": 34,
        "spouseEducation": "Bachelors or higher",
        "aboutYou": "I am a software engineer who loves reading, hiking and cooking with family.",
        "aboutSpouse": "Looking for someone kind, practicing and family oriented with a good sense of humour.",
        "siblings": [
            {"gender": "MALE", "age": 31, "maritalStatus": "DIVORCED", "profession": "Doctor"}
        ],
        "hasParentConsent": True,
        "agreedToTerms": True,
    }
    payload.update(overrides)
    return payload


async def make_profile(
    db: AsyncSession,
    owner: User,
    status: ProfileStatus = ProfileStatus.APPROVED,
    **overrides,
) -> Profile:
    """Insert a profile directly, bypassing the approval flow."""
    columns = ProfileFormData(**biodata(**overrides)).to_columns()
    profile = Profile(**columns, submitted_by_id=owner.id, status=status)
    db.add(profile)
    await db.commit()
    await db.refresh(profile)
    return profile


async def make_user(
    db: AsyncSession,
    email: str,
    role: UserRole = UserRole.PARENT_RELATIVE,
    email_verified: bool = True,
) -> User:
    user = User(
        email=email,
        password_hash=TEST_PASSWORD_HASH,
        role=role,
        email_verified=email_verified,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


async def reload(db: AsyncSession, model, pk) -> Optional[object]:
    """Read a row as the API last committed it."""
    return await db.get(model, pk, populate_existing=True)


# ── Fixtures ──────────────────────────────────────────────────

@pytest_asyncio.fixture
async def engine(tmp_path):
    """File-backed SQLite per test so app and test sessions use separate connections."""
    test_engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine, monkeypatch):
    factory = async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    # get_db_context (health check, admin seed) reads the module global
    monkeypatch.setattr(database_module, "AsyncSessionLocal", factory)
    return factory


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def redis():
    client = fake_aioredis.FakeRedis(decode_responses=True)
    yield client
    await client.flushall()
    await client.aclose()


@pytest_asyncio.fixture
async def client(session_factory, redis):
    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_redis] = lambda: redis

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def admin_user(db) -> User:
    return await make_user(db, "admin@example.com", role=UserRole.ADMIN)


@pytest_asyncio.fixture
async def parent_user(db) -> User:
    return await make_user(db, "parent@example.com")


@pytest_asyncio.fixture
async def other_user(db) -> User:
    return await make_user(db, "other@example.com")


@pytest.fixture
def valid_biodata() -> dict:
    return biodata()
