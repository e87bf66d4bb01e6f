"""
Pytest configuration and fixtures for backend tests.

The app talks to MySQL in production; tests point DATABASE_URL at SQLite and
override get_db with a per-test file database so every test starts empty.
"""
import os
import tempfile

os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="feedback-uploads-")
os.environ["JWT_SECRET_KEY"] = "test-secret-key"

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import NullPool

from app.config.database import get_db
from app.main import app
from app.models.base import Base
from app.models.user import User, UserRole
from app.services.auth_service import create_access_token, hash_password

DEFAULT_PASSWORD = "Secret@123"

# bcrypt is deliberately slow; hash once and reuse for fixture accounts
_DEFAULT_HASH = hash_password(DEFAULT_PASSWORD)


@pytest_asyncio.fixture
async def session_factory(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", poolclass=NullPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)

    async def override_get_db():
        async with factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    yield factory
    app.dependency_overrides.pop(get_db, None)
    await engine.dispose()


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(session_factory):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture
def make_user(db):
    async def _make_user(name, email, role=UserRole.STUDENT, blocked=False):
        user = User(
            name=name,
            email=email,
            hashed_password=_DEFAULT_HASH,
            role=role,
            is_blocked=blocked,
            profile_image="",
        )
        db.add(user)
        await db.commit()
        return user

    return _make_user


def auth_headers(user):
    token = create_access_token(data={"user_id": user.id})
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def student(make_user):
    return await make_user("Alice Student", "alice@example.com")


@pytest_asyncio.fixture
async def other_student(make_user):
    return await make_user("Bob Student", "bob@example.com")


@pytest_asyncio.fixture
async def teacher(make_user):
    return await make_user("Tom Teacher", "tom@example.com", role=UserRole.TEACHER)


@pytest_asyncio.fixture
async def other_teacher(make_user):
    return await make_user("Tina Teacher", "tina@example.com", role=UserRole.TEACHER)


@pytest_asyncio.fixture
async def admin(make_user):
    return await make_user("Ada Admin", "ada@example.com", role=UserRole.ADMIN)


@pytest.fixture
def headers_for():
    return auth_headers
