import os

# Settings are read once at import time
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("LOG_JSON", "false")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import uuid
from datetime import timedelta

import pytest
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

from vidshare.web.app.models import Base, User, Video, utcnow
from vidshare.web.app.security import hash_password

DEFAULT_PASSWORD = "secret123"


@pytest.fixture(scope="function")
async def db_engine():
    """
    In-memory database with the schema created from scratch for each test.
    StaticPool keeps every connection on the same in-memory database.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture(scope="function")
async def db_session(db_engine) -> AsyncSession:
    """Provide a database session for each test function."""
    session_factory = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def make_user(db_session: AsyncSession):
    """Factory for persisted users."""
    async def _make(username: str, **overrides) -> User:
        user = User(
            id=uuid.uuid4(),
            username=username.lower(),
            email=overrides.pop("email", f"{username.lower()}@example.com"),
            full_name=overrides.pop("full_name", username.title()),
            password_hash=hash_password(overrides.pop("password", DEFAULT_PASSWORD)),
            avatar_url=f"https://cdn.example.com/avatars/{username}.png",
            avatar_external_id=f"avatars/{username}",
            **overrides,
        )
        db_session.add(user)
        await db_session.commit()
        await db_session.refresh(user)
        return user
    return _make


@pytest.fixture
def make_video(db_session: AsyncSession):
    """Factory for persisted videos. ``age`` pushes created_at into the past."""
    async def _make(owner: User, title: str = "Test Video", age: int = 0, **overrides) -> Video:
        video_id = uuid.uuid4()
        video = Video(
            id=video_id,
            owner_id=owner.id,
            title=title,
            description=overrides.pop("description", f"{title} description"),
            video_file_url=f"https://cdn.example.com/videos/{video_id}.mp4",
            video_file_external_id=f"videos/{video_id}",
            thumbnail_url=f"https://cdn.example.com/thumbs/{video_id}.jpg",
            thumbnail_external_id=f"thumbs/{video_id}",
            duration=overrides.pop("duration", 120.0),
            views=overrides.pop("views", 0),
            is_published=overrides.pop("is_published", True),
            created_at=utcnow() - timedelta(seconds=age),
            **overrides,
        )
        db_session.add(video)
        await db_session.commit()
        await db_session.refresh(video)
        return video
    return _make


@pytest.fixture
async def alice(make_user) -> User:
    return await make_user("alice")


@pytest.fixture
async def bob(make_user) -> User:
    return await make_user("bob")


@pytest.fixture
async def carol(make_user) -> User:
    return await make_user("carol")
