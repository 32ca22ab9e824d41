import pytest
import pytest_asyncio
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker

from vidcom.database import Base
from vidcom.models.asset import Asset
from vidcom.models.experience import Experience
from vidcom.models.pair import Pair
from vidcom.models.session import Session
from vidcom.models.user import User

NOW = "2026-02-21T10:00:00+00:00"


@pytest_asyncio.fixture
async def db_session():
    engine = create_async_engine("sqlite+aiosqlite:///:memory:")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    session_maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_maker() as session:
        yield session
    await engine.dispose()


@pytest.mark.asyncio
async def test_create_user_defaults(db_session):
    user = User(id="u-001", email="admin@vidcom.test", password_hash="hashed", created_at=NOW)
    db_session.add(user)
    await db_session.commit()

    result = await db_session.get(User, "u-001")
    assert result.role == "admin"
    assert result.is_active == 1


@pytest.mark.asyncio
async def test_user_email_is_unique(db_session):
    db_session.add(User(id="u-1", email="a@b.c", password_hash="x", created_at=NOW))
    await db_session.commit()
    db_session.add(User(id="u-2", email="a@b.c", password_hash="y", created_at=NOW))

    with pytest.raises(IntegrityError):
        await db_session.commit()


@pytest.mark.asyncio
async def test_create_session(db_session):
    db_session.add(Session(token="tok", user_id="u-001", created_at=NOW, expires_at=NOW))
    await db_session.commit()

    result = await db_session.get(Session, "tok")
    assert result.user_id == "u-001"


@pytest.mark.asyncio
async def test_experiences_can_share_qr_id(db_session):
    db_session.add(Experience(id="e-1", name="A", qr_id="same123456", created_at=NOW, updated_at=NOW))
    db_session.add(Experience(id="e-2", name="B", qr_id="same123456", created_at=NOW, updated_at=NOW))
    await db_session.commit()

    assert (await db_session.get(Experience, "e-2")).is_active == 1


@pytest.mark.asyncio
async def test_create_pair_defaults(db_session):
    db_session.add(Experience(id="e-1", name="A", qr_id="abc1234567", created_at=NOW, updated_at=NOW))
    db_session.add(Asset(id="img", kind="image", storage_key="image/a/i.png", mime="image/png", size=1, created_at=NOW))
    db_session.add(Asset(id="vid", kind="video", storage_key="video/a/v.mp4", mime="video/mp4", size=1, created_at=NOW))
    db_session.add(Pair(
        id="p-1", experience_id="e-1", image_asset_id="img", video_asset_id="vid",
        image_fingerprint="{}", threshold=0.8, created_at=NOW, updated_at=NOW,
    ))
    await db_session.commit()

    pair = await db_session.get(Pair, "p-1")
    assert pair.mind_target_status == "pending"
    assert pair.priority == 0
    assert pair.is_active == 1
    assert pair.mind_asset_id is None
