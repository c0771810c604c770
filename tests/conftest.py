import os
import uuid
from datetime import timedelta

TEST_DB_URL = os.getenv("TEST_DATABASE_URL", "sqlite+aiosqlite:///./test_bidmarket.db")

os.environ.setdefault("DATABASE_URL", TEST_DB_URL)
os.environ.setdefault("SECRET_KEY", "test-secret-key")

import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402

from app.core.database import Base, get_db, utcnow  # noqa: E402
from app.core.security import create_access_token  # noqa: E402
from app.main import app  # noqa: E402
from app.models import (  # noqa: E402, F401
    Advertisement,
    AdvertisementStatus,
    Bid,
    BidStatus,
    ClientProfile,
    Contract,
    CreditWallet,
    InfluencerProfile,
    Notification,
    Review,
    Role,
    User,
)


@pytest_asyncio.fixture
async def engine():
    eng = create_async_engine(TEST_DB_URL, echo=False)
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    yield eng

    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await eng.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(db):
    async def _override_db():
        yield db

    app.dependency_overrides[get_db] = _override_db
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


def auth_headers(user: User) -> dict:
    token = create_access_token(str(user.id))
    return {"Authorization": f"Bearer {token}"}


async def make_influencer(db: AsyncSession, name: str = "Test Influencer") -> User:
    user = User(
        id=uuid.uuid4(),
        email=f"{uuid.uuid4().hex[:8]}@influencer.test",
        role=Role.INFLUENCER,
        name=name,
    )
    db.add(user)
    db.add(
        InfluencerProfile(
            user_id=user.id,
            display_name=name,
            primary_niche="lifestyle",
            average_rating=0.0,
            total_reviews=0,
            completed_campaigns=0,
        )
    )
    await db.commit()
    await db.refresh(user)
    return user


async def make_bid(db: AsyncSession, advertisement: Advertisement, influencer: User, **overrides) -> Bid:
    fields = {
        "proposed_price": 300.0,
        "delivery_days": 5,
        "proposal": "Two reels and a story",
        "status": BidStatus.PENDING,
    }
    fields.update(overrides)
    bid = Bid(id=uuid.uuid4(), advertisement_id=advertisement.id, influencer_id=influencer.id, **fields)
    db.add(bid)
    await db.commit()
    await db.refresh(bid)
    return bid


@pytest_asyncio.fixture
async def client_user(db: AsyncSession):
    user = User(
        id=uuid.uuid4(),
        email="client@brand.test",
        role=Role.CLIENT,
        name="Test Client",
    )
    db.add(user)
    db.add(ClientProfile(user_id=user.id, company_name="TestCorp", industry="fintech"))
    await db.commit()
    await db.refresh(user)
    return user


@pytest_asyncio.fixture
async def other_client(db: AsyncSession):
    user = User(id=uuid.uuid4(), email="other@brand.test", role=Role.CLIENT, name="Other Client")
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


@pytest_asyncio.fixture
async def influencer_user(db: AsyncSession):
    return await make_influencer(db, "Influencer One")


@pytest_asyncio.fixture
async def second_influencer(db: AsyncSession):
    return await make_influencer(db, "Influencer Two")


@pytest_asyncio.fixture
async def third_influencer(db: AsyncSession):
    return await make_influencer(db, "Influencer Three")


@pytest_asyncio.fixture
async def advertisement(db: AsyncSession, client_user: User):
    ad = Advertisement(
        id=uuid.uuid4(),
        client_id=client_user.id,
        title="Summer launch campaign",
        description="Short-form videos for the summer collection",
        platform="instagram",
        content_type="reel",
        budget_min=100.0,
        budget_max=500.0,
        deadline=utcnow() + timedelta(days=10),
        status=AdvertisementStatus.OPEN,
    )
    db.add(ad)
    await db.commit()
    await db.refresh(ad)
    return ad
