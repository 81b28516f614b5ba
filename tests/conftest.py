"""Pytest configuration and fixtures."""

import os
import secrets
import uuid
from datetime import datetime, timedelta
from decimal import Decimal

# Unique signing key per run so tokens from elsewhere never validate
os.environ.setdefault("JWT_SECRET_KEY", f"test-only-{secrets.token_urlsafe(32)}")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("AUTO_CREATE_TABLES", "false")

import httpx  # noqa: E402
import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from sqlalchemy import func, select  # noqa: E402

from app.core.auth import Principal, create_access_token  # noqa: E402
from app.db.models import (  # noqa: E402
    Bid,
    BidStatus,
    Booking,
    Job,
    JobStatus,
    Notification,
    User,
    UserRole,
    WorkerProfile,
)
from app.db.session import build_engine, build_session_factory, get_session, init_db  # noqa: E402


class Market:
    """Seeds users, jobs and bids directly into the test database."""

    def __init__(self, session_factory):
        self.session_factory = session_factory

    async def _add(self, *objs):
        async with self.session_factory() as session:
            async with session.begin():
                session.add_all(objs)

    async def customer(self, name="Carla Customer", *, verified=True, active=True, phone="555-0100") -> Principal:
        return await self._user(UserRole.CUSTOMER, name, verified=verified, active=active, phone=phone)

    async def worker(self, name="Walt Worker", *, profile=True, phone="555-0200") -> Principal:
        principal = await self._user(UserRole.WORKER, name, verified=True, active=True, phone=phone)
        if profile:
            await self._add(WorkerProfile(user_id=principal.id, bio=f"{name} fixes things", hourly_rate=Decimal("45")))
        return principal

    async def _user(self, role, name, *, verified, active, phone) -> Principal:
        user_id = str(uuid.uuid4())
        await self._add(
            User(
                id=user_id,
                email=f"{user_id[:8]}@example.com",
                phone=phone,
                full_name=name,
                role=role,
                is_verified=verified,
                is_active=active,
            )
        )
        return Principal(id=user_id, role=role, is_verified=verified, is_active=active, full_name=name)

    async def job(
        self,
        owner: Principal,
        *,
        title="Leaking kitchen tap",
        budget_min="5000",
        budget_max="8000",
        city="Toronto",
        province="ON",
        status=JobStatus.OPEN,
    ) -> str:
        job_id = str(uuid.uuid4())
        await self._add(
            Job(
                id=job_id,
                customer_id=owner.id,
                title=title,
                description="Water everywhere under the sink",
                budget_min=Decimal(budget_min),
                budget_max=Decimal(budget_max),
                city=city,
                province=province,
                status=status,
            )
        )
        return job_id

    async def bid(
        self,
        job_id: str,
        worker: Principal,
        *,
        amount="6000",
        status=BidStatus.PENDING,
        created_at: datetime | None = None,
    ) -> str:
        bid_id = str(uuid.uuid4())
        bid = Bid(
            id=bid_id,
            job_id=job_id,
            worker_id=worker.id,
            amount=Decimal(amount),
            proposal="I can fix this leak today",
            status=status,
        )
        if created_at is not None:
            bid.created_at = created_at
        await self._add(bid)
        return bid_id

    async def add(self, *objs):
        await self._add(*objs)

    # -----------------------
    # read-back helpers
    # -----------------------

    async def get(self, model, key):
        async with self.session_factory() as session:
            return await session.get(model, key)

    async def bookings_for(self, job_id: str) -> list[Booking]:
        async with self.session_factory() as session:
            res = await session.execute(select(Booking).where(Booking.job_id == job_id))
            return list(res.scalars().all())

    async def notifications_for(self, user_id: str) -> list[Notification]:
        async with self.session_factory() as session:
            res = await session.execute(
                select(Notification).where(Notification.user_id == user_id).order_by(Notification.id)
            )
            return list(res.scalars().all())

    async def count(self, model) -> int:
        async with self.session_factory() as session:
            res = await session.execute(select(func.count()).select_from(model))
            return res.scalar_one()


@pytest_asyncio.fixture
async def engine(tmp_path):
    eng = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'market.db'}")
    await init_db(eng)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest_asyncio.fixture
async def session(session_factory):
    async with session_factory() as s:
        yield s


@pytest.fixture
def market(session_factory):
    return Market(session_factory)


@pytest_asyncio.fixture
async def client(session_factory):
    """HTTP client bound to the app, with sessions from the test database."""
    from app.main import app

    async def _override_session():
        async with session_factory() as s:
            yield s

    app.dependency_overrides[get_session] = _override_session
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


def auth_headers(principal: Principal, expires_delta: timedelta | None = None) -> dict:
    token = create_access_token(principal.id, expires_delta=expires_delta)
    return {"Authorization": f"Bearer {token}"}




@pytest.fixture
def headers():
    return auth_headers
