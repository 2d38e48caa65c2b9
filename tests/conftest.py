"""
Test configuration and fixtures for the Microfin Ledger API tests.
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest
from typing import AsyncGenerator
from decimal import Decimal
from microfin.core.dates import business_today

from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool
from httpx import AsyncClient, ASGITransport

from microfin.core.database import Base, get_db, get_redis
from microfin.modules.users.models import UserRole
from microfin.modules.users.services import UserService
from microfin.modules.borrowers.models import Borrower
from microfin.modules.loans.models import PaymentFrequency
from microfin.modules.loans.schemas import LoanCreate
from microfin.modules.loans.services import LoanService
from main import app


# ============================================================
# Database Fixtures
# ============================================================

# Use SQLite for testing (in-memory)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


class FakeRedis:
    """In-memory stand-in for the token blacklist"""

    def __init__(self):
        self.store = {}

    async def get(self, key):
        return self.store.get(key)

    async def setex(self, key, ttl, value):
        self.store[key] = value
        return True

    async def aclose(self):
        self.store.clear()


@pytest.fixture
async def test_engine():
    """Create a fresh in-memory database per test"""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
async def db_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create database session for each test"""
    async_session = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False
    )

    async with async_session() as session:
        yield session
        await session.rollback()


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
async def client(db_session, fake_redis) -> AsyncGenerator[AsyncClient, None]:
    """Create test client with database and redis overrides"""

    async def override_get_db():
        yield db_session

    async def override_get_redis():
        return fake_redis

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_redis] = override_get_redis

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


# ============================================================
# User Fixtures
# ============================================================

async def _create_user(db_session, email, role, name):
    user = await UserService.create_user(
        db_session,
        name=name,
        email=email,
        password="password123",
        role=role,
        phone="9876543210",
        address="MG Road, Indore"
    )
    await db_session.commit()
    return user


def _headers(user):
    token = UserService.create_token(user)["access_token"]
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
async def admin_user(db_session):
    return await _create_user(db_session, "admin@microfin.in", UserRole.ADMIN, "Admin")


@pytest.fixture
async def admin_headers(admin_user):
    return _headers(admin_user)


@pytest.fixture
async def agent_user(db_session):
    return await _create_user(db_session, "agent@microfin.in", UserRole.AGENT, "Anil Agent")


@pytest.fixture
async def agent(agent_user):
    return agent_user.agent


@pytest.fixture
async def agent_headers(agent_user):
    return _headers(agent_user)


@pytest.fixture
async def other_agent_user(db_session):
    return await _create_user(db_session, "other@microfin.in", UserRole.AGENT, "Bina Agent")


@pytest.fixture
async def other_agent_headers(other_agent_user):
    return _headers(other_agent_user)


# ============================================================
# Borrower & Loan Fixtures
# ============================================================

@pytest.fixture
async def borrower(db_session, agent):
    """Borrower assigned to ``agent``"""
    borrower = Borrower(
        name="Ramesh Kumar",
        father_name="Suresh Kumar",
        phone="9123456780",
        address="Ward 4, Bhopal",
        pan_id="ABCDE1234F",
        agent=agent
    )
    db_session.add(borrower)
    await db_session.commit()
    return borrower


@pytest.fixture
def loan_factory(db_session):
    """Create loans through the loan service"""

    async def make_loan(borrower, start_date=None, frequency=PaymentFrequency.MONTHLY,
                        principal="50000", rate="2", duration=6):
        data = LoanCreate(
            principal_amount=Decimal(principal),
            interest_rate=Decimal(rate),
            duration=duration,
            frequency=frequency,
            start_date=start_date or business_today()
        )
        return await LoanService(db_session).create_loan(borrower, data)

    return make_loan


@pytest.fixture
async def loan(loan_factory, borrower):
    """50,000 at 2% for 6 months, MONTHLY"""
    return await loan_factory(borrower)
