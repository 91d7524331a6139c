"""
Centralized Test Configuration.
"""

import pytest
from decimal import Decimal
from httpx import AsyncClient, ASGITransport
from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

from fundledger.app.main import app
from fundledger.app.db.session import get_db, Base
from fundledger.app.models.category import Category
from fundledger.app.models.donor import Donor
from fundledger.app.models.enums import CategoryType, DonorType, FundType
from fundledger.app.models.fund import Fund
from fundledger.app.models.grant import Grant

# Setup In-Memory Test Database
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


def set_sqlite_pragma(dbapi_conn, connection_record):
    """Enable foreign key constraints for SQLite."""
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


@pytest.fixture
async def engine():
    """Fresh database per test."""
    test_engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    event.listen(test_engine.sync_engine, "connect", set_sqlite_pragma)

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield test_engine

    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


# Shared session for fixture data creation
@pytest.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def client(session_factory):
    """Async client for testing, bound to the per-test database."""
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides = {}


# Seed data

@pytest.fixture
async def income_category(db_session):
    category = Category(name="Donations", type=CategoryType.INCOME)
    db_session.add(category)
    await db_session.commit()
    return category


@pytest.fixture
async def expense_category(db_session):
    category = Category(name="Program Supplies", type=CategoryType.EXPENSE)
    db_session.add(category)
    await db_session.commit()
    return category


@pytest.fixture
async def general_fund(db_session):
    fund = Fund(
        name="General Fund",
        type=FundType.UNRESTRICTED,
        starting_balance=Decimal("1000.00"),
        balance=Decimal("1000.00"),
    )
    db_session.add(fund)
    await db_session.commit()
    return fund


@pytest.fixture
async def building_fund(db_session):
    fund = Fund(
        name="Building Fund",
        type=FundType.RESTRICTED,
        starting_balance=Decimal("500.00"),
        balance=Decimal("500.00"),
    )
    db_session.add(fund)
    await db_session.commit()
    return fund


@pytest.fixture
async def donor(db_session):
    donor = Donor(name="Jane Smith", type=DonorType.INDIVIDUAL, email="jane@example.org")
    db_session.add(donor)
    await db_session.commit()
    return donor


@pytest.fixture
async def grant(db_session):
    grant = Grant(
        name="Youth Literacy",
        grantor_name="Community Foundation",
        amount=Decimal("1000.00"),
        amount_used=Decimal("0.00"),
    )
    db_session.add(grant)
    await db_session.commit()
    return grant
