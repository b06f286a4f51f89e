"""Shared test fixtures and configuration for projection backend tests."""
import os

# Settings are read at import time
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

import pytest
import pytest_asyncio
from typing import AsyncGenerator
from datetime import date
from decimal import Decimal

from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from projections import models
from projections.database import Base, get_db
from projections.main import app


# =============================================================================
# Database
# =============================================================================

@pytest_asyncio.fixture
async def engine():
    """Fresh in-memory SQLite database per test."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """A session for direct service and repository tests."""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client against the app, with each request in its own session."""

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as http_client:
        yield http_client
    app.dependency_overrides.clear()


# =============================================================================
# Sample data
# =============================================================================

@pytest_asyncio.fixture
async def bank_account(db) -> models.BankAccount:
    account = models.BankAccount(
        name="Current Account",
        sort_code="11-22-33",
        account_number="12345678",
        provider=models.BankProvider.HALIFAX,
    )
    db.add(account)
    await db.flush()
    return account


@pytest.fixture
def make_transaction():
    """Build a TransactionRecord with sensible defaults."""

    def _make(bank_account_id: str, day: date, balance: str, sequence: int = 0):
        return models.TransactionRecord(
            bank_account_id=bank_account_id,
            transaction_date=day,
            transaction_type="FPI",
            description="Statement row",
            balance=Decimal(balance),
            sequence=sequence,
        )

    return _make
