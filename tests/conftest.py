"""Pytest fixtures for CrewX tests."""

from __future__ import annotations

from datetime import date, timedelta
from decimal import Decimal
from typing import AsyncGenerator
from uuid import uuid4

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession

from crewx.config import Settings
from crewx.database import create_engine_for, create_session_factory
from crewx.models import Base
from crewx.records import AccountRecord, JobRecord, Role
from crewx.store import DataStore

# In-memory SQLite, one fresh database per test
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture
def settings() -> Settings:
    """Settings independent of the developer's environment."""
    return Settings(
        database_url=TEST_DATABASE_URL,
        host="127.0.0.1",
        port=8000,
        debug=False,
        log_level="WARNING",
        session_ttl_minutes=60,
        notification_retention_days=30,
        gemini_api_key=None,
        gemini_model="test-model",
        gemini_base_url="https://classifier.test/v1beta",
        qr_verify_timeout_seconds=1.0,
        cors_origins=("*",),
    )


@pytest_asyncio.fixture
async def engine():
    """Create test database engine with the full schema."""
    engine = create_engine_for(TEST_DATABASE_URL)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest_asyncio.fixture
async def session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create a database session for each test."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def store(session) -> DataStore:
    return DataStore(session)


@pytest.fixture
def make_worker(session, store):
    """Factory for committed worker accounts."""

    async def _make(
        name: str = "Ravi Kumar",
        email: str | None = None,
        balance: Decimal | str = "0.00",
        **extra,
    ) -> AccountRecord:
        account = await store.accounts.save(
            AccountRecord(
                id=uuid4(),
                name=name,
                email=email or f"worker-{uuid4().hex[:8]}@example.com",
                role=Role.WORKER,
                balance=Decimal(balance),
                **extra,
            )
        )
        await session.commit()
        return account

    return _make


@pytest.fixture
def make_admin(session, store):
    """Factory for committed admin accounts."""

    async def _make(email: str = "admin@crewx.test") -> AccountRecord:
        account = await store.accounts.save(
            AccountRecord(id=uuid4(), name="Admin", email=email, role=Role.ADMIN)
        )
        await session.commit()
        return account

    return _make


@pytest.fixture
def make_job(session, store):
    """Factory for committed OPEN jobs."""

    async def _make(
        title: str = "Wedding Catering",
        max_workers: int = 3,
        pay: Decimal | str = "500.00",
        on: date | None = None,
        **extra,
    ) -> JobRecord:
        job = await store.jobs.save(
            JobRecord(
                id=uuid4(),
                title=title,
                date=on or date.today() + timedelta(days=7),
                time="18:00 - 23:00",
                location="Banjara Hills",
                pay=Decimal(pay),
                max_workers=max_workers,
                **extra,
            )
        )
        await session.commit()
        return job

    return _make
