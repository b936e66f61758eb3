import logging
import logging.handlers
import os
from contextlib import asynccontextmanager
from datetime import date, datetime, timedelta, timezone
from unittest.mock import patch
from zoneinfo import ZoneInfo

import pytest
import structlog
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

# Set test environment variables
os.environ["ENVIRONMENT"] = "test"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["ML_HASH_SALT"] = "test-salt"
os.environ["ML_LOGGING_ENABLED"] = "true"
os.environ["DEFAULT_TIMEZONE"] = "UTC"

from srs_engine.models.base import Base  # noqa: E402
from srs_engine.models.card import Card  # noqa: E402
from srs_engine.models.review_state import ReviewState  # noqa: E402

OWNER = "1001"
OTHER_OWNER = "2002"
UTC = ZoneInfo("UTC")
NOW = datetime(2024, 3, 10, 12, 0, tzinfo=timezone.utc)
TODAY = NOW.date()


@pytest.fixture(autouse=True)
def _strip_file_handlers():
    """Remove file handlers from root logger so tests never write to logs/app.log."""
    root = logging.getLogger()
    saved = [h for h in root.handlers if isinstance(h, logging.FileHandler)]
    for h in saved:
        root.removeHandler(h)
    yield
    # Restore any that were removed (and strip any new ones tests may have added)
    for h in list(root.handlers):
        if isinstance(h, logging.FileHandler):
            root.removeHandler(h)
    for h in saved:
        root.addHandler(h)


@pytest.fixture(autouse=True)
def _reset_structlog():
    """Undo any structlog.configure() a test made so capture_logs keeps working."""
    yield
    structlog.reset_defaults()


@pytest.fixture(autouse=True)
def _no_audit_file():
    """Keep opt-out/opt-in audit entries out of logs/audit.log."""
    with patch("srs_engine.services.srs.privacy_gate.audit_log") as mock_audit:
        yield mock_audit


@pytest.fixture
def fixed_clock():
    """Clock frozen at NOW."""
    return lambda: NOW


@pytest.fixture
async def async_engine(tmp_path):
    """File-backed async SQLite engine with all tables.

    A file rather than :memory: so every session sees the same database.
    """
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'srs_test.db'}", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(async_engine):
    return async_sessionmaker(async_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def session_factory(session_maker):
    """Drop-in replacement for core.database.get_db_session."""

    @asynccontextmanager
    async def _factory():
        async with session_maker() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise

    return _factory


@pytest.fixture
def make_card(session_maker):
    """Insert a card; ``age_minutes`` spaces out created_at for stable ordering."""

    async def _make(owner_id=OWNER, front="hola", back="hello", active=True, age_minutes=0, **kwargs):
        card = Card(
            owner_id=owner_id,
            front=front,
            back=back,
            active=active,
            created_at=NOW - timedelta(minutes=age_minutes),
            **kwargs,
        )
        async with session_maker() as session:
            session.add(card)
            await session.commit()
        return card

    return _make


@pytest.fixture
def make_state(session_maker):
    """Insert a review_state row as-is (no validation), for corrupted-data tests.

    Columns passed as None are nulled with an UPDATE after the insert, since
    the column defaults would otherwise replace them on insert.
    """

    async def _make(card, owner_id=None, due_date: date = TODAY, **columns):
        nulled = {k: v for k, v in columns.items() if v is None}
        row = ReviewState(
            owner_id=owner_id or card.owner_id,
            card_id=card.id,
            due_date=due_date,
            **{k: v for k, v in columns.items() if v is not None},
        )
        async with session_maker() as session:
            session.add(row)
            await session.flush()
            if nulled:
                await session.execute(
                    update(ReviewState).where(ReviewState.id == row.id).values(**nulled)
                )
            await session.commit()
            if nulled:
                await session.refresh(row)
        return row

    return _make
