import pytest
from sqlalchemy import select, text

from srs_engine.core import database
from srs_engine.core.database import (
    close_database,
    get_db_session,
    get_review_state_count,
    health_check,
    init_database,
)
from srs_engine.models.card import Card
from srs_engine.models.review_state import ReviewState

from conftest import OWNER, TODAY


class TestDatabase:
    """Test suite for engine setup and the session context manager"""

    @pytest.fixture
    async def initialized_db(self, tmp_path):
        """Point the module-level engine at a temporary SQLite file"""
        await init_database(f"sqlite+aiosqlite:///{tmp_path / 'nested' / 'srs.db'}")
        yield tmp_path
        await close_database()

    @pytest.mark.asyncio
    async def test_init_creates_directory_and_tables(self, initialized_db):
        assert (initialized_db / "nested" / "srs.db").exists()

        async with get_db_session() as session:
            result = await session.execute(
                text("SELECT name FROM sqlite_master WHERE type='table'")
            )
            tables = {row[0] for row in result}

        assert {"cards", "review_state", "review_log", "review_events", "ml_opt_outs"} <= tables

    @pytest.mark.asyncio
    async def test_health_check(self, initialized_db):
        assert await health_check() is True

    @pytest.mark.asyncio
    async def test_session_rolls_back_on_error(self, initialized_db):
        with pytest.raises(RuntimeError):
            async with get_db_session() as session:
                session.add(Card(owner_id=OWNER, front="a", back="b"))
                await session.flush()
                raise RuntimeError("boom")

        async with get_db_session() as session:
            result = await session.execute(select(Card))
            assert result.scalars().all() == []

    @pytest.mark.asyncio
    async def test_session_does_not_commit_implicitly(self, initialized_db):
        async with get_db_session() as session:
            session.add(Card(owner_id=OWNER, front="a", back="b"))
            await session.flush()

        async with get_db_session() as session:
            assert (await session.execute(select(Card))).scalars().all() == []

    @pytest.mark.asyncio
    async def test_review_state_count(self, initialized_db):
        async with get_db_session() as session:
            card = Card(owner_id=OWNER, front="a", back="b")
            session.add(card)
            await session.flush()
            session.add(ReviewState(owner_id=OWNER, card_id=card.id, due_date=TODAY))
            await session.commit()

        assert await get_review_state_count() == 1

    @pytest.mark.asyncio
    async def test_close_resets_globals(self, tmp_path):
        await init_database(f"sqlite+aiosqlite:///{tmp_path / 'srs.db'}")
        await close_database()
        assert database._engine is None
        assert database._session_factory is None
