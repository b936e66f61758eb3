"""Tests for SQLAlchemy repository implementations.

Uses a temporary SQLite database to verify that the concrete repositories
implement the domain protocols and validate rows on the way out.
"""

import math
from datetime import timedelta

import pytest
from sqlalchemy import select

from srs_engine.domain.errors import ReviewStateMissing
from srs_engine.domain.repositories import (
    CardRepository,
    OptOutRepository,
    ReviewEventRepository,
    ReviewLogRepository,
    ReviewStateRepository,
)
from srs_engine.domain.scheduling import Queue, SchedulingState
from srs_engine.infrastructure.repositories import (
    SqlAlchemyCardRepository,
    SqlAlchemyOptOutRepository,
    SqlAlchemyReviewEventRepository,
    SqlAlchemyReviewLogRepository,
    SqlAlchemyReviewStateRepository,
)
from srs_engine.models.review_log import ReviewLog
from srs_engine.models.review_state import ReviewState

from conftest import NOW, OTHER_OWNER, OWNER, TODAY


@pytest.fixture
async def async_session(session_maker):
    async with session_maker() as session:
        yield session


class TestProtocols:
    @pytest.mark.parametrize(
        "impl,protocol",
        [
            (SqlAlchemyCardRepository, CardRepository),
            (SqlAlchemyReviewStateRepository, ReviewStateRepository),
            (SqlAlchemyReviewLogRepository, ReviewLogRepository),
            (SqlAlchemyReviewEventRepository, ReviewEventRepository),
            (SqlAlchemyOptOutRepository, OptOutRepository),
        ],
    )
    def test_satisfies_protocol(self, impl, protocol, async_session):
        assert isinstance(impl(async_session), protocol)


class TestCardRepository:
    @pytest.mark.asyncio
    async def test_get_owned_checks_owner(self, async_session, make_card):
        card = await make_card()
        repo = SqlAlchemyCardRepository(async_session)

        assert (await repo.get_owned(OWNER, card.id)).front == "hola"
        assert await repo.get_owned(OTHER_OWNER, card.id) is None

    @pytest.mark.asyncio
    async def test_list_unscheduled(self, async_session, make_card, make_state):
        scheduled = await make_card(front="scheduled", age_minutes=9)
        await make_card(front="second", age_minutes=1)
        await make_card(front="first", age_minutes=5)
        await make_card(front="inactive", active=False, age_minutes=7)
        await make_state(scheduled)

        cards = await SqlAlchemyCardRepository(async_session).list_unscheduled(OWNER, 10)
        assert [c.front for c in cards] == ["first", "second"]

    @pytest.mark.asyncio
    async def test_state_of_other_owner_does_not_hide_card(self, async_session, make_card, make_state):
        card = await make_card()
        await make_state(card, owner_id=OTHER_OWNER)

        cards = await SqlAlchemyCardRepository(async_session).list_unscheduled(OWNER, 10)
        assert [c.id for c in cards] == [card.id]


class TestReviewStateRepository:
    @pytest.mark.asyncio
    async def test_create_and_get(self, async_session, make_card):
        card = await make_card()
        repo = SqlAlchemyReviewStateRepository(async_session)

        await repo.create(OWNER, card.id, SchedulingState.initial(TODAY))
        await async_session.commit()

        state = await repo.get(OWNER, card.id, TODAY)
        assert state == SchedulingState.initial(TODAY)

    @pytest.mark.asyncio
    async def test_create_is_noop_when_present(self, async_session, make_card, make_state):
        card = await make_card()
        await make_state(card, repetitions=4, interval_days=20, queue="review")
        repo = SqlAlchemyReviewStateRepository(async_session)

        state = await repo.create(OWNER, card.id, SchedulingState.initial(TODAY))

        assert state.repetitions == 4
        count = (await async_session.execute(select(ReviewState))).scalars().all()
        assert len(count) == 1

    @pytest.mark.asyncio
    async def test_create_returns_row_inserted_after_check(self, async_session, make_card, make_state, monkeypatch):
        card = await make_card()
        repo = SqlAlchemyReviewStateRepository(async_session)
        real_get_row = repo._get_row
        lookups = []

        async def get_row_after_race(owner_id, card_id):
            # The first check misses; another session inserts before our insert runs
            lookups.append(card_id)
            if len(lookups) == 1:
                await make_state(card, repetitions=2, interval_days=6, queue="review")
                return None
            return await real_get_row(owner_id, card_id)

        monkeypatch.setattr(repo, "_get_row", get_row_after_race)

        state = await repo.create(OWNER, card.id, SchedulingState.initial(TODAY))
        await async_session.commit()

        assert state.repetitions == 2
        assert state.queue is Queue.REVIEW
        rows = (await async_session.execute(select(ReviewState))).scalars().all()
        assert len(rows) == 1

    @pytest.mark.asyncio
    async def test_get_missing(self, async_session):
        repo = SqlAlchemyReviewStateRepository(async_session)
        assert await repo.get(OWNER, "nope", TODAY) is None

    @pytest.mark.asyncio
    async def test_save(self, async_session, make_card, make_state):
        card = await make_card()
        await make_state(card)
        repo = SqlAlchemyReviewStateRepository(async_session)
        new_state = SchedulingState(
            repetitions=1,
            ease_factor=2.6,
            interval_days=1,
            due_date=TODAY + timedelta(days=1),
            queue=Queue.LEARNING,
        )

        await repo.save(OWNER, card.id, new_state, NOW, 5)
        await async_session.commit()

        assert await repo.get(OWNER, card.id, TODAY) == new_state

    @pytest.mark.asyncio
    async def test_save_without_row_raises(self, async_session):
        repo = SqlAlchemyReviewStateRepository(async_session)
        with pytest.raises(ReviewStateMissing):
            await repo.save(OWNER, "nope", SchedulingState.initial(TODAY), NOW, 3)

    @pytest.mark.asyncio
    async def test_malformed_row_is_coerced(self, async_session, make_card, make_state):
        card = await make_card()
        row = await make_state(card, ease_factor=None, repetitions=2, queue="weird")
        assert row.ease_factor is None

        state = await SqlAlchemyReviewStateRepository(async_session).get(OWNER, card.id, TODAY)

        assert math.isnan(state.ease_factor)
        assert state.repetitions == 2
        assert state.queue is Queue.REVIEW

    @pytest.mark.asyncio
    async def test_list_due_respects_queue(self, async_session, make_card, make_state):
        learning = await make_card()
        review = await make_card()
        await make_state(learning, repetitions=1, queue="learning")
        await make_state(review, repetitions=5, queue="review")
        repo = SqlAlchemyReviewStateRepository(async_session)

        pairs = await repo.list_due(OWNER, TODAY, 10, queue=Queue.LEARNING)
        assert [card.id for card, _ in pairs] == [learning.id]


class TestReviewLogRepository:
    @pytest.mark.asyncio
    async def test_add_and_list(self, async_session, make_card):
        card = await make_card()
        repo = SqlAlchemyReviewLogRepository(async_session)
        for grade, minutes in ((3, 10), (5, 5)):
            await repo.add(
                ReviewLog(owner_id=OWNER, card_id=card.id, grade=grade, reviewed_at=NOW - timedelta(minutes=minutes))
            )
        await async_session.commit()

        entries = await repo.list_for_card(OWNER, card.id)
        assert [e.grade for e in entries] == [3, 5]
        assert await repo.count_between(OWNER, NOW - timedelta(hours=1), NOW) == 2
        assert await repo.count_between(OTHER_OWNER, NOW - timedelta(hours=1), NOW) == 0


class TestOptOutRepository:
    @pytest.mark.asyncio
    async def test_upsert_and_delete(self, async_session):
        repo = SqlAlchemyOptOutRepository(async_session)

        await repo.upsert(OWNER, "command", NOW)
        await repo.upsert(OWNER, "webapp", NOW)
        await async_session.commit()
        assert (await repo.get(OWNER)).source == "webapp"

        assert await repo.delete(OWNER) is True
        assert await repo.delete(OWNER) is False
        assert await repo.get(OWNER) is None
