"""Tests for DueItemSelector."""

from datetime import timedelta

import pytest
from sqlalchemy import func, select

from srs_engine.domain.errors import InvalidQueueFilter
from srs_engine.domain.scheduling import Queue
from srs_engine.models.review_state import ReviewState
from srs_engine.services.srs.due_selector import DueItemSelector, parse_queue_filter

from conftest import OTHER_OWNER, OWNER, TODAY, UTC


@pytest.fixture
def selector(session_factory, monkeypatch):
    monkeypatch.setattr(
        "srs_engine.services.srs.due_selector.today_in_timezone", lambda tz=None: TODAY
    )
    return DueItemSelector(session_factory=session_factory, tz=UTC)


async def state_count(session_maker):
    async with session_maker() as session:
        return (await session.execute(select(func.count(ReviewState.id)))).scalar()


class TestSelect:
    @pytest.mark.asyncio
    async def test_nothing_due_returns_empty(self, selector):
        assert await selector.select(OWNER, limit=5) == []

    @pytest.mark.asyncio
    async def test_due_cards_oldest_first(self, selector, make_card, make_state):
        recent = await make_card(front="uno")
        oldest = await make_card(front="dos")
        middle = await make_card(front="tres")
        await make_state(recent, due_date=TODAY, repetitions=2, queue="review")
        await make_state(oldest, due_date=TODAY - timedelta(days=9), repetitions=3, queue="review")
        await make_state(middle, due_date=TODAY - timedelta(days=2), repetitions=1, queue="learning")

        due = await selector.select(OWNER, limit=10, include_new=False)

        assert [d.card.front for d in due] == ["dos", "tres", "uno"]
        assert all(not d.is_new_card for d in due)

    @pytest.mark.asyncio
    async def test_future_cards_not_selected(self, selector, make_card, make_state):
        card = await make_card()
        await make_state(card, due_date=TODAY + timedelta(days=1), repetitions=1, queue="learning")
        assert await selector.select(OWNER, limit=5) == []

    @pytest.mark.asyncio
    async def test_limit_caps_due_cards(self, selector, make_card, make_state):
        for i in range(4):
            card = await make_card(front=f"c{i}")
            await make_state(card, due_date=TODAY - timedelta(days=i), repetitions=2, queue="review")

        due = await selector.select(OWNER, limit=2)
        assert [d.card.front for d in due] == ["c3", "c2"]

    @pytest.mark.asyncio
    async def test_new_cards_fill_remaining_slots(self, selector, make_card, make_state, session_maker):
        scheduled = await make_card(front="scheduled")
        await make_state(scheduled, due_date=TODAY, repetitions=2, queue="review")
        await make_card(front="newer", age_minutes=1)
        await make_card(front="older", age_minutes=5)

        due = await selector.select(OWNER, limit=3)

        assert [d.card.front for d in due] == ["scheduled", "older", "newer"]
        assert [d.is_new_card for d in due] == [False, True, True]
        fresh = due[1].state
        assert fresh.repetitions == 0
        assert fresh.interval_days == 0
        assert fresh.ease_factor == 2.5
        assert fresh.due_date == TODAY
        assert fresh.queue is Queue.NEW
        assert await state_count(session_maker) == 3

    @pytest.mark.asyncio
    async def test_include_new_false(self, selector, make_card, session_maker):
        await make_card()
        assert await selector.select(OWNER, limit=5, include_new=False) == []
        assert await state_count(session_maker) == 0

    @pytest.mark.asyncio
    async def test_no_duplicates_across_calls(self, selector, make_card):
        await make_card(front="a", age_minutes=2)
        await make_card(front="b", age_minutes=1)

        first = await selector.select(OWNER, limit=5)
        second = await selector.select(OWNER, limit=5)

        assert sorted(d.card_id for d in first) == sorted(d.card_id for d in second)
        assert len({d.card_id for d in second}) == 2
        # Second time round they are scheduled cards, not new ones
        assert all(not d.is_new_card for d in second)

    @pytest.mark.asyncio
    async def test_inactive_and_foreign_cards_ignored(self, selector, make_card):
        await make_card(active=False)
        await make_card(owner_id=OTHER_OWNER)
        assert await selector.select(OWNER, limit=5) == []

    @pytest.mark.asyncio
    async def test_zero_limit(self, selector, make_card):
        await make_card()
        assert await selector.select(OWNER, limit=0) == []


class TestFilters:
    @pytest.mark.asyncio
    async def test_overdue_only(self, selector, make_card, make_state):
        today_card = await make_card(front="today")
        late_card = await make_card(front="late")
        await make_card(front="unscheduled")
        await make_state(today_card, due_date=TODAY, repetitions=2, queue="review")
        await make_state(late_card, due_date=TODAY - timedelta(days=1), repetitions=2, queue="review")

        due = await selector.select(OWNER, limit=5, overdue_only=True)
        assert [d.card.front for d in due] == ["late"]

    @pytest.mark.asyncio
    async def test_learning_filter_excludes_new_cards(self, selector, make_card, make_state):
        learning = await make_card(front="learning")
        review = await make_card(front="review")
        await make_card(front="unscheduled")
        await make_state(learning, repetitions=1, queue="learning")
        await make_state(review, repetitions=4, queue="review")

        due = await selector.select(OWNER, limit=5, queue_filter="learning")
        assert [d.card.front for d in due] == ["learning"]

    @pytest.mark.asyncio
    async def test_new_filter(self, selector, make_card, make_state):
        waiting = await make_card(front="waiting", age_minutes=10)
        review = await make_card(front="review")
        await make_card(front="unscheduled", age_minutes=1)
        await make_state(waiting, repetitions=0, queue="new")
        await make_state(review, repetitions=4, queue="review")

        due = await selector.select(OWNER, limit=5, queue_filter="new")
        assert [d.card.front for d in due] == ["waiting", "unscheduled"]
        assert [d.is_new_card for d in due] == [False, True]

    @pytest.mark.asyncio
    async def test_review_filter_rejected(self, selector):
        with pytest.raises(InvalidQueueFilter):
            await selector.select(OWNER, queue_filter="review")

    @pytest.mark.parametrize("value,expected", [(None, None), ("new", Queue.NEW), (" Learning ", Queue.LEARNING)])
    def test_parse_queue_filter(self, value, expected):
        assert parse_queue_filter(value) == expected

    def test_parse_unknown_queue(self):
        with pytest.raises(InvalidQueueFilter) as exc_info:
            parse_queue_filter("someday")
        assert exc_info.value.queue == "someday"
