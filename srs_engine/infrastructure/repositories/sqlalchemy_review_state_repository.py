"""SQLAlchemy implementation of ReviewStateRepository.

Rows are converted into strict SchedulingState values on the way out;
malformed columns are defaulted here or left as NaN for the engine to heal.
"""

import logging
import math
from datetime import date, datetime
from typing import Dict, List, Optional, Tuple

from sqlalchemy import case, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from srs_engine.domain.errors import ReviewStateMissing
from srs_engine.domain.scheduling import Queue, SchedulingState, derive_queue
from srs_engine.models.card import Card
from srs_engine.models.review_state import ReviewState

logger = logging.getLogger(__name__)


def _as_number(value) -> float:
    if isinstance(value, bool):
        return float(value)
    try:
        return float(value)
    except (TypeError, ValueError):
        return math.nan


def _as_int_or_nan(value):
    number = _as_number(value)
    return int(number) if math.isfinite(number) else number


def _as_date(value, today: date) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value[:10])
        except ValueError:
            pass
    logger.warning(f"Unparsable due_date {value!r} in review_state, treating as due today")
    return today


def to_scheduling_state(row: ReviewState, today: date) -> SchedulingState:
    """Validate a review_state row into a SchedulingState."""
    repetitions = _as_int_or_nan(row.repetitions)
    try:
        queue = Queue(row.queue)
    except ValueError:
        queue = derive_queue(repetitions if isinstance(repetitions, int) else 0)
    return SchedulingState(
        repetitions=repetitions,
        ease_factor=_as_number(row.ease_factor),
        interval_days=_as_int_or_nan(row.interval_days),
        due_date=_as_date(row.due_date, today),
        lapses=_as_int_or_nan(row.lapses),
        queue=queue,
    )


class SqlAlchemyReviewStateRepository:
    """Concrete ReviewStateRepository backed by SQLAlchemy async sessions."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def _get_row(self, owner_id: str, card_id: str) -> Optional[ReviewState]:
        result = await self._session.execute(
            select(ReviewState).where(
                ReviewState.owner_id == owner_id, ReviewState.card_id == card_id
            )
        )
        return result.scalar_one_or_none()

    async def get(self, owner_id: str, card_id: str, today: date) -> Optional[SchedulingState]:
        row = await self._get_row(owner_id, card_id)
        if row is None:
            return None
        return to_scheduling_state(row, today)

    async def create(self, owner_id: str, card_id: str, state: SchedulingState) -> SchedulingState:
        """Insert the initial state, or return the row a concurrent caller already created."""
        existing = await self._get_row(owner_id, card_id)
        if existing is not None:
            return to_scheduling_state(existing, state.due_date)

        row = ReviewState(
            owner_id=owner_id,
            card_id=card_id,
            repetitions=state.repetitions,
            ease_factor=state.ease_factor,
            interval_days=state.interval_days,
            due_date=state.due_date,
            lapses=state.lapses,
            queue=state.queue.value,
        )
        try:
            async with self._session.begin_nested():
                self._session.add(row)
        except IntegrityError:
            existing = await self._get_row(owner_id, card_id)
            if existing is None:
                raise
            logger.debug(f"Review state for card {card_id} was created concurrently")
            return to_scheduling_state(existing, state.due_date)

        logger.debug(f"Created review state for card {card_id}")
        return state

    async def save(
        self,
        owner_id: str,
        card_id: str,
        state: SchedulingState,
        reviewed_at: datetime,
        grade: int,
    ) -> None:
        result = await self._session.execute(
            update(ReviewState)
            .where(ReviewState.owner_id == owner_id, ReviewState.card_id == card_id)
            .values(
                repetitions=state.repetitions,
                ease_factor=state.ease_factor,
                interval_days=state.interval_days,
                due_date=state.due_date,
                lapses=state.lapses,
                queue=state.queue.value,
                last_reviewed_at=reviewed_at,
                last_grade=grade,
            )
        )
        if result.rowcount == 0:
            raise ReviewStateMissing(owner_id, card_id)

    async def list_due(
        self,
        owner_id: str,
        today: date,
        limit: int,
        queue: Optional[Queue] = None,
        overdue_only: bool = False,
    ) -> List[Tuple[Card, SchedulingState]]:
        if limit <= 0:
            return []
        due_clause = ReviewState.due_date < today if overdue_only else ReviewState.due_date <= today
        stmt = (
            select(Card, ReviewState)
            .join(ReviewState, ReviewState.card_id == Card.id)
            .where(
                ReviewState.owner_id == owner_id,
                Card.active.is_(True),
                due_clause,
            )
        )
        if queue is not None:
            stmt = stmt.where(ReviewState.queue == queue.value)
        stmt = stmt.order_by(
            ReviewState.due_date.asc(), Card.created_at.asc(), Card.id.asc()
        ).limit(limit)

        result = await self._session.execute(stmt)
        return [(card, to_scheduling_state(row, today)) for card, row in result.all()]

    async def summary_counts(self, owner_id: str, today: date, tomorrow: date) -> Dict[str, int]:
        def _count_when(condition):
            return func.sum(case((condition, 1), else_=0))

        stmt = (
            select(
                func.count(ReviewState.id).label("total"),
                _count_when(ReviewState.due_date == today).label("due_today"),
                _count_when(ReviewState.due_date == tomorrow).label("due_tomorrow"),
                _count_when(ReviewState.due_date < today).label("overdue"),
                _count_when(ReviewState.queue == Queue.NEW.value).label("new"),
                _count_when(ReviewState.queue == Queue.LEARNING.value).label("learning"),
                _count_when(ReviewState.queue == Queue.REVIEW.value).label("review"),
            )
            .join(Card, Card.id == ReviewState.card_id)
            .where(ReviewState.owner_id == owner_id, Card.active.is_(True))
        )
        row = (await self._session.execute(stmt)).one()
        return {key: int(value or 0) for key, value in row._mapping.items()}
