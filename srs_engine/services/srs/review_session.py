"""
Review session coordination: start a card review, then submit its grade.

Submit runs in two phases. Phase 1 updates the scheduling state and appends
the review log in one transaction. Phase 2 writes the telemetry event in a
separate session; it runs only after phase 1 committed and cannot undo it.
"""

import logging
import math
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Callable, Optional, Union
from zoneinfo import ZoneInfo

from sqlalchemy.exc import SQLAlchemyError

from ...core.database import get_db_session
from ...domain.errors import CardNotFound, ReviewPersistenceError, ReviewStateMissing
from ...domain.scheduling import SchedulingState
from ...infrastructure.repositories import (
    SqlAlchemyCardRepository,
    SqlAlchemyReviewLogRepository,
    SqlAlchemyReviewStateRepository,
)
from ...models.card import Card
from ...models.review_log import ReviewLog
from . import srs_algorithm
from .clock import ensure_aware, today_in_timezone, utc_midnight, utc_now
from .grading import grade_message, is_correct, next_review_message
from .telemetry_sink import TelemetryEvent, TelemetrySink

logger = logging.getLogger(__name__)

DEFAULT_MODE = "telegram_inline"
DEFAULT_DIRECTION = "front_to_back"

StartTime = Union[datetime, int, float, None]


@dataclass
class StartedReview:
    card: Card
    state: SchedulingState
    session_id: str
    start_time: datetime

    @property
    def start_time_ms(self) -> int:
        """Start timestamp as epoch milliseconds, for clients that round-trip numbers."""
        return int(self.start_time.timestamp() * 1000)


@dataclass
class ReviewResult:
    """Outcome of a graded review."""

    card_id: str
    grade: int
    previous: SchedulingState
    current: SchedulingState
    latency_ms: int
    was_overdue: bool
    is_new: bool
    session_id: str
    message: str

    @property
    def new_interval(self) -> int:
        return self.current.interval_days

    @property
    def new_due_date(self) -> date:
        return self.current.due_date

    @property
    def new_ease(self) -> float:
        return self.current.ease_factor

    @property
    def new_repetitions(self) -> int:
        return self.current.repetitions


def resolve_start_time(start_time: StartTime, now: datetime) -> datetime:
    """Interpret a client-supplied start timestamp; anything unusable becomes *now*."""
    if isinstance(start_time, datetime):
        return ensure_aware(start_time)
    if isinstance(start_time, bool) or not isinstance(start_time, (int, float)):
        return now
    if not math.isfinite(start_time):
        return now
    try:
        return datetime.fromtimestamp(start_time / 1000, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return now


def _finite_or_none(value):
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _int_or_none(value):
    number = _finite_or_none(value)
    return int(number) if number is not None else None


class ReviewSessionCoordinator:
    """Starts card reviews and applies their grades."""

    def __init__(
        self,
        telemetry_sink: Optional[TelemetrySink] = None,
        session_factory: Callable = get_db_session,
        tz: Optional[ZoneInfo] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.telemetry_sink = telemetry_sink
        self._session_factory = session_factory
        self._tz = tz
        self._clock = clock

    def _today(self, now: datetime) -> date:
        return today_in_timezone(self._tz, now)

    async def start(self, owner_id: str, card_id: str, session_id: str) -> StartedReview:
        """Begin timing a review; creates the scheduling state if the card has none.

        Raises:
            CardNotFound: Card is missing or belongs to someone else.
        """
        owner_id = str(owner_id)
        now = self._clock()
        today = self._today(now)

        async with self._session_factory() as session:
            card = await SqlAlchemyCardRepository(session).get_owned(owner_id, card_id)
            if card is None:
                raise CardNotFound(owner_id, card_id)

            states = SqlAlchemyReviewStateRepository(session)
            state = await states.get(owner_id, card_id, today)
            if state is None:
                state = await states.create(owner_id, card_id, SchedulingState.initial(today))
                await session.commit()
                logger.info(f"Created scheduling state on review start for card {card_id}")

        return StartedReview(card=card, state=state, session_id=session_id, start_time=now)

    async def submit(
        self,
        owner_id: str,
        card_id: str,
        grade: int,
        start_time: StartTime,
        session_id: str,
        direction: str = DEFAULT_DIRECTION,
        mode: str = DEFAULT_MODE,
        client: Optional[str] = None,
        answer_text: Optional[str] = None,
        attempt: Optional[int] = None,
        hint_count: Optional[int] = None,
        source: Optional[str] = None,
    ) -> ReviewResult:
        """
        Apply a grade to a started review.

        Args:
            grade: Recall quality 0..5
            start_time: Value returned by start() (datetime or epoch ms); invalid values
                are replaced by the current time, so latency degrades to 0

        Raises:
            InvalidGrade: Grade outside 0..5; nothing is written.
            CardNotFound: Card is missing or belongs to someone else.
            ReviewStateMissing: The card was never started.
            ReviewPersistenceError: The state/log transaction failed and was rolled back.
        """
        grade = srs_algorithm.validate_grade(grade)
        owner_id = str(owner_id)
        now = self._clock()
        today = self._today(now)
        started_at = resolve_start_time(start_time, now)
        latency_ms = max(0, int((now - started_at).total_seconds() * 1000))

        try:
            async with self._session_factory() as session:
                card = await SqlAlchemyCardRepository(session).get_owned(owner_id, card_id)
                if card is None:
                    raise CardNotFound(owner_id, card_id)

                states = SqlAlchemyReviewStateRepository(session)
                previous = await states.get(owner_id, card_id, today)
                if previous is None:
                    raise ReviewStateMissing(owner_id, card_id)

                current = srs_algorithm.apply(grade, previous, today)
                was_overdue = previous.due_date is not None and started_at > utc_midnight(
                    previous.due_date
                )
                is_new = previous.repetitions == 0

                await states.save(owner_id, card_id, current, now, grade)
                await SqlAlchemyReviewLogRepository(session).add(
                    ReviewLog(
                        owner_id=owner_id,
                        card_id=card_id,
                        reviewed_at=now,
                        grade=grade,
                        prev_ease=_finite_or_none(previous.ease_factor),
                        new_ease=current.ease_factor,
                        prev_interval=_int_or_none(previous.interval_days),
                        new_interval=current.interval_days,
                        prev_repetitions=_int_or_none(previous.repetitions),
                        new_repetitions=current.repetitions,
                        prev_due=previous.due_date,
                        new_due=current.due_date,
                        latency_ms=latency_ms,
                        session_id=session_id,
                        direction=direction,
                    )
                )
                await session.commit()
        except SQLAlchemyError as e:
            logger.error(f"Review transaction failed for card {card_id}: {e}", exc_info=True)
            raise ReviewPersistenceError(card_id, e) from e

        logger.info(
            f"Card {card_id} graded {grade}: interval {previous.interval_days} -> "
            f"{current.interval_days}, due {current.due_date}"
        )

        if self.telemetry_sink is not None:
            await self.telemetry_sink.record(
                TelemetryEvent(
                    owner_id=owner_id,
                    mode=mode,
                    action="graded",
                    session_id=session_id,
                    card_id=card_id,
                    ts=now,
                    attempt=attempt,
                    hint_count=hint_count,
                    latency_ms=latency_ms,
                    grade=grade,
                    is_correct=is_correct(grade),
                    answer_text=answer_text,
                    sm2_before=previous.snapshot(),
                    sm2_after=current.snapshot(),
                    client=client,
                    source=source,
                )
            )

        message = f"{grade_message(grade)} {next_review_message(current.interval_days, current.due_date)}"
        return ReviewResult(
            card_id=card_id,
            grade=grade,
            previous=previous,
            current=current,
            latency_ms=latency_ms,
            was_overdue=was_overdue,
            is_new=is_new,
            session_id=session_id,
            message=message,
        )
