"""
Due card selection.

Scheduled cards come first (oldest due date first); remaining slots are
filled with never-scheduled cards, which get their initial scheduling state
created on the way out.
"""

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional, Union
from zoneinfo import ZoneInfo

from ...core.database import get_db_session
from ...domain.errors import InvalidQueueFilter
from ...domain.scheduling import Queue, SchedulingState
from ...infrastructure.repositories import (
    SqlAlchemyCardRepository,
    SqlAlchemyReviewStateRepository,
)
from ...models.card import Card
from .clock import today_in_timezone

logger = logging.getLogger(__name__)

SELECTABLE_QUEUES = (Queue.NEW, Queue.LEARNING)


@dataclass
class DueCard:
    card: Card
    state: SchedulingState
    is_new_card: bool = False

    @property
    def card_id(self) -> str:
        return self.card.id


def parse_queue_filter(queue_filter: Union[str, Queue, None]) -> Optional[Queue]:
    """Accept 'new' / 'learning' (or the enum); anything else is rejected."""
    if queue_filter is None:
        return None
    try:
        queue = Queue(queue_filter.strip().lower() if isinstance(queue_filter, str) else queue_filter)
    except ValueError:
        raise InvalidQueueFilter(queue_filter) from None
    if queue not in SELECTABLE_QUEUES:
        raise InvalidQueueFilter(queue_filter)
    return queue


class DueItemSelector:
    """Picks the next cards an owner should review."""

    def __init__(self, session_factory: Callable = get_db_session, tz: Optional[ZoneInfo] = None):
        self._session_factory = session_factory
        self._tz = tz

    async def select(
        self,
        owner_id: str,
        limit: int = 10,
        include_new: bool = True,
        queue_filter: Union[str, Queue, None] = None,
        overdue_only: bool = False,
    ) -> List[DueCard]:
        """
        Select up to ``limit`` due cards for ``owner_id``.

        Args:
            owner_id: Card owner
            limit: Maximum number of cards returned
            include_new: Fill remaining slots with never-scheduled cards
            queue_filter: Restrict scheduled cards to the 'new' or 'learning' queue
            overdue_only: Only cards whose due date is before today; no new cards

        Returns:
            DueCard list, empty when nothing is due.

        Raises:
            InvalidQueueFilter: For any queue other than new/learning.
        """
        queue = parse_queue_filter(queue_filter)
        owner_id = str(owner_id)
        if limit <= 0:
            return []

        today = today_in_timezone(self._tz)

        async with self._session_factory() as session:
            states = SqlAlchemyReviewStateRepository(session)
            due = [
                DueCard(card=card, state=state)
                for card, state in await states.list_due(
                    owner_id, today, limit, queue=queue, overdue_only=overdue_only
                )
            ]

            wants_new = include_new and not overdue_only and queue in (None, Queue.NEW)
            remaining = limit - len(due)
            if not wants_new or remaining <= 0:
                return due

            fresh = await SqlAlchemyCardRepository(session).list_unscheduled(owner_id, remaining)
            for card in fresh:
                state = await states.create(owner_id, card.id, SchedulingState.initial(today))
                due.append(DueCard(card=card, state=state, is_new_card=True))
            if fresh:
                await session.commit()
                logger.info(f"Scheduled {len(fresh)} new cards for review")

        return due
