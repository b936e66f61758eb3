"""Due-card counts for an owner, used by /due style commands and reminders."""

import logging
from dataclasses import asdict, dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Callable, Dict, Optional, Tuple
from zoneinfo import ZoneInfo

from ...core.config import get_timezone
from ...core.database import get_db_session
from ...infrastructure.repositories import (
    SqlAlchemyReviewLogRepository,
    SqlAlchemyReviewStateRepository,
)
from .clock import today_in_timezone, utc_now

logger = logging.getLogger(__name__)


@dataclass
class DueSummary:
    total: int = 0
    due_today: int = 0
    due_tomorrow: int = 0
    overdue: int = 0
    new: int = 0
    learning: int = 0
    review: int = 0
    reviewed_today: int = 0
    load: float = 0.0

    @property
    def due_now(self) -> int:
        return self.due_today + self.overdue

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["due_now"] = self.due_now
        return data


def day_bounds_utc(day: date, tz: ZoneInfo) -> Tuple[datetime, datetime]:
    """[start, end) of a local calendar day, expressed in UTC."""
    start = datetime.combine(day, time.min, tzinfo=tz)
    end = datetime.combine(day + timedelta(days=1), time.min, tzinfo=tz)
    return start.astimezone(timezone.utc), end.astimezone(timezone.utc)


async def get_due_summary(
    owner_id: str,
    session_factory: Callable = get_db_session,
    tz: Optional[ZoneInfo] = None,
    now: Optional[datetime] = None,
) -> DueSummary:
    """Count the owner's cards by due bucket and queue.

    ``load`` is the share of currently due cards that are due today rather
    than overdue; 0 when nothing is due.
    """
    owner_id = str(owner_id)
    tz = tz or get_timezone()
    now = now or utc_now()
    today = today_in_timezone(tz, now)
    tomorrow = today + timedelta(days=1)
    start, end = day_bounds_utc(today, tz)

    async with session_factory() as session:
        counts = await SqlAlchemyReviewStateRepository(session).summary_counts(
            owner_id, today, tomorrow
        )
        reviewed_today = await SqlAlchemyReviewLogRepository(session).count_between(
            owner_id, start, end
        )

    summary = DueSummary(reviewed_today=reviewed_today, **counts)
    due_now = summary.due_now
    summary.load = summary.due_today / due_now if due_now else 0.0
    logger.debug(f"Due summary: {summary.due_now} due now, {summary.due_tomorrow} tomorrow")
    return summary
