"""Scheduling value types shared by the engine, the store and the coordinator."""

from __future__ import annotations

from dataclasses import asdict, dataclass, replace
from datetime import date
from enum import Enum
from typing import Any, Dict, Optional

DEFAULT_EASE_FACTOR = 2.5
MIN_EASE_FACTOR = 1.3
MIN_GRADE = 0
MAX_GRADE = 5
PASSING_GRADE = 3


class Queue(str, Enum):
    """Coarse scheduling bucket, derived from the repetition count."""

    NEW = "new"
    LEARNING = "learning"
    REVIEW = "review"


@dataclass(frozen=True)
class SchedulingState:
    """SM-2 state of one card for one owner.

    Values read from storage may be corrupted (NaN, negative); the engine
    heals them, so this type does not validate on construction.
    """

    repetitions: int = 0
    ease_factor: float = DEFAULT_EASE_FACTOR
    interval_days: int = 0
    due_date: Optional[date] = None
    lapses: int = 0
    queue: Queue = Queue.NEW

    @classmethod
    def initial(cls, today: date) -> "SchedulingState":
        """Default state for a card that has never been reviewed."""
        return cls(due_date=today)

    def with_queue(self, queue: Queue) -> "SchedulingState":
        return replace(self, queue=queue)

    def snapshot(self) -> Dict[str, Any]:
        """Compact form stored in telemetry ``sm2_before``/``sm2_after``."""
        return {
            "interval": self.interval_days,
            "ease": self.ease_factor,
            "reps": self.repetitions,
            "due_at": self.due_date.isoformat() if self.due_date else None,
        }

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["queue"] = self.queue.value
        data["due_date"] = self.due_date.isoformat() if self.due_date else None
        return data


def derive_queue_after_grading(repetitions: int) -> Queue:
    """Queue for a state that was just graded.

    A lapse (0 repetitions) lands in learning, same as a first success.
    Downstream due-count breakdowns rely on this, so it is not "new".
    """
    if repetitions == 0:
        return Queue.LEARNING
    elif repetitions == 1:
        return Queue.LEARNING
    return Queue.REVIEW


def derive_queue(repetitions: int) -> Queue:
    """Queue for a state at rest (never graded => new)."""
    if repetitions == 0:
        return Queue.NEW
    return derive_queue_after_grading(repetitions)
