"""
SRS SM-2 Algorithm Implementation
Calculates next review intervals based on recall grades (0-5)
"""

import math
from datetime import date, timedelta
from typing import Dict, Iterable, Optional

from ...domain.errors import InvalidGrade
from ...domain.scheduling import (
    DEFAULT_EASE_FACTOR,
    MAX_GRADE,
    MIN_EASE_FACTOR,
    MIN_GRADE,
    PASSING_GRADE,
    SchedulingState,
    derive_queue_after_grading,
)
from .clock import today_in_timezone

# 100 years; keeps due-date arithmetic inside datetime.date's range
MAX_INTERVAL_DAYS = 36500


def _round_half_up(value: float) -> int:
    """Round like JavaScript's Math.round (ties go up, not to even)."""
    return int(math.floor(value + 0.5))


def _finite(value, fallback: float) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return fallback
    return number if math.isfinite(number) else fallback


def _count(value) -> int:
    """Non-negative integer count; anything corrupted becomes 0."""
    number = _finite(value, 0.0)
    return int(number) if number > 0 else 0


def validate_grade(grade) -> int:
    """Return *grade* if it is an integer in 0..5, else raise InvalidGrade."""
    if isinstance(grade, bool) or not isinstance(grade, int):
        raise InvalidGrade(grade)
    if grade < MIN_GRADE or grade > MAX_GRADE:
        raise InvalidGrade(grade)
    return grade


def ease_adjustment(grade: int) -> float:
    """SM-2 ease delta: EF' = EF + (0.1 - (5-q) * (0.08 + (5-q) * 0.02))."""
    miss = MAX_GRADE - grade
    return 0.1 - miss * (0.08 + miss * 0.02)


def apply(
    grade: int,
    state: SchedulingState,
    today: Optional[date] = None,
) -> SchedulingState:
    """
    Calculate the next scheduling state using the SM-2 algorithm.

    Args:
        grade: Recall quality, 0=total blackout ... 5=perfect recall
        state: Current scheduling state (may hold corrupted values from storage)
        today: Date the review happens on; defaults to today in the scheduling timezone

    Returns:
        New SchedulingState with due_date = today + interval_days and the
        post-grading queue.

    A failing grade (< 3) resets repetitions, schedules for tomorrow and
    counts a lapse; the ease factor is left alone. A passing grade raises or
    lowers the ease factor and grows the interval 1 -> 6 -> interval * EF,
    where EF is the factor in effect before this review. A non-finite stored
    factor is read as the 2.5 default.
    """
    grade = validate_grade(grade)
    if today is None:
        today = today_in_timezone()

    repetitions = _count(state.repetitions)
    lapses = _count(state.lapses)
    interval_days = _finite(state.interval_days, 0.0)
    ease_factor = _finite(state.ease_factor, DEFAULT_EASE_FACTOR)

    if grade < PASSING_GRADE:
        repetitions = 0
        next_interval = 1.0
        lapses += 1
    else:
        if repetitions == 0:
            next_interval = 1.0
        elif repetitions == 1:
            next_interval = 6.0
        else:
            next_interval = interval_days * ease_factor
        ease_factor = max(MIN_EASE_FACTOR, ease_factor + ease_adjustment(grade))
        repetitions += 1

    if not math.isfinite(next_interval) or next_interval <= 0:
        next_interval_days = 1
    else:
        next_interval_days = min(max(_round_half_up(next_interval), 1), MAX_INTERVAL_DAYS)

    if not math.isfinite(ease_factor) or ease_factor < MIN_EASE_FACTOR:
        ease_factor = MIN_EASE_FACTOR

    return SchedulingState(
        repetitions=repetitions,
        ease_factor=ease_factor,
        interval_days=next_interval_days,
        due_date=today + timedelta(days=next_interval_days),
        lapses=lapses,
        queue=derive_queue_after_grading(repetitions),
    )


def calculate_retention(grades: Iterable[int]) -> float:
    """Percentage of reviews graded as a successful recall."""
    grades = list(grades)
    if not grades:
        return 0.0
    successful = sum(1 for g in grades if g >= PASSING_GRADE)
    return successful / len(grades) * 100


def ease_histogram(ease_factors: Iterable[float]) -> Dict[str, int]:
    """Bucket ease factors for statistics displays."""
    buckets = {
        "1.3-1.5": 0,
        "1.5-1.8": 0,
        "1.8-2.2": 0,
        "2.2-2.5": 0,
        "2.5-3.0": 0,
        "3.0+": 0,
    }
    for ef in ease_factors:
        if ef < 1.5:
            buckets["1.3-1.5"] += 1
        elif ef < 1.8:
            buckets["1.5-1.8"] += 1
        elif ef < 2.2:
            buckets["1.8-2.2"] += 1
        elif ef < 2.5:
            buckets["2.2-2.5"] += 1
        elif ef < 3.0:
            buckets["2.5-3.0"] += 1
        else:
            buckets["3.0+"] += 1
    return buckets
