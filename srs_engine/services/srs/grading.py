"""
Grade vocabulary shared by chat buttons and the practice web app.

Grades follow SM-2: 0=total blackout, 1=incorrect but remembered,
2=incorrect but easy, 3=correct but difficult, 4=correct with hesitation,
5=perfect recall.
"""

from datetime import date
from typing import Union

from ...domain.errors import InvalidGrade
from ...domain.scheduling import PASSING_GRADE
from .srs_algorithm import validate_grade

QUALITY_TO_GRADE = {
    "again": 0,
    "forgot": 0,
    "wrong": 1,
    "hard": 3,
    "difficult": 3,
    "good": 4,
    "easy": 5,
}

GRADE_MESSAGES = {
    0: "Total blackout - don't worry, this happens! The card will be reviewed again soon.",
    1: "You remembered something, but got it wrong. Keep practicing!",
    2: "Incorrect, but you knew it was easy. You'll see this again soon.",
    3: "Correct, but it was difficult. Good job working through it!",
    4: "Correct with some hesitation. You're getting there!",
    5: "Perfect recall! Excellent work!",
}


def resolve_grade(value: Union[int, str]) -> int:
    """Turn an int, a numeric string or a quality label into a 0..5 grade."""
    if isinstance(value, str):
        key = value.strip().lower()
        if key in QUALITY_TO_GRADE:
            return QUALITY_TO_GRADE[key]
        if key.isdigit():
            return validate_grade(int(key))
        raise InvalidGrade(value)
    return validate_grade(value)


def is_correct(grade: int) -> bool:
    return grade >= PASSING_GRADE


def grade_message(grade: int) -> str:
    return GRADE_MESSAGES[validate_grade(grade)]


def next_review_message(interval_days: int, due_date: date) -> str:
    if interval_days == 1:
        return "You'll review this again tomorrow."
    return f"You'll review this again in {interval_days} days ({due_date.isoformat()})."
