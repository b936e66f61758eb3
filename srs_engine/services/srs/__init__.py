"""
SRS (Spaced Repetition System) Module
SM-2 scheduling, due selection, review sessions and privacy-gated telemetry
"""

from .due_selector import DueCard, DueItemSelector
from .due_summary import DueSummary, get_due_summary
from .grading import grade_message, is_correct, next_review_message, resolve_grade
from .privacy_gate import HashResult, HashStatus, OptOutCache, PrivacyConfig, PrivacyGate, PrivacyStatus
from .review_session import ReviewResult, ReviewSessionCoordinator, StartedReview
from .srs_algorithm import apply, calculate_retention, ease_histogram, validate_grade
from .telemetry_sink import TelemetryEvent, TelemetrySink

__all__ = [
    "apply",
    "validate_grade",
    "calculate_retention",
    "ease_histogram",
    "DueCard",
    "DueItemSelector",
    "DueSummary",
    "get_due_summary",
    "resolve_grade",
    "grade_message",
    "next_review_message",
    "is_correct",
    "HashResult",
    "HashStatus",
    "OptOutCache",
    "PrivacyConfig",
    "PrivacyGate",
    "PrivacyStatus",
    "ReviewResult",
    "ReviewSessionCoordinator",
    "StartedReview",
    "TelemetryEvent",
    "TelemetrySink",
]
