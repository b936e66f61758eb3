from .base import Base, TimestampMixin
from .card import Card
from .ml_opt_out import MlOptOut
from .review_event import ReviewEvent
from .review_log import ReviewLog
from .review_state import ReviewState

__all__ = [
    "Base",
    "TimestampMixin",
    "Card",
    "ReviewState",
    "ReviewLog",
    "ReviewEvent",
    "MlOptOut",
]
