from .card_repository import CardRepository
from .opt_out_repository import OptOutRepository
from .review_event_repository import ReviewEventRepository
from .review_log_repository import ReviewLogRepository
from .review_state_repository import ReviewStateRepository

__all__ = [
    "CardRepository",
    "OptOutRepository",
    "ReviewEventRepository",
    "ReviewLogRepository",
    "ReviewStateRepository",
]
