from .sqlalchemy_card_repository import SqlAlchemyCardRepository
from .sqlalchemy_opt_out_repository import SqlAlchemyOptOutRepository
from .sqlalchemy_review_event_repository import SqlAlchemyReviewEventRepository
from .sqlalchemy_review_log_repository import SqlAlchemyReviewLogRepository
from .sqlalchemy_review_state_repository import SqlAlchemyReviewStateRepository

__all__ = [
    "SqlAlchemyCardRepository",
    "SqlAlchemyOptOutRepository",
    "SqlAlchemyReviewEventRepository",
    "SqlAlchemyReviewLogRepository",
    "SqlAlchemyReviewStateRepository",
]
