"""
Typed domain errors for the scheduling core.

Callers (chat commands, HTTP routes) catch DomainError and show
``user_message``; anything else is an unexpected failure.
"""

from typing import Optional


class DomainError(Exception):
    """Base class for all domain-specific errors."""

    user_message = "Something went wrong. Please try again."


# ---------------------------------------------------------------------------
# Review session
# ---------------------------------------------------------------------------


class InvalidGrade(DomainError):
    """Grade is not an integer in 0..5 (or a known quality label)."""

    user_message = "Grade must be between 0 and 5. Please provide a valid grade."

    def __init__(self, grade: object) -> None:
        self.grade = grade
        super().__init__(f"Invalid grade: {grade!r}")


class CardNotFound(DomainError):
    """Card does not exist or is not owned by the caller.

    The owner id is kept as an attribute only; str(error) reaches the logs.
    """

    user_message = "Card not found or you don't have permission to review it."

    def __init__(self, owner_id: str, card_id: str) -> None:
        self.owner_id = owner_id
        self.card_id = card_id
        super().__init__(f"Card {card_id} not found for this owner")


class ReviewStateMissing(DomainError):
    """Submit was called for a card that has no scheduling state yet."""

    user_message = "No review state found for this card. Please start a review first."

    def __init__(self, owner_id: str, card_id: str) -> None:
        self.owner_id = owner_id
        self.card_id = card_id
        super().__init__(f"No review state for card {card_id}")


class ReviewPersistenceError(DomainError):
    """The state update + history append transaction failed and was rolled back."""

    user_message = "Could not save your review. Please try again."

    def __init__(self, card_id: str, cause: Optional[BaseException] = None) -> None:
        self.card_id = card_id
        self.cause = cause
        super().__init__(f"Failed to persist review for card {card_id}: {cause}")


class InvalidQueueFilter(DomainError):
    """Due selection was asked for a queue other than new/learning."""

    user_message = "Unknown queue. Use 'new' or 'learning'."

    def __init__(self, queue: object) -> None:
        self.queue = queue
        super().__init__(f"Invalid queue filter: {queue!r}")


# ---------------------------------------------------------------------------
# Telemetry / privacy
# ---------------------------------------------------------------------------


class HashSaltMissing(DomainError):
    """ML_HASH_SALT is not configured; telemetry cannot hash owner ids."""

    def __init__(self) -> None:
        super().__init__("ML_HASH_SALT is required for ML logging")
