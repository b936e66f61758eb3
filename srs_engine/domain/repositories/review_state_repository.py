"""ReviewStateRepository protocol: the scheduling state store."""

from datetime import date, datetime
from typing import Dict, List, Optional, Protocol, Tuple, runtime_checkable

from ..scheduling import Queue, SchedulingState


@runtime_checkable
class ReviewStateRepository(Protocol):
    """Per-card, per-owner SM-2 state persistence."""

    async def get(self, owner_id: str, card_id: str, today: date) -> Optional[SchedulingState]:
        """Fetch the scheduling state, validated into a SchedulingState.

        Args:
            today: Used to default a missing/unparsable due date.

        Returns:
            The state, or None if the card has never been scheduled.
        """
        ...

    async def create(self, owner_id: str, card_id: str, state: SchedulingState) -> SchedulingState:
        """Insert the initial state for a card (no-op if one already exists)."""
        ...

    async def save(
        self,
        owner_id: str,
        card_id: str,
        state: SchedulingState,
        reviewed_at: datetime,
        grade: int,
    ) -> None:
        """Overwrite the state after a graded review."""
        ...

    async def list_due(
        self,
        owner_id: str,
        today: date,
        limit: int,
        queue: Optional[Queue] = None,
        overdue_only: bool = False,
    ) -> List[Tuple[object, SchedulingState]]:
        """Due (card, state) pairs of active cards, oldest due date first."""
        ...

    async def summary_counts(self, owner_id: str, today: date, tomorrow: date) -> Dict[str, int]:
        """Counts by due bucket and queue for the owner's active cards."""
        ...
