"""ReviewLogRepository protocol: append-only review history."""

from datetime import datetime
from typing import List, Protocol, runtime_checkable


@runtime_checkable
class ReviewLogRepository(Protocol):
    async def add(self, entry: object) -> object:
        """Append a history entry."""
        ...

    async def count_between(self, owner_id: str, start: datetime, end: datetime) -> int:
        """Number of reviews with start <= reviewed_at < end."""
        ...

    async def list_for_card(self, owner_id: str, card_id: str) -> List[object]:
        """History of one card, oldest first."""
        ...
