"""CardRepository protocol: read-only access to the card catalog."""

from typing import List, Optional, Protocol, runtime_checkable


@runtime_checkable
class CardRepository(Protocol):
    """Repository interface for Card lookups."""

    async def get_owned(self, owner_id: str, card_id: str) -> Optional[object]:
        """Look up a card that belongs to *owner_id*.

        Returns:
            The Card object, or None if it does not exist or is owned by someone else.
        """
        ...

    async def list_unscheduled(self, owner_id: str, limit: int) -> List[object]:
        """Active cards of *owner_id* that have no scheduling state yet.

        Returns:
            Up to *limit* Card objects, oldest first.
        """
        ...
