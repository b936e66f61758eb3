"""OptOutRepository protocol: per-owner telemetry opt-out records."""

from datetime import datetime
from typing import Optional, Protocol, runtime_checkable


@runtime_checkable
class OptOutRepository(Protocol):
    async def get(self, owner_id: str) -> Optional[object]:
        """The opt-out record, or None if the owner never opted out."""
        ...

    async def upsert(self, owner_id: str, source: Optional[str], at: datetime) -> object:
        """Mark the owner as opted out (idempotent)."""
        ...

    async def delete(self, owner_id: str) -> bool:
        """Remove the record. Returns True if one existed."""
        ...
