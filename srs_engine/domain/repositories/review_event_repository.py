"""ReviewEventRepository protocol: anonymised telemetry rows."""

from typing import Protocol, runtime_checkable


@runtime_checkable
class ReviewEventRepository(Protocol):
    async def add(self, event: object) -> object:
        """Persist a telemetry row."""
        ...
