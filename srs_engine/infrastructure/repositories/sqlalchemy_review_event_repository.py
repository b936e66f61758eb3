"""SQLAlchemy implementation of ReviewEventRepository."""

from sqlalchemy.ext.asyncio import AsyncSession

from srs_engine.models.review_event import ReviewEvent


class SqlAlchemyReviewEventRepository:
    """Concrete ReviewEventRepository backed by SQLAlchemy async sessions."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(self, event: ReviewEvent) -> ReviewEvent:
        self._session.add(event)
        await self._session.flush()
        return event
