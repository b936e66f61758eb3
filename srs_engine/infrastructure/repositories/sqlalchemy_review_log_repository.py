"""SQLAlchemy implementation of ReviewLogRepository."""

from datetime import datetime
from typing import List

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from srs_engine.models.review_log import ReviewLog


class SqlAlchemyReviewLogRepository:
    """Concrete ReviewLogRepository backed by SQLAlchemy async sessions."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(self, entry: ReviewLog) -> ReviewLog:
        self._session.add(entry)
        await self._session.flush()
        return entry

    async def count_between(self, owner_id: str, start: datetime, end: datetime) -> int:
        result = await self._session.execute(
            select(func.count(ReviewLog.id)).where(
                ReviewLog.owner_id == owner_id,
                ReviewLog.reviewed_at >= start,
                ReviewLog.reviewed_at < end,
            )
        )
        return result.scalar() or 0

    async def list_for_card(self, owner_id: str, card_id: str) -> List[ReviewLog]:
        result = await self._session.execute(
            select(ReviewLog)
            .where(ReviewLog.owner_id == owner_id, ReviewLog.card_id == card_id)
            .order_by(ReviewLog.reviewed_at.asc(), ReviewLog.id.asc())
        )
        return list(result.scalars().all())
