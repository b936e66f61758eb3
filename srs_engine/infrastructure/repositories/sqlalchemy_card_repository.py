"""SQLAlchemy implementation of CardRepository."""

import logging
from typing import List, Optional

from sqlalchemy import and_, select
from sqlalchemy.ext.asyncio import AsyncSession

from srs_engine.models.card import Card
from srs_engine.models.review_state import ReviewState

logger = logging.getLogger(__name__)


class SqlAlchemyCardRepository:
    """Concrete CardRepository backed by SQLAlchemy async sessions."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_owned(self, owner_id: str, card_id: str) -> Optional[Card]:
        """Look up a card by ID, scoped to its owner."""
        result = await self._session.execute(
            select(Card).where(Card.id == card_id, Card.owner_id == owner_id)
        )
        return result.scalar_one_or_none()

    async def list_unscheduled(self, owner_id: str, limit: int) -> List[Card]:
        """Active cards of the owner with no review_state row, oldest first."""
        if limit <= 0:
            return []
        stmt = (
            select(Card)
            .outerjoin(
                ReviewState,
                and_(ReviewState.card_id == Card.id, ReviewState.owner_id == owner_id),
            )
            .where(
                Card.owner_id == owner_id,
                Card.active.is_(True),
                ReviewState.id.is_(None),
            )
            .order_by(Card.created_at.asc(), Card.id.asc())
            .limit(limit)
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())
