"""SQLAlchemy implementation of OptOutRepository."""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from srs_engine.models.ml_opt_out import MlOptOut

logger = logging.getLogger(__name__)


class SqlAlchemyOptOutRepository:
    """Concrete OptOutRepository backed by SQLAlchemy async sessions."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, owner_id: str) -> Optional[MlOptOut]:
        result = await self._session.execute(
            select(MlOptOut).where(MlOptOut.owner_id == owner_id)
        )
        return result.scalar_one_or_none()

    async def upsert(self, owner_id: str, source: Optional[str], at: datetime) -> MlOptOut:
        record = await self.get(owner_id)
        if record is None:
            record = MlOptOut(owner_id=owner_id, opted_out=True, opted_out_at=at, source=source)
            self._session.add(record)
        else:
            record.opted_out = True
            record.opted_out_at = at
            record.source = source
        await self._session.flush()
        return record

    async def delete(self, owner_id: str) -> bool:
        result = await self._session.execute(
            delete(MlOptOut).where(MlOptOut.owner_id == owner_id)
        )
        return result.rowcount > 0
