"""
Funding Event Repository
Append-only: rows are added and read, never updated
"""
from typing import List, Optional

from sqlalchemy import select

from spendos.database.models.funding_event import FundingEvent
from spendos.repositories.base import BaseRepository


class FundingEventRepository(BaseRepository):

    async def get_history(self, limit: int = 50) -> List[FundingEvent]:
        query = select(FundingEvent).order_by(FundingEvent.created_at.desc()).limit(limit)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def get_by_gateway_tx_id(self, gateway_tx_id: str) -> Optional[FundingEvent]:
        query = select(FundingEvent).where(FundingEvent.gateway_tx_id == gateway_tx_id)
        result = await self.session.execute(query)
        return result.scalars().first()
