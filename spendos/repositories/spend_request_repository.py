"""
Spend Request Repository - Data access layer
"""
from datetime import datetime
from typing import List, Optional

from sqlalchemy import select

from spendos.database.models.spend_request import SpendRequest
from spendos.database.models.types import SpendStatus
from spendos.repositories.base import BaseRepository


class SpendRequestRepository(BaseRepository):
    """Repository for spend request database operations"""

    async def get_by_request_id(self, request_id: int) -> Optional[SpendRequest]:
        query = select(SpendRequest).where(SpendRequest.request_id == request_id)
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def get_for_update(self, request_id: int) -> Optional[SpendRequest]:
        """Load with a row lock; always taken before the account lock"""
        query = (
            select(SpendRequest)
            .where(SpendRequest.request_id == request_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def list_requests(
        self,
        account_id: Optional[int] = None,
        status: Optional[SpendStatus] = None,
        limit: int = 100
    ) -> List[SpendRequest]:
        """Newest first, optional account/status filters"""
        query = select(SpendRequest)
        if account_id is not None:
            query = query.where(SpendRequest.account_id == account_id)
        if status:
            query = query.where(SpendRequest.status == status)

        query = query.order_by(SpendRequest.created_at.desc()).limit(limit)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def list_stuck(self, updated_before: datetime) -> List[SpendRequest]:
        """EXECUTING requests untouched since `updated_before`"""
        query = (
            select(SpendRequest)
            .where(SpendRequest.status == SpendStatus.EXECUTING)
            .where(SpendRequest.updated_at < updated_before)
            .order_by(SpendRequest.updated_at)
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def list_executed_since(self, since: datetime) -> List[SpendRequest]:
        query = (
            select(SpendRequest)
            .where(SpendRequest.status == SpendStatus.EXECUTED)
            .where(SpendRequest.executed_at >= since)
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())
