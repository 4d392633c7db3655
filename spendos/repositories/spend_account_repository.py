"""
Spend Account Repository - Data access layer
"""
from typing import List, Optional

from sqlalchemy import select

from spendos.database.models.spend_account import SpendAccount
from spendos.repositories.base import BaseRepository


class SpendAccountRepository(BaseRepository):
    """Repository for the spend account mirror"""

    async def get(self, account_id: int) -> Optional[SpendAccount]:
        return await self.session.get(SpendAccount, account_id)

    async def get_for_update(self, account_id: int) -> Optional[SpendAccount]:
        """
        Load the account with a row lock held until commit
        Serializes concurrent reservations against the same budget
        """
        query = (
            select(SpendAccount)
            .where(SpendAccount.account_id == account_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def list_all(self, include_closed: bool = True) -> List[SpendAccount]:
        query = select(SpendAccount)
        if not include_closed:
            query = query.where(SpendAccount.closed.is_(False))
        result = await self.session.execute(query.order_by(SpendAccount.account_id))
        return list(result.scalars().all())

    async def list_by_owner(self, address: str) -> List[SpendAccount]:
        query = (
            select(SpendAccount)
            .where(SpendAccount.owner_address == address.lower())
            .order_by(SpendAccount.account_id)
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def list_by_approver(self, address: str) -> List[SpendAccount]:
        query = (
            select(SpendAccount)
            .where(SpendAccount.approver_address == address.lower())
            .order_by(SpendAccount.account_id)
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())
