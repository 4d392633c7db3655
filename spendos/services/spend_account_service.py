"""
Spend Account Service
Keeps the local account mirror in step with the Treasury contract and forwards
admin write operations to it
"""
import logging
from datetime import timedelta
from typing import Dict, List, Optional

from fastapi import HTTPException

from spendos.blockchain.events import (
    SpendAccountClosedEvent,
    SpendAccountCreatedEvent,
    SpendAccountFrozenEvent,
    SpendAccountUnfrozenEvent,
    SpendAccountUpdatedEvent,
)
from spendos.blockchain.treasury_contract import OnChainAccount, TreasuryContract
from spendos.database.models import AlertSeverity, AlertType, SpendAccount
from spendos.database.postgres_client import from_unix
from spendos.repositories.spend_account_repository import SpendAccountRepository
from spendos.services.alert_service import AlertService

logger = logging.getLogger(__name__)


def apply_chain_state(account: SpendAccount, data: OnChainAccount):
    """Overwrite limits and ledger counters with on-chain truth"""
    account.owner_address = data.owner.lower()
    account.approver_address = data.approver.lower()
    account.label = data.label
    account.budget_per_period = data.budget_per_period
    account.period_duration = data.period_duration
    account.per_tx_limit = data.per_tx_limit
    account.daily_limit = data.daily_limit
    account.approval_threshold = data.approval_threshold
    account.period_spent = data.period_spent
    account.period_reserved = data.period_reserved
    account.daily_spent = data.daily_spent
    account.daily_reserved = data.daily_reserved
    account.period_start = from_unix(data.period_start) if data.period_start else None
    # Contract tracks the start of the current day window
    account.daily_reset_at = (
        from_unix(data.last_day_timestamp) + timedelta(days=1) if data.last_day_timestamp else None
    )
    account.frozen = data.frozen
    account.closed = data.closed
    account.allowed_chains = list(data.allowed_chains)
    account.auto_topup_min_balance = data.min_balance or None
    account.auto_topup_target_balance = data.target_balance or None


class SpendAccountService:
    """Service for spend account business logic"""

    def __init__(
        self,
        repository: SpendAccountRepository,
        alert_service: AlertService,
        contract: Optional[TreasuryContract] = None
    ):
        self.repository = repository
        self.alert_service = alert_service
        self.contract = contract

    def _chain(self) -> TreasuryContract:
        if self.contract is None:
            raise HTTPException(status_code=503, detail="Treasury contract is not configured")
        return self.contract

    # ==================== QUERIES ====================

    async def find_all(self) -> List[SpendAccount]:
        return await self.repository.list_all()

    async def find_one(self, account_id: int) -> SpendAccount:
        account = await self.repository.get(account_id)
        if not account:
            raise HTTPException(status_code=404, detail=f"Spend account {account_id} not found")
        return account

    async def find_by_owner(self, address: str) -> List[SpendAccount]:
        return await self.repository.list_by_owner(address)

    async def find_by_approver(self, address: str) -> List[SpendAccount]:
        return await self.repository.list_by_approver(address)

    async def find_mine(self, address: str) -> Dict[str, List[SpendAccount]]:
        return {
            "owned": await self.find_by_owner(address),
            "approver": await self.find_by_approver(address),
        }

    # ==================== CHAIN EVENTS ====================

    async def handle_account_created(self, event: SpendAccountCreatedEvent) -> SpendAccount:
        logger.info(f"Account created event: accountId={event.account_id}")
        return await self.sync_account_from_chain(event.account_id)

    async def handle_account_updated(self, event: SpendAccountUpdatedEvent) -> SpendAccount:
        logger.info(f"Account updated event: accountId={event.account_id}")
        return await self.sync_account_from_chain(event.account_id)

    async def handle_account_frozen(self, event: SpendAccountFrozenEvent):
        logger.info(f"Account frozen event: accountId={event.account_id}")
        account = await self.repository.get_for_update(event.account_id)
        if account is None:
            await self.sync_account_from_chain(event.account_id)
        elif not account.frozen:
            account.frozen = True
            await self.repository.commit()
        else:
            return

        await self.alert_service.create_alert(
            AlertType.ACCOUNT_FROZEN,
            f"Spend account {event.account_id} has been frozen",
            AlertSeverity.WARNING,
            account_id=event.account_id
        )

    async def handle_account_unfrozen(self, event: SpendAccountUnfrozenEvent):
        logger.info(f"Account unfrozen event: accountId={event.account_id}")
        account = await self.repository.get_for_update(event.account_id)
        if account is None:
            await self.sync_account_from_chain(event.account_id)
            return
        account.frozen = False
        await self.repository.commit()

    async def handle_account_closed(self, event: SpendAccountClosedEvent):
        logger.info(f"Account closed event: accountId={event.account_id}")
        account = await self.repository.get_for_update(event.account_id)
        if account is None:
            await self.sync_account_from_chain(event.account_id)
        elif not account.closed:
            account.closed = True
            await self.repository.commit()
        else:
            return

        await self.alert_service.create_alert(
            AlertType.ACCOUNT_CLOSED,
            f"Spend account {event.account_id} has been closed",
            AlertSeverity.INFO,
            account_id=event.account_id
        )

    # ==================== RECONCILIATION ====================

    async def sync_account_from_chain(self, account_id: int) -> SpendAccount:
        """Upsert one account from getAccount(); the chain wins on every field"""
        data = await self._chain().get_account(account_id)

        account = await self.repository.get_for_update(account_id)
        if account is None:
            account = self.repository.add(SpendAccount(account_id=account_id))
        apply_chain_state(account, data)
        await self.repository.commit()

        logger.info(f"🔄 Synced account {account_id} from chain")
        return account

    async def sync_all_accounts_from_chain(self) -> Dict[str, int]:
        """Sync ids 1..nextAccountId-1; a failing account does not stop the run"""
        next_id = await self._chain().get_next_account_id()
        synced, failed = 0, 0

        for account_id in range(1, next_id):
            try:
                await self.sync_account_from_chain(account_id)
                synced += 1
            except Exception as e:
                await self.repository.rollback()
                logger.error(f"❌ Failed to sync account {account_id}: {e}")
                failed += 1

        logger.info(f"Account sync complete: {synced} synced, {failed} failed")
        return {"synced": synced, "failed": failed}

    # ==================== WRITE OPERATIONS ====================

    async def create_account(
        self,
        owner: str,
        label: str,
        budget_per_period: int,
        period_duration: int,
        per_tx_limit: int,
        daily_limit: int,
        approval_threshold: int,
        approver: str,
        allowed_chains: List[int]
    ) -> dict:
        logger.info(f"Creating spend account for {owner}: {label}")
        result = await self._chain().create_spend_account(
            owner,
            label,
            budget_per_period,
            period_duration,
            per_tx_limit,
            daily_limit or 0,  # 0 means use per_tx_limit
            approval_threshold,
            approver,
            allowed_chains
        )
        logger.info(f"Spend account created: ID {result['accountId']}, tx: {result['transactionHash']}")
        return result

    async def update_account(
        self,
        account_id: int,
        budget_per_period: Optional[int] = None,
        per_tx_limit: Optional[int] = None,
        daily_limit: Optional[int] = None,
        approval_threshold: Optional[int] = None,
        approver: Optional[str] = None
    ) -> str:
        await self.find_one(account_id)
        return await self._chain().update_spend_account(
            account_id,
            budget_per_period or 0,
            per_tx_limit or 0,
            daily_limit or 0,
            approval_threshold or 0,
            approver
        )

    async def freeze_account(self, account_id: int) -> str:
        await self.find_one(account_id)
        return await self._chain().freeze_account(account_id)

    async def unfreeze_account(self, account_id: int) -> str:
        await self.find_one(account_id)
        return await self._chain().unfreeze_account(account_id)

    async def close_account(self, account_id: int) -> str:
        await self.find_one(account_id)
        return await self._chain().close_account(account_id)

    async def update_allowed_chains(self, account_id: int, allowed_chains: List[int]) -> str:
        await self.find_one(account_id)
        logger.info(f"Updating allowed chains for account {account_id}: {allowed_chains}")
        return await self._chain().update_allowed_chains(account_id, allowed_chains)

    async def configure_auto_topup(self, account_id: int, min_balance: int, target_balance: int) -> str:
        if target_balance < min_balance:
            raise HTTPException(status_code=400, detail="targetBalance must be >= minBalance")
        await self.find_one(account_id)
        return await self._chain().set_auto_topup_config(account_id, min_balance, target_balance)

    async def execute_auto_topup(self, account_id: int) -> str:
        await self.find_one(account_id)
        return await self._chain().auto_topup(account_id)

    async def sweep_account(self, account_id: int) -> str:
        await self.find_one(account_id)
        return await self._chain().sweep_account(account_id)

    async def reset_period(self, account_id: int) -> str:
        await self.find_one(account_id)
        return await self._chain().reset_period(account_id)
