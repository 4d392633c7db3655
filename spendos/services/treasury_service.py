"""
Treasury Service - Business logic layer
Balance view, funding history, contract-level events and admin operations
"""
import logging
from typing import List, Optional

from fastapi import HTTPException

from spendos.blockchain.events import (
    AdminTransferredEvent,
    ContractPausedEvent,
    ContractUnpausedEvent,
    InboundFundingEvent,
)
from spendos.blockchain.treasury_contract import TreasuryContract
from spendos.database.models import AlertSeverity, AlertType, FundingDirection, FundingEvent
from spendos.database.redis_client import CONTRACT_ADMIN_KEY, RedisClient
from spendos.gateway.gateway_api import GatewayApi
from spendos.repositories.funding_event_repository import FundingEventRepository
from spendos.repositories.spend_account_repository import SpendAccountRepository
from spendos.services.alert_service import AlertService
from spendos.services.balance_sync import get_cached_balance
from spendos.utils.usdc import format_usdc

logger = logging.getLogger(__name__)


class TreasuryService:
    """Service for treasury business logic"""

    def __init__(
        self,
        funding_repository: FundingEventRepository,
        account_repository: SpendAccountRepository,
        alert_service: AlertService,
        contract: Optional[TreasuryContract] = None,
        gateway: Optional[GatewayApi] = None
    ):
        self.funding_repository = funding_repository
        self.account_repository = account_repository
        self.alert_service = alert_service
        self.contract = contract
        self.gateway = gateway

    def _chain(self) -> TreasuryContract:
        if self.contract is None:
            raise HTTPException(status_code=503, detail="Treasury contract is not configured")
        return self.contract

    # ==================== BALANCE ====================

    async def get_balance_micro(self) -> dict:
        """unified / committed / available in micro-USDC"""
        unified, last_sync = await get_cached_balance()
        accounts = await self.account_repository.list_all(include_closed=False)
        committed = sum(account.budget_per_period for account in accounts)
        return {
            "unified": unified,
            "committed": committed,
            "available": max(unified - committed, 0),
            "lastSyncAt": last_sync,
        }

    async def get_balance(self) -> dict:
        """Balance breakdown in USDC dollars (2 decimals)"""
        micro = await self.get_balance_micro()
        unified = format_usdc(micro["unified"])
        return {
            "balance": unified,
            "balanceFormatted": unified,
            "currency": "USDC",
            "unified": unified,
            "committed": format_usdc(micro["committed"]),
            "available": format_usdc(micro["available"]),
            "lastSyncAt": micro["lastSyncAt"],
        }

    async def get_unified_cross_chain_balance(
        self,
        address: Optional[str] = None,
        chain_ids: Optional[List[int]] = None
    ) -> dict:
        if self.gateway is None:
            raise HTTPException(status_code=503, detail="Gateway is not configured")
        # Defaults to the backend wallet, which holds the Gateway deposit
        wallet = address or self._chain().backend_address
        logger.info(f"Fetching unified cross-chain balance for {wallet}")
        return await self.gateway.get_unified_balance(wallet, chain_ids)

    # ==================== FUNDING ====================

    async def get_funding_history(self, limit: int = 50) -> List[FundingEvent]:
        return await self.funding_repository.get_history(limit)

    async def handle_inbound_funding(self, event: InboundFundingEvent) -> FundingEvent:
        existing = await self.funding_repository.get_by_gateway_tx_id(event.gateway_tx_id)
        if existing:
            logger.info(f"Inbound funding {event.gateway_tx_id} already recorded")
            return existing

        logger.info(f"💰 Recording inbound funding: {event.amount} micro-USDC")
        funding = self.funding_repository.add(FundingEvent(
            direction=FundingDirection.INBOUND,
            amount=event.amount,
            gateway_tx_id=event.gateway_tx_id,
            tx_hash=event.tx_hash,
            created_at=event.timestamp
        ))
        await self.funding_repository.commit()
        return funding

    # ==================== CONTRACT EVENTS ====================

    async def handle_admin_transferred(self, event: AdminTransferredEvent):
        logger.warning(f"Admin transferred from {event.previous_admin} to {event.new_admin}")
        await RedisClient.set_value(CONTRACT_ADMIN_KEY, event.new_admin.lower())

        await self.alert_service.create_alert(
            AlertType.ADMIN_TRANSFER,
            f"Treasury admin transferred from {event.previous_admin} to {event.new_admin}",
            AlertSeverity.CRITICAL,
            metadata={
                "previousAdmin": event.previous_admin,
                "newAdmin": event.new_admin,
                "txHash": event.tx_hash,
            }
        )

    async def handle_contract_paused(self, event: ContractPausedEvent):
        logger.error("Treasury contract has been PAUSED")
        await self.alert_service.create_alert(
            AlertType.CONTRACT_PAUSED,
            "Treasury contract has been paused - all operations are disabled",
            AlertSeverity.CRITICAL,
            metadata={"txHash": event.tx_hash, "pausedAt": event.timestamp.isoformat()}
        )

    async def handle_contract_unpaused(self, event: ContractUnpausedEvent):
        logger.info(f"Treasury contract has been UNPAUSED (tx {event.tx_hash})")

    # ==================== WRITE OPERATIONS ====================

    async def fund_treasury(self, amount: int, gateway_tx_id: str) -> str:
        logger.info(f"Funding treasury: {amount} micro-USDC, tx: {gateway_tx_id}")
        tx_hash = await self._chain().record_inbound_funding(amount, gateway_tx_id)
        logger.info(f"Treasury funded, tx: {tx_hash}")
        return tx_hash

    async def pause_contract(self) -> str:
        logger.info("Pausing treasury contract")
        return await self._chain().pause()

    async def unpause_contract(self) -> str:
        logger.info("Unpausing treasury contract")
        return await self._chain().unpause()

    async def transfer_admin(self, new_admin: str) -> str:
        logger.info(f"Transferring admin to {new_admin}")
        tx_hash = await self._chain().transfer_admin(new_admin)
        logger.info(f"Admin transferred to {new_admin}, tx: {tx_hash}")
        return tx_hash
