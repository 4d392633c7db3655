"""
Spend Request Service
Approval workflow and budget accounting for spend requests

Status machine:
    PENDING_APPROVAL -> APPROVED | REJECTED
    APPROVED         -> EXECUTING | FAILED
    EXECUTING        -> EXECUTED | FAILED

Budget side effects: the amount is reserved when the request is recorded,
committed on EXECUTED and released on REJECTED/FAILED. Rows are locked
request first, then account.
"""
import asyncio
import logging
from typing import List, Optional

from fastapi import HTTPException
from sqlalchemy.exc import IntegrityError

from spendos import config
from spendos.blockchain.events import (
    SpendApprovedEvent,
    SpendExecutedEvent,
    SpendFailedEvent,
    SpendRejectedEvent,
    SpendRequestedEvent,
)
from spendos.database.models import AlertSeverity, AlertType, SpendAccount, SpendRequest, SpendStatus
from spendos.database.postgres_client import utcnow
from spendos.repositories.spend_account_repository import SpendAccountRepository
from spendos.repositories.spend_request_repository import SpendRequestRepository
from spendos.services import budget
from spendos.services.alert_service import AlertService
from spendos.services.auth_service import AuthUser
from spendos.services.errors import BudgetError, InvalidTransitionError
from spendos.services.spend_account_service import SpendAccountService

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS = {
    SpendStatus.PENDING_APPROVAL: {SpendStatus.APPROVED, SpendStatus.REJECTED},
    SpendStatus.APPROVED: {SpendStatus.EXECUTING, SpendStatus.FAILED},
    SpendStatus.EXECUTING: {SpendStatus.EXECUTED, SpendStatus.FAILED},
}

APPROVAL_WAIT_RETRIES = 10
APPROVAL_WAIT_SECONDS = 0.1


def transition(request: SpendRequest, target: SpendStatus) -> bool:
    """
    Move a request to `target`
    Returns False when it is already there, raises InvalidTransitionError otherwise
    """
    if request.status == target:
        return False
    if target not in ALLOWED_TRANSITIONS.get(request.status, set()):
        raise InvalidTransitionError(
            f"Spend request {request.request_id} cannot go from {request.status.value} to {target.value}"
        )
    request.status = target
    return True


class SpendRequestService:
    """Service for spend request business logic"""

    def __init__(
        self,
        repository: SpendRequestRepository,
        account_repository: SpendAccountRepository,
        alert_service: AlertService,
        account_service: SpendAccountService,
        queue=None
    ):
        self.repository = repository
        self.account_repository = account_repository
        self.alert_service = alert_service
        self.account_service = account_service
        self.queue = queue

    # ==================== QUERIES ====================

    async def find_all(
        self,
        account_id: Optional[int] = None,
        status: Optional[SpendStatus] = None,
        limit: int = 100
    ) -> List[SpendRequest]:
        return await self.repository.list_requests(account_id, status, limit)

    async def find_one(self, request_id: int) -> SpendRequest:
        request = await self.repository.get_by_request_id(request_id)
        if not request:
            raise HTTPException(status_code=404, detail=f"Spend request {request_id} not found")
        return request

    async def find_by_account(self, account_id: int) -> List[SpendRequest]:
        return await self.repository.list_requests(account_id=account_id, limit=1000)

    # ==================== RECORDING ====================

    async def record_requested(self, event: SpendRequestedEvent) -> SpendRequest:
        """Record a SpendRequested event and reserve its amount (idempotent)"""
        logger.info(f"Spend requested event: requestId={event.request_id}")

        existing = await self.repository.get_by_request_id(event.request_id)
        if existing:
            logger.info(f"Spend request {event.request_id} already exists, skipping creation")
            return existing

        account = await self.account_repository.get_for_update(event.account_id)
        needs_sync = False
        previous_ratio = None
        if account is None:
            logger.warning(f"⚠️ Spend request {event.request_id} for unknown account {event.account_id}")
            needs_sync = True
        else:
            previous_ratio = budget.utilization(account)
            try:
                budget.reserve(account, event.amount, utcnow())
            except BudgetError as e:
                # The contract already accepted it, so the local mirror is behind
                logger.warning(
                    f"⚠️ Budget drift on account {event.account_id} for request {event.request_id}: {e.message}"
                )
                needs_sync = True

        request = self.repository.add(SpendRequest(
            request_id=event.request_id,
            account_id=event.account_id,
            requester_address=event.requester_address.lower(),
            amount=event.amount,
            chain_id=event.chain_id,
            destination_address=event.destination_address.lower(),
            description=event.description,
            status=SpendStatus.PENDING_APPROVAL,
            requested_at=event.timestamp,
            tx_hash=event.tx_hash
        ))
        try:
            await self.repository.commit()
        except IntegrityError:
            await self.repository.rollback()
            logger.info(f"Spend request {event.request_id} recorded concurrently, skipping")
            return await self.find_one(event.request_id)

        logger.info(f"💾 Spend request {event.request_id} saved ({event.amount} micro-USDC)")

        if needs_sync:
            try:
                account = await self.account_service.sync_account_from_chain(event.account_id)
            except Exception as e:
                logger.error(f"❌ Could not reconcile account {event.account_id}: {e}")
                account = None

        if account is not None:
            await self._check_utilization(account, previous_ratio)
        return request

    async def _check_utilization(self, account: SpendAccount, previous_ratio: Optional[float]):
        """HIGH_SPEND only when utilization crosses the threshold upwards"""
        ratio = budget.utilization(account)
        if ratio < config.HIGH_SPEND_UTILIZATION:
            return
        if previous_ratio is not None and previous_ratio >= config.HIGH_SPEND_UTILIZATION:
            return
        await self.alert_service.create_alert(
            AlertType.HIGH_SPEND,
            f"Spend account {account.account_id} ({account.label}) is at {ratio:.0%} of its period budget",
            AlertSeverity.WARNING,
            account_id=account.account_id,
            metadata={"utilization": round(ratio, 4)}
        )

    # ==================== MANAGER ACTIONS ====================

    async def _load_for_decision(self, request_id: int, user: AuthUser):
        request = await self.repository.get_for_update(request_id)
        if not request:
            raise HTTPException(status_code=404, detail=f"Spend request {request_id} not found")

        account = await self.account_repository.get_for_update(request.account_id)
        if not account:
            raise HTTPException(status_code=404, detail=f"Spend account {request.account_id} not found")

        if not user.is_admin and user.address.lower() != account.approver_address:
            raise HTTPException(status_code=403, detail="Only the account approver can decide on this request")
        if not account.is_active:
            raise HTTPException(status_code=409, detail=f"Spend account {account.account_id} is not active")
        if request.status != SpendStatus.PENDING_APPROVAL:
            raise HTTPException(
                status_code=409,
                detail=f"Spend request {request_id} is {request.status.value}, expected PENDING_APPROVAL"
            )
        return request, account

    async def approve(self, request_id: int, user: AuthUser) -> SpendRequest:
        request, _ = await self._load_for_decision(request_id, user)

        transition(request, SpendStatus.APPROVED)
        request.approved_at = utcnow()
        await self.repository.commit()

        logger.info(f"✅ Spend request {request_id} approved by {user.address}")
        self._enqueue(request_id)
        return request

    async def reject(self, request_id: int, user: AuthUser, reason: str) -> SpendRequest:
        request, account = await self._load_for_decision(request_id, user)

        transition(request, SpendStatus.REJECTED)
        request.failure_reason = reason
        budget.release(account, request.amount)
        await self.repository.commit()

        logger.info(f"Spend request {request_id} rejected by {user.address}: {reason}")
        return request

    def _enqueue(self, request_id: int):
        if self.queue is None:
            logger.warning(f"⚠️ No execution queue, spend request {request_id} will not run")
            return
        self.queue.enqueue(request_id)
        logger.info(f"Spend {request_id} enqueued for execution")

    # ==================== CHAIN EVENTS ====================

    async def handle_spend_approved(self, event: SpendApprovedEvent):
        logger.info(f"Spend approved event: requestId={event.request_id}")

        # Auto-approved requests emit SpendApproved right behind SpendRequested
        request = await self.repository.get_for_update(event.request_id)
        retries = 0
        while request is None and retries < APPROVAL_WAIT_RETRIES:
            await asyncio.sleep(APPROVAL_WAIT_SECONDS)
            request = await self.repository.get_for_update(event.request_id)
            retries += 1

        if request is None:
            logger.error(f"❌ Spend request {event.request_id} still not found, skipping approval")
            return
        if request.status != SpendStatus.PENDING_APPROVAL:
            logger.info(f"Spend request {event.request_id} already {request.status.value}")
            return

        transition(request, SpendStatus.APPROVED)
        request.approved_at = event.timestamp
        await self.repository.commit()
        self._enqueue(event.request_id)

    async def handle_spend_rejected(self, event: SpendRejectedEvent):
        logger.info(f"Spend rejected event: requestId={event.request_id}")
        request = await self.repository.get_for_update(event.request_id)
        if request is None or request.status != SpendStatus.PENDING_APPROVAL:
            return

        account = await self.account_repository.get_for_update(request.account_id)
        transition(request, SpendStatus.REJECTED)
        request.failure_reason = event.reason
        if account is not None:
            budget.release(account, request.amount)
        await self.repository.commit()

    async def handle_spend_executed(self, event: SpendExecutedEvent):
        logger.info(f"Spend executed event: requestId={event.request_id}")
        await self.complete_execution(
            event.request_id,
            gateway_tx_id=event.gateway_tx_id,
            treasury_tx_hash=event.tx_hash,
            executed_at=event.timestamp
        )

    async def handle_spend_failed(self, event: SpendFailedEvent):
        logger.info(f"Spend failed event: requestId={event.request_id}")
        await self.fail_execution(event.request_id, event.reason)

    # ==================== EXECUTION STATE ====================

    async def begin_execution(self, request_id: int) -> Optional[SpendRequest]:
        """APPROVED -> EXECUTING; returns None when there is nothing to execute"""
        request = await self.repository.get_for_update(request_id)
        if request is None:
            raise HTTPException(status_code=404, detail=f"Spend request {request_id} not found")
        if request.status not in (SpendStatus.APPROVED, SpendStatus.EXECUTING):
            logger.info(f"Spend request {request_id} is {request.status.value}, not executing")
            await self.repository.rollback()
            return None

        transition(request, SpendStatus.EXECUTING)
        await self.repository.commit()
        return request

    async def record_progress(self, request: SpendRequest, **fields):
        """Persist one execution step so a retry can resume after it"""
        for name, value in fields.items():
            setattr(request, name, value)
        await self.repository.commit()

    async def complete_execution(
        self,
        request_id: int,
        gateway_tx_id: Optional[str] = None,
        treasury_tx_hash: Optional[str] = None,
        executed_at=None
    ) -> Optional[SpendRequest]:
        """-> EXECUTED and commit the reservation (no-op when already executed)"""
        request = await self.repository.get_for_update(request_id)
        if request is None:
            logger.warning(f"⚠️ Spend request {request_id} not found, cannot mark executed")
            return None
        if request.status == SpendStatus.EXECUTED:
            # Keeps the returned row loaded (expire_on_commit=False)
            await self.repository.commit()
            return request

        account = await self.account_repository.get_for_update(request.account_id)
        previous_ratio = budget.utilization(account) if account is not None else None
        if request.status == SpendStatus.APPROVED:
            transition(request, SpendStatus.EXECUTING)
        transition(request, SpendStatus.EXECUTED)

        request.executed_at = executed_at or utcnow()
        if gateway_tx_id:
            request.gateway_tx_id = gateway_tx_id
            request.transfer_id = request.transfer_id or gateway_tx_id
        if treasury_tx_hash:
            request.treasury_tx_hash = treasury_tx_hash
        if account is not None:
            budget.commit(account, request.amount, utcnow())
        await self.repository.commit()

        logger.info(f"✅ Spend request {request_id} executed")
        if account is not None:
            await self._check_utilization(account, previous_ratio)
        return request

    async def fail_execution(self, request_id: int, reason: str) -> Optional[SpendRequest]:
        """-> FAILED and release the reservation (no-op when already terminal)"""
        request = await self.repository.get_for_update(request_id)
        if request is None:
            logger.warning(f"⚠️ Spend request {request_id} not found, cannot mark failed")
            return None
        if request.is_terminal:
            await self.repository.commit()
            return request

        account = await self.account_repository.get_for_update(request.account_id)
        transition(request, SpendStatus.FAILED)
        request.failure_reason = reason
        if account is not None:
            budget.release(account, request.amount)
        await self.repository.commit()

        logger.error(f"❌ Spend request {request_id} failed: {reason}")
        return request
