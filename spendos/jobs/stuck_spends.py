"""
Stuck spend recovery
Spends left EXECUTING (crash, lost job) are checked against the contract and
either converged, failed or executed again.
"""
import logging
from datetime import datetime, timedelta
from typing import Callable, Optional

from spendos.blockchain.treasury_contract import TreasuryContract
from spendos.database.postgres_client import session_scope, utcnow
from spendos.repositories.spend_request_repository import SpendRequestRepository
from spendos.services.factory import build_request_service
from spendos.services.spend_executor import SpendExecutor

logger = logging.getLogger(__name__)

STUCK_THRESHOLD = timedelta(minutes=10)
EXECUTION_TIMEOUT = timedelta(hours=24)
RECOVERY_GIVE_UP = timedelta(minutes=60)


class StuckSpendRecovery:

    def __init__(
        self,
        contract: Optional[TreasuryContract],
        executor_factory: Callable[..., SpendExecutor],
        session_factory=None
    ):
        self.contract = contract
        self.executor_factory = executor_factory
        self.session_factory = session_factory

    async def run(self) -> int:
        """Returns the number of stuck spends found"""
        logger.info("Checking for stuck spends...")
        if self.contract is None:
            logger.debug("Treasury contract not configured, skipping stuck spend check")
            return 0

        async with session_scope(self.session_factory) as session:
            stuck = await SpendRequestRepository(session).list_stuck(utcnow() - STUCK_THRESHOLD)
            targets = [(s.request_id, s.created_at, s.updated_at) for s in stuck]

        if not targets:
            logger.info("No stuck spends found")
            return 0

        logger.info(f"Found {len(targets)} stuck spends, attempting recovery...")
        for request_id, created_at, updated_at in targets:
            await self.recover(request_id, created_at, updated_at)
        return len(targets)

    async def recover(self, request_id: int, created_at: datetime, updated_at: datetime):
        async with session_scope(self.session_factory) as session:
            service = build_request_service(session, self.contract)
            try:
                logger.info(f"Attempting to recover stuck spend {request_id}")
                on_chain = await self.contract.get_request(request_id)

                if on_chain.executed:
                    logger.info(f"Spend {request_id} is already executed on-chain, updating DB")
                    await service.complete_execution(request_id, gateway_tx_id=on_chain.gateway_tx_id or None)
                    return

                if on_chain.rejected:
                    logger.info(f"Spend {request_id} was rejected on-chain, marking as failed")
                    await service.fail_execution(request_id, "Rejected on-chain")
                    return

                if utcnow() - created_at > EXECUTION_TIMEOUT:
                    logger.warning(f"⚠️ Spend {request_id} stuck for >24 hours, marking as failed")
                    await service.fail_execution(request_id, "Execution timeout - stuck for over 24 hours")
                    try:
                        await self.contract.mark_spend_failed(request_id, "Execution timeout")
                    except Exception as e:
                        logger.error(f"❌ Failed to mark spend {request_id} as failed on contract: {e}")
                    return

                logger.info(f"Retrying execution for spend {request_id}")
                await self.executor_factory(session).execute_spend(request_id, final_attempt=True)

            except Exception as e:
                logger.error(f"❌ Failed to recover stuck spend {request_id}: {e}")
                if utcnow() - updated_at > RECOVERY_GIVE_UP:
                    await session.rollback()
                    await service.fail_execution(request_id, f"Recovery failed: {e}")
