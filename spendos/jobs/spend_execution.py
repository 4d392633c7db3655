"""
Spend execution queue
One-off APScheduler jobs, one per request id, retried with exponential backoff
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.date import DateTrigger
from sqlalchemy.ext.asyncio import AsyncSession

from spendos.blockchain.treasury_contract import get_treasury_contract
from spendos.database.postgres_client import session_scope
from spendos.gateway.burn_intent import get_burn_intent_signer
from spendos.gateway.cross_chain_mint import get_cross_chain_minter
from spendos.gateway.gateway_api import get_gateway_api
from spendos.services.errors import RetryableExecutionError
from spendos.services.factory import build_executor
from spendos.services.spend_executor import SpendExecutor

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 3
BACKOFF_SECONDS = 5


def build_default_executor(session: AsyncSession, queue=None) -> SpendExecutor:
    return build_executor(
        session,
        get_treasury_contract(),
        get_burn_intent_signer(),
        get_gateway_api(),
        get_cross_chain_minter(),
        queue
    )


def backoff_delay(attempt: int) -> int:
    """5s, 10s, 20s ... after the given failed attempt"""
    return BACKOFF_SECONDS * 2 ** (attempt - 1)


class SpendExecutionQueue:

    def __init__(
        self,
        scheduler: AsyncIOScheduler,
        session_factory=None,
        executor_factory: Optional[Callable[..., SpendExecutor]] = None
    ):
        self.scheduler = scheduler
        self.session_factory = session_factory
        self.executor_factory = executor_factory or build_default_executor

    def enqueue(self, request_id: int, attempt: int = 1, delay_seconds: int = 0):
        run_date = datetime.now(timezone.utc) + timedelta(seconds=delay_seconds)
        self.scheduler.add_job(
            self.run,
            trigger=DateTrigger(run_date=run_date),
            args=[request_id, attempt],
            id=f"spend-execution-{request_id}",
            name=f"💸 Execute spend {request_id} (attempt {attempt})",
            misfire_grace_time=None,
            replace_existing=True
        )
        logger.info(f"Spend {request_id} scheduled for execution (attempt {attempt}/{MAX_ATTEMPTS})")

    async def run(self, request_id: int, attempt: int = 1):
        logger.info(f"Processing spend execution job: request {request_id}, attempt {attempt}")
        try:
            async with session_scope(self.session_factory) as session:
                executor = self.executor_factory(session, self)
                await executor.execute_spend(request_id, final_attempt=attempt >= MAX_ATTEMPTS)
        except RetryableExecutionError as e:
            delay = backoff_delay(attempt)
            logger.warning(f"⚠️ Spend {request_id} attempt {attempt} failed ({e}), retrying in {delay}s")
            self.enqueue(request_id, attempt + 1, delay)
        except Exception:
            logger.exception(f"❌ Spend {request_id} execution failed")


_queue: Optional[SpendExecutionQueue] = None


def init_execution_queue(scheduler: AsyncIOScheduler) -> SpendExecutionQueue:
    global _queue
    _queue = SpendExecutionQueue(scheduler)
    return _queue


def get_execution_queue() -> Optional[SpendExecutionQueue]:
    """Dependency: the process-wide queue (None until the scheduler is set up)"""
    return _queue
