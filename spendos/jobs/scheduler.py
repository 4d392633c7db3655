"""
Background job scheduler

Jobs:
- Balance Sync: every 30s, caches the Gateway unified balance
- Account Sync: every 5 min when ENABLE_ACCOUNT_SYNC=true
- Stuck Spends: every 5 min, recovers spends left EXECUTING
- Chain Events: every EVENT_POLL_SECONDS, polls Treasury logs
- Gateway Deposit: every GATEWAY_DEPOSIT_SECONDS, moves wallet USDC above the reserve into the Gateway
- Spend Execution: one-off jobs added by SpendExecutionQueue
"""
import logging
from typing import Optional

from apscheduler.executors.asyncio import AsyncIOExecutor
from apscheduler.jobstores.memory import MemoryJobStore
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from spendos import config
from spendos.blockchain.event_listener import ChainEventListener
from spendos.blockchain.treasury_contract import get_treasury_contract
from spendos.database.postgres_client import session_scope
from spendos.gateway.gateway_api import get_gateway_api
from spendos.gateway.gateway_wallet import get_gateway_wallet
from spendos.jobs.account_sync import run_account_sync
from spendos.jobs.chain_events import ChainEventDispatcher
from spendos.jobs.gateway_deposit import run_gateway_deposit
from spendos.jobs.spend_execution import build_default_executor, init_execution_queue
from spendos.jobs.stuck_spends import StuckSpendRecovery
from spendos.services.balance_sync import BalanceSync
from spendos.services.factory import build_alert_service

logger = logging.getLogger(__name__)


class TreasuryScheduler:

    def __init__(self):
        self.scheduler = AsyncIOScheduler(
            jobstores={"default": MemoryJobStore()},
            executors={"default": AsyncIOExecutor()},
            job_defaults={
                "coalesce": True,  # Prevent job pileup
                "max_instances": 1,
                "misfire_grace_time": 60
            },
            timezone="UTC"
        )
        self.queue = init_execution_queue(self.scheduler)
        self.contract = get_treasury_contract()
        self.listener: Optional[ChainEventListener] = None

    async def run_balance_sync(self):
        if self.contract is None:
            logger.debug("Treasury contract not configured, skipping balance sync")
            return
        async with session_scope() as session:
            sync = BalanceSync(get_gateway_api(), self.contract.backend_address, build_alert_service(session))
            await sync.sync_balance()

    async def run_account_sync(self):
        await run_account_sync(self.contract)

    async def run_stuck_spends(self):
        recovery = StuckSpendRecovery(self.contract, lambda session: build_default_executor(session, self.queue))
        try:
            await recovery.run()
        except Exception as e:
            logger.error(f"❌ Error processing stuck spends: {e}")

    async def run_event_poll(self):
        try:
            await self.listener.poll()
        except Exception as e:
            logger.error(f"❌ Event poll failed: {e}")

    async def run_gateway_deposit(self):
        await run_gateway_deposit(get_gateway_wallet())

    def setup_jobs(self):
        self.scheduler.add_job(
            self.run_balance_sync,
            trigger=IntervalTrigger(seconds=config.BALANCE_SYNC_SECONDS),
            id="balance_sync",
            name="💰 Balance Sync - Gateway unified balance",
            replace_existing=True
        )
        logger.info(f"✅ Balance Sync scheduled every {config.BALANCE_SYNC_SECONDS} seconds")

        if config.ENABLE_ACCOUNT_SYNC:
            self.scheduler.add_job(
                self.run_account_sync,
                trigger=IntervalTrigger(seconds=config.ACCOUNT_SYNC_SECONDS),
                id="account_sync",
                name="🔄 Account Sync - reconcile accounts from chain",
                replace_existing=True
            )
            logger.info(f"✅ Account Sync scheduled every {config.ACCOUNT_SYNC_SECONDS} seconds")
        else:
            logger.info("Account Sync disabled (ENABLE_ACCOUNT_SYNC=false)")

        self.scheduler.add_job(
            self.run_stuck_spends,
            trigger=IntervalTrigger(seconds=config.STUCK_SPENDS_SECONDS),
            id="stuck_spends",
            name="🩺 Stuck Spends - recover EXECUTING requests",
            replace_existing=True
        )
        logger.info(f"✅ Stuck Spends scheduled every {config.STUCK_SPENDS_SECONDS} seconds")

        if config.ENABLE_EVENT_LISTENER and self.contract is not None:
            dispatcher = ChainEventDispatcher(self.contract, self.queue)
            self.listener = ChainEventListener(self.contract, dispatcher.dispatch)
            self.scheduler.add_job(
                self.run_event_poll,
                trigger=IntervalTrigger(seconds=config.EVENT_POLL_SECONDS),
                id="chain_events",
                name="🎧 Chain Events - Treasury log polling",
                replace_existing=True
            )
            logger.info(f"✅ Chain Events scheduled every {config.EVENT_POLL_SECONDS} seconds")
        else:
            logger.info("Chain event listener disabled")

        if config.ENABLE_GATEWAY_DEPOSIT:
            self.scheduler.add_job(
                self.run_gateway_deposit,
                trigger=IntervalTrigger(seconds=config.GATEWAY_DEPOSIT_SECONDS),
                id="gateway_deposit",
                name="🏦 Gateway Deposit - wallet USDC above reserve",
                replace_existing=True
            )
            logger.info(f"✅ Gateway Deposit scheduled every {config.GATEWAY_DEPOSIT_SECONDS} seconds")
        else:
            logger.info("Gateway auto-deposit disabled (ENABLE_GATEWAY_DEPOSIT=false)")

    async def start(self):
        self.setup_jobs()
        self.scheduler.start()
        logger.info("🚀 Scheduler started")
        # Initial balance sync so /treasury/balance has data right away
        await self.run_balance_sync()

    def shutdown(self):
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("Scheduler stopped")
