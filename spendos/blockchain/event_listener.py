"""
Treasury event listener
Polls contract logs block range by block range and hands typed events to a dispatcher.
The last processed block is kept in Redis so restarts resume where they stopped.
"""
import logging
from typing import Awaitable, Callable, Optional

from web3 import AsyncWeb3

from spendos import config
from spendos.blockchain.abi import EVENT_NAMES
from spendos.blockchain.events import ChainEvent, decode_event
from spendos.blockchain.treasury_contract import TreasuryContract
from spendos.database.postgres_client import from_unix
from spendos.database.redis_client import RedisClient, LAST_BLOCK_KEY

logger = logging.getLogger(__name__)


class ChainEventListener:
    """Log poller for the Treasury contract"""

    def __init__(
        self,
        contract: TreasuryContract,
        dispatch: Callable[[ChainEvent], Awaitable[None]],
        max_block_range: int = config.EVENT_MAX_BLOCK_RANGE
    ):
        self.contract = contract
        self.dispatch = dispatch
        self.max_block_range = max_block_range
        self._last_block: Optional[int] = None

    async def _load_last_block(self) -> Optional[int]:
        stored = await RedisClient.get_value(LAST_BLOCK_KEY)
        if stored is not None:
            return int(stored)
        return self._last_block

    async def _save_last_block(self, block: int):
        self._last_block = block
        await RedisClient.set_value(LAST_BLOCK_KEY, block)

    async def poll(self) -> int:
        """
        Process the next block range

        Returns:
            Number of events dispatched
        """
        latest = await self.contract.get_block_number()
        last = await self._load_last_block()

        if last is None:
            # First run: start from the chain head, history comes from account sync
            logger.info(f"🎧 Event listener starting at block {latest}")
            await self._save_last_block(latest)
            return 0

        from_block = last + 1
        if from_block > latest:
            return 0
        to_block = min(latest, from_block + self.max_block_range - 1)

        logs = []
        for name in EVENT_NAMES:
            for log in await self.contract.get_logs(name, from_block, to_block):
                logs.append((name, log))
        logs.sort(key=lambda item: (item[1]["blockNumber"], item[1]["logIndex"]))

        timestamps = {}
        for name, log in logs:
            block = log["blockNumber"]
            if block not in timestamps:
                timestamps[block] = await self.contract.get_block_timestamp(block)

            event = decode_event(
                name,
                dict(log["args"]),
                block_number=block,
                tx_hash=AsyncWeb3.to_hex(log["transactionHash"]),
                log_index=log["logIndex"],
                timestamp=from_unix(timestamps[block])
            )
            if event is None:
                continue

            logger.info(f"📥 {name} at block {block}")
            try:
                await self.dispatch(event)
            except Exception:
                # Handlers are idempotent; account reconciliation repairs any drift
                logger.exception(f"❌ Handler for {name} (block {block}) failed")

        await self._save_last_block(to_block)
        if logs:
            logger.info(f"✅ Processed {len(logs)} events in blocks {from_block}-{to_block}")
        return len(logs)
