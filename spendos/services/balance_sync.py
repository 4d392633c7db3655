"""
Balance Sync
Caches the treasury's unified Gateway balance in Redis
"""
import logging
from typing import Optional, Tuple

from spendos import config
from spendos.database.models import AlertSeverity, AlertType
from spendos.database.postgres_client import utcnow
from spendos.database.redis_client import LAST_SYNC_KEY, UNIFIED_BALANCE_KEY, RedisClient
from spendos.gateway.gateway_api import GatewayApi
from spendos.services.alert_service import AlertService
from spendos.utils.usdc import format_usdc

logger = logging.getLogger(__name__)


async def get_cached_balance() -> Tuple[int, Optional[str]]:
    """(unified balance in micro-USDC, ISO time of the last sync)"""
    balance = await RedisClient.get_value(UNIFIED_BALANCE_KEY)
    last_sync = await RedisClient.get_value(LAST_SYNC_KEY)
    return int(balance or 0), last_sync


class BalanceSync:

    def __init__(self, gateway: GatewayApi, address: str, alert_service: Optional[AlertService] = None):
        self.gateway = gateway
        self.address = address
        self.alert_service = alert_service

    async def sync_balance(self) -> Optional[int]:
        """Refresh the cached balance; errors are logged, never raised"""
        try:
            cached = await RedisClient.get_value(UNIFIED_BALANCE_KEY)

            response = await self.gateway.get_unified_balance(self.address)
            balance = int(response.get("totalBalance") or 0)
            timestamp = utcnow().isoformat() + "Z"

            await RedisClient.set_value(UNIFIED_BALANCE_KEY, balance)
            await RedisClient.set_value(LAST_SYNC_KEY, timestamp)
            logger.debug(f"Balance synced: {balance} micro-USDC at {timestamp}")

            # Alert once when the balance crosses below the threshold
            crossed = cached is None or int(cached) >= config.LOW_BALANCE_THRESHOLD
            if balance < config.LOW_BALANCE_THRESHOLD and crossed and self.alert_service:
                await self.alert_service.create_alert(
                    AlertType.LOW_BALANCE,
                    f"Treasury balance is low: {format_usdc(balance)} USDC",
                    AlertSeverity.WARNING,
                    metadata={"balance": str(balance), "threshold": str(config.LOW_BALANCE_THRESHOLD)}
                )
            return balance
        except Exception as e:
            logger.error(f"❌ Failed to sync balance: {e}")
            return None
