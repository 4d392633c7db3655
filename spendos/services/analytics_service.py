"""
Analytics Service
Burn rate, runway and per-account breakdown
"""
import logging
from datetime import timedelta
from typing import List

from spendos.database.models import SpendAccount
from spendos.database.postgres_client import utcnow
from spendos.database.redis_client import RedisClient
from spendos.repositories.spend_account_repository import SpendAccountRepository
from spendos.repositories.spend_request_repository import SpendRequestRepository
from spendos.services.treasury_service import TreasuryService
from spendos.utils.usdc import format_usdc

logger = logging.getLogger(__name__)

BURN_RATE_CACHE_TTL = 10


class AnalyticsService:

    def __init__(
        self,
        request_repository: SpendRequestRepository,
        account_repository: SpendAccountRepository,
        treasury_service: TreasuryService
    ):
        self.request_repository = request_repository
        self.account_repository = account_repository
        self.treasury_service = treasury_service

    async def _daily_burn(self, days: int) -> int:
        """Average executed micro-USDC per day over the last `days` days"""
        cache_key = f"analytics:burn_rate:{days}"
        cached = await RedisClient.get_cached(cache_key)
        if cached:
            return int(cached["daily"])

        since = utcnow() - timedelta(days=days)
        spends = await self.request_repository.list_executed_since(since)
        daily = sum(spend.amount for spend in spends) // days

        await RedisClient.set_cached(cache_key, {"daily": str(daily)}, ttl_seconds=BURN_RATE_CACHE_TTL)
        return daily

    async def get_burn_rate(self, days: int = 30) -> dict:
        daily = await self._daily_burn(days)
        return {"daily": str(daily), "monthly": str(daily * 30)}

    async def get_runway(self) -> dict:
        """Days until the available balance runs out at the 30-day burn rate"""
        balance = await self.treasury_service.get_balance_micro()
        available = balance["available"]
        daily = await self._daily_burn(30)

        days = available // daily if daily > 0 else None
        return {"days": days, "amount": format_usdc(available)}

    async def get_department_breakdown(self) -> List[SpendAccount]:
        """Non-closed accounts, mapped to {accountId, label, spent, budget} by the API layer"""
        return await self.account_repository.list_all(include_closed=False)
