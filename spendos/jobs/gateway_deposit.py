"""
Periodic Gateway auto-deposit (enable with ENABLE_GATEWAY_DEPOSIT=true)
"""
import logging
from typing import Optional

from spendos.gateway.gateway_wallet import GatewayWalletClient
from spendos.services.factory import build_gateway_depositor

logger = logging.getLogger(__name__)


async def run_gateway_deposit(wallet: Optional[GatewayWalletClient]) -> Optional[str]:
    if wallet is None:
        logger.debug("Gateway wallet not configured, skipping auto-deposit")
        return None

    logger.info("🏦 Checking backend wallet balance for Gateway auto-deposit")
    try:
        return await build_gateway_depositor(wallet).auto_deposit()
    except Exception as e:
        logger.error(f"❌ Failed to auto-deposit to Gateway: {e}")
        return None
