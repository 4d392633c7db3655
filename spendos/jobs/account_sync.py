"""
Periodic account reconciliation from chain (enable with ENABLE_ACCOUNT_SYNC=true)
"""
import logging
from typing import Optional

from spendos.blockchain.treasury_contract import TreasuryContract
from spendos.database.postgres_client import session_scope
from spendos.services.factory import build_account_service

logger = logging.getLogger(__name__)


async def run_account_sync(contract: Optional[TreasuryContract], session_factory=None) -> Optional[dict]:
    if contract is None:
        logger.debug("Treasury contract not configured, skipping account sync")
        return None

    logger.info("🔄 Starting scheduled account sync from blockchain")
    try:
        async with session_scope(session_factory) as session:
            result = await build_account_service(session, contract).sync_all_accounts_from_chain()
    except Exception as e:
        logger.error(f"❌ Scheduled account sync failed: {e}")
        return None

    logger.info(f"✅ Scheduled sync complete: {result['synced']} synced, {result['failed']} failed")
    return result
