"""
Circle Gateway HTTP API client (permissionless, no API key)
"""
import logging
from decimal import Decimal, ROUND_DOWN
from typing import List, Optional

import httpx

from spendos import config
from spendos.gateway.constants import CHAIN_DOMAINS, USDC_ADDRESSES, supported_chain_ids
from spendos.utils.retry import retry_with_backoff
from spendos.utils.usdc import MICRO_PER_USDC, format_usdc

logger = logging.getLogger(__name__)


class GatewayApiError(Exception):
    """Gateway answered with a non-2xx status"""

    def __init__(self, status_code: int, body: str):
        super().__init__(f"Gateway API error {status_code}: {body}")
        self.status_code = status_code
        self.body = body


def to_micro_usdc(balance: str) -> int:
    """Gateway decimal balance ("22.497825") -> micro-USDC int"""
    value = Decimal(balance or "0") * MICRO_PER_USDC
    return int(value.to_integral_value(rounding=ROUND_DOWN))


class GatewayApi:
    """Fetches unified balances and submits burn intents"""

    _instance: Optional["GatewayApi"] = None

    def __init__(self, base_url: str = config.GATEWAY_API_BASE_URL, timeout: float = config.GATEWAY_TIMEOUT_SECONDS):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    @classmethod
    def get_instance(cls) -> "GatewayApi":
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    async def _post(self, path: str, payload) -> dict:
        url = f"{self.base_url}{path}"
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.post(url, json=payload)

        if response.status_code >= 500:
            # Retried by callers that wrap this in retry_with_backoff
            response.raise_for_status()
        if response.status_code >= 400:
            logger.error(f"❌ Gateway {path} returned {response.status_code}: {response.text}")
            raise GatewayApiError(response.status_code, response.text)
        return response.json()

    async def get_unified_balance(self, address: str, chain_ids: Optional[List[int]] = None) -> dict:
        """
        USDC deposited in the Gateway for `address`, per chain and in total

        Args:
            address: depositor wallet
            chain_ids: chains to include (default: all supported)

        Returns:
            {totalBalance, totalBalanceUsdc, balances: [...], address}, balances in micro-USDC
        """
        chains = [c for c in (chain_ids or supported_chain_ids()) if c in CHAIN_DOMAINS]
        payload = {
            "token": "USDC",
            "sources": [{"depositor": address, "domain": CHAIN_DOMAINS[c]} for c in chains],
        }
        logger.info(f"Fetching unified USDC balance for {address} across {len(chains)} chains")
        data = await retry_with_backoff(lambda: self._post("/balances", payload), label="gateway /balances")

        # Entries come back in request order
        entries = data.get("balances") or []
        balances = []
        for index, chain_id in enumerate(chains):
            entry = entries[index] if index < len(entries) else {}
            micro = to_micro_usdc(entry.get("balance", "0"))
            balances.append({
                "chainId": chain_id,
                "domain": CHAIN_DOMAINS[chain_id],
                "balance": str(micro),
                "balanceUsdc": format_usdc(micro, 6),
                "token": USDC_ADDRESSES.get(chain_id),
            })

        total = sum(int(b["balance"]) for b in balances)
        return {
            "totalBalance": str(total),
            "totalBalanceUsdc": format_usdc(total, 6),
            "balances": balances,
            "address": address,
        }

    async def submit_burn_intent(self, signed_intents: List[dict]) -> dict:
        """
        POST /transfer, returns {"attestation", "signature", ...}
        Not retried here: a resubmission is a new transfer
        """
        logger.info(f"Submitting {len(signed_intents)} burn intent(s) to Gateway")
        data = await self._post("/transfer", signed_intents)
        if not data.get("attestation") or not data.get("signature"):
            raise GatewayApiError(200, f"missing attestation in response: {data}")
        logger.info("✅ Gateway attestation received")
        return data


def get_gateway_api() -> GatewayApi:
    return GatewayApi.get_instance()
