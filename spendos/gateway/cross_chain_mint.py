"""
Mint on the destination chain with a Gateway attestation
"""
import asyncio
import logging
from typing import Dict, Optional

from eth_account import Account
from web3 import AsyncWeb3

from spendos import config
from spendos.blockchain.abi import GATEWAY_MINTER_ABI
from spendos.blockchain.transactions import nonce_lock, send_transaction
from spendos.gateway.constants import DESTINATION_RPC_URLS, GATEWAY_MINTER_ADDRESS
from spendos.gateway.burn_intent import UnsupportedChainError

logger = logging.getLogger(__name__)


class CrossChainMinter:
    """One web3 client and nonce lock per destination chain"""

    _instance: Optional["CrossChainMinter"] = None

    def __init__(self, private_key: str, rpc_urls: Dict[int, str] = None):
        self.account = Account.from_key(private_key)
        self.clients: Dict[int, AsyncWeb3] = {}
        self.locks: Dict[int, asyncio.Lock] = {}
        for chain_id, rpc_url in (rpc_urls or DESTINATION_RPC_URLS).items():
            self.clients[chain_id] = AsyncWeb3(AsyncWeb3.AsyncHTTPProvider(rpc_url))
            self.locks[chain_id] = nonce_lock(chain_id, self.account.address)
            logger.info(f"Initialized provider for chain {chain_id}")

    @classmethod
    def get_instance(cls) -> "CrossChainMinter":
        if cls._instance is None:
            if not config.GATEWAY_WALLET_PRIVATE_KEY:
                raise RuntimeError("GATEWAY_WALLET_PRIVATE_KEY (or BACKEND_PRIVATE_KEY) must be set")
            cls._instance = cls(config.GATEWAY_WALLET_PRIVATE_KEY)
        return cls._instance

    def supported_chains(self):
        return list(self.clients.keys())

    async def mint_on_destination(self, chain_id: int, attestation: str, signature: str) -> str:
        """Call gatewayMint(attestation, signature); returns the mint tx hash"""
        w3 = self.clients.get(chain_id)
        if w3 is None:
            raise UnsupportedChainError(f"No RPC configured for chain {chain_id}")

        logger.info(f"Minting USDC on chain {chain_id}")
        minter = w3.eth.contract(
            address=AsyncWeb3.to_checksum_address(GATEWAY_MINTER_ADDRESS),
            abi=GATEWAY_MINTER_ABI
        )
        receipt = await send_transaction(
            w3,
            self.account,
            minter.functions.gatewayMint(
                AsyncWeb3.to_bytes(hexstr=attestation),
                AsyncWeb3.to_bytes(hexstr=signature)
            ),
            chain_id,
            self.locks[chain_id],
            f"gatewayMint(chain {chain_id})"
        )
        tx_hash = w3.to_hex(receipt["transactionHash"])
        logger.info(f"✅ Mint successful on chain {chain_id}, tx: {tx_hash}")
        return tx_hash


def get_cross_chain_minter() -> CrossChainMinter:
    return CrossChainMinter.get_instance()
