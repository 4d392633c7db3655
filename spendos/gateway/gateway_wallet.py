"""
Gateway Wallet client (Arc chain)
The backend wallet's USDC on Arc and its deposit in the Gateway Wallet contract
"""
import logging
from typing import Optional

from eth_account import Account
from web3 import AsyncWeb3

from spendos import config
from spendos.blockchain.abi import ERC20_ABI, GATEWAY_WALLET_ABI
from spendos.blockchain.transactions import nonce_lock, send_transaction
from spendos.blockchain.treasury_contract import ContractNotConfiguredError
from spendos.gateway.constants import ARC_TESTNET_CHAIN_ID, GATEWAY_WALLET_ADDRESS, USDC_ADDRESSES
from spendos.utils.retry import retry_with_backoff

logger = logging.getLogger(__name__)


class GatewayWalletClient:
    """Reads and writes for USDC deposits into the Gateway Wallet"""

    _instance: Optional["GatewayWalletClient"] = None

    def __init__(self, rpc_url: str, private_key: str, chain_id: int = ARC_TESTNET_CHAIN_ID):
        self.w3 = AsyncWeb3(AsyncWeb3.AsyncHTTPProvider(rpc_url))
        self.account = Account.from_key(private_key)
        self.chain_id = chain_id
        self.usdc_address = AsyncWeb3.to_checksum_address(USDC_ADDRESSES[chain_id])
        self.gateway_wallet_address = AsyncWeb3.to_checksum_address(GATEWAY_WALLET_ADDRESS)
        self.usdc = self.w3.eth.contract(address=self.usdc_address, abi=ERC20_ABI)
        self.gateway_wallet = self.w3.eth.contract(address=self.gateway_wallet_address, abi=GATEWAY_WALLET_ABI)
        self._tx_lock = nonce_lock(chain_id, self.account.address)

    @classmethod
    def get_instance(cls) -> "GatewayWalletClient":
        if cls._instance is None:
            if not config.GATEWAY_WALLET_PRIVATE_KEY:
                raise ContractNotConfiguredError("GATEWAY_WALLET_PRIVATE_KEY (or BACKEND_PRIVATE_KEY) must be set")
            cls._instance = cls(config.ARC_RPC_URL, config.GATEWAY_WALLET_PRIVATE_KEY, config.ARC_CHAIN_ID)
            logger.info(f"✅ Gateway deposit wallet: {cls._instance.address}")
        return cls._instance

    @property
    def address(self) -> str:
        return self.account.address

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def usdc_balance(self) -> int:
        return int(await retry_with_backoff(
            self.usdc.functions.balanceOf(self.address).call, label="USDC balanceOf"
        ))

    async def allowance(self) -> int:
        return int(await retry_with_backoff(
            self.usdc.functions.allowance(self.address, self.gateway_wallet_address).call,
            label="USDC allowance"
        ))

    async def gateway_balance(self) -> int:
        return int(await retry_with_backoff(
            self.gateway_wallet.functions.availableBalance(self.usdc_address, self.address).call,
            label="GatewayWallet availableBalance"
        ))

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def _transact(self, fn, label: str) -> str:
        receipt = await send_transaction(self.w3, self.account, fn, self.chain_id, self._tx_lock, label)
        tx_hash = self.w3.to_hex(receipt["transactionHash"])
        logger.info(f"✅ {label} confirmed: {tx_hash}")
        return tx_hash

    async def approve(self, amount: int) -> str:
        return await self._transact(
            self.usdc.functions.approve(self.gateway_wallet_address, int(amount)), "USDC approve(GatewayWallet)"
        )

    async def deposit(self, amount: int) -> str:
        return await self._transact(
            self.gateway_wallet.functions.deposit(self.usdc_address, int(amount)), "GatewayWallet deposit"
        )


def get_gateway_wallet() -> Optional[GatewayWalletClient]:
    """Dependency: the wallet client, or None when no signing key is configured"""
    try:
        return GatewayWalletClient.get_instance()
    except ContractNotConfiguredError as e:
        logger.debug(f"Gateway wallet unavailable: {e}")
        return None
