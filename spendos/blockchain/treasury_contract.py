"""
Treasury contract client (Arc chain)
Reads go through retry_with_backoff; writes are signed by the backend wallet
"""
import logging
from dataclasses import dataclass, field
from typing import List, Optional

from eth_account import Account
from web3 import AsyncWeb3
from web3.logs import DISCARD

from spendos import config
from spendos.blockchain.abi import ACCOUNT_FIELDS, REQUEST_FIELDS, TREASURY_ABI
from spendos.blockchain.transactions import nonce_lock, send_transaction
from spendos.utils.retry import retry_with_backoff

logger = logging.getLogger(__name__)

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

# getAccount().status
ACCOUNT_STATUS_ACTIVE = 0
ACCOUNT_STATUS_FROZEN = 1
ACCOUNT_STATUS_CLOSED = 2


class ContractNotConfiguredError(RuntimeError):
    pass


@dataclass
class OnChainAccount:
    owner: str
    approver: str
    label: str
    budget_per_period: int
    period_duration: int
    per_tx_limit: int
    daily_limit: int
    approval_threshold: int
    period_spent: int
    period_reserved: int
    daily_spent: int
    daily_reserved: int
    period_start: int  # unix seconds
    last_day_timestamp: int  # unix seconds
    status: int
    allowed_chains: List[int] = field(default_factory=list)
    min_balance: int = 0
    target_balance: int = 0

    @property
    def frozen(self) -> bool:
        return self.status == ACCOUNT_STATUS_FROZEN

    @property
    def closed(self) -> bool:
        return self.status == ACCOUNT_STATUS_CLOSED

    @classmethod
    def from_tuple(cls, values) -> "OnChainAccount":
        raw = dict(zip(ACCOUNT_FIELDS, values))
        return cls(
            owner=raw["owner"],
            approver=raw["approver"],
            label=raw["label"],
            budget_per_period=int(raw["budgetPerPeriod"]),
            period_duration=int(raw["periodDuration"]),
            per_tx_limit=int(raw["perTxLimit"]),
            daily_limit=int(raw["dailyLimit"]),
            approval_threshold=int(raw["approvalThreshold"]),
            period_spent=int(raw["periodSpent"]),
            period_reserved=int(raw["periodReserved"]),
            daily_spent=int(raw["dailySpent"]),
            daily_reserved=int(raw["dailyReserved"]),
            period_start=int(raw["periodStart"]),
            last_day_timestamp=int(raw["lastDayTimestamp"]),
            status=int(raw["status"]),
            allowed_chains=[int(c) for c in raw["allowedChains"]],
            min_balance=int(raw["minBalance"]),
            target_balance=int(raw["targetBalance"]),
        )


@dataclass
class OnChainRequest:
    account_id: int
    requester: str
    amount: int
    chain_id: int
    destination_address: str
    description: str = ""
    approved: bool = False
    executed: bool = False
    rejected: bool = False
    gateway_tx_id: str = ""
    created_at: int = 0

    @classmethod
    def from_tuple(cls, values) -> "OnChainRequest":
        raw = dict(zip(REQUEST_FIELDS, values))
        return cls(
            account_id=int(raw["accountId"]),
            requester=raw["requester"],
            amount=int(raw["amount"]),
            chain_id=int(raw["chainId"]),
            destination_address=raw["destinationAddress"],
            description=raw["description"],
            approved=bool(raw["approved"]),
            executed=bool(raw["executed"]),
            rejected=bool(raw["rejected"]),
            gateway_tx_id=raw["gatewayTxId"],
            created_at=int(raw["createdAt"]),
        )


class TreasuryContract:
    """Async web3 wrapper around the Treasury contract"""

    _instance: Optional["TreasuryContract"] = None

    def __init__(self, rpc_url: str, contract_address: str, private_key: str, chain_id: int):
        self.w3 = AsyncWeb3(AsyncWeb3.AsyncHTTPProvider(rpc_url))
        self.address = AsyncWeb3.to_checksum_address(contract_address)
        self.contract = self.w3.eth.contract(address=self.address, abi=TREASURY_ABI)
        self.account = Account.from_key(private_key)
        self.chain_id = chain_id
        self._tx_lock = nonce_lock(chain_id, self.account.address)

    @classmethod
    def get_instance(cls) -> "TreasuryContract":
        """Singleton built from ARC_RPC_URL / TREASURY_CONTRACT_ADDRESS / BACKEND_PRIVATE_KEY"""
        if cls._instance is None:
            if not config.TREASURY_CONTRACT_ADDRESS or not config.BACKEND_PRIVATE_KEY:
                raise ContractNotConfiguredError(
                    "TREASURY_CONTRACT_ADDRESS and BACKEND_PRIVATE_KEY must be set"
                )
            cls._instance = cls(
                config.ARC_RPC_URL,
                config.TREASURY_CONTRACT_ADDRESS,
                config.BACKEND_PRIVATE_KEY,
                config.ARC_CHAIN_ID
            )
            logger.info(f"✅ Treasury contract at {cls._instance.address}")
            logger.info(f"Backend wallet: {cls._instance.account.address}")
        return cls._instance

    @property
    def backend_address(self) -> str:
        return self.account.address

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def _call(self, fn, label: str):
        return await retry_with_backoff(fn.call, label=label)

    async def get_admin(self) -> str:
        return await self._call(self.contract.functions.admin(), "admin()")

    async def is_paused(self) -> bool:
        return await self._call(self.contract.functions.paused(), "paused()")

    async def get_next_account_id(self) -> int:
        return int(await self._call(self.contract.functions.nextAccountId(), "nextAccountId()"))

    async def get_account(self, account_id: int) -> OnChainAccount:
        values = await self._call(
            self.contract.functions.getAccount(account_id), f"getAccount({account_id})"
        )
        return OnChainAccount.from_tuple(values)

    async def get_request(self, request_id: int) -> OnChainRequest:
        values = await self._call(
            self.contract.functions.getRequest(request_id), f"getRequest({request_id})"
        )
        return OnChainRequest.from_tuple(values)

    async def get_block_number(self) -> int:
        return await retry_with_backoff(lambda: self.w3.eth.block_number, label="eth_blockNumber")

    async def get_block_timestamp(self, block_number: int) -> int:
        block = await retry_with_backoff(
            lambda: self.w3.eth.get_block(block_number), label=f"eth_getBlock({block_number})"
        )
        return int(block["timestamp"])

    async def get_logs(self, event_name: str, from_block: int, to_block: int) -> list:
        event = getattr(self.contract.events, event_name)
        return await retry_with_backoff(
            lambda: event().get_logs(from_block=from_block, to_block=to_block),
            label=f"getLogs({event_name})"
        )

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def _transact(self, fn, label: str) -> str:
        try:
            receipt = await send_transaction(
                self.w3, self.account, fn, self.chain_id, self._tx_lock, label
            )
        except Exception as e:
            logger.error(f"❌ {label} failed: {e}")
            raise
        tx_hash = self.w3.to_hex(receipt["transactionHash"])
        logger.info(f"✅ {label} confirmed: {tx_hash}")
        return tx_hash

    async def mark_spend_executed(self, request_id: int, gateway_tx_id: str) -> str:
        return await self._transact(
            self.contract.functions.markSpendExecuted(request_id, gateway_tx_id),
            f"markSpendExecuted({request_id})"
        )

    async def mark_spend_failed(self, request_id: int, reason: str) -> str:
        return await self._transact(
            self.contract.functions.markSpendFailed(request_id, reason[:256]),
            f"markSpendFailed({request_id})"
        )

    async def record_inbound_funding(self, amount: int, gateway_tx_id: str) -> str:
        return await self._transact(
            self.contract.functions.recordInboundFunding(int(amount), gateway_tx_id),
            "recordInboundFunding"
        )

    async def pause(self) -> str:
        return await self._transact(self.contract.functions.pause(), "pause")

    async def unpause(self) -> str:
        return await self._transact(self.contract.functions.unpause(), "unpause")

    async def transfer_admin(self, new_admin: str) -> str:
        return await self._transact(
            self.contract.functions.transferAdmin(AsyncWeb3.to_checksum_address(new_admin)),
            "transferAdmin"
        )

    async def create_spend_account(
        self,
        owner: str,
        label: str,
        budget_per_period: int,
        period_duration: int,
        per_tx_limit: int,
        daily_limit: int,
        approval_threshold: int,
        approver: str,
        allowed_chains: List[int]
    ) -> dict:
        """Returns {"accountId", "transactionHash"}; the id comes from the SpendAccountCreated log"""
        fn = self.contract.functions.createSpendAccount(
            AsyncWeb3.to_checksum_address(owner),
            label,
            int(budget_per_period),
            int(period_duration),
            int(per_tx_limit),
            int(daily_limit),
            int(approval_threshold),
            AsyncWeb3.to_checksum_address(approver),
            [int(c) for c in allowed_chains],
        )
        receipt = await send_transaction(
            self.w3, self.account, fn, self.chain_id, self._tx_lock, "createSpendAccount"
        )
        logs = self.contract.events.SpendAccountCreated().process_receipt(receipt, errors=DISCARD)
        if not logs:
            raise RuntimeError("SpendAccountCreated event missing from receipt")
        return {
            "accountId": int(logs[0]["args"]["accountId"]),
            "transactionHash": self.w3.to_hex(receipt["transactionHash"]),
        }

    async def update_spend_account(
        self,
        account_id: int,
        budget_per_period: int = 0,
        per_tx_limit: int = 0,
        daily_limit: int = 0,
        approval_threshold: int = 0,
        approver: Optional[str] = None
    ) -> str:
        """Zero values and the zero address keep the current on-chain setting"""
        return await self._transact(
            self.contract.functions.updateSpendAccount(
                account_id,
                int(budget_per_period),
                int(per_tx_limit),
                int(daily_limit),
                int(approval_threshold),
                AsyncWeb3.to_checksum_address(approver or ZERO_ADDRESS),
            ),
            f"updateSpendAccount({account_id})"
        )

    async def freeze_account(self, account_id: int) -> str:
        return await self._transact(
            self.contract.functions.freezeAccount(account_id), f"freezeAccount({account_id})"
        )

    async def unfreeze_account(self, account_id: int) -> str:
        return await self._transact(
            self.contract.functions.unfreezeAccount(account_id), f"unfreezeAccount({account_id})"
        )

    async def close_account(self, account_id: int) -> str:
        return await self._transact(
            self.contract.functions.closeAccount(account_id), f"closeAccount({account_id})"
        )

    async def update_allowed_chains(self, account_id: int, allowed_chains: List[int]) -> str:
        return await self._transact(
            self.contract.functions.updateAllowedChains(account_id, [int(c) for c in allowed_chains]),
            f"updateAllowedChains({account_id})"
        )

    async def set_auto_topup_config(self, account_id: int, min_balance: int, target_balance: int) -> str:
        return await self._transact(
            self.contract.functions.setAutoTopupConfig(account_id, int(min_balance), int(target_balance)),
            f"setAutoTopupConfig({account_id})"
        )

    async def auto_topup(self, account_id: int) -> str:
        return await self._transact(
            self.contract.functions.autoTopup(account_id), f"autoTopup({account_id})"
        )

    async def sweep_account(self, account_id: int) -> str:
        return await self._transact(
            self.contract.functions.sweepAccount(account_id), f"sweepAccount({account_id})"
        )

    async def reset_period(self, account_id: int) -> str:
        return await self._transact(
            self.contract.functions.resetPeriod(account_id), f"resetPeriod({account_id})"
        )


def get_treasury_contract() -> Optional[TreasuryContract]:
    """Dependency: the contract client, or None when the chain is not configured"""
    try:
        return TreasuryContract.get_instance()
    except ContractNotConfiguredError as e:
        logger.debug(f"Treasury contract unavailable: {e}")
        return None
