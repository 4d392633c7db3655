"""
Signed transaction submission shared by the Treasury contract, the Gateway
minters and the Gateway Wallet deposits
"""
import asyncio
import logging
from typing import Dict, Tuple

from eth_account.signers.local import LocalAccount
from web3 import AsyncWeb3

logger = logging.getLogger(__name__)

RECEIPT_TIMEOUT_SECONDS = 120

_nonce_locks: Dict[Tuple[int, str], asyncio.Lock] = {}


class TransactionRevertedError(Exception):
    pass


def nonce_lock(chain_id: int, address: str) -> asyncio.Lock:
    """One lock per (chain, signing wallet), shared by every client that signs for it"""
    key = (chain_id, address.lower())
    if key not in _nonce_locks:
        _nonce_locks[key] = asyncio.Lock()
    return _nonce_locks[key]


async def send_transaction(
    w3: AsyncWeb3,
    account: LocalAccount,
    contract_fn,
    chain_id: int,
    lock: asyncio.Lock,
    label: str
) -> dict:
    """
    Build, sign and broadcast a contract call, then wait for its receipt

    The lock serializes nonce allocation for the signing wallet.
    Raises TransactionRevertedError when the receipt status is not 1.
    """
    async with lock:
        nonce = await w3.eth.get_transaction_count(account.address, "pending")
        tx = await contract_fn.build_transaction({
            "from": account.address,
            "nonce": nonce,
            "chainId": chain_id,
        })
        signed = account.sign_transaction(tx)
        tx_hash = await w3.eth.send_raw_transaction(signed.raw_transaction)

    logger.info(f"📤 {label}: sent {w3.to_hex(tx_hash)}")
    receipt = await w3.eth.wait_for_transaction_receipt(tx_hash, timeout=RECEIPT_TIMEOUT_SECONDS)
    if receipt["status"] != 1:
        raise TransactionRevertedError(f"{label} reverted (tx {w3.to_hex(tx_hash)})")
    return receipt
