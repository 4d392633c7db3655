"""
Burn intents for Circle Gateway
An EIP-712 signed instruction to burn USDC from the Gateway Wallet on Arc
and mint it on the destination chain.
"""
import logging
import secrets
from typing import Optional

from eth_account import Account
from web3 import Web3

from spendos import config
from spendos.gateway.constants import (
    ARC_TESTNET_CHAIN_ID,
    CHAIN_DOMAINS,
    GATEWAY_MINTER_ADDRESS,
    GATEWAY_WALLET_ADDRESS,
    MAX_UINT256,
    MIN_FEE,
    USDC_ADDRESSES,
    ZERO_ADDRESS,
)

logger = logging.getLogger(__name__)

EIP712_DOMAIN = {"name": "GatewayWallet", "version": "1"}

EIP712_TYPES = {
    "EIP712Domain": [
        {"name": "name", "type": "string"},
        {"name": "version", "type": "string"},
    ],
    "TransferSpec": [
        {"name": "version", "type": "uint32"},
        {"name": "sourceDomain", "type": "uint32"},
        {"name": "destinationDomain", "type": "uint32"},
        {"name": "sourceContract", "type": "bytes32"},
        {"name": "destinationContract", "type": "bytes32"},
        {"name": "sourceToken", "type": "bytes32"},
        {"name": "destinationToken", "type": "bytes32"},
        {"name": "sourceDepositor", "type": "bytes32"},
        {"name": "destinationRecipient", "type": "bytes32"},
        {"name": "sourceSigner", "type": "bytes32"},
        {"name": "destinationCaller", "type": "bytes32"},
        {"name": "value", "type": "uint256"},
        {"name": "salt", "type": "bytes32"},
        {"name": "hookData", "type": "bytes"},
    ],
    "BurnIntent": [
        {"name": "maxBlockHeight", "type": "uint256"},
        {"name": "maxFee", "type": "uint256"},
        {"name": "spec", "type": "TransferSpec"},
    ],
}

_BYTES32_FIELDS = (
    "sourceContract", "destinationContract", "sourceToken", "destinationToken",
    "sourceDepositor", "destinationRecipient", "sourceSigner", "destinationCaller", "salt",
)


class UnsupportedChainError(ValueError):
    pass


def address_to_bytes32(address: str) -> str:
    """Left-pad a 20-byte address to a 32-byte hex word"""
    return "0x" + address.lower().replace("0x", "").rjust(64, "0")


def build_typed_data(burn_intent: dict) -> dict:
    """JSON burn intent (hex strings, decimal strings) -> EIP-712 message for signing"""
    spec = dict(burn_intent["spec"])
    for name in _BYTES32_FIELDS:
        spec[name] = Web3.to_bytes(hexstr=spec[name])
    spec["hookData"] = Web3.to_bytes(hexstr=spec["hookData"]) if spec["hookData"] != "0x" else b""
    spec["value"] = int(spec["value"])

    return {
        "types": EIP712_TYPES,
        "primaryType": "BurnIntent",
        "domain": EIP712_DOMAIN,
        "message": {
            "maxBlockHeight": int(burn_intent["maxBlockHeight"]),
            "maxFee": int(burn_intent["maxFee"]),
            "spec": spec,
        },
    }


class BurnIntentSigner:
    """Creates and signs burn intents with the Gateway depositor wallet"""

    _instance: Optional["BurnIntentSigner"] = None

    def __init__(self, private_key: str, source_chain_id: int = ARC_TESTNET_CHAIN_ID):
        self.account = Account.from_key(private_key)
        self.source_chain_id = source_chain_id

    @classmethod
    def get_instance(cls) -> "BurnIntentSigner":
        if cls._instance is None:
            if not config.GATEWAY_WALLET_PRIVATE_KEY:
                raise RuntimeError("GATEWAY_WALLET_PRIVATE_KEY (or BACKEND_PRIVATE_KEY) must be set")
            cls._instance = cls(config.GATEWAY_WALLET_PRIVATE_KEY)
            logger.info(f"Gateway wallet initialized: {cls._instance.address}")
        return cls._instance

    @property
    def address(self) -> str:
        return self.account.address

    def create_burn_intent(self, amount: int, destination_chain_id: int, destination_address: str) -> dict:
        """Unsigned burn intent in Gateway JSON form"""
        source_domain = CHAIN_DOMAINS.get(self.source_chain_id)
        destination_domain = CHAIN_DOMAINS.get(destination_chain_id)
        if source_domain is None or destination_domain is None:
            raise UnsupportedChainError(
                f"Unsupported chain IDs: source={self.source_chain_id}, dest={destination_chain_id}"
            )

        spec = {
            "version": 1,
            "sourceDomain": source_domain,
            "destinationDomain": destination_domain,
            "sourceContract": address_to_bytes32(GATEWAY_WALLET_ADDRESS),
            "destinationContract": address_to_bytes32(GATEWAY_MINTER_ADDRESS),
            "sourceToken": address_to_bytes32(USDC_ADDRESSES[self.source_chain_id]),
            "destinationToken": address_to_bytes32(USDC_ADDRESSES[destination_chain_id]),
            "sourceDepositor": address_to_bytes32(self.address),
            "destinationRecipient": address_to_bytes32(destination_address),
            "sourceSigner": address_to_bytes32(self.address),
            "destinationCaller": address_to_bytes32(ZERO_ADDRESS),
            "value": str(int(amount)),
            "salt": "0x" + secrets.token_hex(32),
            "hookData": "0x",
        }
        return {
            "maxBlockHeight": str(MAX_UINT256),
            "maxFee": str(MIN_FEE),
            "spec": spec,
        }

    def sign(self, burn_intent: dict) -> dict:
        signed = Account.sign_typed_data(self.account.key, full_message=build_typed_data(burn_intent))
        return {
            "burnIntent": burn_intent,
            "signature": Web3.to_hex(signed.signature),
        }

    def create_and_sign(self, amount: int, destination_chain_id: int, destination_address: str) -> dict:
        burn_intent = self.create_burn_intent(amount, destination_chain_id, destination_address)
        logger.info(
            f"Creating burn intent: {amount} micro-USDC -> chain {destination_chain_id} "
            f"({destination_address}), fee {burn_intent['maxFee']}"
        )
        return self.sign(burn_intent)


def get_burn_intent_signer() -> BurnIntentSigner:
    return BurnIntentSigner.get_instance()
