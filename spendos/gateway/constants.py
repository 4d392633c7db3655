"""
Circle Gateway testnet constants
"""
from spendos import config

ARC_TESTNET_CHAIN_ID = 5042002

# Chain id -> Gateway domain
CHAIN_DOMAINS = {
    5042002: 26,   # Arc Testnet
    84532: 6,      # Base Sepolia
    11155111: 0,   # Ethereum Sepolia
    43113: 1,      # Avalanche Fuji
}

USDC_ADDRESSES = {
    5042002: "0x3600000000000000000000000000000000000000",
    84532: "0x036CbD53842c5426634e7929541eC2318f3dCF7e",
    11155111: "0x1c7D4B196Cb0C7B01d743Fbc6116a902379C7238",
    43113: "0x5425890298aed601595a70AB815c96711a31Bc65",
}

# Same deterministic addresses on every supported chain
GATEWAY_WALLET_ADDRESS = "0x0077777d7EBA4688BDeF3E311b846F25870A19B9"
GATEWAY_MINTER_ADDRESS = "0x0022222ABE238Cc2C7Bb1f21003F0a260052475B"

DESTINATION_RPC_URLS = {
    5042002: config.ARC_RPC_URL,
    84532: "https://sepolia.base.org",
    11155111: "https://ethereum-sepolia-rpc.publicnode.com",
    43113: "https://api.avax-test.network/ext/bc/C/rpc",
}

# 2.01 USDC, the Gateway minimum
MIN_FEE = 2_010_000
MAX_UINT256 = 2 ** 256 - 1

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


def supported_chain_ids():
    return list(CHAIN_DOMAINS.keys())
