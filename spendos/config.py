# spendos/config.py

"""
Runtime configuration
All settings come from environment variables with local-dev defaults
"""
import os


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


# Server
PORT = int(os.getenv("PORT", "3001"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:3000")

# Arc chain / Treasury contract
ARC_RPC_URL = os.getenv("ARC_RPC_URL", "https://rpc.testnet.arc.network")
ARC_CHAIN_ID = int(os.getenv("ARC_CHAIN_ID", "5042002"))
TREASURY_CONTRACT_ADDRESS = os.getenv("TREASURY_CONTRACT_ADDRESS", "")
BACKEND_PRIVATE_KEY = os.getenv("BACKEND_PRIVATE_KEY", "")

# Circle Gateway (same wallet signs burn intents unless overridden)
GATEWAY_API_BASE_URL = os.getenv("GATEWAY_API_BASE_URL", "https://gateway-api-testnet.circle.com/v1")
GATEWAY_WALLET_PRIVATE_KEY = os.getenv("GATEWAY_WALLET_PRIVATE_KEY", BACKEND_PRIVATE_KEY)
GATEWAY_TIMEOUT_SECONDS = float(os.getenv("GATEWAY_TIMEOUT_SECONDS", "30"))
# Backend wallet USDC above the reserve is moved into the Gateway Wallet
ENABLE_GATEWAY_DEPOSIT = _env_bool("ENABLE_GATEWAY_DEPOSIT", "true")
GATEWAY_DEPOSIT_SECONDS = int(os.getenv("GATEWAY_DEPOSIT_SECONDS", "600"))
GATEWAY_DEPOSIT_RESERVE = int(os.getenv("GATEWAY_DEPOSIT_RESERVE", "20000000"))  # micro-USDC

# Auth
JWT_SECRET = os.getenv("JWT_SECRET", "change-me-in-production")
JWT_ALGORITHM = "HS256"
JWT_EXPIRES_SECONDS = int(os.getenv("JWT_EXPIRES_SECONDS", "900"))
AUTH_COOKIE_NAME = "spendos_token"
AUTH_COOKIE_SECURE = _env_bool("AUTH_COOKIE_SECURE", "false")
NONCE_TTL_SECONDS = 300

# Jobs
ENABLE_SCHEDULER = _env_bool("ENABLE_SCHEDULER", "true")
ENABLE_ACCOUNT_SYNC = _env_bool("ENABLE_ACCOUNT_SYNC", "false")
ENABLE_EVENT_LISTENER = _env_bool("ENABLE_EVENT_LISTENER", "true")
BALANCE_SYNC_SECONDS = int(os.getenv("BALANCE_SYNC_SECONDS", "30"))
ACCOUNT_SYNC_SECONDS = int(os.getenv("ACCOUNT_SYNC_SECONDS", "300"))
STUCK_SPENDS_SECONDS = int(os.getenv("STUCK_SPENDS_SECONDS", "300"))
EVENT_POLL_SECONDS = int(os.getenv("EVENT_POLL_SECONDS", "5"))
EVENT_MAX_BLOCK_RANGE = int(os.getenv("EVENT_MAX_BLOCK_RANGE", "2000"))

# Alerts (micro-USDC)
LOW_BALANCE_THRESHOLD = int(os.getenv("LOW_BALANCE_THRESHOLD", "1000000000"))
HIGH_SPEND_UTILIZATION = float(os.getenv("HIGH_SPEND_UTILIZATION", "0.9"))
