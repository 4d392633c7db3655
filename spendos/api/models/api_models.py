# spendos/api/models/api_models.py

import re
from datetime import datetime
from typing import Annotated, Any, Dict, List, Optional

from pydantic import AfterValidator, BaseModel, BeforeValidator, ConfigDict, Field, field_validator

from spendos.utils.usdc import parse_usdc_amount

ETH_ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")


def validate_eth_address(value: str) -> str:
    if not ETH_ADDRESS_RE.match(value):
        raise ValueError("must be an Ethereum address")
    return value


def validate_usdc(value):
    if value is None or value == "":
        return value
    return parse_usdc_amount(value)


EthAddress = Annotated[str, AfterValidator(validate_eth_address)]
# Accepts dollars or micro units, normalized to a micro-USDC string
UsdcAmount = Annotated[str, BeforeValidator(validate_usdc)]


# ============================================================================
# Spend Accounts
# ============================================================================

class SpendAccountResponse(BaseModel):
    """
    Spend account mirror (wraps SpendAccount)
    Amounts are micro-USDC decimal strings
    """
    model_config = ConfigDict(from_attributes=True)

    accountId: int
    ownerAddress: str
    approverAddress: str
    label: str
    budgetPerPeriod: str
    periodDuration: int
    perTxLimit: str
    dailyLimit: str
    approvalThreshold: str
    periodSpent: str
    periodReserved: str
    dailySpent: str
    dailyReserved: str
    periodStart: Optional[datetime] = None
    dailyResetAt: Optional[datetime] = None
    frozen: bool
    closed: bool
    allowedChains: List[int]
    autoTopupMinBalance: Optional[str] = None
    autoTopupTargetBalance: Optional[str] = None
    updatedAt: Optional[datetime] = None

    @classmethod
    def from_db(cls, account):
        """Convert SpendAccount → SpendAccountResponse"""
        return cls(
            accountId=account.account_id,
            ownerAddress=account.owner_address,
            approverAddress=account.approver_address,
            label=account.label,
            budgetPerPeriod=str(account.budget_per_period),
            periodDuration=account.period_duration,
            perTxLimit=str(account.per_tx_limit),
            dailyLimit=str(account.daily_limit),
            approvalThreshold=str(account.approval_threshold),
            periodSpent=str(account.period_spent),
            periodReserved=str(account.period_reserved),
            dailySpent=str(account.daily_spent),
            dailyReserved=str(account.daily_reserved),
            periodStart=account.period_start,
            dailyResetAt=account.daily_reset_at,
            frozen=account.frozen,
            closed=account.closed,
            allowedChains=list(account.allowed_chains or []),
            autoTopupMinBalance=_opt_str(account.auto_topup_min_balance),
            autoTopupTargetBalance=_opt_str(account.auto_topup_target_balance),
            updatedAt=account.updated_at
        )


class MySpendAccountsResponse(BaseModel):
    """Accounts the caller owns and accounts the caller approves for"""
    owned: List[SpendAccountResponse]
    approver: List[SpendAccountResponse]


class CreateSpendAccountRequest(BaseModel):
    owner: EthAddress
    label: str = Field(min_length=1, max_length=64)
    budgetPerPeriod: UsdcAmount
    periodDuration: int = Field(ge=86400)  # 1 day minimum
    perTxLimit: UsdcAmount
    dailyLimit: Optional[UsdcAmount] = None  # 0 / empty = use perTxLimit
    approvalThreshold: UsdcAmount
    approver: EthAddress
    allowedChains: List[int] = Field(min_length=1)


class UpdateSpendAccountRequest(BaseModel):
    """Omitted fields keep their on-chain value"""
    budgetPerPeriod: Optional[UsdcAmount] = None
    perTxLimit: Optional[UsdcAmount] = None
    dailyLimit: Optional[UsdcAmount] = None
    approvalThreshold: Optional[UsdcAmount] = None
    approver: Optional[EthAddress] = None


class UpdateAllowedChainsRequest(BaseModel):
    allowedChains: List[int] = Field(min_length=1)


class ConfigureAutoTopupRequest(BaseModel):
    minBalance: UsdcAmount
    targetBalance: UsdcAmount


class CreateSpendAccountResponse(BaseModel):
    accountId: int
    transactionHash: str


class TransactionResponse(BaseModel):
    """On-chain write submitted by the backend wallet"""
    transactionHash: str


class SyncResponse(BaseModel):
    synced: int
    failed: int


# ============================================================================
# Spend Requests
# ============================================================================

class SpendRequestResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    requestId: int
    accountId: int
    requesterAddress: str
    amount: str
    chainId: int
    destinationAddress: str
    description: Optional[str] = None
    status: str
    requestedAt: datetime
    approvedAt: Optional[datetime] = None
    executedAt: Optional[datetime] = None
    gatewayTxId: Optional[str] = None
    mintTxHash: Optional[str] = None
    treasuryTxHash: Optional[str] = None
    transferId: Optional[str] = None
    failureReason: Optional[str] = None
    txHash: Optional[str] = None
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None

    @classmethod
    def from_db(cls, request):
        """Convert SpendRequest → SpendRequestResponse"""
        return cls(
            id=str(request.id),
            requestId=request.request_id,
            accountId=request.account_id,
            requesterAddress=request.requester_address,
            amount=str(request.amount),
            chainId=request.chain_id,
            destinationAddress=request.destination_address,
            description=request.description,
            status=request.status.value,
            requestedAt=request.requested_at,
            approvedAt=request.approved_at,
            executedAt=request.executed_at,
            gatewayTxId=request.gateway_tx_id,
            mintTxHash=request.mint_tx_hash,
            treasuryTxHash=request.treasury_tx_hash,
            transferId=request.transfer_id,
            failureReason=request.failure_reason,
            txHash=request.tx_hash,
            createdAt=request.created_at,
            updatedAt=request.updated_at
        )


class RejectSpendRequest(BaseModel):
    reason: str = Field(min_length=1, max_length=256)

    @field_validator("reason")
    @classmethod
    def not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("reason must not be empty")
        return value


# ============================================================================
# Alerts
# ============================================================================

class AlertResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    type: str
    accountId: Optional[int] = None
    message: str
    severity: str
    acknowledged: bool
    acknowledgedAt: Optional[datetime] = None
    metadata: Optional[Dict[str, Any]] = None
    createdAt: datetime

    @classmethod
    def from_db(cls, alert):
        """Convert Alert → AlertResponse"""
        return cls(
            id=str(alert.id),
            type=alert.type.value,
            accountId=alert.account_id,
            message=alert.message,
            severity=alert.severity.value,
            acknowledged=alert.acknowledged,
            acknowledgedAt=alert.acknowledged_at,
            metadata=alert.alert_metadata,
            createdAt=alert.created_at
        )


# ============================================================================
# Treasury
# ============================================================================

class TreasuryBalanceResponse(BaseModel):
    """All amounts in USDC dollars, 2 decimals"""
    balance: str
    balanceFormatted: str
    currency: str = "USDC"
    unified: str
    committed: str
    available: str  # never negative
    lastSyncAt: Optional[str] = None


class ChainBalance(BaseModel):
    chainId: int
    domain: int
    balance: str  # micro-USDC
    balanceUsdc: str
    token: Optional[str] = None


class UnifiedBalanceResponse(BaseModel):
    totalBalance: str
    totalBalanceUsdc: str
    balances: List[ChainBalance]
    address: str


class FundingEventResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    direction: str
    amount: str
    gatewayTxId: str
    txHash: Optional[str] = None
    createdAt: datetime

    @classmethod
    def from_db(cls, event):
        return cls(
            id=str(event.id),
            direction=event.direction.value,
            amount=str(event.amount),
            gatewayTxId=event.gateway_tx_id,
            txHash=event.tx_hash,
            createdAt=event.created_at
        )


class FundTreasuryRequest(BaseModel):
    amount: UsdcAmount
    gatewayTxId: str = Field(min_length=1, max_length=128)


class TransferAdminRequest(BaseModel):
    newAdmin: EthAddress


# ============================================================================
# Gateway deposits
# ============================================================================

class GatewayBalancesResponse(BaseModel):
    """USDC dollars, 2 decimals"""
    walletAddress: str
    walletBalance: str
    gatewayBalance: str
    reserveAmount: str


class GatewayDepositRequest(BaseModel):
    amount: Optional[UsdcAmount] = None  # omitted: everything above the reserve


class GatewayDepositResponse(BaseModel):
    message: str
    transactionHash: Optional[str] = None


# ============================================================================
# Analytics
# ============================================================================

class BurnRateResponse(BaseModel):
    """Micro-USDC per day / per 30 days"""
    daily: str
    monthly: str


class RunwayResponse(BaseModel):
    days: Optional[int] = None  # null = infinite (no burn)
    amount: str  # available balance, USDC dollars


class DepartmentBreakdownItem(BaseModel):
    accountId: int
    label: str
    spent: str
    budget: str


# ============================================================================
# Auth
# ============================================================================

class NonceResponse(BaseModel):
    nonce: str


class VerifySignatureRequest(BaseModel):
    address: EthAddress
    message: str = Field(min_length=1)
    signature: str = Field(min_length=1)


class UserResponse(BaseModel):
    address: str
    roles: List[str]
    ownedAccountIds: List[int]
    approverAccountIds: List[int]


class AuthResponse(BaseModel):
    accessToken: str
    user: UserResponse


# ============================================================================
# Health / errors
# ============================================================================

class HealthResponse(BaseModel):
    status: str
    database: Optional[str] = None
    redis: Optional[str] = None
    timestamp: datetime


class ErrorResponse(BaseModel):
    """Body of every non-2xx response"""
    statusCode: int
    timestamp: str
    path: str
    method: str
    message: str
    error: Optional[str] = None
    details: Optional[Any] = None


def _opt_str(value) -> Optional[str]:
    return None if value is None else str(value)
