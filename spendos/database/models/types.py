"""
Column types shared by the treasury tables
"""
import enum
from typing import List, Optional

from sqlalchemy import String, Text
from sqlalchemy.types import TypeDecorator

# uint256 fits in 78 decimal digits
AMOUNT_LENGTH = 78


class MicroUsdc(TypeDecorator):
    """
    USDC amount in micro units (6 decimals)
    Stored as a decimal string so uint256 values survive, exposed as int
    """
    impl = String(AMOUNT_LENGTH)
    cache_ok = True

    def process_bind_param(self, value, dialect) -> Optional[str]:
        if value is None:
            return None
        return str(int(value))

    def process_result_value(self, value, dialect) -> Optional[int]:
        if value is None:
            return None
        return int(value)


class ChainIdList(TypeDecorator):
    """Chain ids stored comma-separated, exposed as List[int]"""
    impl = Text
    cache_ok = True

    def process_bind_param(self, value, dialect) -> Optional[str]:
        if value is None:
            return None
        return ",".join(str(int(chain_id)) for chain_id in value)

    def process_result_value(self, value, dialect) -> List[int]:
        if not value:
            return []
        return [int(chain_id) for chain_id in value.split(",")]


class SpendStatus(str, enum.Enum):
    PENDING_APPROVAL = "PENDING_APPROVAL"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    EXECUTING = "EXECUTING"
    EXECUTED = "EXECUTED"
    FAILED = "FAILED"


class AlertType(str, enum.Enum):
    HIGH_SPEND = "HIGH_SPEND"
    LOW_BALANCE = "LOW_BALANCE"
    ACCOUNT_FROZEN = "ACCOUNT_FROZEN"
    ACCOUNT_CLOSED = "ACCOUNT_CLOSED"
    ADMIN_TRANSFER = "ADMIN_TRANSFER"
    CONTRACT_PAUSED = "CONTRACT_PAUSED"
    EXECUTION_FAILED = "EXECUTION_FAILED"


class AlertSeverity(str, enum.Enum):
    INFO = "INFO"
    WARNING = "WARNING"
    CRITICAL = "CRITICAL"


class FundingDirection(str, enum.Enum):
    INBOUND = "INBOUND"
    OUTBOUND = "OUTBOUND"
