from spendos.database.models.types import SpendStatus, AlertType, AlertSeverity, FundingDirection
from spendos.database.models.spend_account import SpendAccount
from spendos.database.models.spend_request import SpendRequest
from spendos.database.models.alert import Alert
from spendos.database.models.funding_event import FundingEvent

__all__ = [
    "SpendStatus",
    "AlertType",
    "AlertSeverity",
    "FundingDirection",
    "SpendAccount",
    "SpendRequest",
    "Alert",
    "FundingEvent",
]
