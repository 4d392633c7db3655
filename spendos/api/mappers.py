"""
Mappers to convert between DB models and API models
DB (SQLAlchemy) → API (Pydantic)
"""
from typing import Iterable, List

from spendos.database.models import Alert, FundingEvent, SpendAccount, SpendRequest
from spendos.api.models.api_models import (
    AlertResponse,
    DepartmentBreakdownItem,
    FundingEventResponse,
    MySpendAccountsResponse,
    SpendAccountResponse,
    SpendRequestResponse,
    UserResponse,
)
from spendos.services.auth_service import AuthUser


def map_account_to_api(account: SpendAccount) -> SpendAccountResponse:
    return SpendAccountResponse.from_db(account)


def map_accounts_to_api(accounts: Iterable[SpendAccount]) -> List[SpendAccountResponse]:
    return [SpendAccountResponse.from_db(account) for account in accounts]


def map_my_accounts(owned: Iterable[SpendAccount], approver: Iterable[SpendAccount]) -> MySpendAccountsResponse:
    return MySpendAccountsResponse(
        owned=map_accounts_to_api(owned),
        approver=map_accounts_to_api(approver)
    )


def map_request_to_api(request: SpendRequest) -> SpendRequestResponse:
    return SpendRequestResponse.from_db(request)


def map_requests_to_api(requests: Iterable[SpendRequest]) -> List[SpendRequestResponse]:
    return [SpendRequestResponse.from_db(request) for request in requests]


def map_alert_to_api(alert: Alert) -> AlertResponse:
    return AlertResponse.from_db(alert)


def map_funding_event_to_api(event: FundingEvent) -> FundingEventResponse:
    return FundingEventResponse.from_db(event)


def map_department_breakdown(account: SpendAccount) -> DepartmentBreakdownItem:
    """Per-account spend vs budget, micro-USDC strings"""
    return DepartmentBreakdownItem(
        accountId=account.account_id,
        label=account.label,
        spent=str(account.period_spent),
        budget=str(account.budget_per_period)
    )


def map_user_to_api(user: AuthUser) -> UserResponse:
    return UserResponse(
        address=user.address,
        roles=user.roles,
        ownedAccountIds=user.owned_account_ids,
        approverAccountIds=user.approver_account_ids
    )
