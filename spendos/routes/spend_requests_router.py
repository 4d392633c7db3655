"""
Spend Request Routes - REST API controllers
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from spendos.api.dependencies import get_current_user, require_roles
from spendos.api.mappers import map_request_to_api, map_requests_to_api
from spendos.api.models.api_models import RejectSpendRequest, SpendRequestResponse
from spendos.blockchain.treasury_contract import get_treasury_contract
from spendos.database.models import SpendStatus
from spendos.database.postgres_client import get_db
from spendos.jobs.spend_execution import get_execution_queue
from spendos.services.auth_service import AuthUser
from spendos.services.factory import build_request_service
from spendos.services.spend_request_service import SpendRequestService

spend_requests_router = APIRouter(prefix="/spend-requests", tags=["spend-requests"])

approvers = require_roles("admin", "manager")


# Dependency to get service
async def get_request_service(
    db: AsyncSession = Depends(get_db),
    contract=Depends(get_treasury_contract),
    queue=Depends(get_execution_queue)
) -> SpendRequestService:
    return build_request_service(db, contract, queue)


@spend_requests_router.get("", response_model=List[SpendRequestResponse])
async def list_requests(
    accountId: Optional[int] = None,
    status: Optional[SpendStatus] = None,
    limit: int = Query(100, ge=1, le=1000),
    user: AuthUser = Depends(get_current_user),
    service: SpendRequestService = Depends(get_request_service)
):
    """
    Spend requests, newest first

    Query params:
    - accountId: only this account
    - status: PENDING_APPROVAL, APPROVED, REJECTED, EXECUTING, EXECUTED, FAILED
    - limit: max rows (default: 100)
    """
    return map_requests_to_api(await service.find_all(accountId, status, limit))


@spend_requests_router.get("/account/{account_id}", response_model=List[SpendRequestResponse])
async def list_account_requests(
    account_id: int,
    user: AuthUser = Depends(get_current_user),
    service: SpendRequestService = Depends(get_request_service)
):
    return map_requests_to_api(await service.find_by_account(account_id))


@spend_requests_router.get("/{request_id}", response_model=SpendRequestResponse)
async def get_request(
    request_id: int,
    user: AuthUser = Depends(get_current_user),
    service: SpendRequestService = Depends(get_request_service)
):
    return map_request_to_api(await service.find_one(request_id))


@spend_requests_router.post("/{request_id}/approve", response_model=SpendRequestResponse)
async def approve_request(
    request_id: int,
    user: AuthUser = Depends(approvers),
    service: SpendRequestService = Depends(get_request_service)
):
    """Approve a pending request and queue it for execution (account approver or admin)"""
    return map_request_to_api(await service.approve(request_id, user))


@spend_requests_router.post("/{request_id}/reject", response_model=SpendRequestResponse)
async def reject_request(
    request_id: int,
    body: RejectSpendRequest,
    user: AuthUser = Depends(approvers),
    service: SpendRequestService = Depends(get_request_service)
):
    """Reject a pending request and release its reservation"""
    return map_request_to_api(await service.reject(request_id, user, body.reason))
