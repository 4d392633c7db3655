"""
Spend Account Routes - REST API controllers
Reads come from the local mirror, writes go to the Treasury contract
"""
from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from spendos.api.dependencies import get_current_user, require_roles
from spendos.api.mappers import map_account_to_api, map_accounts_to_api, map_my_accounts
from spendos.api.models.api_models import (
    ConfigureAutoTopupRequest,
    CreateSpendAccountRequest,
    CreateSpendAccountResponse,
    MySpendAccountsResponse,
    SpendAccountResponse,
    SyncResponse,
    TransactionResponse,
    UpdateAllowedChainsRequest,
    UpdateSpendAccountRequest,
)
from spendos.blockchain.treasury_contract import get_treasury_contract
from spendos.database.postgres_client import get_db
from spendos.services.auth_service import AuthUser
from spendos.services.factory import build_account_service
from spendos.services.spend_account_service import SpendAccountService

spend_accounts_router = APIRouter(prefix="/spend-accounts", tags=["spend-accounts"])

admin_only = require_roles("admin")


# Dependency to get service
async def get_account_service(
    db: AsyncSession = Depends(get_db),
    contract=Depends(get_treasury_contract)
) -> SpendAccountService:
    return build_account_service(db, contract)


def _micro(value: Optional[str]) -> Optional[int]:
    return int(value) if value else None


# ============================================================================
# READ ENDPOINTS
# ============================================================================

@spend_accounts_router.get("", response_model=List[SpendAccountResponse])
async def list_accounts(
    user: AuthUser = Depends(require_roles("admin", "manager")),
    service: SpendAccountService = Depends(get_account_service)
):
    """All spend accounts (admin, manager)"""
    return map_accounts_to_api(await service.find_all())


@spend_accounts_router.get("/mine", response_model=MySpendAccountsResponse)
async def my_accounts(
    user: AuthUser = Depends(get_current_user),
    service: SpendAccountService = Depends(get_account_service)
):
    """Accounts the caller owns and accounts the caller approves"""
    mine = await service.find_mine(user.address)
    return map_my_accounts(mine["owned"], mine["approver"])


@spend_accounts_router.post("/sync", response_model=SyncResponse)
async def sync_all_accounts(
    user: AuthUser = Depends(admin_only),
    service: SpendAccountService = Depends(get_account_service)
):
    """Reconcile every account from chain"""
    return SyncResponse(**await service.sync_all_accounts_from_chain())


@spend_accounts_router.get("/{account_id}", response_model=SpendAccountResponse)
async def get_account(
    account_id: int,
    user: AuthUser = Depends(get_current_user),
    service: SpendAccountService = Depends(get_account_service)
):
    return map_account_to_api(await service.find_one(account_id))


# ============================================================================
# ADMIN WRITE ENDPOINTS
# ============================================================================

@spend_accounts_router.post("", response_model=CreateSpendAccountResponse, status_code=201)
async def create_account(
    body: CreateSpendAccountRequest,
    user: AuthUser = Depends(admin_only),
    service: SpendAccountService = Depends(get_account_service)
):
    """
    Create a spend account on chain

    Amounts accept USDC dollars ("1,000.50") or micro-USDC ("1000500000").
    The local row appears once the SpendAccountCreated event is processed.
    """
    result = await service.create_account(
        body.owner,
        body.label,
        int(body.budgetPerPeriod),
        body.periodDuration,
        int(body.perTxLimit),
        _micro(body.dailyLimit) or 0,
        int(body.approvalThreshold),
        body.approver,
        body.allowedChains
    )
    return CreateSpendAccountResponse(**result)


@spend_accounts_router.patch("/{account_id}", response_model=TransactionResponse)
async def update_account(
    account_id: int,
    body: UpdateSpendAccountRequest,
    user: AuthUser = Depends(admin_only),
    service: SpendAccountService = Depends(get_account_service)
):
    """Update limits; omitted fields keep their current value"""
    tx_hash = await service.update_account(
        account_id,
        budget_per_period=_micro(body.budgetPerPeriod),
        per_tx_limit=_micro(body.perTxLimit),
        daily_limit=_micro(body.dailyLimit),
        approval_threshold=_micro(body.approvalThreshold),
        approver=body.approver
    )
    return TransactionResponse(transactionHash=tx_hash)


@spend_accounts_router.patch("/{account_id}/allowed-chains", response_model=TransactionResponse)
async def update_allowed_chains(
    account_id: int,
    body: UpdateAllowedChainsRequest,
    user: AuthUser = Depends(admin_only),
    service: SpendAccountService = Depends(get_account_service)
):
    return TransactionResponse(transactionHash=await service.update_allowed_chains(account_id, body.allowedChains))


@spend_accounts_router.patch("/{account_id}/auto-topup", response_model=TransactionResponse)
async def configure_auto_topup(
    account_id: int,
    body: ConfigureAutoTopupRequest,
    user: AuthUser = Depends(admin_only),
    service: SpendAccountService = Depends(get_account_service)
):
    tx_hash = await service.configure_auto_topup(account_id, int(body.minBalance), int(body.targetBalance))
    return TransactionResponse(transactionHash=tx_hash)


@spend_accounts_router.post("/{account_id}/freeze", response_model=TransactionResponse)
async def freeze_account(
    account_id: int,
    user: AuthUser = Depends(admin_only),
    service: SpendAccountService = Depends(get_account_service)
):
    return TransactionResponse(transactionHash=await service.freeze_account(account_id))


@spend_accounts_router.post("/{account_id}/unfreeze", response_model=TransactionResponse)
async def unfreeze_account(
    account_id: int,
    user: AuthUser = Depends(admin_only),
    service: SpendAccountService = Depends(get_account_service)
):
    return TransactionResponse(transactionHash=await service.unfreeze_account(account_id))


@spend_accounts_router.post("/{account_id}/close", response_model=TransactionResponse)
async def close_account(
    account_id: int,
    user: AuthUser = Depends(admin_only),
    service: SpendAccountService = Depends(get_account_service)
):
    return TransactionResponse(transactionHash=await service.close_account(account_id))


@spend_accounts_router.post("/{account_id}/sweep", response_model=TransactionResponse)
async def sweep_account(
    account_id: int,
    user: AuthUser = Depends(admin_only),
    service: SpendAccountService = Depends(get_account_service)
):
    """Return unused budget to the treasury"""
    return TransactionResponse(transactionHash=await service.sweep_account(account_id))


@spend_accounts_router.post("/{account_id}/reset-period", response_model=TransactionResponse)
async def reset_period(
    account_id: int,
    user: AuthUser = Depends(admin_only),
    service: SpendAccountService = Depends(get_account_service)
):
    return TransactionResponse(transactionHash=await service.reset_period(account_id))


@spend_accounts_router.post("/{account_id}/execute-auto-topup", response_model=TransactionResponse)
async def execute_auto_topup(
    account_id: int,
    user: AuthUser = Depends(admin_only),
    service: SpendAccountService = Depends(get_account_service)
):
    return TransactionResponse(transactionHash=await service.execute_auto_topup(account_id))


@spend_accounts_router.post("/{account_id}/sync", response_model=SpendAccountResponse)
async def sync_account(
    account_id: int,
    user: AuthUser = Depends(admin_only),
    service: SpendAccountService = Depends(get_account_service)
):
    """Reconcile one account from chain"""
    return map_account_to_api(await service.sync_account_from_chain(account_id))
