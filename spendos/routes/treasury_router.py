"""
Treasury Routes - REST API controllers
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from spendos.api.dependencies import get_current_user, require_roles
from spendos.api.mappers import map_funding_event_to_api
from spendos.api.models.api_models import (
    FundingEventResponse,
    FundTreasuryRequest,
    TransactionResponse,
    TransferAdminRequest,
    TreasuryBalanceResponse,
    UnifiedBalanceResponse,
)
from spendos.blockchain.treasury_contract import get_treasury_contract
from spendos.database.postgres_client import get_db
from spendos.gateway.gateway_api import get_gateway_api
from spendos.services.auth_service import AuthUser
from spendos.services.factory import build_treasury_service
from spendos.services.treasury_service import TreasuryService

treasury_router = APIRouter(prefix="/treasury", tags=["treasury"])

admin_only = require_roles("admin")


# Dependency to get service
async def get_treasury_service(
    db: AsyncSession = Depends(get_db),
    contract=Depends(get_treasury_contract),
    gateway=Depends(get_gateway_api)
) -> TreasuryService:
    return build_treasury_service(db, contract, gateway)


@treasury_router.get("/balance", response_model=TreasuryBalanceResponse)
async def get_balance(
    user: AuthUser = Depends(get_current_user),
    service: TreasuryService = Depends(get_treasury_service)
):
    """Unified, committed and available balance in USDC"""
    return TreasuryBalanceResponse(**await service.get_balance())


@treasury_router.get("/balance/unified", response_model=UnifiedBalanceResponse)
async def get_unified_balance(
    address: Optional[str] = Query(None, pattern=r"^0x[0-9a-fA-F]{40}$"),
    chainIds: Optional[List[int]] = Query(None),
    user: AuthUser = Depends(require_roles("admin", "manager")),
    service: TreasuryService = Depends(get_treasury_service)
):
    """
    Per-chain Gateway balance

    Query params:
    - address: wallet to query (default: backend wallet)
    - chainIds: repeat to restrict chains (default: all supported)
    """
    return UnifiedBalanceResponse(**await service.get_unified_cross_chain_balance(address, chainIds))


@treasury_router.get("/funding-history", response_model=List[FundingEventResponse])
async def get_funding_history(
    limit: int = Query(50, ge=1, le=500),
    user: AuthUser = Depends(admin_only),
    service: TreasuryService = Depends(get_treasury_service)
):
    events = await service.get_funding_history(limit)
    return [map_funding_event_to_api(event) for event in events]


@treasury_router.post("/fund", response_model=TransactionResponse)
async def fund_treasury(
    body: FundTreasuryRequest,
    user: AuthUser = Depends(admin_only),
    service: TreasuryService = Depends(get_treasury_service)
):
    """Record a Gateway deposit on the Treasury contract"""
    return TransactionResponse(transactionHash=await service.fund_treasury(int(body.amount), body.gatewayTxId))


@treasury_router.post("/pause", response_model=TransactionResponse)
async def pause(
    user: AuthUser = Depends(admin_only),
    service: TreasuryService = Depends(get_treasury_service)
):
    return TransactionResponse(transactionHash=await service.pause_contract())


@treasury_router.post("/unpause", response_model=TransactionResponse)
async def unpause(
    user: AuthUser = Depends(admin_only),
    service: TreasuryService = Depends(get_treasury_service)
):
    return TransactionResponse(transactionHash=await service.unpause_contract())


@treasury_router.post("/transfer-admin", response_model=TransactionResponse)
async def transfer_admin(
    body: TransferAdminRequest,
    user: AuthUser = Depends(admin_only),
    service: TreasuryService = Depends(get_treasury_service)
):
    return TransactionResponse(transactionHash=await service.transfer_admin(body.newAdmin))
