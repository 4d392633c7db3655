"""
Gateway Routes - backend wallet deposits into the Gateway Wallet
"""
from typing import Optional

from fastapi import APIRouter, Depends

from spendos.api.dependencies import require_roles
from spendos.api.models.api_models import (
    GatewayBalancesResponse,
    GatewayDepositRequest,
    GatewayDepositResponse,
)
from spendos.gateway.gateway_wallet import get_gateway_wallet
from spendos.services.auth_service import AuthUser
from spendos.services.factory import build_gateway_depositor
from spendos.services.gateway_depositor import GatewayDepositor

gateway_router = APIRouter(prefix="/gateway", tags=["gateway"])

admin_only = require_roles("admin")


# Dependency to get service
def get_gateway_depositor(wallet=Depends(get_gateway_wallet)) -> GatewayDepositor:
    return build_gateway_depositor(wallet)


@gateway_router.get("/balances", response_model=GatewayBalancesResponse)
async def get_balances(
    user: AuthUser = Depends(admin_only),
    service: GatewayDepositor = Depends(get_gateway_depositor)
):
    """Backend wallet USDC, its Gateway balance and the reserve kept in the wallet"""
    return GatewayBalancesResponse(**await service.get_balances())


@gateway_router.post("/deposit", response_model=GatewayDepositResponse)
async def manual_deposit(
    body: Optional[GatewayDepositRequest] = None,
    user: AuthUser = Depends(admin_only),
    service: GatewayDepositor = Depends(get_gateway_depositor)
):
    """
    Deposit USDC from the backend wallet into the Gateway

    Without an amount, everything above the reserve is deposited.
    """
    amount = int(body.amount) if body and body.amount else None
    tx_hash = await service.manual_deposit(amount)
    if tx_hash is None:
        return GatewayDepositResponse(message="Nothing to deposit above the reserve")
    return GatewayDepositResponse(message="Deposit completed successfully", transactionHash=tx_hash)
