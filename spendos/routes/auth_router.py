"""
Auth Routes - Sign-In With Ethereum
"""
from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from spendos import config
from spendos.api.dependencies import get_current_user
from spendos.api.mappers import map_user_to_api
from spendos.api.models.api_models import (
    AuthResponse,
    NonceResponse,
    UserResponse,
    VerifySignatureRequest,
    validate_eth_address,
)
from spendos.blockchain.treasury_contract import get_treasury_contract
from spendos.database.postgres_client import get_db
from spendos.services.auth_service import AuthService, AuthUser
from spendos.services.factory import build_auth_service

auth_router = APIRouter(prefix="/auth", tags=["auth"])


# Dependency to get service
async def get_auth_service(
    db: AsyncSession = Depends(get_db),
    contract=Depends(get_treasury_contract)
) -> AuthService:
    return build_auth_service(db, contract)


@auth_router.get("/nonce", response_model=NonceResponse)
async def get_nonce(
    address: str = Query(..., pattern=r"^0x[0-9a-fA-F]{40}$"),
    service: AuthService = Depends(get_auth_service)
):
    """First step of wallet sign-in: a one-time nonce to embed in the signed message (valid 5 min)"""
    return NonceResponse(nonce=await service.generate_nonce(validate_eth_address(address)))


@auth_router.post("/verify", response_model=AuthResponse)
async def verify(
    body: VerifySignatureRequest,
    response: Response,
    service: AuthService = Depends(get_auth_service)
):
    """Verify the signed message; sets the spendos_token cookie and returns the token"""
    access_token, user = await service.verify_signature(body.address, body.message, body.signature)

    response.set_cookie(
        config.AUTH_COOKIE_NAME,
        access_token,
        max_age=config.JWT_EXPIRES_SECONDS,
        httponly=True,
        secure=config.AUTH_COOKIE_SECURE,
        samesite="strict"
    )
    return AuthResponse(accessToken=access_token, user=map_user_to_api(user))


@auth_router.get("/me", response_model=UserResponse)
async def me(
    user: AuthUser = Depends(get_current_user),
    service: AuthService = Depends(get_auth_service)
):
    """Current user with roles recomputed from the account mirror"""
    return map_user_to_api(await service.get_current_user(user.address))


@auth_router.post("/logout")
async def logout(response: Response):
    response.delete_cookie(config.AUTH_COOKIE_NAME)
    return {"message": "Logged out successfully"}
