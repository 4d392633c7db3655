"""
Gateway Depositor
Keeps the Gateway funded: USDC in the backend wallet above a reserve is
deposited into the Gateway Wallet so it joins the unified balance.
The reserve stays in the wallet for gas and operations.
"""
import logging
from typing import Optional

from fastapi import HTTPException

from spendos import config
from spendos.gateway.gateway_wallet import GatewayWalletClient
from spendos.services.errors import InvalidAmountError
from spendos.utils.usdc import format_usdc

logger = logging.getLogger(__name__)


class GatewayDepositor:
    """Service for Gateway Wallet deposits from the backend wallet"""

    def __init__(self, wallet: Optional[GatewayWalletClient], reserve: int = config.GATEWAY_DEPOSIT_RESERVE):
        self.wallet = wallet
        self.reserve = reserve

    def _wallet(self) -> GatewayWalletClient:
        if self.wallet is None:
            raise HTTPException(status_code=503, detail="Gateway deposit wallet is not configured")
        return self.wallet

    async def get_balances(self) -> dict:
        """Backend wallet USDC and its available Gateway balance, in USDC dollars"""
        wallet = self._wallet()
        wallet_balance = await wallet.usdc_balance()
        gateway_balance = await wallet.gateway_balance()
        return {
            "walletAddress": wallet.address,
            "walletBalance": format_usdc(wallet_balance),
            "gatewayBalance": format_usdc(gateway_balance),
            "reserveAmount": format_usdc(self.reserve),
        }

    async def auto_deposit(self) -> Optional[str]:
        """Deposit everything above the reserve; returns the deposit tx hash, None when skipped"""
        wallet = self._wallet()
        balance = await wallet.usdc_balance()
        logger.info(f"Backend wallet USDC balance: {format_usdc(balance)} USDC")

        if balance <= self.reserve:
            logger.info(
                f"Balance ({format_usdc(balance)} USDC) is at or below the "
                f"{format_usdc(self.reserve)} USDC reserve, skipping deposit"
            )
            return None

        return await self._deposit(wallet, balance - self.reserve)

    async def deposit(self, amount: int) -> str:
        """Deposit a fixed amount (micro-USDC) from the backend wallet"""
        if amount <= 0:
            raise InvalidAmountError("Deposit amount must be greater than 0")

        wallet = self._wallet()
        balance = await wallet.usdc_balance()
        if amount > balance:
            raise HTTPException(
                status_code=409,
                detail=f"Deposit of {format_usdc(amount)} USDC exceeds wallet balance of {format_usdc(balance)} USDC"
            )
        return await self._deposit(wallet, amount)

    async def manual_deposit(self, amount: Optional[int] = None) -> Optional[str]:
        logger.info("Manual Gateway deposit triggered")
        if amount:
            return await self.deposit(amount)
        return await self.auto_deposit()

    async def _deposit(self, wallet: GatewayWalletClient, amount: int) -> str:
        logger.info(f"Depositing {format_usdc(amount)} USDC to Gateway")

        allowance = await wallet.allowance()
        if allowance < amount:
            logger.info("Approving Gateway Wallet to spend USDC")
            await wallet.approve(amount)

        tx_hash = await wallet.deposit(amount)
        logger.info(f"💰 Deposited {format_usdc(amount)} USDC to Gateway, tx: {tx_hash}")
        return tx_hash
