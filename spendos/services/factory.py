"""
Service builders
Route dependencies and scheduled jobs both assemble Service(Repository(session))
through these, so a request and a job get the same wiring.
"""
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from spendos.blockchain.treasury_contract import TreasuryContract
from spendos.gateway.gateway_api import GatewayApi
from spendos.gateway.gateway_wallet import GatewayWalletClient
from spendos.repositories.alert_repository import AlertRepository
from spendos.repositories.funding_event_repository import FundingEventRepository
from spendos.repositories.spend_account_repository import SpendAccountRepository
from spendos.repositories.spend_request_repository import SpendRequestRepository
from spendos.services.alert_service import AlertService
from spendos.services.analytics_service import AnalyticsService
from spendos.services.auth_service import AuthService
from spendos.services.gateway_depositor import GatewayDepositor
from spendos.services.spend_account_service import SpendAccountService
from spendos.services.spend_executor import SpendExecutor
from spendos.services.spend_request_service import SpendRequestService
from spendos.services.treasury_service import TreasuryService


def build_alert_service(session: AsyncSession) -> AlertService:
    return AlertService(AlertRepository(session))


def build_account_service(session: AsyncSession, contract: Optional[TreasuryContract]) -> SpendAccountService:
    return SpendAccountService(
        SpendAccountRepository(session),
        build_alert_service(session),
        contract
    )


def build_request_service(session: AsyncSession, contract: Optional[TreasuryContract], queue=None) -> SpendRequestService:
    return SpendRequestService(
        SpendRequestRepository(session),
        SpendAccountRepository(session),
        build_alert_service(session),
        build_account_service(session, contract),
        queue
    )


def build_treasury_service(
    session: AsyncSession,
    contract: Optional[TreasuryContract],
    gateway: Optional[GatewayApi] = None
) -> TreasuryService:
    return TreasuryService(
        FundingEventRepository(session),
        SpendAccountRepository(session),
        build_alert_service(session),
        contract,
        gateway
    )


def build_analytics_service(session: AsyncSession) -> AnalyticsService:
    return AnalyticsService(
        SpendRequestRepository(session),
        SpendAccountRepository(session),
        build_treasury_service(session, None)
    )


def build_auth_service(session: AsyncSession, contract: Optional[TreasuryContract]) -> AuthService:
    return AuthService(SpendAccountRepository(session), contract)


def build_gateway_depositor(wallet: Optional[GatewayWalletClient]) -> GatewayDepositor:
    return GatewayDepositor(wallet)


def build_executor(
    session: AsyncSession,
    contract: Optional[TreasuryContract],
    signer,
    gateway,
    minter,
    queue=None
) -> SpendExecutor:
    return SpendExecutor(
        build_request_service(session, contract, queue),
        build_alert_service(session),
        contract,
        signer,
        gateway,
        minter
    )
