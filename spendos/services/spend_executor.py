"""
Spend Executor
Runs an approved spend end to end:
burn intent -> Gateway attestation -> mint on destination -> markSpendExecuted

Each step is persisted as soon as it completes, so a retried execution skips
the steps that already happened. Once Gateway has attested a burn, retries
mint from the stored attestation and never submit a second burn intent.
"""
import logging
from typing import Optional

import httpx

from spendos.blockchain.treasury_contract import ContractNotConfiguredError, TreasuryContract
from spendos.database.models import AlertSeverity, AlertType, SpendRequest, SpendStatus
from spendos.gateway.burn_intent import BurnIntentSigner
from spendos.gateway.cross_chain_mint import CrossChainMinter
from spendos.gateway.gateway_api import GatewayApi
from spendos.services.alert_service import AlertService
from spendos.services.errors import BurnOutcomeUnknownError, RetryableExecutionError
from spendos.services.spend_request_service import SpendRequestService
from spendos.utils.retry import is_rate_limit_error, is_transient_error

logger = logging.getLogger(__name__)

MAX_REASON_LENGTH = 256


def burn_not_sent(error: Exception) -> bool:
    """The /transfer request never reached Gateway, so resubmitting cannot burn twice"""
    return isinstance(error, (httpx.ConnectError, httpx.ConnectTimeout)) or is_rate_limit_error(error)


class SpendExecutor:
    """Executes approved spend requests through Circle Gateway"""

    def __init__(
        self,
        request_service: SpendRequestService,
        alert_service: AlertService,
        contract: Optional[TreasuryContract],
        signer: BurnIntentSigner,
        gateway: GatewayApi,
        minter: CrossChainMinter
    ):
        self.request_service = request_service
        self.alert_service = alert_service
        self.contract = contract
        self.signer = signer
        self.gateway = gateway
        self.minter = minter

    async def execute_spend(self, request_id: int, final_attempt: bool = True) -> Optional[SpendRequest]:
        """
        Execute one spend request

        Args:
            request_id: on-chain request id
            final_attempt: when False, transient errors leave the request EXECUTING
                and raise RetryableExecutionError for the queue to retry

        Returns:
            The EXECUTED request, or None when it was not in an executable state
        """
        logger.info(f"🚀 Starting execution of spend request {request_id}")

        request = await self.request_service.begin_execution(request_id)
        if request is None:
            return None

        try:
            if self.contract is None:
                raise ContractNotConfiguredError("Treasury contract is not configured")

            if not request.mint_tx_hash:
                await self._transfer(request)
            else:
                logger.info(f"Spend {request_id} already minted ({request.mint_tx_hash}), resuming")

            # The mint tx hash doubles as the transfer id on chain
            transfer_id = request.transfer_id or request.mint_tx_hash
            if not request.treasury_tx_hash:
                logger.info(f"Marking spend {request_id} as executed on Treasury contract")
                treasury_tx_hash = await self.contract.mark_spend_executed(request_id, transfer_id)
                await self.request_service.record_progress(request, treasury_tx_hash=treasury_tx_hash)

            executed = await self.request_service.complete_execution(
                request_id,
                gateway_tx_id=request.gateway_tx_id or transfer_id,
                treasury_tx_hash=request.treasury_tx_hash
            )
            logger.info(f"✅ Spend request {request_id} executed successfully")
            return executed

        except Exception as e:
            if not final_attempt and is_transient_error(e):
                logger.warning(f"⚠️ Transient error executing spend {request_id}, will retry: {e}")
                await self.request_service.repository.rollback()
                raise RetryableExecutionError(str(e)) from e

            logger.exception(f"❌ Failed to execute spend {request_id}")
            await self._fail(request_id, str(e) or type(e).__name__)
            raise

    async def _transfer(self, request: SpendRequest):
        if request.attestation:
            logger.info(
                f"Burn for spend {request.request_id} already attested ({request.gateway_tx_id}), "
                f"minting from the stored attestation"
            )
        else:
            logger.info(f"Creating burn intent for {request.amount} micro-USDC")
            signed_intent = self.signer.create_and_sign(
                request.amount,
                request.chain_id,
                request.destination_address
            )

            try:
                response = await self.gateway.submit_burn_intent([signed_intent])
            except Exception as e:
                if is_transient_error(e) and not burn_not_sent(e):
                    raise BurnOutcomeUnknownError(f"Gateway /transfer outcome unknown: {e}") from e
                raise
            gateway_transfer_id = response.get("transferId") or response.get("id")
            await self.request_service.record_progress(
                request,
                gateway_tx_id=str(gateway_transfer_id) if gateway_transfer_id else request.gateway_tx_id,
                attestation=response["attestation"],
                attestation_signature=response["signature"]
            )

        logger.info(f"Minting on destination chain {request.chain_id}")
        mint_tx_hash = await self.minter.mint_on_destination(
            request.chain_id,
            request.attestation,
            request.attestation_signature
        )
        await self.request_service.record_progress(request, mint_tx_hash=mint_tx_hash, transfer_id=mint_tx_hash)
        logger.info(f"Mint transaction: {mint_tx_hash}")

    async def _fail(self, request_id: int, reason: str):
        await self.request_service.repository.rollback()
        request = await self.request_service.fail_execution(request_id, reason)
        if request is not None and request.status == SpendStatus.EXECUTED:
            logger.warning(f"⚠️ Spend {request_id} was executed meanwhile, skipping compensation")
            return

        await self.alert_service.create_alert(
            AlertType.EXECUTION_FAILED,
            f"Spend request {request_id} failed: {reason}",
            AlertSeverity.CRITICAL,
            account_id=request.account_id if request is not None else None,
            metadata={"requestId": request_id}
        )

        if self.contract is None:
            return
        try:
            await self.contract.mark_spend_failed(request_id, reason[:MAX_REASON_LENGTH])
        except Exception as e:
            logger.error(f"❌ Failed to mark spend {request_id} as failed on contract: {e}")
