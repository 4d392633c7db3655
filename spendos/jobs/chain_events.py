"""
Chain event dispatch
Routes each decoded Treasury event to its service handler in a fresh session
"""
import logging
from typing import Optional

from spendos.blockchain.events import (
    AdminTransferredEvent,
    ChainEvent,
    ContractPausedEvent,
    ContractUnpausedEvent,
    InboundFundingEvent,
    SpendAccountClosedEvent,
    SpendAccountCreatedEvent,
    SpendAccountFrozenEvent,
    SpendAccountUnfrozenEvent,
    SpendAccountUpdatedEvent,
    SpendApprovedEvent,
    SpendExecutedEvent,
    SpendFailedEvent,
    SpendRejectedEvent,
    SpendRequestedEvent,
)
from spendos.blockchain.treasury_contract import TreasuryContract
from spendos.database.postgres_client import session_scope
from spendos.services.factory import build_account_service, build_request_service, build_treasury_service

logger = logging.getLogger(__name__)

# event type -> (service, handler)
HANDLERS = {
    SpendRequestedEvent: ("requests", "record_requested"),
    SpendApprovedEvent: ("requests", "handle_spend_approved"),
    SpendRejectedEvent: ("requests", "handle_spend_rejected"),
    SpendExecutedEvent: ("requests", "handle_spend_executed"),
    SpendFailedEvent: ("requests", "handle_spend_failed"),
    SpendAccountCreatedEvent: ("accounts", "handle_account_created"),
    SpendAccountUpdatedEvent: ("accounts", "handle_account_updated"),
    SpendAccountFrozenEvent: ("accounts", "handle_account_frozen"),
    SpendAccountUnfrozenEvent: ("accounts", "handle_account_unfrozen"),
    SpendAccountClosedEvent: ("accounts", "handle_account_closed"),
    InboundFundingEvent: ("treasury", "handle_inbound_funding"),
    AdminTransferredEvent: ("treasury", "handle_admin_transferred"),
    ContractPausedEvent: ("treasury", "handle_contract_paused"),
    ContractUnpausedEvent: ("treasury", "handle_contract_unpaused"),
}


class ChainEventDispatcher:

    def __init__(self, contract: Optional[TreasuryContract], queue=None, session_factory=None):
        self.contract = contract
        self.queue = queue
        self.session_factory = session_factory

    def _service(self, session, kind: str):
        if kind == "requests":
            return build_request_service(session, self.contract, self.queue)
        if kind == "accounts":
            return build_account_service(session, self.contract)
        return build_treasury_service(session, self.contract)

    async def dispatch(self, event: ChainEvent):
        route = HANDLERS.get(type(event))
        if route is None:
            logger.debug(f"No handler for {type(event).__name__}")
            return

        kind, handler = route
        async with session_scope(self.session_factory) as session:
            service = self._service(session, kind)
            await getattr(service, handler)(event)
