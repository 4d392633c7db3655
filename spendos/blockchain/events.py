"""
Typed Treasury contract events, decoded from logs by the event listener
"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from spendos.database.postgres_client import from_unix


class ChainEvent(BaseModel):
    """Common log metadata"""
    block_number: int = 0
    tx_hash: Optional[str] = None
    log_index: int = 0
    timestamp: datetime


class SpendRequestedEvent(ChainEvent):
    request_id: int
    account_id: int
    requester_address: str
    amount: int
    chain_id: int
    destination_address: str
    description: str = ""


class SpendApprovedEvent(ChainEvent):
    request_id: int
    account_id: int
    approver_address: str
    amount: int


class SpendRejectedEvent(ChainEvent):
    request_id: int
    account_id: int
    approver_address: str
    reason: str


class SpendExecutedEvent(ChainEvent):
    request_id: int
    account_id: int
    amount: int
    gateway_tx_id: str


class SpendFailedEvent(ChainEvent):
    request_id: int
    account_id: int
    reason: str


class SpendAccountCreatedEvent(ChainEvent):
    account_id: int
    owner_address: str
    label: str
    budget_per_period: int


class SpendAccountUpdatedEvent(ChainEvent):
    account_id: int


class SpendAccountFrozenEvent(ChainEvent):
    account_id: int


class SpendAccountUnfrozenEvent(ChainEvent):
    account_id: int


class SpendAccountClosedEvent(ChainEvent):
    account_id: int


class InboundFundingEvent(ChainEvent):
    amount: int
    gateway_tx_id: str


class AdminTransferredEvent(ChainEvent):
    previous_admin: str
    new_admin: str


class ContractPausedEvent(ChainEvent):
    pass


class ContractUnpausedEvent(ChainEvent):
    pass


def decode_event(name: str, args: dict, **meta) -> Optional[ChainEvent]:
    """Contract event name + decoded args -> typed event (None for unknown names)"""
    if name == "SpendRequested":
        return SpendRequestedEvent(
            request_id=args["requestId"],
            account_id=args["accountId"],
            requester_address=args["requester"],
            amount=args["amount"],
            chain_id=args["chainId"],
            destination_address=args["destinationAddress"],
            **meta
        )
    if name == "SpendApproved":
        return SpendApprovedEvent(
            request_id=args["requestId"],
            account_id=args["accountId"],
            approver_address=args["approver"],
            amount=args["amount"],
            **meta
        )
    if name == "SpendRejected":
        return SpendRejectedEvent(
            request_id=args["requestId"],
            account_id=args["accountId"],
            approver_address=args["approver"],
            reason=args["reason"],
            **meta
        )
    if name == "SpendExecuted":
        return SpendExecutedEvent(
            request_id=args["requestId"],
            account_id=args["accountId"],
            amount=args["amount"],
            gateway_tx_id=args["gatewayTxId"],
            **meta
        )
    if name == "SpendFailed":
        return SpendFailedEvent(
            request_id=args["requestId"],
            account_id=args["accountId"],
            reason=args["reason"],
            **meta
        )
    if name == "SpendAccountCreated":
        return SpendAccountCreatedEvent(
            account_id=args["accountId"],
            owner_address=args["owner"],
            label=args["label"],
            budget_per_period=args["budgetPerPeriod"],
            **meta
        )
    if name == "InboundFunding":
        # The contract stamps its own time on funding events
        meta["timestamp"] = from_unix(args["timestamp"])
        return InboundFundingEvent(amount=args["amount"], gateway_tx_id=args["gatewayTxId"], **meta)
    if name == "AdminTransferred":
        return AdminTransferredEvent(
            previous_admin=args["previousAdmin"],
            new_admin=args["newAdmin"],
            **meta
        )

    simple = {
        "SpendAccountUpdated": SpendAccountUpdatedEvent,
        "SpendAccountFrozen": SpendAccountFrozenEvent,
        "SpendAccountUnfrozen": SpendAccountUnfrozenEvent,
        "SpendAccountClosed": SpendAccountClosedEvent,
    }
    if name in simple:
        return simple[name](account_id=args["accountId"], **meta)
    if name == "ContractPaused":
        return ContractPausedEvent(**meta)
    if name == "ContractUnpaused":
        return ContractUnpausedEvent(**meta)
    return None
