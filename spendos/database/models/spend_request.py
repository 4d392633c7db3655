"""
SQLAlchemy model for spend requests
"""
import uuid

from sqlalchemy import Column, Integer, String, Text, DateTime, Enum, Uuid, Index

from spendos.database.postgres_client import Base, utcnow
from spendos.database.models.types import MicroUsdc, SpendStatus

TERMINAL_STATUSES = (SpendStatus.EXECUTED, SpendStatus.REJECTED, SpendStatus.FAILED)


class SpendRequest(Base):
    """Request to move funds out of a spend account to a destination chain"""
    __tablename__ = "spend_requests"
    __table_args__ = (
        Index("ix_spend_requests_account_status", "account_id", "status"),
        Index("ix_spend_requests_status_created", "status", "created_at"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    request_id = Column(Integer, nullable=False, unique=True)  # on-chain id
    account_id = Column(Integer, nullable=False)

    requester_address = Column(String(42), nullable=False)
    amount = Column(MicroUsdc, nullable=False)
    chain_id = Column(Integer, nullable=False)
    destination_address = Column(String(42), nullable=False)
    description = Column(String, nullable=True)

    status = Column(
        Enum(SpendStatus, name="spend_status"),
        nullable=False,
        default=SpendStatus.PENDING_APPROVAL
    )

    requested_at = Column(DateTime, nullable=False, default=utcnow)
    approved_at = Column(DateTime, nullable=True)
    executed_at = Column(DateTime, nullable=True)

    # Execution progress, each persisted as soon as the step completes
    gateway_tx_id = Column(String(128), nullable=True)
    attestation = Column(Text, nullable=True)  # Gateway attestation for the burn, reused on retry
    attestation_signature = Column(String(132), nullable=True)
    mint_tx_hash = Column(String(66), nullable=True)
    treasury_tx_hash = Column(String(66), nullable=True)
    transfer_id = Column(String(128), nullable=True)

    failure_reason = Column(String, nullable=True)
    tx_hash = Column(String(66), nullable=True)  # SpendRequested tx

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def __repr__(self):
        return f"<SpendRequest {self.request_id} {self.status}>"
