"""
SQLAlchemy model for treasury funding history (append-only)
"""
import uuid

from sqlalchemy import Column, String, DateTime, Enum, Uuid

from spendos.database.postgres_client import Base, utcnow
from spendos.database.models.types import MicroUsdc, FundingDirection


class FundingEvent(Base):
    __tablename__ = "funding_events"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    direction = Column(Enum(FundingDirection, name="funding_direction"), nullable=False)
    amount = Column(MicroUsdc, nullable=False)
    gateway_tx_id = Column(String(128), nullable=False)
    tx_hash = Column(String(66), nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
