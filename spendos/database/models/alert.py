"""
SQLAlchemy model for treasury alerts
"""
import uuid

from sqlalchemy import Column, Integer, String, DateTime, Boolean, Enum, JSON, Uuid, Index

from spendos.database.postgres_client import Base, utcnow
from spendos.database.models.types import AlertType, AlertSeverity


class Alert(Base):
    """Operator-facing notification"""
    __tablename__ = "alerts"
    __table_args__ = (
        Index("ix_alerts_type_created", "type", "created_at"),
        Index("ix_alerts_severity_acknowledged", "severity", "acknowledged"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    type = Column(Enum(AlertType, name="alert_type"), nullable=False)
    account_id = Column(Integer, nullable=True)
    message = Column(String, nullable=False)
    severity = Column(
        Enum(AlertSeverity, name="alert_severity"),
        nullable=False,
        default=AlertSeverity.INFO
    )
    acknowledged = Column(Boolean, nullable=False, default=False)
    acknowledged_at = Column(DateTime, nullable=True)
    # "metadata" is reserved on declarative classes
    alert_metadata = Column("metadata", JSON, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
