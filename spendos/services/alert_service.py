"""
Alert Service - Business logic layer
"""
import logging
import uuid
from typing import List, Optional

from fastapi import HTTPException

from spendos.database.models import Alert, AlertSeverity, AlertType
from spendos.database.postgres_client import utcnow
from spendos.repositories.alert_repository import AlertRepository

logger = logging.getLogger(__name__)


class AlertService:
    """Service for alert business logic"""

    def __init__(self, repository: AlertRepository):
        self.repository = repository

    async def create_alert(
        self,
        alert_type: AlertType,
        message: str,
        severity: AlertSeverity = AlertSeverity.INFO,
        account_id: Optional[int] = None,
        metadata: Optional[dict] = None
    ) -> Alert:
        """Persist an alert (commits the current transaction)"""
        alert = self.repository.add(Alert(
            type=alert_type,
            message=message,
            severity=severity,
            account_id=account_id,
            alert_metadata=metadata,
            acknowledged=False
        ))
        await self.repository.commit()

        log = logger.error if severity == AlertSeverity.CRITICAL else logger.warning
        log(f"🚨 Alert {alert_type.value} [{severity.value}]: {message}")
        return alert

    async def find_all(
        self,
        alert_type: Optional[AlertType] = None,
        severity: Optional[AlertSeverity] = None,
        acknowledged: Optional[bool] = None,
        limit: int = 100
    ) -> List[Alert]:
        return await self.repository.get_alerts(alert_type, severity, acknowledged, limit)

    async def acknowledge(self, alert_id: uuid.UUID) -> Alert:
        """Mark an alert as seen. Acknowledging twice keeps the first timestamp"""
        alert = await self.repository.get_alert_by_id(alert_id)
        if not alert:
            raise HTTPException(status_code=404, detail=f"Alert {alert_id} not found")

        if not alert.acknowledged:
            alert.acknowledged = True
            alert.acknowledged_at = utcnow()
            await self.repository.commit()
            logger.info(f"✅ Alert {alert_id} acknowledged")
        return alert
