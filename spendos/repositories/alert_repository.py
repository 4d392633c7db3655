"""
Alert Repository - Data access layer
"""
import uuid
from typing import List, Optional

from sqlalchemy import select

from spendos.database.models.alert import Alert
from spendos.database.models.types import AlertType, AlertSeverity
from spendos.repositories.base import BaseRepository


class AlertRepository(BaseRepository):
    """Repository for treasury alerts"""

    async def get_alerts(
        self,
        alert_type: Optional[AlertType] = None,
        severity: Optional[AlertSeverity] = None,
        acknowledged: Optional[bool] = None,
        limit: int = 100
    ) -> List[Alert]:
        """Newest first with optional filters"""
        query = select(Alert)

        if alert_type:
            query = query.where(Alert.type == alert_type)
        if severity:
            query = query.where(Alert.severity == severity)
        if acknowledged is not None:
            query = query.where(Alert.acknowledged.is_(acknowledged))

        query = query.order_by(Alert.created_at.desc()).limit(limit)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def get_alert_by_id(self, alert_id: uuid.UUID) -> Optional[Alert]:
        return await self.session.get(Alert, alert_id)
