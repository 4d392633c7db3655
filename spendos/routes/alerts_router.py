"""
Alert Routes - REST API controllers
Uses service layer for business logic
"""
import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from spendos.api.dependencies import require_roles
from spendos.api.mappers import map_alert_to_api
from spendos.api.models.api_models import AlertResponse
from spendos.database.models import AlertSeverity, AlertType
from spendos.database.postgres_client import get_db
from spendos.services.auth_service import AuthUser
from spendos.services.alert_service import AlertService
from spendos.services.factory import build_alert_service

alerts_router = APIRouter(prefix="/alerts", tags=["alerts"])

viewers = require_roles("admin", "manager")


# Dependency to get service
async def get_alert_service(db: AsyncSession = Depends(get_db)) -> AlertService:
    """Create alert service with repository"""
    return build_alert_service(db)


@alerts_router.get("", response_model=List[AlertResponse])
async def get_alerts(
    type: Optional[AlertType] = None,
    severity: Optional[AlertSeverity] = None,
    acknowledged: Optional[bool] = None,
    limit: int = Query(100, ge=1, le=1000),
    user: AuthUser = Depends(viewers),
    service: AlertService = Depends(get_alert_service)
):
    """
    Alerts, newest first

    Query params:
    - type: HIGH_SPEND, LOW_BALANCE, ACCOUNT_FROZEN, ...
    - severity: INFO, WARNING, CRITICAL
    - acknowledged: true / false
    - limit: max rows (default: 100)
    """
    alerts = await service.find_all(type, severity, acknowledged, limit)
    return [map_alert_to_api(alert) for alert in alerts]


@alerts_router.post("/{alert_id}/acknowledge", response_model=AlertResponse)
async def acknowledge_alert(
    alert_id: uuid.UUID,
    user: AuthUser = Depends(viewers),
    service: AlertService = Depends(get_alert_service)
):
    return map_alert_to_api(await service.acknowledge(alert_id))


@alerts_router.patch("/{alert_id}", response_model=AlertResponse)
async def patch_alert(
    alert_id: uuid.UUID,
    user: AuthUser = Depends(viewers),
    service: AlertService = Depends(get_alert_service)
):
    """Same as POST /alerts/{id}/acknowledge"""
    return map_alert_to_api(await service.acknowledge(alert_id))
