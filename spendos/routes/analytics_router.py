"""
Analytics routes - burn rate, runway, per-account breakdown
"""
from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from spendos.api.dependencies import get_current_user, require_roles
from spendos.api.mappers import map_department_breakdown
from spendos.api.models.api_models import BurnRateResponse, DepartmentBreakdownItem, RunwayResponse
from spendos.database.postgres_client import get_db
from spendos.services.analytics_service import AnalyticsService
from spendos.services.auth_service import AuthUser
from spendos.services.factory import build_analytics_service

analytics_router = APIRouter(prefix="/analytics", tags=["analytics"])


# Dependency to get service
async def get_analytics_service(db: AsyncSession = Depends(get_db)) -> AnalyticsService:
    return build_analytics_service(db)


@analytics_router.get("/runway", response_model=RunwayResponse)
async def get_runway(
    user: AuthUser = Depends(get_current_user),
    service: AnalyticsService = Depends(get_analytics_service)
):
    """Days of available balance left at the 30-day burn rate (null = no burn)"""
    return RunwayResponse(**await service.get_runway())


@analytics_router.get("/burn-rate", response_model=BurnRateResponse)
async def get_burn_rate(
    days: int = Query(30, ge=1, le=365),
    user: AuthUser = Depends(require_roles("admin")),
    service: AnalyticsService = Depends(get_analytics_service)
):
    """
    Average executed spend per day over the window

    Query params:
    - days: window size (default: 30)
    """
    return BurnRateResponse(**await service.get_burn_rate(days))


@analytics_router.get("/department-breakdown", response_model=List[DepartmentBreakdownItem])
async def get_department_breakdown(
    user: AuthUser = Depends(require_roles("admin", "manager")),
    service: AnalyticsService = Depends(get_analytics_service)
):
    accounts = await service.get_department_breakdown()
    return [map_department_breakdown(account) for account in accounts]
