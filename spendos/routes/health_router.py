"""
Health check routes
"""
import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from spendos.api.models.api_models import HealthResponse
from spendos.database.postgres_client import get_db, ping_database, utcnow
from spendos.database.redis_client import get_redis

logger = logging.getLogger(__name__)

health_router = APIRouter(prefix="/health", tags=["health"])


@health_router.get("/liveness", response_model=HealthResponse)
async def liveness():
    """Process is up"""
    return HealthResponse(status="ok", timestamp=utcnow())


@health_router.get("/readiness", response_model=HealthResponse)
async def readiness(db: AsyncSession = Depends(get_db), redis=Depends(get_redis)):
    """Database and Redis reachable"""
    database = "connected"
    try:
        await ping_database(db)
    except Exception as e:
        logger.error(f"❌ Database health check failed: {e}")
        database = "disconnected"

    redis_status = "connected"
    try:
        if redis is None:
            redis_status = "disconnected"
        else:
            await redis.ping()
    except Exception as e:
        logger.error(f"❌ Redis health check failed: {e}")
        redis_status = "disconnected"

    ready = database == "connected" and redis_status == "connected"
    body = HealthResponse(
        status="ok" if ready else "error",
        database=database,
        redis=redis_status,
        timestamp=utcnow()
    )
    if not ready:
        return JSONResponse(status_code=503, content=body.model_dump(mode="json"))
    return body
