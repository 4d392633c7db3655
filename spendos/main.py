# spendos/main.py

"""
SpendOS Treasury API
- Spend accounts and requests mirrored from the Arc Treasury contract
- Approval workflow with budget reservations
- Cross-chain execution through Circle Gateway
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from spendos import config
from spendos.api.errors import register_exception_handlers
from spendos.api.middleware import register_request_logging
from spendos.database.redis_client import RedisClient
from spendos.jobs.scheduler import TreasuryScheduler
from spendos.routes.alerts_router import alerts_router
from spendos.routes.analytics_router import analytics_router
from spendos.routes.auth_router import auth_router
from spendos.routes.gateway_router import gateway_router
from spendos.routes.health_router import health_router
from spendos.routes.spend_accounts_router import spend_accounts_router
from spendos.routes.spend_requests_router import spend_requests_router
from spendos.routes.treasury_router import treasury_router

logging.basicConfig(
    level=getattr(logging, config.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    scheduler = None
    if config.ENABLE_SCHEDULER:
        scheduler = TreasuryScheduler()
        await scheduler.start()
    else:
        logger.info("Scheduler disabled (ENABLE_SCHEDULER=false)")

    logger.info(f"🚀 SpendOS API ready on port {config.PORT}")
    yield

    if scheduler:
        scheduler.shutdown()
    await RedisClient.close()


app = FastAPI(
    title="SpendOS Treasury API",
    description="Treasury management backend for the Arc Treasury contract and Circle Gateway",
    version="1.0.0",
    lifespan=lifespan
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=[config.FRONTEND_URL],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_request_logging(app)
register_exception_handlers(app)

# ✅ Include all routers
app.include_router(health_router)
app.include_router(auth_router)
app.include_router(spend_accounts_router)
app.include_router(spend_requests_router)
app.include_router(alerts_router)
app.include_router(treasury_router)
app.include_router(analytics_router)
app.include_router(gateway_router)


@app.get("/")
async def root():
    """API info"""
    return {
        "service": "SpendOS Treasury API",
        "version": "1.0.0",
        "docs": "/docs",
        "endpoints": {
            "auth": "GET /auth/nonce, POST /auth/verify, GET /auth/me, POST /auth/logout",
            "spend_accounts": "GET /spend-accounts, GET /spend-accounts/mine, PATCH /spend-accounts/{id}/...",
            "spend_requests": "GET /spend-requests, POST /spend-requests/{id}/approve|reject",
            "alerts": "GET /alerts, POST /alerts/{id}/acknowledge",
            "treasury": "GET /treasury/balance, GET /treasury/funding-history",
            "analytics": "GET /analytics/runway, GET /analytics/burn-rate",
            "gateway": "GET /gateway/balances, POST /gateway/deposit",
            "health": "GET /health/liveness, GET /health/readiness"
        }
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=config.PORT)
