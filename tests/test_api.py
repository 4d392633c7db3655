"""
API tests: routing, role checks and the error envelope
"""
import httpx
from fastapi import FastAPI

from spendos.api.errors import register_exception_handlers
from spendos.database.models import AlertSeverity, AlertType
from spendos.database.redis_client import UNIFIED_BALANCE_KEY
from spendos.services.errors import PeriodBudgetExceededError
from spendos.services.factory import build_alert_service, build_request_service
from tests.conftest import ADMIN, APPROVER, OWNER, USDC, auth_header, make_account, make_chain_account, requested_event

ADMIN_AUTH = auth_header(ADMIN, ["admin"])
MANAGER_AUTH = auth_header(APPROVER, ["manager"], approving=[1])
SPENDER_AUTH = auth_header(OWNER, ["spender"], owned=[1])


async def _pending(session, seed, contract, *request_ids):
    await seed(make_account())
    service = build_request_service(session, contract)
    for request_id in request_ids:
        await service.record_requested(requested_event(request_id=request_id))


class TestHealth:
    """Tests for /health"""

    async def test_liveness(self, client):
        """✅ Liveness answers without dependencies."""
        response = await client.get("/health/liveness")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    async def test_readiness(self, client):
        """✅ Readiness reports database and Redis."""
        response = await client.get("/health/readiness")
        assert response.status_code == 200
        assert response.json()["database"] == "connected"
        assert response.json()["redis"] == "connected"

    async def test_root(self, client):
        """✅ Root lists the API surface."""
        response = await client.get("/")
        assert response.json()["service"] == "SpendOS Treasury API"


class TestErrorEnvelope:
    """Tests for the error response format"""

    async def test_unauthenticated(self, client):
        """✅ Missing token gives a 401 envelope."""
        response = await client.get("/spend-accounts/mine")

        assert response.status_code == 401
        body = response.json()
        assert body["statusCode"] == 401
        assert body["error"] == "Unauthorized"
        assert body["path"] == "/spend-accounts/mine"
        assert body["method"] == "GET"
        assert body["timestamp"].endswith("Z")

    async def test_invalid_token(self, client):
        """✅ A forged token is refused."""
        response = await client.get("/spend-accounts/mine", headers={"Authorization": "Bearer nope"})
        assert response.status_code == 401
        assert response.json()["message"] == "Invalid or expired token"

    async def test_forbidden(self, client):
        """✅ Spenders cannot list all accounts."""
        response = await client.get("/spend-accounts", headers=SPENDER_AUTH)
        assert response.status_code == 403
        assert response.json()["error"] == "Forbidden"

    async def test_not_found(self, client):
        """✅ Unknown request id gives 404."""
        response = await client.get("/spend-requests/999", headers=SPENDER_AUTH)
        assert response.status_code == 404
        assert response.json()["message"] == "Spend request 999 not found"

    async def test_validation_details(self, client):
        """✅ Body validation failures list the offending fields."""
        response = await client.post("/spend-requests/1/reject", json={"reason": ""}, headers=MANAGER_AUTH)

        assert response.status_code == 400
        body = response.json()
        assert body["message"] == "Validation failed"
        assert body["details"][0]["field"] == "reason"

    async def test_unhandled_error(self, client, seed, contract):
        """✅ Unexpected errors become a 500 envelope without internals."""
        await seed(make_account())
        contract.errors["freeze_account"] = RuntimeError("rpc down")

        response = await client.post("/spend-accounts/1/freeze", headers=ADMIN_AUTH)

        assert response.status_code == 500
        body = response.json()
        assert body["message"] == "Internal server error"
        assert "rpc down" not in response.text

    async def test_domain_error(self):
        """✅ Budget violations map to 409."""
        app = FastAPI()
        register_exception_handlers(app)

        @app.post("/reserve")
        async def reserve():
            raise PeriodBudgetExceededError("Period budget exceeded")

        transport = httpx.ASGITransport(app=app, raise_app_exceptions=False)
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as http_client:
            response = await http_client.post("/reserve")

        assert response.status_code == 409
        assert response.json()["error"] == "Conflict"
        assert response.json()["message"] == "Period budget exceeded"


class TestSpendRequestRoutes:
    """Tests for /spend-requests"""

    async def test_approve(self, client, session, seed, contract, queue):
        """✅ Approver approves and the spend is queued."""
        await _pending(session, seed, contract, 1)

        response = await client.post("/spend-requests/1/approve", headers=MANAGER_AUTH)

        assert response.status_code == 200
        assert response.json()["status"] == "APPROVED"
        assert queue.enqueued == [1]

    async def test_spender_cannot_approve(self, client, session, seed, contract):
        """✅ Approve needs admin or manager."""
        await _pending(session, seed, contract, 1)
        response = await client.post("/spend-requests/1/approve", headers=SPENDER_AUTH)
        assert response.status_code == 403

    async def test_reject(self, client, session, seed, contract):
        """✅ Reject records the reason."""
        await _pending(session, seed, contract, 1)

        response = await client.post(
            "/spend-requests/1/reject", json={"reason": "Duplicate invoice"}, headers=ADMIN_AUTH
        )

        assert response.status_code == 200
        assert response.json()["status"] == "REJECTED"
        assert response.json()["failureReason"] == "Duplicate invoice"

    async def test_list_filters(self, client, session, seed, contract):
        """✅ Status filter on the list."""
        await _pending(session, seed, contract, 1, 2)
        await client.post("/spend-requests/2/approve", headers=MANAGER_AUTH)

        response = await client.get("/spend-requests", params={"status": "PENDING_APPROVAL"}, headers=SPENDER_AUTH)

        assert [r["requestId"] for r in response.json()] == [1]
        assert response.json()[0]["amount"] == str(250 * USDC)


class TestSpendAccountRoutes:
    """Tests for /spend-accounts"""

    async def test_mine(self, client, seed):
        """✅ Owned and approver lists for the caller."""
        await seed(make_account(1), make_account(2, owner_address=APPROVER))

        response = await client.get("/spend-accounts/mine", headers=SPENDER_AUTH)

        body = response.json()
        assert [a["accountId"] for a in body["owned"]] == [1]
        assert body["approver"] == []
        assert body["owned"][0]["budgetPerPeriod"] == str(10_000 * USDC)

    async def test_create(self, client, contract):
        """✅ Dollar amounts reach the contract as micro-USDC."""
        response = await client.post("/spend-accounts", headers=ADMIN_AUTH, json={
            "owner": OWNER,
            "label": "Marketing",
            "budgetPerPeriod": "5,000",
            "periodDuration": 30 * 86400,
            "perTxLimit": "500",
            "approvalThreshold": "100",
            "approver": APPROVER,
            "allowedChains": [84532],
        })

        assert response.status_code == 201
        assert response.json()["accountId"] == 1
        assert contract.called("create_spend_account") == [(
            "create_spend_account", OWNER, "Marketing", 5_000 * USDC, 30 * 86400,
            500 * USDC, 0, 100 * USDC, APPROVER, [84532],
        )]

    async def test_sync(self, client, contract):
        """✅ Admin sync reports counts."""
        contract.accounts[1] = make_chain_account()

        response = await client.post("/spend-accounts/sync", headers=ADMIN_AUTH)

        assert response.json() == {"synced": 1, "failed": 0}


class TestTreasuryRoutes:
    """Tests for /treasury and /analytics"""

    async def test_balance(self, client, seed, fake_redis):
        """✅ Balance in USDC dollars."""
        fake_redis.store[UNIFIED_BALANCE_KEY] = str(12_500 * USDC)
        await seed(make_account())

        response = await client.get("/treasury/balance", headers=SPENDER_AUTH)

        assert response.json()["unified"] == "12500.00"
        assert response.json()["available"] == "2500.00"

    async def test_fund_admin_only(self, client, contract):
        """✅ Funding is an admin operation."""
        body = {"amount": "250", "gatewayTxId": "gw-9"}
        assert (await client.post("/treasury/fund", json=body, headers=MANAGER_AUTH)).status_code == 403

        response = await client.post("/treasury/fund", json=body, headers=ADMIN_AUTH)

        assert response.status_code == 200
        assert contract.called("record_inbound_funding") == [("record_inbound_funding", 250 * USDC, "gw-9")]

    async def test_runway_no_burn(self, client, fake_redis):
        """✅ Null days when nothing has been spent."""
        fake_redis.store[UNIFIED_BALANCE_KEY] = str(10 * USDC)

        response = await client.get("/analytics/runway", headers=SPENDER_AUTH)

        assert response.json() == {"days": None, "amount": "10.00"}


class TestAlertRoutes:
    """Tests for /alerts"""

    async def test_list_and_acknowledge(self, client, session):
        """✅ Unacknowledged filter and acknowledge."""
        alert = await build_alert_service(session).create_alert(
            AlertType.LOW_BALANCE, "Treasury balance is low", AlertSeverity.WARNING
        )

        response = await client.get("/alerts", params={"acknowledged": "false"}, headers=MANAGER_AUTH)
        assert [a["id"] for a in response.json()] == [str(alert.id)]

        response = await client.post(f"/alerts/{alert.id}/acknowledge", headers=MANAGER_AUTH)
        assert response.json()["acknowledged"] is True
        assert response.json()["acknowledgedAt"] is not None

        response = await client.get("/alerts", params={"acknowledged": "false"}, headers=MANAGER_AUTH)
        assert response.json() == []

    async def test_spender_cannot_list(self, client):
        """✅ Alerts are for admins and managers."""
        assert (await client.get("/alerts", headers=SPENDER_AUTH)).status_code == 403
