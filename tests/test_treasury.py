"""
Tests for BalanceSync, TreasuryService and AnalyticsService
"""
from datetime import timedelta

import httpx
import pytest
from fastapi import HTTPException
from sqlalchemy import select

from spendos.blockchain.events import AdminTransferredEvent, ContractPausedEvent, InboundFundingEvent
from spendos.database.models import Alert, AlertSeverity, AlertType, SpendRequest, SpendStatus
from spendos.database.postgres_client import utcnow
from spendos.database.redis_client import CONTRACT_ADMIN_KEY, LAST_SYNC_KEY, UNIFIED_BALANCE_KEY
from spendos.services.balance_sync import BalanceSync
from spendos.services.factory import build_alert_service, build_analytics_service, build_treasury_service
from tests.conftest import ADMIN, BACKEND, DESTINATION, OWNER, USDC, make_account


async def _alerts(session, alert_type):
    result = await session.execute(select(Alert).where(Alert.type == alert_type))
    return result.scalars().all()


def _executed(request_id, amount, days_ago):
    executed_at = utcnow() - timedelta(days=days_ago)
    return SpendRequest(
        request_id=request_id,
        account_id=1,
        requester_address=OWNER,
        amount=amount,
        chain_id=84532,
        destination_address=DESTINATION,
        status=SpendStatus.EXECUTED,
        requested_at=executed_at,
        executed_at=executed_at,
    )


class TestBalanceSync:
    """Tests for BalanceSync.sync_balance"""

    async def test_caches_balance(self, session, gateway, fake_redis):
        """✅ Balance and sync time land in Redis."""
        gateway.balance = 5_000 * USDC
        sync = BalanceSync(gateway, BACKEND, build_alert_service(session))

        assert await sync.sync_balance() == 5_000 * USDC

        assert fake_redis.store[UNIFIED_BALANCE_KEY] == str(5_000 * USDC)
        assert fake_redis.store[LAST_SYNC_KEY].endswith("Z")
        assert await _alerts(session, AlertType.LOW_BALANCE) == []

    async def test_low_balance_alerts_on_crossing_only(self, session, gateway):
        """✅ LOW_BALANCE fires when the balance drops below the threshold, not on every sync."""
        sync = BalanceSync(gateway, BACKEND, build_alert_service(session))

        gateway.balance = 2_000 * USDC
        await sync.sync_balance()
        gateway.balance = 500 * USDC
        await sync.sync_balance()
        await sync.sync_balance()
        assert len(await _alerts(session, AlertType.LOW_BALANCE)) == 1

        gateway.balance = 3_000 * USDC
        await sync.sync_balance()
        gateway.balance = 100 * USDC
        await sync.sync_balance()
        alerts = await _alerts(session, AlertType.LOW_BALANCE)
        assert len(alerts) == 2
        assert alerts[0].severity == AlertSeverity.WARNING

    async def test_gateway_error_is_swallowed(self, gateway, fake_redis):
        """✅ A failing Gateway call keeps the previous cache."""
        fake_redis.store[UNIFIED_BALANCE_KEY] = "42"
        gateway.balance_error = httpx.ConnectError("gateway down")

        assert await BalanceSync(gateway, BACKEND).sync_balance() is None
        assert fake_redis.store[UNIFIED_BALANCE_KEY] == "42"


class TestTreasuryBalance:
    """Tests for TreasuryService balance views"""

    async def test_balance_breakdown(self, session, seed, contract, fake_redis):
        """✅ Committed is the sum of open account budgets."""
        fake_redis.store[UNIFIED_BALANCE_KEY] = str(25_000 * USDC)
        fake_redis.store[LAST_SYNC_KEY] = "2026-03-10T12:00:00Z"
        await seed(
            make_account(1),
            make_account(2, budget_per_period=5_000 * USDC),
            make_account(3, closed=True),
        )

        balance = await build_treasury_service(session, contract).get_balance()

        assert balance["unified"] == "25000.00"
        assert balance["balance"] == "25000.00"
        assert balance["committed"] == "15000.00"
        assert balance["available"] == "10000.00"
        assert balance["currency"] == "USDC"
        assert balance["lastSyncAt"] == "2026-03-10T12:00:00Z"

    async def test_available_never_negative(self, session, seed, contract, fake_redis):
        """✅ Over-committed treasuries show 0 available."""
        fake_redis.store[UNIFIED_BALANCE_KEY] = str(1_000 * USDC)
        await seed(make_account())

        balance = await build_treasury_service(session, contract).get_balance_micro()

        assert balance["available"] == 0
        assert balance["lastSyncAt"] is None

    async def test_unified_balance_defaults_to_backend(self, session, contract, gateway):
        """✅ Cross-chain balance is read for the backend wallet by default."""
        gateway.balance = 7 * USDC
        service = build_treasury_service(session, contract, gateway)

        result = await service.get_unified_cross_chain_balance()

        assert result["address"] == BACKEND
        assert result["totalBalance"] == str(7 * USDC)

    async def test_unified_balance_without_gateway(self, session, contract):
        """✅ 503 when no Gateway client is configured."""
        with pytest.raises(HTTPException) as exc:
            await build_treasury_service(session, contract).get_unified_cross_chain_balance()
        assert exc.value.status_code == 503


class TestTreasuryEvents:
    """Tests for funding and contract-level events"""

    async def test_inbound_funding_deduplicated(self, session, contract):
        """✅ The same gatewayTxId is recorded once."""
        service = build_treasury_service(session, contract)
        event = InboundFundingEvent(
            amount=500 * USDC, gateway_tx_id="gw-in-1", tx_hash="0x" + "e" * 64, timestamp=utcnow()
        )

        first = await service.handle_inbound_funding(event)
        second = await service.handle_inbound_funding(event)

        assert first.id == second.id
        history = await service.get_funding_history()
        assert len(history) == 1
        assert history[0].amount == 500 * USDC
        assert history[0].direction.value == "INBOUND"

    async def test_admin_transfer_caches_and_alerts(self, session, contract, fake_redis):
        """✅ New admin is cached and a CRITICAL alert is raised."""
        new_admin = "0x" + "C" * 40
        service = build_treasury_service(session, contract)

        await service.handle_admin_transferred(AdminTransferredEvent(
            previous_admin=ADMIN, new_admin=new_admin, tx_hash="0x" + "f" * 64, timestamp=utcnow()
        ))

        assert fake_redis.store[CONTRACT_ADMIN_KEY] == new_admin.lower()
        alerts = await _alerts(session, AlertType.ADMIN_TRANSFER)
        assert len(alerts) == 1
        assert alerts[0].severity == AlertSeverity.CRITICAL
        assert alerts[0].alert_metadata["newAdmin"] == new_admin

    async def test_pause_alerts(self, session, contract):
        """✅ ContractPaused raises a CRITICAL alert."""
        await build_treasury_service(session, contract).handle_contract_paused(
            ContractPausedEvent(tx_hash="0x" + "f" * 64, timestamp=utcnow())
        )
        alerts = await _alerts(session, AlertType.CONTRACT_PAUSED)
        assert alerts[0].severity == AlertSeverity.CRITICAL

    async def test_admin_writes(self, session, contract):
        """✅ Fund, pause, unpause and transfer go to the contract."""
        service = build_treasury_service(session, contract)

        await service.fund_treasury(100 * USDC, "gw-fund-1")
        await service.pause_contract()
        await service.unpause_contract()
        await service.transfer_admin(OWNER)

        assert contract.calls[0] == ("record_inbound_funding", 100 * USDC, "gw-fund-1")
        assert [call[0] for call in contract.calls[1:]] == ["pause", "unpause", "transfer_admin"]


class TestAnalytics:
    """Tests for AnalyticsService"""

    async def test_burn_rate(self, session, seed):
        """✅ Executed spends in the window averaged per day."""
        await seed(
            _executed(1, 300 * USDC, days_ago=2),
            _executed(2, 600 * USDC, days_ago=10),
            _executed(3, 5_000 * USDC, days_ago=45),
        )

        burn = await build_analytics_service(session).get_burn_rate()

        assert burn == {"daily": "30000000", "monthly": "900000000"}

    async def test_burn_rate_is_cached(self, session, seed, fake_redis):
        """✅ Burn rate is cached briefly in Redis."""
        await seed(_executed(1, 300 * USDC, days_ago=1))
        service = build_analytics_service(session)

        await service.get_burn_rate()

        assert fake_redis.ttls["analytics:burn_rate:30"] == 10

    async def test_runway(self, session, seed, fake_redis):
        """✅ Runway divides available balance by the daily burn."""
        fake_redis.store[UNIFIED_BALANCE_KEY] = str(100_000 * USDC)
        await seed(make_account(), _executed(1, 300 * USDC, days_ago=2), _executed(2, 600 * USDC, days_ago=3))

        runway = await build_analytics_service(session).get_runway()

        assert runway == {"days": 3000, "amount": "90000.00"}

    async def test_runway_without_spend(self, session, seed, fake_redis):
        """✅ No executed spend means no runway estimate."""
        fake_redis.store[UNIFIED_BALANCE_KEY] = str(100 * USDC)

        runway = await build_analytics_service(session).get_runway()

        assert runway == {"days": None, "amount": "100.00"}

    async def test_department_breakdown(self, session, seed):
        """✅ Closed accounts are left out."""
        await seed(make_account(1), make_account(2, closed=True), make_account(3, label="Ops"))

        accounts = await build_analytics_service(session).get_department_breakdown()

        assert [a.label for a in accounts] == ["Engineering", "Ops"]
