"""
Tests for SpendAccountService
Chain reconciliation, account events and admin writes
"""
from datetime import timedelta

import pytest
from fastapi import HTTPException
from sqlalchemy import select

from spendos.blockchain.events import (
    SpendAccountClosedEvent,
    SpendAccountCreatedEvent,
    SpendAccountUnfrozenEvent,
)
from spendos.database.models import Alert, AlertType
from spendos.database.postgres_client import from_unix, utcnow
from spendos.services.factory import build_account_service
from tests.conftest import APPROVER, OWNER, USDC, make_account, make_chain_account


class TestSync:
    """Tests for sync_account_from_chain / sync_all_accounts_from_chain"""

    async def test_sync_creates_mirror(self, session, contract):
        """✅ A new account is inserted with chain state."""
        contract.accounts[3] = make_chain_account(
            owner="0x" + "AB" * 20,
            period_spent=120 * USDC,
            min_balance=50 * USDC,
            target_balance=200 * USDC,
        )
        service = build_account_service(session, contract)

        account = await service.sync_account_from_chain(3)

        assert account.account_id == 3
        assert account.owner_address == "0x" + "ab" * 20
        assert account.approver_address == APPROVER
        assert account.period_spent == 120 * USDC
        assert account.period_start == from_unix(1_700_000_000)
        assert account.daily_reset_at == from_unix(1_700_000_000) + timedelta(days=1)
        assert account.allowed_chains == [84532]
        assert account.auto_topup_min_balance == 50 * USDC
        assert account.auto_topup_target_balance == 200 * USDC

    async def test_sync_overwrites_local_counters(self, session, seed, contract):
        """✅ The chain wins over drifted local values."""
        await seed(make_account(period_reserved=999 * USDC, label="Old"))
        contract.accounts[1] = make_chain_account(label="New", period_reserved=0)
        service = build_account_service(session, contract)

        account = await service.sync_account_from_chain(1)

        assert account.label == "New"
        assert account.period_reserved == 0
        assert account.auto_topup_min_balance is None

    async def test_sync_all_counts_failures(self, session, contract):
        """✅ One unreadable account does not stop the others."""
        contract.accounts[1] = make_chain_account()
        contract.accounts[3] = make_chain_account(status=2)
        service = build_account_service(session, contract)

        result = await service.sync_all_accounts_from_chain()

        assert result == {"synced": 2, "failed": 1}
        accounts = await service.find_all()
        assert [a.account_id for a in accounts] == [1, 3]
        assert accounts[1].closed is True

    async def test_no_contract(self, session):
        """✅ Chain operations without a contract give 503."""
        service = build_account_service(session, None)
        with pytest.raises(HTTPException) as exc:
            await service.sync_account_from_chain(1)
        assert exc.value.status_code == 503


class TestAccountEvents:
    """Tests for account event handlers"""

    async def test_created_event_syncs(self, session, contract):
        """✅ SpendAccountCreated pulls the full account."""
        contract.accounts[1] = make_chain_account(label="Design")
        service = build_account_service(session, contract)

        await service.handle_account_created(SpendAccountCreatedEvent(
            account_id=1, owner_address=OWNER, label="Design", budget_per_period=10_000 * USDC,
            timestamp=utcnow()
        ))

        assert (await service.find_one(1)).label == "Design"

    async def test_unfrozen_event(self, session, seed, contract):
        """✅ SpendAccountUnfrozen clears the flag."""
        await seed(make_account(frozen=True))
        service = build_account_service(session, contract)

        await service.handle_account_unfrozen(SpendAccountUnfrozenEvent(account_id=1, timestamp=utcnow()))

        account = await service.find_one(1)
        await session.refresh(account)
        assert account.frozen is False

    async def test_closed_event_alerts(self, session, seed, contract):
        """✅ SpendAccountClosed closes the mirror and raises an INFO alert."""
        await seed(make_account())
        service = build_account_service(session, contract)

        await service.handle_account_closed(SpendAccountClosedEvent(account_id=1, timestamp=utcnow()))

        account = await service.find_one(1)
        assert account.closed is True
        alerts = (await session.execute(select(Alert).where(Alert.type == AlertType.ACCOUNT_CLOSED))).scalars().all()
        assert len(alerts) == 1
        assert alerts[0].severity.value == "INFO"


class TestQueries:
    """Tests for account lookups"""

    async def test_find_mine(self, session, seed, contract):
        """✅ Owned and approver lists are split by role."""
        other = "0x" + "7" * 40
        await seed(
            make_account(1),
            make_account(2, owner_address=other),
            make_account(3, approver_address=other),
        )
        service = build_account_service(session, contract)

        mine = await service.find_mine(OWNER)

        assert [a.account_id for a in mine["owned"]] == [1, 3]
        assert mine["approver"] == []
        approving = await service.find_by_approver(APPROVER)
        assert [a.account_id for a in approving] == [1, 2]

    async def test_find_one_missing(self, session, contract):
        """✅ Unknown account gives 404."""
        with pytest.raises(HTTPException) as exc:
            await build_account_service(session, contract).find_one(99)
        assert exc.value.status_code == 404


class TestAdminWrites:
    """Tests for contract write operations"""

    async def test_update_passes_zero_for_unchanged(self, session, seed, contract):
        """✅ Omitted limits are sent as 0 (keep current)."""
        await seed(make_account())
        service = build_account_service(session, contract)

        tx_hash = await service.update_account(1, per_tx_limit=2_000 * USDC)

        assert tx_hash.startswith("0x")
        assert contract.called("update_spend_account") == [
            ("update_spend_account", 1, 0, 2_000 * USDC, 0, 0, None)
        ]

    async def test_write_on_missing_account(self, session, contract):
        """✅ Writes check the mirror first."""
        service = build_account_service(session, contract)
        with pytest.raises(HTTPException) as exc:
            await service.freeze_account(5)
        assert exc.value.status_code == 404
        assert contract.calls == []

    async def test_auto_topup_target_below_min(self, session, seed, contract):
        """✅ targetBalance must not be below minBalance."""
        await seed(make_account())
        service = build_account_service(session, contract)

        with pytest.raises(HTTPException) as exc:
            await service.configure_auto_topup(1, 500 * USDC, 100 * USDC)
        assert exc.value.status_code == 400

        await service.configure_auto_topup(1, 100 * USDC, 500 * USDC)
        assert contract.called("set_auto_topup_config") == [("set_auto_topup_config", 1, 100 * USDC, 500 * USDC)]

    async def test_account_operations_reach_contract(self, session, seed, contract):
        """✅ Freeze, unfreeze, close, sweep, reset and top-up call the contract."""
        await seed(make_account())
        service = build_account_service(session, contract)

        await service.freeze_account(1)
        await service.unfreeze_account(1)
        await service.sweep_account(1)
        await service.reset_period(1)
        await service.execute_auto_topup(1)
        await service.update_allowed_chains(1, [84532, 11155111])
        await service.close_account(1)

        assert [call[0] for call in contract.calls] == [
            "freeze_account", "unfreeze_account", "sweep_account", "reset_period",
            "auto_topup", "update_allowed_chains", "close_account",
        ]

    async def test_create_account(self, session, contract):
        """✅ Create returns the new id and transaction hash."""
        service = build_account_service(session, contract)

        result = await service.create_account(
            OWNER, "Research", 1_000 * USDC, 30 * 86400, 100 * USDC, 0, 50 * USDC, APPROVER, [84532]
        )

        assert result["accountId"] == 1
        assert result["transactionHash"].startswith("0x")
