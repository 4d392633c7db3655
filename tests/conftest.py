# tests/conftest.py

import os
from datetime import timedelta

import pytest

# 🔧 Must be set before spendos.config is imported
os.environ.setdefault("ENABLE_SCHEDULER", "false")
os.environ.setdefault("JWT_SECRET", "test-secret")

import httpx
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from spendos.blockchain.events import SpendRequestedEvent
from spendos.blockchain.treasury_contract import OnChainAccount, OnChainRequest
from spendos.database.models import SpendAccount
from spendos.database.postgres_client import Base, utcnow
from spendos.database.redis_client import RedisClient
from spendos.services.auth_service import AuthUser, create_access_token

ADMIN = "0x" + "a" * 40
OWNER = "0x" + "1" * 40
APPROVER = "0x" + "2" * 40
DESTINATION = "0x" + "3" * 40
BACKEND = "0x" + "b" * 40

USDC = 1_000_000
BASE_SEPOLIA = 84532


# ============================================================================
# Fakes
# ============================================================================

class FakeRedis:
    """In-memory stand-in for redis.asyncio.Redis"""

    def __init__(self):
        self.store = {}
        self.ttls = {}

    async def get(self, key):
        return self.store.get(key)

    async def set(self, key, value):
        self.store[key] = value
        return True

    async def setex(self, key, ttl, value):
        self.store[key] = value
        self.ttls[key] = ttl
        return True

    async def delete(self, key):
        self.store.pop(key, None)

    async def ping(self):
        return True

    async def close(self):
        pass


class FakeContract:
    """Treasury contract double: chain state in dicts, writes recorded in `calls`"""

    backend_address = BACKEND

    def __init__(self):
        self.admin = ADMIN
        self.accounts = {}
        self.requests = {}
        self.calls = []
        self.errors = {}
        self.block_number = 100
        self.logs = {}
        self.block_timestamps = {}

    def _tx(self, name, *args):
        self.calls.append((name,) + args)
        if name in self.errors:
            raise self.errors[name]
        return "0x" + format(len(self.calls), "064x")

    def called(self, name):
        return [call for call in self.calls if call[0] == name]

    async def get_admin(self):
        return self.admin

    async def get_next_account_id(self):
        return max(self.accounts, default=0) + 1

    async def get_account(self, account_id):
        if account_id not in self.accounts:
            raise RuntimeError(f"account {account_id} not found on chain")
        return self.accounts[account_id]

    async def get_request(self, request_id):
        return self.requests[request_id]

    async def get_block_number(self):
        return self.block_number

    async def get_block_timestamp(self, block_number):
        return self.block_timestamps.get(block_number, 1_700_000_000 + block_number)

    async def get_logs(self, event_name, from_block, to_block):
        return [
            log for log in self.logs.get(event_name, [])
            if from_block <= log["blockNumber"] <= to_block
        ]

    async def mark_spend_executed(self, request_id, gateway_tx_id):
        return self._tx("mark_spend_executed", request_id, gateway_tx_id)

    async def mark_spend_failed(self, request_id, reason):
        return self._tx("mark_spend_failed", request_id, reason)

    async def record_inbound_funding(self, amount, gateway_tx_id):
        return self._tx("record_inbound_funding", amount, gateway_tx_id)

    async def pause(self):
        return self._tx("pause")

    async def unpause(self):
        return self._tx("unpause")

    async def transfer_admin(self, new_admin):
        return self._tx("transfer_admin", new_admin)

    async def create_spend_account(self, *args):
        tx_hash = self._tx("create_spend_account", *args)
        return {"accountId": max(self.accounts, default=0) + 1, "transactionHash": tx_hash}

    async def update_spend_account(self, *args):
        return self._tx("update_spend_account", *args)

    async def freeze_account(self, account_id):
        return self._tx("freeze_account", account_id)

    async def unfreeze_account(self, account_id):
        return self._tx("unfreeze_account", account_id)

    async def close_account(self, account_id):
        return self._tx("close_account", account_id)

    async def update_allowed_chains(self, account_id, allowed_chains):
        return self._tx("update_allowed_chains", account_id, allowed_chains)

    async def set_auto_topup_config(self, account_id, min_balance, target_balance):
        return self._tx("set_auto_topup_config", account_id, min_balance, target_balance)

    async def auto_topup(self, account_id):
        return self._tx("auto_topup", account_id)

    async def sweep_account(self, account_id):
        return self._tx("sweep_account", account_id)

    async def reset_period(self, account_id):
        return self._tx("reset_period", account_id)


class FakeSigner:

    def __init__(self):
        self.intents = []

    def create_and_sign(self, amount, destination_chain_id, destination_address):
        self.intents.append((amount, destination_chain_id, destination_address))
        return {"burnIntent": {"spec": {"value": str(amount)}}, "signature": "0x" + "5" * 130}


class FakeGateway:

    def __init__(self, balance=0):
        self.balance = balance
        self.submitted = []
        self.error = None
        self.balance_error = None

    async def submit_burn_intent(self, signed_intents):
        self.submitted.append(signed_intents)
        if self.error:
            raise self.error
        return {"transferId": "gw-transfer-1", "attestation": "0xatt", "signature": "0xsig"}

    async def get_unified_balance(self, address, chain_ids=None):
        if self.balance_error:
            raise self.balance_error
        return {"totalBalance": str(self.balance), "totalBalanceUsdc": "", "balances": [], "address": address}


class FakeMinter:

    def __init__(self):
        self.mints = []
        self.error = None
        self.on_mint = None

    async def mint_on_destination(self, chain_id, attestation, signature):
        self.mints.append((chain_id, attestation, signature))
        if self.on_mint:
            await self.on_mint()
        if self.error:
            raise self.error
        return "0x" + "c" * 64


class FakeGatewayWallet:
    """Backend wallet USDC and Gateway Wallet deposits, balances in micro-USDC"""

    address = BACKEND

    def __init__(self, balance=0, allowance=0, gateway_balance=0):
        self.balance = balance
        self.approved = allowance
        self.deposited = gateway_balance
        self.calls = []
        self.error = None

    async def usdc_balance(self):
        if self.error:
            raise self.error
        return self.balance

    async def allowance(self):
        return self.approved

    async def gateway_balance(self):
        return self.deposited

    async def approve(self, amount):
        self.calls.append(("approve", amount))
        self.approved = amount
        return "0x" + "e" * 64

    async def deposit(self, amount):
        self.calls.append(("deposit", amount))
        self.balance -= amount
        self.approved -= amount
        self.deposited += amount
        return "0x" + "9" * 64


class FakeQueue:

    def __init__(self):
        self.enqueued = []

    def enqueue(self, request_id, attempt=1, delay_seconds=0):
        self.enqueued.append(request_id)


# ============================================================================
# Builders
# ============================================================================

def make_account(account_id=1, **overrides) -> SpendAccount:
    values = dict(
        account_id=account_id,
        owner_address=OWNER,
        approver_address=APPROVER,
        label="Engineering",
        budget_per_period=10_000 * USDC,
        period_duration=30 * 86400,
        per_tx_limit=1_000 * USDC,
        daily_limit=5_000 * USDC,
        approval_threshold=100 * USDC,
        period_spent=0,
        period_reserved=0,
        daily_spent=0,
        daily_reserved=0,
        period_start=None,
        daily_reset_at=None,
        frozen=False,
        closed=False,
        allowed_chains=[BASE_SEPOLIA],
    )
    values.update(overrides)
    return SpendAccount(**values)


def make_chain_account(**overrides) -> OnChainAccount:
    values = dict(
        owner=OWNER,
        approver=APPROVER,
        label="Engineering",
        budget_per_period=10_000 * USDC,
        period_duration=30 * 86400,
        per_tx_limit=1_000 * USDC,
        daily_limit=5_000 * USDC,
        approval_threshold=100 * USDC,
        period_spent=0,
        period_reserved=0,
        daily_spent=0,
        daily_reserved=0,
        period_start=1_700_000_000,
        last_day_timestamp=1_700_000_000,
        status=0,
        allowed_chains=[BASE_SEPOLIA],
    )
    values.update(overrides)
    return OnChainAccount(**values)


def make_chain_request(**overrides) -> OnChainRequest:
    values = dict(
        account_id=1,
        requester=OWNER,
        amount=250 * USDC,
        chain_id=BASE_SEPOLIA,
        destination_address=DESTINATION,
    )
    values.update(overrides)
    return OnChainRequest(**values)


def requested_event(request_id=1, amount=250 * USDC, account_id=1, **overrides) -> SpendRequestedEvent:
    values = dict(
        request_id=request_id,
        account_id=account_id,
        requester_address=OWNER,
        amount=amount,
        chain_id=BASE_SEPOLIA,
        destination_address=DESTINATION,
        tx_hash="0x" + "d" * 64,
        timestamp=utcnow() - timedelta(minutes=1),
    )
    values.update(overrides)
    return SpendRequestedEvent(**values)


def token_for(address, roles, owned=None, approving=None) -> str:
    return create_access_token(AuthUser(
        address=address,
        roles=list(roles),
        owned_account_ids=list(owned or []),
        approver_account_ids=list(approving or []),
    ))


def auth_header(address, roles, **kwargs) -> dict:
    return {"Authorization": f"Bearer {token_for(address, roles, **kwargs)}"}


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture(autouse=True)
def fake_redis():
    """Every test gets an empty Redis"""
    redis = FakeRedis()
    RedisClient._instance = redis
    yield redis
    RedisClient._instance = None


@pytest.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'spendos_test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def seed(session_factory):
    """Insert rows and commit, returns them"""

    async def _seed(*instances):
        async with session_factory() as session:
            session.add_all(instances)
            await session.commit()
        return instances

    return _seed


@pytest.fixture
def contract():
    return FakeContract()


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def signer():
    return FakeSigner()


@pytest.fixture
def minter():
    return FakeMinter()


@pytest.fixture
def queue():
    return FakeQueue()


@pytest.fixture
def gateway_wallet():
    return FakeGatewayWallet()


@pytest.fixture
async def client(session_factory, contract, gateway, queue, gateway_wallet):
    """API client wired to the test database and the fakes"""
    from spendos.blockchain.treasury_contract import get_treasury_contract
    from spendos.database.postgres_client import get_db
    from spendos.gateway.gateway_api import get_gateway_api
    from spendos.gateway.gateway_wallet import get_gateway_wallet
    from spendos.jobs.spend_execution import get_execution_queue
    from spendos.main import app

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_treasury_contract] = lambda: contract
    app.dependency_overrides[get_gateway_api] = lambda: gateway
    app.dependency_overrides[get_gateway_wallet] = lambda: gateway_wallet
    app.dependency_overrides[get_execution_queue] = lambda: queue

    transport = httpx.ASGITransport(app=app, raise_app_exceptions=False)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as http_client:
        yield http_client

    app.dependency_overrides.clear()
