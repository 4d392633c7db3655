"""
Tests for Circle Gateway helpers, event decoding and retry policy
"""
import httpx
import pytest
from eth_account import Account
from eth_account.messages import encode_typed_data

from spendos.blockchain.events import (
    InboundFundingEvent,
    SpendAccountFrozenEvent,
    SpendRequestedEvent,
    decode_event,
)
from spendos.database.postgres_client import from_unix, utcnow
from spendos.gateway.burn_intent import (
    BurnIntentSigner,
    UnsupportedChainError,
    address_to_bytes32,
    build_typed_data,
)
from spendos.gateway.constants import MIN_FEE
from spendos.gateway.gateway_api import GatewayApi, GatewayApiError, to_micro_usdc
from spendos.utils.retry import is_transient_error, retry_with_backoff
from tests.conftest import BASE_SEPOLIA, DESTINATION, USDC


@pytest.fixture
def burn_signer():
    return BurnIntentSigner(Account.create().key)


class TestBurnIntent:
    """Tests for BurnIntentSigner"""

    def test_address_to_bytes32(self):
        """✅ Addresses are left-padded to 32 bytes."""
        word = address_to_bytes32("0x" + "AB" * 20)
        assert word == "0x" + "0" * 24 + "ab" * 20
        assert len(word) == 66

    def test_intent_fields(self, burn_signer):
        """✅ Arc -> Base Sepolia uses domains 26 -> 6."""
        intent = burn_signer.create_burn_intent(100 * USDC, BASE_SEPOLIA, DESTINATION)
        spec = intent["spec"]

        assert spec["sourceDomain"] == 26
        assert spec["destinationDomain"] == 6
        assert spec["value"] == str(100 * USDC)
        assert spec["destinationRecipient"] == address_to_bytes32(DESTINATION)
        assert spec["sourceSigner"] == address_to_bytes32(burn_signer.address)
        assert len(spec["salt"]) == 66
        assert intent["maxFee"] == str(MIN_FEE)

    def test_salt_is_unique(self, burn_signer):
        """✅ Every intent carries a fresh salt."""
        first = burn_signer.create_burn_intent(USDC, BASE_SEPOLIA, DESTINATION)
        second = burn_signer.create_burn_intent(USDC, BASE_SEPOLIA, DESTINATION)
        assert first["spec"]["salt"] != second["spec"]["salt"]

    def test_unsupported_chain(self, burn_signer):
        """✅ Unknown destination chains are refused."""
        with pytest.raises(UnsupportedChainError):
            burn_signer.create_burn_intent(USDC, 1, DESTINATION)

    def test_signature_recovers_signer(self, burn_signer):
        """✅ The EIP-712 signature recovers to the depositor."""
        signed = burn_signer.create_and_sign(5 * USDC, BASE_SEPOLIA, DESTINATION)

        message = encode_typed_data(full_message=build_typed_data(signed["burnIntent"]))
        recovered = Account.recover_message(message, signature=signed["signature"])

        assert recovered == burn_signer.address
        assert signed["signature"].startswith("0x")


class TestGatewayApi:
    """Tests for GatewayApi"""

    @pytest.mark.parametrize("balance,expected", [
        ("22.497825", 22_497_825),
        ("1", 1_000_000),
        ("0.0000019", 1),
        ("", 0),
    ])
    def test_to_micro_usdc(self, balance, expected):
        """✅ Decimal balances truncate to micro-USDC."""
        assert to_micro_usdc(balance) == expected

    async def test_unified_balance(self, monkeypatch):
        """✅ Per-chain balances are summed in micro-USDC."""
        api = GatewayApi(base_url="http://gateway.test")
        sent = {}

        async def fake_post(path, payload):
            sent["path"], sent["payload"] = path, payload
            return {"balances": [{"balance": "22.497825"}, {"balance": "1"}]}

        monkeypatch.setattr(api, "_post", fake_post)

        result = await api.get_unified_balance("0xabc", [5042002, BASE_SEPOLIA])

        assert sent["path"] == "/balances"
        assert sent["payload"]["sources"] == [
            {"depositor": "0xabc", "domain": 26},
            {"depositor": "0xabc", "domain": 6},
        ]
        assert result["totalBalance"] == "23497825"
        assert result["totalBalanceUsdc"] == "23.497825"
        assert result["balances"][1]["chainId"] == BASE_SEPOLIA
        assert result["balances"][1]["balance"] == "1000000"

    async def test_transfer_without_attestation(self, monkeypatch):
        """✅ A transfer response without attestation is an error."""
        api = GatewayApi(base_url="http://gateway.test")

        async def fake_post(path, payload):
            return {"transferId": "gw-1"}

        monkeypatch.setattr(api, "_post", fake_post)

        with pytest.raises(GatewayApiError):
            await api.submit_burn_intent([{"burnIntent": {}, "signature": "0x"}])

    async def test_client_error_status(self, monkeypatch):
        """✅ 4xx responses raise GatewayApiError with the body."""
        def handler(request):
            return httpx.Response(400, text="invalid signature")

        transport = httpx.MockTransport(handler)
        real_client = httpx.AsyncClient

        monkeypatch.setattr(
            "spendos.gateway.gateway_api.httpx.AsyncClient",
            lambda **kwargs: real_client(transport=transport, **kwargs)
        )

        with pytest.raises(GatewayApiError) as exc:
            await GatewayApi(base_url="http://gateway.test").submit_burn_intent([])
        assert exc.value.status_code == 400
        assert exc.value.body == "invalid signature"


class TestDecodeEvent:
    """Tests for decode_event"""

    def _meta(self):
        return {"block_number": 7, "tx_hash": "0x" + "1" * 64, "log_index": 2, "timestamp": utcnow()}

    def test_spend_requested(self):
        """✅ Contract argument names map to event fields."""
        event = decode_event("SpendRequested", {
            "requestId": 4, "accountId": 1, "requester": DESTINATION,
            "amount": 5 * USDC, "chainId": BASE_SEPOLIA, "destinationAddress": DESTINATION,
        }, **self._meta())

        assert isinstance(event, SpendRequestedEvent)
        assert event.request_id == 4
        assert event.block_number == 7
        assert event.log_index == 2

    def test_account_event(self):
        """✅ Account-only events decode to their own type."""
        event = decode_event("SpendAccountFrozen", {"accountId": 3}, **self._meta())
        assert isinstance(event, SpendAccountFrozenEvent)
        assert event.account_id == 3

    def test_inbound_funding_uses_contract_time(self):
        """✅ InboundFunding carries its own timestamp."""
        event = decode_event("InboundFunding", {
            "amount": USDC, "gatewayTxId": "gw-1", "timestamp": 1_700_000_000,
        }, **self._meta())

        assert isinstance(event, InboundFundingEvent)
        assert event.timestamp == from_unix(1_700_000_000)

    def test_unknown_event(self):
        """✅ Unknown names decode to None."""
        assert decode_event("Transfer", {}, **self._meta()) is None


class TestRetry:
    """Tests for retry_with_backoff"""

    async def test_retries_transient(self):
        """✅ Transient errors are retried until success."""
        calls = []

        async def flaky():
            calls.append(1)
            if len(calls) < 3:
                raise httpx.ConnectError("reset")
            return "ok"

        assert await retry_with_backoff(flaky, base_delay=0) == "ok"
        assert len(calls) == 3

    async def test_gives_up(self):
        """✅ After max_retries the last error propagates."""
        calls = []

        async def down():
            calls.append(1)
            raise httpx.ReadTimeout("timeout")

        with pytest.raises(httpx.ReadTimeout):
            await retry_with_backoff(down, max_retries=2, base_delay=0)
        assert len(calls) == 3

    async def test_permanent_error_not_retried(self):
        """✅ Non-transient errors propagate at once."""
        calls = []

        async def broken():
            calls.append(1)
            raise ValueError("bad input")

        with pytest.raises(ValueError):
            await retry_with_backoff(broken, base_delay=0)
        assert calls == [1]

    def test_classification(self):
        """✅ 5xx and 429 are transient, 4xx and Gateway errors are not."""
        request = httpx.Request("POST", "http://gateway.test/transfer")

        def status_error(code):
            response = httpx.Response(code, request=request)
            return httpx.HTTPStatusError("error", request=request, response=response)

        assert is_transient_error(status_error(503))
        assert is_transient_error(status_error(429))
        assert not is_transient_error(status_error(404))
        assert not is_transient_error(GatewayApiError(400, "bad"))
