"""
Tests for x402 paid requests.

A MockTransport server answers 402 with payment requirements until the
request carries a payment header.
"""

import base64
import json

import httpx
import pytest
from eth_account import Account
from eth_account.messages import encode_typed_data
from eth_utils import to_checksum_address

from fluidsdk.core.exceptions import PaymentError
from fluidsdk.protocols.x402 import (
    HEADER_PAYMENT,
    HEADER_PAYMENT_SIGNATURE,
    TRANSFER_WITH_AUTHORIZATION_TYPES,
    PaymentRequirements,
    X402Client,
    decode_payment_response,
    network_chain_id,
    sign_exact_payment,
)

URL = "https://agent.example/weather"
PAY_TO = "0x" + "12" * 20
ASSET = "0x036cbd53842c5426634e7929541ec2318f3dcf7e"
SETTLEMENT_TX = "0x" + "ef" * 32


def _requirements(**overrides) -> dict:
    requirements = {
        "scheme": "exact",
        "network": "base-sepolia",
        "maxAmountRequired": "10000",
        "resource": URL,
        "description": "Weather report",
        "mimeType": "application/json",
        "payTo": PAY_TO,
        "maxTimeoutSeconds": 60,
        "asset": ASSET,
        "extra": {"name": "USDC", "version": "2"},
    }
    requirements.update(overrides)
    return requirements


def _b64(data: dict) -> str:
    return base64.b64encode(json.dumps(data).encode()).decode()


class PaidServer:
    """Answers 402 until paid, then the resource with a settlement receipt."""

    def __init__(self, accepts=None, x402_version=1, paid_status=200, result=None) -> None:
        self.accepts = accepts if accepts is not None else [_requirements()]
        self.x402_version = x402_version
        self.paid_status = paid_status
        self.result = result if result is not None else {"forecast": "sunny"}
        self.requests: list[httpx.Request] = []
        self.payment: dict | None = None

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        header = request.headers.get(HEADER_PAYMENT) or request.headers.get(HEADER_PAYMENT_SIGNATURE)
        if not header:
            return httpx.Response(
                402,
                json={
                    "x402Version": self.x402_version,
                    "error": "X-PAYMENT header is required",
                    "accepts": self.accepts,
                },
            )
        self.payment = json.loads(base64.b64decode(header))
        receipt = _b64({"success": True, "transaction": SETTLEMENT_TX, "network": "base-sepolia"})
        return httpx.Response(self.paid_status, json=self.result, headers={"X-PAYMENT-RESPONSE": receipt})


def _client(signer, handler, **kwargs) -> X402Client:
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return X402Client(signer, http_client=http_client, **kwargs)


# ─────────────────────────────────────────────────────────────────
# Requirements parsing
# ─────────────────────────────────────────────────────────────────

class TestPaymentRequirements:
    """Tests for parsing 402 replies."""

    def test_from_accepts_list(self) -> None:
        response = httpx.Response(
            402,
            json={"x402Version": 1, "accepts": [_requirements()]},
            request=httpx.Request("GET", URL),
        )

        requirements = PaymentRequirements.from_response(response)

        assert requirements.amount == 10000
        assert requirements.pay_to == PAY_TO
        assert requirements.asset == ASSET
        assert requirements.chain_id == 84532
        assert requirements.extra == {"name": "USDC", "version": "2"}

    def test_prefers_exact_on_known_network(self) -> None:
        accepts = [_requirements(network="solana-devnet"), _requirements(network="polygon-amoy")]
        response = httpx.Response(402, json={"accepts": accepts}, request=httpx.Request("GET", URL))

        assert PaymentRequirements.from_response(response).network == "polygon-amoy"

    def test_legacy_header(self) -> None:
        response = httpx.Response(
            402,
            headers={"X-Payment-Required": _b64(_requirements(maxAmountRequired="500"))},
            request=httpx.Request("GET", URL),
        )

        requirements = PaymentRequirements.from_response(response)

        assert requirements.amount == 500
        assert requirements.resource == URL

    def test_missing_requirements_raise(self) -> None:
        response = httpx.Response(402, text="pay up", request=httpx.Request("GET", URL))

        with pytest.raises(PaymentError, match="No valid x402 payment requirements"):
            PaymentRequirements.from_response(response)

    def test_invalid_amount_raises(self) -> None:
        requirements = PaymentRequirements.from_dict(_requirements(maxAmountRequired="lots"))

        with pytest.raises(PaymentError, match="Invalid payment amount"):
            _ = requirements.amount

    @pytest.mark.parametrize(
        "network, chain_id",
        [("base-sepolia", 84532), ("Base", 8453), ("eip155:80002", 80002), ("solana", None), ("eip155:x", None)],
    )
    def test_network_chain_id(self, network, chain_id) -> None:
        assert network_chain_id(network) == chain_id


# ─────────────────────────────────────────────────────────────────
# Signing
# ─────────────────────────────────────────────────────────────────

class TestSignExactPayment:
    """Tests for the EIP-3009 transfer authorization."""

    def test_signature_recovers_to_signer(self, signer) -> None:
        payment = sign_exact_payment(signer, PaymentRequirements.from_dict(_requirements(), URL))

        auth = payment.payload["authorization"]
        message = {
            "from": auth["from"],
            "to": auth["to"],
            "value": int(auth["value"]),
            "validAfter": int(auth["validAfter"]),
            "validBefore": int(auth["validBefore"]),
            "nonce": bytes.fromhex(auth["nonce"][2:]),
        }
        domain = {
            "name": "USDC",
            "version": "2",
            "chainId": 84532,
            "verifyingContract": to_checksum_address(ASSET),
        }
        signable = encode_typed_data(
            domain_data=domain,
            message_types=TRANSFER_WITH_AUTHORIZATION_TYPES,
            message_data=message,
        )

        assert Account.recover_message(signable, signature=payment.payload["signature"]) == signer.address
        assert auth["from"] == signer.address
        assert auth["to"] == to_checksum_address(PAY_TO)
        assert auth["value"] == "10000"

    def test_validity_window(self, signer) -> None:
        payment = sign_exact_payment(
            signer, PaymentRequirements.from_dict(_requirements(maxTimeoutSeconds=120)), now=1_700_000_000
        )

        auth = payment.payload["authorization"]
        assert auth["validAfter"] == str(1_700_000_000 - 600)
        assert auth["validBefore"] == str(1_700_000_000 + 120)

    def test_nonces_are_unique(self, signer) -> None:
        requirements = PaymentRequirements.from_dict(_requirements())

        first = sign_exact_payment(signer, requirements).payload["authorization"]["nonce"]
        second = sign_exact_payment(signer, requirements).payload["authorization"]["nonce"]

        assert first != second
        assert len(first) == 66

    @pytest.mark.parametrize(
        "overrides",
        [
            {"scheme": "upto"},
            {"network": "solana"},
            {"payTo": "not-an-address"},
            {"asset": ""},
            {"extra": None},
        ],
    )
    def test_unusable_requirements_raise(self, signer, overrides) -> None:
        with pytest.raises(PaymentError):
            sign_exact_payment(signer, PaymentRequirements.from_dict(_requirements(**overrides)))

    def test_header_round_trips(self, signer) -> None:
        payment = sign_exact_payment(signer, PaymentRequirements.from_dict(_requirements(), URL))

        decoded = json.loads(base64.b64decode(payment.to_header()))

        assert decoded["x402Version"] == 1
        assert decoded["scheme"] == "exact"
        assert decoded["network"] == "base-sepolia"
        assert decoded["resource"] == URL
        assert payment.header_name == HEADER_PAYMENT


# ─────────────────────────────────────────────────────────────────
# Paid request flow
# ─────────────────────────────────────────────────────────────────

class TestX402Client:
    """Tests for X402Client.request."""

    @pytest.mark.asyncio
    async def test_free_resource_is_not_paid(self, signer) -> None:
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json={"forecast": "rain"})

        result = await _client(signer, handler).request(URL)

        assert result.success is True
        assert result.data == {"forecast": "rain"}
        assert result.paid is False
        assert len(requests) == 1

    @pytest.mark.asyncio
    async def test_pays_and_retries(self, signer) -> None:
        server = PaidServer()

        result = await _client(signer, server.handler).request(URL, params={"city": "Lisbon"})

        assert result.success is True
        assert result.data == {"forecast": "sunny"}
        assert result.amount_paid == 10000
        assert result.payment_response == {
            "success": True,
            "transaction": SETTLEMENT_TX,
            "network": "base-sepolia",
        }
        assert len(server.requests) == 2
        assert all(r.url.params["city"] == "Lisbon" for r in server.requests)
        assert HEADER_PAYMENT in server.requests[1].headers
        assert server.payment["payload"]["authorization"]["from"] == signer.address

    @pytest.mark.asyncio
    async def test_v2_uses_payment_signature_header(self, signer) -> None:
        server = PaidServer(x402_version=2)

        result = await _client(signer, server.handler).request(URL)

        assert result.success is True
        assert HEADER_PAYMENT_SIGNATURE in server.requests[1].headers
        assert server.payment["x402Version"] == 2

    @pytest.mark.asyncio
    async def test_amount_over_cap_is_not_paid(self, signer) -> None:
        server = PaidServer()

        result = await _client(signer, server.handler, max_amount=5000).request(URL)

        assert result.success is False
        assert result.error == "Required 10000 > max 5000"
        assert result.status_code == 402
        assert len(server.requests) == 1

    @pytest.mark.asyncio
    async def test_unsupported_network_is_not_paid(self, signer) -> None:
        server = PaidServer(accepts=[_requirements(network="solana")])

        result = await _client(signer, server.handler).request(URL)

        assert result.success is False
        assert "Unsupported x402 network" in result.error
        assert len(server.requests) == 1

    @pytest.mark.asyncio
    async def test_402_without_requirements(self, signer) -> None:
        result = await _client(signer, lambda r: httpx.Response(402, text="pay")).request(URL)

        assert result.success is False
        assert result.error.startswith("x402 error:")

    @pytest.mark.asyncio
    async def test_failure_after_payment(self, signer) -> None:
        server = PaidServer(paid_status=500, result={"error": "upstream timeout"})

        result = await _client(signer, server.handler).request(URL)

        assert result.success is False
        assert result.status_code == 500
        assert result.error == "upstream timeout"
        assert result.payment_response["transaction"] == SETTLEMENT_TX

    @pytest.mark.asyncio
    async def test_transport_error_is_reported(self, signer) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        result = await _client(signer, handler).request(URL)

        assert result.success is False
        assert result.error.startswith("x402 request failed")

    @pytest.mark.asyncio
    async def test_owned_client_closed(self, signer) -> None:
        client = X402Client(signer)
        await client._get_client()

        await client.close()

        assert client._http_client is None

    def test_unreadable_payment_response(self) -> None:
        assert decode_payment_response("%%%") is None
        assert decode_payment_response(None) is None
