"""
x402 - HTTP 402 Payment Required support for paid agent tasks.

A paid endpoint answers the first request with 402 and a list of payment
requirements. For the ``exact`` scheme on EVM networks the client signs an
EIP-3009 ``transferWithAuthorization`` for the stablecoin named in the
requirements and repeats the request with the signed authorization in a
header. The server (or its facilitator) settles the transfer and returns the
resource.
"""

from __future__ import annotations

import base64
import json
import secrets
import time
from dataclasses import dataclass, field
from typing import Any

import httpx
from eth_account.messages import encode_typed_data
from eth_account.signers.local import LocalAccount
from eth_utils import is_address, to_checksum_address

from fluidsdk.core.exceptions import PaymentError
from fluidsdk.core.logging import get_logger
from fluidsdk.core.types import TaskResult

logger = get_logger("protocols.x402")

# Header names
HEADER_PAYMENT = "X-PAYMENT"                       # V1
HEADER_PAYMENT_RESPONSE = "X-PAYMENT-RESPONSE"     # V1
HEADER_PAYMENT_SIGNATURE = "PAYMENT-SIGNATURE"     # V2
HEADER_PAYMENT_RESPONSE_V2 = "PAYMENT-RESPONSE"    # V2
HEADER_PAYMENT_REQUIRED_V1 = "X-Payment-Required"  # V1 legacy requirements header

DEFAULT_MAX_AMOUNT = 100_000  # 0.10 of a 6-decimal stablecoin
DEFAULT_TIMEOUT_SECONDS = 60
# Authorization is valid from a little in the past to tolerate clock skew
VALID_AFTER_SKEW_SECONDS = 600

NETWORK_CHAIN_IDS: dict[str, int] = {
    "ethereum": 1,
    "sepolia": 11155111,
    "ethereum-sepolia": 11155111,
    "base": 8453,
    "base-sepolia": 84532,
    "polygon": 137,
    "polygon-amoy": 80002,
    "avalanche": 43114,
    "avalanche-fuji": 43113,
    "linea-sepolia": 59141,
}

TRANSFER_WITH_AUTHORIZATION_TYPES = {
    "TransferWithAuthorization": [
        {"name": "from", "type": "address"},
        {"name": "to", "type": "address"},
        {"name": "value", "type": "uint256"},
        {"name": "validAfter", "type": "uint256"},
        {"name": "validBefore", "type": "uint256"},
        {"name": "nonce", "type": "bytes32"},
    ]
}


def network_chain_id(network: str) -> int | None:
    """Chain id for an x402 network name (``base-sepolia``) or CAIP-2 id (``eip155:84532``)."""
    name = network.strip().lower()
    if name.startswith("eip155:"):
        try:
            return int(name.split(":", 1)[1])
        except ValueError:
            return None
    return NETWORK_CHAIN_IDS.get(name)


def _as_int(value: Any, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


@dataclass
class PaymentRequirements:
    """Payment requirements parsed from a 402 response."""

    scheme: str
    network: str
    max_amount_required: str  # Smallest unit
    resource: str
    description: str
    pay_to: str
    asset: str = ""
    max_timeout_seconds: int = DEFAULT_TIMEOUT_SECONDS
    extra: dict[str, Any] | None = None
    x402_version: int = 1

    @classmethod
    def from_dict(cls, data: dict[str, Any], resource: str = "", x402_version: int = 1) -> PaymentRequirements:
        return cls(
            scheme=data.get("scheme", "exact"),
            network=data.get("network", ""),
            max_amount_required=str(data.get("maxAmountRequired", data.get("amount", "0"))),
            resource=data.get("resource", resource),
            description=data.get("description", ""),
            pay_to=data.get("payTo", data.get("paymentAddress", data.get("recipient", ""))),
            asset=data.get("asset", ""),
            max_timeout_seconds=_as_int(data.get("maxTimeoutSeconds"), DEFAULT_TIMEOUT_SECONDS),
            extra=data.get("extra"),
            x402_version=x402_version,
        )

    @classmethod
    def from_response(cls, response: httpx.Response) -> PaymentRequirements:
        """
        Parse requirements from a 402 response.

        The body's ``accepts`` list is preferred; among its entries the first
        ``exact`` entry on a known EVM network wins. A single ``requirements``
        object and the legacy base64 header are also understood.
        """
        resource = str(response.url)
        try:
            data = response.json()
        except ValueError:
            data = None

        if isinstance(data, dict):
            version = data.get("x402Version", 1)
            version = version if isinstance(version, int) else 1
            accepts = data.get("accepts")
            if isinstance(accepts, list):
                candidates = [
                    cls.from_dict(entry, resource, version) for entry in accepts if isinstance(entry, dict)
                ]
                for candidate in candidates:
                    if candidate.scheme == "exact" and candidate.chain_id is not None:
                        return candidate
                if candidates:
                    return candidates[0]
            if isinstance(data.get("requirements"), dict):
                return cls.from_dict(data["requirements"], resource, version)

        header_val = response.headers.get(HEADER_PAYMENT_REQUIRED_V1)
        if header_val:
            return cls.from_header(header_val, resource)

        raise PaymentError(
            "No valid x402 payment requirements found in 402 response (body or header)",
            details={"url": resource},
        )

    @classmethod
    def from_header(cls, header_value: str, resource: str = "") -> PaymentRequirements:
        """Parse from a base64-encoded header value (V1)."""
        try:
            data = json.loads(base64.b64decode(header_value))
        except ValueError as e:
            raise PaymentError(f"Failed to parse payment requirements: {e}") from e
        if not isinstance(data, dict):
            raise PaymentError("Payment requirements header is not a JSON object")
        return cls.from_dict(data, resource)

    @property
    def amount(self) -> int:
        try:
            return int(self.max_amount_required)
        except ValueError as e:
            raise PaymentError(
                f"Invalid payment amount {self.max_amount_required!r}",
                details={"network": self.network},
            ) from e

    @property
    def chain_id(self) -> int | None:
        return network_chain_id(self.network)


@dataclass
class PaymentPayload:
    """
    Payment payload sent with the retried request.

    Sent in the X-PAYMENT header (V1) or PAYMENT-SIGNATURE (V2).
    """

    x402_version: int = 1
    scheme: str = "exact"
    network: str = ""
    payload: dict[str, Any] = field(default_factory=dict)
    resource: str = ""

    @property
    def header_name(self) -> str:
        return HEADER_PAYMENT_SIGNATURE if self.x402_version >= 2 else HEADER_PAYMENT

    def to_header(self) -> str:
        """Encode as base64 header value."""
        data = {
            "x402Version": self.x402_version,
            "scheme": self.scheme,
            "network": self.network,
            "payload": self.payload,
            "resource": self.resource,
        }
        return base64.b64encode(json.dumps(data).encode()).decode()


def decode_payment_response(header_value: str | None) -> dict[str, Any] | None:
    """Decode the settlement receipt header; None if absent or unreadable."""
    if not header_value:
        return None
    try:
        data = json.loads(base64.b64decode(header_value))
    except ValueError:
        logger.debug("Unreadable x402 payment response header")
        return None
    return data if isinstance(data, dict) else None


def sign_exact_payment(
    signer: LocalAccount,
    requirements: PaymentRequirements,
    now: int | None = None,
) -> PaymentPayload:
    """
    Sign an EIP-3009 transfer authorization for the ``exact`` scheme.

    The EIP-712 domain is the token's: its name and version come from the
    requirements' ``extra`` and the verifying contract is ``asset``.

    Raises:
        PaymentError: unsupported scheme or network, or incomplete requirements
    """
    if requirements.scheme != "exact":
        raise PaymentError(f"Unsupported x402 scheme {requirements.scheme!r}")
    chain_id = requirements.chain_id
    if chain_id is None:
        raise PaymentError(
            f"Unsupported x402 network {requirements.network!r}",
            details={"network": requirements.network},
        )
    if not is_address(requirements.pay_to) or not is_address(requirements.asset):
        raise PaymentError(
            "Payment requirements need valid payTo and asset addresses",
            details={"pay_to": requirements.pay_to, "asset": requirements.asset},
        )
    extra = requirements.extra or {}
    if not extra.get("name") or not extra.get("version"):
        raise PaymentError("Payment requirements lack the token's EIP-712 name and version")

    now = int(time.time()) if now is None else now
    nonce = secrets.token_bytes(32)
    authorization = {
        "from": signer.address,
        "to": to_checksum_address(requirements.pay_to),
        "value": requirements.amount,
        "validAfter": now - VALID_AFTER_SKEW_SECONDS,
        "validBefore": now + requirements.max_timeout_seconds,
        "nonce": nonce,
    }
    domain = {
        "name": extra["name"],
        "version": str(extra["version"]),
        "chainId": chain_id,
        "verifyingContract": to_checksum_address(requirements.asset),
    }
    signable = encode_typed_data(
        domain_data=domain,
        message_types=TRANSFER_WITH_AUTHORIZATION_TYPES,
        message_data=authorization,
    )
    signed = signer.sign_message(signable)

    return PaymentPayload(
        x402_version=requirements.x402_version,
        scheme=requirements.scheme,
        network=requirements.network,
        resource=requirements.resource,
        payload={
            "signature": "0x" + bytes(signed.signature).hex(),
            "authorization": {
                "from": authorization["from"],
                "to": authorization["to"],
                "value": str(authorization["value"]),
                "validAfter": str(authorization["validAfter"]),
                "validBefore": str(authorization["validBefore"]),
                "nonce": "0x" + nonce.hex(),
            },
        },
    )


def _response_body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text


class X402Client:
    """
    HTTP client that pays for 402-protected resources.

    Flow:
    1. Request the URL
    2. If 402 received, parse the payment requirements
    3. Check the amount against ``max_amount`` and sign the authorization
    4. Repeat the request with the payment header
    5. Return the resource and the settlement receipt

    Failures are reported in the returned TaskResult, never raised.

    Args:
        signer: Account that authorizes payments
        http_client: Shared httpx client (not closed by this class)
        timeout: Per-request timeout in seconds
        max_amount: Largest payment accepted, in the asset's smallest unit
    """

    def __init__(
        self,
        signer: LocalAccount,
        http_client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
        max_amount: int = DEFAULT_MAX_AMOUNT,
    ) -> None:
        self._signer = signer
        self._http_client = http_client
        self._owns_client = False
        self._timeout = timeout
        self._max_amount = max_amount

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self._timeout)
            self._owns_client = True
        return self._http_client

    async def request(
        self,
        url: str,
        method: str = "GET",
        params: dict[str, Any] | None = None,
        json_body: Any = None,
    ) -> TaskResult:
        """Request ``url``, paying once if the server asks for it."""
        client = await self._get_client()
        try:
            response = await client.request(method, url, params=params, json=json_body)
            if response.status_code != 402:
                return self._result(response)

            requirements = PaymentRequirements.from_response(response)
            amount = requirements.amount
            if amount > self._max_amount:
                return TaskResult(
                    success=False,
                    error=f"Required {amount} > max {self._max_amount}",
                    status_code=402,
                )

            payment = sign_exact_payment(self._signer, requirements)
            logger.info(
                f"x402 paying {amount} on {requirements.network} to {requirements.pay_to} for {url}"
            )
            paid_response = await client.request(
                method,
                url,
                params=params,
                json=json_body,
                headers={payment.header_name: payment.to_header()},
            )
            return self._result(paid_response, amount_paid=amount)

        except PaymentError as e:
            logger.warning(f"x402 payment for {url} failed: {e.message}")
            return TaskResult(success=False, error=f"x402 error: {e.message}", status_code=402)
        except httpx.HTTPError as e:
            logger.warning(f"x402 request to {url} failed: {e}")
            return TaskResult(success=False, error=f"x402 request failed: {e}")

    def _result(self, response: httpx.Response, amount_paid: int = 0) -> TaskResult:
        body = _response_body(response)
        receipt = decode_payment_response(
            response.headers.get(HEADER_PAYMENT_RESPONSE)
            or response.headers.get(HEADER_PAYMENT_RESPONSE_V2)
        )
        if response.is_success:
            return TaskResult(
                success=True,
                data=body,
                status_code=response.status_code,
                amount_paid=amount_paid,
                payment_response=receipt,
            )

        error = body.get("error") if isinstance(body, dict) else None
        return TaskResult(
            success=False,
            data=body,
            error=str(error or f"HTTP {response.status_code}"),
            status_code=response.status_code,
            payment_response=receipt,
        )

    async def close(self) -> None:
        """Close the HTTP client if this instance created it."""
        if self._http_client is not None and self._owns_client:
            await self._http_client.aclose()
            self._http_client = None
            self._owns_client = False

    async def __aenter__(self) -> X402Client:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()


__all__ = [
    "HEADER_PAYMENT",
    "HEADER_PAYMENT_RESPONSE",
    "HEADER_PAYMENT_SIGNATURE",
    "NETWORK_CHAIN_IDS",
    "PaymentRequirements",
    "PaymentPayload",
    "X402Client",
    "decode_payment_response",
    "network_chain_id",
    "sign_exact_payment",
]
