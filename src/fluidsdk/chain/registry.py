"""
Reputation Registry client over JSON-RPC (httpx).

Reads use ``eth_call``; writes are signed locally with eth-account and
broadcast with ``eth_sendRawTransaction``. No web3.py dependency.

Configuration:
    registry = JsonRpcReputationRegistry(
        rpc_url="https://sepolia.infura.io/v3/KEY",
        address="0xa3e1FF3Dc554233466a0095ED85fd88965362B7A",
        account=Account.from_key(PRIVATE_KEY),
    )

Comma-separated RPC URLs are tried in order when a node can't be reached.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

import httpx
from eth_abi import decode, encode
from eth_account.signers.local import LocalAccount
from eth_utils import to_checksum_address

from fluidsdk.core.contracts import FUNCTION_SELECTORS, REPUTATION_FUNCTIONS
from fluidsdk.core.exceptions import (
    ConfigurationError,
    ConfirmationTimeoutError,
    RegistryReadError,
    RpcError,
    RpcTransportError,
    SubmissionRejectedError,
    ValidationError,
)
from fluidsdk.core.logging import get_logger
from fluidsdk.utils.encoding import BYTES32_LENGTH, bytes32_to_string, string_to_bytes32, to_hex

logger = get_logger("chain.registry")

# Headroom over eth_estimateGas
GAS_LIMIT_MULTIPLIER = 1.2
MAX_UINT8 = 255


@dataclass(frozen=True)
class TransactionHandle:
    """
    A broadcast (not yet confirmed) transaction.

    ``acknowledged`` is False when the node never answered the broadcast; the
    hash is then the locally computed one and only a receipt settles it.
    """

    tx_hash: str
    nonce: int | None = None
    acknowledged: bool = True


@dataclass(frozen=True)
class Confirmation:
    """A mined, successful transaction."""

    tx_hash: str
    block_number: int
    gas_used: int | None = None


@dataclass
class FeedbackEntry:
    """Single feedback entry as stored by the Reputation Registry."""

    token_id: int
    client_address: str
    feedback_index: int
    score: int
    tag1: str = ""
    tag2: str = ""
    is_revoked: bool = False


@dataclass
class FeedbackSummary:
    """Aggregate returned by ``getSummary``."""

    count: int
    average_score: int


@runtime_checkable
class ReputationRegistry(Protocol):
    """What the feedback pipeline needs from an on-chain reputation registry."""

    async def read_last_index(self, token_id: int, client_address: str) -> int: ...

    async def submit_feedback(
        self,
        token_id: int,
        score: int,
        tag1: bytes,
        tag2: bytes,
        feedback_uri: str,
        feedback_hash: bytes,
        feedback_auth: bytes,
    ) -> TransactionHandle: ...

    async def await_confirmation(self, handle: TransactionHandle) -> Confirmation: ...


class JsonRpcReputationRegistry:
    """
    Reputation Registry bound to one contract address on one chain.

    Args:
        rpc_url: RPC endpoint URL(s), comma-separated for fallback
        address: Reputation Registry contract address
        account: Local account used to sign transactions (reads work without one)
        chain_id: Chain id for transaction signing; fetched via eth_chainId if omitted
        http_client: Shared httpx client (not closed by this class)
        timeout: Per-request timeout in seconds
        poll_interval: Seconds between receipt polls
        poll_timeout: Maximum seconds to wait for a receipt
    """

    def __init__(
        self,
        rpc_url: str,
        address: str,
        account: LocalAccount | None = None,
        chain_id: int | None = None,
        http_client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
        poll_interval: float = 2.0,
        poll_timeout: float = 120.0,
    ) -> None:
        self._rpc_urls: list[str] = [u.strip() for u in rpc_url.split(",") if u.strip()]
        if not self._rpc_urls:
            raise ConfigurationError("At least one RPC URL is required")
        self._address = to_checksum_address(address)
        self._account = account
        self._chain_id = chain_id
        self._http_client = http_client
        self._owns_client = False
        self._timeout = timeout
        self._poll_interval = poll_interval
        self._poll_timeout = poll_timeout
        self._request_id = 0

    @property
    def address(self) -> str:
        return self._address

    async def _get_client(self) -> httpx.AsyncClient:
        """Lazy-init HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self._timeout)
            self._owns_client = True
        return self._http_client

    async def close(self) -> None:
        """Close owned HTTP client."""
        if self._owns_client and self._http_client:
            await self._http_client.aclose()
            self._http_client = None

    # ─── JSON-RPC Transport with Multi-Provider Fallback ─────────────

    async def _rpc(self, method: str, params: list[Any]) -> Any:
        """
        Execute a JSON-RPC request.

        Unreachable providers (timeout, connection or HTTP error) fall back to
        the next URL. A JSON-RPC ``error`` reply is authoritative and raised
        immediately.
        """
        client = await self._get_client()
        self._request_id += 1
        payload = {"jsonrpc": "2.0", "method": method, "params": params, "id": self._request_id}

        last_error: Exception | None = None
        for i, url in enumerate(self._rpc_urls):
            try:
                response = await client.post(url, json=payload)
                response.raise_for_status()
                body = response.json()
            except httpx.TimeoutException as e:
                logger.warning(f"RPC timeout from provider {i + 1}/{len(self._rpc_urls)} ({method})")
                last_error = e
                continue
            except httpx.HTTPStatusError as e:
                logger.warning(
                    f"RPC HTTP {e.response.status_code} from provider {i + 1}/{len(self._rpc_urls)} ({method})"
                )
                last_error = e
                continue
            except (httpx.HTTPError, ValueError) as e:
                logger.warning(f"RPC error from provider {i + 1}/{len(self._rpc_urls)} ({method}): {e}")
                last_error = e
                continue

            if "error" in body and body["error"]:
                error = body["error"]
                message = error.get("message", str(error)) if isinstance(error, dict) else str(error)
                raise RpcError(
                    f"{method} failed: {message}",
                    method=method,
                    code=error.get("code") if isinstance(error, dict) else None,
                    url=url,
                    details={"data": error.get("data")} if isinstance(error, dict) and error.get("data") else None,
                )
            return body.get("result")

        raise RpcTransportError(
            f"All {len(self._rpc_urls)} RPC providers failed for {method}: {last_error}",
            method=method,
        )

    # ─── Reads ───────────────────────────────────────────────────────

    async def _eth_call(self, function: str, args: list[Any]) -> tuple:
        input_types, output_types = REPUTATION_FUNCTIONS[function]
        data = FUNCTION_SELECTORS[function] + encode(input_types, args)
        try:
            raw = await self._rpc("eth_call", [{"to": self._address, "data": to_hex(data)}, "latest"])
        except RpcError as e:
            raise RegistryReadError(f"{function} call failed: {e.message}", method=function) from e

        if not raw or raw == "0x":
            raise RegistryReadError(f"{function} returned no data", method=function)
        try:
            return decode(output_types, bytes.fromhex(raw[2:]))
        except Exception as e:
            raise RegistryReadError(f"Failed to decode {function} result: {e}", method=function) from e

    async def read_last_index(self, token_id: int, client_address: str) -> int:
        """Read getLastIndex(agentId, clientAddress) → last feedback index."""
        (last_index,) = await self._eth_call(
            "getLastIndex", [token_id, to_checksum_address(client_address)]
        )
        return int(last_index)

    async def read_feedback(
        self, token_id: int, client_address: str, index: int,
    ) -> FeedbackEntry | None:
        """
        Read a single feedback entry.

        readFeedback(agentId, clientAddress, index) →
            (uint8 score, bytes32 tag1, bytes32 tag2, bool isRevoked)
        """
        try:
            score, tag1, tag2, is_revoked = await self._eth_call(
                "readFeedback", [token_id, to_checksum_address(client_address), index]
            )
        except RegistryReadError as e:
            logger.debug(f"readFeedback({token_id}, {client_address}, {index}) failed: {e}")
            return None

        return FeedbackEntry(
            token_id=token_id,
            client_address=client_address,
            feedback_index=index,
            score=int(score),
            tag1=bytes32_to_string(tag1),
            tag2=bytes32_to_string(tag2),
            is_revoked=bool(is_revoked),
        )

    async def get_summary(
        self, token_id: int, client_addresses: list[str], tag1: str = "", tag2: str = "",
    ) -> FeedbackSummary | None:
        """
        getSummary(agentId, clientAddresses, tag1, tag2) → (uint64 count, uint8 averageScore)

        Empty tags match every entry.
        """
        try:
            count, average = await self._eth_call(
                "getSummary",
                [
                    token_id,
                    [to_checksum_address(a) for a in client_addresses],
                    string_to_bytes32(tag1),
                    string_to_bytes32(tag2),
                ],
            )
        except RegistryReadError as e:
            logger.debug(f"getSummary({token_id}) failed: {e}")
            return None
        return FeedbackSummary(count=int(count), average_score=int(average))

    # ─── Writes ──────────────────────────────────────────────────────

    async def submit_feedback(
        self,
        token_id: int,
        score: int,
        tag1: bytes,
        tag2: bytes,
        feedback_uri: str,
        feedback_hash: bytes,
        feedback_auth: bytes,
    ) -> TransactionHandle:
        """Broadcast giveFeedback(agentId, score, tag1, tag2, feedbackUri, feedbackHash, feedbackAuth)."""
        if isinstance(score, bool) or not isinstance(score, int) or not 0 <= score <= MAX_UINT8:
            raise ValidationError(f"Score must be an integer in 0..{MAX_UINT8}", details={"score": score})
        for label, value in (("tag1", tag1), ("tag2", tag2), ("feedback_hash", feedback_hash)):
            if len(value) != BYTES32_LENGTH:
                raise ValidationError(f"{label} must be exactly {BYTES32_LENGTH} bytes, got {len(value)}")

        return await self._send_transaction(
            "giveFeedback",
            [token_id, score, tag1, tag2, feedback_uri, feedback_hash, bytes(feedback_auth)],
        )

    async def revoke_feedback(self, token_id: int, feedback_index: int) -> TransactionHandle:
        """Broadcast revokeFeedback(agentId, feedbackIndex)."""
        return await self._send_transaction("revokeFeedback", [token_id, feedback_index])

    async def _send_transaction(self, function: str, args: list[Any]) -> TransactionHandle:
        if self._account is None:
            raise ConfigurationError(f"An account is required to send {function}")

        input_types, _ = REPUTATION_FUNCTIONS[function]
        data = to_hex(FUNCTION_SELECTORS[function] + encode(input_types, args))
        sender = self._account.address

        try:
            chain_id = self._chain_id or int(await self._rpc("eth_chainId", []), 16)
            nonce = int(await self._rpc("eth_getTransactionCount", [sender, "pending"]), 16)
            gas_estimate = int(
                await self._rpc("eth_estimateGas", [{"from": sender, "to": self._address, "data": data}]),
                16,
            )
            gas_price = int(await self._rpc("eth_gasPrice", []), 16)
        except RpcError as e:
            raise SubmissionRejectedError(
                f"{function} rejected: {e.message}",
                details={"method": e.method, "code": e.code},
            ) from e

        signed = self._account.sign_transaction(
            {
                "to": self._address,
                "data": data,
                "value": 0,
                "gas": int(gas_estimate * GAS_LIMIT_MULTIPLIER),
                "gasPrice": gas_price,
                "nonce": nonce,
                "chainId": chain_id,
            }
        )
        tx_hash = to_hex(signed.hash)

        try:
            reported = await self._rpc("eth_sendRawTransaction", [to_hex(signed.raw_transaction)])
        except RpcTransportError as e:
            # The node may hold the transaction even though the reply was lost
            logger.warning(
                f"{function} broadcast unacknowledged: {tx_hash} (nonce {nonce}), "
                f"polling for a receipt: {e.message}"
            )
            return TransactionHandle(tx_hash=tx_hash, nonce=nonce, acknowledged=False)
        except RpcError as e:
            raise SubmissionRejectedError(
                f"{function} rejected: {e.message}",
                tx_hash=tx_hash,
                details={"method": e.method, "code": e.code},
            ) from e

        if reported and str(reported).lower() != tx_hash.lower():
            logger.warning(f"Node reported hash {reported} for locally signed {tx_hash}")
            tx_hash = reported

        logger.info(f"{function} broadcast: {tx_hash} (nonce {nonce})")
        return TransactionHandle(tx_hash=tx_hash, nonce=nonce)

    async def await_confirmation(self, handle: TransactionHandle) -> Confirmation:
        """
        Poll for the transaction receipt.

        Raises:
            SubmissionRejectedError: the transaction was mined but reverted
            ConfirmationTimeoutError: no receipt within ``poll_timeout``
        """
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self._poll_timeout

        while True:
            try:
                receipt = await self._rpc("eth_getTransactionReceipt", [handle.tx_hash])
            except RpcError as e:
                logger.debug(f"Receipt poll for {handle.tx_hash} failed: {e}")
                receipt = None

            if receipt:
                status = int(receipt.get("status", "0x1"), 16)
                if status != 1:
                    raise SubmissionRejectedError(
                        f"Transaction {handle.tx_hash} reverted",
                        stage="await_confirmation",
                        tx_hash=handle.tx_hash,
                    )
                gas_used = receipt.get("gasUsed")
                return Confirmation(
                    tx_hash=handle.tx_hash,
                    block_number=int(receipt["blockNumber"], 16),
                    gas_used=int(gas_used, 16) if gas_used else None,
                )

            if loop.time() >= deadline:
                raise ConfirmationTimeoutError(
                    f"Transaction {handle.tx_hash} not confirmed within {self._poll_timeout}s",
                    tx_hash=handle.tx_hash,
                    timeout_seconds=self._poll_timeout,
                    details={"acknowledged": handle.acknowledged},
                )

            await asyncio.sleep(self._poll_interval)


__all__ = [
    "ReputationRegistry",
    "JsonRpcReputationRegistry",
    "TransactionHandle",
    "Confirmation",
    "FeedbackEntry",
    "FeedbackSummary",
]
