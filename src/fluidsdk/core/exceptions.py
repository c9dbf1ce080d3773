"""
Exception hierarchy for fluidsdk.

All SDK-specific exceptions inherit from FluidSDKError for easy catching.
"""

from __future__ import annotations

from typing import Any


class FluidSDKError(Exception):
    """
    Base exception for all fluidsdk errors.

    Catch this to handle any SDK-related exception.

    Example:
        >>> try:
        ...     await pipeline.give_feedback(...)
        ... except FluidSDKError as e:
        ...     print(f"Feedback error: {e}")
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ConfigurationError(FluidSDKError):
    """
    Configuration is missing or invalid.

    Raised when:
    - Required configuration values are not provided
    - Configuration values fail validation
    - Environment variables are not set
    """

    pass


class ValidationError(FluidSDKError):
    """
    Input validation error.

    Raised before any network I/O when:
    - Score is not a finite number
    - Tags are not strings
    - Addresses are malformed
    """

    pass


class InvalidIdentifierError(ValidationError):
    """Agent identifier is not of the form ``<networkId>:<tokenId>``."""

    def __init__(
        self,
        message: str,
        value: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.value = value


class RpcError(FluidSDKError):
    """
    JSON-RPC node communication error.

    Raised when:
    - Every configured RPC endpoint failed (timeout, connection error, HTTP error)
    - The node answered with a JSON-RPC ``error`` object
    """

    def __init__(
        self,
        message: str,
        method: str,
        code: int | None = None,
        url: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.method = method
        self.code = code
        self.url = url


class RpcTransportError(RpcError):
    """
    No RPC endpoint produced a JSON-RPC reply.

    Every configured URL timed out, refused the connection or answered with
    an HTTP error. For a broadcast this means the outcome is unknown: the node
    may have accepted the transaction before the reply was lost.
    """

    pass


class RegistryReadError(FluidSDKError):
    """
    A read-only registry call (eth_call) failed.

    Raised when:
    - Every configured RPC endpoint failed or timed out
    - The node returned a JSON-RPC error (e.g. revert)
    - The call returned no data
    """

    def __init__(
        self,
        message: str,
        method: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.method = method


class FeedbackError(FluidSDKError):
    """
    Base exception for terminal feedback pipeline failures.

    ``stage`` names the pipeline stage that failed.
    """

    def __init__(
        self,
        message: str,
        stage: str = "unknown",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.stage = stage

    def __str__(self) -> str:
        return f"[feedback:{self.stage}] {super().__str__()}"


class UnsupportedNetworkError(FeedbackError):
    """No registry contracts are configured for the requested network."""

    def __init__(
        self,
        message: str,
        network_id: int,
        stage: str = "parse_identifier",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, stage=stage, details=details)
        self.network_id = network_id


class SubmissionRejectedError(FeedbackError):
    """
    The reputation registry rejected the feedback.

    Raised when:
    - Gas estimation reverts (e.g. stale feedback index, expired auth)
    - The node refuses the signed transaction
    - The transaction was mined but reverted
    """

    def __init__(
        self,
        message: str,
        stage: str = "submit_transaction",
        tx_hash: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, stage=stage, details=details)
        self.tx_hash = tx_hash


class ConfirmationTimeoutError(FeedbackError):
    """
    Transaction was broadcast but not confirmed in time.

    The feedback may still land on chain; re-query the registry before
    submitting again.
    """

    def __init__(
        self,
        message: str,
        tx_hash: str,
        timeout_seconds: float | None,
        stage: str = "await_confirmation",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, stage=stage, details=details)
        self.tx_hash = tx_hash
        self.timeout_seconds = timeout_seconds


class PaymentError(FluidSDKError):
    """
    x402 payment negotiation failed.

    Raised when:
    - A 402 reply carries no usable payment requirements
    - The requested amount exceeds the configured maximum
    - The payment network or asset is not supported
    """

    pass


class ContentStoreError(FluidSDKError):
    """
    Content store operation failed.

    Raised when:
    - Pinning a document fails
    - The pinning service returns an unexpected response
    """

    pass


class ContentUnavailableError(ContentStoreError):
    """Content could not be retrieved from any gateway."""

    def __init__(
        self,
        message: str,
        content_id: str,
        gateways: list[str] | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.content_id = content_id
        self.gateways = gateways or []

    def __str__(self) -> str:
        return f"{self.message} (CID: {self.content_id}, gateways tried: {len(self.gateways)})"
