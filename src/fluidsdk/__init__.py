"""
Fluid SDK - Reputation feedback for ERC-8004 agents

Usage:
    >>> from fluidsdk import FluidClient, Config
    >>>
    >>> async with FluidClient(Config.from_env()) as client:
    ...     result = await client.give_feedback(
    ...         "11155111:42",
    ...         score=97,
    ...         tags=["helpful", "fast"],
    ...     )
    ...     print(result.feedback_uri, result.tx_hash)

Capability discovery:
    >>> caps = await client.fetch_mcp_capabilities("https://agent.example/mcp")

Paid task, then feedback:
    >>> outcome = await client.execute_task_with_feedback(
    ...     "84532:7", "/weather", "https://agent.example", {"city": "Lisbon"}, score=90
    ... )
"""

from fluidsdk.chain.registry import (
    Confirmation,
    FeedbackEntry,
    FeedbackSummary,
    JsonRpcReputationRegistry,
    ReputationRegistry,
    TransactionHandle,
)
from fluidsdk.client import FluidClient
from fluidsdk.core.config import Config
from fluidsdk.core.exceptions import (
    ConfigurationError,
    ConfirmationTimeoutError,
    ContentStoreError,
    ContentUnavailableError,
    FeedbackError,
    FluidSDKError,
    InvalidIdentifierError,
    PaymentError,
    RegistryReadError,
    RpcError,
    RpcTransportError,
    SubmissionRejectedError,
    UnsupportedNetworkError,
    ValidationError,
)
from fluidsdk.core.types import TaskFeedbackResult, TaskResult
from fluidsdk.discovery import CapabilitySet, EndpointCrawler
from fluidsdk.feedback import (
    FeedbackAuth,
    FeedbackPipeline,
    FeedbackResult,
    FeedbackStage,
    canonical_json,
    hash_record,
    sign_feedback_auth,
)
from fluidsdk.identity import AgentIdentifier, parse_agent_id
from fluidsdk.protocols import PaymentRequirements, X402Client
from fluidsdk.storage import ContentStore, InMemoryContentStore, PinataContentStore
from fluidsdk.utils.encoding import string_to_bytes32

__version__ = "0.1.0"

__all__ = [
    # Client
    "FluidClient",
    "Config",
    # Identity
    "AgentIdentifier",
    "parse_agent_id",
    # Feedback
    "FeedbackPipeline",
    "FeedbackResult",
    "FeedbackStage",
    "FeedbackAuth",
    "sign_feedback_auth",
    "canonical_json",
    "hash_record",
    "string_to_bytes32",
    # Chain
    "ReputationRegistry",
    "JsonRpcReputationRegistry",
    "TransactionHandle",
    "Confirmation",
    "FeedbackEntry",
    "FeedbackSummary",
    # Storage
    "ContentStore",
    "InMemoryContentStore",
    "PinataContentStore",
    # Discovery
    "CapabilitySet",
    "EndpointCrawler",
    # Paid tasks
    "X402Client",
    "PaymentRequirements",
    "TaskResult",
    "TaskFeedbackResult",
    # Exceptions
    "FluidSDKError",
    "ConfigurationError",
    "ValidationError",
    "InvalidIdentifierError",
    "RpcError",
    "RpcTransportError",
    "RegistryReadError",
    "FeedbackError",
    "UnsupportedNetworkError",
    "SubmissionRejectedError",
    "ConfirmationTimeoutError",
    "ContentStoreError",
    "ContentUnavailableError",
    "PaymentError",
]
