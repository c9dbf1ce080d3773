"""On-chain Reputation Registry access."""

from fluidsdk.chain.registry import (
    Confirmation,
    FeedbackEntry,
    FeedbackSummary,
    JsonRpcReputationRegistry,
    ReputationRegistry,
    TransactionHandle,
)

__all__ = [
    "ReputationRegistry",
    "JsonRpcReputationRegistry",
    "TransactionHandle",
    "Confirmation",
    "FeedbackEntry",
    "FeedbackSummary",
]
