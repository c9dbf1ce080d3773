import logging
from unittest.mock import AsyncMock

import pytest
from eth_account import Account

from fluidsdk.chain.registry import Confirmation, TransactionHandle
from fluidsdk.storage.memory import InMemoryContentStore

# Throwaway key, never funded
TEST_PRIVATE_KEY = "0x4c0883a69102937d6231471b5dbb6204fe5129617082792ae468d01a3f362318"
TEST_TX_HASH = "0x" + "ab" * 32


class FakeRegistry:
    """In-process ReputationRegistry recording what the pipeline sends it."""

    def __init__(
        self,
        last_index: int | None = 0,
        read_error: Exception | None = None,
        submit_error: Exception | None = None,
        confirm_error: Exception | None = None,
    ) -> None:
        self.last_index = last_index
        self.read_error = read_error
        self.submit_error = submit_error
        self.confirm_error = confirm_error
        self.calls: list[str] = []
        self.submissions: list[dict] = []

    async def read_last_index(self, token_id: int, client_address: str) -> int:
        self.calls.append("read_last_index")
        if self.read_error is not None:
            raise self.read_error
        return self.last_index

    async def submit_feedback(
        self, token_id, score, tag1, tag2, feedback_uri, feedback_hash, feedback_auth
    ) -> TransactionHandle:
        self.calls.append("submit_feedback")
        self.submissions.append(
            {
                "token_id": token_id,
                "score": score,
                "tag1": tag1,
                "tag2": tag2,
                "feedback_uri": feedback_uri,
                "feedback_hash": feedback_hash,
                "feedback_auth": feedback_auth,
            }
        )
        if self.submit_error is not None:
            raise self.submit_error
        return TransactionHandle(tx_hash=TEST_TX_HASH, nonce=0)

    async def await_confirmation(self, handle: TransactionHandle) -> Confirmation:
        self.calls.append("await_confirmation")
        if self.confirm_error is not None:
            raise self.confirm_error
        return Confirmation(tx_hash=handle.tx_hash, block_number=123, gas_used=90000)


@pytest.fixture
def signer():
    return Account.from_key(TEST_PRIVATE_KEY)


@pytest.fixture
def registry():
    return FakeRegistry(last_index=0)


@pytest.fixture
def content_store():
    return InMemoryContentStore()


@pytest.fixture
def failing_content_store():
    """Content store whose writes always fail."""
    store = AsyncMock()
    store.write.side_effect = ConnectionError("pinning service down")
    return store


@pytest.fixture
def make_registry():
    """Factory for FakeRegistry instances."""
    return FakeRegistry


@pytest.fixture
def propagate_logs(monkeypatch):
    """Let fluidsdk records reach caplog even after configure_logging()."""
    monkeypatch.setattr(logging.getLogger("fluidsdk"), "propagate", True)
