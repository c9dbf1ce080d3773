"""Unit tests for feedback index resolution."""

import logging

import pytest

from fluidsdk.core.exceptions import RegistryReadError
from fluidsdk.feedback.nonce import FIRST_FEEDBACK_INDEX, NonceResolver
from fluidsdk.identity import AgentIdentifier

AGENT = AgentIdentifier(network_id=11155111, token_id=42)
CLIENT = "0x2c7536E3605D9C16a7a3D7b1898e529396a65c23"


class TestNonceResolver:
    """Tests for NonceResolver."""

    @pytest.mark.asyncio
    async def test_next_index_after_last(self, make_registry) -> None:
        resolver = NonceResolver(make_registry(last_index=7))

        resolution = await resolver.resolve(AGENT, CLIENT)

        assert resolution.index == 8
        assert resolution.assumed is False

    @pytest.mark.asyncio
    async def test_first_feedback_when_last_is_zero(self, make_registry) -> None:
        resolver = NonceResolver(make_registry(last_index=0))

        assert await resolver.resolve_index(AGENT, CLIENT) == 1

    @pytest.mark.asyncio
    async def test_read_failure_assumes_first_feedback(self, make_registry) -> None:
        registry = make_registry(read_error=RegistryReadError("getLastIndex call failed: execution reverted"))
        resolver = NonceResolver(registry)

        resolution = await resolver.resolve(AGENT, CLIENT)

        assert resolution.index == FIRST_FEEDBACK_INDEX == 1
        assert resolution.assumed is True
        assert "RegistryReadError" in resolution.reason

    @pytest.mark.asyncio
    async def test_any_exception_is_treated_as_failure(self, make_registry) -> None:
        resolver = NonceResolver(make_registry(read_error=TimeoutError("slow node")))

        assert await resolver.resolve_index(AGENT, CLIENT) == 1

    @pytest.mark.asyncio
    async def test_assumed_index_logs_warning(self, make_registry, propagate_logs, caplog) -> None:
        resolver = NonceResolver(make_registry(read_error=RegistryReadError("reverted")))

        with caplog.at_level(logging.WARNING, logger="fluidsdk.feedback.nonce"):
            await resolver.resolve(AGENT, CLIENT)

        assert any("assuming first feedback" in r.getMessage() for r in caplog.records)
