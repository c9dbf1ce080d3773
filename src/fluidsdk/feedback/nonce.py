"""
Feedback index resolution.

Each (agent, client) pair has a monotonically increasing feedback index
kept by the Reputation Registry. The next submission uses ``last + 1``.

``getLastIndex`` reverts for a client that has never given feedback, which
looks the same as a transient RPC failure. Any read failure is therefore
treated as "first feedback" and resolves to index 1. If that guess is
wrong the registry rejects the submission, and that rejection wins.
"""

from __future__ import annotations

from dataclasses import dataclass

from fluidsdk.chain.registry import ReputationRegistry
from fluidsdk.core.logging import get_logger
from fluidsdk.core.types import Lookup
from fluidsdk.identity.identifier import AgentIdentifier

logger = get_logger("feedback.nonce")

FIRST_FEEDBACK_INDEX = 1


@dataclass(frozen=True)
class IndexResolution:
    """Resolved feedback index and whether it was read or assumed."""

    index: int
    assumed: bool = False
    reason: str | None = None


class NonceResolver:
    """Determines the next feedback index for an (agent, client) pair."""

    def __init__(self, registry: ReputationRegistry) -> None:
        self._registry = registry

    async def _read_last_index(self, token_id: int, client_address: str) -> Lookup[int]:
        try:
            return Lookup.hit(await self._registry.read_last_index(token_id, client_address))
        except Exception as e:
            return Lookup.miss(f"{type(e).__name__}: {e}")

    async def resolve(self, agent: AgentIdentifier, client_address: str) -> IndexResolution:
        last = await self._read_last_index(agent.token_id, client_address)
        if last.found:
            return IndexResolution(index=int(last.value) + 1)  # type: ignore[arg-type]

        logger.warning(
            f"Could not read last feedback index for agent {agent} / client {client_address} "
            f"({last.reason}); assuming first feedback (index {FIRST_FEEDBACK_INDEX})"
        )
        return IndexResolution(index=FIRST_FEEDBACK_INDEX, assumed=True, reason=last.reason)

    async def resolve_index(self, agent: AgentIdentifier, client_address: str) -> int:
        """Return the next feedback index; 1 if the registry read fails."""
        return (await self.resolve(agent, client_address)).index


__all__ = [
    "FIRST_FEEDBACK_INDEX",
    "IndexResolution",
    "NonceResolver",
]
