"""
Agent identifier codec.

Agents are addressed across chains as ``"<networkId>:<tokenId>"`` where
``networkId`` is the EVM chain id and ``tokenId`` the Identity Registry
token id, both decimal.
"""

from __future__ import annotations

from dataclasses import dataclass

from fluidsdk.core.exceptions import InvalidIdentifierError


def _parse_component(part: str, raw: str, label: str) -> int:
    # isdecimal() rejects signs, whitespace and non-ASCII digit forms that int() accepts
    if not part or not part.isascii() or not part.isdecimal():
        raise InvalidIdentifierError(
            f"Invalid agent identifier {raw!r}: {label} must be a non-negative integer",
            value=raw,
        )
    return int(part)


@dataclass(frozen=True)
class AgentIdentifier:
    """Parsed ``<networkId>:<tokenId>`` agent identifier."""

    network_id: int
    token_id: int

    @classmethod
    def parse(cls, value: str) -> AgentIdentifier:
        """
        Parse an identifier string.

        Raises:
            InvalidIdentifierError: unless the value has exactly two
                non-empty, non-negative decimal integer parts.
        """
        if not isinstance(value, str):
            raise InvalidIdentifierError(
                f"Agent identifier must be a string, got {type(value).__name__}",
                value=repr(value),
            )
        parts = value.split(":")
        if len(parts) != 2:
            raise InvalidIdentifierError(
                f"Invalid agent identifier {value!r}: expected networkId:tokenId",
                value=value,
            )
        network_id = _parse_component(parts[0], value, "networkId")
        token_id = _parse_component(parts[1], value, "tokenId")
        return cls(network_id=network_id, token_id=token_id)

    def __str__(self) -> str:
        return f"{self.network_id}:{self.token_id}"


def parse_agent_id(value: str) -> AgentIdentifier:
    """Shorthand for ``AgentIdentifier.parse``."""
    return AgentIdentifier.parse(value)
