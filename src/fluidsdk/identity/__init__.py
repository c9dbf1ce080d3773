"""Agent identifiers."""

from fluidsdk.identity.identifier import AgentIdentifier, parse_agent_id

__all__ = [
    "AgentIdentifier",
    "parse_agent_id",
]
