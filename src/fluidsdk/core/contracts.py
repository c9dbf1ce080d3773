"""
Agent registry contract interface.

Deployed registry addresses per chain, the Reputation Registry ABI
(as Python dicts), and helpers for resolving registries by chain id.
"""

from __future__ import annotations

from dataclasses import dataclass

from eth_utils import function_signature_to_4byte_selector


@dataclass(frozen=True)
class RegistryAddresses:
    """Identity / Reputation / Validation registry addresses on one chain."""

    identity: str
    reputation: str
    validation: str | None = None


# ───────────────────────────────────────────────────────────────────
# Deployed Contract Addresses
# ───────────────────────────────────────────────────────────────────

_TESTNET_DEPLOYMENT = RegistryAddresses(
    identity="0x5f63c5784DFE968f06d5e6ba16cB6018163827Be",
    reputation="0xa3e1FF3Dc554233466a0095ED85fd88965362B7A",
    validation="0x17EFDCdDED2E6B4A30Df358F3BB84B12673d025E",
)

DEFAULT_REGISTRIES: dict[int, RegistryAddresses] = {
    11155111: _TESTNET_DEPLOYMENT,  # Ethereum Sepolia
    84532: _TESTNET_DEPLOYMENT,     # Base Sepolia
    59141: _TESTNET_DEPLOYMENT,     # Linea Sepolia
    80002: _TESTNET_DEPLOYMENT,     # Polygon Amoy
}

CHAIN_NAMES: dict[int, str] = {
    11155111: "ETH-SEPOLIA",
    84532: "BASE-SEPOLIA",
    59141: "LINEA-SEPOLIA",
    80002: "MATIC-AMOY",
}


# ───────────────────────────────────────────────────────────────────
# Reputation Registry ABI (only functions we call)
# ───────────────────────────────────────────────────────────────────

REPUTATION_REGISTRY_ABI = [
    # read: getLastIndex(uint256, address) → uint64
    {
        "name": "getLastIndex",
        "type": "function",
        "stateMutability": "view",
        "inputs": [
            {"name": "agentId", "type": "uint256"},
            {"name": "clientAddress", "type": "address"},
        ],
        "outputs": [{"name": "", "type": "uint64"}],
    },
    # read: readFeedback(uint256, address, uint64) → (uint8, bytes32, bytes32, bool)
    {
        "name": "readFeedback",
        "type": "function",
        "stateMutability": "view",
        "inputs": [
            {"name": "agentId", "type": "uint256"},
            {"name": "clientAddress", "type": "address"},
            {"name": "index", "type": "uint64"},
        ],
        "outputs": [
            {"name": "score", "type": "uint8"},
            {"name": "tag1", "type": "bytes32"},
            {"name": "tag2", "type": "bytes32"},
            {"name": "isRevoked", "type": "bool"},
        ],
    },
    # read: getSummary(uint256, address[], bytes32, bytes32) → (uint64, uint8)
    {
        "name": "getSummary",
        "type": "function",
        "stateMutability": "view",
        "inputs": [
            {"name": "agentId", "type": "uint256"},
            {"name": "clientAddresses", "type": "address[]"},
            {"name": "tag1", "type": "bytes32"},
            {"name": "tag2", "type": "bytes32"},
        ],
        "outputs": [
            {"name": "count", "type": "uint64"},
            {"name": "averageScore", "type": "uint8"},
        ],
    },
    # write: giveFeedback(uint256, uint8, bytes32, bytes32, string, bytes32, bytes)
    {
        "name": "giveFeedback",
        "type": "function",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "agentId", "type": "uint256"},
            {"name": "score", "type": "uint8"},
            {"name": "tag1", "type": "bytes32"},
            {"name": "tag2", "type": "bytes32"},
            {"name": "feedbackUri", "type": "string"},
            {"name": "feedbackHash", "type": "bytes32"},
            {"name": "feedbackAuth", "type": "bytes"},
        ],
        "outputs": [],
    },
    # write: revokeFeedback(uint256, uint64)
    {
        "name": "revokeFeedback",
        "type": "function",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "agentId", "type": "uint256"},
            {"name": "feedbackIndex", "type": "uint64"},
        ],
        "outputs": [],
    },
]


def _signature(entry: dict) -> str:
    args = ",".join(param["type"] for param in entry["inputs"])
    return f"{entry['name']}({args})"


# Function name → (input types, output types), derived from the ABI above
REPUTATION_FUNCTIONS: dict[str, tuple[list[str], list[str]]] = {
    entry["name"]: (
        [param["type"] for param in entry["inputs"]],
        [param["type"] for param in entry["outputs"]],
    )
    for entry in REPUTATION_REGISTRY_ABI
}

FUNCTION_SELECTORS: dict[str, bytes] = {
    entry["name"]: function_signature_to_4byte_selector(_signature(entry))
    for entry in REPUTATION_REGISTRY_ABI
}


# ───────────────────────────────────────────────────────────────────
# Helper Functions
# ───────────────────────────────────────────────────────────────────

def get_registries(
    chain_id: int,
    registries: dict[int, RegistryAddresses] | None = None,
) -> RegistryAddresses | None:
    """Get the registry addresses deployed on a chain."""
    table = DEFAULT_REGISTRIES if registries is None else registries
    return table.get(chain_id)


def get_identity_registry(chain_id: int) -> str | None:
    """Get Identity Registry address for a chain."""
    found = get_registries(chain_id)
    return found.identity if found else None


def get_reputation_registry(chain_id: int) -> str | None:
    """Get Reputation Registry address for a chain."""
    found = get_registries(chain_id)
    return found.reputation if found else None


def build_agent_registry_string(chain_id: int, identity_registry: str) -> str:
    """
    Build the CAIP-10 style registry reference used in feedback files.

    Format: eip155:{chainId}:{address}
    Example: eip155:11155111:0x5f63c5784DFE968f06d5e6ba16cB6018163827Be
    """
    return f"eip155:{chain_id}:{identity_registry}"


def chain_name(chain_id: int) -> str:
    """Display name for a chain id, falling back to the number itself."""
    return CHAIN_NAMES.get(chain_id, str(chain_id))


def is_supported(chain_id: int) -> bool:
    """Check if registries are deployed on this chain."""
    return get_registries(chain_id) is not None


__all__ = [
    "RegistryAddresses",
    "DEFAULT_REGISTRIES",
    "CHAIN_NAMES",
    "REPUTATION_REGISTRY_ABI",
    "REPUTATION_FUNCTIONS",
    "FUNCTION_SELECTORS",
    "get_registries",
    "get_identity_registry",
    "get_reputation_registry",
    "build_agent_registry_string",
    "is_supported",
    "chain_name",
]
