"""Utility functions for fluidsdk."""

from fluidsdk.utils.encoding import (
    BYTES32_LENGTH,
    EMPTY_BYTES32,
    bytes32_to_string,
    string_to_bytes32,
    to_hex,
)

__all__ = [
    "BYTES32_LENGTH",
    "EMPTY_BYTES32",
    "bytes32_to_string",
    "string_to_bytes32",
    "to_hex",
]
