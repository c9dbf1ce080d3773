"""Fixed-width encoding helpers for registry calls."""

BYTES32_LENGTH = 32
EMPTY_BYTES32 = b"\x00" * BYTES32_LENGTH


def string_to_bytes32(text: str | None) -> bytes:
    """
    Encode text as a left-aligned, zero-padded bytes32.

    UTF-8 bytes beyond 32 are cut off, even mid-character.
    """
    if not text:
        return EMPTY_BYTES32
    encoded = text.encode("utf-8")[:BYTES32_LENGTH]
    return encoded.ljust(BYTES32_LENGTH, b"\x00")


def bytes32_to_string(value: bytes) -> str:
    """Decode a zero-padded bytes32 back to text."""
    return value.rstrip(b"\x00").decode("utf-8", errors="replace")


def to_hex(value: bytes) -> str:
    return "0x" + bytes(value).hex()
