"""
Canonical serialization and hashing of feedback files.

The feedback hash committed on chain is ``keccak256`` of the UTF-8 bytes of
a compact JSON rendering whose top-level keys are sorted. Hashes of records
already on chain were produced by a JavaScript serializer called with the
sorted key list as an allow-list, which has visible effects that are
reproduced here:

- nested objects keep only keys that also appear at the top level, in the
  sorted top-level order;
- integral floats render without a fractional part and non-finite numbers
  render as ``null``;
- other floats use JavaScript number formatting (``1e-7``, ``0.00001``,
  ``1.5e+21``), not Python's ``repr``.

Changing any of this changes every hash.
"""

from __future__ import annotations

import json
import math
from decimal import Decimal
from typing import Any

from eth_utils import keccak

ZERO_HASH = b"\x00" * 32


def _project(value: Any, allowed: list[str]) -> Any:
    if isinstance(value, dict):
        return {key: _project(value[key], allowed) for key in allowed if key in value}
    if isinstance(value, (list, tuple)):
        return [_project(item, allowed) for item in value]
    if isinstance(value, bool):
        return value
    if isinstance(value, float):
        if not math.isfinite(value):
            return None
        if value.is_integer() and abs(value) < 1e21:
            return int(value)
    return value


def _js_number(value: float) -> str:
    """Shortest round-trip digits laid out as ECMAScript ``Number#toString`` does."""
    if value == 0:
        return "0"
    sign = "-" if value < 0 else ""
    _, digit_tuple, exponent = Decimal(repr(abs(value))).normalize().as_tuple()
    digits = "".join(str(d) for d in digit_tuple)
    k = len(digits)
    n = exponent + k

    if k <= n <= 21:
        text = digits + "0" * (n - k)
    elif 0 < n <= 21:
        text = digits[:n] + "." + digits[n:]
    elif -6 < n <= 0:
        text = "0." + "0" * -n + digits
    else:
        e = n - 1
        mantissa = digits[0] + ("." + digits[1:] if k > 1 else "")
        text = f"{mantissa}e{'+' if e >= 0 else '-'}{abs(e)}"
    return sign + text


def _encode(value: Any) -> str:
    if value is None:
        return "null"
    if value is True:
        return "true"
    if value is False:
        return "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return _js_number(value)
    if isinstance(value, str):
        return json.dumps(value, ensure_ascii=False)
    if isinstance(value, dict):
        members = (f"{json.dumps(str(key), ensure_ascii=False)}:{_encode(item)}" for key, item in value.items())
        return "{" + ",".join(members) + "}"
    if isinstance(value, list):
        return "[" + ",".join(_encode(item) for item in value) + "]"
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def canonical_json(record: dict[str, Any]) -> str:
    """Render a feedback file in canonical form (sorted keys, compact JSON)."""
    allowed = sorted(record.keys())
    return _encode(_project(record, allowed))


def hash_record(record: dict[str, Any]) -> bytes:
    """Return the 32-byte keccak256 digest of the canonical form."""
    return keccak(canonical_json(record).encode("utf-8"))


def hash_record_hex(record: dict[str, Any]) -> str:
    return "0x" + hash_record(record).hex()


__all__ = [
    "ZERO_HASH",
    "canonical_json",
    "hash_record",
    "hash_record_hex",
]
