"""
In-Memory Content Store.

Keeps pinned documents in a dict. Suitable for development and testing,
not for production.
"""

from __future__ import annotations

import json
from typing import Any

from eth_utils import keccak

from fluidsdk.core.exceptions import ContentStoreError, ContentUnavailableError
from fluidsdk.storage.base import ContentStore, strip_ipfs_scheme


class InMemoryContentStore(ContentStore):
    """Content store backed by a process-local dict."""

    def __init__(self) -> None:
        self._blobs: dict[str, bytes] = {}

    async def write(self, document: dict[str, Any]) -> str:
        try:
            payload = json.dumps(document, separators=(",", ":"), ensure_ascii=False).encode("utf-8")
        except (TypeError, ValueError) as e:
            raise ContentStoreError(f"Document is not JSON-serializable: {e}") from e
        content_id = "mem" + keccak(payload).hex()
        self._blobs[content_id] = payload
        return content_id

    async def read(
        self,
        content_id: str,
        gateways: list[str] | None = None,
        timeout: float | None = None,
    ) -> bytes:
        cid = strip_ipfs_scheme(content_id)
        if cid not in self._blobs:
            raise ContentUnavailableError("Content not found", content_id=cid)
        return self._blobs[cid]

    def __len__(self) -> int:
        return len(self._blobs)
