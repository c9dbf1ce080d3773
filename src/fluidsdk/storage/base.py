"""
Abstract content store for fluidsdk.

Feedback files are content-addressed: ``write`` pins a JSON document and
returns its content id, ``read`` fetches the bytes back by id.
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from typing import Any

from fluidsdk.core.exceptions import ContentStoreError


class ContentStore(ABC):
    """
    Abstract base class for content stores.

    Implementations can pin to any backend (Pinata, a local IPFS node,
    memory for tests).
    """

    @abstractmethod
    async def write(self, document: dict[str, Any]) -> str:
        """
        Pin a JSON document.

        Args:
            document: JSON-serializable document

        Returns:
            Content id (CID)

        Raises:
            ContentStoreError: if the document could not be stored
        """
        ...

    @abstractmethod
    async def read(
        self,
        content_id: str,
        gateways: list[str] | None = None,
        timeout: float | None = None,
    ) -> bytes:
        """
        Fetch content by id.

        Args:
            content_id: CID, with or without ``ipfs://`` prefix
            gateways: Gateway base URLs to try, in preference order
            timeout: Per-gateway timeout in seconds

        Raises:
            ContentUnavailableError: if no source returned the content
        """
        ...

    async def read_json(self, content_id: str, **kwargs: Any) -> Any:
        """Fetch content and decode it as JSON."""
        raw = await self.read(content_id, **kwargs)
        try:
            return json.loads(raw)
        except ValueError as e:
            raise ContentStoreError(
                f"Content {content_id} is not valid JSON", details={"error": str(e)}
            ) from e

    async def close(self) -> None:
        """Release any held resources."""
        return None


def strip_ipfs_scheme(content_id: str) -> str:
    """Turn ``ipfs://<cid>`` into ``<cid>``."""
    if content_id.startswith("ipfs://"):
        return content_id[len("ipfs://"):]
    return content_id
