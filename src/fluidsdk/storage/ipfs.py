"""
IPFS content store: pins through Pinata, reads through HTTP gateways.

Reads fan out to every candidate gateway at once and wait for all of them
to settle, then take the first success in gateway order. A faster gateway
later in the list never beats a slower one earlier in the list.
"""

from __future__ import annotations

import asyncio
from typing import Any

import httpx

from fluidsdk.core.config import DEFAULT_PINATA_GATEWAY
from fluidsdk.core.exceptions import ConfigurationError, ContentStoreError, ContentUnavailableError
from fluidsdk.core.logging import get_logger
from fluidsdk.storage.base import ContentStore, strip_ipfs_scheme

logger = get_logger("storage.ipfs")

PINATA_PIN_JSON_URL = "https://api.pinata.cloud/pinning/pinJSONToIPFS"

# Public gateways tried after the configured one
IPFS_GATEWAYS = [
    "https://ipfs.io",
    "https://dweb.link",
    "https://w3s.link",
]


def gateway_url(gateway: str, cid: str) -> str:
    """Build ``<gateway>/ipfs/<cid>``."""
    return f"{gateway.rstrip('/')}/ipfs/{cid}"


class PinataContentStore(ContentStore):
    """
    Content store using Pinata for pinning.

    Args:
        pinata_jwt: Pinata API JWT
        gateway: Preferred gateway, tried before the public fallbacks
        timeout: Default per-gateway read timeout in seconds
        http_client: Shared httpx client (not closed by this class)
        pin_url: Pinning endpoint override
    """

    def __init__(
        self,
        pinata_jwt: str,
        gateway: str | None = DEFAULT_PINATA_GATEWAY,
        timeout: float = 10.0,
        http_client: httpx.AsyncClient | None = None,
        pin_url: str = PINATA_PIN_JSON_URL,
    ) -> None:
        if not pinata_jwt:
            raise ConfigurationError("pinata_jwt is required")
        self._jwt = pinata_jwt
        self._gateway = gateway or DEFAULT_PINATA_GATEWAY
        self._timeout = timeout
        self._pin_url = pin_url
        self._http_client = http_client
        self._owns_client = False

    @property
    def gateways(self) -> list[str]:
        """Configured gateway first, then the public fallbacks."""
        return [self._gateway, *[g for g in IPFS_GATEWAYS if g != self._gateway]]

    async def _get_client(self) -> httpx.AsyncClient:
        """Lazy-init HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self._timeout, follow_redirects=True)
            self._owns_client = True
        return self._http_client

    async def close(self) -> None:
        """Close owned HTTP client."""
        if self._owns_client and self._http_client:
            await self._http_client.aclose()
            self._http_client = None

    # ─── Write ───────────────────────────────────────────────────────

    async def write(self, document: dict[str, Any]) -> str:
        """Pin a JSON document to IPFS and return its CID."""
        client = await self._get_client()
        try:
            response = await client.post(
                self._pin_url,
                json={"pinataContent": document, "pinataOptions": {"cidVersion": 1}},
                headers={"Authorization": f"Bearer {self._jwt}"},
            )
            response.raise_for_status()
            body = response.json()
        except httpx.HTTPStatusError as e:
            raise ContentStoreError(
                f"Failed to pin to Pinata: HTTP {e.response.status_code}",
                details={"body": e.response.text[:200]},
            ) from e
        except (httpx.HTTPError, ValueError, TypeError) as e:
            raise ContentStoreError(f"Failed to pin to Pinata: {e}") from e

        cid = body.get("IpfsHash") if isinstance(body, dict) else None
        if not cid:
            raise ContentStoreError("Pinata response did not include a CID", details={"body": body})
        logger.debug(f"Pinned feedback file: {cid}")
        return cid

    # ─── Read ────────────────────────────────────────────────────────

    async def _fetch(self, client: httpx.AsyncClient, url: str, timeout: float) -> bytes:
        response = await client.get(url, timeout=timeout)
        response.raise_for_status()
        return response.content

    async def read(
        self,
        content_id: str,
        gateways: list[str] | None = None,
        timeout: float | None = None,
    ) -> bytes:
        """
        Fetch content from every gateway concurrently.

        Waits for all requests to settle and returns the body from the
        earliest gateway in ``gateways`` order that succeeded.
        """
        cid = strip_ipfs_scheme(content_id)
        candidates = gateways if gateways is not None else self.gateways
        urls = [gateway_url(g, cid) for g in candidates]
        client = await self._get_client()
        per_request_timeout = timeout if timeout is not None else self._timeout

        results = await asyncio.gather(
            *(self._fetch(client, url, per_request_timeout) for url in urls),
            return_exceptions=True,
        )

        for url, result in zip(urls, results):
            if isinstance(result, BaseException):
                logger.debug(f"Gateway fetch failed: {url}: {result!r}")
                continue
            return result

        logger.warning(f"All {len(urls)} IPFS gateways failed for CID: {cid[:40]}")
        raise ContentUnavailableError(
            "Failed to retrieve content from all IPFS gateways",
            content_id=cid,
            gateways=list(candidates),
        )


__all__ = [
    "IPFS_GATEWAYS",
    "PINATA_PIN_JSON_URL",
    "PinataContentStore",
    "gateway_url",
]
