"""
Endpoint crawler for MCP and A2A servers.

Fetches the names of an agent's tools, prompts, resources and skills from
its advertised endpoints. Every failure is soft: a candidate that times
out, answers non-2xx or returns garbage is skipped, and the public methods
return None instead of raising.
"""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass, field
from typing import Any

import httpx

from fluidsdk.core.logging import get_logger
from fluidsdk.discovery.extract import extract_list, object_names

logger = get_logger("discovery.crawler")

DEFAULT_CRAWLER_TIMEOUT = 5.0

MCP_PATH_SUFFIXES = ("", "/mcp", "/sse")
MCP_LIST_METHODS = ("tools/list", "resources/list", "prompts/list")
JSONRPC_HEADERS = {
    "Content-Type": "application/json",
    "Accept": "application/json, text/event-stream",
}


@dataclass
class CapabilitySet:
    """Capability names discovered on an endpoint."""

    tools: list[str] = field(default_factory=list)
    prompts: list[str] = field(default_factory=list)
    resources: list[str] = field(default_factory=list)
    skills: list[str] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not (self.tools or self.prompts or self.resources or self.skills)

    def as_dict(self) -> dict[str, list[str]]:
        """Non-empty lists only, keyed the way registration files name them."""
        out: dict[str, list[str]] = {}
        if self.tools:
            out["mcpTools"] = list(self.tools)
        if self.prompts:
            out["mcpPrompts"] = list(self.prompts)
        if self.resources:
            out["mcpResources"] = list(self.resources)
        if self.skills:
            out["a2aSkills"] = list(self.skills)
        return out


def _is_http_endpoint(endpoint: Any) -> bool:
    return isinstance(endpoint, str) and endpoint.startswith(("http://", "https://"))


def jsonrpc_request(method: str, params: dict[str, Any] | None = None, request_id: int = 1) -> dict[str, Any]:
    return {"jsonrpc": "2.0", "method": method, "id": request_id, "params": params or {}}


def parse_sse_payload(text: str) -> Any | None:
    """Decode the first ``data: `` line of an SSE body, preferring its ``result``."""
    for line in text.splitlines():
        if line.startswith("data: "):
            try:
                data = json.loads(line[len("data: "):])
            except ValueError:
                return None
            if isinstance(data, dict) and "result" in data:
                return data["result"]
            return data
    return None


def a2a_card_urls(endpoint: str) -> list[str]:
    """Well-known agent card locations, duplicates collapsed, order kept."""
    candidates = [
        f"{endpoint}/agentcard.json",
        f"{endpoint}/.well-known/agent.json",
        f"{endpoint.rstrip('/')}/.well-known/agent.json",
    ]
    return list(dict.fromkeys(candidates))


class EndpointCrawler:
    """
    Crawls MCP and A2A endpoints for capability names.

    Args:
        timeout: Per-request timeout in seconds
        http_client: Shared httpx client (not closed by this class)

    Example:
        >>> crawler = EndpointCrawler(timeout=5.0)
        >>> caps = await crawler.fetch_mcp_capabilities("https://agent.example/mcp")
        >>> caps.tools if caps else []
    """

    def __init__(
        self,
        timeout: float = DEFAULT_CRAWLER_TIMEOUT,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._timeout = timeout
        self._http_client = http_client
        self._owns_client = False

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

    async def __aenter__(self) -> EndpointCrawler:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    # ─── MCP ─────────────────────────────────────────────────────────

    async def fetch_mcp_capabilities(self, endpoint: str) -> CapabilitySet | None:
        """
        Fetch tools, prompts and resources from an MCP server.

        Tries live JSON-RPC listing first, then a static agentcard.json.
        Returns None if neither yields anything.
        """
        if not _is_http_endpoint(endpoint):
            logger.debug(f"Skipping non-HTTP MCP endpoint: {endpoint!r}")
            return None

        capabilities = await self._fetch_via_jsonrpc(endpoint)
        if capabilities is not None:
            return capabilities

        card = await self._fetch_json(f"{endpoint}/agentcard.json")
        if card is None:
            return None
        capabilities = CapabilitySet(
            tools=extract_list(card, "tools"),
            prompts=extract_list(card, "prompts"),
            resources=extract_list(card, "resources"),
        )
        if capabilities.is_empty():
            return None
        return capabilities

    async def _fetch_via_jsonrpc(self, endpoint: str) -> CapabilitySet | None:
        base = endpoint.rstrip("/")
        for suffix in MCP_PATH_SUFFIXES:
            url = f"{base}{suffix}"
            tools, resources, prompts = await asyncio.gather(
                *(self._jsonrpc_call(url, method) for method in MCP_LIST_METHODS)
            )
            capabilities = CapabilitySet(
                tools=object_names(_result_list(tools, "tools"), ("name",)),
                resources=object_names(_result_list(resources, "resources"), ("uri", "name")),
                prompts=object_names(_result_list(prompts, "prompts"), ("name",)),
            )
            if not capabilities.is_empty():
                logger.debug(f"MCP capabilities found at {url}")
                return capabilities
        return None

    async def _jsonrpc_call(self, url: str, method: str) -> Any | None:
        """POST one JSON-RPC request; None on any failure."""
        try:
            client = await self._get_client()
            response = await client.post(
                url,
                json=jsonrpc_request(method),
                headers=JSONRPC_HEADERS,
                timeout=self._timeout,
            )
            if not response.is_success:
                return None

            text = response.text
            content_type = response.headers.get("content-type", "")
            if "text/event-stream" in content_type or "event: message" in text:
                parsed = parse_sse_payload(text)
                if parsed is not None:
                    return parsed

            data = json.loads(text)
            if isinstance(data, dict) and "result" in data:
                return data["result"]
            return data
        except Exception as e:
            logger.debug(f"JSON-RPC {method} failed at {url}: {e!r}")
            return None

    # ─── A2A ─────────────────────────────────────────────────────────

    async def fetch_a2a_capabilities(self, endpoint: str) -> CapabilitySet | None:
        """Fetch skills from an A2A agent card. Returns None if none are found."""
        if not _is_http_endpoint(endpoint):
            logger.debug(f"Skipping non-HTTP A2A endpoint: {endpoint!r}")
            return None

        for url in a2a_card_urls(endpoint):
            card = await self._fetch_json(url)
            if card is None:
                continue
            skills = extract_list(card, "skills")
            if skills:
                return CapabilitySet(skills=skills)
        return None

    # ─── Helpers ─────────────────────────────────────────────────────

    async def _fetch_json(self, url: str) -> Any | None:
        """GET a JSON document; None on any failure."""
        try:
            client = await self._get_client()
            response = await client.get(url, timeout=self._timeout)
            if not response.is_success:
                return None
            return response.json()
        except Exception as e:
            logger.debug(f"Agent card fetch failed: {url}: {e!r}")
            return None


def _result_list(result: Any, key: str) -> Any:
    if isinstance(result, dict):
        return result.get(key)
    return None


__all__ = [
    "DEFAULT_CRAWLER_TIMEOUT",
    "MCP_PATH_SUFFIXES",
    "CapabilitySet",
    "EndpointCrawler",
    "a2a_card_urls",
    "parse_sse_payload",
]
