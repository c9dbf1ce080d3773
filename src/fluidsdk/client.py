"""FluidClient - Main SDK entry point."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from eth_account import Account
from eth_account.signers.local import LocalAccount

from fluidsdk.chain.registry import FeedbackEntry, FeedbackSummary, JsonRpcReputationRegistry
from fluidsdk.core.config import Config
from fluidsdk.core.contracts import chain_name, get_registries
from fluidsdk.core.exceptions import ConfigurationError, ContentStoreError, FluidSDKError
from fluidsdk.core.logging import configure_logging, get_logger
from fluidsdk.core.types import TaskFeedbackResult, TaskResult
from fluidsdk.discovery.crawler import CapabilitySet, EndpointCrawler
from fluidsdk.feedback.pipeline import FeedbackPipeline, FeedbackResult
from fluidsdk.identity.identifier import AgentIdentifier
from fluidsdk.protocols.x402 import X402Client
from fluidsdk.storage.base import ContentStore
from fluidsdk.storage.ipfs import PinataContentStore


def task_url(server_url: str, endpoint: str) -> str:
    """Resolve a task endpoint against its server; absolute URLs pass through."""
    if endpoint.startswith(("http://", "https://")):
        return endpoint
    return f"{server_url.rstrip('/')}/{endpoint.lstrip('/')}"


class FluidClient:
    """
    Main client for the Fluid SDK.

    Wires the reputation registry, content store, capability crawler and
    feedback pipeline from a single Config.

    Example:
        >>> async with FluidClient(Config.from_env()) as client:
        ...     result = await client.give_feedback("11155111:42", score=97, tags=["helpful"])
        ...     print(result.tx_hash)
    """

    def __init__(
        self,
        config: Config | None = None,
        content_store: ContentStore | None = None,
        signer: LocalAccount | None = None,
        payment_client: X402Client | None = None,
    ) -> None:
        """
        Initialize the client.

        Args:
            config: SDK configuration (defaults to Config.from_env())
            content_store: Overrides the Pinata store built from ``pinata_jwt``
            signer: Overrides the account built from ``private_key``
            payment_client: Overrides the x402 client built from the signer
        """
        self._config = config or Config.from_env()
        configure_logging(level=self._config.log_level, json_format=self._config.log_json)
        self._logger = get_logger("client")

        addresses = get_registries(self._config.chain_id, self._config.registries)
        if addresses is None:
            raise ConfigurationError(
                f"No registries configured for chain {self._config.chain_id}",
                details={"chain_id": self._config.chain_id},
            )

        if signer is None and self._config.private_key:
            signer = Account.from_key(self._config.private_key)
        self._signer = signer

        self._registry = JsonRpcReputationRegistry(
            rpc_url=self._config.rpc_url,
            address=addresses.reputation,
            account=self._signer,
            chain_id=self._config.chain_id,
            timeout=self._config.request_timeout,
            poll_interval=self._config.transaction_poll_interval,
            poll_timeout=self._config.transaction_poll_timeout,
        )

        if content_store is None and self._config.pinata_jwt:
            content_store = PinataContentStore(
                pinata_jwt=self._config.pinata_jwt,
                gateway=self._config.pinata_gateway,
                timeout=self._config.ipfs_gateway_timeout,
            )
        self._content_store = content_store

        self._crawler = EndpointCrawler(timeout=self._config.crawler_timeout)
        self._pipeline: FeedbackPipeline | None = None
        self._payments = payment_client

        self._logger.info(
            f"Initializing Fluid SDK (chain {chain_name(self._config.chain_id)}, "
            f"signer: {self._signer.address if self._signer else 'none'}, "
            f"content store: {type(self._content_store).__name__ if self._content_store else 'none'})"
        )

    @property
    def config(self) -> Config:
        return self._config

    @property
    def registry(self) -> JsonRpcReputationRegistry:
        return self._registry

    @property
    def crawler(self) -> EndpointCrawler:
        return self._crawler

    @property
    def pipeline(self) -> FeedbackPipeline:
        """Feedback pipeline; requires a signer."""
        if self._pipeline is None:
            if self._signer is None:
                raise ConfigurationError(
                    "A private key is required to give feedback (set FLUID_PRIVATE_KEY)"
                )
            self._pipeline = FeedbackPipeline(
                registry=self._registry,
                signer=self._signer,
                content_store=self._content_store,
                registries=self._config.registries,
                auth_expiry_hours=self._config.auth_expiry_hours,
            )
        return self._pipeline

    @property
    def payments(self) -> X402Client:
        """x402 client for paid tasks; requires a signer."""
        if self._payments is None:
            if self._signer is None:
                raise ConfigurationError(
                    "A private key is required to pay for tasks (set FLUID_PRIVATE_KEY)"
                )
            self._payments = X402Client(
                signer=self._signer,
                timeout=self._config.request_timeout,
                max_amount=self._config.x402_max_amount,
            )
        return self._payments

    # ─── Feedback ────────────────────────────────────────────────────

    async def give_feedback(
        self,
        agent_id: str,
        score: float | int | None = None,
        tags: Sequence[str] | None = None,
        text: str | None = None,
        capability: str | None = None,
        name: str | None = None,
        skill: str | None = None,
        task: str | None = None,
        context: Mapping[str, Any] | None = None,
        proof_of_payment: Mapping[str, Any] | None = None,
        extra: Mapping[str, Any] | None = None,
    ) -> FeedbackResult:
        """Submit feedback for ``agent_id`` and wait for confirmation."""
        return await self.pipeline.give_feedback(
            agent_id,
            score=score,
            tags=tags,
            text=text,
            capability=capability,
            name=name,
            skill=skill,
            task=task,
            context=context,
            proof_of_payment=proof_of_payment,
            extra=extra,
        )

    async def revoke_feedback(self, agent_id: str, feedback_index: int) -> str:
        """Revoke one of this client's feedback entries. Returns the transaction hash."""
        agent = AgentIdentifier.parse(agent_id)
        handle = await self._registry.revoke_feedback(agent.token_id, feedback_index)
        confirmation = await self._registry.await_confirmation(handle)
        return confirmation.tx_hash

    async def read_feedback(
        self, agent_id: str, client_address: str, feedback_index: int
    ) -> FeedbackEntry | None:
        agent = AgentIdentifier.parse(agent_id)
        return await self._registry.read_feedback(agent.token_id, client_address, feedback_index)

    async def get_summary(
        self,
        agent_id: str,
        client_addresses: list[str] | None = None,
        tag1: str = "",
        tag2: str = "",
    ) -> FeedbackSummary | None:
        agent = AgentIdentifier.parse(agent_id)
        return await self._registry.get_summary(agent.token_id, client_addresses or [], tag1, tag2)

    async def fetch_feedback_file(self, feedback_uri: str) -> Any:
        """Fetch and decode a feedback file from the content store."""
        if self._content_store is None:
            raise ContentStoreError("No content store configured (set PINATA_JWT)")
        return await self._content_store.read_json(feedback_uri)

    # ─── Paid tasks ──────────────────────────────────────────────────

    async def execute_agent_task(
        self,
        agent_endpoint: str,
        mcp_server_url: str,
        parameters: Mapping[str, Any] | None = None,
    ) -> TaskResult:
        """GET ``agent_endpoint`` on ``mcp_server_url``, paying via x402 if asked."""
        url = task_url(mcp_server_url, agent_endpoint)
        return await self.payments.request(url, params=dict(parameters) if parameters else None)

    async def execute_task_with_feedback(
        self,
        agent_id: str,
        agent_endpoint: str,
        mcp_server_url: str,
        parameters: Mapping[str, Any] | None = None,
        **feedback: Any,
    ) -> TaskFeedbackResult:
        """
        Run a paid task, then give feedback on the agent if the task succeeded.

        ``feedback`` takes the keyword arguments of ``give_feedback``. Neither
        a failed task nor a failed submission raises; both are reported in
        the result's ``error``.
        """
        task_result = await self.execute_agent_task(agent_endpoint, mcp_server_url, parameters)
        if not task_result.success:
            return TaskFeedbackResult(
                task_result=task_result,
                error="Task execution failed, feedback not submitted",
            )

        try:
            feedback_result = await self.give_feedback(agent_id, **feedback)
        except FluidSDKError as e:
            self._logger.warning(f"Feedback for agent {agent_id} failed after task success: {e}")
            return TaskFeedbackResult(
                task_result=task_result,
                error=f"Feedback submission failed: {e.message}",
            )

        return TaskFeedbackResult(task_result=task_result, feedback_result=feedback_result)

    # ─── Discovery ───────────────────────────────────────────────────

    async def fetch_mcp_capabilities(self, endpoint: str) -> CapabilitySet | None:
        return await self._crawler.fetch_mcp_capabilities(endpoint)

    async def fetch_a2a_capabilities(self, endpoint: str) -> CapabilitySet | None:
        return await self._crawler.fetch_a2a_capabilities(endpoint)

    # ─── Lifecycle ───────────────────────────────────────────────────

    async def close(self) -> None:
        """Close owned HTTP clients."""
        await self._registry.close()
        await self._crawler.close()
        if self._content_store is not None:
            await self._content_store.close()
        if self._payments is not None:
            await self._payments.close()

    async def __aenter__(self) -> FluidClient:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()
