"""
Feedback attestation pipeline.

Stages run strictly in order; each depends on the previous one::

    PARSE_IDENTIFIER → RESOLVE_INDEX → BUILD_RECORD → COMPUTE_AUTHORIZATION
        → UPLOAD_CONTENT → SUBMIT_TRANSACTION → AWAIT_CONFIRMATION → DONE

UPLOAD_CONTENT is the only stage allowed to fail without aborting: the
feedback is then submitted with an empty URI and a zero hash.

If confirmation fails after the transaction was broadcast, the feedback may
still be on chain. That case raises ConfirmationTimeoutError (not a
submission error) and nothing is rolled back.
"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from eth_account.signers.local import LocalAccount

from fluidsdk.chain.registry import ReputationRegistry
from fluidsdk.core.contracts import RegistryAddresses, get_registries
from fluidsdk.core.exceptions import (
    ConfirmationTimeoutError,
    FluidSDKError,
    SubmissionRejectedError,
    UnsupportedNetworkError,
    ValidationError,
)
from fluidsdk.core.logging import get_logger
from fluidsdk.feedback.auth import DEFAULT_EXPIRY_HOURS, sign_feedback_auth
from fluidsdk.feedback.hashing import ZERO_HASH, hash_record
from fluidsdk.feedback.nonce import NonceResolver
from fluidsdk.feedback.record import build_feedback_record, normalize_score, normalize_tags
from fluidsdk.identity.identifier import AgentIdentifier
from fluidsdk.storage.base import ContentStore
from fluidsdk.utils.encoding import string_to_bytes32

logger = get_logger("feedback.pipeline")

MAX_ONCHAIN_SCORE = 255


class FeedbackStage(str, Enum):
    """Pipeline stages, in execution order."""

    PARSE_IDENTIFIER = "parse_identifier"
    RESOLVE_INDEX = "resolve_index"
    BUILD_RECORD = "build_record"
    COMPUTE_AUTHORIZATION = "compute_authorization"
    UPLOAD_CONTENT = "upload_content"
    SUBMIT_TRANSACTION = "submit_transaction"
    AWAIT_CONFIRMATION = "await_confirmation"
    DONE = "done"


@dataclass
class FeedbackResult:
    """Outcome of a confirmed feedback submission."""

    tx_hash: str
    block_number: int
    feedback_index: int
    feedback_file: dict[str, Any]
    feedback_uri: str = ""
    feedback_hash: bytes = ZERO_HASH
    index_assumed: bool = False
    stages: list[FeedbackStage] = field(default_factory=list)

    @property
    def feedback_hash_hex(self) -> str:
        return "0x" + self.feedback_hash.hex()


def _onchain_score(record: Mapping[str, Any]) -> int:
    """The score actually sent on chain: the record's, after any ``extra`` override."""
    score = record.get("score", 0)
    if isinstance(score, float) and score.is_integer():
        score = int(score)
    if isinstance(score, bool) or not isinstance(score, int) or not 0 <= score <= MAX_ONCHAIN_SCORE:
        raise ValidationError(
            f"Feedback score must be an integer in 0..{MAX_ONCHAIN_SCORE}",
            details={"score": repr(score)},
        )
    return score


class FeedbackPipeline:
    """
    Builds, authorizes, stores and submits agent feedback.

    Args:
        registry: On-chain Reputation Registry collaborator
        signer: Account that signs the authorization and submits the feedback
        content_store: Where feedback files are pinned (skipped if None)
        registries: Chain id → registry addresses (defaults to known deployments)
        auth_expiry_hours: Lifetime of the feedback authorization
    """

    def __init__(
        self,
        registry: ReputationRegistry,
        signer: LocalAccount,
        content_store: ContentStore | None = None,
        registries: dict[int, RegistryAddresses] | None = None,
        auth_expiry_hours: int = DEFAULT_EXPIRY_HOURS,
    ) -> None:
        self._registry = registry
        self._signer = signer
        self._content_store = content_store
        self._registries = registries
        self._auth_expiry_hours = auth_expiry_hours
        self._nonce_resolver = NonceResolver(registry)

    @property
    def client_address(self) -> str:
        return self._signer.address

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
        """
        Submit feedback for an agent and wait for it to be mined.

        Args:
            agent_id: ``"<chainId>:<tokenId>"``
            score: 0–100, rounded to the nearest integer
            tags: Only the first two are used

        Raises:
            InvalidIdentifierError: malformed ``agent_id``
            ValidationError: malformed score or tags (before any network call)
            UnsupportedNetworkError: no registries known for the agent's chain
            SubmissionRejectedError: the registry refused or reverted the feedback
            ConfirmationTimeoutError: broadcast but not confirmed in time
        """
        stages: list[FeedbackStage] = []
        client_address = self._signer.address

        # ── Parse identifier + validate inputs (no I/O) ──
        stages.append(FeedbackStage.PARSE_IDENTIFIER)
        agent = AgentIdentifier.parse(agent_id)
        normalize_score(score)
        if extra and "score" in extra:
            _onchain_score(extra)
        used_tags = normalize_tags(tags)

        addresses = get_registries(agent.network_id, self._registries)
        if addresses is None:
            raise UnsupportedNetworkError(
                f"No registries configured for chain {agent.network_id}",
                network_id=agent.network_id,
            )

        # ── Resolve feedback index ──
        stages.append(FeedbackStage.RESOLVE_INDEX)
        resolution = await self._nonce_resolver.resolve(agent, client_address)

        # ── Build feedback file ──
        stages.append(FeedbackStage.BUILD_RECORD)
        record = build_feedback_record(
            agent,
            client_address,
            addresses.identity,
            score=score,
            tags=used_tags,
            text=text,
            capability=capability,
            name=name,
            skill=skill,
            task=task,
            context=context,
            proof_of_payment=proof_of_payment,
            extra=extra,
        )
        onchain_score = _onchain_score(record)

        # ── Sign authorization ──
        stages.append(FeedbackStage.COMPUTE_AUTHORIZATION)
        feedback_auth = sign_feedback_auth(
            token_id=agent.token_id,
            client_address=client_address,
            index_limit=resolution.index,
            chain_id=agent.network_id,
            identity_registry=addresses.identity,
            signer=self._signer,
            expiry_hours=self._auth_expiry_hours,
        )
        record["feedbackAuth"] = feedback_auth.hex()

        # ── Upload (best effort) ──
        feedback_uri = ""
        feedback_hash = ZERO_HASH
        if self._content_store is not None:
            stages.append(FeedbackStage.UPLOAD_CONTENT)
            try:
                cid = await self._content_store.write(record)
                feedback_hash = hash_record(record)
                feedback_uri = f"ipfs://{cid}"
            except Exception as e:
                logger.warning(f"Failed to upload feedback file for agent {agent}, submitting without it: {e}")
                feedback_uri = ""
                feedback_hash = ZERO_HASH

        # ── Submit ──
        stages.append(FeedbackStage.SUBMIT_TRANSACTION)
        tag1 = string_to_bytes32(used_tags[0] if used_tags else "")
        tag2 = string_to_bytes32(used_tags[1] if len(used_tags) > 1 else "")
        try:
            handle = await self._registry.submit_feedback(
                agent.token_id,
                onchain_score,
                tag1,
                tag2,
                feedback_uri,
                feedback_hash,
                feedback_auth.raw,
            )
        except (SubmissionRejectedError, ValidationError):
            raise
        except FluidSDKError as e:
            raise SubmissionRejectedError(
                f"Feedback submission failed: {e.message}", details=e.details
            ) from e
        except Exception as e:
            raise SubmissionRejectedError(f"Feedback submission failed: {e}") from e

        # ── Await confirmation ──
        stages.append(FeedbackStage.AWAIT_CONFIRMATION)
        try:
            confirmation = await self._registry.await_confirmation(handle)
        except asyncio.TimeoutError as e:
            raise ConfirmationTimeoutError(
                f"Transaction {handle.tx_hash} not confirmed",
                tx_hash=handle.tx_hash,
                timeout_seconds=None,
            ) from e

        stages.append(FeedbackStage.DONE)
        logger.info(
            f"Feedback #{resolution.index} for agent {agent} confirmed in block "
            f"{confirmation.block_number} ({confirmation.tx_hash})"
        )
        return FeedbackResult(
            tx_hash=confirmation.tx_hash,
            block_number=confirmation.block_number,
            feedback_index=resolution.index,
            feedback_file=record,
            feedback_uri=feedback_uri,
            feedback_hash=feedback_hash,
            index_assumed=resolution.assumed,
            stages=stages,
        )


__all__ = [
    "FeedbackStage",
    "FeedbackResult",
    "FeedbackPipeline",
]
