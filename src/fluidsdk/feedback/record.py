"""
Feedback file construction.

A feedback file is the off-chain JSON document referenced (and hashed) by
an on-chain ``giveFeedback`` call.
"""

from __future__ import annotations

import math
from collections.abc import Mapping, Sequence
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

from fluidsdk.core.contracts import build_agent_registry_string
from fluidsdk.core.exceptions import ValidationError
from fluidsdk.identity.identifier import AgentIdentifier

MIN_SCORE = 0
MAX_SCORE = 100
MAX_TAGS = 2


def format_timestamp(moment: datetime) -> str:
    """ISO-8601 UTC with millisecond precision and a ``Z`` suffix."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def normalize_score(score: Any) -> int:
    """
    Round a score half-up to an integer and clamp it to 0–100.

    ``None`` means no score and becomes 0.
    """
    if score is None:
        return 0
    if isinstance(score, bool) or not isinstance(score, (int, float, Decimal)):
        raise ValidationError(
            f"Score must be a number, got {type(score).__name__}", details={"score": repr(score)}
        )
    value = float(score)
    if not math.isfinite(value):
        raise ValidationError("Score must be finite", details={"score": repr(score)})
    rounded = math.floor(value + 0.5)
    return max(MIN_SCORE, min(MAX_SCORE, rounded))


def normalize_tags(tags: Sequence[str] | None) -> list[str]:
    """Return at most the first two tags, rejecting non-string entries."""
    if tags is None:
        return []
    if isinstance(tags, (str, bytes)) or not isinstance(tags, Sequence):
        raise ValidationError("Tags must be a list of strings", details={"tags": repr(tags)})
    used = list(tags[:MAX_TAGS])
    for tag in used:
        if not isinstance(tag, str):
            raise ValidationError(
                f"Tag must be a string, got {type(tag).__name__}", details={"tag": repr(tag)}
            )
    return used


def build_feedback_record(
    agent: AgentIdentifier,
    client_address: str,
    identity_registry: str,
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
    created_at: datetime | str | None = None,
) -> dict[str, Any]:
    """
    Build a feedback file.

    Keys whose value is ``None`` are dropped (absent, not ``null``) since the
    omission is part of the hashed form. ``extra`` is merged last and can
    override any computed key, including ``score`` and ``createdAt``.
    ``text`` is accepted with the other inputs but has no field in the file;
    pass it through ``extra`` to publish it.
    ``feedbackAuth`` starts empty and is filled in once the authorization
    token has been signed.
    """
    used_tags = normalize_tags(tags)
    if created_at is None:
        created_at = datetime.now(timezone.utc)
    if isinstance(created_at, datetime):
        created_at = format_timestamp(created_at)

    network_id = agent.network_id
    data: dict[str, Any] = {
        "agentRegistry": build_agent_registry_string(network_id, identity_registry),
        "agentId": agent.token_id,
        "clientAddress": f"eip155:{network_id}:{client_address}",
        "createdAt": created_at,
        "feedbackAuth": "",
        "score": normalize_score(score),
        # An empty first tag is dropped; a second tag is kept whenever given
        "tag1": used_tags[0] if used_tags and used_tags[0] else None,
        "tag2": used_tags[1] if len(used_tags) > 1 else None,
        "skill": skill,
        "context": dict(context) if context is not None else None,
        "task": task,
        "capability": capability,
        "name": name,
        "proofOfPayment": dict(proof_of_payment) if proof_of_payment is not None else None,
    }

    record = {key: value for key, value in data.items() if value is not None}

    if extra:
        record.update(extra)

    return record


__all__ = [
    "MIN_SCORE",
    "MAX_SCORE",
    "format_timestamp",
    "normalize_score",
    "normalize_tags",
    "build_feedback_record",
]
