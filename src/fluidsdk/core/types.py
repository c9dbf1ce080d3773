"""
Type definitions shared across fluidsdk.

Soft failures (an endpoint that doesn't answer, a registry read that
reverts) are carried as ``Lookup`` values instead of exceptions so that
fallback cascades can be inspected and tested branch by branch. Paid task
calls report their outcome the same way, as ``TaskResult`` values.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Generic, TypeVar

if TYPE_CHECKING:
    from fluidsdk.feedback.pipeline import FeedbackResult

T = TypeVar("T")


@dataclass(frozen=True)
class Lookup(Generic[T]):
    """Either a found value or a miss with a reason."""

    value: T | None = None
    reason: str | None = None
    found: bool = False

    @classmethod
    def hit(cls, value: T) -> Lookup[T]:
        return cls(value=value, found=True)

    @classmethod
    def miss(cls, reason: str = "not found") -> Lookup[T]:
        return cls(reason=reason, found=False)

    def unwrap_or(self, default: T) -> T:
        """Return the value if found, otherwise ``default``."""
        if self.found:
            return self.value  # type: ignore[return-value]
        return default


@dataclass
class TaskResult:
    """Outcome of a (possibly paid) task request."""

    success: bool
    data: Any = None
    error: str | None = None
    status_code: int | None = None
    amount_paid: int = 0
    payment_response: dict[str, Any] | None = None

    @property
    def paid(self) -> bool:
        return self.amount_paid > 0


@dataclass
class TaskFeedbackResult:
    """
    A task run followed by feedback on it.

    Feedback is only submitted when the task succeeded, so
    ``feedback_result`` is None whenever ``error`` is set.
    """

    task_result: TaskResult
    feedback_result: FeedbackResult | None = None
    error: str | None = None

    @property
    def success(self) -> bool:
        return self.task_result.success and self.feedback_result is not None
