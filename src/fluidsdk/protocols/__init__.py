"""Payment protocols for paid agent tasks."""

from fluidsdk.protocols.x402 import (
    PaymentPayload,
    PaymentRequirements,
    X402Client,
    sign_exact_payment,
)

__all__ = [
    "PaymentPayload",
    "PaymentRequirements",
    "X402Client",
    "sign_exact_payment",
]
