"""
Feedback authorization tokens.

The Reputation Registry accepts feedback only with a ``feedbackAuth``
blob issued for the (agent, client) pair. Layout, as decoded by the
contract::

    offset 0    abi.encode(uint256 agentId,
                           address clientAddress,
                           uint256 indexLimit,
                           uint256 expiry,
                           uint256 chainId,
                           address identityRegistry,
                           address signerAddress)      224 bytes
    offset 224  signature (r ‖ s ‖ v)                    65 bytes

The signature is an EIP-191 personal-message signature over
``keccak256(encoded)``, so the contract recovers the signer from
``toEthSignedMessageHash(keccak256(encoded))``. Tokens are never verified
locally.
"""

from __future__ import annotations

import time
from dataclasses import dataclass

from eth_abi import decode, encode
from eth_account.messages import encode_defunct
from eth_account.signers.local import LocalAccount
from eth_utils import keccak, to_checksum_address

from fluidsdk.core.exceptions import ValidationError

AUTH_FIELD_TYPES: list[str] = [
    "uint256",  # agentId (token id)
    "address",  # clientAddress
    "uint256",  # indexLimit
    "uint256",  # expiry (unix seconds)
    "uint256",  # chainId
    "address",  # identityRegistry
    "address",  # signerAddress
]

ENCODED_FIELDS_LENGTH = 32 * len(AUTH_FIELD_TYPES)
SIGNATURE_LENGTH = 65
DEFAULT_EXPIRY_HOURS = 24


@dataclass(frozen=True)
class FeedbackAuthFields:
    """Decoded fixed-size prefix of a feedback authorization token."""

    token_id: int
    client_address: str
    index_limit: int
    expiry: int
    chain_id: int
    identity_registry: str
    signer_address: str


@dataclass(frozen=True)
class FeedbackAuth:
    """Raw ``encoded ‖ signature`` authorization bytes."""

    raw: bytes

    @property
    def encoded_fields(self) -> bytes:
        return self.raw[:ENCODED_FIELDS_LENGTH]

    @property
    def signature(self) -> bytes:
        return self.raw[ENCODED_FIELDS_LENGTH:]

    @property
    def message_hash(self) -> bytes:
        """keccak256 of the encoded fields (the signed message)."""
        return keccak(self.encoded_fields)

    @property
    def fields(self) -> FeedbackAuthFields:
        return decode_feedback_auth(self.raw)

    def hex(self) -> str:
        return "0x" + self.raw.hex()

    def __bytes__(self) -> bytes:
        return self.raw

    def __len__(self) -> int:
        return len(self.raw)


def _checksum(address: str, label: str) -> str:
    try:
        return to_checksum_address(address)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"Invalid {label}: {address!r}") from e


def encode_auth_fields(fields: FeedbackAuthFields) -> bytes:
    """ABI-encode the authorization fields in contract order."""
    return encode(
        AUTH_FIELD_TYPES,
        [
            fields.token_id,
            _checksum(fields.client_address, "client address"),
            fields.index_limit,
            fields.expiry,
            fields.chain_id,
            _checksum(fields.identity_registry, "identity registry address"),
            _checksum(fields.signer_address, "signer address"),
        ],
    )


def sign_feedback_auth(
    token_id: int,
    client_address: str,
    index_limit: int,
    chain_id: int,
    identity_registry: str,
    signer: LocalAccount,
    expiry_hours: int = DEFAULT_EXPIRY_HOURS,
    now: float | None = None,
) -> FeedbackAuth:
    """
    Build and sign a feedback authorization token.

    Args:
        token_id: Agent token id in the Identity Registry
        client_address: Address that will submit the feedback
        index_limit: Highest feedback index this token authorizes
        chain_id: Chain the registries live on
        identity_registry: Identity Registry address
        signer: Account whose key signs the token
        expiry_hours: Token lifetime
        now: Override for the current unix time

    Returns:
        FeedbackAuth holding ``encoded ‖ signature``
    """
    issued_at = int(time.time() if now is None else now)
    fields = FeedbackAuthFields(
        token_id=token_id,
        client_address=client_address,
        index_limit=index_limit,
        expiry=issued_at + expiry_hours * 3600,
        chain_id=chain_id,
        identity_registry=identity_registry,
        signer_address=signer.address,
    )
    encoded = encode_auth_fields(fields)
    message_hash = keccak(encoded)

    signed = signer.sign_message(encode_defunct(primitive=message_hash))
    return FeedbackAuth(raw=encoded + bytes(signed.signature))


def decode_feedback_auth(token: bytes | FeedbackAuth | str) -> FeedbackAuthFields:
    """Decode the fixed-size prefix of a token (bytes or ``0x`` hex)."""
    if isinstance(token, FeedbackAuth):
        raw = token.raw
    elif isinstance(token, str):
        raw = bytes.fromhex(token[2:] if token.startswith("0x") else token)
    else:
        raw = bytes(token)

    if len(raw) < ENCODED_FIELDS_LENGTH:
        raise ValidationError(
            f"Feedback auth too short: {len(raw)} bytes, need at least {ENCODED_FIELDS_LENGTH}"
        )

    values = decode(AUTH_FIELD_TYPES, raw[:ENCODED_FIELDS_LENGTH])
    return FeedbackAuthFields(*values)


__all__ = [
    "AUTH_FIELD_TYPES",
    "ENCODED_FIELDS_LENGTH",
    "SIGNATURE_LENGTH",
    "FeedbackAuth",
    "FeedbackAuthFields",
    "encode_auth_fields",
    "sign_feedback_auth",
    "decode_feedback_auth",
]
