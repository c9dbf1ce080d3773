"""
Configuration management for fluidsdk.

Handles loading configuration from environment variables (and an optional
``.env`` file) and validation.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, fields
from typing import Any

from dotenv import load_dotenv

from fluidsdk.core.contracts import DEFAULT_REGISTRIES, RegistryAddresses
from fluidsdk.core.exceptions import ConfigurationError

DEFAULT_PINATA_GATEWAY = "https://gateway.pinata.cloud"


def _get_env_var(name: str, default: str | None = None, required: bool = False) -> str | None:
    """Get environment variable with optional default."""
    value = os.environ.get(name, default)
    if required and not value:
        raise ConfigurationError(f"Required environment variable {name} is not set")
    return value


@dataclass(frozen=True)
class Config:
    """SDK configuration."""

    rpc_url: str
    chain_id: int = 11155111
    private_key: str | None = None

    # Content store (Pinata pinning + IPFS gateways)
    pinata_jwt: str | None = None
    pinata_gateway: str = DEFAULT_PINATA_GATEWAY
    ipfs_gateway_timeout: float = 10.0

    # Capability crawler
    crawler_timeout: float = 5.0

    # Timeouts (seconds)
    request_timeout: float = 30.0
    transaction_poll_interval: float = 2.0
    transaction_poll_timeout: float = 120.0

    # Feedback authorization lifetime
    auth_expiry_hours: int = 24

    # Paid task execution (x402): largest payment accepted, in the asset's atomic units
    x402_max_amount: int = 100_000

    log_level: str = "INFO"
    log_json: bool = False

    registries: dict[int, RegistryAddresses] = field(
        default_factory=lambda: dict(DEFAULT_REGISTRIES)
    )

    def __post_init__(self) -> None:
        if not self.rpc_url:
            raise ConfigurationError("rpc_url is required")
        if self.chain_id <= 0:
            raise ConfigurationError(
                "chain_id must be a positive integer", details={"chain_id": self.chain_id}
            )
        if self.auth_expiry_hours <= 0:
            raise ConfigurationError("auth_expiry_hours must be positive")
        if self.transaction_poll_interval <= 0 or self.transaction_poll_timeout <= 0:
            raise ConfigurationError("transaction polling values must be positive")
        if self.x402_max_amount < 0:
            raise ConfigurationError("x402_max_amount must not be negative")

    @classmethod
    def from_env(cls, **overrides: Any) -> Config:
        """Load configuration from environment variables (and ``.env`` if present)."""
        load_dotenv()

        rpc_url = overrides.get("rpc_url") or _get_env_var("FLUID_RPC_URL", required=True)

        chain_id_raw = overrides.get("chain_id") or _get_env_var("FLUID_CHAIN_ID", default="11155111")
        try:
            chain_id = int(chain_id_raw)  # type: ignore[arg-type]
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"FLUID_CHAIN_ID must be an integer, got {chain_id_raw!r}") from e

        private_key = overrides.get("private_key") or _get_env_var("FLUID_PRIVATE_KEY")
        pinata_jwt = overrides.get("pinata_jwt") or _get_env_var("PINATA_JWT")
        pinata_gateway = overrides.get("pinata_gateway") or _get_env_var(
            "PINATA_GATEWAY", default=DEFAULT_PINATA_GATEWAY
        )
        log_level = overrides.get("log_level") or _get_env_var("FLUID_LOG_LEVEL", default="INFO")
        log_json = overrides.get("log_json")
        if log_json is None:
            log_json = (_get_env_var("FLUID_LOG_FORMAT", default="text") or "").lower() == "json"

        max_amount_raw = overrides.get("x402_max_amount", _get_env_var("FLUID_X402_MAX_AMOUNT"))
        try:
            x402_max_amount = (
                int(max_amount_raw) if max_amount_raw not in (None, "") else cls.x402_max_amount
            )
        except (TypeError, ValueError) as e:
            raise ConfigurationError(
                f"FLUID_X402_MAX_AMOUNT must be an integer, got {max_amount_raw!r}"
            ) from e

        return cls(
            rpc_url=rpc_url,  # type: ignore
            chain_id=chain_id,
            private_key=private_key,
            pinata_jwt=pinata_jwt,
            pinata_gateway=pinata_gateway,  # type: ignore
            ipfs_gateway_timeout=overrides.get("ipfs_gateway_timeout", cls.ipfs_gateway_timeout),
            crawler_timeout=overrides.get("crawler_timeout", cls.crawler_timeout),
            request_timeout=overrides.get("request_timeout", cls.request_timeout),
            transaction_poll_interval=overrides.get(
                "transaction_poll_interval", cls.transaction_poll_interval
            ),
            transaction_poll_timeout=overrides.get(
                "transaction_poll_timeout", cls.transaction_poll_timeout
            ),
            auth_expiry_hours=overrides.get("auth_expiry_hours", cls.auth_expiry_hours),
            x402_max_amount=x402_max_amount,
            log_level=log_level,  # type: ignore
            log_json=bool(log_json),
            registries=overrides.get("registries") or dict(DEFAULT_REGISTRIES),
        )

    def with_updates(self, **updates: Any) -> Config:
        """Create a new Config with updated values."""
        current = {f.name: getattr(self, f.name) for f in fields(self)}
        current.update(updates)
        return Config(**current)

    def masked_pinata_jwt(self) -> str:
        """Return the Pinata JWT with most characters masked for safe logging."""
        if not self.pinata_jwt:
            return ""
        if len(self.pinata_jwt) <= 8:
            return "****"
        return self.pinata_jwt[:4] + "..." + self.pinata_jwt[-4:]
