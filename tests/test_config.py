"""Unit tests for config module."""

import os
from unittest.mock import patch

import pytest

from fluidsdk.core.config import DEFAULT_PINATA_GATEWAY, Config
from fluidsdk.core.contracts import DEFAULT_REGISTRIES
from fluidsdk.core.exceptions import ConfigurationError


@pytest.fixture(autouse=True)
def no_dotenv():
    """Keep a developer's .env out of the tests."""
    with patch("fluidsdk.core.config.load_dotenv"):
        yield


class TestConfig:
    """Tests for Config class."""

    def test_create_config_directly(self) -> None:
        config = Config(rpc_url="https://rpc.example")

        assert config.rpc_url == "https://rpc.example"
        assert config.chain_id == 11155111
        assert config.private_key is None
        assert config.pinata_gateway == DEFAULT_PINATA_GATEWAY
        assert config.crawler_timeout == 5.0
        assert config.auth_expiry_hours == 24
        assert config.registries == DEFAULT_REGISTRIES

    def test_config_is_immutable(self) -> None:
        config = Config(rpc_url="https://rpc.example")

        with pytest.raises(AttributeError):
            config.rpc_url = "https://other.example"  # type: ignore

    def test_missing_rpc_url_raises(self) -> None:
        with pytest.raises(ConfigurationError, match="rpc_url is required"):
            Config(rpc_url="")

    @pytest.mark.parametrize(
        "overrides",
        [
            {"chain_id": 0},
            {"auth_expiry_hours": 0},
            {"transaction_poll_interval": 0},
            {"transaction_poll_timeout": -1},
        ],
    )
    def test_invalid_values_raise(self, overrides) -> None:
        with pytest.raises(ConfigurationError):
            Config(rpc_url="https://rpc.example", **overrides)

    def test_with_updates(self) -> None:
        config = Config(rpc_url="https://rpc.example")

        updated = config.with_updates(chain_id=84532, crawler_timeout=2.0)

        assert updated.chain_id == 84532
        assert updated.crawler_timeout == 2.0
        assert config.chain_id == 11155111

    def test_masked_pinata_jwt(self) -> None:
        assert Config(rpc_url="x", pinata_jwt="abcdefghijklmnop").masked_pinata_jwt() == "abcd...mnop"
        assert Config(rpc_url="x", pinata_jwt="short").masked_pinata_jwt() == "****"
        assert Config(rpc_url="x").masked_pinata_jwt() == ""


class TestConfigFromEnv:
    """Tests for Config.from_env."""

    def test_loads_environment(self) -> None:
        env = {
            "FLUID_RPC_URL": "https://a.example,https://b.example",
            "FLUID_CHAIN_ID": "84532",
            "FLUID_PRIVATE_KEY": "0xkey",
            "PINATA_JWT": "jwt",
            "PINATA_GATEWAY": "https://my.gateway",
            "FLUID_LOG_LEVEL": "DEBUG",
        }
        with patch.dict(os.environ, env, clear=True):
            config = Config.from_env()

        assert config.rpc_url == "https://a.example,https://b.example"
        assert config.chain_id == 84532
        assert config.private_key == "0xkey"
        assert config.pinata_jwt == "jwt"
        assert config.pinata_gateway == "https://my.gateway"
        assert config.log_level == "DEBUG"

    def test_defaults(self) -> None:
        with patch.dict(os.environ, {"FLUID_RPC_URL": "https://rpc.example"}, clear=True):
            config = Config.from_env()

        assert config.chain_id == 11155111
        assert config.pinata_jwt is None
        assert config.pinata_gateway == DEFAULT_PINATA_GATEWAY
        assert config.log_level == "INFO"

    def test_missing_rpc_url(self) -> None:
        with patch.dict(os.environ, {}, clear=True):
            with pytest.raises(ConfigurationError, match="FLUID_RPC_URL"):
                Config.from_env()

    def test_invalid_chain_id(self) -> None:
        env = {"FLUID_RPC_URL": "https://rpc.example", "FLUID_CHAIN_ID": "sepolia"}
        with patch.dict(os.environ, env, clear=True):
            with pytest.raises(ConfigurationError, match="FLUID_CHAIN_ID"):
                Config.from_env()

    def test_overrides_win(self) -> None:
        with patch.dict(os.environ, {"FLUID_RPC_URL": "https://env.example"}, clear=True):
            config = Config.from_env(rpc_url="https://override.example", crawler_timeout=1.5)

        assert config.rpc_url == "https://override.example"
        assert config.crawler_timeout == 1.5

    def test_log_format_json(self) -> None:
        env = {"FLUID_RPC_URL": "https://rpc.example", "FLUID_LOG_FORMAT": "JSON"}
        with patch.dict(os.environ, env, clear=True):
            config = Config.from_env()

        assert config.log_json is True

    def test_log_format_defaults_to_text(self) -> None:
        with patch.dict(os.environ, {"FLUID_RPC_URL": "https://rpc.example"}, clear=True):
            config = Config.from_env()

        assert config.log_json is False
        assert config.x402_max_amount == 100_000

    def test_x402_max_amount(self) -> None:
        env = {"FLUID_RPC_URL": "https://rpc.example", "FLUID_X402_MAX_AMOUNT": "250000"}
        with patch.dict(os.environ, env, clear=True):
            config = Config.from_env()

        assert config.x402_max_amount == 250000

    def test_invalid_x402_max_amount(self) -> None:
        env = {"FLUID_RPC_URL": "https://rpc.example", "FLUID_X402_MAX_AMOUNT": "lots"}
        with patch.dict(os.environ, env, clear=True):
            with pytest.raises(ConfigurationError, match="FLUID_X402_MAX_AMOUNT"):
                Config.from_env()
