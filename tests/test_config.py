"""Tests for Spigot configuration management."""

import json
from decimal import Decimal

import pytest
from pydantic import ValidationError

from spigot.config import USDC_MAINNET_ADDRESS, ConfirmationMode, SpigotConfig, TokenSettings


class TestSpigotConfigDefaults:
    """Test default configuration values."""

    def test_minimal_config(self, monkeypatch):
        """Config loads with only required fields."""
        monkeypatch.setenv("SPIGOT_RPC_ENDPOINT", "http://localhost:8545")
        config = SpigotConfig()

        assert config.rpc_endpoint == "http://localhost:8545"
        assert config.chain_id is None
        assert config.private_key is None
        assert config.private_key_file is None
        assert config.port == 3000
        assert config.max_requests == 10
        assert config.rate_window_seconds == 60.0
        assert config.trusted_proxy_hops == 0
        assert config.cors_origins == ["*"]

    def test_dispatch_defaults(self, monkeypatch):
        """Dispatch settings have correct defaults."""
        monkeypatch.setenv("SPIGOT_RPC_ENDPOINT", "http://localhost:8545")
        config = SpigotConfig()

        assert config.confirmation_mode == ConfirmationMode.WAIT
        assert config.confirmation_timeout_seconds == 30.0
        assert config.receipt_poll_interval_seconds == 1.0
        assert config.fill_sequence_gaps is True

    def test_asset_defaults(self, monkeypatch):
        """Native asset is 18 decimals and USDC is served by default."""
        monkeypatch.setenv("SPIGOT_RPC_ENDPOINT", "http://localhost:8545")
        config = SpigotConfig()

        assert config.native_symbol == "ETH"
        assert config.native_decimals == 18
        assert config.native_gas_limit == 21000
        assert config.max_native_amount is None
        assert len(config.tokens) == 1
        assert config.tokens[0].symbol == "usdc"
        assert config.tokens[0].address == USDC_MAINNET_ADDRESS
        assert config.tokens[0].decimals == 6

    def test_observability_defaults(self, monkeypatch):
        """Observability settings have correct defaults."""
        monkeypatch.setenv("SPIGOT_RPC_ENDPOINT", "http://localhost:8545")
        config = SpigotConfig()

        assert config.log_level == "INFO"
        assert config.log_format == "json"
        assert config.redis_url is None


class TestSpigotConfigEnvVars:
    """Test environment variable loading."""

    def test_all_env_vars(self, monkeypatch):
        """Config loads environment variables correctly."""
        monkeypatch.setenv("SPIGOT_RPC_ENDPOINT", "http://rpc.example.com:8545")
        monkeypatch.setenv("SPIGOT_CHAIN_ID", "11155111")
        monkeypatch.setenv("SPIGOT_PRIVATE_KEY", "0xdeadbeef")
        monkeypatch.setenv("SPIGOT_PORT", "8080")
        monkeypatch.setenv("SPIGOT_MAX_REQUESTS", "3")
        monkeypatch.setenv("SPIGOT_RATE_WINDOW_SECONDS", "10")
        monkeypatch.setenv("SPIGOT_TRUSTED_PROXY_HOPS", "1")
        monkeypatch.setenv("SPIGOT_CORS_ORIGINS", '["https://app.example.com"]')
        monkeypatch.setenv("SPIGOT_CONFIRMATION_MODE", "submit")
        monkeypatch.setenv("SPIGOT_MAX_NATIVE_AMOUNT", "0.5")
        monkeypatch.setenv("SPIGOT_FILL_SEQUENCE_GAPS", "false")
        monkeypatch.setenv("REDIS_URL", "redis://redis.example.com:6379")
        monkeypatch.setenv("SPIGOT_LOG_LEVEL", "DEBUG")

        config = SpigotConfig()

        assert config.rpc_endpoint == "http://rpc.example.com:8545"
        assert config.chain_id == 11155111
        assert config.private_key.get_secret_value() == "0xdeadbeef"
        assert config.port == 8080
        assert config.max_requests == 3
        assert config.rate_window_seconds == 10.0
        assert config.trusted_proxy_hops == 1
        assert config.cors_origins == ["https://app.example.com"]
        assert config.confirmation_mode == ConfirmationMode.SUBMIT
        assert config.max_native_amount == Decimal("0.5")
        assert config.fill_sequence_gaps is False
        assert config.redis_url == "redis://redis.example.com:6379"
        assert config.log_level == "DEBUG"

    def test_private_key_not_in_repr(self, monkeypatch):
        """The signing key never appears in the config repr."""
        monkeypatch.setenv("SPIGOT_RPC_ENDPOINT", "http://localhost:8545")
        monkeypatch.setenv("SPIGOT_PRIVATE_KEY", "0xdeadbeef")

        config = SpigotConfig()

        assert "deadbeef" not in repr(config)

    def test_tokens_from_json(self, monkeypatch):
        """Tokens are loaded from a JSON list."""
        monkeypatch.setenv("SPIGOT_RPC_ENDPOINT", "http://localhost:8545")
        monkeypatch.setenv(
            "SPIGOT_TOKENS",
            json.dumps(
                [
                    {"symbol": "USDC", "address": USDC_MAINNET_ADDRESS, "decimals": 6},
                    {
                        "symbol": "dai",
                        "address": "0x" + "22" * 20,
                        "decimals": 18,
                        "max_amount": 100,
                        "gas_limit": 80000,
                        "confirmation_mode": "submit",
                    },
                ]
            ),
        )

        config = SpigotConfig()

        assert [t.symbol for t in config.tokens] == ["usdc", "dai"]
        assert config.tokens[1].max_amount == Decimal("100")
        assert config.tokens[1].gas_limit == 80000
        assert config.tokens[1].confirmation_mode == ConfirmationMode.SUBMIT


class TestSpigotConfigValidation:
    """Test configuration validation."""

    def test_missing_required_field(self):
        """Missing RPC endpoint raises ValidationError."""
        with pytest.raises(ValidationError) as exc_info:
            SpigotConfig()

        errors = exc_info.value.errors()
        assert len(errors) == 1
        # Pydantic uses alias in error location
        assert errors[0]["loc"] == ("SPIGOT_RPC_ENDPOINT",)
        assert errors[0]["type"] == "missing"

    def test_invalid_confirmation_mode(self, monkeypatch):
        """Invalid confirmation mode raises ValidationError."""
        monkeypatch.setenv("SPIGOT_RPC_ENDPOINT", "http://localhost:8545")
        monkeypatch.setenv("SPIGOT_CONFIRMATION_MODE", "eventually")

        with pytest.raises(ValidationError) as exc_info:
            SpigotConfig()

        errors = exc_info.value.errors()
        assert any("SPIGOT_CONFIRMATION_MODE" in str(e["loc"]) for e in errors)

    @pytest.mark.parametrize(
        "name,value",
        [
            ("SPIGOT_MAX_REQUESTS", "0"),
            ("SPIGOT_RATE_WINDOW_SECONDS", "-1"),
            ("SPIGOT_CONFIRMATION_TIMEOUT_SECONDS", "0"),
            ("SPIGOT_TRUSTED_PROXY_HOPS", "-1"),
            ("SPIGOT_PORT", "not_a_number"),
        ],
    )
    def test_invalid_numeric_values(self, monkeypatch, name, value):
        """Out-of-range or non-numeric values raise ValidationError."""
        monkeypatch.setenv("SPIGOT_RPC_ENDPOINT", "http://localhost:8545")
        monkeypatch.setenv(name, value)

        with pytest.raises(ValidationError) as exc_info:
            SpigotConfig()

        errors = exc_info.value.errors()
        assert any(name in str(e["loc"]) for e in errors)

    def test_duplicate_token_symbols(self, monkeypatch):
        """Two tokens with the same symbol are rejected."""
        monkeypatch.setenv("SPIGOT_RPC_ENDPOINT", "http://localhost:8545")
        monkeypatch.setenv(
            "SPIGOT_TOKENS",
            json.dumps(
                [
                    {"symbol": "usdc", "address": USDC_MAINNET_ADDRESS, "decimals": 6},
                    {"symbol": "USDC", "address": "0x" + "22" * 20, "decimals": 6},
                ]
            ),
        )

        with pytest.raises(ValidationError, match="Duplicate token symbols"):
            SpigotConfig()


class TestTokenSettings:
    """Test TokenSettings validation."""

    def test_symbol_lowercased(self):
        """Symbols are normalized to lower case."""
        token = TokenSettings(symbol=" USDC ", address=USDC_MAINNET_ADDRESS, decimals=6)
        assert token.symbol == "usdc"

    def test_symbol_must_be_alphanumeric(self):
        """Symbols end up in route paths, so only letters and digits are allowed."""
        with pytest.raises(ValidationError):
            TokenSettings(symbol="us/dc", address=USDC_MAINNET_ADDRESS, decimals=6)

    def test_negative_decimals_rejected(self):
        """Negative decimals are rejected."""
        with pytest.raises(ValidationError):
            TokenSettings(symbol="usdc", address=USDC_MAINNET_ADDRESS, decimals=-1)


class TestConfirmationModeEnum:
    """Test ConfirmationMode enum."""

    def test_all_modes(self):
        """Both confirmation modes are defined."""
        assert ConfirmationMode.WAIT == "wait"
        assert ConfirmationMode.SUBMIT == "submit"
