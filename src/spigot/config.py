"""Configuration management for Spigot using Pydantic Settings."""

from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

USDC_MAINNET_ADDRESS = "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48"


class ConfirmationMode(str, Enum):
    """How long a funding request waits before answering."""

    WAIT = "wait"
    SUBMIT = "submit"


class TokenSettings(BaseModel):
    """A fungible token served on ``/fund-<symbol>``."""

    symbol: str
    address: str
    decimals: int = Field(ge=0, le=77)
    max_amount: Decimal | None = Field(default=None, gt=0)
    gas_limit: int | None = Field(default=None, gt=0)
    confirmation_mode: ConfirmationMode | None = None

    @field_validator("symbol")
    @classmethod
    def _normalize_symbol(cls, value: str) -> str:
        symbol = value.strip().lower()
        if not symbol.isalnum():
            raise ValueError(f"Token symbol must be alphanumeric: {value!r}")
        return symbol


def _default_tokens() -> list[TokenSettings]:
    return [TokenSettings(symbol="usdc", address=USDC_MAINNET_ADDRESS, decimals=6)]


class SpigotConfig(BaseSettings):
    """Spigot service configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )

    # Network
    rpc_endpoint: str = Field(alias="SPIGOT_RPC_ENDPOINT")
    chain_id: int | None = Field(default=None, alias="SPIGOT_CHAIN_ID")
    block_explorer_url: str | None = Field(default=None, alias="SPIGOT_BLOCK_EXPLORER_URL")

    # Signing key
    private_key: SecretStr | None = Field(default=None, alias="SPIGOT_PRIVATE_KEY")
    private_key_file: str | None = Field(default=None, alias="SPIGOT_PRIVATE_KEY_FILE")

    # HTTP
    host: str = Field(default="0.0.0.0", alias="SPIGOT_HOST")  # noqa: S104
    port: int = Field(default=3000, alias="SPIGOT_PORT", ge=1, le=65535)
    cors_origins: list[str] = Field(default_factory=lambda: ["*"], alias="SPIGOT_CORS_ORIGINS")
    trusted_proxy_hops: int = Field(default=0, alias="SPIGOT_TRUSTED_PROXY_HOPS", ge=0)

    # Admission gate
    max_requests: int = Field(default=10, alias="SPIGOT_MAX_REQUESTS", gt=0)
    rate_window_seconds: float = Field(default=60.0, alias="SPIGOT_RATE_WINDOW_SECONDS", gt=0)

    # Dispatch
    confirmation_mode: ConfirmationMode = Field(
        default=ConfirmationMode.WAIT, alias="SPIGOT_CONFIRMATION_MODE"
    )
    confirmation_timeout_seconds: float = Field(
        default=30.0, alias="SPIGOT_CONFIRMATION_TIMEOUT_SECONDS", gt=0
    )
    receipt_poll_interval_seconds: float = Field(
        default=1.0, alias="SPIGOT_RECEIPT_POLL_INTERVAL_SECONDS", gt=0
    )
    fill_sequence_gaps: bool = Field(default=True, alias="SPIGOT_FILL_SEQUENCE_GAPS")

    # Assets
    native_symbol: str = Field(default="ETH", alias="SPIGOT_NATIVE_SYMBOL")
    native_decimals: int = Field(default=18, alias="SPIGOT_NATIVE_DECIMALS", ge=0, le=77)
    native_gas_limit: int = Field(default=21000, alias="SPIGOT_NATIVE_GAS_LIMIT", gt=0)
    max_native_amount: Decimal | None = Field(
        default=None, alias="SPIGOT_MAX_NATIVE_AMOUNT", gt=0
    )
    tokens: list[TokenSettings] = Field(default_factory=_default_tokens, alias="SPIGOT_TOKENS")

    # Redis
    redis_url: str | None = Field(default=None, alias="REDIS_URL")

    # Observability
    log_level: str = Field(default="INFO", alias="SPIGOT_LOG_LEVEL")
    log_format: str = Field(default="json", alias="SPIGOT_LOG_FORMAT")

    @field_validator("tokens")
    @classmethod
    def _unique_symbols(cls, tokens: list[TokenSettings]) -> list[TokenSettings]:
        symbols = [token.symbol for token in tokens]
        duplicates = sorted({s for s in symbols if symbols.count(s) > 1})
        if duplicates:
            raise ValueError(f"Duplicate token symbols: {', '.join(duplicates)}")
        return tokens
