from decimal import Decimal
from pathlib import Path
from typing import Any

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


BASE_DIR = Path(__file__).resolve().parents[1]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=BASE_DIR / ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Server Settings
    host: str = Field(default="127.0.0.1", description="Server host")
    port: int = Field(default=8000, description="Server port")
    log_level: str = Field(default="INFO", description="Logging level")

    # Chain
    chain_id: int = Field(default=8453, description="EVM chain the service trades on (Base mainnet)")
    chain_name: str = Field(default="base", description="Human readable chain name")
    rpc_url: str = Field(default="https://mainnet.base.org", description="JSON-RPC endpoint of the chain node")
    explorer_url: str = Field(default="https://basescan.org", description="Block explorer base URL")

    # Pricing / aggregation API (0x Swap API v2)
    zero_ex_api_key: str = Field(
        default="",
        description="0x API key",
        validation_alias=AliasChoices("zero_ex_api_key", "ZERO_EX_API_KEY", "ZEROX_API_KEY"),
    )
    zero_ex_base_url: str = Field(default="https://api.0x.org", description="0x API base URL")
    zero_ex_api_version: str = Field(default="v2", description="Value sent in the 0x-version header")

    # Token metadata search
    token_search_url: str = Field(
        default="https://api.developer.coinbase.com/rpc/v1/base",
        description="Token metadata search endpoint (cdp_listSwapAssets JSON-RPC)",
    )
    token_search_api_key: str = Field(
        default="",
        description="Client API key appended to the token search URL",
        validation_alias=AliasChoices("token_search_api_key", "ONCHAINKIT_API_KEY", "CDP_CLIENT_API_KEY"),
    )
    token_search_timeout_seconds: float = Field(default=5.0, description="Token search timeout")

    # Server-custodied wallet
    server_wallet_private_key: str = Field(
        default="",
        description="Hex private key of the server wallet that takes and settles swaps",
        validation_alias=AliasChoices("server_wallet_private_key", "SERVER_WALLET_PRIVATE_KEY", "CDP_WALLET_PRIVATE_KEY"),
    )
    server_wallet_name: str = Field(default="IntentSwap Server", description="Label of the server wallet")

    # HTTP
    request_timeout_seconds: float = Field(default=20.0, description="Timeout for outbound HTTP calls")

    # Swap execution policy
    swap_max_submission_attempts: int = Field(
        default=3,
        ge=1,
        description="Total settlement submission attempts on transient errors",
    )
    swap_retry_delay_seconds: float = Field(
        default=2.0,
        ge=0,
        description="Fixed delay between settlement submission attempts",
    )
    confirmation_timeout_seconds: int = Field(default=180, ge=1, description="Receipt wait timeout")
    receipt_poll_interval_seconds: float = Field(default=2.0, gt=0, description="Receipt polling interval")
    gas_multiplier: Decimal = Field(default=Decimal("1.2"), description="Safety margin applied to gas estimates")

    # History
    history_default_limit: int = Field(default=50, ge=1, le=500, description="Default swap history page size")

    def model_post_init(self, __context: Any) -> None:
        super().model_post_init(__context)
        object.__setattr__(self, "explorer_url", self.explorer_url.rstrip("/"))
        object.__setattr__(self, "zero_ex_base_url", self.zero_ex_base_url.rstrip("/"))

    @property
    def has_zero_ex_key(self) -> bool:
        return bool(self.zero_ex_api_key)

    @property
    def has_server_wallet(self) -> bool:
        return bool(self.server_wallet_private_key)

    def explorer_tx_url(self, tx_hash: str) -> str:
        return f"{self.explorer_url}/tx/{tx_hash}"


# Global settings instance
settings = Settings()
