from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="SWAPDESK_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="allow",
    )

    service_name: str = "swapdesk-service"
    service_port: int = 8090
    log_level: Literal["debug", "info", "warning", "error", "critical"] = "info"
    log_dir: str | None = "logs"

    cors_allow_origins: list[str] = Field(
        default_factory=lambda: [
            "http://localhost:3000",
            "http://localhost:5173",
        ]
    )

    chain_id: int = 8453  # Base mainnet
    weth_address: str = "0x4200000000000000000000000000000000000006"
    native_token_address: str = "0xEeeeeEeeeEeEeeEeEeEeeEEEeeeeEeeeeeeeEEeE"
    known_token_decimals: dict[str, int] = {
        "0x833589fcd6edb6e08f4c7c32d4f71b54bda02913": 6,  # USDC
        "0xfde4c96c8593536e31f229ea8f37b2ada2699bb2": 6,  # USDT
        "0xcbb7c0000ab88b473b1f5afd9ef808440eed33bf": 8,  # cbBTC
        "0x4200000000000000000000000000000000000006": 18,  # WETH
    }
    default_token_decimals: int = 18

    # 0x swap API
    zeroex_base_url: str = "https://api.0x.org"
    zeroex_api_key: str | None = None
    zeroex_fee_recipient: str | None = None
    zeroex_fee_bps: int | None = None
    zeroex_timeout_seconds: float = 10.0
    default_slippage_bps: int = 100

    # Quote lifecycle
    quote_default_ttl_seconds: float = 30.0
    quote_debounce_seconds: float = 0.5
    quote_countdown_interval_seconds: float = 1.0

    # GeckoTerminal OHLCV
    geckoterminal_base_url: str = "https://api.geckoterminal.com/api/v2"
    geckoterminal_network: str = "base"
    geckoterminal_timeout_seconds: float = 10.0
    ohlcv_limit: int = 500
    candle_poll_min_interval_seconds: float = 10.0

    # JSON-RPC node
    rpc_url: str = "https://mainnet.base.org"
    rpc_timeout_seconds: float = 15.0
    receipt_poll_interval_seconds: float = 2.0

    # Trade record store
    trade_record_url: str | None = None
    trade_record_timeout_seconds: float = 5.0


@lru_cache
def get_settings() -> Settings:
    return Settings()


__all__ = ["Settings", "get_settings"]
