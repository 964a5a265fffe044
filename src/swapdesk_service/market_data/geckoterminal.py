from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import httpx

from ..config import Settings, get_settings
from .candles import normalize_candles
from .models import Candle
from .timeframes import resolve_timeframe

logger = logging.getLogger("swapdesk.market_data.geckoterminal")


class GeckoTerminalError(RuntimeError):
    """Raised when the OHLCV endpoint responds with an error status."""


@dataclass(slots=True)
class GeckoTerminalConfig:
    base_url: str
    network: str = "base"
    timeout_seconds: float = 10.0

    @classmethod
    def from_settings(cls, settings: Settings) -> "GeckoTerminalConfig":
        return cls(
            base_url=settings.geckoterminal_base_url.rstrip("/"),
            network=settings.geckoterminal_network,
            timeout_seconds=settings.geckoterminal_timeout_seconds,
        )


class GeckoTerminalClient:
    """Fetches pool OHLCV candles from GeckoTerminal."""

    def __init__(
        self,
        config: GeckoTerminalConfig | None = None,
        client: httpx.AsyncClient | None = None,
        *,
        settings: Settings | None = None,
    ) -> None:
        settings = settings or get_settings()
        self._config = config or GeckoTerminalConfig.from_settings(settings)
        self._client = client or httpx.AsyncClient(
            timeout=self._config.timeout_seconds,
            headers={"Accept": "application/json", "User-Agent": "swapdesk-service/0.1"},
        )

    async def fetch_ohlcv(self, pool_address: str, timeframe: str, *, limit: int = 500) -> list[Candle]:
        spec = resolve_timeframe(timeframe)
        pool = pool_address.lower()
        url = f"{self._config.base_url}/networks/{self._config.network}/pools/{pool}/ohlcv/{spec.path}"
        params = {"aggregate": str(spec.aggregate), "limit": str(limit)}
        logger.debug("Fetching OHLCV pool=%s tf=%s limit=%s", pool, timeframe, limit)
        response = await self._client.get(url, params=params)
        if response.status_code >= 400:
            raise GeckoTerminalError(f"OHLCV request for {pool} failed: {response.status_code}")
        try:
            payload = response.json()
        except ValueError as exc:
            raise GeckoTerminalError(f"OHLCV response for {pool} was not JSON") from exc
        if not isinstance(payload, dict):
            raise GeckoTerminalError(f"OHLCV response for {pool} was not a JSON object")
        return parse_ohlcv_payload(payload)

    async def fetch_latest(self, pool_address: str, timeframe: str) -> Candle | None:
        candles = await self.fetch_ohlcv(pool_address, timeframe, limit=2)
        return candles[-1] if candles else None

    async def close(self) -> None:
        await self._client.aclose()


def parse_ohlcv_payload(payload: Any) -> list[Candle]:
    rows = (((payload or {}).get("data") or {}).get("attributes") or {}).get("ohlcv_list") or []
    candles: list[Candle] = []
    for row in rows:
        try:
            volume = float(row[5]) if len(row) > 5 and row[5] is not None else None
            candles.append(
                Candle(
                    time=int(float(row[0])),
                    open=float(row[1]),
                    high=float(row[2]),
                    low=float(row[3]),
                    close=float(row[4]),
                    volume=volume,
                )
            )
        except (IndexError, TypeError, ValueError):
            continue
    return normalize_candles(candles)


__all__ = ["GeckoTerminalClient", "GeckoTerminalConfig", "GeckoTerminalError", "parse_ohlcv_payload"]
