from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Protocol

import httpx

from ..config import Settings, get_settings

logger = logging.getLogger("swapdesk.providers.trade_records")


class TradeRecordError(RuntimeError):
    pass


class TradeRecordStore(Protocol):
    async def save(self, record: dict[str, Any]) -> None:
        ...


@dataclass(slots=True)
class TradeRecordConfig:
    url: str | None
    timeout_seconds: float = 5.0


class HttpTradeRecordStore:
    """Posts executed trades to the order-history endpoint."""

    def __init__(
        self,
        config: TradeRecordConfig | None = None,
        client: httpx.AsyncClient | None = None,
        *,
        settings: Settings | None = None,
    ) -> None:
        settings = settings or get_settings()
        self._config = config or TradeRecordConfig(
            url=settings.trade_record_url,
            timeout_seconds=settings.trade_record_timeout_seconds,
        )
        if not self._config.url:
            raise TradeRecordError("Trade record endpoint not configured")
        self._client = client or httpx.AsyncClient(timeout=self._config.timeout_seconds)

    async def save(self, record: dict[str, Any]) -> None:
        response = await self._client.post(self._config.url, json=record)
        if response.status_code >= 400:
            raise TradeRecordError(f"Failed to save trade {record.get('txHash')}: {response.status_code}")
        logger.debug("Saved trade record %s", record.get("txHash"))

    async def close(self) -> None:
        await self._client.aclose()


__all__ = ["HttpTradeRecordStore", "TradeRecordConfig", "TradeRecordError", "TradeRecordStore"]
