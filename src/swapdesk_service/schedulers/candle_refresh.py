from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Awaitable, Callable

import httpx

from ..config import Settings, get_settings
from ..market_data.candles import merge_latest_candle
from ..market_data.geckoterminal import GeckoTerminalClient, GeckoTerminalError
from ..market_data.models import Candle
from ..market_data.timeframes import poll_interval_seconds
from ..observability import record_candle_refresh
from .timers import PeriodicTask

CandleListener = Callable[[list[Candle]], Awaitable[None] | None]


@dataclass(slots=True)
class CandleRefreshStatus:
    last_run_at: datetime | None = None
    last_error: str | None = None
    refreshes: int = 0
    failures: int = 0
    consecutive_failures: int = 0
    discarded: int = 0


class CandleRefreshTask:
    """
    Keeps the candle series of one pool/timeframe up to date.

    A full load is done on start and whenever the timeframe changes; afterwards
    only the newest candle is polled and merged. Responses that arrive after the
    pool or timeframe changed are discarded.
    """

    def __init__(
        self,
        client: GeckoTerminalClient,
        pool_address: str,
        timeframe: str = "1h",
        *,
        settings: Settings | None = None,
        on_update: CandleListener | None = None,
        interval_seconds: float | None = None,
    ) -> None:
        self._client = client
        self._settings = settings or get_settings()
        self.pool_address = pool_address
        self.timeframe = timeframe
        self.candles: list[Candle] = []
        self.status = CandleRefreshStatus()
        self._on_update = on_update
        self._interval_override = interval_seconds
        self._generation = 0
        self._logger = logging.getLogger("swapdesk.scheduler.candles")
        self._ticker = self._build_ticker()

    @property
    def interval_seconds(self) -> float:
        return self._ticker.interval_seconds

    async def start(self) -> None:
        await self.load()
        await self._ticker.start()
        self._logger.info(
            "Candle refresh started (pool=%s tf=%s interval=%ss)",
            self.pool_address,
            self.timeframe,
            self.interval_seconds,
        )

    async def stop(self) -> None:
        self._generation += 1
        await self._ticker.stop()
        self._logger.info("Candle refresh stopped (pool=%s)", self.pool_address)

    async def change_timeframe(self, timeframe: str) -> None:
        was_running = self._ticker.running
        await self._ticker.stop()
        self._generation += 1
        self.timeframe = timeframe
        self.candles = []
        self._ticker = self._build_ticker()
        await self.load()
        if was_running:
            await self._ticker.start()

    async def change_pool(self, pool_address: str) -> None:
        self.pool_address = pool_address
        await self.change_timeframe(self.timeframe)

    async def load(self) -> list[Candle]:
        generation = self._generation
        try:
            candles = await self._client.fetch_ohlcv(
                self.pool_address, self.timeframe, limit=self._settings.ohlcv_limit
            )
        except (GeckoTerminalError, httpx.HTTPError) as exc:
            self._record_failure(exc)
            return self.candles
        if generation != self._generation:
            self._discard()
            return self.candles
        self.candles = candles
        self._record_success()
        await self._notify()
        return self.candles

    async def poll_once(self) -> list[Candle]:
        if not self.candles:
            return await self.load()
        generation = self._generation
        try:
            latest = await self._client.fetch_latest(self.pool_address, self.timeframe)
        except (GeckoTerminalError, httpx.HTTPError) as exc:
            self._record_failure(exc)
            return self.candles
        if generation != self._generation:
            self._discard()
            return self.candles
        if latest is None:
            return self.candles
        self.candles = merge_latest_candle(self.candles, latest)
        self._record_success()
        await self._notify()
        return self.candles

    def _build_ticker(self) -> PeriodicTask:
        interval = self._interval_override
        if interval is None:
            interval = poll_interval_seconds(self.timeframe, self._settings.candle_poll_min_interval_seconds)
        return PeriodicTask(self.poll_once, interval, name="candle-refresh", run_immediately=False)

    async def _notify(self) -> None:
        if self._on_update is None:
            return
        result = self._on_update(list(self.candles))
        if result is not None:
            await result

    def _record_success(self) -> None:
        self.status.last_run_at = _utcnow()
        self.status.last_error = None
        self.status.refreshes += 1
        self.status.consecutive_failures = 0
        record_candle_refresh("success")

    def _record_failure(self, exc: Exception) -> None:
        self.status.last_run_at = _utcnow()
        self.status.last_error = str(exc)
        self.status.failures += 1
        self.status.consecutive_failures += 1
        record_candle_refresh("failure")
        self._logger.warning(
            "Candle refresh failed for %s (%s): %s", self.pool_address, self.timeframe, exc
        )

    def _discard(self) -> None:
        self.status.discarded += 1
        record_candle_refresh("discarded")
        self._logger.debug("Discarded stale candle response for %s", self.pool_address)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


__all__ = ["CandleRefreshStatus", "CandleRefreshTask"]
