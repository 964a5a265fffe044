from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Literal, Sequence

from ..market_data.candles import normalize_candles, to_market_cap
from ..market_data.models import Candle, LinePoint, VolumeBar
from .calculations import IndicatorCalculations

YAxisMode = Literal["price", "marketCap"]


@dataclass(slots=True)
class IndicatorParams:
    timeframe: str = "1d"
    moving_average_period: int = 20
    rsi_period: int = 14
    show_sma: bool = False
    show_ema: bool = False
    show_vwap: bool = False
    show_rsi: bool = False
    show_volume: bool = True
    y_axis_mode: YAxisMode = "price"
    current_price: float | None = None
    current_market_cap: float | None = None


@dataclass(slots=True)
class IndicatorOverlay:
    candles: list[Candle]
    volume: list[VolumeBar] = field(default_factory=list)
    sma: list[LinePoint] | None = None
    ema: list[LinePoint] | None = None
    vwap: list[LinePoint] | None = None
    rsi: list[LinePoint] | None = None


class IndicatorService:
    """Builds the chart overlay bundle for a candle series."""

    def __init__(self, calculations: IndicatorCalculations | None = None) -> None:
        self._calculations = calculations or IndicatorCalculations()
        self._logger = logging.getLogger("swapdesk.indicators.service")

    def compute(self, candles: Sequence[Candle], params: IndicatorParams | None = None) -> IndicatorOverlay:
        params = params or IndicatorParams()
        unique = normalize_candles(candles)
        if not unique:
            self._logger.debug("No candles to compute indicators for")
            return IndicatorOverlay(candles=[])

        display = unique
        if params.y_axis_mode == "marketCap":
            display = to_market_cap(unique, params.current_price, params.current_market_cap)

        calc = self._calculations
        overlay = IndicatorOverlay(candles=display)
        if params.show_volume:
            overlay.volume = [
                VolumeBar(time=candle.time, value=candle.volume or 0.0, up=candle.close >= candle.open)
                for candle in display
            ]
        if params.show_sma:
            overlay.sma = calc.sma(display, params.moving_average_period)
        if params.show_ema:
            overlay.ema = calc.ema(display, params.moving_average_period)
        if params.show_vwap:
            overlay.vwap = calc.vwap(display, params.timeframe)
        if params.show_rsi:
            overlay.rsi = calc.rsi(display, params.rsi_period)

        self._logger.debug(
            "Computed overlays for %s candles (tf=%s sma=%s ema=%s vwap=%s rsi=%s)",
            len(display),
            params.timeframe,
            len(overlay.sma or []),
            len(overlay.ema or []),
            len(overlay.vwap or []),
            len(overlay.rsi or []),
        )
        return overlay


__all__ = ["IndicatorOverlay", "IndicatorParams", "IndicatorService", "YAxisMode"]
