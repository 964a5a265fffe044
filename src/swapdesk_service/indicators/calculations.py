from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Sequence

import numpy as np
import pandas as pd

from ..market_data.candles import candles_to_frame
from ..market_data.models import Candle, LinePoint

HOURLY_RESET_TIMEFRAMES = frozenset({"1m", "5m"})


def _is_valid_close(value: float | None) -> bool:
    return value is not None and math.isfinite(value) and value > 0


def _valid_mask(closes: pd.Series) -> np.ndarray:
    values = closes.to_numpy(dtype="float64")
    return np.isfinite(values) & (values > 0)


def _window_mean(values: Sequence[float], period: int) -> float:
    return math.fsum(values) / period


def _clamp_rsi(value: float) -> float:
    return max(0.0, min(100.0, value))


def vwap_period_key(timestamp: int, timeframe: str) -> str:
    """
    Return the UTC bucket a candle belongs to for VWAP resets.

    Minute timeframes reset every hour, everything else resets daily.
    """

    moment = datetime.fromtimestamp(timestamp, tz=timezone.utc)
    if timeframe in HOURLY_RESET_TIMEFRAMES:
        return f"{moment.year}-{moment.month}-{moment.day}-{moment.hour}"
    return f"{moment.year}-{moment.month}-{moment.day}"


class IndicatorCalculations:
    """
    Chart overlay indicators computed as pure functions of a candle series.

    A close is considered valid when it is finite and strictly positive. The
    indicators treat invalid closes differently: SMA drops any window that
    contains one, EMA skips the candle without advancing, RSI stops at the
    first one.
    """

    rsi_period: int = 14

    def sma(self, candles: Sequence[Candle], period: int) -> list[LinePoint]:
        if period < 1 or len(candles) < period:
            return []
        frame = candles_to_frame(candles)
        mask = _valid_mask(frame["close"])
        if int(mask.sum()) < period:
            return []
        valid_windows = pd.Series(mask, dtype="float64").rolling(period, min_periods=period).sum() == period
        closes = frame["close"].tolist()
        points: list[LinePoint] = []
        for idx in np.flatnonzero(valid_windows.to_numpy()):
            window = closes[idx - period + 1 : idx + 1]
            points.append(LinePoint(time=candles[idx].time, value=_window_mean(window, period)))
        return points

    def ema(self, candles: Sequence[Candle], period: int) -> list[LinePoint]:
        if period < 1 or len(candles) < period:
            return []
        seed_window = [candle.close for candle in candles[:period]]
        if not all(_is_valid_close(close) for close in seed_window):
            return []

        multiplier = 2 / (period + 1)
        current = _window_mean(seed_window, period)
        points = [LinePoint(time=candles[period - 1].time, value=current)]
        for candle in candles[period:]:
            if not _is_valid_close(candle.close):
                continue
            current = (candle.close - current) * multiplier + current
            points.append(LinePoint(time=candle.time, value=current))
        return points

    def vwap(self, candles: Sequence[Candle], timeframe: str) -> list[LinePoint]:
        if not candles:
            return []
        frame = candles_to_frame(candles)
        volume = frame["volume"].fillna(0.0)
        volume = volume.where(np.isfinite(volume), 0.0)
        typical_price = (frame["high"] + frame["low"] + frame["close"]) / 3

        keys = pd.Series([vwap_period_key(ts, timeframe) for ts in frame["time"].tolist()])
        period_run = (keys != keys.shift()).cumsum()

        cumulative_tpv = (typical_price * volume).groupby(period_run).cumsum()
        cumulative_volume = volume.groupby(period_run).cumsum()

        points: list[LinePoint] = []
        for idx in np.flatnonzero((cumulative_volume > 0).to_numpy()):
            value = float(cumulative_tpv.iloc[idx] / cumulative_volume.iloc[idx])
            if not math.isfinite(value):
                continue
            points.append(LinePoint(time=candles[idx].time, value=value))
        return points

    def rsi(self, candles: Sequence[Candle], period: int | None = None) -> list[LinePoint]:
        """Wilder's RSI over the leading run of valid closes."""

        target_period = period or self.rsi_period
        usable: list[Candle] = []
        for candle in candles:
            if not _is_valid_close(candle.close):
                break
            usable.append(candle)
        if target_period < 1 or len(usable) < target_period + 1:
            return []

        gains = 0.0
        losses = 0.0
        for idx in range(target_period):
            change = usable[idx + 1].close - usable[idx].close
            if change > 0:
                gains += change
            elif change < 0:
                losses += -change
        avg_gain = gains / target_period
        avg_loss = losses / target_period

        if avg_gain == 0 and avg_loss == 0:
            return []

        points: list[LinePoint] = []
        first_time = usable[target_period].time
        if avg_loss == 0:
            points.append(LinePoint(time=first_time, value=100.0))
        else:
            points.append(LinePoint(time=first_time, value=_clamp_rsi(100 - 100 / (1 + avg_gain / avg_loss))))

        for idx in range(target_period, len(usable) - 1):
            change = usable[idx + 1].close - usable[idx].close
            gain = change if change > 0 else 0.0
            loss = -change if change < 0 else 0.0
            avg_gain = (avg_gain * (target_period - 1) + gain) / target_period
            avg_loss = (avg_loss * (target_period - 1) + loss) / target_period

            time = usable[idx + 1].time
            if avg_loss == 0:
                if avg_gain > 0:
                    points.append(LinePoint(time=time, value=100.0))
                continue
            points.append(LinePoint(time=time, value=_clamp_rsi(100 - 100 / (1 + avg_gain / avg_loss))))
        return points


__all__ = ["IndicatorCalculations", "vwap_period_key"]
