from __future__ import annotations

import math
from dataclasses import replace
from typing import Iterable, Sequence

import pandas as pd

from .models import Candle


def normalize_candles(candles: Iterable[Candle]) -> list[Candle]:
    """
    Sort candles by time and collapse duplicate timestamps.

    When the same timestamp appears more than once the last occurrence wins,
    matching how polling updates overwrite the in-progress candle.
    """

    latest: dict[int, Candle] = {}
    for candle in candles:
        latest[candle.time] = candle
    return [latest[ts] for ts in sorted(latest)]


def merge_latest_candle(candles: Sequence[Candle], latest: Candle) -> list[Candle]:
    if not candles:
        return [latest]
    last = candles[-1]
    if last.time == latest.time:
        return [*candles[:-1], latest]
    if latest.time > last.time:
        return [*candles, latest]
    # Late update for an older bucket.
    return normalize_candles([*candles, latest])


def to_market_cap(
    candles: Sequence[Candle],
    current_price: float | None,
    current_market_cap: float | None,
) -> list[Candle]:
    """Rescale OHLC prices to market cap using the current price/market cap ratio."""

    if not _is_positive(current_price) or not _is_positive(current_market_cap):
        return list(candles)
    ratio = float(current_market_cap) / float(current_price)

    def _scale(value: float) -> float:
        if not _is_positive(value):
            return 0.0
        return max(0.0, value * ratio)

    return [
        replace(
            candle,
            open=_scale(candle.open),
            high=_scale(candle.high),
            low=_scale(candle.low),
            close=_scale(candle.close),
        )
        for candle in candles
    ]


def candles_to_frame(candles: Sequence[Candle]) -> pd.DataFrame:
    df = pd.DataFrame(
        {
            "time": [candle.time for candle in candles],
            "open": [candle.open for candle in candles],
            "high": [candle.high for candle in candles],
            "low": [candle.low for candle in candles],
            "close": [candle.close for candle in candles],
            "volume": [candle.volume for candle in candles],
        }
    )
    if df.empty:
        return df
    numeric = ["open", "high", "low", "close", "volume"]
    df[numeric] = df[numeric].astype("float64")
    df["time"] = df["time"].astype("int64")
    return df


def _is_positive(value: float | None) -> bool:
    if value is None:
        return False
    try:
        number = float(value)
    except (TypeError, ValueError):
        return False
    return math.isfinite(number) and number > 0


__all__ = ["normalize_candles", "merge_latest_candle", "to_market_cap", "candles_to_frame"]
