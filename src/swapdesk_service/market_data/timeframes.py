from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class TimeframeSpec:
    path: str
    aggregate: int
    period_seconds: int


TIMEFRAMES: dict[str, TimeframeSpec] = {
    "1m": TimeframeSpec("minute", 1, 60),
    "5m": TimeframeSpec("minute", 5, 300),
    "15m": TimeframeSpec("minute", 15, 900),
    "1h": TimeframeSpec("hour", 1, 3_600),
    "4h": TimeframeSpec("hour", 4, 14_400),
    "1d": TimeframeSpec("day", 1, 86_400),
    "1w": TimeframeSpec("day", 7, 604_800),
}

DEFAULT_TIMEFRAME = "1h"


def resolve_timeframe(timeframe: str | None) -> TimeframeSpec:
    return TIMEFRAMES.get(timeframe or DEFAULT_TIMEFRAME, TIMEFRAMES[DEFAULT_TIMEFRAME])


def poll_interval_seconds(timeframe: str | None, minimum: float = 10.0) -> float:
    """Poll roughly four times per candle period, never faster than ``minimum``."""
    spec = resolve_timeframe(timeframe)
    return max(minimum, float(spec.period_seconds // 4))


__all__ = ["TimeframeSpec", "TIMEFRAMES", "DEFAULT_TIMEFRAME", "resolve_timeframe", "poll_interval_seconds"]
