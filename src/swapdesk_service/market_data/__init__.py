from .candles import candles_to_frame, merge_latest_candle, normalize_candles, to_market_cap
from .geckoterminal import GeckoTerminalClient, GeckoTerminalConfig, GeckoTerminalError
from .models import Candle, LinePoint, VolumeBar
from .timeframes import TIMEFRAMES, TimeframeSpec, poll_interval_seconds, resolve_timeframe

__all__ = [
    "Candle",
    "LinePoint",
    "VolumeBar",
    "normalize_candles",
    "merge_latest_candle",
    "to_market_cap",
    "candles_to_frame",
    "GeckoTerminalClient",
    "GeckoTerminalConfig",
    "GeckoTerminalError",
    "TIMEFRAMES",
    "TimeframeSpec",
    "poll_interval_seconds",
    "resolve_timeframe",
]
