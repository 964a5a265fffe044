"""Background timers and the candle refresh loop."""

from .candle_refresh import CandleRefreshStatus, CandleRefreshTask
from .timers import Debouncer, PeriodicTask

__all__ = [
    "CandleRefreshStatus",
    "CandleRefreshTask",
    "Debouncer",
    "PeriodicTask",
]
