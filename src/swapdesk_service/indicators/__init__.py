from .calculations import IndicatorCalculations, vwap_period_key
from .service import IndicatorOverlay, IndicatorParams, IndicatorService

__all__ = [
    "IndicatorCalculations",
    "IndicatorOverlay",
    "IndicatorParams",
    "IndicatorService",
    "vwap_period_key",
]
