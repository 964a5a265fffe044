"""
Observability helpers (Prometheus metrics for quotes, swaps and candle refreshes).
"""

from .prometheus import (
    PROMETHEUS_CONTENT_TYPE,
    generate_prometheus_metrics,
    record_candle_refresh,
    record_quote_fetch,
    record_swap_metric,
    reset_prometheus_metrics,
)

__all__ = [
    "PROMETHEUS_CONTENT_TYPE",
    "generate_prometheus_metrics",
    "record_candle_refresh",
    "record_quote_fetch",
    "record_swap_metric",
    "reset_prometheus_metrics",
]
