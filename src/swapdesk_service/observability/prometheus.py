from __future__ import annotations

from typing import Literal

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

PROMETHEUS_CONTENT_TYPE = CONTENT_TYPE_LATEST

QuoteResult = Literal["success", "failure", "empty", "discarded"]
SwapStatus = Literal["success", "reverted", "rejected", "failed"]
RefreshResult = Literal["success", "failure", "discarded"]


def _build_registry() -> tuple[CollectorRegistry, Counter, Counter, Histogram, Counter]:
    registry = CollectorRegistry()
    quote_counter = Counter(
        "swap_quote_fetches_total",
        "Indicative price fetches grouped by outcome",
        labelnames=("result",),
        registry=registry,
    )
    swap_counter = Counter(
        "swaps_total",
        "Swap executions grouped by final status",
        labelnames=("status",),
        registry=registry,
    )
    swap_latency = Histogram(
        "swap_confirmation_latency_seconds",
        "Time from swap submission to a mined receipt",
        buckets=(
            0.5,
            1.0,
            2.5,
            5.0,
            10.0,
            30.0,
            60.0,
            120.0,
        ),
        registry=registry,
    )
    candle_counter = Counter(
        "candle_refreshes_total",
        "Candle refresh attempts grouped by outcome",
        labelnames=("result",),
        registry=registry,
    )
    return registry, quote_counter, swap_counter, swap_latency, candle_counter


_registry, _quote_counter, _swap_counter, _swap_latency, _candle_counter = _build_registry()


def record_quote_fetch(result: QuoteResult) -> None:
    _quote_counter.labels(result=result).inc()


def record_swap_metric(status: SwapStatus, latency_ms: float | None = None) -> None:
    _swap_counter.labels(status=status).inc()
    if latency_ms is not None and latency_ms >= 0:
        _swap_latency.observe(latency_ms / 1000.0)


def record_candle_refresh(result: RefreshResult) -> None:
    _candle_counter.labels(result=result).inc()


def generate_prometheus_metrics() -> bytes:
    return generate_latest(_registry)


def reset_prometheus_metrics() -> None:
    global _registry, _quote_counter, _swap_counter, _swap_latency, _candle_counter
    _registry, _quote_counter, _swap_counter, _swap_latency, _candle_counter = _build_registry()
