from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from statistics import mean, median
from typing import Deque, Dict


@dataclass(slots=True)
class ConfirmationSample:
    transaction_hash: str
    latency_ms: float


class ConfirmationLatencyTracker:
    """Rolling window of submit-to-receipt latencies for recent swaps."""

    def __init__(self, maxlen: int = 500) -> None:
        self._samples: Deque[ConfirmationSample] = deque(maxlen=maxlen)

    def record(self, transaction_hash: str, latency_ms: float) -> None:
        self._samples.append(ConfirmationSample(transaction_hash, latency_ms))

    def stats(self) -> Dict[str, float | str] | None:
        if not self._samples:
            return None
        values = [sample.latency_ms for sample in self._samples]
        ordered = sorted(values)
        p95_index = min(len(ordered) - 1, int(round(0.95 * (len(ordered) - 1))))
        return {
            "count": float(len(values)),
            "avg_ms": mean(values),
            "median_ms": median(values),
            "p95_ms": ordered[p95_index],
            "max_ms": ordered[-1],
            "latest_ms": values[-1],
            "latest_tx": self._samples[-1].transaction_hash,
        }

    def reset(self) -> None:
        self._samples.clear()


_confirmation_latency = ConfirmationLatencyTracker()


def record_swap_confirmation_latency(transaction_hash: str, latency_ms: float) -> None:
    _confirmation_latency.record(transaction_hash, latency_ms)


def get_swap_confirmation_latency_stats() -> Dict[str, float | str] | None:
    return _confirmation_latency.stats()


def reset_swap_confirmation_latency() -> None:  # pragma: no cover - test helper
    _confirmation_latency.reset()
