from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class Candle:
    time: int
    open: float
    high: float
    low: float
    close: float
    volume: float | None = None

    @classmethod
    def from_mapping(cls, payload: dict) -> "Candle":
        volume = payload.get("volume")
        return cls(
            time=int(payload["time"]),
            open=float(payload["open"]),
            high=float(payload["high"]),
            low=float(payload["low"]),
            close=float(payload["close"]),
            volume=float(volume) if volume is not None else None,
        )

    def as_dict(self) -> dict[str, float | int | None]:
        return {
            "time": self.time,
            "open": self.open,
            "high": self.high,
            "low": self.low,
            "close": self.close,
            "volume": self.volume,
        }


@dataclass(slots=True)
class LinePoint:
    time: int
    value: float


@dataclass(slots=True)
class VolumeBar:
    time: int
    value: float
    up: bool
