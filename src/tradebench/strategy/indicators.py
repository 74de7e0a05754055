"""Indicator helpers over an append-only price series.

Every indicator takes an optional ``index`` and only reads bars at or before
it, so the same series can be replayed bar by bar without look-ahead. Before
an indicator's warm-up length is reached the value is ``None``.
"""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, Optional, Sequence

from tradebench.errors import DataError
from tradebench.simulator.models import PriceBar


PRICE_FIELDS = ("open", "high", "low", "close", "volume")


def _ema_over(values: Sequence[Optional[float]], window: int) -> list[Optional[float]]:
    result: list[Optional[float]] = [None] * len(values)
    start = next((idx for idx, value in enumerate(values) if value is not None), None)
    if start is None or window <= 0:
        return result
    seed_end = start + window
    if seed_end > len(values):
        return result
    ema = sum(values[start:seed_end]) / window
    result[seed_end - 1] = ema
    alpha = 2.0 / (window + 1.0)
    for idx in range(seed_end, len(values)):
        ema = alpha * values[idx] + (1.0 - alpha) * ema
        result[idx] = ema
    return result


def _rsi_from(avg_gain: float, avg_loss: float) -> float:
    if avg_loss == 0:
        return 100.0 if avg_gain > 0 else 50.0
    rs = avg_gain / avg_loss
    return 100.0 - (100.0 / (1.0 + rs))


class PriceSeries:
    def __init__(self, bars: Iterable[PriceBar] = (), symbol: Optional[str] = None) -> None:
        self.symbol = symbol
        self.bars: list[PriceBar] = []
        self.times: list[datetime] = []
        self.opens: list[float] = []
        self.highs: list[float] = []
        self.lows: list[float] = []
        self.closes: list[float] = []
        self.volumes: list[float] = []
        self._cache: dict[tuple, list[Optional[float]]] = {}
        for bar in bars:
            self.update(bar)

    def __len__(self) -> int:
        return len(self.bars)

    @property
    def last_time(self) -> Optional[datetime]:
        return self.times[-1] if self.times else None

    def update(self, bar: PriceBar) -> None:
        if self.times and bar.time <= self.times[-1]:
            raise DataError(f"Bar at {bar.time} is not after {self.times[-1]}")
        if self.symbol is None:
            self.symbol = bar.symbol
        self.bars.append(bar)
        self.times.append(bar.time)
        self.opens.append(float(bar.open))
        self.highs.append(float(bar.high))
        self.lows.append(float(bar.low))
        self.closes.append(float(bar.close))
        self.volumes.append(float(bar.volume))
        self._cache.clear()

    def _end(self, index: Optional[int]) -> int:
        if index is None:
            return len(self.closes)
        if index < 0 or index >= len(self.closes):
            raise IndexError(f"Bar index {index} out of range for series of {len(self.closes)}")
        return index + 1

    def _cached(self, key: tuple, build) -> list[Optional[float]]:
        values = self._cache.get(key)
        if values is None:
            values = build()
            self._cache[key] = values
        return values

    def field_value(self, name: str, index: Optional[int] = None) -> float:
        column = {
            "open": self.opens,
            "high": self.highs,
            "low": self.lows,
            "close": self.closes,
            "volume": self.volumes,
        }.get(name)
        if column is None:
            raise KeyError(f"Unknown price field: {name}")
        return column[self._end(index) - 1]

    def sma(self, window: int, index: Optional[int] = None) -> Optional[float]:
        end = self._end(index)
        if window <= 0 or end < window:
            return None
        return sum(self.closes[end - window : end]) / window

    def ema(self, window: int, index: Optional[int] = None) -> Optional[float]:
        end = self._end(index)
        values = self._cached(("ema", window), lambda: _ema_over(self.closes, window))
        return values[end - 1] if end else None

    def stddev(self, window: int, index: Optional[int] = None) -> Optional[float]:
        end = self._end(index)
        if window <= 0 or end < window:
            return None
        slice_ = self.closes[end - window : end]
        mean = sum(slice_) / window
        variance = sum((value - mean) ** 2 for value in slice_) / window
        return variance**0.5

    def bollinger(
        self, window: int, multiplier: float, index: Optional[int] = None
    ) -> Optional[tuple[float, float, float]]:
        mean = self.sma(window, index)
        deviation = self.stddev(window, index)
        if mean is None or deviation is None:
            return None
        upper = mean + multiplier * deviation
        lower = mean - multiplier * deviation
        return mean, upper, lower

    def _rsi_values(self, period: int) -> list[Optional[float]]:
        closes = self.closes
        result: list[Optional[float]] = [None] * len(closes)
        if period <= 0 or len(closes) < period + 1:
            return result
        gains = 0.0
        losses = 0.0
        for idx in range(1, period + 1):
            delta = closes[idx] - closes[idx - 1]
            if delta > 0:
                gains += delta
            else:
                losses -= delta
        avg_gain = gains / period
        avg_loss = losses / period
        result[period] = _rsi_from(avg_gain, avg_loss)
        for idx in range(period + 1, len(closes)):
            delta = closes[idx] - closes[idx - 1]
            gain = delta if delta > 0 else 0.0
            loss = -delta if delta < 0 else 0.0
            avg_gain = (avg_gain * (period - 1) + gain) / period
            avg_loss = (avg_loss * (period - 1) + loss) / period
            result[idx] = _rsi_from(avg_gain, avg_loss)
        return result

    def rsi(self, period: int, index: Optional[int] = None) -> Optional[float]:
        end = self._end(index)
        values = self._cached(("rsi", period), lambda: self._rsi_values(period))
        return values[end - 1] if end else None

    def _macd_line(self, fast: int, slow: int) -> list[Optional[float]]:
        def build() -> list[Optional[float]]:
            fast_values = _ema_over(self.closes, fast)
            slow_values = _ema_over(self.closes, slow)
            return [
                f - s if f is not None and s is not None else None
                for f, s in zip(fast_values, slow_values)
            ]

        return self._cached(("macd", fast, slow), build)

    def _macd_signal(self, fast: int, slow: int, signal: int) -> list[Optional[float]]:
        return self._cached(
            ("macd_signal", fast, slow, signal),
            lambda: _ema_over(self._macd_line(fast, slow), signal),
        )

    def macd(self, fast: int, slow: int, index: Optional[int] = None) -> Optional[float]:
        end = self._end(index)
        return self._macd_line(fast, slow)[end - 1] if end else None

    def macd_signal(self, fast: int, slow: int, signal: int, index: Optional[int] = None) -> Optional[float]:
        end = self._end(index)
        return self._macd_signal(fast, slow, signal)[end - 1] if end else None

    def macd_histogram(self, fast: int, slow: int, signal: int, index: Optional[int] = None) -> Optional[float]:
        line = self.macd(fast, slow, index)
        signal_value = self.macd_signal(fast, slow, signal, index)
        if line is None or signal_value is None:
            return None
        return line - signal_value

    def vwap(self, period: Optional[int] = None, index: Optional[int] = None) -> Optional[float]:
        end = self._end(index)
        if end == 0:
            return None
        if period is None:
            start = 0
        else:
            if end < period:
                return None
            start = end - period
        weighted, volumes = self._vwap_sums()
        volume = volumes[end] - volumes[start]
        if volume == 0:
            return None
        return (weighted[end] - weighted[start]) / volume

    def _vwap_sums(self) -> tuple[list[float], list[float]]:
        """Running typical-price x volume and volume totals; entry ``k`` covers bars ``[0, k)``."""

        def build(column: str) -> list[float]:
            sums = [0.0]
            for high, low, close, volume in zip(self.highs, self.lows, self.closes, self.volumes):
                value = (high + low + close) / 3.0 * volume if column == "weighted" else volume
                sums.append(sums[-1] + value)
            return sums

        return (
            self._cached(("vwap", "weighted"), lambda: build("weighted")),
            self._cached(("vwap", "volume"), lambda: build("volume")),
        )

    def momentum(self, window: int, index: Optional[int] = None) -> Optional[float]:
        end = self._end(index)
        if window <= 0 or end < window + 1:
            return None
        base = self.closes[end - 1 - window]
        if base == 0:
            return None
        return (self.closes[end - 1] - base) / base

    def prior_high(self, window: int, index: Optional[int] = None) -> Optional[float]:
        """Highest close over the ``window`` bars before ``index`` (current bar excluded)."""
        end = self._end(index)
        if window <= 0 or end < window + 1:
            return None
        return max(self.closes[end - 1 - window : end - 1])

    def prior_average_volume(self, window: int, index: Optional[int] = None) -> Optional[float]:
        end = self._end(index)
        if window <= 0 or end < window + 1:
            return None
        return sum(self.volumes[end - 1 - window : end - 1]) / window
