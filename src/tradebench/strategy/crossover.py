"""Moving-average crossover strategy (edge-triggered)."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from tradebench.simulator.models import Signal
from tradebench.strategy.base import SignalSource
from tradebench.strategy.indicators import PriceSeries


@dataclass(frozen=True)
class CrossoverParams:
    fast_window: int = 10
    slow_window: int = 30
    ma_type: str = "SMA"

    @staticmethod
    def from_dict(data: dict) -> "CrossoverParams":
        return CrossoverParams(
            fast_window=int(data.get("fast_window", 10)),
            slow_window=int(data.get("slow_window", 30)),
            ma_type=str(data.get("ma_type", "SMA")).upper(),
        )


class MovingAverageCrossoverStrategy(SignalSource):
    name = "moving_average_crossover"

    def __init__(self, params: CrossoverParams) -> None:
        super().__init__()
        self.params = params

    @property
    def warmup_bars(self) -> int:
        # one extra bar to see the previous relationship
        return self.params.slow_window + 1

    def _average(self, series: PriceSeries, window: int, index: int) -> Optional[float]:
        if self.params.ma_type == "EMA":
            return series.ema(window, index)
        return series.sma(window, index)

    def decide(self, series: PriceSeries, index: int) -> Signal:
        if index < 1:
            return Signal.HOLD
        fast = self._average(series, self.params.fast_window, index)
        slow = self._average(series, self.params.slow_window, index)
        prev_fast = self._average(series, self.params.fast_window, index - 1)
        prev_slow = self._average(series, self.params.slow_window, index - 1)
        if fast is None or slow is None or prev_fast is None or prev_slow is None:
            return Signal.HOLD

        if not self.in_position and prev_fast <= prev_slow and fast > slow:
            return Signal.BUY
        if self.in_position and prev_fast >= prev_slow and fast < slow:
            return Signal.SELL
        return Signal.HOLD


def build_crossover_from_config(parameters: dict) -> MovingAverageCrossoverStrategy:
    return MovingAverageCrossoverStrategy(CrossoverParams.from_dict(parameters))
