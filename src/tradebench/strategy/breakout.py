"""Breakout strategy: enter on a volume-confirmed break of the prior range high."""

from __future__ import annotations

from dataclasses import dataclass

from tradebench.simulator.models import Signal
from tradebench.strategy.base import SignalSource
from tradebench.strategy.indicators import PriceSeries


@dataclass(frozen=True)
class BreakoutParams:
    lookback_window: int = 20
    breakout_threshold: float = 0.01
    min_volume_ratio: float = 1.5
    confirmation_period: int = 2

    @staticmethod
    def from_dict(data: dict) -> "BreakoutParams":
        return BreakoutParams(
            lookback_window=int(data.get("lookback_window", 20)),
            breakout_threshold=float(data.get("breakout_threshold", 0.01)),
            min_volume_ratio=float(data.get("min_volume_ratio", 1.5)),
            confirmation_period=int(data.get("confirmation_period", 2)),
        )


class BreakoutStrategy(SignalSource):
    name = "breakout"

    def __init__(self, params: BreakoutParams) -> None:
        super().__init__()
        self.params = params

    @property
    def warmup_bars(self) -> int:
        return self.params.lookback_window + 1

    def decide(self, series: PriceSeries, index: int) -> Signal:
        if self.in_position:
            if self.entry_index is None:
                return Signal.SELL
            bars_held = index - self.entry_index
            return Signal.SELL if bars_held >= self.params.confirmation_period else Signal.HOLD

        resistance = series.prior_high(self.params.lookback_window, index)
        average_volume = series.prior_average_volume(self.params.lookback_window, index)
        if resistance is None or average_volume is None or average_volume <= 0:
            return Signal.HOLD
        close = series.closes[index]
        volume = series.volumes[index]
        if close > resistance * (1.0 + self.params.breakout_threshold):
            if volume >= self.params.min_volume_ratio * average_volume:
                return Signal.BUY
        return Signal.HOLD


def build_breakout_from_config(parameters: dict) -> BreakoutStrategy:
    return BreakoutStrategy(BreakoutParams.from_dict(parameters))
