"""Mean reversion strategy: fade moves away from the rolling mean."""

from __future__ import annotations

from dataclasses import dataclass

from tradebench.simulator.models import Signal
from tradebench.strategy.base import SignalSource
from tradebench.strategy.indicators import PriceSeries


@dataclass(frozen=True)
class MeanReversionParams:
    window: int = 20
    threshold: float = 0.05

    @staticmethod
    def from_dict(data: dict) -> "MeanReversionParams":
        return MeanReversionParams(
            window=int(data.get("window", 20)),
            threshold=float(data.get("threshold", 0.05)),
        )


class MeanReversionStrategy(SignalSource):
    name = "mean_reversion"

    def __init__(self, params: MeanReversionParams) -> None:
        super().__init__()
        self.params = params

    @property
    def warmup_bars(self) -> int:
        return self.params.window

    def decide(self, series: PriceSeries, index: int) -> Signal:
        mean = series.sma(self.params.window, index)
        if mean is None or mean == 0:
            return Signal.HOLD
        deviation = (series.closes[index] - mean) / mean
        if self.in_position:
            return Signal.SELL if deviation >= self.params.threshold else Signal.HOLD
        return Signal.BUY if deviation <= -self.params.threshold else Signal.HOLD


def build_mean_reversion_from_config(parameters: dict) -> MeanReversionStrategy:
    return MeanReversionStrategy(MeanReversionParams.from_dict(parameters))
