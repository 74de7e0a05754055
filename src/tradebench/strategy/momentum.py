"""Momentum strategy confirmed by RSI."""

from __future__ import annotations

from dataclasses import dataclass

from tradebench.simulator.models import Signal
from tradebench.strategy.base import SignalSource
from tradebench.strategy.indicators import PriceSeries


@dataclass(frozen=True)
class MomentumParams:
    rsi_window: int = 14
    rsi_overbought: float = 70.0
    rsi_oversold: float = 30.0
    momentum_window: int = 10
    momentum_threshold: float = 0.02

    @staticmethod
    def from_dict(data: dict) -> "MomentumParams":
        return MomentumParams(
            rsi_window=int(data.get("rsi_window", 14)),
            rsi_overbought=float(data.get("rsi_overbought", 70.0)),
            rsi_oversold=float(data.get("rsi_oversold", 30.0)),
            momentum_window=int(data.get("momentum_window", 10)),
            momentum_threshold=float(data.get("momentum_threshold", 0.02)),
        )


class MomentumStrategy(SignalSource):
    """RSI and price momentum must agree before any signal.

    Entries: an oversold RSI with any positive momentum (a bounce), or
    momentum above the threshold while RSI is not overbought. Exit: momentum
    below the negative threshold while RSI is not oversold.
    """

    name = "momentum"

    def __init__(self, params: MomentumParams) -> None:
        super().__init__()
        self.params = params

    @property
    def warmup_bars(self) -> int:
        return max(self.params.rsi_window, self.params.momentum_window) + 1

    def decide(self, series: PriceSeries, index: int) -> Signal:
        rsi_value = series.rsi(self.params.rsi_window, index)
        momentum = series.momentum(self.params.momentum_window, index)
        if rsi_value is None or momentum is None:
            return Signal.HOLD

        threshold = self.params.momentum_threshold
        if self.in_position:
            if momentum <= -threshold and rsi_value > self.params.rsi_oversold:
                return Signal.SELL
            return Signal.HOLD
        if rsi_value <= self.params.rsi_oversold and momentum > 0:
            return Signal.BUY
        if momentum >= threshold and rsi_value < self.params.rsi_overbought:
            return Signal.BUY
        return Signal.HOLD


def build_momentum_from_config(parameters: dict) -> MomentumStrategy:
    return MomentumStrategy(MomentumParams.from_dict(parameters))
