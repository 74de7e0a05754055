"""Signal source backed by buy/sell condition trees."""

from __future__ import annotations

from typing import Optional

from tradebench.simulator.models import Signal
from tradebench.strategy.base import SignalSource
from tradebench.strategy.conditions import ConditionLimits, ConditionNode, evaluate, validate_strategy, warmup_bars
from tradebench.strategy.indicators import PriceSeries


class ConditionStrategy(SignalSource):
    name = "custom"

    def __init__(
        self,
        buy: ConditionNode,
        sell: ConditionNode,
        limits: Optional[ConditionLimits] = None,
    ) -> None:
        super().__init__()
        self.warnings = validate_strategy(buy, sell, limits)
        self.buy = buy
        self.sell = sell

    @property
    def warmup_bars(self) -> int:
        return max(warmup_bars(self.buy), warmup_bars(self.sell))

    def decide(self, series: PriceSeries, index: int) -> Signal:
        # only the side that can act is evaluated, so SELL wins while long and BUY while flat
        if self.in_position:
            return Signal.SELL if evaluate(self.sell, series, index) else Signal.HOLD
        return Signal.BUY if evaluate(self.buy, series, index) else Signal.HOLD
