"""Signal source interface shared by built-in and custom strategies."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from tradebench.simulator.models import Signal
from tradebench.strategy.indicators import PriceSeries


class SignalSource(ABC):
    name: str = "signal_source"

    def __init__(self) -> None:
        self.in_position = False
        self.entry_index: Optional[int] = None

    @property
    @abstractmethod
    def warmup_bars(self) -> int:
        raise NotImplementedError

    @abstractmethod
    def decide(self, series: PriceSeries, index: int) -> Signal:
        """Raw decision for bar ``index`` given the current ``in_position`` state."""
        raise NotImplementedError

    def next_signal(self, series: PriceSeries, index: int) -> Signal:
        signal = self.decide(series, index)
        if signal == Signal.BUY:
            if self.in_position:
                return Signal.HOLD
            self.in_position = True
            self.entry_index = index
        elif signal == Signal.SELL:
            if not self.in_position:
                return Signal.HOLD
            self.in_position = False
            self.entry_index = None
        return signal

    def sync_position(self, in_position: bool, entry_index: Optional[int] = None) -> None:
        """Align the tracked position with the portfolio (skipped buys, risk exits)."""
        if in_position == self.in_position:
            return
        self.in_position = in_position
        self.entry_index = entry_index if in_position else None

    def reset(self) -> None:
        self.in_position = False
        self.entry_index = None


def generate_signals(source: SignalSource, series: PriceSeries) -> list[Signal]:
    source.reset()
    return [source.next_signal(series, index) for index in range(len(series))]
