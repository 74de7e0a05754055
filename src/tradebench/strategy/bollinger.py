"""Bollinger band reversion strategy."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from tradebench.simulator.models import Signal
from tradebench.strategy.base import SignalSource
from tradebench.strategy.indicators import PriceSeries


@dataclass(frozen=True)
class BollingerParams:
    window: int = 20
    multiplier: float = 2.0
    ma_type: str = "SMA"

    @staticmethod
    def from_dict(data: dict) -> "BollingerParams":
        return BollingerParams(
            window=int(data.get("window", 20)),
            multiplier=float(data.get("multiplier", 2.0)),
            ma_type=str(data.get("ma_type", "SMA")).upper(),
        )


class BollingerBandsStrategy(SignalSource):
    name = "bollinger_bands"

    def __init__(self, params: BollingerParams) -> None:
        super().__init__()
        self.params = params

    @property
    def warmup_bars(self) -> int:
        return self.params.window

    def bands(self, series: PriceSeries, index: int) -> Optional[tuple[float, float, float]]:
        if self.params.ma_type != "EMA":
            return series.bollinger(self.params.window, self.params.multiplier, index)
        middle = series.ema(self.params.window, index)
        deviation = series.stddev(self.params.window, index)
        if middle is None or deviation is None:
            return None
        return middle, middle + self.params.multiplier * deviation, middle - self.params.multiplier * deviation

    def decide(self, series: PriceSeries, index: int) -> Signal:
        bands = self.bands(series, index)
        if bands is None:
            return Signal.HOLD
        _, upper, lower = bands
        close = series.closes[index]
        if self.in_position:
            return Signal.SELL if close >= upper else Signal.HOLD
        return Signal.BUY if close <= lower else Signal.HOLD


def build_bollinger_from_config(parameters: dict) -> BollingerBandsStrategy:
    return BollingerBandsStrategy(BollingerParams.from_dict(parameters))
