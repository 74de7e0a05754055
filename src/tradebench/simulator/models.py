"""Simulation data structures."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional


@dataclass(frozen=True)
class PriceBar:
    time: datetime
    open: float
    high: float
    low: float
    close: float
    volume: float = 0.0
    symbol: Optional[str] = None


class Signal(str, Enum):
    BUY = "BUY"
    SELL = "SELL"
    HOLD = "HOLD"


class TradeAction(str, Enum):
    BUY = "BUY"
    SELL = "SELL"


class TradeReason(str, Enum):
    SIGNAL = "signal"
    STOP_LOSS = "stop_loss"
    TAKE_PROFIT = "take_profit"
    END_OF_DATA = "end_of_data"
    SESSION_STOP = "session_stop"
    SESSION_COMPLETE = "session_complete"


@dataclass(frozen=True)
class Trade:
    time: datetime
    symbol: str
    action: TradeAction
    quantity: int
    price: float
    realized_pnl: Optional[float] = None  # SELL only
    reason: TradeReason = TradeReason.SIGNAL


@dataclass(frozen=True)
class PortfolioSnapshot:
    time: datetime
    cash: float
    position_quantity: int
    position_value: float
    total_value: float


@dataclass(frozen=True)
class RiskSettings:
    stop_loss_pct: Optional[float] = None
    take_profit_pct: Optional[float] = None

    @staticmethod
    def from_dict(data: dict) -> "RiskSettings":
        def optional_float(value) -> Optional[float]:
            if value is None:
                return None
            return float(value)

        return RiskSettings(
            stop_loss_pct=optional_float(data.get("stop_loss_pct")),
            take_profit_pct=optional_float(data.get("take_profit_pct")),
        )


@dataclass(frozen=True)
class PerformanceSummary:
    initial_capital: float
    final_capital: float
    total_return: float
    total_return_dollar: float
    max_drawdown: float
    win_rate: float
    total_trades: int
    winning_trades: int
    losing_trades: int
    break_even_trades: int
    round_trips: int
    avg_win: float
    avg_loss: float
    profit_factor: float
    largest_win: float
    largest_loss: float
    volatility: float
    sharpe_ratio: float
    sortino_ratio: float
    avg_trade_duration_hours: float


@dataclass(frozen=True)
class SimulationResult:
    trades: list[Trade]
    history: list[PortfolioSnapshot]
    summary: PerformanceSummary
    signals: list[Signal] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
