"""Cash-constrained portfolio ledger shared by backtests and live sessions."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Sequence

from tradebench.errors import DataError, SimulationInvariantError, ValidationError
from tradebench.simulator.metrics import summarize
from tradebench.simulator.models import (
    PortfolioSnapshot,
    PriceBar,
    RiskSettings,
    Signal,
    SimulationResult,
    Trade,
    TradeAction,
    TradeReason,
)

DEFAULT_SYMBOL = "UNKNOWN"
CASH_TOLERANCE = 1e-9


@dataclass
class OpenPosition:
    symbol: str
    quantity: int
    entry_price: float
    entry_time: datetime


class PortfolioLedger:
    """Whole-share, long-only, one open position per symbol, shared cash."""

    def __init__(
        self,
        initial_capital: float,
        shares_per_trade: int,
        risk: Optional[RiskSettings] = None,
    ) -> None:
        if isinstance(initial_capital, bool) or not initial_capital > 0:
            raise ValidationError(f"initial capital must be positive, got {initial_capital!r}", "initial_capital")
        if isinstance(shares_per_trade, bool) or int(shares_per_trade) != shares_per_trade or shares_per_trade < 1:
            raise ValidationError(
                f"shares per trade must be a positive integer, got {shares_per_trade!r}",
                "shares_per_trade",
            )
        self.initial_capital = float(initial_capital)
        self.shares_per_trade = int(shares_per_trade)
        self.risk = risk or RiskSettings()
        self.cash = float(initial_capital)
        self.positions: dict[str, OpenPosition] = {}
        self.last_prices: dict[str, float] = {}
        self.trades: list[Trade] = []
        self.history: list[PortfolioSnapshot] = []
        self._open_in_log: set[str] = set()

    def has_position(self, symbol: str) -> bool:
        return symbol in self.positions

    @property
    def position_quantity(self) -> int:
        return sum(position.quantity for position in self.positions.values())

    @property
    def position_value(self) -> float:
        return sum(
            position.quantity * self.last_prices.get(symbol, position.entry_price)
            for symbol, position in self.positions.items()
        )

    def equity(self) -> float:
        return self.cash + self.position_value

    def _record(self, trade: Trade) -> Trade:
        if trade.action == TradeAction.BUY:
            if trade.symbol in self._open_in_log:
                raise SimulationInvariantError(f"BUY {trade.symbol} while a position is already open")
        else:
            if trade.symbol not in self._open_in_log:
                raise SimulationInvariantError(f"SELL {trade.symbol} without an open BUY")
            if trade.realized_pnl is None:
                raise SimulationInvariantError(f"SELL {trade.symbol} without realized P&L")
        if trade.action == TradeAction.BUY:
            self._open_in_log.add(trade.symbol)
        else:
            self._open_in_log.discard(trade.symbol)
        self.trades.append(trade)
        return trade

    def buy(
        self,
        symbol: str,
        price: float,
        time: datetime,
        reason: TradeReason = TradeReason.SIGNAL,
    ) -> Optional[Trade]:
        if symbol in self.positions:
            return None
        if not price > 0:
            raise DataError(f"Cannot buy {symbol} at non-positive price {price}")
        quantity = min(self.shares_per_trade, math.floor(self.cash / price))
        if quantity <= 0:
            return None
        self.cash -= quantity * price
        self.positions[symbol] = OpenPosition(symbol, quantity, price, time)
        self.last_prices[symbol] = price
        return self._record(Trade(time, symbol, TradeAction.BUY, quantity, price, None, reason))

    def sell(
        self,
        symbol: str,
        price: float,
        time: datetime,
        reason: TradeReason = TradeReason.SIGNAL,
    ) -> Optional[Trade]:
        position = self.positions.pop(symbol, None)
        if position is None:
            return None
        self.cash += position.quantity * price
        self.last_prices[symbol] = price
        pnl = (price - position.entry_price) * position.quantity
        return self._record(Trade(time, symbol, TradeAction.SELL, position.quantity, price, pnl, reason))

    def check_exits(self, symbol: str, price: float, time: datetime) -> Optional[Trade]:
        position = self.positions.get(symbol)
        if position is None:
            return None
        stop_loss = self.risk.stop_loss_pct
        take_profit = self.risk.take_profit_pct
        if stop_loss is not None and price <= position.entry_price * (1.0 - stop_loss):
            return self.sell(symbol, price, time, TradeReason.STOP_LOSS)
        if take_profit is not None and price >= position.entry_price * (1.0 + take_profit):
            return self.sell(symbol, price, time, TradeReason.TAKE_PROFIT)
        return None

    def apply(self, bar: PriceBar, signal: Signal, symbol: Optional[str] = None) -> Optional[Trade]:
        """Apply at most one trade for ``bar``: a risk exit wins over the signal."""
        symbol = symbol or bar.symbol or DEFAULT_SYMBOL
        self.last_prices[symbol] = bar.close
        trade = self.check_exits(symbol, bar.close, bar.time)
        if trade is not None:
            return trade
        if signal == Signal.BUY:
            return self.buy(symbol, bar.close, bar.time)
        if signal == Signal.SELL:
            return self.sell(symbol, bar.close, bar.time)
        return None

    def liquidate_all(
        self,
        time: datetime,
        prices: Optional[dict[str, float]] = None,
        reason: TradeReason = TradeReason.END_OF_DATA,
    ) -> list[Trade]:
        prices = prices or {}
        closed = []
        for symbol in sorted(self.positions):
            price = prices.get(symbol, self.last_prices.get(symbol))
            if price is None:
                raise SimulationInvariantError(f"No price to liquidate {symbol}")
            trade = self.sell(symbol, price, time, reason)
            if trade is not None:
                closed.append(trade)
        return closed

    def check_invariants(self) -> None:
        if self.cash < -CASH_TOLERANCE:
            raise SimulationInvariantError(f"Negative cash balance {self.cash:.6f}")
        for symbol, position in self.positions.items():
            if position.quantity <= 0:
                raise SimulationInvariantError(f"Non-positive position {position.quantity} in {symbol}")
        if set(self.positions) != self._open_in_log:
            raise SimulationInvariantError("Trade log does not match open positions")

    def snapshot(self, time: datetime) -> PortfolioSnapshot:
        self.check_invariants()
        position_value = self.position_value
        snapshot = PortfolioSnapshot(
            time=time,
            cash=self.cash,
            position_quantity=self.position_quantity,
            position_value=position_value,
            total_value=self.cash + position_value,
        )
        self.history.append(snapshot)
        return snapshot


def simulate(
    signals: Sequence[Signal],
    series: Sequence[PriceBar],
    initial_capital: float,
    shares_per_trade: int,
    risk: Optional[RiskSettings] = None,
    symbol: Optional[str] = None,
    risk_free_rate: float = 0.02,
    periods_per_year: int = 252,
) -> SimulationResult:
    """Turn a precomputed signal stream into trades, snapshots and a summary."""
    bars = list(getattr(series, "bars", series))
    if not bars:
        raise DataError("Cannot simulate an empty price series")
    if len(signals) != len(bars):
        raise DataError(f"Got {len(signals)} signals for {len(bars)} bars")

    ledger = PortfolioLedger(initial_capital, shares_per_trade, risk)
    last = len(bars) - 1
    for index, (bar, signal) in enumerate(zip(bars, signals)):
        ledger.apply(bar, signal, symbol)
        if index == last:
            ledger.liquidate_all(bar.time)
        ledger.snapshot(bar.time)

    summary = summarize(ledger.trades, ledger.history, initial_capital, risk_free_rate, periods_per_year)
    return SimulationResult(
        trades=list(ledger.trades),
        history=list(ledger.history),
        summary=summary,
        signals=list(signals),
    )
