"""Performance statistics over a finished trade log and snapshot series."""

from __future__ import annotations

from datetime import datetime
from typing import Sequence

from tradebench.simulator.models import PerformanceSummary, PortfolioSnapshot, Trade, TradeAction

# reported instead of infinity when there are winning trades and no losing ones
PROFIT_FACTOR_SENTINEL = 1_000_000.0


def max_drawdown(history: Sequence[PortfolioSnapshot], initial_capital: float) -> float:
    peak = initial_capital
    worst = 0.0
    for snapshot in history:
        value = snapshot.total_value
        if value > peak:
            peak = value
        if peak > 0:
            worst = max(worst, (peak - value) / peak)
    return worst


def period_returns(history: Sequence[PortfolioSnapshot], initial_capital: float) -> list[float]:
    returns = []
    previous = initial_capital
    for snapshot in history:
        if previous > 0:
            returns.append(snapshot.total_value / previous - 1.0)
        previous = snapshot.total_value
    return returns


def _stddev(values: Sequence[float]) -> float:
    if len(values) < 2:
        return 0.0
    mean = sum(values) / len(values)
    variance = sum((value - mean) ** 2 for value in values) / len(values)
    return variance**0.5


def average_trade_duration_hours(trades: Sequence[Trade]) -> float:
    opened: dict[str, datetime] = {}
    durations = []
    for trade in trades:
        if trade.action == TradeAction.BUY:
            opened[trade.symbol] = trade.time
        elif trade.symbol in opened:
            entry = opened.pop(trade.symbol)
            durations.append((trade.time - entry).total_seconds() / 3600.0)
    if not durations:
        return 0.0
    return sum(durations) / len(durations)


def summarize(
    trades: Sequence[Trade],
    history: Sequence[PortfolioSnapshot],
    initial_capital: float,
    risk_free_rate: float = 0.02,
    periods_per_year: int = 252,
) -> PerformanceSummary:
    """Win/loss counts come from SELL trades; BUY legs count as break-even."""
    final_capital = history[-1].total_value if history else initial_capital
    total_return_dollar = final_capital - initial_capital
    total_return = total_return_dollar / initial_capital if initial_capital else 0.0

    closed = [trade.realized_pnl for trade in trades if trade.action == TradeAction.SELL and trade.realized_pnl is not None]
    wins = [pnl for pnl in closed if pnl > 0]
    losses = [pnl for pnl in closed if pnl < 0]
    gross_win = sum(wins)
    gross_loss = abs(sum(losses))

    if gross_loss > 0:
        profit_factor = gross_win / gross_loss
    elif gross_win > 0:
        profit_factor = PROFIT_FACTOR_SENTINEL
    else:
        profit_factor = 0.0

    returns = period_returns(history, initial_capital)
    annualizer = periods_per_year**0.5
    volatility = _stddev(returns) * annualizer
    sharpe = (total_return - risk_free_rate) / volatility if volatility > 0 else 0.0
    downside = [value for value in returns if value < 0]
    downside_deviation = (sum(value * value for value in downside) / len(returns)) ** 0.5 * annualizer if returns else 0.0
    sortino = (total_return - risk_free_rate) / downside_deviation if downside_deviation > 0 else 0.0

    return PerformanceSummary(
        initial_capital=float(initial_capital),
        final_capital=final_capital,
        total_return=total_return,
        total_return_dollar=total_return_dollar,
        max_drawdown=max_drawdown(history, initial_capital),
        win_rate=len(wins) / len(closed) if closed else 0.0,
        total_trades=len(trades),
        winning_trades=len(wins),
        losing_trades=len(losses),
        break_even_trades=len(trades) - len(wins) - len(losses),
        round_trips=len(closed),
        avg_win=gross_win / len(wins) if wins else 0.0,
        avg_loss=gross_loss / len(losses) if losses else 0.0,
        profit_factor=profit_factor,
        largest_win=max(wins, default=0.0),
        largest_loss=min(losses, default=0.0),
        volatility=volatility,
        sharpe_ratio=sharpe,
        sortino_ratio=sortino,
        avg_trade_duration_hours=average_trade_duration_hours(trades),
    )
