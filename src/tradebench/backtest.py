"""Backtest entry points: replay a strategy definition over historical bars."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Optional, Sequence

from tradebench.errors import DataError, TradebenchError
from tradebench.simulator.metrics import summarize
from tradebench.simulator.models import PriceBar, RiskSettings, Signal, SimulationResult, Trade
from tradebench.simulator.portfolio import DEFAULT_SYMBOL, PortfolioLedger
from tradebench.strategy.base import SignalSource
from tradebench.strategy.conditions import ConditionLimits
from tradebench.strategy.indicators import PriceSeries
from tradebench.strategy.models import StrategyDefinition
from tradebench.strategy.registry import build_signal_source


@dataclass(frozen=True)
class BacktestParams:
    initial_capital: float = 10000.0
    shares_per_trade: int = 100
    risk: RiskSettings = field(default_factory=RiskSettings)
    risk_free_rate: float = 0.02
    periods_per_year: int = 252
    condition_limits: ConditionLimits = field(default_factory=ConditionLimits)

    @staticmethod
    def from_dict(data: dict) -> "BacktestParams":
        return BacktestParams(
            initial_capital=float(data.get("initial_capital", 10000.0)),
            shares_per_trade=int(data.get("shares_per_trade", 100)),
            risk=RiskSettings.from_dict(data),
            risk_free_rate=float(data.get("risk_free_rate", 0.02)),
            periods_per_year=int(data.get("periods_per_year", 252)),
        )


@dataclass(frozen=True)
class BacktestOutcome:
    symbol: str
    result: Optional[SimulationResult] = None
    error: Optional[str] = None


def step_bar(
    ledger: PortfolioLedger,
    source: SignalSource,
    series: PriceSeries,
    index: int,
    symbol: Optional[str] = None,
) -> tuple[Signal, Optional[Trade]]:
    """Evaluate bar ``index`` and apply at most one trade. Used by backtests and sessions alike."""
    symbol = symbol or series.symbol or DEFAULT_SYMBOL
    source.sync_position(ledger.has_position(symbol))
    signal = source.next_signal(series, index)
    trade = ledger.apply(series.bars[index], signal, symbol)
    return signal, trade


def _as_series(series: PriceSeries | Sequence[PriceBar], symbol: Optional[str]) -> PriceSeries:
    if isinstance(series, PriceSeries):
        return series
    return PriceSeries(series, symbol=symbol)


def _log(audit_log: Optional[object], event: str, payload: dict) -> None:
    if audit_log is None:
        return
    audit_log.log(event, payload)


def run_backtest(
    definition: StrategyDefinition,
    series: PriceSeries | Sequence[PriceBar],
    params: Optional[BacktestParams] = None,
    symbol: Optional[str] = None,
    audit_log: Optional[object] = None,
) -> SimulationResult:
    params = params or BacktestParams()
    source = build_signal_source(definition, params.condition_limits)
    series = _as_series(series, symbol)
    if len(series) == 0:
        raise DataError("Cannot backtest an empty price series")
    if len(series) < source.warmup_bars:
        raise DataError(
            f"{len(series)} bars is shorter than the {source.warmup_bars}-bar warm-up of {source.name}"
        )

    ledger = PortfolioLedger(params.initial_capital, params.shares_per_trade, params.risk)
    source.reset()
    signals: list[Signal] = []
    last = len(series) - 1
    for index, bar in enumerate(series.bars):
        signal, _ = step_bar(ledger, source, series, index, symbol)
        signals.append(signal)
        if index == last:
            ledger.liquidate_all(bar.time)
        ledger.snapshot(bar.time)

    summary = summarize(
        ledger.trades,
        ledger.history,
        params.initial_capital,
        params.risk_free_rate,
        params.periods_per_year,
    )
    _log(
        audit_log,
        "backtest_completed",
        {
            "strategy": source.name,
            "symbol": symbol or series.symbol,
            "bars": len(series),
            "trades": summary.total_trades,
            "total_return": summary.total_return,
        },
    )
    return SimulationResult(
        trades=list(ledger.trades),
        history=list(ledger.history),
        summary=summary,
        signals=signals,
        warnings=list(getattr(source, "warnings", [])),
    )


def run_backtests(
    definition: StrategyDefinition,
    series_by_symbol: dict[str, PriceSeries | Sequence[PriceBar]],
    params: Optional[BacktestParams] = None,
    max_workers: int = 4,
    audit_log: Optional[object] = None,
) -> dict[str, BacktestOutcome]:
    """Backtest independent symbols in parallel; data problems are reported per symbol."""
    params = params or BacktestParams()
    build_signal_source(definition, params.condition_limits)

    def run_one(symbol: str) -> BacktestOutcome:
        try:
            result = run_backtest(definition, series_by_symbol[symbol], params, symbol, audit_log)
        except TradebenchError as exc:
            _log(audit_log, "backtest_failed", {"symbol": symbol, "error": str(exc)})
            return BacktestOutcome(symbol=symbol, error=str(exc))
        return BacktestOutcome(symbol=symbol, result=result)

    with ThreadPoolExecutor(max_workers=max_workers) as pool:
        outcomes = list(pool.map(run_one, sorted(series_by_symbol)))
    return {outcome.symbol: outcome for outcome in outcomes}
