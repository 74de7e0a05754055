"""Portfolio simulation helpers."""

from tradebench.simulator.metrics import PROFIT_FACTOR_SENTINEL, max_drawdown, summarize
from tradebench.simulator.models import (
    PerformanceSummary,
    PortfolioSnapshot,
    PriceBar,
    RiskSettings,
    Signal,
    SimulationResult,
    Trade,
    TradeAction,
    TradeReason,
)
from tradebench.simulator.portfolio import OpenPosition, PortfolioLedger, simulate

__all__ = [
    "OpenPosition",
    "PROFIT_FACTOR_SENTINEL",
    "PerformanceSummary",
    "PortfolioLedger",
    "PortfolioSnapshot",
    "PriceBar",
    "RiskSettings",
    "Signal",
    "SimulationResult",
    "Trade",
    "TradeAction",
    "TradeReason",
    "max_drawdown",
    "simulate",
    "summarize",
]
