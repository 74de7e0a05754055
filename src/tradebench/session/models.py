"""Trading session state."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from tradebench.simulator.models import PerformanceSummary, PortfolioSnapshot, Signal, Trade
from tradebench.simulator.portfolio import PortfolioLedger
from tradebench.strategy.base import SignalSource
from tradebench.strategy.indicators import PriceSeries
from tradebench.strategy.models import StrategyDefinition


class SessionMode(str, Enum):
    PAPER = "paper"
    LIVE = "live"


class SessionStatus(str, Enum):
    ACTIVE = "ACTIVE"
    PAUSED = "PAUSED"
    STOPPED = "STOPPED"
    COMPLETED = "COMPLETED"

    @property
    def is_terminal(self) -> bool:
        return self in (SessionStatus.STOPPED, SessionStatus.COMPLETED)


class SessionEvent(str, Enum):
    SESSION_STARTED = "SESSION_STARTED"
    SESSION_PAUSED = "SESSION_PAUSED"
    SESSION_RESUMED = "SESSION_RESUMED"
    SESSION_STOPPED = "SESSION_STOPPED"
    SESSION_COMPLETED = "SESSION_COMPLETED"
    SESSION_ERROR = "SESSION_ERROR"
    TRADE_EXECUTED = "TRADE_EXECUTED"


ALLOWED_TRANSITIONS: dict[SessionStatus, frozenset[SessionStatus]] = {
    SessionStatus.ACTIVE: frozenset({SessionStatus.PAUSED, SessionStatus.STOPPED, SessionStatus.COMPLETED}),
    SessionStatus.PAUSED: frozenset({SessionStatus.ACTIVE, SessionStatus.STOPPED}),
    SessionStatus.STOPPED: frozenset(),
    SessionStatus.COMPLETED: frozenset(),
}


@dataclass(frozen=True)
class SessionRecord:
    """Persisted view of a session."""

    id: str
    owner_id: str
    mode: SessionMode
    status: SessionStatus
    strategy: str
    symbols: list[str]
    start_time: datetime
    initial_cash: float
    scheduled_end_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    final_stats: Optional[dict[str, Any]] = None
    failure_reason: Optional[str] = None


@dataclass(frozen=True)
class TickResult:
    signal: Signal
    trade: Optional[Trade]
    snapshot: PortfolioSnapshot


@dataclass
class TradingSession:
    id: str
    owner_id: str
    mode: SessionMode
    status: SessionStatus
    definition: StrategyDefinition
    symbols: list[str]
    start_time: datetime
    ledger: PortfolioLedger
    series: dict[str, PriceSeries] = field(default_factory=dict)
    sources: dict[str, SignalSource] = field(default_factory=dict)
    scheduled_end_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    bar_interval: str = "1Min"
    summary: Optional[PerformanceSummary] = None
    failure_reason: Optional[str] = None

    @property
    def strategy_name(self) -> str:
        return getattr(self.definition, "name", "custom")

    @property
    def initial_cash(self) -> float:
        return self.ledger.initial_capital

    @property
    def cash(self) -> float:
        return self.ledger.cash

    @property
    def trades(self) -> list[Trade]:
        return self.ledger.trades

    @property
    def history(self) -> list[PortfolioSnapshot]:
        return self.ledger.history

    def last_bar_time(self, symbol: str) -> Optional[datetime]:
        series = self.series.get(symbol)
        return series.last_time if series is not None else None

    def is_expired(self, now: datetime) -> bool:
        return (
            self.status == SessionStatus.ACTIVE
            and self.scheduled_end_time is not None
            and now >= self.scheduled_end_time
        )

    def to_record(self) -> SessionRecord:
        return SessionRecord(
            id=self.id,
            owner_id=self.owner_id,
            mode=self.mode,
            status=self.status,
            strategy=self.strategy_name,
            symbols=list(self.symbols),
            start_time=self.start_time,
            initial_cash=self.initial_cash,
            scheduled_end_time=self.scheduled_end_time,
            end_time=self.end_time,
            failure_reason=self.failure_reason,
        )

    def describe(self) -> dict[str, Any]:
        return {
            "session_id": self.id,
            "owner_id": self.owner_id,
            "mode": self.mode.value,
            "status": self.status.value,
            "strategy": self.strategy_name,
            "symbols": list(self.symbols),
            "start_time": self.start_time,
            "scheduled_end_time": self.scheduled_end_time,
            "end_time": self.end_time,
            "cash": self.cash,
            "trades": len(self.trades),
        }
