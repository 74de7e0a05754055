"""Session lifecycle: start, pause, resume, stop, scheduled completion and per-bar ticks."""

from __future__ import annotations

import copy
import uuid
from dataclasses import asdict
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, Optional, Sequence

from tradebench.backtest import step_bar
from tradebench.errors import (
    DataError,
    EntitlementError,
    SessionConflictError,
    SimulationInvariantError,
    StateTransitionError,
    ValidationError,
)
from tradebench.monitoring.monitor import Monitor
from tradebench.monitoring.notifier import Notifier
from tradebench.session.collaborators import AllowAllEntitlements, Entitlements, SessionRepository
from tradebench.session.models import (
    ALLOWED_TRANSITIONS,
    SessionEvent,
    SessionMode,
    SessionStatus,
    TickResult,
    TradingSession,
)
from tradebench.session.store import SessionStore
from tradebench.simulator.metrics import summarize
from tradebench.simulator.models import PriceBar, RiskSettings, Trade, TradeReason
from tradebench.simulator.portfolio import PortfolioLedger
from tradebench.strategy.conditions import ConditionLimits
from tradebench.strategy.indicators import PriceSeries
from tradebench.strategy.models import StrategyDefinition
from tradebench.strategy.registry import build_signal_source


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _trade_payload(session: TradingSession, trade: Trade) -> dict[str, Any]:
    return {
        "session_id": session.id,
        "owner_id": session.owner_id,
        "symbol": trade.symbol,
        "action": trade.action.value,
        "quantity": trade.quantity,
        "price": trade.price,
        "realized_pnl": trade.realized_pnl,
        "reason": trade.reason.value,
        "time": trade.time,
    }


class SessionManager:
    def __init__(
        self,
        store: Optional[SessionStore] = None,
        repository: Optional[SessionRepository] = None,
        notifier: Optional[Notifier] = None,
        entitlements: Optional[Entitlements] = None,
        audit_log: Optional[object] = None,
        clock: Optional[Callable[[], datetime]] = None,
        condition_limits: Optional[ConditionLimits] = None,
        risk_free_rate: float = 0.02,
        periods_per_year: int = 252,
    ) -> None:
        self.store = store or SessionStore()
        self.repository = repository
        self.monitor = Monitor(notifier, audit_log) if notifier is not None else None
        self.entitlements = entitlements or AllowAllEntitlements()
        self._audit_log = audit_log
        self.clock = clock or _utcnow
        self.condition_limits = condition_limits
        self.risk_free_rate = risk_free_rate
        self.periods_per_year = periods_per_year

    def _log(self, event: str, payload: dict) -> None:
        if self._audit_log is None:
            return
        self._audit_log.log(event, payload)

    def _emit(self, event: SessionEvent, payload: dict[str, Any]) -> None:
        if self.monitor is None:
            return
        self.monitor.emit(event.value, payload)

    @staticmethod
    def _check_transition(session: TradingSession, target: SessionStatus) -> None:
        if target not in ALLOWED_TRANSITIONS[session.status]:
            raise StateTransitionError(
                f"Session {session.id} cannot move from {session.status.value} to {target.value}"
            )

    def get_session(self, session_id: str) -> TradingSession:
        return self.store.get(session_id)

    def active_session(self, owner_id: str) -> Optional[TradingSession]:
        return self.store.active_for_owner(owner_id)

    def start_session(
        self,
        owner_id: str,
        definition: StrategyDefinition,
        symbols: Sequence[str],
        mode: SessionMode = SessionMode.PAPER,
        initial_cash: float = 10000.0,
        shares_per_trade: int = 100,
        scheduled_end_time: Optional[datetime] = None,
        warmup: Optional[dict[str, Iterable[PriceBar]]] = None,
        risk: Optional[RiskSettings] = None,
        bar_interval: str = "1Min",
    ) -> TradingSession:
        symbols = list(dict.fromkeys(symbols))
        if not symbols:
            raise ValidationError("a session needs at least one symbol", "symbols")
        sources = {symbol: build_signal_source(definition, self.condition_limits) for symbol in symbols}
        ledger = PortfolioLedger(initial_cash, shares_per_trade, risk)
        warmup = warmup or {}
        series = {symbol: PriceSeries(warmup.get(symbol, ()), symbol=symbol) for symbol in symbols}
        now = self.clock()

        with self.store.lock:
            existing = self.store.active_for_owner(owner_id)
            if existing is None and self.repository is not None:
                existing = self.repository.load_active_session(owner_id)
            if existing is not None:
                raise SessionConflictError(f"Owner {owner_id} already has active session {existing.id}")
            if not self.entitlements.can_owner_start_session(owner_id, mode):
                raise EntitlementError(f"Owner {owner_id} may not start a {mode.value} session")

            session = TradingSession(
                id=uuid.uuid4().hex,
                owner_id=owner_id,
                mode=mode,
                status=SessionStatus.ACTIVE,
                definition=definition,
                symbols=symbols,
                start_time=now,
                ledger=ledger,
                series=series,
                sources=sources,
                scheduled_end_time=scheduled_end_time,
                bar_interval=bar_interval,
            )
            if self.repository is not None:
                self.repository.save_session(session.to_record())
            self.store.add(session)

        self._log("session_started", session.describe())
        self._emit(SessionEvent.SESSION_STARTED, session.describe())
        return session

    def pause_session(self, session_id: str) -> TradingSession:
        session = self.store.get(session_id)
        with self.store.lock_for(session_id):
            self._check_transition(session, SessionStatus.PAUSED)
            if self.repository is not None:
                self.repository.update_session_status(session_id, SessionStatus.PAUSED)
            session.status = SessionStatus.PAUSED
        self._log("session_paused", {"session_id": session_id})
        self._emit(SessionEvent.SESSION_PAUSED, session.describe())
        return session

    def resume_session(self, session_id: str) -> TradingSession:
        session = self.store.get(session_id)
        with self.store.lock:
            with self.store.lock_for(session_id):
                self._check_transition(session, SessionStatus.ACTIVE)
                other = self.store.active_for_owner(session.owner_id, exclude=session_id)
                if other is not None:
                    raise SessionConflictError(
                        f"Owner {session.owner_id} already has active session {other.id}"
                    )
                if self.repository is not None:
                    self.repository.update_session_status(session_id, SessionStatus.ACTIVE)
                session.status = SessionStatus.ACTIVE
        self._log("session_resumed", {"session_id": session_id})
        self._emit(SessionEvent.SESSION_RESUMED, session.describe())
        return session

    def stop_session(self, session_id: str, prices: Optional[dict[str, float]] = None) -> TradingSession:
        """Operator stop: liquidate at ``prices`` (or the last seen close) and finalize as STOPPED."""
        session = self.store.get(session_id)
        with self.store.lock_for(session_id):
            self._check_transition(session, SessionStatus.STOPPED)
            closed = self._finalize(session, SessionStatus.STOPPED, TradeReason.SESSION_STOP, prices)
        self._after_finalize(session, closed, SessionEvent.SESSION_STOPPED)
        return session

    def complete_session(self, session_id: str, now: Optional[datetime] = None) -> TradingSession:
        """Scheduled end reached: same finalization as stop, recorded as COMPLETED."""
        session = self.store.get(session_id)
        with self.store.lock_for(session_id):
            self._check_transition(session, SessionStatus.COMPLETED)
            closed = self._finalize(session, SessionStatus.COMPLETED, TradeReason.SESSION_COMPLETE, None, now)
        self._after_finalize(session, closed, SessionEvent.SESSION_COMPLETED)
        return session

    def _finalize(
        self,
        session: TradingSession,
        status: SessionStatus,
        reason: TradeReason,
        prices: Optional[dict[str, float]],
        now: Optional[datetime] = None,
    ) -> list[Trade]:
        now = now or self.clock()
        # work on a copy so a failed write leaves the session untouched
        ledger = copy.deepcopy(session.ledger)
        closed = ledger.liquidate_all(now, prices, reason)
        if closed:
            ledger.snapshot(now)
        summary = summarize(
            ledger.trades,
            ledger.history,
            ledger.initial_capital,
            self.risk_free_rate,
            self.periods_per_year,
        )
        if self.repository is not None:
            metadata = session.describe()
            metadata.update({"status": status.value, "end_time": now, "trades": len(ledger.trades)})
            self.repository.save_performance_record(summary, ledger.trades, ledger.history, metadata)
            self.repository.update_session_status(session.id, status, asdict(summary))

        session.ledger = ledger
        session.summary = summary
        session.status = status
        session.end_time = now
        return closed

    def _after_finalize(self, session: TradingSession, closed: list[Trade], event: SessionEvent) -> None:
        for trade in closed:
            self._emit(SessionEvent.TRADE_EXECUTED, _trade_payload(session, trade))
        payload = session.describe()
        if session.summary is not None:
            payload["summary"] = asdict(session.summary)
        self._log(event.value.lower(), payload)
        self._emit(event, payload)

    def _fail(self, session: TradingSession, reason: str) -> None:
        session.status = SessionStatus.STOPPED
        session.failure_reason = reason
        session.end_time = self.clock()
        if self.repository is not None:
            try:
                self.repository.update_session_status(session.id, SessionStatus.STOPPED, {"error": reason})
            except Exception as exc:
                self._log("persist_failed", {"session_id": session.id, "error": str(exc)})

    def tick(self, session_id: str, bar: PriceBar) -> Optional[TickResult]:
        """Advance an ACTIVE session by one bar. Paused sessions ignore bars."""
        session = self.store.get(session_id)
        with self.store.lock_for(session_id):
            if session.status == SessionStatus.PAUSED:
                return None
            if session.status.is_terminal:
                raise StateTransitionError(f"Session {session_id} is {session.status.value}")

            symbol = bar.symbol
            if symbol is None and len(session.symbols) == 1:
                symbol = session.symbols[0]
            if symbol not in session.series:
                raise DataError(f"Session {session_id} does not trade {bar.symbol}")
            if not bar.close > 0:
                raise DataError(f"Bar for {symbol} at {bar.time} has non-positive close {bar.close}")
            series = session.series[symbol]
            series.update(bar)

            error: Optional[SimulationInvariantError] = None
            try:
                signal, trade = step_bar(session.ledger, session.sources[symbol], series, len(series) - 1, symbol)
                snapshot = session.ledger.snapshot(bar.time)
            except SimulationInvariantError as exc:
                self._fail(session, str(exc))
                error = exc

        # notifications go out after the session lock is released
        if error is not None:
            failure = session.describe()
            failure["error"] = str(error)
            self._log("session_failed", failure)
            self._emit(SessionEvent.SESSION_ERROR, failure)
            raise error
        if trade is not None:
            payload = _trade_payload(session, trade)
            self._log("trade_executed", payload)
            self._emit(SessionEvent.TRADE_EXECUTED, payload)
        return TickResult(signal=signal, trade=trade, snapshot=snapshot)
