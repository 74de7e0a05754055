"""Background session monitor: scheduled completion and per-bar stepping."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Optional

from tradebench.errors import SimulationInvariantError
from tradebench.session.collaborators import MarketDataProvider
from tradebench.session.manager import SessionManager
from tradebench.session.models import SessionStatus, TradingSession


@dataclass(frozen=True)
class MonitorConfig:
    poll_interval_seconds: float = 60.0
    expiry_interval_seconds: float = 60.0


@dataclass
class MonitorReport:
    completed: list[str] = field(default_factory=list)
    stepped: list[str] = field(default_factory=list)
    stopped: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)


class SessionMonitor:
    """Scans sessions on a fixed cadence; one session's failure never halts the scan."""

    def __init__(
        self,
        manager: SessionManager,
        market_data: Optional[MarketDataProvider] = None,
        config: Optional[MonitorConfig] = None,
        audit_log: Optional[object] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.manager = manager
        self.market_data = market_data
        self.config = config or MonitorConfig()
        self._audit_log = audit_log
        self.clock = clock or manager.clock or (lambda: datetime.now(timezone.utc))
        self._stop_event: Optional[threading.Event] = None
        self._thread: Optional[threading.Thread] = None

    def _log(self, event: str, payload: dict) -> None:
        if self._audit_log is None:
            return
        self._audit_log.log(event, payload)

    def complete_expired(self, now: Optional[datetime] = None, report: Optional[MonitorReport] = None) -> MonitorReport:
        now = now or self.clock()
        report = report or MonitorReport()
        for session in self.manager.store.with_status(SessionStatus.ACTIVE):
            if not session.is_expired(now):
                continue
            try:
                self.manager.complete_session(session.id, now=now)
            except Exception as exc:
                report.failed.append(session.id)
                self._log("session_complete_failed", {"session_id": session.id, "error": str(exc)})
                continue
            report.completed.append(session.id)
        return report

    def advance_sessions(self, now: Optional[datetime] = None, report: Optional[MonitorReport] = None) -> MonitorReport:
        now = now or self.clock()
        report = report or MonitorReport()
        if self.market_data is None:
            return report
        for session in self.manager.store.with_status(SessionStatus.ACTIVE):
            try:
                if self._advance(session, now):
                    report.stepped.append(session.id)
            except SimulationInvariantError as exc:
                # the manager already marked the session STOPPED
                report.stopped.append(session.id)
                self._log("session_stopped_on_error", {"session_id": session.id, "error": str(exc)})
            except Exception as exc:
                report.failed.append(session.id)
                self._log("session_step_failed", {"session_id": session.id, "error": str(exc)})
        return report

    def _advance(self, session: TradingSession, now: datetime) -> bool:
        """Tick every unseen bar of each symbol in time order, as a backtest would."""
        stepped = False
        for symbol in session.symbols:
            since = session.last_bar_time(symbol) or session.start_time
            bars = self.market_data.get_bars(symbol, since, now, session.bar_interval)
            fresh = sorted((bar for bar in bars if bar.time > since), key=lambda bar: bar.time)
            for bar in fresh:
                # a pause or stop from another thread ends this pass
                if session.status != SessionStatus.ACTIVE:
                    return stepped
                if self.manager.tick(session.id, bar) is not None:
                    stepped = True
        return stepped

    def run_once(self, now: Optional[datetime] = None) -> MonitorReport:
        now = now or self.clock()
        report = MonitorReport()
        self.complete_expired(now, report)
        self.advance_sessions(now, report)
        return report

    def run_forever(self, stop_event: Optional[threading.Event] = None) -> None:
        if stop_event is None:
            stop_event = threading.Event()
        while not stop_event.is_set():
            started = time.monotonic()
            try:
                self.run_once()
            except Exception as exc:  # pragma: no cover
                self._log("service_error", {"loop": "session_monitor", "error": str(exc)})
            elapsed = time.monotonic() - started
            stop_event.wait(max(0.0, self.config.poll_interval_seconds - elapsed))

    def start(self) -> threading.Thread:
        if self._thread is not None and self._thread.is_alive():
            return self._thread
        self._stop_event = threading.Event()
        self._thread = threading.Thread(
            target=self.run_forever,
            args=(self._stop_event,),
            name="session-monitor",
            daemon=True,
        )
        self._thread.start()
        return self._thread

    def stop(self, timeout: Optional[float] = None) -> None:
        """Signal the loop and wait for the current scan to finish."""
        if self._stop_event is not None:
            self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
