from __future__ import annotations

import asyncio
import time
from datetime import datetime, timedelta, timezone

import pytest

from tradebench.backtest import run_backtest
from tradebench.monitoring import AuditLog
from tradebench.runtime import AsyncSessionMonitor, MonitorConfig, SessionMonitor
from tradebench.session import ReplayMarketData, SessionManager, SessionStatus
from tradebench.simulator import PriceBar, TradeAction, TradeReason
from tradebench.strategy import BuiltInStrategy, CustomStrategy, compare


T0 = datetime(2024, 6, 3, 13, 30, tzinfo=timezone.utc)


def _definition() -> CustomStrategy:
    return CustomStrategy(buy=compare("close", "lt", 95), sell=compare("close", "gt", 105))


def _bar(minutes: int, close: float, symbol: str = "AAPL") -> PriceBar:
    return PriceBar(
        time=T0 + timedelta(minutes=minutes),
        open=close,
        high=close,
        low=close,
        close=close,
        volume=1000,
        symbol=symbol,
    )


def _manager(tmp_path) -> SessionManager:
    return SessionManager(audit_log=AuditLog(tmp_path / "audit.log"), clock=lambda: T0)


def test_expired_session_completes_with_liquidation(tmp_path):
    manager = _manager(tmp_path)
    session = manager.start_session("alice", _definition(), ["AAPL"], scheduled_end_time=T0 + timedelta(minutes=10))
    manager.tick(session.id, _bar(1, 90.0))

    monitor = SessionMonitor(manager)
    assert monitor.run_once(T0 + timedelta(minutes=5)).completed == []

    report = monitor.run_once(T0 + timedelta(minutes=15))
    assert report.completed == [session.id]
    assert session.status == SessionStatus.COMPLETED
    assert session.trades[-1].reason == TradeReason.SESSION_COMPLETE
    assert session.ledger.positions == {}


def test_every_unseen_bar_is_applied_in_order(tmp_path):
    manager = _manager(tmp_path)
    session = manager.start_session("alice", _definition(), ["AAPL"])
    market_data = ReplayMarketData({"AAPL": [_bar(1, 100.0), _bar(2, 90.0), _bar(3, 110.0)]})
    monitor = SessionMonitor(manager, market_data)

    report = monitor.run_once(T0 + timedelta(minutes=2, seconds=30))
    assert report.stepped == [session.id]
    assert session.series["AAPL"].closes == [100.0, 90.0]
    assert len(session.ledger.history) == 2
    assert session.ledger.has_position("AAPL")

    monitor.run_once(T0 + timedelta(minutes=5))
    assert session.series["AAPL"].closes == [100.0, 90.0, 110.0]
    assert not session.ledger.has_position("AAPL")

    assert monitor.run_once(T0 + timedelta(minutes=6)).stepped == []


def test_monitor_session_matches_backtest_on_same_bars(tmp_path):
    closes = [100.0] * 28
    closes[25] = 90.0
    bars = [_bar(minute + 1, close) for minute, close in enumerate(closes)]
    definition = BuiltInStrategy("mean_reversion", {"window": 20, "threshold": 0.05})
    backtest = run_backtest(definition, bars)

    manager = _manager(tmp_path)
    session = manager.start_session("alice", definition, ["AAPL"])
    SessionMonitor(manager, ReplayMarketData({"AAPL": bars})).run_once(T0 + timedelta(minutes=30))

    assert len(session.series["AAPL"]) == 28
    buy = backtest.trades[0]
    assert buy.action == TradeAction.BUY
    assert buy.time == bars[25].time
    assert [(t.time, t.action, t.quantity, t.price) for t in session.trades] == [
        (buy.time, buy.action, buy.quantity, buy.price)
    ]
    # the backtest liquidates on its final bar; every earlier snapshot agrees
    assert session.ledger.history[:27] == backtest.history[:27]


def test_one_failing_session_does_not_halt_the_scan(tmp_path):
    manager = _manager(tmp_path)
    broken = manager.start_session("alice", _definition(), ["TSLA"])
    healthy = manager.start_session("bob", _definition(), ["AAPL"])
    monitor = SessionMonitor(
        manager,
        ReplayMarketData({"AAPL": [_bar(1, 90.0)]}),
        audit_log=AuditLog(tmp_path / "audit.log"),
    )

    report = monitor.run_once(T0 + timedelta(minutes=1))

    assert report.failed == [broken.id]
    assert report.stepped == [healthy.id]
    assert broken.status == SessionStatus.ACTIVE
    events = AuditLog(tmp_path / "audit.log").read_events()
    assert "session_step_failed" in {event["event"] for event in events}


def test_invariant_failure_stops_session(tmp_path):
    manager = _manager(tmp_path)
    session = manager.start_session("alice", _definition(), ["AAPL"])
    session.ledger.cash = -1.0
    monitor = SessionMonitor(manager, ReplayMarketData({"AAPL": [_bar(1, 100.0)]}))

    report = monitor.run_once(T0 + timedelta(minutes=1))

    assert report.stopped == [session.id]
    assert session.status == SessionStatus.STOPPED


def test_paused_sessions_are_skipped(tmp_path):
    manager = _manager(tmp_path)
    session = manager.start_session("alice", _definition(), ["AAPL"], scheduled_end_time=T0)
    manager.pause_session(session.id)
    monitor = SessionMonitor(manager, ReplayMarketData({"AAPL": [_bar(1, 90.0)]}))

    report = monitor.run_once(T0 + timedelta(minutes=1))

    assert report.completed == []
    assert report.stepped == []
    assert session.status == SessionStatus.PAUSED
    assert len(session.series["AAPL"]) == 0


def test_async_monitor_completes_expired_sessions(tmp_path):
    manager = _manager(tmp_path)
    session = manager.start_session("alice", _definition(), ["AAPL"], scheduled_end_time=T0)
    monitor = SessionMonitor(
        manager,
        ReplayMarketData({"AAPL": []}),
        MonitorConfig(poll_interval_seconds=0.01, expiry_interval_seconds=0.01),
    )
    reports = []
    service = AsyncSessionMonitor(monitor, on_report=lambda name, report: reports.append((name, report)))

    async def runner() -> None:
        stop_event = asyncio.Event()
        task = asyncio.create_task(service.run_forever(stop_event))
        await asyncio.sleep(0.2)
        stop_event.set()
        await asyncio.wait_for(task, timeout=2.0)

    asyncio.run(runner())

    assert session.status == SessionStatus.COMPLETED
    assert reports[0][0] == "expiry"
    assert reports[0][1].completed == [session.id]
    assert service.cycles["step"] >= 1


def test_threaded_monitor_start_and_stop(tmp_path):
    manager = _manager(tmp_path)
    session = manager.start_session("alice", _definition(), ["AAPL"], scheduled_end_time=T0)
    monitor = SessionMonitor(manager, config=MonitorConfig(poll_interval_seconds=0.01))

    thread = monitor.start()
    deadline = time.monotonic() + 2.0
    while session.status == SessionStatus.ACTIVE and time.monotonic() < deadline:
        time.sleep(0.01)
    monitor.stop(timeout=2.0)

    assert not thread.is_alive()
    assert session.status == SessionStatus.COMPLETED


@pytest.mark.parametrize("bad_close", [0.0, -1.0])
def test_bad_bars_are_reported_not_raised(tmp_path, bad_close):
    manager = _manager(tmp_path)
    session = manager.start_session("alice", _definition(), ["AAPL"])
    monitor = SessionMonitor(manager, ReplayMarketData({"AAPL": [_bar(1, bad_close)]}))

    report = monitor.run_once(T0 + timedelta(minutes=1))

    assert report.failed == [session.id]
    assert session.status == SessionStatus.ACTIVE
