from __future__ import annotations

import argparse
import asyncio
import json
from datetime import datetime, timedelta, timezone
from pathlib import Path

from tradebench.config import compute_config_hash, load_config
from tradebench.monitoring import AuditLog, LogNotifier, Notifier, WebhookNotifier
from tradebench.runtime import AsyncSessionMonitor, JsonSessionRepository, SessionMonitor
from tradebench.session import ReplayMarketData, SessionManager, SessionStore, Tier, TierEntitlements
from tradebench.strategy.market_data import group_by_symbol, read_bars_csv


class _Clock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


def _build_notifier(config) -> Notifier:
    monitoring = config.monitoring
    if monitoring.webhook_url and monitoring.webhook_secret:
        events = set(monitoring.webhook_events) if monitoring.webhook_events is not None else None
        return WebhookNotifier(monitoring.webhook_url, monitoring.webhook_secret, events=events)
    return LogNotifier()


def main() -> None:
    parser = argparse.ArgumentParser(description="Run a paper session against replayed or polled bars.")
    parser.add_argument("--config", required=True)
    parser.add_argument("--bars", required=True, help="CSV with time,open,high,low,close[,volume,symbol]")
    parser.add_argument("--warmup-bars", type=int, default=0, help="Leading bars per symbol used as history")
    parser.add_argument("--live", action="store_true", help="Poll on the wall clock instead of replaying")
    args = parser.parse_args()

    config_path = Path(args.config)
    config = load_config(config_path)
    config_hash = compute_config_hash(config_path)
    stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")
    run_id = f"{config.run_id_prefix}-{stamp}-{config_hash[:8]}"
    audit_log = AuditLog(config.monitoring.audit_log_path, run_id=run_id, config_hash=config_hash)

    bars_by_symbol = group_by_symbol(read_bars_csv(args.bars), config.symbols[0])
    warmup = {symbol: bars[: args.warmup_bars] for symbol, bars in bars_by_symbol.items()}
    replay = {symbol: bars[args.warmup_bars :] for symbol, bars in bars_by_symbol.items()}
    market_data = ReplayMarketData(replay)

    pending = sorted({bar.time for bars in replay.values() for bar in bars})
    if args.live or not pending:
        clock = _Clock(datetime.now(timezone.utc))
    else:
        clock = _Clock(pending[0] - timedelta(seconds=1))

    store = SessionStore()
    entitlements = TierEntitlements(
        store,
        tiers=config.session.tiers,
        default_tier=Tier(config.session.default_tier),
    )
    manager = SessionManager(
        store=store,
        repository=JsonSessionRepository(config.monitoring.state_dir),
        notifier=_build_notifier(config),
        entitlements=entitlements,
        audit_log=audit_log,
        clock=clock,
        condition_limits=config.conditions,
        risk_free_rate=config.backtest.risk_free_rate,
        periods_per_year=config.backtest.periods_per_year,
    )
    scheduled_end = None
    if config.session.duration_minutes is not None:
        scheduled_end = clock() + timedelta(minutes=config.session.duration_minutes)

    session = manager.start_session(
        owner_id=config.session.owner_id,
        definition=config.strategy,
        symbols=[symbol for symbol in config.symbols if symbol in bars_by_symbol],
        mode=config.session.mode,
        initial_cash=config.session.initial_cash,
        shares_per_trade=config.session.shares_per_trade,
        scheduled_end_time=scheduled_end,
        warmup=warmup,
        risk=config.backtest.risk,
        bar_interval=config.session.bar_interval,
    )
    monitor = SessionMonitor(manager, market_data, config.monitor, audit_log=audit_log, clock=clock)

    if args.live:
        clock_source = lambda: datetime.now(timezone.utc)  # noqa: E731
        monitor.clock = clock_source
        manager.clock = clock_source
        try:
            asyncio.run(AsyncSessionMonitor(monitor, audit_log=audit_log).run_forever())
        except KeyboardInterrupt:
            pass
    else:
        for bar_time in pending:
            clock.now = bar_time
            monitor.run_once(bar_time)
            if session.status.is_terminal:
                break

    if not session.status.is_terminal:
        manager.stop_session(session.id)
    print(json.dumps(session.describe(), indent=2, default=str))


if __name__ == "__main__":
    main()
