from __future__ import annotations

import argparse
import json
from dataclasses import asdict
from datetime import datetime, timezone
from pathlib import Path

from tradebench.backtest import run_backtests
from tradebench.config import compute_config_hash, load_config
from tradebench.monitoring import AuditLog
from tradebench.runtime.state_store import serialize_snapshot, serialize_trade
from tradebench.strategy.market_data import group_by_symbol, read_bars_csv


def main() -> None:
    parser = argparse.ArgumentParser(description="Replay a configured strategy over CSV bars.")
    parser.add_argument("--config", required=True)
    parser.add_argument("--bars", required=True, help="CSV with time,open,high,low,close[,volume,symbol]")
    parser.add_argument("--output", required=True)
    parser.add_argument("--symbol", default=None, help="Symbol for rows without a symbol column")
    parser.add_argument("--max-workers", type=int, default=4)
    args = parser.parse_args()

    config_path = Path(args.config)
    output_path = Path(args.output)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    config = load_config(config_path)
    config_hash = compute_config_hash(config_path)
    stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")
    run_id = f"{config.run_id_prefix}-{stamp}-{config_hash[:8]}"
    audit_log = AuditLog(config.monitoring.audit_log_path, run_id=run_id, config_hash=config_hash)

    default_symbol = args.symbol or config.symbols[0]
    series_by_symbol = group_by_symbol(read_bars_csv(args.bars, symbol=args.symbol), default_symbol)
    outcomes = run_backtests(
        config.strategy,
        series_by_symbol,
        config.backtest,
        max_workers=args.max_workers,
        audit_log=audit_log,
    )

    report = {
        "generated_at_utc": datetime.now(timezone.utc).isoformat(),
        "run_id": run_id,
        "config_path": str(config_path),
        "config_hash": config_hash,
        "results": {},
    }
    for outcome in outcomes.values():
        if outcome.result is None:
            report["results"][outcome.symbol] = {"error": outcome.error}
            continue
        result = outcome.result
        report["results"][outcome.symbol] = {
            "summary": asdict(result.summary),
            "warnings": list(result.warnings),
            "trades": [serialize_trade(trade) for trade in result.trades],
            "equity_curve": [serialize_snapshot(snapshot) for snapshot in result.history],
        }

    output_path.write_text(json.dumps(report, indent=2, default=str), encoding="utf-8")
    print(f"Wrote {output_path}")


if __name__ == "__main__":
    main()
