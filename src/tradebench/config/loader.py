"""Load configuration files."""

from __future__ import annotations

import hashlib
from dataclasses import asdict, replace
from pathlib import Path
from typing import Any, Optional

import yaml

from tradebench.backtest import BacktestParams
from tradebench.config.models import AppConfig, MonitoringConfig, SessionConfig
from tradebench.errors import ValidationError
from tradebench.runtime.service import MonitorConfig
from tradebench.session.collaborators import Tier
from tradebench.session.models import SessionMode
from tradebench.strategy.conditions import ConditionLimits, parse_condition, validate_strategy
from tradebench.strategy.models import BuiltInStrategy, CustomStrategy, StrategyDefinition
from tradebench.strategy.registry import resolve_strategy_name, validate_parameters


def load_config(path: str | Path) -> AppConfig:
    path = Path(path)
    data = _load_yaml(path)

    name = _require(data, "name")
    version = str(_require(data, "version"))
    run_id_prefix = data.get("run_id_prefix", name)
    symbols = [str(symbol) for symbol in _require(data, "symbols")]
    if not symbols:
        raise ValueError("Config must list at least one symbol")

    conditions = _parse_conditions(data.get("conditions", {}))
    strategy = parse_strategy_definition(_require(data, "strategy"), conditions)
    backtest = replace(_parse_backtest(data.get("backtest", {})), condition_limits=conditions)

    return AppConfig(
        name=name,
        version=version,
        run_id_prefix=run_id_prefix,
        symbols=symbols,
        strategy=strategy,
        backtest=backtest,
        conditions=conditions,
        session=_parse_session(data.get("session", {})),
        monitor=_parse_monitor(data.get("monitor", {})),
        monitoring=_parse_monitoring(data.get("monitoring", {})),
    )


def compute_config_hash(path: str | Path) -> str:
    path = Path(path)
    content = path.read_bytes()
    return hashlib.sha256(content).hexdigest()


def _load_yaml(path: Path) -> dict[str, Any]:
    data = yaml.safe_load(path.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError("Config must be a mapping")
    return data


def _require(data: dict[str, Any], key: str) -> Any:
    if key not in data:
        raise ValueError(f"Missing required config key: {key}")
    return data[key]


def parse_strategy_definition(data: dict[str, Any], limits: Optional[ConditionLimits] = None) -> StrategyDefinition:
    """``{name, parameters}`` selects a built-in; ``{buy, sell}`` defines a condition strategy."""
    if not isinstance(data, dict):
        raise ValidationError("strategy must be a mapping", "strategy")
    if "buy" in data or "sell" in data:
        buy = parse_condition(_require(data, "buy"), "strategy.buy")
        sell = parse_condition(_require(data, "sell"), "strategy.sell")
        validate_strategy(buy, sell, limits)
        return CustomStrategy(buy=buy, sell=sell, name=str(data.get("name", "custom")))
    name = resolve_strategy_name(str(_require(data, "name")))
    parameters = validate_parameters(name, dict(data.get("parameters") or {}))
    return BuiltInStrategy(name=name, parameters=parameters)


def _parse_conditions(data: dict[str, Any]) -> ConditionLimits:
    return ConditionLimits(
        max_depth=int(data.get("max_depth", 8)),
        max_nodes=int(data.get("max_nodes", 64)),
    )


def _parse_backtest(data: dict[str, Any]) -> BacktestParams:
    return BacktestParams.from_dict(data)


def _parse_session(data: dict[str, Any]) -> SessionConfig:
    def parse_enum(enum_cls, value: Any, key: str):
        try:
            return enum_cls(value)
        except Exception as exc:
            raise ValueError(f"Invalid {key}: {value}") from exc

    tiers = {str(owner): parse_enum(Tier, tier, "tier").value for owner, tier in data.get("tiers", {}).items()}
    duration = data.get("duration_minutes")
    return SessionConfig(
        owner_id=str(data.get("owner_id", "local")),
        mode=parse_enum(SessionMode, data.get("mode", "paper"), "session.mode"),
        initial_cash=float(data.get("initial_cash", 10000.0)),
        shares_per_trade=int(data.get("shares_per_trade", 100)),
        bar_interval=str(data.get("bar_interval", "1Min")),
        duration_minutes=float(duration) if duration is not None else None,
        tiers=tiers,
        default_tier=parse_enum(Tier, data.get("default_tier", "free"), "default_tier").value,
    )


def _parse_monitor(data: dict[str, Any]) -> MonitorConfig:
    return MonitorConfig(
        poll_interval_seconds=float(data.get("poll_interval_seconds", 60.0)),
        expiry_interval_seconds=float(data.get("expiry_interval_seconds", 60.0)),
    )


def _parse_monitoring(data: dict[str, Any]) -> MonitoringConfig:
    events = data.get("webhook_events")
    return MonitoringConfig(
        audit_log_path=str(data.get("audit_log_path", "runtime/audit.log")),
        state_dir=str(data.get("state_dir", "runtime/sessions")),
        webhook_url=data.get("webhook_url"),
        webhook_secret=data.get("webhook_secret"),
        webhook_events=[str(event) for event in events] if events is not None else None,
    )


def serialize_config(config: AppConfig) -> dict[str, Any]:
    payload = asdict(config)
    payload["session"]["mode"] = config.session.mode.value
    if isinstance(config.strategy, CustomStrategy):
        payload["strategy"] = {
            "name": config.strategy.name,
            "buy": repr(config.strategy.buy),
            "sell": repr(config.strategy.sell),
        }
    payload["monitoring"].pop("webhook_secret", None)
    return payload
