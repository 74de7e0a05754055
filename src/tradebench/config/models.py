"""Configuration models for reproducible runs."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from tradebench.backtest import BacktestParams
from tradebench.runtime.service import MonitorConfig
from tradebench.session.models import SessionMode
from tradebench.strategy.conditions import ConditionLimits
from tradebench.strategy.models import StrategyDefinition


@dataclass(frozen=True)
class SessionConfig:
    owner_id: str = "local"
    mode: SessionMode = SessionMode.PAPER
    initial_cash: float = 10000.0
    shares_per_trade: int = 100
    bar_interval: str = "1Min"
    duration_minutes: Optional[float] = None
    tiers: dict[str, str] = field(default_factory=dict)
    default_tier: str = "free"


@dataclass(frozen=True)
class MonitoringConfig:
    audit_log_path: str = "runtime/audit.log"
    state_dir: str = "runtime/sessions"
    webhook_url: Optional[str] = None
    webhook_secret: Optional[str] = None
    webhook_events: Optional[list[str]] = None


@dataclass(frozen=True)
class AppConfig:
    name: str
    version: str
    run_id_prefix: str
    symbols: list[str]
    strategy: StrategyDefinition
    backtest: BacktestParams = field(default_factory=BacktestParams)
    conditions: ConditionLimits = field(default_factory=ConditionLimits)
    session: SessionConfig = field(default_factory=SessionConfig)
    monitor: MonitorConfig = field(default_factory=MonitorConfig)
    monitoring: MonitoringConfig = field(default_factory=MonitoringConfig)
