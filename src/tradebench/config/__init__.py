"""Config loading."""

from tradebench.config.loader import (
    compute_config_hash,
    load_config,
    parse_strategy_definition,
    serialize_config,
)
from tradebench.config.models import AppConfig, MonitoringConfig, SessionConfig

__all__ = [
    "AppConfig",
    "MonitoringConfig",
    "SessionConfig",
    "compute_config_hash",
    "load_config",
    "parse_strategy_definition",
    "serialize_config",
]
