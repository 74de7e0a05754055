"""Runtime loops and persistence."""

from tradebench.runtime.async_service import AsyncSessionMonitor
from tradebench.runtime.service import MonitorConfig, MonitorReport, SessionMonitor
from tradebench.runtime.state_store import JsonSessionRepository, serialize_snapshot, serialize_trade

__all__ = [
    "AsyncSessionMonitor",
    "JsonSessionRepository",
    "MonitorConfig",
    "MonitorReport",
    "SessionMonitor",
    "serialize_snapshot",
    "serialize_trade",
]
