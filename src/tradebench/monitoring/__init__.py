"""Monitoring exports."""

from tradebench.monitoring.audit import AuditLog
from tradebench.monitoring.monitor import Monitor
from tradebench.monitoring.notifier import LogNotifier, Notifier, WebhookNotifier, http_transport, sign_payload

__all__ = [
    "AuditLog",
    "LogNotifier",
    "Monitor",
    "Notifier",
    "WebhookNotifier",
    "http_transport",
    "sign_payload",
]
