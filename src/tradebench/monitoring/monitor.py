"""Lifecycle alert routing."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from tradebench.monitoring.notifier import Notifier


@dataclass
class Monitor:
    """Forwards lifecycle events to a notifier without letting delivery failures escape."""

    notifier: Notifier
    audit_log: Optional[object] = None

    def emit(self, event: str, payload: dict[str, Any]) -> bool:
        try:
            self.notifier.notify(event, payload)
        except Exception as exc:
            if self.audit_log is not None:
                self.audit_log.log("notify_failed", {"event": event, "error": str(exc)})
            return False
        return True
