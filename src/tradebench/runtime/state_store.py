"""Persist session records and finished performance reports as JSON files."""

from __future__ import annotations

import json
import threading
from dataclasses import asdict
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional, Sequence

from tradebench.errors import PersistenceError
from tradebench.session.collaborators import SessionRepository
from tradebench.session.models import SessionMode, SessionRecord, SessionStatus
from tradebench.simulator.models import PerformanceSummary, PortfolioSnapshot, Trade


def _parse_dt(value: Optional[str]) -> Optional[datetime]:
    if value is None:
        return None
    if value.endswith("Z"):
        value = value.replace("Z", "+00:00")
    return datetime.fromisoformat(value)


def _serialize_dt(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return value.isoformat()


def serialize_trade(trade: Trade) -> dict[str, Any]:
    return {
        "time": _serialize_dt(trade.time),
        "symbol": trade.symbol,
        "action": trade.action.value,
        "quantity": trade.quantity,
        "price": trade.price,
        "realized_pnl": trade.realized_pnl,
        "reason": trade.reason.value,
    }


def serialize_snapshot(snapshot: PortfolioSnapshot) -> dict[str, Any]:
    return {
        "time": _serialize_dt(snapshot.time),
        "cash": snapshot.cash,
        "position_quantity": snapshot.position_quantity,
        "position_value": snapshot.position_value,
        "total_value": snapshot.total_value,
    }


def _record_to_dict(record: SessionRecord) -> dict[str, Any]:
    return {
        "id": record.id,
        "owner_id": record.owner_id,
        "mode": record.mode.value,
        "status": record.status.value,
        "strategy": record.strategy,
        "symbols": list(record.symbols),
        "start_time": _serialize_dt(record.start_time),
        "initial_cash": record.initial_cash,
        "scheduled_end_time": _serialize_dt(record.scheduled_end_time),
        "end_time": _serialize_dt(record.end_time),
        "final_stats": record.final_stats,
        "failure_reason": record.failure_reason,
    }


def _record_from_dict(data: dict[str, Any]) -> SessionRecord:
    return SessionRecord(
        id=data["id"],
        owner_id=data["owner_id"],
        mode=SessionMode(data.get("mode", "paper")),
        status=SessionStatus(data["status"]),
        strategy=str(data.get("strategy", "")),
        symbols=list(data.get("symbols", [])),
        start_time=_parse_dt(data["start_time"]) or datetime.now(timezone.utc),
        initial_cash=float(data.get("initial_cash", 0.0)),
        scheduled_end_time=_parse_dt(data.get("scheduled_end_time")),
        end_time=_parse_dt(data.get("end_time")),
        final_stats=data.get("final_stats"),
        failure_reason=data.get("failure_reason"),
    )


class JsonSessionRepository(SessionRepository):
    """One file per session id under ``root/sessions`` and ``root/performance``; rewrites are upserts."""

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)
        self.sessions_dir = self.root / "sessions"
        self.performance_dir = self.root / "performance"
        self._lock = threading.Lock()

    def _write(self, path: Path, payload: dict[str, Any]) -> None:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            # readers see either the previous file or the complete new one
            staging = path.with_suffix(".tmp")
            staging.write_text(json.dumps(payload, indent=2, default=str), encoding="utf-8")
            staging.replace(path)
        except OSError as exc:
            raise PersistenceError(f"Failed to write {path}: {exc}") from exc

    def _read(self, path: Path) -> Optional[dict[str, Any]]:
        if not path.exists():
            return None
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise PersistenceError(f"Failed to read {path}: {exc}") from exc

    def save_session(self, record: SessionRecord) -> None:
        with self._lock:
            self._write(self.sessions_dir / f"{record.id}.json", _record_to_dict(record))

    def load_session(self, session_id: str) -> Optional[SessionRecord]:
        data = self._read(self.sessions_dir / f"{session_id}.json")
        return _record_from_dict(data) if data is not None else None

    def update_session_status(
        self,
        session_id: str,
        status: SessionStatus,
        final_stats: Optional[dict[str, Any]] = None,
    ) -> None:
        path = self.sessions_dir / f"{session_id}.json"
        with self._lock:
            data = self._read(path)
            if data is None:
                raise PersistenceError(f"Unknown session {session_id}")
            data["status"] = status.value
            if status.is_terminal:
                data["end_time"] = _serialize_dt(datetime.now(timezone.utc))
            if final_stats is not None:
                data["final_stats"] = final_stats
                if "error" in final_stats:
                    data["failure_reason"] = final_stats["error"]
            self._write(path, data)

    def load_active_session(self, owner_id: str) -> Optional[SessionRecord]:
        if not self.sessions_dir.exists():
            return None
        for path in sorted(self.sessions_dir.glob("*.json")):
            data = self._read(path)
            if data and data.get("owner_id") == owner_id and data.get("status") == SessionStatus.ACTIVE.value:
                return _record_from_dict(data)
        return None

    def save_performance_record(
        self,
        summary: PerformanceSummary,
        trades: Sequence[Trade],
        history: Sequence[PortfolioSnapshot],
        metadata: dict[str, Any],
    ) -> None:
        session_id = metadata.get("session_id")
        if not session_id:
            raise PersistenceError("Performance record metadata needs a session_id")
        payload = {
            "metadata": metadata,
            "summary": asdict(summary),
            "trades": [serialize_trade(trade) for trade in trades],
            "history": [serialize_snapshot(snapshot) for snapshot in history],
        }
        with self._lock:
            self._write(self.performance_dir / f"{session_id}.json", payload)

    def load_performance_record(self, session_id: str) -> Optional[dict[str, Any]]:
        return self._read(self.performance_dir / f"{session_id}.json")
