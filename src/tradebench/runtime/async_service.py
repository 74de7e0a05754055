"""Asyncio-based scheduling for the session monitor."""

from __future__ import annotations

import asyncio
import inspect
from typing import Awaitable, Callable, Optional

from tradebench.runtime.service import MonitorConfig, MonitorReport, SessionMonitor


ReportHook = Callable[[str, MonitorReport], Awaitable[None] | None]


class AsyncSessionMonitor:
    """Runs expiry checks and session stepping as two periodic tasks until ``stop_event`` is set.

    Each pass runs in a worker thread so a slow repository or market-data
    call never blocks the event loop. ``on_report`` receives every report
    that touched at least one session.
    """

    def __init__(
        self,
        monitor: SessionMonitor,
        config: Optional[MonitorConfig] = None,
        audit_log: Optional[object] = None,
        on_report: Optional[ReportHook] = None,
    ) -> None:
        self.monitor = monitor
        self.config = config or monitor.config
        self.on_report = on_report
        self.cycles: dict[str, int] = {"expiry": 0, "step": 0}
        self.last_reports: dict[str, MonitorReport] = {}
        self._audit_log = audit_log

    def _log(self, event: str, payload: dict) -> None:
        if self._audit_log is None:
            return
        self._audit_log.log(event, payload)

    async def _publish(self, loop_name: str, report: MonitorReport) -> None:
        self.cycles[loop_name] += 1
        self.last_reports[loop_name] = report
        if not (report.completed or report.stepped or report.stopped or report.failed):
            return
        self._log(
            "monitor_cycle",
            {
                "loop": loop_name,
                "completed": report.completed,
                "stepped": report.stepped,
                "stopped": report.stopped,
                "failed": report.failed,
            },
        )
        if self.on_report is not None:
            result = self.on_report(loop_name, report)
            if inspect.isawaitable(result):
                await result

    async def _run_periodic(
        self,
        name: str,
        interval: float,
        task: Callable[[], MonitorReport],
        stop_event: asyncio.Event,
    ) -> None:
        loop = asyncio.get_running_loop()
        while not stop_event.is_set():
            started = loop.time()
            try:
                report = await asyncio.to_thread(task)
                await self._publish(name, report)
            except Exception as exc:
                # one bad pass must not end the loop; the next interval retries
                self._log("service_error", {"loop": name, "error": str(exc)})
            delay = max(0.0, interval - (loop.time() - started))
            if delay:
                try:
                    await asyncio.wait_for(stop_event.wait(), timeout=delay)
                except asyncio.TimeoutError:
                    pass

    async def run_forever(self, stop_event: Optional[asyncio.Event] = None) -> None:
        if stop_event is None:
            stop_event = asyncio.Event()

        loops = (
            ("expiry", self.config.expiry_interval_seconds, self.monitor.complete_expired),
            ("step", self.config.poll_interval_seconds, self.monitor.advance_sessions),
        )
        async with asyncio.TaskGroup() as group:
            for name, interval, task in loops:
                group.create_task(self._run_periodic(name, interval, task, stop_event))
            await stop_event.wait()
