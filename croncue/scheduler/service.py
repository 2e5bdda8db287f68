"""
CronService — wires the job store, the evaluator and the trigger watcher
over one data directory.

    <data_dir>/
      jobs/       one JSON file per job     (JobStore)
      triggers/   one JSON file per firing  (SchedulerEngine writes,
                                             TriggerWatcher consumes)

Usage:
    service = CronService(data_dir, client, default_target="tui")
    await service.start()
    service.ensure_heartbeat()
    ...
    await service.stop()
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from croncue.core.bus import EventBus
from croncue.core.events import Event, EventType
from croncue.core.types import SessionClient
from croncue.logging import EventLogger
from croncue.scheduler.engine import TICK_INTERVAL, SchedulerEngine
from croncue.scheduler.heartbeat import ensure_heartbeat_job
from croncue.scheduler.job import Job
from croncue.scheduler.store import JobStore
from croncue.scheduler.watcher import (
    RESCAN_INTERVAL,
    ErrorCallback,
    ProcessedCallback,
    TriggerWatcher,
)

if TYPE_CHECKING:
    from croncue.core.config import CronCueConfig

logger = logging.getLogger(__name__)


class CronService:
    """Facade over JobStore, SchedulerEngine and TriggerWatcher."""

    def __init__(
        self,
        data_dir: Path | str,
        client: SessionClient,
        default_target: str | None = None,
        on_trigger_processed: ProcessedCallback | None = None,
        on_error: ErrorCallback | None = None,
        bus: EventBus | None = None,
        tick_interval: float = TICK_INTERVAL,
        timezone: str | None = None,
        rescan_interval: float = RESCAN_INTERVAL,
    ) -> None:
        self.data_dir = Path(data_dir).expanduser()
        self.bus = bus
        self.store = JobStore(self.data_dir / "jobs", bus=bus)
        self.engine = SchedulerEngine(
            self.store,
            self.data_dir / "triggers",
            tick_interval=tick_interval,
            timezone=timezone,
            bus=bus,
        )
        self.watcher = TriggerWatcher(
            self.data_dir / "triggers",
            client,
            self.store,
            default_target=default_target,
            on_trigger_processed=on_trigger_processed,
            on_error=on_error,
            bus=bus,
            rescan_interval=rescan_interval,
        )

    @classmethod
    def from_config(
        cls,
        config: CronCueConfig,
        client: SessionClient,
        on_trigger_processed: ProcessedCallback | None = None,
        on_error: ErrorCallback | None = None,
        bus: EventBus | None = None,
    ) -> CronService:
        sched = config.scheduler
        if bus is not None and config.logging.event_log:
            EventLogger(log_dir=Path(config.logging.log_dir)).attach(bus)
        service = cls(
            sched.data_path,
            client,
            default_target=sched.default_target,
            on_trigger_processed=on_trigger_processed,
            on_error=on_error,
            bus=bus,
            tick_interval=sched.tick_interval,
            timezone=sched.timezone,
            rescan_interval=sched.rescan_interval,
        )
        hb = config.heartbeat
        if hb.enabled:
            service.ensure_heartbeat(cron=hb.cron, target=hb.target, heartbeat_file=hb.file)
        return service

    async def start(self) -> None:
        """Start the evaluator, then drain pending triggers and begin watching."""
        await self.engine.start()
        await self.watcher.start()
        logger.info(f"CronService started ({self.data_dir})")
        self._emit(EventType.SCHEDULER_START)

    async def stop(self) -> None:
        """Stop the watcher, then the evaluator. In-flight deliveries keep running."""
        await self.watcher.stop()
        await self.engine.stop()
        logger.info("CronService stopped")
        self._emit(EventType.SCHEDULER_STOP)

    def ensure_heartbeat(
        self,
        cron: str | None = None,
        target: str | None = None,
        heartbeat_file: str | None = None,
    ) -> Job:
        """Idempotent: an existing heartbeat job is returned unchanged."""
        return ensure_heartbeat_job(
            self.store, cron=cron, target=target, heartbeat_file=heartbeat_file
        )

    def _emit(self, event_type: str) -> None:
        if self.bus is not None:
            self.bus.emit_nowait(
                Event(type=event_type, data={"data_dir": str(self.data_dir)}, source="service")
            )
