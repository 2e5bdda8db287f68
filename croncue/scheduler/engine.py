"""
SchedulerEngine — the background asyncio task that decides which jobs are due.

Design:
- Ticks every ``tick_interval`` seconds (well under a minute, so no
  calendar minute is slept through)
- Each calendar minute is evaluated at most once: the last evaluated
  minute is remembered, so a delayed or jittery loop never fires the same
  job twice for the same due instant
- For each enabled job whose cron expression matches the minute, a Trigger
  file is written to ``triggers/``. Firing ends there: delivery is the
  TriggerWatcher's job
- A job with a broken cron expression is skipped; the others still fire
- No missed-minute replay: minutes that passed while the process was down
  are not fired retroactively
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone as dt_timezone, tzinfo
from pathlib import Path
from zoneinfo import ZoneInfo

from croncue.core.bus import EventBus
from croncue.core.errors import CronCueError, InvalidScheduleError
from croncue.core.events import Event, EventType
from croncue.scheduler.cron import CronSchedule
from croncue.scheduler.job import Job
from croncue.scheduler.store import JobStore, atomic_write
from croncue.scheduler.trigger import Trigger

logger = logging.getLogger(__name__)

TICK_INTERVAL = 15.0  # seconds between due-job checks

HEARTBEAT_SEPARATOR = "\n\n---\n\n"


class SchedulerEngine:
    """
    Background evaluator. Sole writer of trigger files.

    Usage:
        engine = SchedulerEngine(store, data_dir / "triggers")
        await engine.start()
        ...
        await engine.stop()

    ``tick()`` can also be called directly with an explicit instant, which
    is what the tests do.
    """

    def __init__(
        self,
        store: JobStore,
        triggers_dir: Path,
        tick_interval: float = TICK_INTERVAL,
        timezone: str | None = None,
        bus: EventBus | None = None,
    ) -> None:
        self._store = store
        self._triggers_dir = Path(triggers_dir)
        self._tick_interval = tick_interval
        self._tz: tzinfo | None = ZoneInfo(timezone) if timezone else None
        self._bus = bus
        self._task: asyncio.Task | None = None
        self._running = False
        self._last_minute: datetime | None = None
        self._triggers_dir.mkdir(parents=True, exist_ok=True)

    @property
    def triggers_dir(self) -> Path:
        return self._triggers_dir

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        """Start the background tick loop."""
        if self.is_running:
            return
        self._running = True
        self._task = asyncio.create_task(self._loop(), name="croncue-scheduler")
        logger.info(f"SchedulerEngine started (tick every {self._tick_interval}s)")

    async def stop(self) -> None:
        """Stop the loop. A tick that is mid-write finishes first."""
        self._running = False
        if self._task and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None
        logger.info("SchedulerEngine stopped")

    # ── Internal loop ─────────────────────────────────────────────────────────

    async def _loop(self) -> None:
        while self._running:
            try:
                self.tick()
            except Exception as e:
                logger.warning(f"Scheduler tick error (non-fatal): {e}")
            await asyncio.sleep(self._tick_interval)

    def _now(self) -> datetime:
        if self._tz is not None:
            return datetime.now(self._tz)
        return datetime.now().astimezone()

    def tick(self, now: datetime | None = None) -> list[Trigger]:
        """
        Evaluate the minute containing ``now`` (default: current time).

        Returns the triggers written. Returns [] if that minute was already
        evaluated.
        """
        now = now or self._now()
        if now.tzinfo is None:
            now = now.replace(tzinfo=self._tz or dt_timezone.utc)
        elif self._tz is not None:
            now = now.astimezone(self._tz)
        minute = now.replace(second=0, microsecond=0)

        if self._last_minute is not None and minute <= self._last_minute:
            return []
        self._last_minute = minute

        fired: list[Trigger] = []
        for job in self._store.list_enabled():
            try:
                if not CronSchedule(job.schedule).matches(minute):
                    continue
            except InvalidScheduleError:
                logger.warning(f"Job {job.id!r} has an invalid cron expression, skipping: {job.schedule!r}")
                continue

            try:
                trigger = self._fire(job, now)
            except CronCueError as e:
                logger.error(f"Failed to fire job {job.id!r}: {e}")
                continue
            if trigger is not None:
                fired.append(trigger)

        if fired:
            logger.debug(f"Minute {minute.isoformat()}: fired {len(fired)} job(s)")
        return fired

    # ── Firing ────────────────────────────────────────────────────────────────

    def _fire(self, job: Job, now: datetime) -> Trigger | None:
        """Persist a trigger for ``job``. Returns None if the firing is skipped."""
        prompt = job.prompt
        if job.heartbeat_file:
            contents = _read_heartbeat_file(job.heartbeat_file)
            if not contents:
                logger.debug(f"Job {job.id!r}: heartbeat file missing or empty, skipping")
                return None
            prompt = f"{prompt}{HEARTBEAT_SEPARATOR}{contents}"

        trigger = Trigger.from_job(job, fired_at=now, prompt=prompt)
        path = self._triggers_dir / trigger.filename
        atomic_write(path, trigger.to_json())
        logger.info(f"Trigger written for job {job.id!r}: {path.name}")

        # Optimistic: delivery has not happened yet
        try:
            self._store.update(job.id, last_fired_at=now)
        except CronCueError as e:
            logger.warning(f"Could not record lastFiredAt for {job.id!r}: {e}")

        if self._bus is not None:
            self._bus.emit_nowait(
                Event(
                    type=EventType.TRIGGER_WRITTEN,
                    data={"job_id": job.id, "filename": path.name},
                    source="scheduler",
                )
            )
        return trigger


def _read_heartbeat_file(path: str) -> str | None:
    try:
        return Path(path).expanduser().read_text(encoding="utf-8").strip() or None
    except (OSError, UnicodeDecodeError):
        return None
