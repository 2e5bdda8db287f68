"""
TriggerWatcher — delivers queued trigger files to agent sessions.

Per-file states:

    pending     file exists, nobody is working on it
    processing  name is in the in-memory ``processing`` set, send in flight
    delivered   session confirmed; file deleted (and the job, if one-shot)
    failed      error reported through ``on_error``; file kept on disk

A crash while processing leaves the file untouched, so it is delivered
again by the drain on the next ``start()`` (at-least-once).

Filesystem notifications come from ``watchfiles`` (inotify/FSEvents, or
polling). One logical change can raise more than one notification, which
is why the ``processing`` set exists. The watch loop also sweeps the
directory every ``rescan_interval`` seconds to pick up files written
between the startup drain and the watcher going live.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from pathlib import Path
from typing import Callable

from watchfiles import Change, awatch

from croncue.core.bus import EventBus
from croncue.core.errors import TargetResolutionError, TriggerParseError
from croncue.core.events import Event, EventType
from croncue.core.types import EventMessage, SessionClient
from croncue.scheduler.store import JobStore
from croncue.scheduler.trigger import Trigger

logger = logging.getLogger(__name__)

ProcessedCallback = Callable[[Trigger], None]
ErrorCallback = Callable[[Exception, str], None]

RESCAN_INTERVAL = 30.0  # seconds


def _is_trigger_file(name: str) -> bool:
    return name.endswith(".json") and not name.startswith(".")


def _watch_filter(change: Change, path: str) -> bool:
    return change != Change.deleted and _is_trigger_file(Path(path).name)


class TriggerWatcher:
    """
    Sole consumer of the trigger directory.

    Usage:
        watcher = TriggerWatcher(
            data_dir / "triggers", client, store,
            default_target="tui",
            on_error=lambda err, ctx: print(ctx, err),
        )
        await watcher.start()   # returns after the startup drain
        ...
        await watcher.stop()
    """

    def __init__(
        self,
        triggers_dir: Path,
        client: SessionClient,
        store: JobStore,
        default_target: str | None = None,
        on_trigger_processed: ProcessedCallback | None = None,
        on_error: ErrorCallback | None = None,
        bus: EventBus | None = None,
        rescan_interval: float = RESCAN_INTERVAL,
        force_polling: bool | None = None,
    ) -> None:
        self._triggers_dir = Path(triggers_dir)
        self._client = client
        self._store = store
        self._default_target = default_target or None
        self._on_processed = on_trigger_processed
        self._on_error = on_error
        self._bus = bus
        self._rescan_interval = rescan_interval
        self._force_polling = force_polling

        self._processing: set[str] = set()
        self._failed: set[str] = set()  # retried by the next drain, not by rescans
        self._inflight: set[asyncio.Task] = set()
        self._stop_event = asyncio.Event()
        self._stopped = False
        self._task: asyncio.Task | None = None
        self._triggers_dir.mkdir(parents=True, exist_ok=True)

    @property
    def triggers_dir(self) -> Path:
        return self._triggers_dir

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    # ── Lifecycle ─────────────────────────────────────────────────────────────

    async def start(self) -> None:
        """Drain leftovers from a previous run, then start watching."""
        if self.is_running:
            return
        self._stopped = False
        self._stop_event.clear()
        delivered = await self.drain()
        logger.info(f"TriggerWatcher drain complete ({delivered} delivered)")
        if self._stopped:
            return
        self._task = asyncio.create_task(self._watch(), name="croncue-trigger-watcher")

    async def stop(self) -> None:
        """
        Stop accepting new triggers.

        Deliveries already in flight are not cancelled; use wait_idle() to
        wait for them.
        """
        self._stopped = True
        self._stop_event.set()
        if self._task and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None
        logger.info("TriggerWatcher stopped")

    async def wait_idle(self) -> None:
        """Wait for every delivery started by the watch loop to finish."""
        while self._inflight:
            await asyncio.gather(*list(self._inflight), return_exceptions=True)

    # ── Drain ────────────────────────────────────────────────────────────────

    def pending_files(self) -> list[str]:
        """Trigger file names currently on disk, in firing order."""
        try:
            return sorted(p.name for p in self._triggers_dir.iterdir() if _is_trigger_file(p.name))
        except FileNotFoundError:
            return []

    async def drain(self) -> int:
        """Process every pending trigger sequentially. Returns how many were delivered."""
        self._failed.clear()
        delivered = 0
        for filename in self.pending_files():
            if self._stopped:
                logger.info("TriggerWatcher stopped during drain")
                break
            if await self.process_file(filename):
                delivered += 1
        return delivered

    # ── Watch loop ───────────────────────────────────────────────────────────

    async def _watch(self) -> None:
        logger.debug(f"Watching {self._triggers_dir}")
        try:
            async for changes in awatch(
                self._triggers_dir,
                watch_filter=_watch_filter,
                stop_event=self._stop_event,
                rust_timeout=int(self._rescan_interval * 1000),
                yield_on_timeout=True,
                recursive=False,
                force_polling=self._force_polling,
            ):
                if self._stopped:
                    return
                if changes:
                    names = sorted({Path(path).name for _, path in changes})
                    # A rewritten file deserves another attempt
                    self._failed.difference_update(names)
                else:
                    names = [n for n in self.pending_files() if n not in self._failed]
                for name in names:
                    self._dispatch(name)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            if not self._stopped:
                logger.error(f"Trigger directory watch failed: {e}", exc_info=True)

    def _dispatch(self, filename: str) -> None:
        if self._stopped or filename in self._processing:
            return
        task = asyncio.create_task(self.process_file(filename), name=f"croncue-trigger:{filename}")
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)

    # ── Per-trigger processing ───────────────────────────────────────────────

    async def process_file(self, filename: str) -> bool:
        """
        Deliver one trigger file. Returns True once delivery is confirmed
        and the file has been removed.

        Never raises: every failure goes to the error callback and leaves
        the file in place.
        """
        if filename in self._processing:
            logger.debug(f"Trigger {filename} already processing, ignoring duplicate event")
            return False
        self._processing.add(filename)

        path = self._triggers_dir / filename
        try:
            try:
                raw = path.read_text(encoding="utf-8")
            except FileNotFoundError:
                return False  # delivered by someone earlier, or removed by hand

            try:
                trigger = Trigger.from_json(raw)
            except (ValueError, TypeError) as e:
                raise TriggerParseError(
                    f"Trigger {filename} is not a valid trigger record: {e}",
                    filename=filename,
                ) from e

            target = trigger.target or self._default_target
            if not target:
                raise TargetResolutionError(
                    f"Trigger {filename} has no target and no default configured",
                    filename=filename,
                )

            await self._deliver(target, trigger)

            try:
                path.unlink()
            except FileNotFoundError:
                pass

            if trigger.oneshot:
                self._store.delete(trigger.job_id)
        except Exception as e:
            self._failed.add(filename)
            self._report_error(e, f"process_file:{filename}")
            return False
        finally:
            self._processing.discard(filename)

        self._failed.discard(filename)
        self._report_processed(trigger, filename)
        return True

    async def _deliver(self, target: str, trigger: Trigger) -> None:
        """Send the prompt as an event message and wait for the session to finish."""
        message = EventMessage.cron(
            trigger.prompt,
            job_id=trigger.job_id,
            job_name=trigger.job_name,
            fired_at=trigger.fired_at_iso,
        )
        logger.info(f"Delivering trigger for job {trigger.job_id!r} to session {target!r}")
        handle = self._client.session(target).send({"messages": [message.to_dict()]})
        if inspect.isawaitable(handle):
            handle = await handle
        await handle.result

    # ── Reporting ────────────────────────────────────────────────────────────

    def _report_processed(self, trigger: Trigger, filename: str) -> None:
        logger.info(f"Trigger delivered: {filename}")
        if self._on_processed is not None:
            try:
                self._on_processed(trigger)
            except Exception as e:
                logger.warning(f"on_trigger_processed callback failed: {e}")
        self._emit(EventType.TRIGGER_DELIVERED, {"job_id": trigger.job_id, "filename": filename})

    def _report_error(self, error: Exception, context: str) -> None:
        logger.error(f"Trigger processing failed ({context}): {error}")
        if self._on_error is not None:
            try:
                self._on_error(error, context)
            except Exception as e:
                logger.warning(f"on_error callback failed: {e}")
        self._emit(EventType.TRIGGER_FAILED, {"context": context, "error": str(error)})

    def _emit(self, event_type: str, data: dict) -> None:
        if self._bus is not None:
            self._bus.emit_nowait(Event(type=event_type, data=data, source="watcher"))
