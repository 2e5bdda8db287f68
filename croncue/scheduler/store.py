"""
JobStore — file-per-job persistence for scheduled jobs.

Dir: <data_dir>/jobs/  (one pretty-printed JSON file per job)

    jobs/standup-reminder.json
    jobs/heartbeat.json

All jobs are loaded into memory on construction. Every mutation writes the
file first and only then updates the in-memory map, so a failed write never
leaves memory and disk disagreeing. The store is synchronous and meant to
be touched from a single event loop only; it is the sole writer of job
files.
"""

from __future__ import annotations

import json
import logging
import os
import re
import secrets
import string
from dataclasses import replace
from pathlib import Path
from typing import Any

from croncue.core.bus import EventBus
from croncue.core.errors import DuplicateJobError, StorageError, ValidationError
from croncue.core.events import Event, EventType
from croncue.scheduler import cron
from croncue.scheduler.job import MUTABLE_FIELDS, Job, utc_now

logger = logging.getLogger(__name__)

MAX_SLUG_LENGTH = 48
MAX_SUFFIX = 1000  # "-2" … "-999" before falling back to a random id

_ID_ALPHABET = string.ascii_lowercase + string.digits
_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def slugify(name: str) -> str:
    """'Standup Reminder!' -> 'standup-reminder'"""
    slug = _NON_ALNUM.sub("-", name.lower()).strip("-")
    return slug[:MAX_SLUG_LENGTH]


def random_id(length: int = 8) -> str:
    return "".join(secrets.choice(_ID_ALPHABET) for _ in range(length))


def check_id(job_id: str) -> str:
    """Job ids name files under jobs/, so they must stay inside it."""
    if not job_id or job_id.startswith(".") or any(c in job_id for c in "/\\\0"):
        raise ValidationError(f"Invalid job id {job_id!r}")
    return job_id


def atomic_write(path: Path, text: str) -> None:
    """Write via a hidden temp file + fsync + rename so readers never see
    half a file and the record survives a crash once this returns.

    Raises:
        StorageError: if the file could not be written.
    """
    tmp = path.with_name(f".{path.name}.tmp")
    try:
        with open(tmp, "w", encoding="utf-8") as f:
            f.write(text)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp, path)
    except OSError as e:
        try:
            tmp.unlink()
        except OSError:
            pass
        raise StorageError(f"Failed to write {path}: {e}", path=str(path)) from e


class JobStore:
    """
    In-memory job map backed by one JSON file per job.

    Usage:
        store = JobStore(data_dir / "jobs", bus=bus)

        job = store.create(name="standup reminder", schedule="0 9 * * 1-5",
                           target="tui", prompt="remind")
        store.update(job.id, enabled=False)
        store.delete(job.id)
    """

    def __init__(self, jobs_dir: Path, bus: EventBus | None = None) -> None:
        self._jobs_dir = Path(jobs_dir)
        self._bus = bus
        self._jobs: dict[str, Job] = {}
        self._jobs_dir.mkdir(parents=True, exist_ok=True)
        self._load()

    @property
    def jobs_dir(self) -> Path:
        return self._jobs_dir

    # ── Read ─────────────────────────────────────────────────────────────────

    def list(self) -> list[Job]:
        return list(self._jobs.values())

    def list_enabled(self) -> list[Job]:
        return [j for j in self._jobs.values() if j.enabled]

    def get(self, job_id: str) -> Job | None:
        return self._jobs.get(job_id)

    # ── Write ────────────────────────────────────────────────────────────────

    def create(
        self,
        name: str,
        schedule: str,
        prompt: str,
        target: str = "",
        oneshot: bool = False,
        enabled: bool = True,
        metadata: dict[str, Any] | None = None,
        id: str | None = None,
    ) -> Job:
        """
        Create and persist a job.

        Raises:
            DuplicateJobError: an explicit ``id`` is already taken.
            ValidationError: an explicit ``id`` is not a plain file name.
            InvalidScheduleError: ``schedule`` is not a valid cron expression.
            StorageError: the job file could not be written (nothing is kept).
        """
        cron.validate(schedule)
        if id is not None:
            check_id(id)
            if id in self._jobs:
                raise DuplicateJobError(id)
        job_id = id if id is not None else self._generate_id(name)

        job = Job(
            id=job_id,
            name=name,
            schedule=schedule,
            prompt=prompt,
            target=target,
            oneshot=oneshot,
            enabled=enabled,
            created_at=utc_now(),
            metadata=dict(metadata or {}),
        )
        self._save(job)
        self._jobs[job_id] = job
        logger.info(f"Job created: {job_id!r} ({schedule})")
        self._notify(EventType.JOB_CREATED, job_id)
        return job

    def update(self, job_id: str, **updates: Any) -> Job | None:
        """
        Merge ``updates`` into a job and persist the full record.

        Only name, schedule, target, prompt, oneshot, enabled, last_fired_at
        and metadata may change. Returns None (and changes nothing) if the
        job does not exist.

        Raises:
            ValueError: an unknown or immutable field was passed.
            InvalidScheduleError: the new schedule is not valid.
            StorageError: the write failed (the previous version is kept).
        """
        unknown = set(updates) - MUTABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update job fields: {', '.join(sorted(unknown))}")

        current = self._jobs.get(job_id)
        if current is None:
            return None

        if "schedule" in updates:
            cron.validate(updates["schedule"])
        if "metadata" in updates:
            updates["metadata"] = dict(updates["metadata"] or {})

        merged = replace(current, **updates)
        self._save(merged)
        self._jobs[job_id] = merged
        logger.debug(f"Job updated: {job_id!r} fields={sorted(updates)}")
        self._notify(EventType.JOB_UPDATED, job_id)
        return merged

    def delete(self, job_id: str) -> bool:
        """
        Remove a job and its file. Returns False if there was no such job.

        Raises:
            StorageError: the file exists but could not be removed.
        """
        if job_id not in self._jobs:
            return False
        path = self._path_for(job_id)
        try:
            path.unlink()
        except FileNotFoundError:
            pass  # already gone
        except OSError as e:
            raise StorageError(f"Failed to delete {path}: {e}", path=str(path)) from e
        del self._jobs[job_id]
        logger.info(f"Job deleted: {job_id!r}")
        self._notify(EventType.JOB_DELETED, job_id)
        return True

    # ── Helpers ──────────────────────────────────────────────────────────────

    def _generate_id(self, name: str) -> str:
        base = slugify(name)
        if not base:
            return self._unused_random_id()
        if base not in self._jobs:
            return base
        for i in range(2, MAX_SUFFIX):
            candidate = f"{base}-{i}"
            if candidate not in self._jobs:
                return candidate
        return f"{base}-{self._unused_random_id()}"

    def _unused_random_id(self) -> str:
        while True:
            candidate = random_id()
            if candidate not in self._jobs:
                return candidate

    def _path_for(self, job_id: str) -> Path:
        return self._jobs_dir / f"{job_id}.json"

    def _save(self, job: Job) -> None:
        text = json.dumps(job.to_dict(), indent=2, ensure_ascii=False) + "\n"
        atomic_write(self._path_for(job.id), text)

    def _load(self) -> None:
        for path in sorted(self._jobs_dir.glob("*.json")):
            try:
                job = Job.from_dict(json.loads(path.read_text(encoding="utf-8")))
            except (OSError, ValueError, TypeError) as e:
                logger.warning(f"Skipping malformed job file {path.name}: {e}")
                continue
            self._jobs[job.id] = job
        logger.debug(f"JobStore loaded {len(self._jobs)} job(s) from {self._jobs_dir}")

    def _notify(self, event_type: str, job_id: str) -> None:
        if self._bus is not None:
            self._bus.emit_nowait(Event(type=event_type, data={"job_id": job_id}, source="store"))
