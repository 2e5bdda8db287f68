"""
Heartbeat job — a standing job that keeps nudging the agent about its
heartbeat file.

When the job fires, the evaluator reads the file named by
``metadata["heartbeatFile"]`` and appends its contents to the prompt. An
empty or missing file means there is nothing to review, so that firing is
skipped.
"""

from __future__ import annotations

import logging
from typing import Any

from croncue.scheduler.job import Job
from croncue.scheduler.store import JobStore

logger = logging.getLogger(__name__)

HEARTBEAT_JOB_ID = "heartbeat"
DEFAULT_CRON = "*/5 * * * *"
DEFAULT_TARGET = "tui"
DEFAULT_FILE = ".croncue/HEARTBEAT.md"
HEARTBEAT_PROMPT = (
    "[heartbeat] Review your heartbeat file and act on any due, prioritized, or in-progress work."
)


def create_heartbeat_job(
    cron: str | None = None,
    target: str | None = None,
    heartbeat_file: str | None = None,
) -> dict[str, Any]:
    """Keyword arguments for JobStore.create() describing the heartbeat job."""
    return {
        "name": "heartbeat",
        "schedule": cron or DEFAULT_CRON,
        "target": target or DEFAULT_TARGET,
        "prompt": HEARTBEAT_PROMPT,
        "oneshot": False,
        "enabled": True,
        "metadata": {"heartbeatFile": heartbeat_file or DEFAULT_FILE},
    }


def ensure_heartbeat_job(
    store: JobStore,
    cron: str | None = None,
    target: str | None = None,
    heartbeat_file: str | None = None,
) -> Job:
    """Return the heartbeat job, creating it on first call.

    An existing heartbeat job is returned as-is; the arguments only apply
    when it is created.
    """
    existing = store.get(HEARTBEAT_JOB_ID)
    if existing is not None:
        return existing
    job = store.create(
        id=HEARTBEAT_JOB_ID,
        **create_heartbeat_job(cron=cron, target=target, heartbeat_file=heartbeat_file),
    )
    logger.info(f"Heartbeat job created ({job.schedule} → {job.target})")
    return job
