"""
Trigger — the queued fact "job X is due now".

The evaluator writes one trigger per firing into ``triggers/`` and the
watcher deletes it once the session has confirmed delivery. Everything the
watcher needs is copied from the job at fire time, so editing the job
afterwards does not change a trigger that is already queued.

File names are ``<firedAt epoch ms>-<job id>.json``: unique per firing and
sorted in firing order.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from croncue.scheduler.job import Job, format_timestamp, parse_flag, parse_timestamp


@dataclass
class Trigger:
    job_id: str
    job_name: str
    target: str
    prompt: str
    fired_at: datetime | None
    oneshot: bool = False

    @classmethod
    def from_job(cls, job: Job, fired_at: datetime, prompt: str | None = None) -> "Trigger":
        return cls(
            job_id=job.id,
            job_name=job.name,
            target=job.target,
            prompt=job.prompt if prompt is None else prompt,
            fired_at=fired_at,
            oneshot=job.oneshot,
        )

    @property
    def filename(self) -> str:
        if self.fired_at is None:
            raise ValueError("trigger has no fire time")
        return f"{int(self.fired_at.timestamp() * 1000)}-{self.job_id}.json"

    @property
    def fired_at_iso(self) -> str:
        return format_timestamp(self.fired_at) if self.fired_at else ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "jobId": self.job_id,
            "jobName": self.job_name,
            "target": self.target,
            "prompt": self.prompt,
            "firedAt": self.fired_at_iso,
            "oneshot": self.oneshot,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2, ensure_ascii=False) + "\n"

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> "Trigger":
        """
        Raises:
            ValueError: if the record is not an object or lacks jobId/prompt.
        """
        if not isinstance(d, dict):
            raise ValueError("trigger record must be a JSON object")
        job_id = d.get("jobId")
        prompt = d.get("prompt")
        if not job_id or not isinstance(job_id, str):
            raise ValueError("trigger record has no jobId")
        if not isinstance(prompt, str):
            raise ValueError("trigger record has no prompt")
        fired_raw = d.get("firedAt")
        return cls(
            job_id=job_id,
            job_name=str(d.get("jobName") or ""),
            target=str(d.get("target") or ""),
            prompt=prompt,
            fired_at=parse_timestamp(fired_raw) if fired_raw else None,
            oneshot=parse_flag(d, "oneshot", False),
        )

    @classmethod
    def from_json(cls, raw: str) -> "Trigger":
        """Raises ValueError (json.JSONDecodeError included) on bad input."""
        return cls.from_dict(json.loads(raw))
