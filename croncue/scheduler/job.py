"""
Scheduler Job — the persisted schedule definition.

One job per file under ``jobs/<id>.json``. On disk the keys are camelCase
so the files stay readable by other tools sharing the data directory:

    {
      "id": "standup-reminder",
      "name": "standup reminder",
      "schedule": "0 9 * * 1-5",
      "target": "tui",
      "prompt": "remind",
      "oneshot": false,
      "enabled": true,
      "createdAt": "2026-10-18T08:00:00.000Z",
      "lastFiredAt": "2026-10-19T09:00:00.000Z",
      "metadata": {}
    }

Keys the model does not know are kept in ``extra`` and written back.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

# Fields a caller may change through JobStore.update()
MUTABLE_FIELDS = frozenset(
    {"name", "schedule", "target", "prompt", "oneshot", "enabled", "last_fired_at", "metadata"}
)

_KNOWN_KEYS = frozenset(
    {
        "id",
        "name",
        "schedule",
        "cron",  # legacy alias for "schedule"
        "target",
        "prompt",
        "oneshot",
        "enabled",
        "createdAt",
        "lastFiredAt",
        "metadata",
    }
)


def utc_now() -> datetime:
    return datetime.now(UTC)


def format_timestamp(value: datetime) -> str:
    """ISO-8601 in UTC with millisecond precision and a Z suffix."""
    return value.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp. Naive values are taken as UTC."""
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def parse_flag(record: dict[str, Any], key: str, default: bool) -> bool:
    """Read a JSON boolean. Strings like "false" are rejected, not coerced."""
    value = record.get(key, default)
    if not isinstance(value, bool):
        raise ValueError(f"{key!r} must be true or false, got {value!r}")
    return value


@dataclass
class Job:
    """A scheduled prompt."""

    id: str
    name: str
    schedule: str        # cron expression, e.g. "0 9 * * 1-5"
    prompt: str          # delivered verbatim when the job fires
    target: str = ""     # destination session id
    oneshot: bool = False
    enabled: bool = True
    created_at: datetime = field(default_factory=utc_now)
    last_fired_at: datetime | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def heartbeat_file(self) -> str | None:
        value = self.metadata.get("heartbeatFile")
        return str(value) if value else None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "schedule": self.schedule,
            "target": self.target,
            "prompt": self.prompt,
            "oneshot": self.oneshot,
            "enabled": self.enabled,
            "createdAt": format_timestamp(self.created_at),
        }
        if self.last_fired_at is not None:
            data["lastFiredAt"] = format_timestamp(self.last_fired_at)
        data["metadata"] = dict(self.metadata)
        for key, value in self.extra.items():
            data.setdefault(key, value)
        return data

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> "Job":
        """Build a Job from its on-disk form.

        Raises:
            ValueError: if the record is not an object, has no id, or carries
                a non-boolean enabled/oneshot flag.
        """
        if not isinstance(d, dict):
            raise ValueError("job record must be a JSON object")
        job_id = d.get("id")
        if not job_id or not isinstance(job_id, str):
            raise ValueError("job record has no id")

        created_raw = d.get("createdAt")
        last_raw = d.get("lastFiredAt")
        metadata = d.get("metadata") or {}
        if not isinstance(metadata, dict):
            raise ValueError("job metadata must be an object")

        return cls(
            id=job_id,
            name=str(d.get("name", "")),
            schedule=str(d.get("schedule", d.get("cron", ""))),
            prompt=str(d.get("prompt", "")),
            target=str(d.get("target") or ""),
            oneshot=parse_flag(d, "oneshot", False),
            enabled=parse_flag(d, "enabled", True),
            created_at=parse_timestamp(created_raw) if created_raw else utc_now(),
            last_fired_at=parse_timestamp(last_raw) if last_raw else None,
            metadata=dict(metadata),
            extra={k: v for k, v in d.items() if k not in _KNOWN_KEYS},
        )
