"""
croncue event system — types and constants.

The job repository, the evaluator and the watcher announce what they did
as events. Observers (a UI rendering the active job list, an event log)
subscribe through the EventBus.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any
import time
import uuid


class EventType:
    """
    Event type constants.

    Hierarchical naming: "category:action"
    Supports wildcard matching: "jobs:*" matches "jobs:created"
    """

    # Scheduler lifecycle
    SCHEDULER_START = "scheduler:start"
    SCHEDULER_STOP = "scheduler:stop"

    # Job repository changes
    JOB_CREATED = "jobs:created"
    JOB_UPDATED = "jobs:updated"
    JOB_DELETED = "jobs:deleted"
    JOBS_ALL = "jobs:*"

    # Trigger queue
    TRIGGER_WRITTEN = "trigger:written"
    TRIGGER_DELIVERED = "trigger:delivered"
    TRIGGER_FAILED = "trigger:failed"

    # Wildcard
    ALL = "*"


@dataclass(slots=True)
class Event:
    """
    A single event in croncue.

    Events are:
    - Typed (hierarchical string)
    - Timestamped
    - Traceable (source names the emitting component)
    - Extensible (data dict for event-specific payload)
    """

    type: str
    data: dict[str, Any] = field(default_factory=dict)
    source: str = ""
    id: str = field(default_factory=lambda: uuid.uuid4().hex[:16])
    timestamp: float = field(default_factory=time.time)
