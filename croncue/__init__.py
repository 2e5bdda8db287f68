"""
croncue — durable cron jobs that prompt agent sessions.

Public API:
    from croncue import CronService, JobStore, ScheduleTool
"""

__version__ = "0.1.0"

# Core
from croncue.core.bus import EventBus
from croncue.core.config import CronCueConfig
from croncue.core.events import Event, EventType
from croncue.core.types import EventMessage, MessageSource, ToolResult

# Scheduler
from croncue.scheduler.job import Job
from croncue.scheduler.trigger import Trigger
from croncue.scheduler.store import JobStore
from croncue.scheduler.engine import SchedulerEngine
from croncue.scheduler.watcher import TriggerWatcher
from croncue.scheduler.service import CronService

# Tools
from croncue.tools.schedule import ScheduleTool

__all__ = [
    # Core
    "EventBus",
    "CronCueConfig",
    "Event",
    "EventType",
    "EventMessage",
    "MessageSource",
    "ToolResult",
    # Scheduler
    "Job",
    "Trigger",
    "JobStore",
    "SchedulerEngine",
    "TriggerWatcher",
    "CronService",
    # Tools
    "ScheduleTool",
]
