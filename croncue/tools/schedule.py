"""
ScheduleTool — lets an agent (or the CLI) add, list, remove, enable and
disable scheduled jobs.

The agent calls it in response to requests like:
  "remind me every weekday at 9am to post standup notes"
  "stop the standup reminder"
  "what is scheduled?"

One tool, dispatched on ``action``:
    schedule(action="add", name, cron, prompt, target?, oneshot?)
    schedule(action="list")
    schedule(action="remove" | "enable" | "disable", id)

Failures come back as ``ToolResult(success=False, error=...)`` with an
explanation; nothing is raised to the caller.
"""

from __future__ import annotations

from typing import Any

from croncue.core.errors import CronCueError
from croncue.core.types import ToolResult, ToolSpec
from croncue.scheduler import cron
from croncue.scheduler.job import Job
from croncue.scheduler.store import JobStore

ACTIONS = ("add", "list", "remove", "enable", "disable")
DEFAULT_TARGET = "tui"


def format_job(job: Job) -> str:
    """'standup-reminder: "standup reminder" (0 9 * * 1-5) → tui [oneshot]'"""
    flags = [f for f, on in (("oneshot", job.oneshot), ("disabled", not job.enabled)) if on]
    suffix = f" [{', '.join(flags)}]" if flags else ""
    return f'{job.id}: "{job.name}" ({job.schedule}) → {job.target}{suffix}'


def _error(message: str) -> ToolResult:
    return ToolResult(success=False, output="", error=message)


class ScheduleTool:
    """
    Command surface over a JobStore.

    Usage:
        tool = ScheduleTool(store)
        result = tool.execute({"action": "add", "name": "standup reminder",
                               "cron": "0 9 * * 1-5", "prompt": "remind"})
        print(result.text)
    """

    def __init__(self, store: JobStore) -> None:
        self._store = store

    @property
    def spec(self) -> ToolSpec:
        return ToolSpec(
            name="schedule",
            description=(
                "Manage scheduled jobs. 'add' to create a recurring or one-shot job, "
                "'list' to see all jobs, 'remove' to delete, 'enable'/'disable' to toggle."
            ),
            parameters={
                "type": "object",
                "properties": {
                    "action": {
                        "type": "string",
                        "enum": list(ACTIONS),
                        "description": "What to do",
                    },
                    "name": {"type": "string", "description": "Job name (add)"},
                    "cron": {
                        "type": "string",
                        "description": "Cron expression, e.g. '*/5 * * * *' (add)",
                    },
                    "target": {
                        "type": "string",
                        "description": "Target session id, e.g. 'tui', 'telegram' (add)",
                    },
                    "prompt": {"type": "string", "description": "Prompt sent when the job fires (add)"},
                    "oneshot": {
                        "type": "boolean",
                        "description": "Delete after the first delivery (add, default false)",
                    },
                    "id": {"type": "string", "description": "Job id (remove/enable/disable)"},
                },
                "required": ["action"],
            },
        )

    def display_summary(self, arguments: dict[str, Any]) -> str:
        action = arguments.get("action", "")
        if action == "add":
            return f"add: {arguments.get('name') or 'unnamed'}"
        if action == "list":
            return "list"
        return f"{action}: {arguments.get('id', '')}"

    def render(self) -> str | None:
        """Enabled jobs, one per line, for inclusion in an agent's context."""
        jobs = self._store.list_enabled()
        if not jobs:
            return None
        return "\n".join(format_job(j) for j in jobs)

    def execute(self, arguments: dict[str, Any]) -> ToolResult:
        action = arguments.get("action")
        try:
            if action == "add":
                return self._add(arguments)
            elif action == "list":
                return self._list()
            elif action == "remove":
                return self._remove(arguments.get("id"))
            elif action in ("enable", "disable"):
                return self._toggle(arguments.get("id"), enabled=action == "enable")
        except CronCueError as e:
            return _error(e.message)
        return _error(f"Unknown action: {action!r}")

    # ── Actions ───────────────────────────────────────────────────────────────

    def _add(self, arguments: dict[str, Any]) -> ToolResult:
        name = arguments.get("name")
        expression = arguments.get("cron")
        prompt = arguments.get("prompt")
        if not name or not expression or not prompt:
            return _error("'add' requires name, cron, and prompt.")
        if not cron.is_valid(expression):
            return _error(f'invalid cron expression "{expression}".')

        job = self._store.create(
            name=name,
            schedule=expression,
            prompt=prompt,
            target=arguments.get("target") or DEFAULT_TARGET,
            oneshot=bool(arguments.get("oneshot", False)),
        )
        return ToolResult(success=True, output=f"Created job: {format_job(job)}")

    def _list(self) -> ToolResult:
        jobs = self._store.list()
        if not jobs:
            return ToolResult(success=True, output="No scheduled jobs.")
        return ToolResult(success=True, output="\n".join(format_job(j) for j in jobs))

    def _remove(self, job_id: str | None) -> ToolResult:
        if not job_id:
            return _error("'remove' requires an id.")
        if not self._store.delete(job_id):
            return _error(f'job "{job_id}" not found.')
        return ToolResult(success=True, output=f'Removed job "{job_id}".')

    def _toggle(self, job_id: str | None, enabled: bool) -> ToolResult:
        verb = "enable" if enabled else "disable"
        if not job_id:
            return _error(f"'{verb}' requires an id.")
        if self._store.update(job_id, enabled=enabled) is None:
            return _error(f'job "{job_id}" not found.')
        return ToolResult(success=True, output=f'{verb.capitalize()}d job "{job_id}".')
