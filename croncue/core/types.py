"""
croncue shared types — messages, tool results and the session protocol.

The session client is an external collaborator: croncue only needs
something shaped like ``client.session(target).send(payload)`` returning a
handle whose ``result`` resolves when the agent has finished the turn.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Protocol


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Enums
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


class MessageSource(str, Enum):
    """Where a message came from. Context rendering labels non-user origins."""

    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"
    CRON = "cron"


class MessageRole(str, Enum):
    """Conversation role of a message."""

    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"
    EVENT = "event"  # automated event, not a user-authored turn


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Message Types
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


@dataclass(slots=True)
class EventMessage:
    """A single message handed to a session.

    Scheduled prompts are sent with role EVENT and a tagged source so the
    receiving agent can tell them apart from something the user typed.
    """

    role: MessageRole
    text: str
    source: MessageSource
    metadata: dict[str, Any] = field(default_factory=dict)

    @staticmethod
    def cron(
        text: str,
        *,
        job_id: str,
        job_name: str,
        fired_at: str,
    ) -> EventMessage:
        return EventMessage(
            role=MessageRole.EVENT,
            text=text,
            source=MessageSource.CRON,
            metadata={
                "event_type": "cron_trigger",
                "job_id": job_id,
                "job_name": job_name,
                "fired_at": fired_at,
            },
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "role": self.role.value,
            "content": [{"type": "text", "text": self.text}],
            "metadata": {"source": {"type": self.source.value}, **self.metadata},
        }


@dataclass(slots=True)
class ToolResult:
    """Result from executing a command-surface tool."""

    success: bool
    output: str
    error: str | None = None

    @property
    def text(self) -> str:
        """What a user should see: the output, or the error explanation."""
        if self.success:
            return self.output
        return f"Error: {self.error}"


@dataclass(frozen=True, slots=True)
class ToolSpec:
    """Tool specification — everything an LLM needs to call it."""

    name: str
    description: str
    parameters: dict[str, Any]  # JSON Schema


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Session protocol (external collaborator)
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


class SessionHandle(Protocol):
    """Returned by Session.send(). ``result`` resolves once the turn completes."""

    result: Awaitable[Any]


class Session(Protocol):
    def send(self, payload: dict[str, Any]) -> SessionHandle | Awaitable[SessionHandle]: ...


class SessionClient(Protocol):
    def session(self, target: str) -> Session: ...
