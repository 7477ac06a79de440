# src/splice_ai/tasks/task_models.py

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

from ..core.errors import ErrorInfo
from ..core.regions import Region, Snapshot


class TaskStatus(StrEnum):
    """
    Task lifecycle status.

    Notes:
    - pending -> running -> completed | failed | cancelled
    - the three right-hand states are terminal; nothing leaves them
    """

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_active(self) -> bool:
        return self in (TaskStatus.PENDING, TaskStatus.RUNNING)

    @property
    def is_terminal(self) -> bool:
        return not self.is_active

    def can_transition_to(self, new: TaskStatus) -> bool:
        return new in ALLOWED_TRANSITIONS[self]


ALLOWED_TRANSITIONS: dict[TaskStatus, frozenset[TaskStatus]] = {
    TaskStatus.PENDING: frozenset({TaskStatus.RUNNING, TaskStatus.FAILED, TaskStatus.CANCELLED}),
    TaskStatus.RUNNING: frozenset({TaskStatus.COMPLETED, TaskStatus.FAILED, TaskStatus.CANCELLED}),
    TaskStatus.COMPLETED: frozenset(),
    TaskStatus.FAILED: frozenset(),
    TaskStatus.CANCELLED: frozenset(),
}


@dataclass(slots=True)
class Task:
    id: str
    region: Region
    snapshot: Snapshot
    prompt: str
    status: TaskStatus
    created_at: float
    updated_at: float

    backend_session_ref: str | None = None
    result_text: str | None = None
    error_info: ErrorInfo | None = None

    @property
    def buffer_id(self) -> int:
        return self.region.buffer_id

    def short_prompt(self, limit: int = 30) -> str:
        text = self.prompt.replace("\n", " ")
        if len(text) <= limit:
            return text
        return text[:limit] + "..."
