# src/splice_ai/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the task core.

The core depends on Protocols instead of concrete implementations.
This keeps the editor surface, the AI backend and the review UI swappable
and makes testing easier.
"""

from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Any, Awaitable, Protocol, Sequence

from .regions import Region

if TYPE_CHECKING:
    from ..tasks.task_models import Task


@dataclass(slots=True, frozen=True)
class ModelSpec:
    """Backend model selector parsed from a "provider/model" string."""

    provider_id: str
    model_id: str

    def as_payload(self) -> dict[str, str]:
        return {"providerID": self.provider_id, "modelID": self.model_id}

    def __str__(self) -> str:
        return f"{self.provider_id}/{self.model_id}"


class ReviewDecision(StrEnum):
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class Backend(Protocol):
    """
    AI backend session protocol.

    All methods raise BackendError on failure. abort_session is best-effort:
    callers never wait on it to make progress.
    """

    def ensure_ready(self) -> Awaitable[None]: ...

    def create_session(self) -> Awaitable[str]: ...

    def send_prompt(
            self,
            session_id: str,
            prompt: str,
            model: ModelSpec | None = None,
    ) -> Awaitable[Any]: ...

    def abort_session(self, session_id: str) -> Awaitable[None]: ...


class DocumentStore(Protocol):
    """
    Line-editing surface.

    Line arguments of replace_lines/insert_lines/get_lines are 0-based with an
    exclusive end; Regions stay 1-based and inclusive.
    replace_lines must be atomic: either every line is replaced or nothing is.
    """

    def buffer_exists(self, buffer_id: int) -> bool: ...
    def line_count(self, buffer_id: int) -> int: ...
    def get_lines(self, buffer_id: int, start: int = 0, end: int | None = None) -> list[str]: ...
    def get_region_text(self, region: Region) -> str: ...
    def replace_lines(self, buffer_id: int, start: int, end: int, lines: Sequence[str]) -> None: ...
    def insert_lines(self, buffer_id: int, at: int, lines: Sequence[str]) -> None: ...
    def buffer_name(self, buffer_id: int) -> str: ...
    def buffer_filetype(self, buffer_id: int) -> str: ...


class TaskEvents(Protocol):
    """
    UI-side port: how the core reports task progress outward.

    The UI decides how to render (indicators, notifications, logs).
    Implementations must not raise; the core logs and ignores errors anyway.
    """

    def on_task_created(self, task: Task) -> None: ...
    def on_task_status_changed(self, task: Task) -> None: ...
    def on_conflict_warning(self, task: Task) -> None: ...
    def on_notice(self, task: Task, message: str) -> None: ...


class ReviewGate(Protocol):
    """Human-in-the-loop checkpoint: exactly one decision per request."""

    def request_review(self, task: Task, proposed_text: str) -> Awaitable[ReviewDecision]: ...


class NullTaskEvents:
    """TaskEvents that drops everything (headless use)."""

    def on_task_created(self, task: Task) -> None:
        return

    def on_task_status_changed(self, task: Task) -> None:
        return

    def on_conflict_warning(self, task: Task) -> None:
        return

    def on_notice(self, task: Task, message: str) -> None:
        return
