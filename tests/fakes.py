# tests/fakes.py

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from splice_ai.core.errors import DocumentError
from splice_ai.core.ports import ModelSpec, ReviewDecision
from splice_ai.documents.memory import InMemoryDocumentStore
from splice_ai.tasks.task_models import Task, TaskStatus

SAMPLE_LINES = [f"line {i}" for i in range(1, 11)]


def make_response(*texts: str) -> dict[str, Any]:
    return {"parts": [{"type": "text", "text": t} for t in texts]}


class FakeBackend:
    """
    Deterministic Backend for unit tests.

    - Captures calls for assertions
    - Returns `response` from send_prompt (or raises the configured error)
    - If `hold` is set, send_prompt blocks until release() is called
    """

    def __init__(self, response: Any = None) -> None:
        self.response = response if response is not None else make_response("new code")
        self.ready_error: Exception | None = None
        self.session_error: Exception | None = None
        self.prompt_error: Exception | None = None
        self.abort_error: Exception | None = None

        self.hold = False
        self._release = asyncio.Event()
        self.prompt_started = asyncio.Event()

        self.sessions: list[str] = []
        self.prompts: list[tuple[str, str, ModelSpec | None]] = []
        self.aborted: list[str] = []

    def release(self) -> None:
        self._release.set()

    async def ensure_ready(self) -> None:
        if self.ready_error is not None:
            raise self.ready_error

    async def create_session(self) -> str:
        if self.session_error is not None:
            raise self.session_error
        session_id = f"ses-{len(self.sessions) + 1}"
        self.sessions.append(session_id)
        return session_id

    async def send_prompt(self, session_id: str, prompt: str, model: ModelSpec | None = None) -> Any:
        self.prompts.append((session_id, prompt, model))
        self.prompt_started.set()
        if self.hold:
            await self._release.wait()
        if self.prompt_error is not None:
            raise self.prompt_error
        return self.response

    async def abort_session(self, session_id: str) -> None:
        self.aborted.append(session_id)
        if self.abort_error is not None:
            raise self.abort_error


class PerSessionBackend(FakeBackend):
    """FakeBackend whose responses and holds are keyed by session (for concurrent tasks)."""

    def __init__(self, responses: Sequence[Any]) -> None:
        super().__init__()
        self._responses = list(responses)
        self.gates: dict[str, asyncio.Event] = {}

    def gate(self, session_id: str) -> asyncio.Event:
        return self.gates.setdefault(session_id, asyncio.Event())

    async def send_prompt(self, session_id: str, prompt: str, model: ModelSpec | None = None) -> Any:
        self.prompts.append((session_id, prompt, model))
        await self.gate(session_id).wait()
        index = self.sessions.index(session_id)
        return self._responses[index]


@dataclass(slots=True)
class RecordingEvents:
    created: list[str] = field(default_factory=list)
    statuses: list[tuple[str, TaskStatus]] = field(default_factory=list)
    conflicts: list[str] = field(default_factory=list)
    notices: list[tuple[str, str]] = field(default_factory=list)

    def on_task_created(self, task: Task) -> None:
        self.created.append(task.id)

    def on_task_status_changed(self, task: Task) -> None:
        self.statuses.append((task.id, task.status))

    def on_conflict_warning(self, task: Task) -> None:
        self.conflicts.append(task.id)

    def on_notice(self, task: Task, message: str) -> None:
        self.notices.append((task.id, message))

    def history(self, task_id: str) -> list[TaskStatus]:
        return [s for tid, s in self.statuses if tid == task_id]


class ScriptedReviewGate:
    """ReviewGate answering with a fixed decision, optionally after running a hook."""

    def __init__(self, decision: ReviewDecision, before_decision=None) -> None:
        self.decision = decision
        self.before_decision = before_decision
        self.requests: list[tuple[str, str]] = []

    async def request_review(self, task: Task, proposed_text: str) -> ReviewDecision:
        self.requests.append((task.id, proposed_text))
        if self.before_decision is not None:
            self.before_decision(task)
        return self.decision


class FailingDocumentStore(InMemoryDocumentStore):
    """InMemoryDocumentStore whose mutation primitives can be made to fail."""

    def __init__(self) -> None:
        super().__init__()
        self.fail_replace = False
        self.fail_insert = False
        self.replace_calls = 0

    def replace_lines(self, buffer_id: int, start: int, end: int, lines: Sequence[str]) -> None:
        self.replace_calls += 1
        if self.fail_replace:
            raise DocumentError("buffer is read-only")
        super().replace_lines(buffer_id, start, end, lines)

    def insert_lines(self, buffer_id: int, at: int, lines: Sequence[str]) -> None:
        if self.fail_insert:
            raise DocumentError("insert refused")
        InMemoryDocumentStore.replace_lines(self, buffer_id, at, at, lines)
