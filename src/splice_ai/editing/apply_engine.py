# src/splice_ai/editing/apply_engine.py

"""
Apply engine: turns a backend response into a document mutation.

Pipeline for one task (each step is a hard gate):
1) buffer still exists                      -> else failed/target_gone
2) conflict check + policy                  -> cancel or warn-and-continue
3) optional review gate                     -> rejected => cancelled
4) re-validate + re-check, then one atomic replace_lines call
5) optional import insertion (best-effort, never changes the outcome)
6) completed

Key invariants:
- the document is never touched unless the task is still running right before step 4,
- a failing replace_lines leaves the document as it was (the store guarantees atomicity),
- auxiliary insertion is a separate mutation; its failure is only a notice.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from ..core.errors import DocumentError, ErrorInfo, ErrorKind, ResponseParseError
from ..core.ports import DocumentStore, ReviewDecision, ReviewGate, TaskEvents
from ..tasks.conflicts import has_conflict
from ..tasks.task_models import Task, TaskStatus
from ..tasks.task_registry import TaskRegistry
from .import_placement import IMPORT_SCAN_LINES, find_import_insert_line
from .response_parser import parse_response

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class ApplyResult:
    status: TaskStatus
    error: ErrorInfo | None = None

    @property
    def ok(self) -> bool:
        return self.status == TaskStatus.COMPLETED


class ApplyEngine:
    def __init__(
            self,
            *,
            registry: TaskRegistry,
            documents: DocumentStore,
            events: TaskEvents,
            behavior: Any,
            review_gate: ReviewGate | None = None,
            comment_tokens: Sequence[str] | None = None,
    ) -> None:
        if getattr(behavior, "review_mode", False) and review_gate is None:
            raise ValueError("review_mode is enabled but no review gate was provided")
        self._registry = registry
        self._documents = documents
        self._events = events
        self._behavior = behavior
        self._review_gate = review_gate
        self._comment_tokens = comment_tokens

    # ---- outcome helpers ----

    def _current(self, task: Task) -> ApplyResult:
        return ApplyResult(status=task.status, error=task.error_info)

    def _finish(self, task: Task, status: TaskStatus, kind: ErrorKind, message: str) -> ApplyResult:
        error = ErrorInfo(kind, message)
        if not self._registry.transition(task.id, status, error=error):
            logger.debug("Task %s already %s; dropping %s", task.id, task.status.value, kind.value)
        return self._current(task)

    def _fail(self, task: Task, kind: ErrorKind, message: str) -> ApplyResult:
        return self._finish(task, TaskStatus.FAILED, kind, message)

    def _cancel(self, task: Task, kind: ErrorKind, message: str) -> ApplyResult:
        return self._finish(task, TaskStatus.CANCELLED, kind, message)

    def _emit_conflict_warning(self, task: Task) -> None:
        logger.warning("Selection was modified while AI was processing task_id=%s", task.id)
        try:
            self._events.on_conflict_warning(task)
        except Exception:
            logger.exception("on_conflict_warning failed task_id=%s", task.id)

    def _emit_notice(self, task: Task, message: str) -> None:
        try:
            self._events.on_notice(task, message)
        except Exception:
            logger.exception("on_notice failed task_id=%s", task.id)

    # ---- steps ----

    def _apply_conflict_policy(self, task: Task, *, warned: bool) -> tuple[ApplyResult | None, bool]:
        """
        Returns (result, warned). result is set when the task was cancelled.
        The warning is surfaced at most once per task.
        """
        if not has_conflict(task, self._documents):
            return None, warned

        if self._behavior.warn_on_conflict and not warned:
            self._emit_conflict_warning(task)
            warned = True

        if self._behavior.cancel_on_conflict:
            return self._cancel(task, ErrorKind.CONFLICT_CANCELLED, "Cancelled due to conflict"), warned

        return None, warned

    def insert_auxiliary(self, task: Task, auxiliary: str) -> bool:
        """Best-effort import insertion near the top of the buffer."""
        buffer_id = task.buffer_id
        try:
            filetype = self._documents.buffer_filetype(buffer_id)
            head = self._documents.get_lines(buffer_id, 0, IMPORT_SCAN_LINES)
            at = find_import_insert_line(head, filetype)
            self._documents.insert_lines(buffer_id, at, auxiliary.split("\n"))
        except Exception:
            logger.warning("Import insertion failed task_id=%s", task.id, exc_info=True)
            self._emit_notice(task, f"Failed to add import: {auxiliary}")
            return False

        logger.info("Task %s: added import at line %d", task.id, at + 1)
        self._emit_notice(task, f"Added import: {auxiliary}")
        return True

    # ---- public API ----

    async def process(self, task: Task, response: Any) -> ApplyResult:
        """Parse a raw backend response, then apply it."""
        try:
            parsed = parse_response(response, comment_tokens=self._comment_tokens)
        except ResponseParseError as e:
            return self._fail(task, e.kind, str(e))
        return await self.apply(task, parsed.body, parsed.auxiliary)

    async def apply(self, task: Task, body: str, auxiliary: str | None = None) -> ApplyResult:
        region = task.region
        buffer_id = region.buffer_id

        if task.status != TaskStatus.RUNNING:
            return self._current(task)

        if not self._documents.buffer_exists(buffer_id):
            return self._fail(task, ErrorKind.TARGET_GONE, "Buffer no longer valid")

        cancelled, warned = self._apply_conflict_policy(task, warned=False)
        if cancelled is not None:
            return cancelled

        if self._behavior.review_mode and self._review_gate is not None:
            decision = await self._review_gate.request_review(task, body)
            if decision != ReviewDecision.ACCEPTED:
                return self._cancel(task, ErrorKind.USER_REJECTED, "User rejected changes")

        # Everything below runs without suspension: no interleaving with other tasks.
        if task.status != TaskStatus.RUNNING:
            return self._current(task)

        if not self._documents.buffer_exists(buffer_id):
            return self._fail(task, ErrorKind.TARGET_GONE, "Buffer no longer valid")

        cancelled, warned = self._apply_conflict_policy(task, warned=warned)
        if cancelled is not None:
            return cancelled

        new_lines = body.split("\n")
        try:
            self._documents.replace_lines(buffer_id, region.start_line - 1, region.end_line, new_lines)
        except DocumentError as e:
            logger.warning("replace_lines failed task_id=%s: %s", task.id, e)
            return self._fail(task, ErrorKind.MUTATION_FAILED, f"Failed to apply changes: {e}")

        if auxiliary:
            self.insert_auxiliary(task, auxiliary)

        if not self._registry.transition(task.id, TaskStatus.COMPLETED, result_text=body):
            logger.warning("Task %s changed to %s during apply", task.id, task.status.value)
        return self._current(task)
