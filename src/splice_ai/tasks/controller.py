# src/splice_ai/tasks/controller.py

from __future__ import annotations

"""
Lifecycle controller.

One asyncio task ("runner") per edit task:
- wait for backend readiness, create a session   -> running (session ref stored)
- send the prompt (one round-trip, never re-issued)
- hand the response to the apply engine          -> completed | failed | cancelled

Cancellation flips the status first, then cancels the runner, then fires a
backend abort in the background. Nothing waits on the abort.
Tasks on overlapping regions are not serialized; each one only compares the
document against its own snapshot.
"""

import asyncio
import logging
from collections.abc import Sequence
from functools import partial
from pathlib import Path
from typing import Any

from ..core.errors import BackendError, DocumentError, ErrorInfo, ErrorKind
from ..core.ports import Backend, DocumentStore, ModelSpec, NullTaskEvents, ReviewGate, TaskEvents
from ..core.regions import Region, Snapshot
from ..editing.apply_engine import ApplyEngine
from ..editing.prompt_builder import build_prompt
from .task_models import Task, TaskStatus
from .task_registry import TaskRegistry

logger = logging.getLogger(__name__)


class LifecycleController:
    def __init__(
            self,
            *,
            registry: TaskRegistry,
            documents: DocumentStore,
            backend: Backend,
            behavior: Any,
            context: Any,
            events: TaskEvents | None = None,
            review_gate: ReviewGate | None = None,
            model: ModelSpec | None = None,
            comment_tokens: Sequence[str] | None = None,
    ) -> None:
        self._registry = registry
        self._documents = documents
        self._backend = backend
        self._context = context
        self._events: TaskEvents = events or NullTaskEvents()
        self._model = model

        self.apply_engine = ApplyEngine(
            registry=registry,
            documents=documents,
            events=self._events,
            behavior=behavior,
            review_gate=review_gate,
            comment_tokens=comment_tokens,
        )

        self._runners: dict[str, asyncio.Task[None]] = {}
        self._aborts: set[asyncio.Task[None]] = set()
        self._loop: asyncio.AbstractEventLoop | None = None

        registry.add_listener(self._events.on_task_status_changed)

    @property
    def registry(self) -> TaskRegistry:
        return self._registry

    # ---- entry points ----

    def submit(self, region: Region, prompt: str) -> Task:
        """
        Snapshot the region, register a task and start its runner.

        Must be called from the event loop thread.
        """
        loop = asyncio.get_running_loop()
        self._loop = loop

        if not self._documents.buffer_exists(region.buffer_id):
            raise DocumentError(f"Buffer {region.buffer_id} does not exist")

        snapshot = Snapshot(self._documents.get_region_text(region))
        task = self._registry.create(region=region, snapshot=snapshot, prompt=prompt)
        logger.info(
            "Task %s created buffer=%s %s prompt=%r",
            task.id,
            region.buffer_id,
            region.describe(),
            task.short_prompt(),
        )

        try:
            self._events.on_task_created(task)
        except Exception:
            logger.exception("on_task_created failed task_id=%s", task.id)

        runner = loop.create_task(self._run(task), name=f"splice-task-{task.id}")
        self._runners[task.id] = runner
        runner.add_done_callback(partial(self._runner_done, task.id))
        return task

    def cancel(self, task_id: str) -> bool:
        """
        Cancel a pending/running task.

        Returns False for unknown or already terminal tasks (nothing changes).
        """
        task = self._registry.get(task_id)
        if task is None:
            return False

        error = ErrorInfo(ErrorKind.USER_CANCELLED, "Cancelled by user")
        if not self._registry.transition(task_id, TaskStatus.CANCELLED, error=error):
            return False

        runner = self._runners.pop(task_id, None)
        if runner is not None and not runner.done():
            try:
                current = asyncio.current_task()
            except RuntimeError:
                # Not on a loop thread: runner.cancel() must run on the controller's loop.
                if self._loop is not None and not self._loop.is_closed():
                    self._loop.call_soon_threadsafe(runner.cancel)
            else:
                if runner is not current:
                    runner.cancel()

        if task.backend_session_ref:
            self._schedule_abort(task.backend_session_ref)
        return True

    def cancel_all(self, buffer_id: int) -> int:
        """Cancel every active task of a buffer. Returns how many were cancelled."""
        cancelled = 0
        for task in self._registry.by_buffer(buffer_id):
            if task.status.is_active and self.cancel(task.id):
                cancelled += 1
        return cancelled

    def clear_buffer(self, buffer_id: int) -> int:
        """Cancel and forget every task of a buffer (e.g. the buffer was closed)."""
        tasks = self._registry.by_buffer(buffer_id)
        for task in tasks:
            self.cancel(task.id)
            self._registry.remove(task.id)
        return len(tasks)

    def clear_finished(self) -> int:
        return self._registry.clear_finished()

    def get(self, task_id: str) -> Task | None:
        return self._registry.get(task_id)

    def active_tasks(self) -> list[Task]:
        return sorted(self._registry.active(), key=lambda t: t.created_at)

    def status_lines(self) -> list[str]:
        lines: list[str] = []
        for task in self.active_tasks():
            name = "[closed]"
            if self._documents.buffer_exists(task.buffer_id):
                name = Path(self._documents.buffer_name(task.buffer_id)).name or "[No Name]"
            lines.append(
                f"[{task.status.value}] {name} ({task.region.describe()}) - {task.short_prompt()}"
            )
        return lines

    async def wait(self, task_id: str) -> Task | None:
        """Wait until the task's runner has finished, then return the task."""
        runner = self._runners.get(task_id)
        if runner is not None:
            await asyncio.wait([runner])
        return self._registry.get(task_id)

    async def shutdown(self) -> None:
        """Cancel every active task and wait for runners and pending aborts."""
        runners = list(self._runners.values())
        for task in self._registry.active():
            self.cancel(task.id)
        pending = [*runners, *self._aborts]
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    # ---- runner ----

    def _fail(self, task: Task, message: str, kind: ErrorKind = ErrorKind.BACKEND_REJECTED) -> None:
        self._registry.transition(task.id, TaskStatus.FAILED, error=ErrorInfo(kind, message))

    async def _run(self, task: Task) -> None:
        try:
            try:
                prompt = build_prompt(task, self._documents, self._context)
            except DocumentError as e:
                logger.info("Buffer gone before prompt task_id=%s: %s", task.id, e)
                self._fail(task, "Buffer no longer valid", ErrorKind.TARGET_GONE)
                return

            try:
                await self._backend.ensure_ready()
            except Exception as e:
                logger.warning("Backend not ready task_id=%s: %s", task.id, e)
                self._fail(task, f"Backend unavailable: {e}")
                return

            try:
                session_id = await self._backend.create_session()
            except Exception as e:
                logger.warning("create_session failed task_id=%s: %s", task.id, e)
                self._fail(task, f"Failed to create session: {e}")
                return

            if not self._registry.transition(task.id, TaskStatus.RUNNING, session_ref=session_id):
                # Cancelled while the session was being created.
                self._schedule_abort(session_id)
                return

            if task.status != TaskStatus.RUNNING:
                # A status listener cancelled it on the way to running.
                return

            try:
                response = await self._backend.send_prompt(session_id, prompt, self._model)
            except Exception as e:
                logger.warning("send_prompt failed task_id=%s: %s", task.id, e)
                self._fail(task, f"AI request failed: {e}")
                return

            if task.status != TaskStatus.RUNNING:
                return

            await self.apply_engine.process(task, response)

        except asyncio.CancelledError:
            logger.debug("Runner cancelled task_id=%s", task.id)
            # Cancelled from outside cancel() (e.g. loop shutdown): still finalize.
            error = ErrorInfo(ErrorKind.USER_CANCELLED, "Cancelled")
            if self._registry.transition(task.id, TaskStatus.CANCELLED, error=error):
                if task.backend_session_ref:
                    self._schedule_abort(task.backend_session_ref)
            raise
        except Exception as e:
            logger.exception("Task runner crashed task_id=%s", task.id)
            self._fail(task, f"Unexpected error while applying: {e}", ErrorKind.MUTATION_FAILED)

    def _runner_done(self, task_id: str, runner: asyncio.Task[None]) -> None:
        if self._runners.get(task_id) is runner:
            self._runners.pop(task_id, None)

    # ---- backend abort (fire-and-forget) ----

    async def _abort(self, session_id: str) -> None:
        try:
            await self._backend.abort_session(session_id)
            logger.debug("Backend session aborted session_id=%s", session_id)
        except BackendError as e:
            logger.warning("abort_session failed session_id=%s: %s", session_id, e)
        except Exception:
            logger.exception("abort_session crashed session_id=%s", session_id)

    def _spawn_abort(self, session_id: str) -> None:
        loop = self._loop or asyncio.get_running_loop()
        t = loop.create_task(self._abort(session_id), name=f"splice-abort-{session_id}")
        self._aborts.add(t)
        t.add_done_callback(self._aborts.discard)

    def _schedule_abort(self, session_id: str) -> None:
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None

        if running is not None and (self._loop is None or running is self._loop):
            self._spawn_abort(session_id)
            return

        # Called from another thread: hand over to the controller's loop.
        if self._loop is not None and not self._loop.is_closed():
            self._loop.call_soon_threadsafe(self._spawn_abort, session_id)
        else:
            logger.warning("No event loop to abort session_id=%s", session_id)
