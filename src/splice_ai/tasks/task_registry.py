# src/splice_ai/tasks/task_registry.py

from __future__ import annotations

import logging
import threading
import time
import uuid
from collections.abc import Callable

from ..core.errors import ErrorInfo
from ..core.regions import Region, Snapshot
from .task_models import Task, TaskStatus

logger = logging.getLogger(__name__)

StatusListener = Callable[[Task], None]


class TaskRegistry:
    """
    In-process task store.

    Thread-safety:
    - one registry lock guards membership (create/remove/queries)
    - each task has its own lock; status updates of different tasks never contend
    - listeners are called after the entry lock is released

    Terminal tasks are kept until explicitly removed (remove / clear_finished /
    clear_buffer), so their status stays inspectable.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._tasks: dict[str, Task] = {}
        self._entry_locks: dict[str, threading.Lock] = {}
        self._issued_ids: set[str] = set()  # ids are never reused
        self._listeners: list[StatusListener] = []
        logger.debug("TaskRegistry ready")

    # ---- listeners ----

    def add_listener(self, listener: StatusListener) -> None:
        with self._lock:
            self._listeners.append(listener)

    def _notify(self, task: Task) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(task)
            except Exception:
                logger.exception("Status listener failed task_id=%s", task.id)

    # ---- low-level helpers ----

    def _entry_lock(self, task_id: str) -> threading.Lock | None:
        with self._lock:
            return self._entry_locks.get(task_id)

    # ---- public API ----

    def create(self, *, region: Region, snapshot: Snapshot, prompt: str) -> Task:
        if not prompt or not prompt.strip():
            raise ValueError("prompt is required")

        now = time.time()
        with self._lock:
            task_id = uuid.uuid4().hex[:12]
            while task_id in self._issued_ids:
                task_id = uuid.uuid4().hex[:12]
            self._issued_ids.add(task_id)
            task = Task(
                id=task_id,
                region=region,
                snapshot=snapshot,
                prompt=prompt.strip(),
                status=TaskStatus.PENDING,
                created_at=now,
                updated_at=now,
            )
            self._tasks[task_id] = task
            self._entry_locks[task_id] = threading.Lock()

        logger.debug(
            "Task added id=%s buffer=%s %s",
            task.id,
            region.buffer_id,
            region.describe(),
        )
        return task

    def get(self, task_id: str) -> Task | None:
        with self._lock:
            return self._tasks.get(task_id)

    def by_buffer(self, buffer_id: int) -> list[Task]:
        with self._lock:
            return [t for t in self._tasks.values() if t.region.buffer_id == buffer_id]

    def active(self) -> list[Task]:
        """Tasks that are pending or running."""
        with self._lock:
            return [t for t in self._tasks.values() if t.status.is_active]

    def all(self) -> list[Task]:
        with self._lock:
            return list(self._tasks.values())

    def __len__(self) -> int:
        with self._lock:
            return len(self._tasks)

    def __contains__(self, task_id: object) -> bool:
        with self._lock:
            return task_id in self._tasks

    def transition(
            self,
            task_id: str,
            new_status: TaskStatus,
            *,
            session_ref: str | None = None,
            result_text: str | None = None,
            error: ErrorInfo | None = None,
    ) -> bool:
        """
        Move a task forward through the state machine.

        Returns False (and changes nothing) when the task is unknown or the
        transition is not allowed from its current status. Payload rules:
        - RUNNING requires session_ref (set exactly once)
        - COMPLETED requires result_text
        - FAILED / CANCELLED require error
        """
        if new_status == TaskStatus.RUNNING and not session_ref:
            raise ValueError("session_ref is required to enter running")
        if new_status == TaskStatus.COMPLETED and result_text is None:
            raise ValueError("result_text is required to enter completed")
        if new_status in (TaskStatus.FAILED, TaskStatus.CANCELLED) and error is None:
            raise ValueError(f"error is required to enter {new_status.value}")
        if result_text is not None and new_status != TaskStatus.COMPLETED:
            raise ValueError("result_text is only stored on completed")
        if error is not None and new_status not in (TaskStatus.FAILED, TaskStatus.CANCELLED):
            raise ValueError("error is only stored on failed/cancelled")

        lock = self._entry_lock(task_id)
        if lock is None:
            logger.debug("transition ignored: unknown task_id=%s", task_id)
            return False

        with lock:
            task = self.get(task_id)
            if task is None:
                return False

            old_status = task.status
            if not old_status.can_transition_to(new_status):
                logger.debug(
                    "Task %s: refused transition %s -> %s",
                    task_id,
                    old_status.value,
                    new_status.value,
                )
                return False

            if session_ref is not None:
                if task.backend_session_ref is not None:
                    raise RuntimeError(f"Task {task_id} already has a backend session")
                task.backend_session_ref = session_ref
            if result_text is not None:
                task.result_text = result_text
            if error is not None:
                task.error_info = error
            task.status = new_status
            task.updated_at = time.time()

        if error is not None:
            logger.info("Task %s %s -> %s (%s)", task_id, old_status.value, new_status.value, error)
        else:
            logger.info("Task %s %s -> %s", task_id, old_status.value, new_status.value)

        self._notify(task)
        return True

    def remove(self, task_id: str) -> Task | None:
        lock = self._entry_lock(task_id)
        if lock is None:
            return None
        # Lock order is always entry -> registry (same as transition).
        with lock:
            with self._lock:
                self._entry_locks.pop(task_id, None)
                task = self._tasks.pop(task_id, None)
        if task is not None:
            logger.debug("Task removed id=%s status=%s", task_id, task.status.value)
        return task

    def clear_finished(self) -> int:
        """Remove every completed/failed/cancelled task. Returns how many were removed."""
        with self._lock:
            done = [tid for tid, t in self._tasks.items() if t.status.is_terminal]
            for tid in done:
                self._tasks.pop(tid, None)
                self._entry_locks.pop(tid, None)
        if done:
            logger.debug("Cleared %d finished task(s)", len(done))
        return len(done)
