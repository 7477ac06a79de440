# src/splice_ai/editing/review.py

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass

from ..core.ports import ReviewDecision
from ..tasks.task_models import Task

logger = logging.getLogger(__name__)

ReviewListener = Callable[["PendingReview"], None]


@dataclass(slots=True)
class PendingReview:
    task: Task
    proposed_text: str
    future: asyncio.Future[ReviewDecision]


class PendingReviews:
    """
    ReviewGate backed by one single-shot future per request.

    The UI lists pending() reviews and calls resolve(); the apply engine awaits
    request_review(). A second resolve for the same request is refused, so a
    request yields exactly one decision. There is no timeout: abandoning a
    review is the UI's call (cancel the task, or resolve as rejected).
    """

    def __init__(self, on_request: ReviewListener | None = None) -> None:
        self._pending: dict[str, PendingReview] = {}
        self._on_request = on_request

    def pending(self) -> list[PendingReview]:
        return list(self._pending.values())

    def get(self, task_id: str) -> PendingReview | None:
        return self._pending.get(task_id)

    async def request_review(self, task: Task, proposed_text: str) -> ReviewDecision:
        if task.id in self._pending:
            raise RuntimeError(f"Review already pending for task {task.id}")

        loop = asyncio.get_running_loop()
        item = PendingReview(task=task, proposed_text=proposed_text, future=loop.create_future())
        self._pending[task.id] = item
        logger.info("Review requested task_id=%s", task.id)

        if self._on_request is not None:
            try:
                self._on_request(item)
            except Exception:
                logger.exception("Review listener failed task_id=%s", task.id)

        try:
            return await item.future
        finally:
            self._pending.pop(task.id, None)

    def resolve(self, task_id: str, decision: ReviewDecision) -> bool:
        item = self._pending.get(task_id)
        if item is None or item.future.done():
            return False
        item.future.set_result(decision)
        logger.info("Review resolved task_id=%s decision=%s", task_id, decision.value)
        return True

    def accept(self, task_id: str) -> bool:
        return self.resolve(task_id, ReviewDecision.ACCEPTED)

    def reject(self, task_id: str) -> bool:
        return self.resolve(task_id, ReviewDecision.REJECTED)
