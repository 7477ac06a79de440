# src/splice_ai/tasks/conflicts.py

from __future__ import annotations

import logging

from ..core.errors import DocumentError
from ..core.ports import DocumentStore
from .task_models import Task

logger = logging.getLogger(__name__)


def has_conflict(task: Task, documents: DocumentStore) -> bool:
    """
    True if the live region text differs from the task snapshot,
    or if the buffer is gone / unreadable.

    Pure predicate: reads the document, never writes.
    """
    region = task.region
    if not documents.buffer_exists(region.buffer_id):
        return True

    try:
        current = documents.get_region_text(region)
    except DocumentError:
        logger.debug("Region read failed task_id=%s", task.id, exc_info=True)
        return True

    return not task.snapshot.matches(current)
