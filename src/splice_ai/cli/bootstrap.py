# src/splice_ai/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- picks the AI backend (opencode / openai / offline),
- wires documents, registry, review queue and controller into AppState.
"""

from __future__ import annotations

import logging
from pathlib import Path

from ..backend.offline import OfflineBackend
from ..backend.openai_compat import OpenAICompatBackend
from ..backend.opencode import OpenCodeBackend
from ..config import get_settings
from ..core.ports import Backend, TaskEvents
from ..core.state import AppState
from ..documents.memory import InMemoryDocumentStore
from ..editing.review import PendingReviews, ReviewListener
from ..tasks.controller import LifecycleController
from ..tasks.task_registry import TaskRegistry

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    Path(settings.data_dir).mkdir(parents=True, exist_ok=True)


def create_backend(settings) -> Backend:
    """Backend named by settings.backend; offline when the choice cannot work here."""
    kind = getattr(settings, "backend", "opencode")

    if kind == "offline":
        return OfflineBackend()

    if kind == "openai":
        if not getattr(settings, "openai_api_key", None):
            # Fallback for demos / local runs without external services.
            logger.warning("No API key for the openai backend; using the offline backend")
            return OfflineBackend()
        return OpenAICompatBackend.from_settings(settings)

    return OpenCodeBackend(settings.server)


def create_initial_state(
        *,
        settings=None,
        events: TaskEvents | None = None,
        on_review: ReviewListener | None = None,
        backend: Backend | None = None,
) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings (and the backend) injectable makes the app easy to test.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    if backend is None:
        backend = create_backend(settings)

    documents = InMemoryDocumentStore()
    reviews = PendingReviews(on_request=on_review)
    controller = LifecycleController(
        registry=TaskRegistry(),
        documents=documents,
        backend=backend,
        behavior=settings.behavior,
        context=settings.context,
        events=events,
        review_gate=reviews,
        model=settings.model_spec,
    )
    logger.info(
        "State ready backend=%s review_mode=%s model=%s",
        type(backend).__name__,
        settings.behavior.review_mode,
        settings.model_spec,
    )
    return AppState(
        settings=settings,
        documents=documents,
        backend=backend,
        reviews=reviews,
        controller=controller,
    )


async def close_backend(state: AppState) -> None:
    """Best-effort: stop a spawned server / close HTTP clients."""
    aclose = getattr(state.backend, "aclose", None)
    if aclose is None:
        return
    try:
        await aclose()
    except Exception:
        logger.exception("Backend close failed")
