# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from splice_ai.config import BehaviorSettings, ContextSettings, ServerSettings
from splice_ai.core.state import AppState
from splice_ai.editing.review import PendingReviews
from splice_ai.tasks.controller import LifecycleController
from splice_ai.tasks.task_registry import TaskRegistry

from .fakes import SAMPLE_LINES, FailingDocumentStore, FakeBackend, RecordingEvents


@pytest.fixture()
def documents() -> FailingDocumentStore:
    return FailingDocumentStore()


@pytest.fixture()
def buffer(documents: FailingDocumentStore) -> int:
    """A 10-line python buffer: "line 1" .. "line 10"."""
    return documents.create_buffer("\n".join(SAMPLE_LINES) + "\n", name="/work/demo.py")


@pytest.fixture()
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture()
def events() -> RecordingEvents:
    return RecordingEvents()


@pytest.fixture()
def registry() -> TaskRegistry:
    return TaskRegistry()


@pytest.fixture()
def make_controller(registry, documents, backend, events):
    """
    Factory for a LifecycleController wired with fakes.

    Behavior flags are keyword arguments so each test states its policy.
    """

    def _make(*, review_gate=None, context=None, model=None, backend_override=None, **behavior) -> LifecycleController:
        return LifecycleController(
            registry=registry,
            documents=documents,
            backend=backend_override or backend,
            behavior=BehaviorSettings(**behavior),
            context=context or ContextSettings(),
            events=events,
            review_gate=review_gate,
            model=model,
        )

    return _make


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and the CLI modules.

    Never reads the environment or .env.
    """
    return SimpleNamespace(
        app_name="splice-test",
        data_dir=tmp_path / "data",
        backend="offline",
        server=ServerSettings(),
        context=ContextSettings(),
        behavior=BehaviorSettings(review_mode=True),
        model_spec=None,
    )


@pytest.fixture()
def state(settings, registry, documents, buffer, backend, events) -> AppState:
    reviews = PendingReviews()
    controller = LifecycleController(
        registry=registry,
        documents=documents,
        backend=backend,
        behavior=settings.behavior,
        context=settings.context,
        events=events,
        review_gate=reviews,
    )
    return AppState(
        settings=settings,
        documents=documents,
        backend=backend,
        reviews=reviews,
        controller=controller,
        current_buffer=buffer,
    )
