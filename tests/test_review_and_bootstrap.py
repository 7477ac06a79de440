# tests/test_review_and_bootstrap.py

from __future__ import annotations

import asyncio
from types import SimpleNamespace

import pytest

from splice_ai.backend.offline import OfflineBackend
from splice_ai.backend.openai_compat import OpenAICompatBackend
from splice_ai.backend.opencode import OpenCodeBackend
from splice_ai.cli.bootstrap import close_backend, create_backend, create_initial_state
from splice_ai.config import BehaviorSettings, ContextSettings, ServerSettings
from splice_ai.core.ports import ReviewDecision
from splice_ai.core.regions import Region, Snapshot
from splice_ai.editing.review import PendingReviews


def _task(registry, buffer):
    return registry.create(region=Region.lines(buffer, 1, 1), snapshot=Snapshot("line 1"), prompt="p")


@pytest.mark.asyncio
async def test_review_yields_one_decision(registry, buffer) -> None:
    seen: list[str] = []
    reviews = PendingReviews(on_request=lambda item: seen.append(item.proposed_text))
    task = _task(registry, buffer)

    waiting = asyncio.create_task(reviews.request_review(task, "LINE 1"))
    await asyncio.sleep(0)

    assert seen == ["LINE 1"]
    assert [p.task.id for p in reviews.pending()] == [task.id]
    assert reviews.accept(task.id) is True
    assert reviews.reject(task.id) is False
    assert await waiting == ReviewDecision.ACCEPTED
    assert reviews.pending() == []
    assert reviews.reject(task.id) is False


@pytest.mark.asyncio
async def test_duplicate_review_request_is_refused(registry, buffer) -> None:
    reviews = PendingReviews()
    task = _task(registry, buffer)

    first = asyncio.create_task(reviews.request_review(task, "a"))
    await asyncio.sleep(0)
    with pytest.raises(RuntimeError):
        await reviews.request_review(task, "b")

    reviews.reject(task.id)
    assert await first == ReviewDecision.REJECTED


@pytest.mark.asyncio
async def test_failing_listener_does_not_block_review(registry, buffer) -> None:
    def boom(item) -> None:
        raise ValueError("listener bug")

    reviews = PendingReviews(on_request=boom)
    task = _task(registry, buffer)

    waiting = asyncio.create_task(reviews.request_review(task, "x"))
    await asyncio.sleep(0)
    reviews.accept(task.id)

    assert await waiting == ReviewDecision.ACCEPTED


def _settings(tmp_path, **overrides) -> SimpleNamespace:
    values = dict(
        data_dir=tmp_path / "data",
        backend="opencode",
        server=ServerSettings(),
        context=ContextSettings(),
        behavior=BehaviorSettings(),
        model_spec=None,
        openai_api_key=None,
        openai_base_url="https://llm.test/v1",
        llm_models=["a/b"],
        extra_headers={},
    )
    values.update(overrides)
    return SimpleNamespace(**values)


def test_create_backend_selection(tmp_path) -> None:
    assert isinstance(create_backend(_settings(tmp_path)), OpenCodeBackend)
    assert isinstance(create_backend(_settings(tmp_path, backend="offline")), OfflineBackend)
    assert isinstance(create_backend(_settings(tmp_path, backend="openai")), OfflineBackend)
    assert isinstance(
        create_backend(_settings(tmp_path, backend="openai", openai_api_key="k")),
        OpenAICompatBackend,
    )


@pytest.mark.asyncio
async def test_initial_state_wiring(tmp_path) -> None:
    settings = _settings(tmp_path, backend="offline")

    state = create_initial_state(settings=settings)

    assert settings.data_dir.is_dir()
    assert isinstance(state.backend, OfflineBackend)
    assert state.current_buffer is None
    assert state.controller.registry.all() == []
    await close_backend(state)
