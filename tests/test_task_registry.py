# tests/test_task_registry.py

from __future__ import annotations

import itertools
import threading
from types import SimpleNamespace

import pytest

from splice_ai.core.errors import ErrorInfo, ErrorKind
from splice_ai.core.regions import Region, Snapshot
from splice_ai.tasks import task_registry
from splice_ai.tasks.task_models import ALLOWED_TRANSITIONS, TaskStatus
from splice_ai.tasks.task_registry import TaskRegistry

ERR = ErrorInfo(ErrorKind.BACKEND_REJECTED, "nope")


def _payload(status: TaskStatus) -> dict:
    if status == TaskStatus.RUNNING:
        return {"session_ref": "ses-1"}
    if status == TaskStatus.COMPLETED:
        return {"result_text": "done"}
    if status in (TaskStatus.FAILED, TaskStatus.CANCELLED):
        return {"error": ERR}
    return {}


def _new(reg: TaskRegistry, buffer_id: int = 1, prompt: str = "rename x"):
    return reg.create(region=Region.lines(buffer_id, 1, 2), snapshot=Snapshot("a\nb"), prompt=prompt)


def _drive_to(reg: TaskRegistry, task_id: str, status: TaskStatus) -> None:
    path = {
        TaskStatus.PENDING: [],
        TaskStatus.RUNNING: [TaskStatus.RUNNING],
        TaskStatus.COMPLETED: [TaskStatus.RUNNING, TaskStatus.COMPLETED],
        TaskStatus.FAILED: [TaskStatus.FAILED],
        TaskStatus.CANCELLED: [TaskStatus.CANCELLED],
    }[status]
    for step in path:
        assert reg.transition(task_id, step, **_payload(step))


def test_create_starts_pending_with_unique_ids() -> None:
    reg = TaskRegistry()
    tasks = [_new(reg) for _ in range(50)]

    assert len({t.id for t in tasks}) == 50
    assert all(t.status == TaskStatus.PENDING for t in tasks)
    assert all(t.backend_session_ref is None and t.error_info is None for t in tasks)
    assert len(reg) == 50


def test_create_rejects_empty_prompt() -> None:
    reg = TaskRegistry()
    with pytest.raises(ValueError):
        _new(reg, prompt="   ")
    assert len(reg) == 0


@pytest.mark.parametrize(
    "src,dst",
    list(itertools.product(list(TaskStatus), list(TaskStatus))),
)
def test_transition_table_is_enforced(src: TaskStatus, dst: TaskStatus) -> None:
    reg = TaskRegistry()
    task = _new(reg)
    _drive_to(reg, task.id, src)

    ok = reg.transition(task.id, dst, **_payload(dst))

    assert ok is (dst in ALLOWED_TRANSITIONS[src])
    assert task.status == (dst if ok else src)


def test_refused_transition_changes_nothing_and_does_not_notify() -> None:
    reg = TaskRegistry()
    seen: list[TaskStatus] = []
    reg.add_listener(lambda t: seen.append(t.status))
    task = _new(reg)
    _drive_to(reg, task.id, TaskStatus.COMPLETED)
    before = (task.updated_at, task.result_text, task.error_info)

    assert reg.transition(task.id, TaskStatus.CANCELLED, error=ERR) is False
    assert (task.updated_at, task.result_text, task.error_info) == before
    assert seen == [TaskStatus.RUNNING, TaskStatus.COMPLETED]


def test_unknown_task_transition_is_false() -> None:
    reg = TaskRegistry()
    assert reg.transition("missing", TaskStatus.CANCELLED, error=ERR) is False


def test_payload_rules() -> None:
    reg = TaskRegistry()
    task = _new(reg)
    with pytest.raises(ValueError):
        reg.transition(task.id, TaskStatus.RUNNING)
    with pytest.raises(ValueError):
        reg.transition(task.id, TaskStatus.FAILED)
    with pytest.raises(ValueError):
        reg.transition(task.id, TaskStatus.RUNNING, session_ref="s", error=ERR)
    assert task.status == TaskStatus.PENDING

    reg.transition(task.id, TaskStatus.RUNNING, session_ref="ses-9")
    with pytest.raises(ValueError):
        reg.transition(task.id, TaskStatus.COMPLETED)
    assert reg.transition(task.id, TaskStatus.COMPLETED, result_text="x")
    assert task.backend_session_ref == "ses-9"
    assert task.result_text == "x"


def test_cancel_is_idempotent() -> None:
    reg = TaskRegistry()
    task = _new(reg)

    assert reg.transition(task.id, TaskStatus.CANCELLED, error=ERR) is True
    assert reg.transition(task.id, TaskStatus.CANCELLED, error=ERR) is False
    assert task.status == TaskStatus.CANCELLED
    assert task.error_info == ERR


def test_concurrent_terminal_transitions_have_one_winner() -> None:
    reg = TaskRegistry()
    task = _new(reg)
    reg.transition(task.id, TaskStatus.RUNNING, session_ref="s")

    results: list[bool] = []
    barrier = threading.Barrier(3)

    def attempt(status: TaskStatus) -> None:
        barrier.wait()
        results.append(reg.transition(task.id, status, **_payload(status)))

    threads = [
        threading.Thread(target=attempt, args=(s,))
        for s in (TaskStatus.COMPLETED, TaskStatus.FAILED, TaskStatus.CANCELLED)
    ]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert sorted(results) == [False, False, True]
    assert task.status.is_terminal


def test_listener_errors_do_not_break_transitions() -> None:
    reg = TaskRegistry()

    def broken(_task) -> None:
        raise RuntimeError("ui crashed")

    reg.add_listener(broken)
    task = _new(reg)
    assert reg.transition(task.id, TaskStatus.FAILED, error=ERR)
    assert task.status == TaskStatus.FAILED


def test_queries_and_cleanup() -> None:
    reg = TaskRegistry()
    a = _new(reg, buffer_id=1)
    b = _new(reg, buffer_id=1)
    c = _new(reg, buffer_id=2)
    _drive_to(reg, b.id, TaskStatus.COMPLETED)

    assert {t.id for t in reg.by_buffer(1)} == {a.id, b.id}
    assert {t.id for t in reg.active()} == {a.id, c.id}
    assert c.id in reg

    assert reg.clear_finished() == 1
    assert reg.get(b.id) is None

    assert reg.remove(a.id) is a
    assert reg.remove(a.id) is None
    assert reg.transition(a.id, TaskStatus.CANCELLED, error=ERR) is False
    assert len(reg) == 1


def test_short_prompt_truncates_to_thirty_chars() -> None:
    reg = TaskRegistry()
    task = _new(reg, prompt="x" * 31)
    assert task.short_prompt() == "x" * 30 + "..."
    assert _new(reg, prompt="short").short_prompt() == "short"


def test_removed_ids_are_never_issued_again(monkeypatch) -> None:
    hexes = iter(["a" * 32, "a" * 32, "b" * 32])
    monkeypatch.setattr(task_registry.uuid, "uuid4", lambda: SimpleNamespace(hex=next(hexes)))
    reg = TaskRegistry()

    first = _new(reg)
    reg.transition(first.id, TaskStatus.CANCELLED, error=ERR)
    assert reg.clear_finished() == 1

    second = _new(reg)

    assert first.id == "a" * 12
    assert second.id == "b" * 12
