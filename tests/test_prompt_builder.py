# tests/test_prompt_builder.py

from __future__ import annotations

from splice_ai.config import ContextSettings
from splice_ai.core.regions import Region, Snapshot
from splice_ai.editing.prompt_builder import build_prompt, extract_selected_region


def _task(registry, documents, buffer, start, end, prompt="make it async"):
    region = Region.lines(buffer, start, end)
    return registry.create(region=region, snapshot=Snapshot(documents.get_region_text(region)), prompt=prompt)


def test_full_file_prompt(registry, documents, buffer) -> None:
    task = _task(registry, documents, buffer, 2, 3)

    prompt = build_prompt(task, documents, ContextSettings())

    assert "- **Filename**: demo.py" in prompt
    assert "- **Language**: python" in prompt
    assert "Full file content provided" in prompt
    assert "line 10" in prompt
    assert "## Selected Region (Lines 2-3)" in prompt
    assert prompt.endswith("## User Instruction\n\nmake it async")


def test_windowed_context_is_clamped_to_buffer(registry, documents, buffer) -> None:
    task = _task(registry, documents, buffer, 2, 3)

    prompt = build_prompt(task, documents, ContextSettings(include_full_file=False, lines_before=5, lines_after=2))

    assert "Lines 1-5 (context window)" in prompt
    assert "line 5" in prompt
    assert "line 6" not in prompt


def test_selected_region_can_be_recovered(registry, documents, buffer) -> None:
    task = _task(registry, documents, buffer, 4, 6)
    prompt = build_prompt(task, documents, ContextSettings())

    assert extract_selected_region(prompt) == "line 4\nline 5\nline 6"
    assert extract_selected_region("no markers here") is None
