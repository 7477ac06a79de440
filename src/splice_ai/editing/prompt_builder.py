# src/splice_ai/editing/prompt_builder.py

from __future__ import annotations

from pathlib import Path
from typing import Any

from ..core.ports import DocumentStore
from ..tasks.task_models import Task

SYSTEM_PREAMBLE = "You are an expert code assistant helping to modify a specific section of code."


def _context_block(task: Task, documents: DocumentStore, context: Any) -> tuple[str, str]:
    """(file_content, context_info) according to the context settings."""
    buffer_id = task.buffer_id
    if getattr(context, "include_full_file", True):
        return "\n".join(documents.get_lines(buffer_id)), "Full file content provided"

    total = documents.line_count(buffer_id)
    before = max(0, int(getattr(context, "lines_before", 50)))
    after = max(0, int(getattr(context, "lines_after", 50)))
    start = max(1, task.region.start_line - before)
    end = min(total, task.region.end_line + after)
    content = "\n".join(documents.get_lines(buffer_id, start - 1, end))
    return content, f"Lines {start}-{end} (context window)"


def build_prompt(task: Task, documents: DocumentStore, context: Any) -> str:
    """
    Full prompt sent to the backend for one task.

    The response contract described here (bare code, optional IMPORTS comment on
    the first line) is what response_parser expects back.
    """
    buffer_id = task.buffer_id
    filepath = documents.buffer_name(buffer_id)
    filename = Path(filepath).name if filepath else "[No Name]"
    filetype = documents.buffer_filetype(buffer_id)
    file_content, context_info = _context_block(task, documents, context)

    start, end = task.region.start_line, task.region.end_line
    lines_label = f"{start}-{end}"

    parts = [
        SYSTEM_PREAMBLE,
        "",
        "## File Information",
        f"- **Filename**: {filename}",
        f"- **Filepath**: {filepath}",
        f"- **Language**: {filetype or 'unknown'}",
        f"- **Context**: {context_info}",
        "",
        "## Important Instructions",
        "",
        f"1. **Focus on the selected region**: The user has selected lines {lines_label}. "
        "Your primary task is to modify ONLY this selected region based on the user's instruction.",
        "",
        "2. **Allowed modifications outside selection**:",
        "   - You MAY add import/require statements if your changes require new dependencies",
        "   - You MUST NOT make any other changes outside the selected region",
        "",
        "3. **Response format**:",
        f"   - Respond with ONLY the replacement code for the selected region (lines {lines_label})",
        "   - Do NOT include line numbers",
        "   - Do NOT include markdown code fences",
        "   - Do NOT include explanations - just the code",
        "   - If imports need to be added, include them as a comment at the very start: "
        "`-- IMPORTS: import x from 'y'`",
        "",
        "## File Content",
        "",
        f"```{filetype}",
        file_content,
        "```",
        "",
        f"## Selected Region (Lines {lines_label})",
        "",
        f"```{filetype}",
        task.snapshot.text,
        "```",
        "",
        "## User Instruction",
        "",
        task.prompt,
    ]
    return "\n".join(parts)


def extract_selected_region(prompt: str) -> str | None:
    """Inverse helper used by the offline backend: the fenced selected region, if present."""
    marker = "## Selected Region"
    idx = prompt.find(marker)
    if idx < 0:
        return None
    rest = prompt[idx:]
    open_idx = rest.find("```")
    if open_idx < 0:
        return None
    body_start = rest.find("\n", open_idx)
    close_idx = rest.find("\n```", body_start)
    if body_start < 0 or close_idx < 0:
        return None
    return rest[body_start + 1:close_idx]
