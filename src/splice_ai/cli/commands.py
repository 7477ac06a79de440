# src/splice_ai/cli/commands.py

from __future__ import annotations

import contextlib
import inspect
import logging
from collections.abc import Callable
from pathlib import Path
from typing import cast

from ..core.errors import DocumentError
from ..core.regions import Region
from ..core.state import AppState
from ..tasks.task_models import Task

CommandEmitter = Callable[[str], None]
CommandHandler2 = Callable[[AppState, list[str]], str]
CommandHandler3 = Callable[[AppState, list[str], CommandEmitter | None], str]
CommandHandler = CommandHandler2 | CommandHandler3

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Simple slash-command registry used by the console connector (/help, /edit, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    def handle(
        self,
        state: AppState,
        line: str,
        emit: CommandEmitter | None = None,
    ) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            nparams = len(inspect.signature(handler).parameters)
        except (TypeError, ValueError):
            nparams = 3

        if nparams >= 3:
            h3 = cast(CommandHandler3, handler)
            return h3(state, args, emit)

        h2 = cast(CommandHandler2, handler)
        return h2(state, args)

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


def _current_buffer(state: AppState) -> int | None:
    buf = state.current_buffer
    if buf is None or not state.documents.buffer_exists(buf):
        return None
    return buf


def _find_task(state: AppState, ref: str) -> Task | None:
    """Task by full id or unambiguous id prefix."""
    registry_ = state.controller.registry
    task = registry_.get(ref)
    if task is not None:
        return task
    matches = [t for t in registry_.all() if t.id.startswith(ref)]
    return matches[0] if len(matches) == 1 else None


def _describe_task(task: Task) -> str:
    line = f"{task.id} [{task.status.value}] {task.region.describe()} - {task.short_prompt()}"
    if task.error_info is not None:
        line += f" ({task.error_info})"
    return line


def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


def cmd_show(state: AppState, args: list[str]) -> str:
    """
    /show              -> whole buffer with line numbers
    /show <start> <end> -> only that line range (1-based, inclusive)
    """
    buf = _current_buffer(state)
    if buf is None:
        return "No buffer is open."

    total = state.documents.line_count(buf)
    start, end = 1, total
    if args:
        try:
            start = int(args[0])
            end = int(args[1]) if len(args) > 1 else start
        except ValueError:
            return "Usage: /show [start end]"
    start, end = max(1, start), min(total, end)
    if start > end:
        return f"Nothing to show (buffer has {total} lines)."

    width = len(str(end))
    lines = state.documents.get_lines(buf, start - 1, end)
    return "\n".join(f"{n:>{width}} | {text}" for n, text in enumerate(lines, start=start))


def cmd_edit(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """/edit <start> <end> <prompt...> -> start an AI edit task on that line range."""
    buf = _current_buffer(state)
    if buf is None:
        return "No buffer is open."
    if len(args) < 3:
        return "Usage: /edit <start> <end> <prompt>"

    try:
        start, end = int(args[0]), int(args[1])
    except ValueError:
        return "Usage: /edit <start> <end> <prompt> (start/end are line numbers)"

    total = state.documents.line_count(buf)
    if start < 1 or end < start or end > total:
        return f"Invalid line range {start}-{end} (buffer has {total} lines)."

    prompt = " ".join(args[2:]).strip()
    if not prompt:
        return "Prompt cannot be empty."

    try:
        region = Region.lines(buf, start, end)
        task = state.controller.submit(region, prompt)
    except (ValueError, DocumentError) as e:
        return f"Cannot start task: {e}"

    if emit:
        with contextlib.suppress(Exception):
            emit(f"[AI] Processing {region.describe()}...")

    logger.debug("Edit requested task_id=%s %s", task.id, region.describe())
    return f"Task {task.id} started."


def cmd_tasks(state: AppState, args: list[str]) -> str:
    tasks = sorted(state.controller.registry.all(), key=lambda t: t.created_at)
    if not tasks:
        return "No tasks."
    return "Tasks:\n" + "\n".join(f"  {_describe_task(t)}" for t in tasks)


def cmd_status(state: AppState, args: list[str]) -> str:
    lines = state.controller.status_lines()
    if not lines:
        return "No active AI tasks"
    return "Active AI tasks:\n" + "\n".join(f"  {line}" for line in lines)


def cmd_cancel(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /cancel <task id>"
    task = _find_task(state, args[0])
    if task is None:
        return f"No task matches {args[0]!r}."
    if not state.controller.cancel(task.id):
        return f"Task {task.id} is already {task.status.value}."
    return f"Task {task.id} cancelled."


def cmd_cancelall(state: AppState, args: list[str]) -> str:
    buf = _current_buffer(state)
    if buf is None:
        return "No buffer is open."
    count = state.controller.cancel_all(buf)
    return f"Cancelled {count} task(s)."


def _resolve_review(state: AppState, args: list[str], *, accept: bool) -> str:
    pending = state.reviews.pending()
    if not args:
        if not pending:
            return "No pending reviews."
        lines = ["Pending reviews:"]
        for item in pending:
            lines.append(f"  {item.task.id} {item.task.region.describe()} - {item.task.short_prompt()}")
        return "\n".join(lines)

    task = _find_task(state, args[0])
    if task is None:
        return f"No task matches {args[0]!r}."
    ok = state.reviews.accept(task.id) if accept else state.reviews.reject(task.id)
    if not ok:
        return f"No pending review for task {task.id}."
    return f"Task {task.id}: changes {'accepted' if accept else 'rejected'}."


def cmd_accept(state: AppState, args: list[str]) -> str:
    return _resolve_review(state, args, accept=True)


def cmd_reject(state: AppState, args: list[str]) -> str:
    return _resolve_review(state, args, accept=False)


def cmd_clear(state: AppState, args: list[str]) -> str:
    removed = state.controller.clear_finished()
    return f"Removed {removed} finished task(s)."


def cmd_save(state: AppState, args: list[str]) -> str:
    buf = _current_buffer(state)
    if buf is None:
        return "No buffer is open."
    target = Path(args[0]) if args else None
    try:
        path = state.documents.save(buf, target)
    except DocumentError as e:
        return f"Save failed: {e}"
    return f"Saved {path}."


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("show", cmd_show, help_text="Show the buffer: /show [start end].")
registry.register("edit", cmd_edit, help_text="AI edit of a line range: /edit <start> <end> <prompt>.")
registry.register("tasks", cmd_tasks, help_text="List all tasks with ids and outcomes.")
registry.register("status", cmd_status, help_text="Show active AI tasks.")
registry.register("cancel", cmd_cancel, help_text="Cancel a task: /cancel <id>.")
registry.register("cancelall", cmd_cancelall, help_text="Cancel every active task of the buffer.")
registry.register("accept", cmd_accept, help_text="Accept a pending review: /accept <id> (no id lists reviews).")
registry.register("reject", cmd_reject, help_text="Reject a pending review: /reject <id>.")
registry.register("clear", cmd_clear, help_text="Forget finished tasks.")
registry.register("save", cmd_save, help_text="Write the buffer to disk: /save [path].")
