# src/splice_ai/connectors/console_connector.py

from __future__ import annotations

import asyncio
import logging
from datetime import datetime

from ..cli.commands import registry as command_registry
from ..core.state import AppState
from ..editing.review import PendingReview
from ..tasks.task_models import Task, TaskStatus

logger = logging.getLogger(__name__)

PREVIEW_LINES = 20


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _print_ts(text: str) -> None:
    print(f"[{_ts_local()}] {text}", flush=True)


class ConsoleTaskEvents:
    """TaskEvents printed to the terminal (the console's indicators/notifications)."""

    def on_task_created(self, task: Task) -> None:
        _print_ts(f"[AI] Task {task.id} queued ({task.region.describe()})")

    def on_task_status_changed(self, task: Task) -> None:
        if task.status == TaskStatus.COMPLETED:
            _print_ts(f"[AI] Task {task.id} completed: {task.region.describe()} updated")
        elif task.status == TaskStatus.RUNNING:
            _print_ts(f"[AI] Task {task.id} running")
        elif task.status.is_terminal:
            reason = task.error_info.message if task.error_info else task.status.value
            _print_ts(f"[AI] Task {task.id} {task.status.value}: {reason}")

    def on_conflict_warning(self, task: Task) -> None:
        _print_ts(f"[AI][WARN] Selection was modified while AI was processing (task {task.id})")

    def on_notice(self, task: Task, message: str) -> None:
        _print_ts(f"[AI] {message}")


def print_review_request(item: PendingReview) -> None:
    lines = item.proposed_text.split("\n")
    shown = lines[:PREVIEW_LINES]
    _print_ts(f"[REVIEW] Task {item.task.id} proposes for {item.task.region.describe()}:")
    for line in shown:
        print(f"    {line}")
    if len(lines) > len(shown):
        print(f"    ... ({len(lines) - len(shown)} more lines)")
    print(f"  Use /accept {item.task.id} or /reject {item.task.id}", flush=True)


async def run_console_loop(state: AppState) -> None:
    """
    Async REPL: input() runs in a worker thread so AI tasks keep progressing
    on the event loop while the prompt waits for the user.
    """
    logger.info("Console connector started (buffer=%s).", state.current_buffer)
    _print_ts("[CONSOLE] Use /help for commands. Use /exit to quit.\n")

    def emit(text: str) -> None:
        _print_ts(text)

    while True:
        try:
            user_input = (await asyncio.to_thread(input, ">>> ")).strip()
        except EOFError:
            logger.info("Console EOF received, exiting.")
            break
        except KeyboardInterrupt:
            logger.info("Console KeyboardInterrupt, exiting.")
            print()
            break

        if not user_input:
            continue

        if user_input.lower() in ("/exit", "/quit"):
            logger.info("Console exit command received.")
            break

        try:
            cmd_response = command_registry.handle(state, user_input, emit=emit)
        except Exception:
            logger.exception("Command handler crashed.")
            cmd_response = "Internal error while handling a command."

        if cmd_response is None:
            cmd_response = "Not a command. Use /edit <start> <end> <prompt> or /help."
        _print_ts(cmd_response)

    logger.info("Console connector finished.")
