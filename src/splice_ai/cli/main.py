# src/splice_ai/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, opens the file given on the command line
and runs the console REPL until /exit. On the way out every active task is
cancelled and a server spawned by the backend is stopped.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
from dataclasses import replace

from ..cli.bootstrap import close_backend, create_initial_state
from ..config import get_settings
from ..connectors.console_connector import ConsoleTaskEvents, print_review_request, run_console_loop
from ..core.errors import DocumentError
from ..core.state import AppState
from ..logging_setup import level_from_name, setup_logging

logger = logging.getLogger(__name__)


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="splice", description="AI edits of line regions in a file.")
    parser.add_argument("file", help="file to open (created on /save if missing)")
    parser.add_argument(
        "--backend",
        choices=["opencode", "openai", "offline"],
        help="override SPLICE_BACKEND",
    )
    return parser.parse_args(argv)


async def _shutdown(state: AppState) -> None:
    """Best-effort shutdown (no exceptions should escape)."""
    try:
        await state.controller.shutdown()
    except Exception:
        logger.exception("Controller shutdown failed.")
    await close_backend(state)


async def _amain(state: AppState) -> None:
    try:
        await run_console_loop(state)
    finally:
        await _shutdown(state)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    settings = get_settings()
    if args.backend:
        settings = replace(settings, backend=args.backend)

    log_file = setup_logging(log_dir=settings.data_dir, console_level=level_from_name(settings.log_level))

    logger.info("Starting %s (log file %s)...", settings.app_name, log_file)

    state = create_initial_state(
        settings=settings,
        events=ConsoleTaskEvents(),
        on_review=print_review_request,
    )

    try:
        state.current_buffer = state.documents.open_file(args.file)
    except DocumentError as e:
        print(f"Cannot open {args.file}: {e}")
        return 1

    try:
        asyncio.run(_amain(state))
    except KeyboardInterrupt:
        logger.info("Interrupted.")
    logger.info("Bye.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
