# src/splice_ai/backend/offline.py

from __future__ import annotations

import itertools
from typing import Any

from ..core.errors import BackendError
from ..core.ports import ModelSpec
from ..editing.prompt_builder import extract_selected_region


class OfflineBackend:
    """
    Offline deterministic backend used for demos when no AI server is configured.

    Behavior:
    - sessions are local counters, each good for one prompt
    - prompts -> the selected region from the prompt, unchanged
    - prompts without a selected region -> BackendError
    """

    def __init__(self) -> None:
        self._ids = itertools.count(1)
        self._sessions: set[str] = set()

    async def ensure_ready(self) -> None:
        return

    async def create_session(self) -> str:
        session_id = f"offline-{next(self._ids)}"
        self._sessions.add(session_id)
        return session_id

    async def send_prompt(self, session_id: str, prompt: str, model: ModelSpec | None = None) -> Any:
        if session_id not in self._sessions:
            raise BackendError(f"Unknown session: {session_id}")
        # Sessions carry a single prompt.
        self._sessions.discard(session_id)
        selected = extract_selected_region(prompt)
        if selected is None:
            raise BackendError("Offline backend: no selected region in prompt")
        return {"parts": [{"type": "text", "text": selected}]}

    async def abort_session(self, session_id: str) -> None:
        self._sessions.discard(session_id)
