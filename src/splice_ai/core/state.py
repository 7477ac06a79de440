# src/splice_ai/core/state.py

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from ..documents.memory import InMemoryDocumentStore
from ..editing.review import PendingReviews
from ..tasks.controller import LifecycleController
from .ports import Backend


@dataclass
class AppState:
    # Settings object kept on the state so commands can read it.
    settings: Any

    documents: InMemoryDocumentStore
    backend: Backend
    reviews: PendingReviews
    controller: LifecycleController

    # Buffer the console commands act on.
    current_buffer: int | None = None
