# src/splice_ai/core/errors.py

"""
Error vocabulary shared by the task core and its collaborators.

Collaborators raise exceptions (BackendError, DocumentError); the core never lets
them escape a task runner and records them on the task as ErrorInfo instead.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum


class ErrorKind(StrEnum):
    NO_CONTENT = "no_content"  # backend returned nothing usable
    EMPTY_BODY = "empty_body"  # response parsed to nothing
    TARGET_GONE = "target_gone"  # buffer/region no longer exists
    CONFLICT_CANCELLED = "conflict_cancelled"
    USER_REJECTED = "user_rejected"
    USER_CANCELLED = "user_cancelled"
    MUTATION_FAILED = "mutation_failed"
    BACKEND_REJECTED = "backend_rejected"
    TIMEOUT = "timeout"  # backend startup; recorded on tasks as BACKEND_REJECTED


@dataclass(slots=True, frozen=True)
class ErrorInfo:
    kind: ErrorKind
    message: str

    def __str__(self) -> str:
        return f"{self.kind.value}: {self.message}"


class BackendError(RuntimeError):
    """Raised by backend clients when a session/prompt call cannot be completed."""

    def __init__(self, message: str, *, kind: ErrorKind = ErrorKind.BACKEND_REJECTED) -> None:
        super().__init__(message)
        self.kind = kind


class DocumentError(RuntimeError):
    """Raised by document stores when a read or mutation primitive fails."""


class ResponseParseError(ValueError):
    """Raised when a backend response cannot be turned into replacement text."""

    def __init__(self, kind: ErrorKind, message: str) -> None:
        super().__init__(message)
        self.kind = kind

    def to_info(self) -> ErrorInfo:
        return ErrorInfo(self.kind, str(self))
