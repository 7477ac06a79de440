# src/splice_ai/core/regions.py

from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True, frozen=True)
class Region:
    """
    Addressable span of a buffer.

    Lines are 1-indexed and inclusive. Columns are kept for display only:
    text capture and replacement always operate on whole lines.
    """

    buffer_id: int
    start_line: int
    start_col: int
    end_line: int
    end_col: int

    def __post_init__(self) -> None:
        if self.start_line < 1:
            raise ValueError("start_line must be >= 1")
        if self.end_line < self.start_line:
            raise ValueError("end_line must be >= start_line")

    @classmethod
    def lines(cls, buffer_id: int, start_line: int, end_line: int) -> Region:
        """Whole-line region."""
        return cls(
            buffer_id=buffer_id,
            start_line=start_line,
            start_col=1,
            end_line=end_line,
            end_col=1,
        )

    @property
    def line_span(self) -> int:
        return self.end_line - self.start_line + 1

    def describe(self) -> str:
        return f"lines {self.start_line}-{self.end_line}"


@dataclass(slots=True, frozen=True)
class Snapshot:
    """Region text captured when a task is created. Never mutated."""

    text: str

    def matches(self, current: str | None) -> bool:
        return current is not None and current == self.text
