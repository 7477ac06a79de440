# src/splice_ai/documents/memory.py

from __future__ import annotations

import logging
import os
import threading
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path

from ..core.errors import DocumentError
from ..core.regions import Region

logger = logging.getLogger(__name__)

# File suffix -> filetype name (as used by the import placement tables).
FILETYPES_BY_SUFFIX: dict[str, str] = {
    ".py": "python",
    ".js": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
    ".jsx": "javascriptreact",
    ".ts": "typescript",
    ".tsx": "typescriptreact",
    ".go": "go",
    ".rs": "rust",
    ".lua": "lua",
    ".rb": "ruby",
    ".php": "php",
    ".c": "c",
    ".h": "c",
    ".cc": "cpp",
    ".cpp": "cpp",
    ".hpp": "cpp",
    ".java": "java",
    ".kt": "kotlin",
    ".scala": "scala",
    ".swift": "swift",
    ".cs": "cs",
    ".md": "markdown",
}


def filetype_for(path: str | Path) -> str:
    return FILETYPES_BY_SUFFIX.get(Path(path).suffix.lower(), "")


@dataclass(slots=True)
class Buffer:
    """One open document: a list of lines plus metadata."""

    buffer_id: int
    name: str = ""
    filetype: str = ""
    lines: list[str] = field(default_factory=lambda: [""])
    version: int = 1
    trailing_newline: bool = True

    def text(self) -> str:
        body = "\n".join(self.lines)
        return body + "\n" if self.trailing_newline else body


class InMemoryDocumentStore:
    """
    DocumentStore over in-memory line buffers.

    Every mutation builds the new line list first and swaps it in under the
    store lock, so readers never observe a half-applied change and a failed
    mutation leaves the buffer untouched.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._buffers: dict[int, Buffer] = {}
        self._next_id = 1

    # ---- buffer management ----

    def create_buffer(self, text: str = "", *, name: str = "", filetype: str = "") -> int:
        trailing = text.endswith("\n")
        body = text[:-1] if trailing else text
        lines = body.split("\n")
        with self._lock:
            buffer_id = self._next_id
            self._next_id += 1
            self._buffers[buffer_id] = Buffer(
                buffer_id=buffer_id,
                name=name,
                filetype=filetype or (filetype_for(name) if name else ""),
                lines=lines,
                trailing_newline=trailing or not text,
            )
        logger.debug("Buffer created id=%s name=%s lines=%d", buffer_id, name, len(lines))
        return buffer_id

    def open_file(self, path: str | Path) -> int:
        p = Path(path).expanduser()
        try:
            text = p.read_text("utf-8") if p.exists() else ""
        except OSError as e:
            raise DocumentError(f"Cannot read {p}: {e}") from e
        return self.create_buffer(text.replace("\r\n", "\n"), name=str(p))

    def save(self, buffer_id: int, path: str | Path | None = None) -> Path:
        buf = self._buffer(buffer_id)
        if not (path or buf.name):
            raise DocumentError(f"Buffer {buffer_id} has no file name")
        target = Path(path or buf.name).expanduser()
        tmp = target.with_suffix(target.suffix + ".tmp")
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_text(buf.text(), "utf-8")
            os.replace(tmp, target)
        except OSError as e:
            raise DocumentError(f"Cannot write {target}: {e}") from e
        logger.info("Saved buffer %s to %s", buffer_id, target)
        return target

    def close(self, buffer_id: int) -> None:
        with self._lock:
            self._buffers.pop(buffer_id, None)

    def _buffer(self, buffer_id: int) -> Buffer:
        with self._lock:
            buf = self._buffers.get(buffer_id)
        if buf is None:
            raise DocumentError(f"Buffer {buffer_id} does not exist")
        return buf

    # ---- DocumentStore port ----

    def buffer_exists(self, buffer_id: int) -> bool:
        with self._lock:
            return buffer_id in self._buffers

    def line_count(self, buffer_id: int) -> int:
        return len(self._buffer(buffer_id).lines)

    def buffer_name(self, buffer_id: int) -> str:
        return self._buffer(buffer_id).name

    def buffer_filetype(self, buffer_id: int) -> str:
        return self._buffer(buffer_id).filetype

    def version(self, buffer_id: int) -> int:
        return self._buffer(buffer_id).version

    def get_lines(self, buffer_id: int, start: int = 0, end: int | None = None) -> list[str]:
        with self._lock:
            lines = self._buffer(buffer_id).lines
            return list(lines[start:end])

    def get_text(self, buffer_id: int) -> str:
        return self._buffer(buffer_id).text()

    def get_region_text(self, region: Region) -> str:
        return "\n".join(self.get_lines(region.buffer_id, region.start_line - 1, region.end_line))

    def replace_lines(self, buffer_id: int, start: int, end: int, lines: Sequence[str]) -> None:
        with self._lock:
            buf = self._buffer(buffer_id)
            count = len(buf.lines)
            if start < 0 or end < start or start > count or end > count:
                raise DocumentError(
                    f"Line range {start}-{end} out of bounds for buffer {buffer_id} ({count} lines)"
                )
            new_lines = [*buf.lines[:start], *lines, *buf.lines[end:]]
            buf.lines = new_lines if new_lines else [""]
            buf.version += 1

    def insert_lines(self, buffer_id: int, at: int, lines: Sequence[str]) -> None:
        self.replace_lines(buffer_id, at, at, lines)

