# src/splice_ai/editing/import_placement.py

"""
Where to put auxiliary import/include lines.

Only the first IMPORT_SCAN_LINES lines of a buffer are inspected:
- after the last line that looks like an import for the buffer's language,
- else after the leading preamble (shebang, blank and comment-only lines),
- else at the very top.
"""

from __future__ import annotations

import re
from collections.abc import Sequence

IMPORT_SCAN_LINES = 50

_JS_IMPORTS = (
    r"^import\s",
    r"^const\s.+=\s*require",
    r"^let\s.+=\s*require",
    r"^var\s.+=\s*require",
)
_TS_IMPORTS = (r"^import\s", r"^const\s.+=\s*require")

IMPORT_PATTERNS: dict[str, tuple[str, ...]] = {
    "javascript": _JS_IMPORTS,
    "javascriptreact": _TS_IMPORTS,
    "typescript": _TS_IMPORTS,
    "typescriptreact": _TS_IMPORTS,
    "python": (r"^import\s", r"^from\s.+import"),
    "go": (r"^import\s",),
    "rust": (r"^use\s",),
    "lua": (r"^local\s.+=\s*require", r"^require"),
    "ruby": (r"^require\s", r"^require_relative\s"),
    "php": (r"^use\s", r"^require\s", r"^include\s"),
    "c": (r"^#\s*include\s",),
    "cpp": (r"^#\s*include\s",),
    "java": (r"^import\s",),
    "kotlin": (r"^import\s",),
    "scala": (r"^import\s",),
    "swift": (r"^import\s",),
    "cs": (r"^using\s",),
}

_C_STYLE_COMMENTS = ("//", "/*", "*")

COMMENT_PREFIXES: dict[str, tuple[str, ...]] = {
    "javascript": _C_STYLE_COMMENTS,
    "javascriptreact": _C_STYLE_COMMENTS,
    "typescript": _C_STYLE_COMMENTS,
    "typescriptreact": _C_STYLE_COMMENTS,
    "go": _C_STYLE_COMMENTS,
    "rust": _C_STYLE_COMMENTS,
    "c": _C_STYLE_COMMENTS,
    "cpp": _C_STYLE_COMMENTS,
    "java": _C_STYLE_COMMENTS,
    "kotlin": _C_STYLE_COMMENTS,
    "scala": _C_STYLE_COMMENTS,
    "swift": _C_STYLE_COMMENTS,
    "cs": _C_STYLE_COMMENTS,
    "python": ("#",),
    "ruby": ("#",),
    "lua": ("--",),
    "php": ("<?php", "//", "/*", "*", "#"),
}

# Used when the filetype is unknown.
DEFAULT_COMMENT_PREFIXES = ("//", "--", "/*", "#")

_compiled: dict[str, tuple[re.Pattern[str], ...]] = {
    ft: tuple(re.compile(p) for p in patterns) for ft, patterns in IMPORT_PATTERNS.items()
}


def is_import_line(line: str, filetype: str) -> bool:
    return any(p.search(line) for p in _compiled.get(filetype, ()))


def is_preamble_line(line: str, filetype: str) -> bool:
    if line.startswith("#!"):
        return True
    stripped = line.strip()
    if not stripped:
        return True
    prefixes = COMMENT_PREFIXES.get(filetype, DEFAULT_COMMENT_PREFIXES)
    return stripped.startswith(prefixes)


def find_import_insert_line(lines: Sequence[str], filetype: str) -> int:
    """
    0-based index at which new import lines should be inserted,
    given the first lines of a buffer.
    """
    window = list(lines[:IMPORT_SCAN_LINES])

    last_import = -1
    for i, line in enumerate(window):
        if is_import_line(line, filetype):
            last_import = i
    if last_import >= 0:
        return last_import + 1

    for i, line in enumerate(window):
        if not is_preamble_line(line, filetype):
            return i

    # Whole window is preamble. A short buffer ends inside the window, so
    # append after it; otherwise the preamble end is unknown: use the top.
    if window and len(window) < IMPORT_SCAN_LINES:
        return len(window)
    return 0
