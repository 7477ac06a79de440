# src/splice_ai/editing/response_parser.py

"""
Backend response -> replacement text.

Two stages:
1) normalize_response(): accept whatever the backend returned (bare string,
   {"parts": [...]}, a bare list of parts, or an object with .parts) and turn it
   into a tuple of ResponseSegment.
2) parse_response(): take the concatenated text and strip cosmetic wrapping
   (one leading/trailing code fence), pull out an optional IMPORTS directive,
   and trim blank lines at both ends.

This is not a markdown parser: only the outermost fence pair is recognized.
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from ..core.errors import ErrorKind, ResponseParseError

TEXT_KIND = "text"

# Line-comment tokens accepted in front of "IMPORTS:".
DIRECTIVE_COMMENT_TOKENS: tuple[str, ...] = ("--", "//", "#", ";;", "%")

_LEADING_FENCE_RE = re.compile(r"\A```[^\n`]*(?:\n|\Z)")
_TRAILING_FENCE_RE = re.compile(r"(?:\A|\n)```\s*\Z")


@dataclass(slots=True, frozen=True)
class ResponseSegment:
    kind: str
    text: str | None = None


@dataclass(slots=True, frozen=True)
class ParsedResponse:
    body: str
    auxiliary: str | None = None


def _segment_from(part: Any) -> ResponseSegment | None:
    if isinstance(part, str):
        return ResponseSegment(kind=TEXT_KIND, text=part)
    if isinstance(part, Mapping):
        kind = part.get("type")
        text = part.get("text")
    else:
        kind = getattr(part, "type", None)
        text = getattr(part, "text", None)
    if not isinstance(kind, str):
        return None
    return ResponseSegment(kind=kind, text=text if isinstance(text, str) else None)


def normalize_response(raw: Any) -> tuple[ResponseSegment, ...]:
    """Canonical segment tuple for any supported response shape (empty if unusable)."""
    if raw is None:
        return ()
    if isinstance(raw, str):
        return (ResponseSegment(kind=TEXT_KIND, text=raw),)

    if isinstance(raw, Mapping):
        parts = raw.get("parts")
    elif isinstance(raw, Sequence):
        parts = raw
    else:
        parts = getattr(raw, "parts", None)

    if parts is None or isinstance(parts, (str, bytes)) or not isinstance(parts, Sequence):
        return ()

    out: list[ResponseSegment] = []
    for part in parts:
        seg = _segment_from(part)
        if seg is not None:
            out.append(seg)
    return tuple(out)


def extract_text(raw: Any) -> str | None:
    """
    Join the text of every textual segment (in order, newline separated).

    Returns None when there is nothing textual or the result is empty.
    """
    texts = [
        seg.text
        for seg in normalize_response(raw)
        if seg.kind == TEXT_KIND and seg.text is not None
    ]
    if not texts:
        return None
    joined = "\n".join(texts)
    return joined if joined else None


def _directive_re(tokens: Sequence[str]) -> re.Pattern[str]:
    alts = "|".join(re.escape(t) for t in sorted(tokens, key=len, reverse=True))
    return re.compile(rf"\A(?:{alts})[ \t]*IMPORTS:[ \t]*(?P<payload>[^\n]*)(?:\n|\Z)")


_DEFAULT_DIRECTIVE_RE = _directive_re(DIRECTIVE_COMMENT_TOKENS)


def strip_fences(text: str) -> str:
    """Remove one leading and one trailing ``` fence line, if present."""
    text = _LEADING_FENCE_RE.sub("", text, count=1)
    return _TRAILING_FENCE_RE.sub("", text, count=1)


def trim_blank_lines(text: str) -> str:
    lines = text.split("\n")
    while lines and not lines[0].strip():
        lines.pop(0)
    while lines and not lines[-1].strip():
        lines.pop()
    return "\n".join(lines)


def split_directive(text: str, tokens: Sequence[str] | None = None) -> tuple[str, str | None]:
    """
    Split off a leading "<comment> IMPORTS: <payload>" line.

    Only the very first line is inspected; at most one directive is recognized.
    """
    pattern = _DEFAULT_DIRECTIVE_RE if tokens is None else _directive_re(tokens)
    m = pattern.match(text)
    if not m:
        return text, None
    payload = m.group("payload").strip()
    return text[m.end():], (payload or None)


def parse_text(text: str, *, comment_tokens: Sequence[str] | None = None) -> ParsedResponse:
    cleaned = strip_fences(text.replace("\r\n", "\n"))
    body, auxiliary = split_directive(cleaned, comment_tokens)
    body = trim_blank_lines(body)
    if not body:
        raise ResponseParseError(ErrorKind.EMPTY_BODY, "Empty code response")
    return ParsedResponse(body=body, auxiliary=auxiliary)


def parse_response(raw: Any, *, comment_tokens: Sequence[str] | None = None) -> ParsedResponse:
    """
    Backend response -> ParsedResponse.

    Raises ResponseParseError(NO_CONTENT) when nothing textual came back and
    ResponseParseError(EMPTY_BODY) when cleanup leaves nothing.
    """
    text = extract_text(raw)
    if text is None:
        raise ResponseParseError(ErrorKind.NO_CONTENT, "No code in AI response")
    return parse_text(text, comment_tokens=comment_tokens)
