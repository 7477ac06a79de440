# tests/test_response_parser.py

from __future__ import annotations

from types import SimpleNamespace

import pytest

from splice_ai.core.errors import ErrorKind, ResponseParseError
from splice_ai.editing.response_parser import (
    extract_text,
    normalize_response,
    parse_response,
    split_directive,
    strip_fences,
)

from .fakes import make_response


def test_normalize_accepts_all_response_shapes() -> None:
    shapes = [
        "x = 1",
        {"parts": [{"type": "text", "text": "x = 1"}]},
        [{"type": "text", "text": "x = 1"}],
        SimpleNamespace(parts=[SimpleNamespace(type="text", text="x = 1")]),
    ]
    for raw in shapes:
        assert extract_text(raw) == "x = 1"


def test_non_text_parts_are_ignored_and_text_parts_joined_in_order() -> None:
    raw = {
        "parts": [
            {"type": "step-start"},
            {"type": "text", "text": "a = 1"},
            {"type": "tool", "text": "ignored"},
            {"type": "text", "text": "b = 2"},
        ]
    }
    assert extract_text(raw) == "a = 1\nb = 2"


@pytest.mark.parametrize(
    "raw",
    [None, {}, {"parts": []}, {"parts": [{"type": "tool"}]}, {"parts": "oops"}, 42, ""],
)
def test_nothing_textual_is_no_content(raw) -> None:
    with pytest.raises(ResponseParseError) as exc:
        parse_response(raw)
    assert exc.value.kind == ErrorKind.NO_CONTENT
    assert str(exc.value) == "No code in AI response"


def test_normalize_unusable_is_empty() -> None:
    assert normalize_response(None) == ()
    assert normalize_response({"parts": None}) == ()


def test_fences_are_stripped() -> None:
    parsed = parse_response(make_response("```python\ndef f():\n    return 1\n```"))
    assert parsed.body == "def f():\n    return 1"
    assert parsed.auxiliary is None


def test_closing_fence_followed_by_newline_is_stripped() -> None:
    assert parse_response("```python\nfoo_safe()\n```\n").body == "foo_safe()"
    assert parse_response("```\nfoo_safe()\n```  \n\n").body == "foo_safe()"


def test_only_outer_fences_are_removed() -> None:
    text = "```md\nintro\n```js\ninner\n```\n```"
    assert strip_fences(text) == "intro\n```js\ninner\n```"


def test_unfenced_text_is_only_trimmed() -> None:
    parsed = parse_response("\n\n  x = 1\n\n\n")
    assert parsed.body == "  x = 1"


def test_imports_directive_is_split_from_body() -> None:
    parsed = parse_response(make_response("-- IMPORTS: import os\nprint(os.getcwd())"))
    assert parsed.auxiliary == "import os"
    assert parsed.body == "print(os.getcwd())"


@pytest.mark.parametrize("token", ["--", "//", "#", ";;", "%"])
def test_directive_comment_tokens(token: str) -> None:
    body, aux = split_directive(f"{token} IMPORTS: use std::fmt;\nfn main() {{}}")
    assert aux == "use std::fmt;"
    assert body == "fn main() {}"


def test_directive_only_recognized_on_first_line() -> None:
    parsed = parse_response("x = 1\n# IMPORTS: import os")
    assert parsed.auxiliary is None
    assert parsed.body == "x = 1\n# IMPORTS: import os"


def test_directive_inside_fence() -> None:
    parsed = parse_response("```ts\n// IMPORTS: import { a } from 'b'\nconst x = a()\n```")
    assert parsed.auxiliary == "import { a } from 'b'"
    assert parsed.body == "const x = a()"


def test_custom_tokens_restrict_directives() -> None:
    parsed = parse_response("-- IMPORTS: x\ny", comment_tokens=["#"])
    assert parsed.auxiliary is None
    assert parsed.body == "-- IMPORTS: x\ny"


@pytest.mark.parametrize("text", ["```\n```", "   \n\n", "-- IMPORTS: import os\n\n"])
def test_empty_after_cleanup_is_empty_body(text: str) -> None:
    with pytest.raises(ResponseParseError) as exc:
        parse_response(make_response(text))
    assert exc.value.kind == ErrorKind.EMPTY_BODY
    assert exc.value.to_info().message == "Empty code response"


def test_crlf_is_normalized() -> None:
    parsed = parse_response("```\r\na\r\nb\r\n```")
    assert parsed.body == "a\nb"
