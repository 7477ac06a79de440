# tests/test_import_placement.py

from __future__ import annotations

from splice_ai.editing.import_placement import IMPORT_SCAN_LINES, find_import_insert_line, is_import_line


def test_after_last_python_import() -> None:
    lines = [
        "#!/usr/bin/env python3",
        '"""Module."""',
        "import os",
        "from pathlib import Path",
        "",
        "def main():",
        "    import sys",
    ]
    assert find_import_insert_line(lines, "python") == 4


def test_js_require_and_import_forms() -> None:
    lines = ["'use strict'", "const fs = require('fs')", "import x from 'y'", "", "run()"]
    assert find_import_insert_line(lines, "javascript") == 3
    assert is_import_line("var a = require('a')", "javascript")
    assert not is_import_line("var a = require('a')", "typescript")


def test_c_includes_and_csharp_using() -> None:
    assert find_import_insert_line(["#include <stdio.h>", "# include \"a.h\"", "int x;"], "c") == 2
    assert find_import_insert_line(["using System;", "namespace A {}"], "cs") == 1


def test_no_imports_goes_after_preamble() -> None:
    lines = ["#!/usr/bin/env lua", "-- header", "", "local x = 1"]
    assert find_import_insert_line(lines, "lua") == 3


def test_no_imports_no_preamble_goes_to_top() -> None:
    assert find_import_insert_line(["package main", "func main() {}"], "go") == 0


def test_unknown_filetype_uses_default_comment_prefixes() -> None:
    assert find_import_insert_line(["// c", "# d", "body"], "") == 2


def test_imports_beyond_scan_window_are_ignored() -> None:
    lines = ["x = 1"] * IMPORT_SCAN_LINES + ["import os"]
    assert find_import_insert_line(lines, "python") == 0


def test_short_buffer_that_is_all_preamble_appends() -> None:
    assert find_import_insert_line(["# only a comment", ""], "python") == 2
    assert find_import_insert_line([], "python") == 0


def test_long_preamble_filling_window_falls_back_to_top() -> None:
    assert find_import_insert_line(["# c"] * (IMPORT_SCAN_LINES + 5), "python") == 0
