"""
Line markers tell the C compiler which original line the following text came
from, so diagnostics still point into the ``.l.c`` file after rewriting.
"""
from __future__ import annotations


def quote_file(file: str) -> str:
    """Quote *file* as a C string literal."""
    escaped = file.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def line_marker(line: int, file: str, style: str = "gnu") -> str:
    """
    Return a marker for *line* of *file* (without trailing newline).

    ``gnu`` produces the preprocessor-output form ``# 12 "f.c"``; ``c``
    produces the standard directive ``#line 12 "f.c"``.
    """
    if style == "c":
        return f"#line {line} {quote_file(file)}"
    return f"# {line} {quote_file(file)}"
