"""
Scanner
=======

Delimiter-aware classification of C source text, one unit at a time.

Unit kinds:

* ``STRING`` / ``CHAR`` – a quote up to and including the matching unescaped
  quote.
* ``LINE_COMMENT`` – ``//`` up to (not including) the next newline.
* ``BLOCK_COMMENT`` – ``/*`` up to and including ``*/``.
* ``OPEN`` / ``CLOSE`` – a single ``( [ {`` or ``) ] }``.
* ``WORD`` – identifier or number run ``[A-Za-z0-9_]+``.
* ``WHITESPACE`` – run of ASCII whitespace.
* ``OTHER`` – any other single character.

Literals and block comments that never terminate raise
:class:`~lambdapp.errors.UnterminatedConstruct`.  Bracket balance is tracked
separately by :class:`DelimiterStack`, which the parser keeps per walk.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum, auto
from typing import List, Tuple

from ..errors import MismatchedDelimiter, UnbalancedDelimiter, UnterminatedConstruct
from ..models import Source

_WORD_RE = re.compile(r"[A-Za-z0-9_]+")
_SPACE_RE = re.compile(r"\s+", re.ASCII)
_LITERAL_RE = {
    '"': re.compile(r'"(?:[^"\\]|\\.)*"', re.DOTALL),
    "'": re.compile(r"'(?:[^'\\]|\\.)*'", re.DOTALL),
}

OPENERS = "([{"
CLOSERS = ")]}"
_CLOSER_FOR = dict(zip(OPENERS, CLOSERS))


class UnitKind(Enum):
    STRING = auto()
    CHAR = auto()
    LINE_COMMENT = auto()
    BLOCK_COMMENT = auto()
    OPEN = auto()
    CLOSE = auto()
    WORD = auto()
    WHITESPACE = auto()
    OTHER = auto()


COMMENT_KINDS = (UnitKind.LINE_COMMENT, UnitKind.BLOCK_COMMENT)


@dataclass(frozen=True)
class Unit:
    """One classified span ``[start, end)`` of source text."""

    kind: UnitKind
    start: int
    end: int
    text: str

    def __repr__(self) -> str:
        return f"Unit({self.kind.name}, {self.start}:{self.end}, {self.text!r})"


class Scanner:
    """Classifies units of a :class:`~lambdapp.models.Source`."""

    def __init__(self, source: Source) -> None:
        self.source = source
        self._text = source.text

    def next_unit(self, i: int) -> Unit:
        """Classify the unit starting at offset *i* (which must be in bounds)."""
        text = self._text
        ch = text[i]

        if ch in _LITERAL_RE:
            m = _LITERAL_RE[ch].match(text, i)
            if m is None:
                what = "string literal" if ch == '"' else "character literal"
                raise self.unterminated(i, f"unterminated {what}")
            kind = UnitKind.STRING if ch == '"' else UnitKind.CHAR
            return Unit(kind, i, m.end(), m.group())

        if text.startswith("//", i):
            end = text.find("\n", i)
            if end == -1:
                end = len(text)
            return Unit(UnitKind.LINE_COMMENT, i, end, text[i:end])

        if text.startswith("/*", i):
            close = text.find("*/", i + 2)
            if close == -1:
                raise self.unterminated(i, "unterminated comment")
            return Unit(UnitKind.BLOCK_COMMENT, i, close + 2, text[i:close + 2])

        if ch in OPENERS:
            return Unit(UnitKind.OPEN, i, i + 1, ch)
        if ch in CLOSERS:
            return Unit(UnitKind.CLOSE, i, i + 1, ch)

        m = _WORD_RE.match(text, i)
        if m:
            return Unit(UnitKind.WORD, i, m.end(), m.group())
        m = _SPACE_RE.match(text, i)
        if m:
            return Unit(UnitKind.WHITESPACE, i, m.end(), m.group())

        return Unit(UnitKind.OTHER, i, i + 1, ch)

    def skip_white(self, i: int) -> int:
        """Return the first offset at or after *i* that is not whitespace."""
        m = _SPACE_RE.match(self._text, i)
        return m.end() if m else i

    def skip_to(self, i: int, char: str, what: str) -> int:
        """
        Return the offset of the next opening *char* at or after *i*.

        The search walks whole units, so a *char* inside a comment or a
        literal is never matched.  Raises :class:`UnterminatedConstruct`
        (reported at *i*) when no such opener occurs; *what* names the
        missing piece in the message.
        """
        start = i
        while i < len(self._text):
            unit = self.next_unit(i)
            if unit.kind is UnitKind.OPEN and unit.text == char:
                return unit.start
            i = unit.end
        raise self.unterminated(start, f"expected `{char}' for {what}")

    def unterminated(self, offset: int, message: str) -> UnterminatedConstruct:
        return UnterminatedConstruct(
            self.source.file, self.source.line_at(offset), message
        )


class DelimiterStack:
    """
    Expected closing delimiters for one walk, innermost last.

    Each entry remembers the opener's offset so an unclosed group can be
    reported at the line where it was opened.
    """

    def __init__(self, source: Source) -> None:
        self._source = source
        self._entries: List[Tuple[str, int]] = []

    def __len__(self) -> int:
        return len(self._entries)

    def __bool__(self) -> bool:
        return bool(self._entries)

    def push(self, opener: str, offset: int) -> None:
        self._entries.append((_CLOSER_FOR[opener], offset))

    def pop(self, closer: str, offset: int) -> None:
        """Close the innermost group with *closer* found at *offset*."""
        if not self._entries:
            raise UnbalancedDelimiter(
                self._source.file,
                self._source.line_at(offset),
                f"too many closing delimiters, unexpected `{closer}'",
            )
        expected, _ = self._entries[-1]
        if closer != expected:
            raise MismatchedDelimiter(
                self._source.file,
                self._source.line_at(offset),
                f"mismatching `{expected}' and `{closer}'",
            )
        self._entries.pop()

    def check_closed(self) -> None:
        """Raise :class:`UnbalancedDelimiter` for the innermost unclosed opener."""
        if self._entries:
            expected, offset = self._entries[-1]
            opener = OPENERS[CLOSERS.index(expected)]
            raise UnbalancedDelimiter(
                self._source.file,
                self._source.line_at(offset),
                f"unclosed `{opener}', expected `{expected}' before end of input",
            )
