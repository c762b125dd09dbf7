"""
Core data models for the lambda preprocessor.

The parser produces :class:`LambdaRecord` and :class:`AnchorPosition` objects
over an immutable :class:`Source`; the generator consumes them read-only.
"""
from __future__ import annotations

from bisect import bisect_left
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List

from .config import SOURCE_ENCODING, SOURCE_ERRORS
from .errors import SourceReadError


# ---------------------------------------------------------------------------
# Source buffer
# ---------------------------------------------------------------------------


class Source:
    """
    An immutable, fully loaded C source buffer.

    Parameters
    ----------
    text:
        The complete source text.
    file:
        Name used in diagnostics and emitted line markers.
    """

    def __init__(self, text: str, file: str = "<inline>") -> None:
        self._text = text
        self._file = file
        # Offsets of every newline, for offset -> line lookups
        self._newlines: List[int] = [
            i for i, ch in enumerate(text) if ch == "\n"
        ]

    @classmethod
    def from_file(cls, path: str) -> Source:
        """Read *path* into memory; raises :class:`SourceReadError` on failure."""
        try:
            text = Path(path).read_text(encoding=SOURCE_ENCODING, errors=SOURCE_ERRORS)
        except OSError as exc:
            raise SourceReadError(path, exc.strerror or str(exc)) from exc
        return cls(text, file=path)

    @property
    def text(self) -> str:
        return self._text

    @property
    def file(self) -> str:
        return self._file

    def __len__(self) -> int:
        return len(self._text)

    def line_at(self, offset: int) -> int:
        """Return the 1-based line number of *offset*."""
        return bisect_left(self._newlines, offset) + 1

    def span(self, begin: int, end: int) -> SourceRange:
        """Build a bounds-checked :class:`SourceRange` for ``[begin, end)``."""
        return SourceRange(self, begin, end - begin)

    def __repr__(self) -> str:
        return f"Source(file={self._file!r}, length={len(self._text)})"


@dataclass(frozen=True)
class SourceRange:
    """A ``begin`` + ``length`` window over a :class:`Source`."""

    source: Source = field(repr=False, compare=False)
    begin: int
    length: int

    def __post_init__(self) -> None:
        if self.begin < 0 or self.length < 0 or self.end > len(self.source):
            raise ValueError(
                f"range [{self.begin}, {self.begin + self.length}) outside "
                f"buffer of length {len(self.source)}"
            )

    @property
    def end(self) -> int:
        return self.begin + self.length

    @property
    def text(self) -> str:
        return self.source.text[self.begin:self.end]

    def contains(self, other: SourceRange) -> bool:
        return self.begin <= other.begin and other.end <= self.end


# ---------------------------------------------------------------------------
# Parser output
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LambdaRecord:
    """
    One ``lambda <type>(<args>) { <body> }`` occurrence.

    ``start`` is the offset of the ``lambda`` keyword.  ``args`` includes the
    parentheses and ``body`` includes the braces, so ``body.end`` is the offset
    just past the closing ``}``.
    """

    start: int
    type: SourceRange
    args: SourceRange
    body: SourceRange
    type_line: int
    body_line: int
    end_line: int

    @property
    def end(self) -> int:
        return self.body.end

    @property
    def return_type(self) -> str:
        return self.type.text.strip()

    def signature(self, name: str) -> str:
        """``<return-type> <name>(<args>)`` rebuilt from the captured text."""
        return f"{self.return_type} {name}{self.args.text}"

    def __repr__(self) -> str:
        return (
            f"LambdaRecord(start={self.start}, type={self.return_type!r}, "
            f"args={self.args.text!r}, lines={self.type_line}-{self.end_line})"
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "start": self.start,
            "type": self.return_type,
            "args": self.args.text,
            "body": [self.body.begin, self.body.end],
            "type_line": self.type_line,
            "body_line": self.body_line,
            "end_line": self.end_line,
        }


@dataclass(frozen=True)
class AnchorPosition:
    """A top-level offset where hoisted prototypes may be inserted."""

    offset: int
    line: int


@dataclass
class ParseResult:
    """Records and anchors, both sorted by offset."""

    source: Source
    records: List[LambdaRecord] = field(default_factory=list)
    anchors: List[AnchorPosition] = field(default_factory=list)

    def __repr__(self) -> str:
        return (
            f"ParseResult(file={self.source.file!r}, "
            f"records={len(self.records)}, anchors={len(self.anchors)})"
        )
