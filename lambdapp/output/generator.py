"""
LambdaGenerator
===============

Turns a :class:`~lambdapp.models.ParseResult` back into C source.

Pass A – rewritten top-level text
    The buffer is copied from offset 0.  Each lambda occurrence is replaced by
    ``&lambda_<N>`` (``N`` = rank by start offset) and its whole body is
    skipped.  Before the first occurrence in a top-level segment, the
    prototypes of every lambda starting in that segment are inserted at the
    segment's anchor, followed by a line marker restoring the anchor's line.

Pass B – hoisted definitions
    Each lambda becomes ``<type> lambda_<N>(<args>) { <body> }`` preceded by
    line markers for its type and body lines.  The body is copied with the
    same slicing as pass A, so nested lambdas appear as references and get
    their own definitions.

Whenever a replaced lambda spanned several lines, a line marker for its
closing brace follows the reference so the rest of the line keeps its
original number.  The output always ends with a newline.
"""
from __future__ import annotations

import logging
from bisect import bisect_left, bisect_right
from typing import List, Optional

from ..config import ExpansionConfig
from ..models import LambdaRecord, ParseResult
from .line_markers import line_marker

logger = logging.getLogger(__name__)


def lambda_name(index: int) -> str:
    return f"lambda_{index}"


class _Emitter:
    """Accumulates output text and remembers whether a line is open."""

    def __init__(self) -> None:
        self._parts: List[str] = []
        self._at_line_start = True

    def write(self, text: str) -> None:
        if text:
            self._parts.append(text)
            self._at_line_start = text.endswith("\n")

    def start_line(self) -> None:
        if not self._at_line_start:
            self.write("\n")

    def getvalue(self) -> str:
        return "".join(self._parts)


class LambdaGenerator:
    """
    Generates the expanded source for one parse result.

    Parameters
    ----------
    result:
        Output of :meth:`~lambdapp.parser.lambda_parser.LambdaParser.parse`.
    config:
        Expansion settings; ``line_style`` selects the marker form.
    """

    def __init__(self, result: ParseResult, config: Optional[ExpansionConfig] = None) -> None:
        self.result = result
        self.config = (config or ExpansionConfig()).validate()
        self._text = result.source.text
        self._starts = [r.start for r in result.records]
        self._anchor_offsets = [a.offset for a in result.anchors]
        self._next_anchor = 0

    def generate(self) -> str:
        """Run both passes and return the complete output text."""
        self._next_anchor = 0
        out = _Emitter()

        self._mark(out, 1)
        self._slice(out, 0, len(self._text), first=0, anchored=True)
        out.start_line()

        for index, record in enumerate(self.result.records):
            self._definition(out, index, record)

        return out.getvalue()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _mark(self, out: _Emitter, line: int) -> None:
        out.start_line()
        out.write(line_marker(line, self.result.source.file, self.config.line_style))
        out.write("\n")

    def _slice(
        self,
        out: _Emitter,
        begin: int,
        end: int,
        first: int,
        anchored: bool,
    ) -> None:
        """
        Copy ``[begin, end)`` replacing lambdas from index *first* onwards.

        Lambdas starting before the cursor sit inside a body that was already
        replaced and are left for their own definitions.
        """
        records = self.result.records
        text = self._text
        cursor = begin
        k = first

        while k < len(records) and records[k].start < end:
            record = records[k]
            if record.start < cursor:
                k += 1
                continue

            if anchored:
                cursor = self._prototypes(out, cursor, record.start)

            out.write(text[cursor:record.start])
            out.write("&" + lambda_name(k))
            cursor = record.end
            if "\n" in text[record.start:record.end]:
                self._mark(out, record.end_line)
            k += 1

        out.write(text[cursor:end])

    def _prototypes(self, out: _Emitter, cursor: int, occurrence: int) -> int:
        """
        Emit the prototype block of the segment holding *occurrence*.

        Returns the new cursor: the anchor offset when a block was written,
        otherwise *cursor* unchanged.
        """
        anchors = self.result.anchors
        seg = bisect_right(self._anchor_offsets, occurrence) - 1
        if seg < self._next_anchor or anchors[seg].offset < cursor:
            return cursor
        anchor = anchors[seg]
        self._next_anchor = seg + 1

        if seg + 1 < len(anchors):
            limit = anchors[seg + 1].offset
        else:
            limit = len(self._text) + 1
        lo = bisect_left(self._starts, anchor.offset)
        hi = bisect_left(self._starts, limit)

        out.write(self._text[cursor:anchor.offset])
        out.start_line()
        for index in range(lo, hi):
            out.write(self.result.records[index].signature(lambda_name(index)) + ";\n")
        self._mark(out, anchor.line)
        logger.debug(
            "Inserted %d prototype(s) at line %d", hi - lo, anchor.line
        )
        return anchor.offset

    def _definition(self, out: _Emitter, index: int, record: LambdaRecord) -> None:
        signature = record.signature(lambda_name(index))
        self._mark(out, record.type_line)
        out.write(signature)
        if "\n" in signature or record.body_line != record.type_line:
            self._mark(out, record.body_line)
        else:
            out.write(" ")
        self._slice(out, record.body.begin, record.body.end, index + 1, anchored=False)
        out.write("\n")
