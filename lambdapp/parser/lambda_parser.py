"""
LambdaParser
============

Finds every ``lambda <type>(<args>) { <body> }`` expression in a C source
buffer and the top-level positions where hoisted prototypes may go.

One recursive walk, three modes:

* **top-level** – tracks delimiter balance and the *anchor cursor*.  While
  the anchor is sliding, whitespace and comments move it forward and a ``#``
  freezes it until the end of the directive line; the first other unit
  settles it and records an :class:`~lambdapp.models.AnchorPosition`.  A
  ``;`` at depth zero or a ``}`` returning to depth zero starts a new sliding
  anchor just past itself.
* **lambda** – entered right after the ``lambda`` keyword.  Skips whitespace
  to the return type, validates a parenthesised return type as a balanced
  group, scans to the argument list and walks it as a balanced group, scans
  to the ``{`` and walks the body until its closing ``}``.  The record is
  sealed there and control returns just past the brace.
* **balanced group** – walks exactly one ``( … )`` group and returns just
  past its closing parenthesis.

Lambdas found in any mode are parsed recursively, so records are appended
inner-first; :meth:`LambdaParser.parse` sorts them by start offset.  Every
delimiter problem raises a :class:`~lambdapp.errors.ParseError` immediately
and nothing is returned.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum, auto
from operator import attrgetter
from typing import List, Optional

from ..config import ExpansionConfig
from ..errors import NestingTooDeep
from ..models import AnchorPosition, LambdaRecord, ParseResult, Source
from .scanner import COMMENT_KINDS, DelimiterStack, Scanner, Unit, UnitKind

logger = logging.getLogger(__name__)

LAMBDA_KEYWORD = "lambda"


class _Mode(Enum):
    TOP_LEVEL = auto()
    LAMBDA_BODY = auto()
    BALANCED_GROUP = auto()


@dataclass
class _ParseContext:
    """Mutable state shared by every level of one parse."""

    source: Source
    scanner: Scanner
    max_depth: int
    records: List[LambdaRecord] = field(default_factory=list)
    anchors: List[AnchorPosition] = field(default_factory=list)


class _AnchorTracker:
    """Anchor cursor for the top-level walk."""

    def __init__(self, ctx: _ParseContext) -> None:
        self._ctx = ctx
        self.offset = 0
        self.sliding = True
        self.in_directive = False

    def visit(self, unit: Unit, depth: int) -> None:
        """Update the cursor after *unit*; *depth* is the nesting after it."""
        if self.in_directive:
            if depth == 0 and unit.kind is UnitKind.WHITESPACE and self._ends_directive(unit):
                self.in_directive = False
                self.offset = unit.end
            return

        if self.sliding:
            if unit.kind is UnitKind.WHITESPACE or unit.kind in COMMENT_KINDS:
                self.offset = unit.end
                return
            if unit.kind is UnitKind.OTHER and unit.text == "#":
                self.in_directive = True
                return
            self._settle()

        if depth == 0 and (
            (unit.kind is UnitKind.OTHER and unit.text == ";")
            or (unit.kind is UnitKind.CLOSE and unit.text == "}")
        ):
            self.offset = unit.end
            self.sliding = True

    def _settle(self) -> None:
        source = self._ctx.source
        self._ctx.anchors.append(
            AnchorPosition(offset=self.offset, line=source.line_at(self.offset))
        )
        self.sliding = False

    def _ends_directive(self, unit: Unit) -> bool:
        """True when the whitespace run holds the directive's final newline."""
        first = unit.text.find("\n")
        if first == -1:
            return False
        text = self._ctx.source.text
        # Backslash-newline continues the directive onto the next line
        if unit.start > 0 and text[unit.start - 1] == "\\":
            return unit.text.find("\n", first + 1) != -1
        return True


class LambdaParser:
    """
    Parses one :class:`~lambdapp.models.Source`.

    Parameters
    ----------
    source:
        The loaded source buffer.
    config:
        Expansion settings; only ``max_depth`` is used here.
    """

    def __init__(self, source: Source, config: Optional[ExpansionConfig] = None) -> None:
        self.source = source
        self.config = (config or ExpansionConfig()).validate()

    def parse(self) -> ParseResult:
        """
        Scan the whole buffer.

        Returns
        -------
        ParseResult
            Records and anchors, each sorted by offset.

        Raises
        ------
        ParseError
            On the first structural inconsistency.
        """
        ctx = _ParseContext(
            source=self.source,
            scanner=Scanner(self.source),
            max_depth=self.config.max_depth,
        )
        self._walk(ctx, 0, _Mode.TOP_LEVEL, depth=0)

        result = ParseResult(
            source=self.source,
            records=sorted(ctx.records, key=attrgetter("start")),
            anchors=sorted(ctx.anchors, key=attrgetter("offset")),
        )
        logger.info(
            "Found %d lambda(s) and %d anchor(s) in %s",
            len(result.records),
            len(result.anchors),
            self.source.file,
        )
        return result

    # ------------------------------------------------------------------
    # Walks
    # ------------------------------------------------------------------

    def _walk(self, ctx: _ParseContext, i: int, mode: _Mode, depth: int) -> int:
        """
        Walk units from *i*.

        In top-level mode the walk runs to the end of input and returns its
        length; in the other modes *i* must sit on the group's opening
        delimiter and the offset just past the matching closer is returned.
        """
        scanner = ctx.scanner
        length = len(ctx.source)
        stack = DelimiterStack(ctx.source)
        tracker = _AnchorTracker(ctx) if mode is _Mode.TOP_LEVEL else None

        while i < length:
            unit = scanner.next_unit(i)

            if unit.kind is UnitKind.WORD and unit.text == LAMBDA_KEYWORD:
                if tracker is not None:
                    tracker.visit(unit, len(stack))
                i = self._parse_lambda(ctx, unit.start, unit.end, depth + 1)
                continue

            if unit.kind is UnitKind.OPEN:
                stack.push(unit.text, unit.start)
            elif unit.kind is UnitKind.CLOSE:
                stack.pop(unit.text, unit.start)
                if not stack and mode is not _Mode.TOP_LEVEL:
                    return unit.end

            if tracker is not None:
                tracker.visit(unit, len(stack))
            i = unit.end

        stack.check_closed()
        if mode is not _Mode.TOP_LEVEL:
            # Only reachable when the group was never opened
            raise scanner.unterminated(i, "unexpected end of input")
        return i

    def _parse_lambda(self, ctx: _ParseContext, start: int, i: int, depth: int) -> int:
        """Parse one lambda whose keyword spans ``[start, i)``; return its end."""
        source = ctx.source
        scanner = ctx.scanner

        if depth > ctx.max_depth:
            raise NestingTooDeep(
                source.file,
                source.line_at(start),
                f"lambdas nested deeper than {ctx.max_depth} levels",
            )

        i = scanner.skip_white(i)
        if i >= len(source):
            raise scanner.unterminated(start, "expected return type after `lambda'")
        type_begin = i
        type_line = source.line_at(i)

        # Parenthesised return type, e.g. a function pointer
        if source.text[i] == "(":
            i = self._walk(ctx, i, _Mode.BALANCED_GROUP, depth)

        i = scanner.skip_to(i, "(", "lambda argument list")
        type_range = source.span(type_begin, i)

        args_end = self._walk(ctx, i, _Mode.BALANCED_GROUP, depth)
        args_range = source.span(i, args_end)

        body_begin = scanner.skip_to(args_end, "{", "lambda body")
        body_line = source.line_at(body_begin)
        body_end = self._walk(ctx, body_begin, _Mode.LAMBDA_BODY, depth)

        record = LambdaRecord(
            start=start,
            type=type_range,
            args=args_range,
            body=source.span(body_begin, body_end),
            type_line=type_line,
            body_line=body_line,
            end_line=source.line_at(body_end - 1),
        )
        ctx.records.append(record)
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("Sealed lambda at depth %d: %s", depth, record.to_dict())
        return body_end
