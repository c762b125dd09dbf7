"""
Expansion settings shared by the parser, generator and CLI.
"""
from __future__ import annotations

from dataclasses import dataclass

LINE_STYLES = ("gnu", "c")

# Source bytes that are not valid UTF-8 pass through unchanged.
SOURCE_ENCODING = "utf-8"
SOURCE_ERRORS = "surrogateescape"

# Each nesting level costs two Python frames; both values stay well under
# the default recursion limit.
DEFAULT_MAX_DEPTH = 128
MAX_DEPTH_LIMIT = 256


@dataclass(frozen=True)
class ExpansionConfig:
    """
    Settings for one expansion run.

    Attributes
    ----------
    line_style:
        ``"gnu"`` emits ``# <line> "<file>"`` markers, ``"c"`` emits the
        standard ``#line <line> "<file>"`` form.
    max_depth:
        Maximum lambda nesting depth before :class:`~lambdapp.errors.NestingTooDeep`.
    """

    line_style: str = "gnu"
    max_depth: int = DEFAULT_MAX_DEPTH

    def validate(self) -> ExpansionConfig:
        if self.line_style not in LINE_STYLES:
            raise ValueError(
                f"line_style must be one of {', '.join(LINE_STYLES)}, "
                f"got {self.line_style!r}"
            )
        if not 1 <= self.max_depth <= MAX_DEPTH_LIMIT:
            raise ValueError(
                f"max_depth must be between 1 and {MAX_DEPTH_LIMIT}, "
                f"got {self.max_depth}"
            )
        return self
