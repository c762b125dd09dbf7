"""
Exception hierarchy for the lambda preprocessor.

Every structural problem found while scanning is a :class:`ParseError` and is
terminal for the whole translation unit; the CLI is the only place these are
caught and reported.
"""
from __future__ import annotations


class LambdaPPError(Exception):
    """Base class for all errors raised by :mod:`lambdapp`."""


class SourceReadError(LambdaPPError):
    """The input file could not be opened or read."""

    def __init__(self, file: str, reason: str) -> None:
        self.file = file
        self.reason = reason
        super().__init__(f"{file}: error: failed to open file ({reason})")


class ParseError(LambdaPPError):
    """A structural inconsistency at a known source location."""

    def __init__(self, file: str, line: int, message: str) -> None:
        self.file = file
        self.line = line
        self.message = message
        super().__init__(f"{file}:{line} error: {message}")


class UnbalancedDelimiter(ParseError):
    """A closing delimiter with nothing open, or an opener never closed."""


class MismatchedDelimiter(ParseError):
    """A closing delimiter that does not match the innermost opener."""


class UnterminatedConstruct(ParseError):
    """A string, character literal, comment or lambda runs off the end."""


class NestingTooDeep(ParseError):
    """Lambdas nested deeper than the configured limit."""


class CompilerNotFound(LambdaPPError):
    """``lambda-cc`` could not locate a C compiler."""
