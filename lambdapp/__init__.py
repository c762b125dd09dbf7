"""
lambdapp
========

A preprocessor that adds anonymous functions to C.

Every ``lambda <type>(<args>) { <body> }`` written where a value is expected
is hoisted into a top-level function ``lambda_<N>`` and replaced by
``&lambda_<N>``.  Prototypes are inserted before the statement that first
needs them, and line markers keep compiler diagnostics pointing at the
original file.

Quick start
-----------
>>> from lambdapp import LambdaExpansion
>>> expansion = LambdaExpansion()
>>> print(expansion.expand_text("int (*f)(int) = lambda int(int x) { return x; };"))
"""

from .config import ExpansionConfig
from .errors import (
    LambdaPPError,
    MismatchedDelimiter,
    NestingTooDeep,
    ParseError,
    SourceReadError,
    UnbalancedDelimiter,
    UnterminatedConstruct,
)
from .models import AnchorPosition, LambdaRecord, ParseResult, Source, SourceRange
from .output.generator import LambdaGenerator
from .parser.lambda_parser import LambdaParser
from .pipeline.expansion import LambdaExpansion

__version__ = "0.1.0"
__all__ = [
    "AnchorPosition",
    "ExpansionConfig",
    "LambdaExpansion",
    "LambdaGenerator",
    "LambdaParser",
    "LambdaPPError",
    "LambdaRecord",
    "MismatchedDelimiter",
    "NestingTooDeep",
    "ParseError",
    "ParseResult",
    "Source",
    "SourceRange",
    "SourceReadError",
    "UnbalancedDelimiter",
    "UnterminatedConstruct",
]
