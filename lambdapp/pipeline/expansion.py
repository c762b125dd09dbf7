"""
LambdaExpansion
===============

High-level facade over the two stages:

1. :class:`~lambdapp.parser.lambda_parser.LambdaParser`
   – find lambdas and prototype anchors.
2. :class:`~lambdapp.output.generator.LambdaGenerator`
   – emit rewritten source plus hoisted definitions.

Each call is an independent run; a :class:`~lambdapp.errors.ParseError` or
:class:`~lambdapp.errors.SourceReadError` propagates before any output text
exists.
"""
from __future__ import annotations

import logging
from typing import Optional

from ..config import ExpansionConfig
from ..models import ParseResult, Source
from ..output.generator import LambdaGenerator
from ..parser.lambda_parser import LambdaParser

logger = logging.getLogger(__name__)


class LambdaExpansion:
    """
    Expands lambda expressions in C source.

    Parameters
    ----------
    config:
        Expansion settings.  Defaults to :class:`~lambdapp.config.ExpansionConfig`.
    """

    def __init__(self, config: Optional[ExpansionConfig] = None) -> None:
        self.config = (config or ExpansionConfig()).validate()

    # ------------------------------------------------------------------
    # Primary API
    # ------------------------------------------------------------------

    def expand_file(self, file_path: str) -> str:
        """
        Expand the C source *file_path*.

        Returns
        -------
        str
            The complete translated source.
        """
        logger.info("Expanding file: %s", file_path)
        return self.expand_source(Source.from_file(file_path))

    def expand_text(self, text: str, source_name: str = "<inline>") -> str:
        """
        Expand C source supplied as a **string**.

        Parameters
        ----------
        text:
            Raw C source.
        source_name:
            File name used in diagnostics and line markers.
        """
        return self.expand_source(Source(text, file=source_name))

    def expand_source(self, source: Source) -> str:
        result = self.parse_source(source)
        return LambdaGenerator(result, self.config).generate()

    def parse_source(self, source: Source) -> ParseResult:
        """Run only the parsing stage."""
        return LambdaParser(source, self.config).parse()
