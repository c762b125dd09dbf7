"""
lambdapp – command-line interface
=================================

Usage
-----
::

    lambda-pp [OPTIONS] [--] [FILE]
    python -m lambdapp.cli [OPTIONS] [--] [FILE]

Options
-------
--help, -h            Show help and exit.
--version, -V         Show the version and exit.
--output, -o          Output file path (default: stdout).
--line-style          Line marker form: ``gnu`` (default) or ``c``.
--max-depth N         Maximum lambda nesting depth.
--verbose, -v         Enable DEBUG logging.

With no FILE, or FILE ``-``, the source is read from standard input.  Bytes
that are not valid UTF-8 are copied to the output unchanged.

Exit status is 0 on success and 1 on usage, I/O or parse errors.  Errors are
written to stderr as ``<file>:<line> error: <message>`` and nothing is written
to the output.

Examples
--------
::

    lambda-pp tests/fixtures/basic.l.c > basic.c
    lambda-pp --line-style c prog.l.c -o prog.c
    lambda-pp prog.l.c | cc -x c - -o prog
"""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from . import __version__
from .config import (
    DEFAULT_MAX_DEPTH,
    LINE_STYLES,
    SOURCE_ENCODING,
    SOURCE_ERRORS,
    ExpansionConfig,
)
from .errors import LambdaPPError
from .pipeline.expansion import LambdaExpansion

logger = logging.getLogger(__name__)


class _ArgumentParser(argparse.ArgumentParser):
    """Reports usage errors with exit status 1."""

    def error(self, message: str) -> None:  # type: ignore[override]
        self.print_usage(sys.stderr)
        self.exit(1, f"{self.prog}: error: {message}\n")


def _build_parser() -> argparse.ArgumentParser:
    p = _ArgumentParser(
        prog="lambda-pp",
        description="lambda-pp – hoist inline lambda expressions out of C source",
    )
    p.add_argument(
        "source",
        nargs="?",
        default="-",
        metavar="FILE",
        help="C source file to expand (default: stdin)",
    )
    p.add_argument(
        "--version", "-V",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    p.add_argument(
        "--output", "-o",
        default="-",
        metavar="FILE",
        help="Output file (default: stdout)",
    )
    p.add_argument(
        "--line-style",
        choices=LINE_STYLES,
        default="gnu",
        help="Line marker form: gnu (# N \"file\", default) or c (#line N \"file\")",
    )
    p.add_argument(
        "--max-depth",
        type=int,
        default=DEFAULT_MAX_DEPTH,
        metavar="N",
        help=f"Maximum lambda nesting depth (default: {DEFAULT_MAX_DEPTH})",
    )
    p.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose (DEBUG) logging",
    )
    return p


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    try:
        config = ExpansionConfig(line_style=args.line_style, max_depth=args.max_depth)
        expansion = LambdaExpansion(config)
    except ValueError as exc:
        parser.error(str(exc))

    try:
        if args.source == "-":
            text = sys.stdin.buffer.read().decode(SOURCE_ENCODING, SOURCE_ERRORS)
            output_text = expansion.expand_text(text, source_name="<stdin>")
        else:
            output_text = expansion.expand_file(args.source)
    except LambdaPPError as exc:
        print(exc, file=sys.stderr)
        return 1

    if args.output == "-":
        sys.stdout.flush()
        sys.stdout.buffer.write(output_text.encode(SOURCE_ENCODING, SOURCE_ERRORS))
        sys.stdout.buffer.flush()
        return 0

    try:
        Path(args.output).write_text(
            output_text, encoding=SOURCE_ENCODING, errors=SOURCE_ERRORS
        )
    except OSError as exc:
        print(f"{args.output}: error: {exc.strerror or exc}", file=sys.stderr)
        return 1
    logger.info("Output written to %s", args.output)
    return 0


if __name__ == "__main__":
    sys.exit(main())
