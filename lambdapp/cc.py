"""
lambda-cc – compiler wrapper
============================

Drop-in replacement for ``cc`` that runs ``lambda-pp`` on the source file
first and feeds its output to the real compiler on stdin.

Usage
-----
::

    lambda-cc [cc options]

Resolution rules
----------------
* **Compiler** – ``$CC``, then ``$CXX``, then the first of
  ``cc gcc clang pathcc tcc`` found on ``PATH``.
* **Preprocessor** – ``$LAMBDA_PP`` when set, otherwise this package's CLI
  (``python -m lambdapp.cli``).
* **Source** – the first non-option argument ending in ``.c`` (compiled as C)
  or ``.cc .cx .cxx .cpp`` (compiled as C++).  Without one the compiler is run
  unchanged, e.g. for a link step.
* **Output** – the argument after ``-o``; ``a.out`` when absent.

The compiler is invoked as::

    <cc> -x <lang> <args before -o> - -o <output> <args after -o>

and is never started when the preprocessor exits non-zero.  Set
``LAMBDA_CC_VERBOSE=1`` to log the commands.
"""
from __future__ import annotations

import logging
import os
import shutil
import subprocess
import sys
from dataclasses import dataclass, field
from typing import List, Mapping, Optional, Tuple

from .errors import CompilerNotFound, LambdaPPError

logger = logging.getLogger(__name__)

_COMPILERS = ("cc", "gcc", "clang", "pathcc", "tcc")
_SOURCE_LANGUAGES = {
    ".c": "c",
    ".cc": "c++",
    ".cx": "c++",
    ".cxx": "c++",
    ".cpp": "c++",
}
DEFAULT_OUTPUT = "a.out"


@dataclass
class CompilerInvocation:
    """Everything needed to run one preprocess-and-compile step."""

    compiler: str
    preprocessor: List[str]
    source: Optional[str] = None
    language: str = "c"
    output: str = DEFAULT_OUTPUT
    args_before: List[str] = field(default_factory=list)
    args_after: List[str] = field(default_factory=list)

    @property
    def link_only(self) -> bool:
        return self.source is None

    def preprocess_command(self) -> List[str]:
        return [*self.preprocessor, str(self.source)]

    def compile_command(self) -> List[str]:
        if self.link_only:
            return [self.compiler, *self.args_before]
        return [
            self.compiler,
            "-x", self.language,
            *self.args_before,
            "-",
            "-o", self.output,
            *self.args_after,
        ]


# ---------------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------------


def find_compiler(env: Mapping[str, str]) -> str:
    for var in ("CC", "CXX"):
        if env.get(var):
            return env[var]
    for name in _COMPILERS:
        if shutil.which(name, path=env.get("PATH")):
            return name
    raise CompilerNotFound("Couldn't find a compiler")


def find_preprocessor(env: Mapping[str, str]) -> List[str]:
    if env.get("LAMBDA_PP"):
        return [env["LAMBDA_PP"]]
    return [sys.executable, "-m", "lambdapp.cli"]


def find_source(args: List[str]) -> Optional[Tuple[int, str, str]]:
    """Return ``(index, path, language)`` of the first source argument."""
    for index, arg in enumerate(args):
        if arg.startswith("-"):
            continue
        for ext, language in _SOURCE_LANGUAGES.items():
            if arg.endswith(ext) and len(arg) > len(ext):
                return index, arg, language
    return None


def plan_invocation(
    args: List[str],
    env: Optional[Mapping[str, str]] = None,
) -> CompilerInvocation:
    """
    Work out the preprocess and compile commands for *args*.

    Raises
    ------
    CompilerNotFound
        No compiler could be located.
    LambdaPPError
        ``-o`` is not followed by a file name.
    """
    env = os.environ if env is None else env
    compiler = find_compiler(env)
    preprocessor = find_preprocessor(env)

    found = find_source(args)
    if found is None:
        return CompilerInvocation(compiler, preprocessor, args_before=list(args))
    source_index, source, language = found

    output = DEFAULT_OUTPUT
    output_index = len(args)
    if "-o" in args:
        output_index = args.index("-o")
        if output_index + 1 >= len(args):
            raise LambdaPPError("missing filename after `-o'")
        output = args[output_index + 1]

    before = [a for i, a in enumerate(args[:output_index]) if i != source_index]
    after = [
        a
        for i, a in enumerate(args[output_index + 2:], start=output_index + 2)
        if i != source_index
    ]
    return CompilerInvocation(
        compiler=compiler,
        preprocessor=preprocessor,
        source=source,
        language=language,
        output=output,
        args_before=before,
        args_after=after,
    )


# ---------------------------------------------------------------------------
# Execution
# ---------------------------------------------------------------------------


def run_invocation(invocation: CompilerInvocation) -> int:
    """Run *invocation*; return the first non-zero exit status, else 0."""
    if invocation.link_only:
        command = invocation.compile_command()
        logger.debug("Running: %s", " ".join(command))
        return subprocess.run(command).returncode

    pp_command = invocation.preprocess_command()
    logger.debug("Running: %s", " ".join(pp_command))
    pp = subprocess.run(pp_command, stdout=subprocess.PIPE)
    if pp.returncode != 0:
        logger.info("Preprocessor failed with status %d; not compiling", pp.returncode)
        return pp.returncode

    cc_command = invocation.compile_command()
    logger.debug("Running: %s", " ".join(cc_command))
    return subprocess.run(cc_command, input=pp.stdout).returncode


def main(argv: list[str] | None = None) -> int:
    args = sys.argv[1:] if argv is None else list(argv)

    logging.basicConfig(
        level=logging.DEBUG if os.environ.get("LAMBDA_CC_VERBOSE") else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    if not args:
        print("usage: lambda-cc [cc options]", file=sys.stderr)
        return 1

    try:
        invocation = plan_invocation(args)
        return run_invocation(invocation)
    except (LambdaPPError, OSError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
