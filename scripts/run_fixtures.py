"""
run_fixtures.py
===============

Preprocess, compile and run every ``*.l.c`` fixture in a directory and compare
the program's output with the ``/* OUTPUT: ... */`` block at the end of the
fixture.

Usage
-----
    python scripts/run_fixtures.py tests/fixtures
    python scripts/run_fixtures.py tests/fixtures --cc clang --keep

Artifacts are written under ``<DIR>/build/`` (``pp/``, ``obj/``,
``expected/``) and removed when every fixture passes unless ``--keep`` is
given.  Exit status is 1 when any fixture fails.
"""
from __future__ import annotations

import argparse
import os
import shutil
import subprocess
import sys
from pathlib import Path
from typing import Optional

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from lambdapp import LambdaExpansion, LambdaPPError
from lambdapp.config import SOURCE_ENCODING, SOURCE_ERRORS

OUTPUT_MARKER = "/* OUTPUT:"


def expected_output(source: str) -> Optional[str]:
    """Return the text between ``/* OUTPUT:`` and the closing ``*/``."""
    start = source.rfind(OUTPUT_MARKER)
    if start == -1:
        return None
    body_start = source.find("\n", start)
    end = source.find("*/", body_start)
    if body_start == -1 or end == -1:
        return None
    return source[body_start + 1:end]


def run_one(fixture: Path, build: Path, cc: str) -> Optional[str]:
    """Run one fixture; return a failure reason or ``None`` on success."""
    stem = fixture.name[: -len(".l.c")]
    source = fixture.read_text(encoding="utf-8")

    expect = expected_output(source)
    if expect is None:
        return "is illformatted"
    (build / "expected" / f"{stem}.txt").write_text(expect, encoding="utf-8")

    try:
        expanded = LambdaExpansion().expand_file(str(fixture))
    except LambdaPPError as exc:
        print(f"    {exc}")
        return "failed to process"
    pp_path = build / "pp" / f"{stem}.p.c"
    pp_path.write_text(expanded, encoding=SOURCE_ENCODING, errors=SOURCE_ERRORS)

    obj_path = build / "obj" / f"{stem}.x"
    compiled = subprocess.run(
        [cc, "-o", str(obj_path), str(pp_path)],
        capture_output=True,
        text=True,
    )
    if compiled.returncode != 0:
        print(compiled.stderr)
        return "failed to compile"

    ran = subprocess.run([str(obj_path)], capture_output=True, text=True)
    got_path = build / "expected" / f"{stem}.txt.got"
    got_path.write_text(ran.stdout, encoding="utf-8")
    if ran.stdout != expect:
        return "produced the wrong output"
    return None


def main() -> None:
    p = argparse.ArgumentParser(
        description="Run the *.l.c fixtures through lambda-pp and a C compiler"
    )
    p.add_argument("directory", metavar="DIR", help="Directory holding *.l.c files")
    p.add_argument("--cc", default=os.environ.get("CC", "cc"),
                   help="C compiler to use (default: $CC or cc)")
    p.add_argument("--keep", action="store_true",
                   help="Keep build artifacts even when all fixtures pass")
    args = p.parse_args()

    directory = Path(args.directory)
    build = directory / "build"
    for sub in ("pp", "obj", "expected"):
        (build / sub).mkdir(parents=True, exist_ok=True)

    fixtures = sorted(directory.glob("*.l.c"))
    failures: dict[str, int] = {}
    for fixture in fixtures:
        print(f"==> TEST: {fixture.name}")
        reason = run_one(fixture, build, args.cc)
        if reason:
            failures[reason] = failures.get(reason, 0) + 1
            print(f"==> FAIL: {fixture.name} {reason}")

    passed = len(fixtures) - sum(failures.values())
    if not failures:
        print("==> All tests succeeded")
        if not args.keep:
            shutil.rmtree(build)
        sys.exit(0)

    print(f"==> Tests: {len(fixtures)}")
    print(f"==> Succeeded: {passed}")
    for reason, count in failures.items():
        print(f"==> {reason}: {count}")
    sys.exit(1)


if __name__ == "__main__":
    main()
