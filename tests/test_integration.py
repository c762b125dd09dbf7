"""
End-to-end integration tests.

These tests run the full pipeline (LambdaParser → LambdaGenerator) against
the ``*.l.c`` fixtures and, when a C compiler is available, compile and run
the expanded programs.
"""
from __future__ import annotations

import re
import shutil
import subprocess
from pathlib import Path

import pytest

from lambdapp import ExpansionConfig, LambdaExpansion, Source, SourceReadError

FIXTURES = Path(__file__).parent / "fixtures"
FIXTURE_FILES = sorted(FIXTURES.glob("*.l.c"))
MARKER_RE = re.compile(r'^# (\d+) "(.*)"$')

CC = shutil.which("cc") or shutil.which("gcc") or shutil.which("clang")
needs_cc = pytest.mark.skipif(CC is None, reason="no C compiler on PATH")


def _expected_output(text):
    start = text.rfind("/* OUTPUT:")
    body = text.index("\n", start) + 1
    return text[body:text.index("*/", body)]


def _ids(paths):
    return [p.name for p in paths]


class TestEndToEnd:
    """Full pipeline integration tests using fixture files."""

    @pytest.fixture
    def expansion(self):
        return LambdaExpansion()

    # ------------------------------------------------------------------
    # Output structure
    # ------------------------------------------------------------------

    @pytest.mark.parametrize("fixture", FIXTURE_FILES, ids=_ids(FIXTURE_FILES))
    def test_starts_with_marker(self, expansion, fixture):
        out = expansion.expand_file(str(fixture))
        assert out.startswith(f'# 1 "{fixture}"\n')
        assert out.endswith("\n")

    @pytest.mark.parametrize("fixture", FIXTURE_FILES, ids=_ids(FIXTURE_FILES))
    def test_no_lambda_keyword_left(self, expansion, fixture):
        out = expansion.expand_file(str(fixture))
        code = re.sub(r'"[^"\n]*"', '""', out)
        code = re.sub(r"/\*.*?\*/", "", code, flags=re.DOTALL)
        code = re.sub(r"//[^\n]*", "", code)
        assert re.search(r"\blambda\b", code) is None

    @pytest.mark.parametrize("fixture", FIXTURE_FILES, ids=_ids(FIXTURE_FILES))
    def test_line_fidelity(self, expansion, fixture):
        """Every copied line sits on (part of) the line its marker claims."""
        original = fixture.read_text(encoding="utf-8").split("\n")
        out = expansion.expand_file(str(fixture))
        line = None
        for out_line in out.rstrip("\n").split("\n"):
            m = MARKER_RE.match(out_line)
            if m:
                assert m.group(2) == str(fixture)
                line = int(m.group(1))
                continue
            assert line is not None
            if "lambda_" not in out_line:
                assert out_line in original[line - 1], f"line {line}: {out_line!r}"
            line += 1

    @pytest.mark.parametrize("fixture", FIXTURE_FILES, ids=_ids(FIXTURE_FILES))
    def test_each_lambda_defined_and_referenced(self, expansion, fixture):
        source = fixture.read_text(encoding="utf-8")
        count = len(expansion.expand_text(source).split("&lambda_")) - 1
        result = expansion.parse_source(Source(source, file=str(fixture)))
        assert count == len(result.records)
        out = expansion.expand_file(str(fixture))
        for index in range(count):
            assert out.count(f"&lambda_{index}") == 1
            assert len(re.findall(rf"\blambda_{index}\(.*\);$", out, re.MULTILINE)) == 1

    # ------------------------------------------------------------------
    # Fixture specifics
    # ------------------------------------------------------------------

    def test_basic_call_sites(self, expansion):
        out = expansion.expand_file(str(FIXTURES / "basic.l.c"))
        assert "for_range(5, 10, &lambda_0);" in out
        assert "for_range(10, 5, &lambda_1);" in out
        assert 'void lambda_0(int i) { printf("%i\\n", i); }' in out

    def test_nested_counts(self, expansion):
        path = FIXTURES / "nested.l.c"
        result = expansion.parse_source(Source.from_file(str(path)))
        assert len(result.records) == 4
        outer = result.records[0]
        for inner in result.records[1:]:
            assert outer.body.contains(inner.body)

    def test_nested_outer_references_inner(self, expansion):
        out = expansion.expand_file(str(FIXTURES / "nested.l.c"))
        outer_def = out[out.index("void lambda_0(int i) {"):]
        outer_def = outer_def[:outer_def.index("void lambda_1(int i)")]
        assert "&lambda_1" in outer_def
        assert "&lambda_2" in outer_def
        assert "&lambda_3" not in outer_def

    def test_directives_file_scope_initializer(self, expansion):
        out = expansion.expand_file(str(FIXTURES / "directives.l.c"))
        assert "static binop multiply = &lambda_0;" in out
        assert out.index("int lambda_0(int a, int b);") < out.index("static binop multiply")

    def test_directives_prototype_inside_conditional(self, expansion):
        out = expansion.expand_file(str(FIXTURES / "directives.l.c"))
        ifdef = out.index("#ifdef COUNT")
        assert ifdef < out.index("int lambda_1(int a, int b);") < out.index("static int twice")

    def test_c_line_style(self):
        expansion = LambdaExpansion(ExpansionConfig(line_style="c"))
        out = expansion.expand_file(str(FIXTURES / "basic.l.c"))
        assert out.startswith("#line 1 ")
        assert not any(MARKER_RE.match(ln) for ln in out.split("\n"))

    # ------------------------------------------------------------------
    # Facade
    # ------------------------------------------------------------------

    def test_missing_file(self, expansion, tmp_path):
        missing = tmp_path / "nope.l.c"
        with pytest.raises(SourceReadError) as info:
            expansion.expand_file(str(missing))
        assert str(info.value).startswith(f"{missing}: error: failed to open file (")

    def test_invalid_config_rejected(self):
        with pytest.raises(ValueError):
            LambdaExpansion(ExpansionConfig(line_style="msvc"))
        with pytest.raises(ValueError):
            LambdaExpansion(ExpansionConfig(max_depth=0))

    def test_expand_text_source_name(self, expansion):
        out = expansion.expand_text("int x;", source_name="demo.l.c")
        assert out == '# 1 "demo.l.c"\nint x;\n'

    def test_runs_are_independent(self, expansion):
        text = "void f(void) { g(lambda void(void) { }); }"
        assert expansion.expand_text(text) == expansion.expand_text(text)


# ─────────────────────────────────────────────────────────────────────────────
# Compile and run
# ─────────────────────────────────────────────────────────────────────────────


@needs_cc
class TestCompileAndRun:
    @pytest.mark.parametrize("fixture", FIXTURE_FILES, ids=_ids(FIXTURE_FILES))
    def test_program_output(self, fixture, tmp_path):
        source = fixture.read_text(encoding="utf-8")
        expanded = LambdaExpansion().expand_file(str(fixture))
        exe = tmp_path / "prog"

        compiled = subprocess.run(
            [CC, "-x", "c", "-", "-o", str(exe)],
            input=expanded,
            capture_output=True,
            text=True,
        )
        assert compiled.returncode == 0, compiled.stderr

        ran = subprocess.run([str(exe)], capture_output=True, text=True)
        assert ran.returncode == 0
        assert ran.stdout == _expected_output(source)

    def test_diagnostics_point_at_original_line(self, tmp_path):
        text = (
            "int main(void) {\n"
            "  void (*f)(void) = lambda void(void) {\n"
            "    undeclared_name();\n"
            "  };\n"
            "  f();\n"
            "  return 0;\n"
            "}\n"
        )
        expanded = LambdaExpansion().expand_text(text, source_name="diag.l.c")
        compiled = subprocess.run(
            [CC, "-x", "c", "-Werror=implicit-function-declaration",
             "-c", "-", "-o", str(tmp_path / "diag.o")],
            input=expanded,
            capture_output=True,
            text=True,
        )
        assert compiled.returncode != 0
        assert "diag.l.c:3" in compiled.stderr
