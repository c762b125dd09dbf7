"""
Tests for the lambda-cc compiler wrapper.

Command planning is tested against explicit environments; execution is
tested with ``subprocess.run`` replaced, plus one real build when a C
compiler is installed.
"""
from __future__ import annotations

import shutil
import subprocess
import sys
from pathlib import Path

import pytest

from lambdapp import cc
from lambdapp.cc import CompilerInvocation, find_source, plan_invocation, run_invocation
from lambdapp.errors import CompilerNotFound, LambdaPPError

ROOT = Path(__file__).parent.parent
FIXTURES = Path(__file__).parent / "fixtures"
ENV = {"CC": "mycc"}


# ─────────────────────────────────────────────────────────────────────────────
# Resolution
# ─────────────────────────────────────────────────────────────────────────────


class TestResolution:
    def test_cc_preferred(self):
        assert cc.find_compiler({"CC": "a", "CXX": "b"}) == "a"

    def test_cxx_fallback(self):
        assert cc.find_compiler({"CXX": "b"}) == "b"

    def test_no_compiler(self, tmp_path):
        with pytest.raises(CompilerNotFound) as info:
            cc.find_compiler({"PATH": str(tmp_path)})
        assert str(info.value) == "Couldn't find a compiler"

    def test_compiler_from_path(self, tmp_path):
        fake = tmp_path / "gcc"
        fake.write_text("#!/bin/sh\n")
        fake.chmod(0o755)
        assert cc.find_compiler({"PATH": str(tmp_path)}) == "gcc"

    def test_default_preprocessor(self):
        assert cc.find_preprocessor({}) == [sys.executable, "-m", "lambdapp.cli"]

    def test_preprocessor_override(self):
        assert cc.find_preprocessor({"LAMBDA_PP": "/opt/lambda-pp"}) == ["/opt/lambda-pp"]

    @pytest.mark.parametrize(
        "name, language",
        [
            ("x.c", "c"),
            ("x.cc", "c++"),
            ("x.cx", "c++"),
            ("x.cxx", "c++"),
            ("x.cpp", "c++"),
        ],
    )
    def test_source_languages(self, name, language):
        assert find_source(["-O2", name]) == (1, name, language)

    def test_no_source(self):
        assert find_source(["a.o", "-lm", "x.h"]) is None

    def test_option_values_are_not_sources(self):
        assert find_source(["-include=x.c", "y.c"]) == (1, "y.c", "c")


# ─────────────────────────────────────────────────────────────────────────────
# Planning
# ─────────────────────────────────────────────────────────────────────────────


class TestPlanInvocation:
    def test_full_command(self):
        inv = plan_invocation(["-O2", "prog.l.c", "-o", "prog", "-lm"], ENV)
        assert inv.preprocess_command()[-1] == "prog.l.c"
        assert inv.compile_command() == [
            "mycc", "-x", "c", "-O2", "-", "-o", "prog", "-lm",
        ]

    def test_default_output(self):
        inv = plan_invocation(["-Wall", "prog.l.c", "-g"], ENV)
        assert inv.output == "a.out"
        assert inv.compile_command() == [
            "mycc", "-x", "c", "-Wall", "-g", "-", "-o", "a.out",
        ]

    def test_source_after_output(self):
        inv = plan_invocation(["-o", "out", "x.cpp"], ENV)
        assert inv.language == "c++"
        assert inv.compile_command() == ["mycc", "-x", "c++", "-", "-o", "out"]

    def test_link_only(self):
        args = ["a.o", "b.o", "-o", "prog"]
        inv = plan_invocation(args, ENV)
        assert inv.link_only
        assert inv.compile_command() == ["mycc", *args]

    def test_missing_output_name(self):
        with pytest.raises(LambdaPPError) as info:
            plan_invocation(["x.c", "-o"], ENV)
        assert "-o" in str(info.value)


# ─────────────────────────────────────────────────────────────────────────────
# Execution
# ─────────────────────────────────────────────────────────────────────────────


class _FakeRun:
    """Stands in for subprocess.run and records every command."""

    def __init__(self, *returncodes):
        self.returncodes = list(returncodes)
        self.calls = []

    def __call__(self, command, **kwargs):
        self.calls.append((command, kwargs))
        return subprocess.CompletedProcess(
            command, self.returncodes.pop(0), stdout=b"int x;\n"
        )


class TestRunInvocation:
    @pytest.fixture
    def invocation(self):
        return CompilerInvocation(
            compiler="mycc",
            preprocessor=["lambda-pp"],
            source="prog.l.c",
            output="prog",
        )

    def test_pipes_preprocessor_into_compiler(self, invocation, monkeypatch):
        fake = _FakeRun(0, 0)
        monkeypatch.setattr(subprocess, "run", fake)
        assert run_invocation(invocation) == 0
        (pp_cmd, pp_kwargs), (cc_cmd, cc_kwargs) = fake.calls
        assert pp_cmd == ["lambda-pp", "prog.l.c"]
        assert pp_kwargs["stdout"] == subprocess.PIPE
        assert cc_cmd == ["mycc", "-x", "c", "-", "-o", "prog"]
        assert cc_kwargs["input"] == b"int x;\n"

    def test_preprocessor_failure_skips_compiler(self, invocation, monkeypatch):
        fake = _FakeRun(3)
        monkeypatch.setattr(subprocess, "run", fake)
        assert run_invocation(invocation) == 3
        assert len(fake.calls) == 1

    def test_compiler_status_returned(self, invocation, monkeypatch):
        monkeypatch.setattr(subprocess, "run", _FakeRun(0, 2))
        assert run_invocation(invocation) == 2

    def test_link_only_runs_compiler_once(self, monkeypatch):
        fake = _FakeRun(0)
        monkeypatch.setattr(subprocess, "run", fake)
        inv = CompilerInvocation("mycc", ["lambda-pp"], args_before=["a.o"])
        assert run_invocation(inv) == 0
        assert fake.calls[0][0] == ["mycc", "a.o"]


# ─────────────────────────────────────────────────────────────────────────────
# main()
# ─────────────────────────────────────────────────────────────────────────────


class TestMain:
    def test_no_arguments(self, capsys):
        assert cc.main([]) == 1
        assert "usage: lambda-cc" in capsys.readouterr().err

    def test_missing_output_name(self, monkeypatch, capsys):
        monkeypatch.setenv("CC", "mycc")
        assert cc.main(["x.c", "-o"]) == 1
        assert capsys.readouterr().err == "error: missing filename after `-o'\n"

    def test_no_compiler(self, monkeypatch, tmp_path, capsys):
        monkeypatch.delenv("CC", raising=False)
        monkeypatch.delenv("CXX", raising=False)
        monkeypatch.setenv("PATH", str(tmp_path))
        assert cc.main(["x.c"]) == 1
        assert capsys.readouterr().err == "error: Couldn't find a compiler\n"

    @pytest.mark.skipif(shutil.which("cc") is None, reason="no C compiler on PATH")
    def test_builds_fixture(self, monkeypatch, tmp_path):
        monkeypatch.setenv("CC", "cc")
        monkeypatch.delenv("LAMBDA_PP", raising=False)
        monkeypatch.chdir(ROOT)
        exe = tmp_path / "basic"
        assert cc.main([str(FIXTURES / "basic.l.c"), "-o", str(exe)]) == 0
        ran = subprocess.run([str(exe)], capture_output=True, text=True)
        assert ran.stdout.split() == ["5", "6", "7", "8", "9", "10", "9", "8", "7", "6"]
