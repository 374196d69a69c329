"""Tests for ``tmlang.runtime.cli``."""

from __future__ import annotations

import json
from types import SimpleNamespace

import pytest

from tmlang import CompilerError, compile_machine, parse_definition
from tmlang.runtime import cli as runtime_cli

ACCEPTING = "{1};I={q0};F={q1};(q0,1,0,R,q1);"


def _params(**overrides):
    params = dict(trace=False, max_steps=100, loop_threshold=None, explore=None)
    params.update(overrides)
    return SimpleNamespace(**params)


def test_parse_args_defaults_and_optional_values():
    params = runtime_cli.parse_args([])
    assert params.file is None
    assert params.max_steps == 10_000
    assert params.explore is None
    assert params.visualize is None

    params = runtime_cli.parse_args(
        ["prog.tm", "--explore", "--visualize", "--diff", "a.json", "b.json"]
    )
    assert params.file == "prog.tm"
    assert params.explore == 4096
    assert params.visualize == ""
    assert params.diff == ["a.json", "b.json"]

    params = runtime_cli.parse_args(["--explore", "8", "--max-steps", "5"])
    assert params.explore == 8
    assert params.max_steps == 5


def test_format_diagnostic_points_at_the_offending_column():
    source = "{1};\nI={q0};\nF={q1};\n(q0, 1, 0, X, q1);"
    with pytest.raises(CompilerError) as excinfo:
        parse_definition(source)

    lines = runtime_cli.format_diagnostic(source, excinfo.value).splitlines()

    assert lines[0].startswith("InvalidInstruction at 4:12:")
    assert lines[1] == "    (q0, 1, 0, X, q1);"
    assert lines[2].index("^") == 15
    assert lines[1][15] == "X"


def test_format_diagnostic_without_position():
    error = CompilerError("something broke")
    assert runtime_cli.format_diagnostic("", error) == "CompilerError: something broke"


def test_run_program_reports_status(capsys):
    program, _ = compile_machine(ACCEPTING)
    result = runtime_cli.run_program(program, _params())

    assert result.status == "accepted"
    assert "status: accepted in state q1 after 1 steps" in capsys.readouterr().out


def test_run_program_trace_prints_each_step(capsys):
    program, _ = compile_machine("{};I={q0};F={q2};(q0,0,1,R,q1);(q1,0,1,R,q2);")
    result = runtime_cli.run_program(program, _params(trace=True))

    out = capsys.readouterr().out
    assert result.steps == 2
    assert "#1 (q0, 0, 1, R, q1) -> q1" in out
    assert "#2 (q1, 0, 1, R, q2) -> q2" in out


def test_run_program_explores_branches_on_request(capsys):
    program, _ = compile_machine("{};I={q0};F={yes};(q0,0,0,S,no);(q0,0,1,S,yes);")
    result = runtime_cli.run_program(program, _params(explore=16))

    out = capsys.readouterr().out
    assert result.status == "branch"
    assert "non-deterministic choice" in out
    assert "1 accepting" in out
    assert "accepted in yes" in out


def test_main_exit_codes(capsys):
    assert runtime_cli.main(["--src", ACCEPTING]) == 0
    assert runtime_cli.main(["--src", "{1};I={q0};F={q1};(q0,0,0,R,q1);"]) == 3
    assert runtime_cli.main([]) == 2

    assert runtime_cli.main(["--src", "{1};I={q0};"]) == 1
    err = capsys.readouterr().err
    assert "MissingFinalState" in err
    assert "^" in err


def test_main_prints_warnings(capsys):
    assert runtime_cli.main(["--src", "{};I={q0};F={q1};(q0,0,0,D,q1);"]) == 0
    out = capsys.readouterr().out
    assert "Compiler diagnostics:" in out
    assert "DeprecatedMovementAlias" in out


def test_main_lists_libraries(capsys):
    assert runtime_cli.main(["--list-libraries"]) == 0
    out = capsys.readouterr().out
    for name in ("next", "pred", "succ", "sum", "zero"):
        assert f"  {name}" in out


def test_main_exports_and_loads(tmp_path, capsys):
    source = tmp_path / "prog.tm"
    source.write_text(ACCEPTING, encoding="utf-8")
    exported = tmp_path / "prog.tm.json"

    assert runtime_cli.main([str(source), "--export", str(exported)]) == 0
    doc = json.loads(exported.read_text(encoding="utf-8"))
    assert doc["evaluation"]["status"] == "accepted"

    capsys.readouterr()
    assert runtime_cli.main(["--load", str(exported)]) == 0
    out = capsys.readouterr().out
    assert "Loaded machine document v1.0" in out
    assert "status: accepted" in out


def test_main_refuses_a_document_with_a_bad_tape(tmp_path, capsys):
    source = tmp_path / "prog.tm"
    source.write_text(ACCEPTING, encoding="utf-8")
    exported = tmp_path / "prog.tm.json"
    runtime_cli.main([str(source), "--export", str(exported)])

    doc = json.loads(exported.read_text(encoding="utf-8"))
    doc["tape"] = [2, 7]
    exported.write_text(json.dumps(doc), encoding="utf-8")
    capsys.readouterr()

    assert runtime_cli.main(["--load", str(exported)]) == 1
    captured = capsys.readouterr()
    assert "invalid tape symbol 2" in captured.err
    assert "Loaded" not in captured.out
