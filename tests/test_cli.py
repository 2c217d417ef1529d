"""CLI behaviour tests."""

from __future__ import annotations

from pathlib import Path

import pytest

from swiftstyle.cli import _build_parser, main
from swiftstyle.rules import builtin_rule_ids


def test_cli_accepts_verbose_before_command() -> None:
    parser = _build_parser()
    args = parser.parse_args(["--verbose", "check"])
    assert args.verbose is True
    assert args.command == "check"
    assert args.paths == ["."]


def test_cli_accepts_verbose_after_command() -> None:
    parser = _build_parser()
    args = parser.parse_args(["check", "--verbose", "Sources"])
    assert args.verbose is True
    assert args.paths == ["Sources"]


def test_cli_rejects_non_positive_workers(capsys) -> None:
    parser = _build_parser()
    with pytest.raises(SystemExit) as excinfo:
        parser.parse_args(["check", "--workers", "0"])
    assert excinfo.value.code == 2
    assert "positive integer" in capsys.readouterr().err


def test_rules_command_lists_every_rule(capsys) -> None:
    assert main(["rules"]) == 0

    lines = capsys.readouterr().out.splitlines()
    assert [line.split(" ", 1)[0] for line in lines] == builtin_rule_ids()
    assert lines[0].startswith("prefer-immutable-binding (warning): ")


def test_check_reports_warnings_with_zero_exit(tmp_path: Path, monkeypatch, capsys) -> None:
    (tmp_path / "App.swift").write_text("var count = 1\n", encoding="utf-8")
    monkeypatch.chdir(tmp_path)

    assert main(["check"]) == 0

    captured = capsys.readouterr()
    assert "App.swift:1:5: warning: 'count' is never reassigned" in captured.out
    assert "[prefer-immutable-binding]" in captured.out
    assert "1 file(s) checked: 0 error(s), 1 warning(s)" in captured.err


def test_check_honors_severity_from_config(tmp_path: Path, monkeypatch, capsys) -> None:
    (tmp_path / "App.swift").write_text("var count = 1\n", encoding="utf-8")
    (tmp_path / ".swiftstyle.yml").write_text("rules:\n  prefer-immutable-binding: error\n", encoding="utf-8")
    monkeypatch.chdir(tmp_path)

    assert main(["check", "App.swift"]) == 1
    assert "error: 'count' is never reassigned" in capsys.readouterr().out


def test_check_exits_with_usage_status_on_bad_config(tmp_path: Path, monkeypatch, capsys) -> None:
    (tmp_path / ".swiftstyle.yml").write_text("rules:\n  bogus-rule: true\n", encoding="utf-8")
    monkeypatch.chdir(tmp_path)

    with pytest.raises(SystemExit) as excinfo:
        main(["check"])

    assert excinfo.value.code == 2
    assert "configuration error: Unknown rule in configuration: bogus-rule" in capsys.readouterr().err


def test_check_exits_with_usage_status_on_missing_inputs(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)

    with pytest.raises(SystemExit) as excinfo:
        main(["check", "Missing.swift"])
    assert excinfo.value.code == 2

    with pytest.raises(SystemExit) as excinfo:
        main(["check", "--config", "nowhere.yml"])
    assert excinfo.value.code == 2


def test_parse_failure_sets_failing_exit(tmp_path: Path, monkeypatch) -> None:
    (tmp_path / "Broken.swift").write_text("func broken( {\n", encoding="utf-8")
    monkeypatch.chdir(tmp_path)

    assert main(["check"]) == 1
