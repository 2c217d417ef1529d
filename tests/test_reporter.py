"""Tests for swiftstyle.reporter."""

from __future__ import annotations

from swiftstyle.models import Finding, LineIndex, Severity
from swiftstyle.reporter import INTERNAL_ERROR_RULE, PARSE_ERROR_RULE, aggregate

_TEXT = "let a = 1\nvar b = 2\nlet c = 3\n"
_INDEX = LineIndex(_TEXT)


def _finding(
    rule_id: str,
    start: int,
    end: int,
    *,
    path: str = "A.swift",
    severity: Severity = Severity.WARNING,
    message: str = "message",
) -> Finding:
    return Finding(rule_id=rule_id, severity=severity, message=message, path=path, span=_INDEX.span(start, end))


def test_findings_are_ordered_by_path_line_then_rule() -> None:
    report = aggregate(
        [
            _finding("naming-convention", 14, 15, path="B.swift"),
            _finding("prefer-immutable-binding", 14, 15),
            _finding("avoid-force-unwrap", 10, 13),
            _finding("naming-convention", 4, 5),
        ]
    )

    assert [(item.path, item.line, item.rule_id) for item in report.findings] == [
        ("A.swift", 1, "naming-convention"),
        ("A.swift", 2, "avoid-force-unwrap"),
        ("A.swift", 2, "prefer-immutable-binding"),
        ("B.swift", 2, "naming-convention"),
    ]


def test_duplicate_findings_collapse() -> None:
    report = aggregate(
        [
            _finding("prefer-immutable-binding", 14, 15),
            _finding("prefer-immutable-binding", 14, 15),
            _finding("prefer-immutable-binding", 14, 15, path="B.swift"),
        ]
    )

    assert len(report.findings) == 2
    assert report.counts == {"warning": 2, "error": 0}


def test_result_does_not_depend_on_arrival_order() -> None:
    items = [
        _finding("naming-convention", 24, 25),
        _finding("avoid-force-unwrap", 10, 13, severity=Severity.ERROR),
        _finding("naming-convention", 4, 5, path="C.swift"),
    ]

    assert aggregate(items) == aggregate(list(reversed(items)))


def test_exit_code_follows_errors_and_parse_failures() -> None:
    clean = aggregate([_finding("naming-convention", 4, 5)], files_checked=1)
    assert clean.exit_code == 0
    assert clean.summary() == "1 file(s) checked: 0 error(s), 1 warning(s)"

    failed = aggregate(
        [_finding(PARSE_ERROR_RULE, 0, 0, severity=Severity.ERROR, message="Could not parse file: boom")],
        files_checked=2,
        cancelled=True,
    )
    assert failed.parse_failures == 1
    assert failed.error_count == 1
    assert failed.exit_code == 1
    assert failed.summary() == "2 file(s) checked: 1 error(s), 0 warning(s) (cancelled)"


def test_to_dict_exposes_findings_and_counts() -> None:
    report = aggregate([_finding("avoid-force-unwrap", 10, 13)], files_checked=1)

    payload = report.to_dict()

    assert payload["counts"] == {"warning": 1, "error": 0}
    assert payload["exit_code"] == 0
    assert payload["cancelled"] is False
    assert payload["findings"] == [
        {
            "path": "A.swift",
            "line": 2,
            "column": 1,
            "end_line": 2,
            "end_column": 4,
            "rule": "avoid-force-unwrap",
            "severity": "warning",
            "message": "message",
        }
    ]
    assert str(report.findings[0]) == "A.swift:2:1: warning: message [avoid-force-unwrap]"


def test_internal_errors_from_different_rules_are_kept() -> None:
    report = aggregate(
        [
            _finding(INTERNAL_ERROR_RULE, 0, 0, severity=Severity.ERROR, message="Internal error in 'b': x"),
            _finding(INTERNAL_ERROR_RULE, 0, 0, severity=Severity.ERROR, message="Internal error in 'a': x"),
            _finding(INTERNAL_ERROR_RULE, 0, 0, severity=Severity.ERROR, message="Internal error in 'a': x"),
        ]
    )

    assert [item.message for item in report.findings] == [
        "Internal error in 'a': x",
        "Internal error in 'b': x",
    ]
    assert report.error_count == 2
