"""Tests for inline suppression comments."""

from __future__ import annotations

from swiftstyle.engine import Linter
from swiftstyle.rules import discover_rules
from swiftstyle.suppression import collect_suppressions
from swiftstyle.syntax import tokenize
from tests._fixtures.swift import source


def _linter(*rule_ids: str) -> Linter:
    return Linter(discover_rules(list(rule_ids)), workers=1)


def test_directives_are_collected_per_line_and_file() -> None:
    _, comments = tokenize(
        source(
            """
            // swiftstyle:disable naming-convention, avoid-force-unwrap -- legacy module
            let a = 1 // swiftstyle:disable-line
            /* swiftstyle:disable-next-line prefer-immutable-binding */
            var b = 2
            """
        )
    )

    suppressions = collect_suppressions(comments)

    assert suppressions.file_wide == {"naming-convention", "avoid-force-unwrap"}
    assert suppressions.by_line == {2: {"all"}, 4: {"prefer-immutable-binding"}}


def test_disable_next_line_silences_only_that_line() -> None:
    linter = _linter("prefer-immutable-binding")

    report = linter.lint_text(
        source(
            """
            // swiftstyle:disable-next-line prefer-immutable-binding
            var first = 1
            var second = 2
            """
        )
    )

    assert [item.line for item in report.findings] == [3]


def test_disable_line_and_file_wide() -> None:
    linter = _linter("prefer-immutable-binding", "naming-convention")

    report = linter.lint_text(
        source(
            """
            // swiftstyle:disable naming-convention
            var First = 1 // swiftstyle:disable-line prefer-immutable-binding
            var Second = 2
            """
        )
    )

    assert [(item.line, item.rule_id) for item in report.findings] == [(3, "prefer-immutable-binding")]


def test_parse_errors_cannot_be_suppressed() -> None:
    linter = _linter("prefer-immutable-binding")

    report = linter.lint_text("// swiftstyle:disable\nfunc broken( {\n")

    assert [item.rule_id for item in report.findings] == ["parse-error"]
    assert report.exit_code == 1
