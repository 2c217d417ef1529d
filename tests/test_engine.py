"""Tests for swiftstyle.engine."""

from __future__ import annotations

import threading
import time

import pytest

from swiftstyle.config import LintConfig, RuleSetting
from swiftstyle.engine import Linter
from swiftstyle.models import Severity, SourceFile
from swiftstyle.rules import discover_rules

_SAMPLE = """\
class Cache {
    var entries: [String: Int] = [:]
    var label: UILabel!

    func value(for key: String) -> Int {
        var hits = 0
        return entries[key]!
    }
}
"""


class _ExplodingRule:
    description = "Always fails."
    default_severity = Severity.WARNING

    def __init__(self, rule_id: str = "exploding", message: str = "boom") -> None:
        self.rule_id = rule_id
        self.message = message

    def check(self, unit):
        raise RuntimeError(self.message)


class _ConcurrencyTracker:
    """Records how many files are being checked at the same time."""

    rule_id = "concurrency-tracker"
    description = "Tracks concurrency."
    default_severity = Severity.WARNING

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.active = 0
        self.peak = 0
        self.calls = 0

    def check(self, unit):
        with self._lock:
            self.active += 1
            self.calls += 1
            self.peak = max(self.peak, self.active)
        time.sleep(0.02)
        with self._lock:
            self.active -= 1
        return []


def test_linting_is_deterministic() -> None:
    linter = Linter(workers=1)

    first = linter.lint_text(_SAMPLE, "Cache.swift")
    second = linter.lint_text(_SAMPLE, "Cache.swift")

    assert first == second
    assert first.files_checked == 1
    rule_ids = {item.rule_id for item in first.findings}
    assert {"prefer-immutable-binding", "avoid-implicit-unwrap-optional", "avoid-force-unwrap"} <= rule_ids


def test_finding_spans_stay_inside_the_file() -> None:
    report = Linter(workers=1).lint_text(_SAMPLE, "Cache.swift")

    assert report.findings
    for item in report.findings:
        assert 0 <= item.span.start <= item.span.end <= len(_SAMPLE)
        assert item.path == "Cache.swift"


def test_unparseable_file_does_not_stop_the_others() -> None:
    linter = Linter(discover_rules(["prefer-immutable-binding"]), workers=2)
    sources = [
        SourceFile(path="Broken.swift", text="struct Broken {\n"),
        SourceFile(path="Good.swift", text="var count = 1\n"),
    ]

    report = linter.lint_sources(sources)

    assert [(item.path, item.rule_id) for item in report.findings] == [
        ("Broken.swift", "parse-error"),
        ("Good.swift", "prefer-immutable-binding"),
    ]
    assert report.findings[0].severity is Severity.ERROR
    assert report.findings[0].message.startswith("Could not parse file:")
    assert report.parse_failures == 1
    assert report.files_checked == 2
    assert report.exit_code == 1


def test_failing_rule_becomes_internal_error_finding() -> None:
    linter = Linter([_ExplodingRule(), *discover_rules(["prefer-immutable-binding"])], workers=1)

    report = linter.lint_text("var count = 1\n", "A.swift")

    assert [item.rule_id for item in report.findings] == ["internal-error", "prefer-immutable-binding"]
    internal = report.findings[0]
    assert internal.message == "Internal error in 'exploding': boom"
    assert internal.severity is Severity.ERROR
    assert (internal.line, internal.column) == (1, 1)
    assert report.exit_code == 1


def test_each_failing_rule_reports_its_own_internal_error() -> None:
    linter = Linter(
        [_ExplodingRule("rule-a", "boom in rule-a"), _ExplodingRule("rule-b", "boom in rule-b")],
        workers=1,
    )

    report = linter.lint_text("let x = 1\n", "A.swift")

    assert [item.message for item in report.findings] == [
        "Internal error in 'rule-a': boom in rule-a",
        "Internal error in 'rule-b': boom in rule-b",
    ]
    assert report.error_count == 2


def test_settings_override_severity_and_disable_rules() -> None:
    settings = {
        "prefer-immutable-binding": RuleSetting(severity=Severity.ERROR),
        "naming-convention": RuleSetting(enabled=False),
    }
    linter = Linter(discover_rules(["prefer-immutable-binding", "naming-convention"]), settings, workers=1)

    report = linter.lint_text("var Count = 1\n")

    assert [rule.rule_id for rule in linter.rules] == ["prefer-immutable-binding"]
    assert [(item.rule_id, item.severity) for item in report.findings] == [
        ("prefer-immutable-binding", Severity.ERROR),
    ]
    assert report.exit_code == 1


def test_from_config_applies_rules_and_workers(tmp_path) -> None:
    config = LintConfig(root=tmp_path, rules={"naming-convention": "off"}, workers=3)

    linter = Linter.from_config(config)

    assert linter.workers == 3
    assert "naming-convention" not in [rule.rule_id for rule in linter.rules]
    assert len(linter.rules) == 11
    assert Linter.from_config(config, workers=1).workers == 1


def test_invalid_worker_count_is_rejected() -> None:
    with pytest.raises(ValueError):
        Linter(workers=0)


def test_concurrency_is_bounded_by_workers() -> None:
    tracker = _ConcurrencyTracker()
    linter = Linter([tracker], workers=2)
    sources = [SourceFile(path=f"File{index}.swift", text="let a = 1\n") for index in range(8)]

    report = linter.lint_sources(sources)

    assert tracker.calls == 8
    assert 1 <= tracker.peak <= 2
    assert report.files_checked == 8
    assert report.cancelled is False


def test_cancelled_run_starts_no_new_files() -> None:
    tracker = _ConcurrencyTracker()
    linter = Linter([tracker], workers=2)
    event = threading.Event()
    event.set()

    report = linter.lint_sources([SourceFile(path="A.swift", text="let a = 1\n")], cancel_event=event)

    assert tracker.calls == 0
    assert report.cancelled is True
    assert report.files_checked == 0
    assert report.findings == ()


def test_lint_paths_walks_project(swift_project) -> None:
    swift_project.write(
        {
            "Sources/App.swift": "var count = 1\n",
            "Sources/Model.swift": "struct Model {\n    let id: Int\n}\n",
            "Vendor/Lib.swift": "var other = 2\n",
        }
    )
    linter = Linter(discover_rules(["prefer-immutable-binding"]), workers=2)

    report = linter.lint_paths([swift_project.path()], exclude_paths=["Vendor/"])

    assert report.files_checked == 2
    assert [item.path.rsplit("/", 1)[-1] for item in report.findings] == ["App.swift"]
