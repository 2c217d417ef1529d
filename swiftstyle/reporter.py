"""Aggregation of findings into a deterministic report."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Set, Tuple

from .models import Finding, Severity

PARSE_ERROR_RULE = "parse-error"
INTERNAL_ERROR_RULE = "internal-error"


@dataclass(frozen=True)
class Report:
    """Ordered, de-duplicated findings for one lint run."""

    findings: Tuple[Finding, ...] = ()
    counts: Dict[str, int] = field(default_factory=dict)
    parse_failures: int = 0
    files_checked: int = 0
    cancelled: bool = False

    @property
    def error_count(self) -> int:
        return self.counts.get(Severity.ERROR.value, 0)

    @property
    def warning_count(self) -> int:
        return self.counts.get(Severity.WARNING.value, 0)

    @property
    def exit_code(self) -> int:
        """0 when nothing at error severity was found and every file parsed, 1 otherwise."""
        if self.error_count or self.parse_failures:
            return 1
        return 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "findings": [item.to_dict() for item in self.findings],
            "counts": dict(self.counts),
            "parse_failures": self.parse_failures,
            "files_checked": self.files_checked,
            "cancelled": self.cancelled,
            "exit_code": self.exit_code,
        }

    def summary(self) -> str:
        text = (
            f"{self.files_checked} file(s) checked: "
            f"{self.error_count} error(s), {self.warning_count} warning(s)"
        )
        if self.cancelled:
            text += " (cancelled)"
        return text


def sort_key(item: Finding) -> Tuple[str, int, str, int, str]:
    return (item.path, item.span.line, item.rule_id, item.span.column, item.message)


def _dedup_key(item: Finding) -> Tuple[str, str, int, int, str]:
    # Internal errors share the file's first position; the message names the failing rule.
    origin = item.message if item.rule_id == INTERNAL_ERROR_RULE else ""
    return (item.path, item.rule_id, item.span.start, item.span.end, origin)


def aggregate(findings: Iterable[Finding], *, cancelled: bool = False, files_checked: int = 0) -> Report:
    """Merge findings from any number of files into one :class:`Report`.

    Findings with the same path, rule and span collapse into the first one seen;
    internal errors from different rules are all kept.
    The result does not depend on the order findings arrive in.
    """
    seen: Set[Tuple[str, str, int, int, str]] = set()
    unique: List[Finding] = []
    for item in sorted(findings, key=sort_key):
        key = _dedup_key(item)
        if key in seen:
            continue
        seen.add(key)
        unique.append(item)

    counts = {severity.value: 0 for severity in Severity}
    parse_failures = 0
    for item in unique:
        counts[item.severity.value] += 1
        if item.rule_id == PARSE_ERROR_RULE:
            parse_failures += 1

    return Report(
        findings=tuple(unique),
        counts=counts,
        parse_failures=parse_failures,
        files_checked=files_checked,
        cancelled=cancelled,
    )


__all__ = ["INTERNAL_ERROR_RULE", "PARSE_ERROR_RULE", "Report", "aggregate", "sort_key"]
