"""Inline ``// swiftstyle:disable...`` comment directives."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterable, List, Set

from .models import Finding
from .reporter import INTERNAL_ERROR_RULE, PARSE_ERROR_RULE
from .syntax.lexer import Comment

_DIRECTIVE_RE = re.compile(r"swiftstyle:(disable-next-line|disable-line|disable)(?![\w-])([^\n]*)")
_ID_SPLIT_RE = re.compile(r"[\s,]+")
_ALL = "all"
_UNSUPPRESSIBLE = frozenset({PARSE_ERROR_RULE, INTERNAL_ERROR_RULE})


@dataclass
class Suppressions:
    """Rule ids silenced for the whole file and for individual lines."""

    file_wide: Set[str] = field(default_factory=set)
    by_line: Dict[int, Set[str]] = field(default_factory=dict)

    def is_suppressed(self, item: Finding) -> bool:
        if item.rule_id in _UNSUPPRESSIBLE:
            return False
        if _matches(self.file_wide, item.rule_id):
            return True
        return _matches(self.by_line.get(item.span.line, set()), item.rule_id)

    def filter(self, findings: Iterable[Finding]) -> List[Finding]:
        return [item for item in findings if not self.is_suppressed(item)]


def _matches(ids: Set[str], rule_id: str) -> bool:
    return _ALL in ids or rule_id in ids


def _parse_ids(text: str) -> FrozenSet[str]:
    # Anything after "--" is a free-form reason.
    text = text.split("--", 1)[0]
    if text.rstrip().endswith("*/"):
        text = text.rstrip()[:-2]
    ids = {part.lower() for part in _ID_SPLIT_RE.split(text.strip()) if part}
    return frozenset(ids or {_ALL})


def collect_suppressions(comments: Iterable[Comment]) -> Suppressions:
    suppressions = Suppressions()
    for comment in comments:
        for match in _DIRECTIVE_RE.finditer(comment.text):
            kind, rest = match.group(1), match.group(2)
            ids = _parse_ids(rest)
            if kind == "disable":
                suppressions.file_wide.update(ids)
            elif kind == "disable-line":
                suppressions.by_line.setdefault(comment.line, set()).update(ids)
            else:
                suppressions.by_line.setdefault(comment.end_line + 1, set()).update(ids)
    return suppressions


__all__ = ["Suppressions", "collect_suppressions"]
