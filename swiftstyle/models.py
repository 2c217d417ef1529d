"""Core data models shared across swiftstyle components."""

from __future__ import annotations

from bisect import bisect_right
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List


class Severity(str, Enum):
    """Severity attached to a finding."""

    WARNING = "warning"
    ERROR = "error"

    @classmethod
    def parse(cls, value: str) -> "Severity":
        lowered = value.strip().lower()
        for member in cls:
            if member.value == lowered:
                return member
        raise ValueError(f"Unknown severity: {value!r}")


@dataclass(frozen=True)
class SourceFile:
    """A file handed to the linter: its identifier and already-read text."""

    path: str
    text: str


@dataclass(frozen=True)
class SourceSpan:
    """Offset and line/column range inside one source text (lines and columns are 1-based)."""

    start: int
    end: int
    line: int
    column: int
    end_line: int
    end_column: int


class LineIndex:
    """Maps character offsets of a text to 1-based line/column pairs."""

    def __init__(self, text: str) -> None:
        self._length = len(text)
        self._line_starts: List[int] = [0]
        for index, char in enumerate(text):
            if char == "\n":
                self._line_starts.append(index + 1)

    def position(self, offset: int) -> tuple[int, int]:
        offset = max(0, min(offset, self._length))
        line_index = bisect_right(self._line_starts, offset) - 1
        return line_index + 1, offset - self._line_starts[line_index] + 1

    def span(self, start: int, end: int) -> SourceSpan:
        start = max(0, min(start, self._length))
        end = max(start, min(end, self._length))
        line, column = self.position(start)
        end_line, end_column = self.position(end)
        return SourceSpan(
            start=start,
            end=end,
            line=line,
            column=column,
            end_line=end_line,
            end_column=end_column,
        )


@dataclass(frozen=True)
class Finding:
    """One reported rule violation with its location."""

    rule_id: str
    severity: Severity
    message: str
    path: str
    span: SourceSpan

    @property
    def line(self) -> int:
        return self.span.line

    @property
    def column(self) -> int:
        return self.span.column

    def to_dict(self) -> Dict[str, Any]:
        return {
            "path": self.path,
            "line": self.span.line,
            "column": self.span.column,
            "end_line": self.span.end_line,
            "end_column": self.span.end_column,
            "rule": self.rule_id,
            "severity": self.severity.value,
            "message": self.message,
        }

    def __str__(self) -> str:
        return (
            f"{self.path}:{self.span.line}:{self.span.column}: "
            f"{self.severity.value}: {self.message} [{self.rule_id}]"
        )


__all__ = ["Finding", "LineIndex", "Severity", "SourceFile", "SourceSpan"]
