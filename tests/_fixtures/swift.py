"""Helpers for parsing Swift snippets and running single rules in tests."""

from __future__ import annotations

import textwrap
from pathlib import Path
from typing import List, Mapping

from swiftstyle.models import Finding
from swiftstyle.reporter import sort_key
from swiftstyle.rules import Rule
from swiftstyle.syntax import SourceUnit, parse


def source(text: str) -> str:
    """Dedent a triple-quoted snippet and drop its leading newline."""
    return textwrap.dedent(text).lstrip("\n")


def parse_source(text: str, path: str = "Sample.swift") -> SourceUnit:
    return parse(source(text), path)


def run_rule(rule: Rule, text: str, path: str = "Sample.swift") -> List[Finding]:
    unit = parse_source(text, path)
    return sorted(rule.check(unit), key=sort_key)


class SwiftProjectBuilder:
    """Writes Swift sources into a throwaway directory."""

    def __init__(self, tmp_path: Path) -> None:
        self.root = tmp_path / "project"
        self.root.mkdir()

    def write(self, files: Mapping[str, str]) -> None:
        """Write `path -> contents` entries into the project."""
        for relative, content in files.items():
            path = self.root / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(source(content), encoding="utf-8")

    def path(self, relative: str = "") -> Path:
        return self.root / relative if relative else self.root


__all__ = ["SwiftProjectBuilder", "parse_source", "run_rule", "source"]
