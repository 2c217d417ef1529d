"""Resolves command-line paths into the Swift sources to check."""

from __future__ import annotations

import os
from dataclasses import dataclass
from fnmatch import fnmatchcase
from pathlib import Path
from typing import Iterator, List, Optional, Sequence

from .models import SourceFile

SWIFT_SUFFIX = ".swift"

_EXCLUDED_DIRS = {
    ".git",
    ".hg",
    ".svn",
    ".build",
    ".swiftpm",
    "DerivedData",
    "Carthage",
    "node_modules",
    ".idea",
}


@dataclass
class IgnoreRule:
    """Represents an exclude pattern from .swiftstyle.yml."""

    pattern: str
    directory_only: bool
    anchored: bool
    has_slash: bool

    def matches(self, rel_path: str, is_dir: bool) -> bool:
        if not self.pattern:
            return False
        if self.directory_only and not is_dir:
            return False

        if self.anchored or self.has_slash:
            if fnmatchcase(rel_path, self.pattern):
                return True
            return self.directory_only and rel_path.startswith(f"{self.pattern}/")

        return any(fnmatchcase(part, self.pattern) for part in rel_path.split("/"))


def build_ignore_rule(pattern: str) -> Optional[IgnoreRule]:
    pattern = pattern.strip()
    if not pattern:
        return None

    directory_only = pattern.endswith("/")
    if directory_only:
        pattern = pattern[:-1]

    anchored = pattern.startswith("/")
    if anchored:
        pattern = pattern[1:]

    return IgnoreRule(
        pattern=pattern,
        directory_only=directory_only,
        anchored=anchored,
        has_slash="/" in pattern,
    )


class SourceScanner:
    """Reads every Swift file named by, or nested under, the given paths."""

    def __init__(self, exclude_paths: Sequence[str] = ()) -> None:
        self.rules: List[IgnoreRule] = [
            rule for rule in (build_ignore_rule(pattern) for pattern in exclude_paths) if rule is not None
        ]

    def scan(self, paths: Sequence[Path]) -> List[SourceFile]:
        """Return sources in a stable order, each file at most once.

        Files named explicitly are always read; directories are walked for
        ``.swift`` files that no exclude pattern matches.
        """
        seen: set[Path] = set()
        sources: List[SourceFile] = []
        for raw in paths:
            path = Path(raw).expanduser()
            if not path.exists():
                raise FileNotFoundError(f"Path not found: {raw}")
            candidates = [path] if path.is_file() else sorted(self._iter_files(path))
            for candidate in candidates:
                resolved = candidate.resolve()
                if resolved in seen:
                    continue
                seen.add(resolved)
                sources.append(SourceFile(path=candidate.as_posix(), text=_read_text(candidate)))
        return sources

    def _iter_files(self, root: Path) -> Iterator[Path]:
        for dirpath, dirnames, filenames in os.walk(root):
            current_dir = Path(dirpath)
            rel_dir = current_dir.relative_to(root).as_posix() if current_dir != root else ""

            filtered_dirs = []
            for name in dirnames:
                if name in _EXCLUDED_DIRS:
                    continue
                rel_path = f"{rel_dir}/{name}" if rel_dir else name
                if self._should_ignore(rel_path, True):
                    continue
                filtered_dirs.append(name)
            dirnames[:] = filtered_dirs

            for filename in filenames:
                if not filename.endswith(SWIFT_SUFFIX):
                    continue
                rel_path = f"{rel_dir}/{filename}" if rel_dir else filename
                if self._should_ignore(rel_path, False):
                    continue
                yield current_dir / filename

    def _should_ignore(self, rel_path: str, is_dir: bool) -> bool:
        return any(rule.matches(rel_path, is_dir) for rule in self.rules)


def _read_text(path: Path) -> str:
    # Undecodable bytes become U+FFFD.
    return path.read_text(encoding="utf-8", errors="replace")


__all__ = ["IgnoreRule", "SourceScanner", "build_ignore_rule"]
