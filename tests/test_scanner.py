"""Tests for swiftstyle.scanner."""

from __future__ import annotations

from pathlib import Path

import pytest

from swiftstyle.scanner import SourceScanner, build_ignore_rule


def _write(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


def test_scan_collects_swift_files_in_sorted_order(tmp_path: Path) -> None:
    root = tmp_path / "app"
    _write(root / "Sources" / "B.swift", "let b = 1\n")
    _write(root / "Sources" / "A.swift", "let a = 1\n")
    _write(root / "README.md", "# App\n")
    _write(root / ".build" / "Generated.swift", "let g = 1\n")
    _write(root / "Pods" / "Lib" / "Lib.swift", "let l = 1\n")

    sources = SourceScanner(exclude_paths=["Pods/"]).scan([root])

    assert [Path(item.path).relative_to(root).as_posix() for item in sources] == [
        "Sources/A.swift",
        "Sources/B.swift",
    ]
    assert sources[0].text == "let a = 1\n"


def test_explicit_files_are_read_once(tmp_path: Path) -> None:
    file_path = tmp_path / "Main.swift"
    _write(file_path, "print(1)\n")
    ignored = tmp_path / "notes.txt"
    _write(ignored, "hello\n")

    sources = SourceScanner(exclude_paths=["*.swift"]).scan([file_path, tmp_path, ignored])

    assert [Path(item.path).name for item in sources] == ["Main.swift", "notes.txt"]


def test_missing_path_raises(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        SourceScanner().scan([tmp_path / "missing"])


def test_undecodable_bytes_are_replaced(tmp_path: Path) -> None:
    file_path = tmp_path / "Bad.swift"
    file_path.write_bytes(b"let s = \"\xff\"\n")

    sources = SourceScanner().scan([file_path])

    assert "\ufffd" in sources[0].text


def test_ignore_rule_matching() -> None:
    anchored = build_ignore_rule("/Sources/Generated/")
    assert anchored is not None
    assert anchored.matches("Sources/Generated", True)
    assert not anchored.matches("Other/Sources/Generated", True)

    anywhere = build_ignore_rule("*Tests.swift")
    assert anywhere is not None
    assert anywhere.matches("Tests/AppTests.swift", False)

    assert build_ignore_rule("   ") is None
