from __future__ import annotations

from pathlib import Path

import pytest

from tests._fixtures.swift import SwiftProjectBuilder


@pytest.fixture
def swift_project(tmp_path: Path) -> SwiftProjectBuilder:
    """Provide a reusable Swift project builder rooted at the pytest tmp_path."""
    return SwiftProjectBuilder(tmp_path)
