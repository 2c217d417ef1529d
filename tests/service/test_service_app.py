"""Tests for the FastAPI service mode."""

from __future__ import annotations

from typing import Any, Mapping

import pytest

try:
    from fastapi.testclient import TestClient
except ModuleNotFoundError:  # pragma: no cover - optional dependency
    pytest.skip("fastapi not installed", allow_module_level=True)

from swiftstyle.engine import Linter
from swiftstyle.rules import builtin_rule_ids, discover_rules
from swiftstyle.service.app import create_app


@pytest.fixture
def client() -> TestClient:
    return TestClient(create_app())


def test_health_endpoint(client: TestClient) -> None:
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_rules_endpoint_lists_builtin_rules(client: TestClient) -> None:
    response = client.get("/rules")

    assert response.status_code == 200
    data = response.json()
    assert [item["id"] for item in data] == builtin_rule_ids()
    assert all(item["default_severity"] == "warning" for item in data)


def test_lint_endpoint_returns_report(client: TestClient) -> None:
    response = client.post(
        "/lint",
        json={
            "files": [
                {"path": "App.swift", "text": "var count = 1\n"},
                {"path": "Broken.swift", "text": "class Broken {\n"},
            ]
        },
    )

    assert response.status_code == 200
    data = response.json()
    assert [(item["path"], item["rule"]) for item in data["findings"]] == [
        ("App.swift", "prefer-immutable-binding"),
        ("Broken.swift", "parse-error"),
    ]
    assert data["files_checked"] == 2
    assert data["parse_failures"] == 1
    assert data["exit_code"] == 1


def test_lint_endpoint_applies_rule_settings(client: TestClient) -> None:
    response = client.post(
        "/lint",
        json={
            "files": [{"path": "App.swift", "text": "var count = 1\n"}],
            "rules": {"prefer-immutable-binding": "off"},
        },
    )

    assert response.status_code == 200
    assert response.json()["findings"] == []


def test_unknown_rule_is_a_client_error(client: TestClient) -> None:
    response = client.post(
        "/lint",
        json={"files": [], "rules": {"no-such-rule": True}},
    )

    assert response.status_code == 400
    assert "no-such-rule" in response.json()["detail"]


def test_custom_factory_receives_rule_settings() -> None:
    calls: list[Mapping[str, Any]] = []

    def factory(rules: Mapping[str, Any]) -> Linter:
        calls.append(dict(rules))
        return Linter(discover_rules(["naming-convention"]), workers=1)

    client = TestClient(create_app(factory))
    response = client.post(
        "/lint",
        json={"files": [{"path": "A.swift", "text": "let Bad = 1\n"}], "rules": {"x": 1}},
    )

    assert response.status_code == 200
    assert calls == [{"x": 1}]
    assert [item["rule"] for item in response.json()["findings"]] == ["naming-convention"]
