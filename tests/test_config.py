"""Tests for swiftstyle.config."""

from __future__ import annotations

from pathlib import Path

import pytest

from swiftstyle.config import (
    ConfigurationError,
    LintConfig,
    RuleSetting,
    default_workers,
    load_config,
    resolve_rule_settings,
)
from swiftstyle.models import Severity

_KNOWN = ["avoid-force-unwrap", "naming-convention", "prefer-immutable-binding"]


def test_load_config_returns_defaults_when_missing(tmp_path: Path) -> None:
    config = load_config(tmp_path)

    assert isinstance(config, LintConfig)
    assert config.root == tmp_path.resolve()
    assert config.rules == {}
    assert config.exclude_paths == []
    assert config.workers == default_workers()


def test_load_config_parses_expected_fields(tmp_path: Path) -> None:
    config_file = tmp_path / ".swiftstyle.yml"
    config_file.write_text(
        """
rules:
  avoid-force-unwrap: error
  naming-convention: off
  prefer-immutable-binding:
    enabled: true
    severity: warning
exclude_paths:
  - "Pods/"
  - "Generated"
workers: 2
""",
        encoding="utf-8",
    )

    config = load_config(config_file)

    assert config.root == tmp_path.resolve()
    assert config.exclude_paths == ["Pods/", "Generated"]
    assert config.workers == 2
    # YAML 1.1 reads a bare `off` as false.
    assert config.rules["naming-convention"] is False

    settings = resolve_rule_settings(config.rules, _KNOWN)
    assert settings["avoid-force-unwrap"] == RuleSetting(severity=Severity.ERROR)
    assert settings["naming-convention"] == RuleSetting(enabled=False)
    assert settings["prefer-immutable-binding"] == RuleSetting(severity=Severity.WARNING)


def test_resolve_rule_settings_defaults_unlisted_rules() -> None:
    settings = resolve_rule_settings({"Naming-Convention": "disabled"}, _KNOWN)

    assert settings["naming-convention"].enabled is False
    assert settings["avoid-force-unwrap"] == RuleSetting()
    assert set(settings) == set(_KNOWN)


@pytest.mark.parametrize(
    "raw",
    [
        {"no-such-rule": True},
        {"avoid-force-unwrap": "fatal"},
        {"avoid-force-unwrap": {"level": "error"}},
        {"avoid-force-unwrap": {"enabled": "yes"}},
        {"avoid-force-unwrap": 3},
    ],
)
def test_resolve_rule_settings_rejects_invalid_values(raw) -> None:
    with pytest.raises(ConfigurationError):
        resolve_rule_settings(raw, _KNOWN)


@pytest.mark.parametrize(
    "content",
    [
        "- just\n- a list\n",
        "rules: [avoid-force-unwrap]\n",
        "workers: 0\n",
        "workers: true\n",
        "rules: {unclosed\n",
    ],
)
def test_load_config_rejects_malformed_files(tmp_path: Path, content: str) -> None:
    (tmp_path / ".swiftstyle.yml").write_text(content, encoding="utf-8")

    with pytest.raises(ConfigurationError):
        load_config(tmp_path)


def test_empty_config_file_yields_defaults(tmp_path: Path) -> None:
    (tmp_path / ".swiftstyle.yml").write_text("\n", encoding="utf-8")

    config = load_config(tmp_path)

    assert config.rules == {}
