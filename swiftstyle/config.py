"""Configuration loading for swiftstyle (.swiftstyle.yml)."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence

import yaml

from .models import Severity

CONFIG_FILENAME = ".swiftstyle.yml"
_OFF_VALUES = {"off", "disable", "disabled"}


class ConfigurationError(RuntimeError):
    """Raised when the configuration file or rule settings cannot be used."""


@dataclass(frozen=True)
class RuleSetting:
    """Whether a rule runs and the severity its findings carry."""

    enabled: bool = True
    severity: Optional[Severity] = None


def default_workers() -> int:
    return max(1, min(4, os.cpu_count() or 1))


@dataclass
class LintConfig:
    """Represents the settings defined in .swiftstyle.yml."""

    root: Path
    rules: Dict[str, Any] = field(default_factory=dict)
    exclude_paths: List[str] = field(default_factory=list)
    workers: int = field(default_factory=default_workers)


def load_config(config_path: Path) -> LintConfig:
    """Load configuration from disk; a missing file yields the defaults."""
    config_file = _resolve_config_path(config_path)
    root = config_file.parent.resolve()

    if not config_file.exists():
        return LintConfig(root=root)

    data = _read_config(config_file)
    if not isinstance(data, dict):
        raise ConfigurationError(f"{CONFIG_FILENAME} must contain a mapping at the root")

    rules = data.get("rules")
    if rules is None:
        rules = {}
    if not isinstance(rules, dict):
        raise ConfigurationError("'rules' must be a mapping of rule id to setting")

    workers = default_workers()
    if data.get("workers") is not None:
        workers = _as_workers(data.get("workers"))

    return LintConfig(
        root=root,
        rules={str(key): value for key, value in rules.items()},
        exclude_paths=_as_str_list(data.get("exclude_paths")),
        workers=workers,
    )


def resolve_rule_settings(raw: Mapping[str, Any], known_ids: Sequence[str]) -> Dict[str, RuleSetting]:
    """Resolve raw per-rule values into settings for every known rule.

    Accepted values are ``true``/``false``, ``"off"``, a severity name, or a
    mapping with ``enabled`` and ``severity`` keys. Rules missing from ``raw``
    stay enabled with their default severity.
    """
    known = {rule_id.lower(): rule_id for rule_id in known_ids}
    settings: Dict[str, RuleSetting] = {rule_id: RuleSetting() for rule_id in known_ids}
    for key, value in raw.items():
        rule_id = known.get(str(key).strip().lower())
        if rule_id is None:
            raise ConfigurationError(f"Unknown rule in configuration: {key}")
        settings[rule_id] = _parse_setting(rule_id, value)
    return settings


def _parse_setting(rule_id: str, value: Any) -> RuleSetting:
    if value is None:
        return RuleSetting()
    if isinstance(value, bool):
        return RuleSetting(enabled=value)
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _OFF_VALUES:
            return RuleSetting(enabled=False)
        if lowered == "on":
            return RuleSetting()
        return RuleSetting(severity=_as_severity(rule_id, value))
    if isinstance(value, dict):
        unknown = set(value) - {"enabled", "severity"}
        if unknown:
            listed = ", ".join(sorted(str(key) for key in unknown))
            raise ConfigurationError(f"Unsupported keys for rule '{rule_id}': {listed}")
        enabled = value.get("enabled", True)
        if not isinstance(enabled, bool):
            raise ConfigurationError(f"'enabled' for rule '{rule_id}' must be true or false")
        severity = value.get("severity")
        return RuleSetting(
            enabled=enabled,
            severity=_as_severity(rule_id, severity) if severity is not None else None,
        )
    raise ConfigurationError(f"Invalid setting for rule '{rule_id}': {value!r}")


def _as_severity(rule_id: str, value: Any) -> Severity:
    if not isinstance(value, str):
        raise ConfigurationError(f"Invalid severity for rule '{rule_id}': {value!r}")
    try:
        return Severity.parse(value)
    except ValueError as exc:
        raise ConfigurationError(f"Invalid severity for rule '{rule_id}': {value!r}") from exc


def _as_workers(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ConfigurationError(f"'workers' must be a positive integer, got {value!r}")
    return value


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Dict[str, Any]:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigurationError(f"Failed to read {path.name}: {exc}") from exc
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Failed to parse {path.name}: {exc}") from exc
    return loaded if loaded is not None else {}


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Sequence):
        return [str(item) for item in value if isinstance(item, (str, int, float, bool))]
    raise ConfigurationError(f"Expected a list of strings, got {value!r}")


__all__ = [
    "CONFIG_FILENAME",
    "ConfigurationError",
    "LintConfig",
    "RuleSetting",
    "default_workers",
    "load_config",
    "resolve_rule_settings",
]
