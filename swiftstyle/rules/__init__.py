"""Builtin style rules and rule discovery utilities."""

from __future__ import annotations

from importlib import metadata
from typing import Callable, Iterable, List, Sequence, Set

from .base import Rule, RuleExecutionError
from .bindings import (
    AvoidRedundantTypeAnnotation,
    PreferImmutableBinding,
    RequireSpaceAfterDeclaration,
    RequireTypedCollection,
)
from .layout import ClassLayoutOrder
from .members import RequireSelfPrefix
from .naming import NamingConvention
from .optionals import AvoidForceUnwrap, AvoidImplicitUnwrapOptional
from .types import NoGlobalModifierOnStruct, PreferStructOverClass, ProtocolConformanceViaExtension

_ENTRY_POINT_GROUP = "swiftstyle.rules"

# Iteration order of this table is the order rules run in for every file.
_BUILTIN_FACTORIES: dict[str, Callable[[], Rule]] = {
    "prefer-immutable-binding": PreferImmutableBinding,
    "avoid-redundant-type-annotation": AvoidRedundantTypeAnnotation,
    "avoid-implicit-unwrap-optional": AvoidImplicitUnwrapOptional,
    "avoid-force-unwrap": AvoidForceUnwrap,
    "require-space-after-declaration": RequireSpaceAfterDeclaration,
    "require-self-prefix": RequireSelfPrefix,
    "protocol-conformance-via-extension": ProtocolConformanceViaExtension,
    "class-layout-order": ClassLayoutOrder,
    "prefer-struct-over-class": PreferStructOverClass,
    "no-global-modifier-on-struct": NoGlobalModifierOnStruct,
    "require-typed-collection": RequireTypedCollection,
    "naming-convention": NamingConvention,
}


def builtin_rule_ids() -> List[str]:
    return list(_BUILTIN_FACTORIES)


def discover_rules(enabled: Sequence[str] | None = None) -> List[Rule]:
    """Return instantiated rules, builtins first, honoring optional enabled ids."""

    enabled_set: Set[str] | None = None
    if enabled is not None:
        enabled_set = {rule_id.lower() for rule_id in enabled}

    rules: List[Rule] = []
    seen: Set[str] = set()

    def _add(name: str, factory: Callable[[], Rule]) -> None:
        key = name.lower()
        if enabled_set is not None and key not in enabled_set:
            return
        if key in seen:
            return
        instance = factory()
        if not isinstance(instance, Rule):
            raise TypeError(f"Rule factory for '{name}' did not return a Rule instance")
        if instance.rule_id.lower() != key:
            raise TypeError(f"Rule registered as '{name}' reports id '{instance.rule_id}'")
        rules.append(instance)
        seen.add(key)
        if enabled_set is not None:
            enabled_set.discard(key)

    for name, factory in _BUILTIN_FACTORIES.items():
        _add(name, factory)

    for entry in _iter_entry_points():
        name = entry.name
        try:
            loaded = entry.load()
        except Exception as exc:
            raise RuntimeError(f"Failed to load rule entry point '{name}': {exc}") from exc

        def _factory(obj: object = loaded) -> Rule:
            return _coerce_rule(obj)

        _add(name, _factory)

    if enabled_set:
        missing = ", ".join(sorted(enabled_set))
        raise ValueError(f"Unknown rules requested: {missing}")

    return rules


def _coerce_rule(obj: object) -> Rule:
    if isinstance(obj, type):
        instance = obj()
        if isinstance(instance, Rule):
            return instance
    elif isinstance(obj, Rule):
        return obj
    elif callable(obj):
        instance = obj()
        if isinstance(instance, Rule):
            return instance
    raise TypeError("Rule entry point must be a Rule class, instance or factory")


def _iter_entry_points() -> Iterable[metadata.EntryPoint]:
    entry_points = metadata.entry_points()
    if hasattr(entry_points, "select"):
        return entry_points.select(group=_ENTRY_POINT_GROUP)  # type: ignore[return-value]

    # Python 3.9 returns a plain mapping of group name to entry points.
    return entry_points.get(_ENTRY_POINT_GROUP, [])  # type: ignore[return-value]


__all__ = [
    "Rule",
    "RuleExecutionError",
    "builtin_rule_ids",
    "discover_rules",
]
