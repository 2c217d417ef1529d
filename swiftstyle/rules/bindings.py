"""Rules about let/var bindings and their type annotations."""

from __future__ import annotations

from typing import Iterable, List

from ..models import Finding, Severity
from ..syntax.nodes import Binding, SourceUnit
from .base import finding, iter_all_bindings, normalize_type

# Bindings the compiler or a framework writes to behind the scenes.
_MUTABLE_BY_DESIGN = frozenset({"lazy", "weak", "unowned", "override", "dynamic"})

_UNTYPED_COLLECTIONS = frozenset(
    {
        "Array",
        "Dictionary",
        "Set",
        "NSArray",
        "NSMutableArray",
        "NSDictionary",
        "NSMutableDictionary",
        "NSSet",
        "NSMutableSet",
    }
)


class PreferImmutableBinding:
    rule_id = "prefer-immutable-binding"
    description = "Declare bindings with 'let' unless they are reassigned."
    default_severity = Severity.WARNING

    def check(self, unit: SourceUnit) -> Iterable[Finding]:
        findings: List[Finding] = []
        for binding in iter_all_bindings(unit):
            if not self._applies(binding):
                continue
            findings.append(
                finding(
                    self,
                    unit,
                    binding.name_span,
                    f"'{binding.name}' is never reassigned; declare it with 'let'",
                )
            )
        return findings

    @staticmethod
    def _applies(binding: Binding) -> bool:
        if not binding.is_mutable or binding.reassigned:
            return False
        if binding.is_computed or binding.has_observers:
            return False
        if binding.attributes or binding.modifiers & _MUTABLE_BY_DESIGN:
            return False
        return True


class AvoidRedundantTypeAnnotation:
    rule_id = "avoid-redundant-type-annotation"
    description = "Let the compiler infer a type the initial value already spells out."
    default_severity = Severity.WARNING

    def check(self, unit: SourceUnit) -> Iterable[Finding]:
        for binding in iter_all_bindings(unit):
            initializer = binding.initializer
            if binding.type_annotation is None or binding.type_span is None:
                continue
            if initializer is None or initializer.literal_type is None:
                continue
            if normalize_type(binding.type_annotation) != normalize_type(initializer.literal_type):
                continue
            yield finding(
                self,
                unit,
                binding.type_span,
                f"Type annotation '{binding.type_annotation}' on '{binding.name}' is redundant; "
                "let it be inferred",
            )


class RequireSpaceAfterDeclaration:
    rule_id = "require-space-after-declaration"
    description = "Put a space after the colon of a type annotation."
    default_severity = Severity.WARNING

    def check(self, unit: SourceUnit) -> Iterable[Finding]:
        for binding in iter_all_bindings(unit, include_protocols=True):
            if binding.colon_span is None or binding.space_after_colon:
                continue
            yield finding(
                self,
                unit,
                binding.colon_span,
                f"Missing space after ':' in the declaration of '{binding.name}'",
            )


class RequireTypedCollection:
    rule_id = "require-typed-collection"
    description = "Annotate collections with their element types."
    default_severity = Severity.WARNING

    def check(self, unit: SourceUnit) -> Iterable[Finding]:
        for binding in iter_all_bindings(unit, include_protocols=True):
            if binding.type_annotation is None or binding.type_span is None:
                continue
            container = untyped_collection(binding.type_annotation)
            if container is None:
                continue
            yield finding(
                self,
                unit,
                binding.type_span,
                f"'{binding.name}' is declared as untyped '{container}'; "
                f"spell out the element type, e.g. {_suggestion(container)}",
            )
        for function in unit.iter_functions():
            for parameter in function.parameters:
                if parameter.type_annotation is None:
                    continue
                container = untyped_collection(parameter.type_annotation)
                if container is None:
                    continue
                yield finding(
                    self,
                    unit,
                    parameter.span,
                    f"Parameter '{parameter.name}' is declared as untyped '{container}'; "
                    f"spell out the element type, e.g. {_suggestion(container)}",
                )


def untyped_collection(annotation: str) -> str | None:
    text = annotation.strip().rstrip("?!").strip()
    while text.startswith("(") and text.endswith(")"):
        text = text[1:-1].strip().rstrip("?!").strip()
    return text if text in _UNTYPED_COLLECTIONS else None


def _suggestion(container: str) -> str:
    if "Dictionary" in container:
        return "[Key: Value]"
    if "Set" in container:
        return "Set<Element>"
    return "[Element]"


__all__ = [
    "AvoidRedundantTypeAnnotation",
    "PreferImmutableBinding",
    "RequireSpaceAfterDeclaration",
    "RequireTypedCollection",
    "untyped_collection",
]
