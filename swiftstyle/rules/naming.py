"""Naming conventions for types, functions and bindings."""

from __future__ import annotations

from typing import Iterable

from ..models import Finding, Severity
from ..syntax.nodes import FunctionKind, SourceUnit, TypeKind
from .base import finding, iter_all_bindings


def _camel_body(name: str) -> str:
    # A single leading underscore is allowed; letters and digits may be any script.
    body = name[1:] if name.startswith("_") else name
    return body if body and body.isalnum() and body[0].isalpha() else ""


def is_upper_camel(name: str) -> bool:
    body = _camel_body(name)
    return bool(body) and not body[0].islower()


def is_lower_camel(name: str) -> bool:
    body = _camel_body(name)
    return bool(body) and not body[0].isupper()


class NamingConvention:
    rule_id = "naming-convention"
    description = "Name types in UpperCamelCase and functions and bindings in lowerCamelCase."
    default_severity = Severity.WARNING

    def check(self, unit: SourceUnit) -> Iterable[Finding]:
        for declaration in unit.iter_types():
            if declaration.kind is TypeKind.EXTENSION or is_upper_camel(declaration.name):
                continue
            yield finding(
                self,
                unit,
                declaration.name_span,
                f"Type name '{declaration.name}' should be UpperCamelCase",
            )
        for function in unit.iter_functions():
            if function.kind is not FunctionKind.FUNCTION or not _is_identifier(function.name):
                continue
            if not is_lower_camel(function.name):
                yield finding(
                    self,
                    unit,
                    function.name_span,
                    f"Function name '{function.name}' should be lowerCamelCase",
                )
        for binding in iter_all_bindings(unit, include_protocols=True):
            if is_lower_camel(binding.name):
                continue
            yield finding(
                self,
                unit,
                binding.name_span,
                f"Binding name '{binding.name}' should be lowerCamelCase",
            )


def _is_identifier(name: str) -> bool:
    return bool(name) and (name[0].isalpha() or name[0] == "_")


__all__ = ["NamingConvention", "is_lower_camel", "is_upper_camel"]
