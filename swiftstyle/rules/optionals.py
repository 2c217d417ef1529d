"""Rules about optionals and unwrapping."""

from __future__ import annotations

from typing import Iterable

from ..models import Finding, Severity
from ..syntax.nodes import OptionalKind, SourceUnit
from .base import finding, iter_all_bindings, iter_bodies_with_owner


class AvoidImplicitUnwrapOptional:
    rule_id = "avoid-implicit-unwrap-optional"
    description = "Declare optionals with '?' instead of implicitly unwrapped '!'."
    default_severity = Severity.WARNING

    def check(self, unit: SourceUnit) -> Iterable[Finding]:
        for binding in iter_all_bindings(unit, include_protocols=True):
            if binding.optional_kind is not OptionalKind.IMPLICITLY_UNWRAPPED:
                continue
            span = binding.type_span or binding.name_span
            yield finding(
                self,
                unit,
                span,
                f"'{binding.name}' is an implicitly unwrapped optional; use '{_as_optional(binding.type_annotation)}'",
            )


class AvoidForceUnwrap:
    rule_id = "avoid-force-unwrap"
    description = "Unwrap optionals with 'if let'/'guard let' instead of '!'."
    default_severity = Severity.WARNING

    def check(self, unit: SourceUnit) -> Iterable[Finding]:
        for body, _owner in iter_bodies_with_owner(unit):
            for unwrap in body.force_unwraps:
                if unwrap.guarded:
                    continue
                subject = f"'{unwrap.path}'" if unwrap.path else "expression"
                yield finding(
                    self,
                    unit,
                    unwrap.span,
                    f"Force unwrap of {subject} is not guarded by a nil check; "
                    "use optional binding instead",
                )


def _as_optional(annotation: str | None) -> str:
    if not annotation:
        return "T?"
    text = annotation.strip()
    if text.endswith("!"):
        return text[:-1].rstrip() + "?"
    if text.startswith("ImplicitlyUnwrappedOptional<") and text.endswith(">"):
        return text[len("ImplicitlyUnwrappedOptional<") : -1] + "?"
    return text


__all__ = ["AvoidForceUnwrap", "AvoidImplicitUnwrapOptional"]
