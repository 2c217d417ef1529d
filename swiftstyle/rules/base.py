"""Rule protocol and helpers shared by the builtin rules."""

from __future__ import annotations

import re
from typing import Iterable, Iterator, Optional, Protocol, Tuple, runtime_checkable

from ..models import Finding, Severity, SourceSpan
from ..syntax.nodes import Binding, Body, Declaration, SourceUnit, TypeDeclaration, TypeKind


@runtime_checkable
class Rule(Protocol):
    """Structural interface for style rules.

    A rule reads one immutable :class:`SourceUnit` and yields findings. Rules
    share no state and may run in any order.
    """

    rule_id: str
    description: str
    default_severity: Severity

    def check(self, unit: SourceUnit) -> Iterable[Finding]:
        """Yield a finding for every violation in ``unit``."""


class RuleExecutionError(RuntimeError):
    """A rule raised while checking a file."""

    def __init__(self, rule_id: str, path: str, cause: BaseException) -> None:
        super().__init__(f"Rule '{rule_id}' failed on {path}: {cause}")
        self.rule_id = rule_id
        self.path = path
        self.cause = cause


def finding(rule: Rule, unit: SourceUnit, span: SourceSpan, message: str) -> Finding:
    return Finding(
        rule_id=rule.rule_id,
        severity=rule.default_severity,
        message=message,
        path=unit.path,
        span=span,
    )


def iter_member_bindings(unit: SourceUnit, *, include_protocols: bool = False) -> Iterator[Tuple[Binding, TypeDeclaration]]:
    for type_declaration in unit.iter_types():
        if type_declaration.kind is TypeKind.PROTOCOL and not include_protocols:
            continue
        for binding in type_declaration.bindings():
            yield binding, type_declaration


def iter_all_bindings(unit: SourceUnit, *, include_protocols: bool = False) -> Iterator[Binding]:
    """Globals, properties and locals, in model order."""
    for declaration in unit.declarations:
        if isinstance(declaration, Binding):
            yield declaration
    for binding, _owner in iter_member_bindings(unit, include_protocols=include_protocols):
        yield binding
    for body in unit.iter_bodies():
        yield from body.bindings


def iter_bodies_with_owner(unit: SourceUnit) -> Iterator[Tuple[Body, Optional[Declaration]]]:
    """Every analyzed body with the declaration that owns it (``None`` for top-level code)."""
    if unit.statements is not None:
        yield unit.statements, None
    for type_declaration in unit.iter_types():
        for member in type_declaration.members:
            for body in bodies_of(member):
                yield body, member
    for declaration in unit.declarations:
        if not isinstance(declaration, TypeDeclaration):
            for body in bodies_of(declaration):
                yield body, declaration


def bodies_of(declaration: Declaration) -> Iterator[Body]:
    body = getattr(declaration, "body", None)
    if body is not None:
        yield body
    if isinstance(declaration, Binding):
        yield from declaration.accessors
        if declaration.initializer is not None and declaration.initializer.body is not None:
            yield declaration.initializer.body


_SPACE_RE = re.compile(r"\s+")


def normalize_type(text: str) -> str:
    """Canonical spelling of a type: no whitespace, sugar for Array/Dictionary/Optional."""
    compact = _SPACE_RE.sub("", text)
    return _desugar(compact)


def _desugar(text: str) -> str:
    for name, template in (("Array", "[{}]"), ("Optional", "{}?"), ("Set", None), ("Dictionary", "[{}:{}]")):
        prefix = name + "<"
        if not (text.startswith(prefix) and text.endswith(">")):
            continue
        arguments = _split_generic(text[len(prefix) : -1])
        if template is None:
            return f"{name}<{','.join(_desugar(argument) for argument in arguments)}>"
        if template.count("{}") != len(arguments):
            return text
        return template.format(*(_desugar(argument) for argument in arguments))
    if text.startswith("[") and text.endswith("]"):
        inner = _split_top_level(text[1:-1], ":")
        return "[" + ":".join(_desugar(part) for part in inner) + "]"
    return text


def _split_generic(text: str) -> list:
    return _split_top_level(text, ",")


def _split_top_level(text: str, separator: str) -> list:
    parts = []
    depth = 0
    current = []
    for char in text:
        if char in "<[(":
            depth += 1
        elif char in ">])":
            depth -= 1
        if char == separator and depth == 0:
            parts.append("".join(current))
            current = []
            continue
        current.append(char)
    parts.append("".join(current))
    return parts


__all__ = [
    "Rule",
    "RuleExecutionError",
    "finding",
    "bodies_of",
    "iter_all_bindings",
    "iter_bodies_with_owner",
    "iter_member_bindings",
    "normalize_type",
]
