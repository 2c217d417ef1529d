"""Rules about how instance members are referenced inside method bodies."""

from __future__ import annotations

from typing import Iterable, Iterator, Set

from ..models import Finding, Severity
from ..syntax.nodes import (
    Binding,
    Body,
    Declaration,
    Function,
    FunctionKind,
    ScopeKind,
    SourceUnit,
    TypeDeclaration,
    TypeKind,
)
from .base import finding


class RequireSelfPrefix:
    """Flags bare member references in methods whose closures capture members.

    Once a method body contains a closure that touches an instance member the
    closure must say ``self.``; the rest of the body is expected to match so the
    capture stays visible.
    """

    rule_id = "require-self-prefix"
    description = "Qualify member references with 'self.' in methods whose closures reference members."
    default_severity = Severity.WARNING

    def check(self, unit: SourceUnit) -> Iterable[Finding]:
        for type_declaration in unit.iter_types():
            if type_declaration.kind is TypeKind.PROTOCOL:
                continue
            members = instance_member_names(unit, type_declaration)
            if not members:
                continue
            for member in type_declaration.members:
                if member.is_static:
                    continue
                for body in _instance_bodies(member):
                    if not closure_references_member(body, members):
                        continue
                    for reference in body.references:
                        if reference.self_qualified or reference.local or reference.name not in members:
                            continue
                        yield finding(
                            self,
                            unit,
                            reference.span,
                            f"Use 'self.{reference.name}' to reference the member '{reference.name}' "
                            "in a method whose closures capture self",
                        )


def instance_member_names(unit: SourceUnit, type_declaration: TypeDeclaration) -> Set[str]:
    """Names of instance properties and methods declared by the type and its same-file extensions."""
    names: Set[str] = set()
    for declaration in unit.types_named(type_declaration.qualified_name):
        for member in declaration.members:
            if member.is_static:
                continue
            if isinstance(member, Binding):
                names.add(member.name)
            elif isinstance(member, Function) and member.kind is FunctionKind.FUNCTION:
                names.add(member.name)
    return names


def closure_references_member(body: Body, members: Set[str]) -> bool:
    for reference in body.references:
        if not _inside_closure(body, reference.scope_id):
            continue
        if reference.self_qualified or (not reference.local and reference.name in members):
            return True
    return False


def _inside_closure(body: Body, scope_id: int) -> bool:
    return any(scope.kind is ScopeKind.CLOSURE for scope in body.ancestors(scope_id))


def _instance_bodies(member: Declaration) -> Iterator[Body]:
    if isinstance(member, Function):
        if member.body is not None:
            yield member.body
    elif isinstance(member, Binding):
        yield from member.accessors


__all__ = ["RequireSelfPrefix", "closure_references_member", "instance_member_names"]
