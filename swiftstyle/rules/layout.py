"""Member ordering inside type declarations."""

from __future__ import annotations

from enum import IntEnum
from typing import Iterable, List, Optional, Sequence

from ..models import Finding, Severity
from ..syntax.nodes import Binding, Declaration, Function, FunctionKind, SourceUnit, TypeDeclaration, TypeKind
from .base import finding


class MemberCategory(IntEnum):
    PROPERTY = 0
    LAZY_PROPERTY = 1
    INITIALIZER = 2
    PUBLIC_METHOD = 3
    PRIVATE_METHOD = 4

    @property
    def label(self) -> str:
        return self.name.lower().replace("_", " ")


class ClassLayoutOrder:
    rule_id = "class-layout-order"
    description = (
        "Order members as properties, lazy properties, initializers, public methods, "
        "private methods, then protocol conformance extensions."
    )
    default_severity = Severity.WARNING

    def check(self, unit: SourceUnit) -> Iterable[Finding]:
        findings: List[Finding] = []
        for type_declaration in unit.iter_types():
            if type_declaration.kind is TypeKind.PROTOCOL:
                continue
            misplaced = self._first_out_of_order(type_declaration.members)
            if misplaced is not None:
                member, later = misplaced
                findings.append(
                    finding(
                        self,
                        unit,
                        member.name_span,
                        f"'{member.name}' ({member_category(member).label}) should come after "
                        f"'{later.name}' ({member_category(later).label}) in '{type_declaration.name}'",
                    )
                )
            if type_declaration.kind is TypeKind.EXTENSION and type_declaration.inherited:
                primary = _primary_declaration(unit, type_declaration.qualified_name)
                if primary is not None and type_declaration.span.start < primary.span.start:
                    findings.append(
                        finding(
                            self,
                            unit,
                            type_declaration.name_span,
                            f"Conformance extension of '{type_declaration.name}' should follow the "
                            "type's own declaration",
                        )
                    )
        return findings

    @staticmethod
    def _first_out_of_order(members: Sequence[Declaration]):
        ordered = [(member, member_category(member)) for member in members]
        ordered = [(member, category) for member, category in ordered if category is not None]
        for index, (member, category) in enumerate(ordered):
            earlier = [
                (candidate, candidate_category)
                for candidate, candidate_category in ordered[index + 1 :]
                if candidate_category < category
            ]
            if earlier:
                later = min(earlier, key=lambda item: item[1])[0]
                return member, later
        return None


def member_category(member: Declaration) -> Optional[MemberCategory]:
    """Layout category of a member; nested types and unknown members have none."""
    if isinstance(member, Binding):
        if "lazy" in member.modifiers:
            return MemberCategory.LAZY_PROPERTY
        return MemberCategory.PROPERTY
    if isinstance(member, Function):
        if member.kind in (FunctionKind.INITIALIZER, FunctionKind.DEINITIALIZER):
            return MemberCategory.INITIALIZER
        if member.effective_access.is_private:
            return MemberCategory.PRIVATE_METHOD
        return MemberCategory.PUBLIC_METHOD
    return None


def _primary_declaration(unit: SourceUnit, qualified_name: str) -> Optional[TypeDeclaration]:
    for declaration in unit.types_named(qualified_name):
        if declaration.kind is not TypeKind.EXTENSION:
            return declaration
    return None


__all__ = ["ClassLayoutOrder", "MemberCategory", "member_category"]
