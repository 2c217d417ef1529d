"""Rules about type declarations: conformances, struct vs. class, declaration-level access."""

from __future__ import annotations

from typing import Iterable, List, Optional, Set

from ..models import Finding, Severity
from ..syntax.nodes import (
    AccessLevel,
    Function,
    FunctionKind,
    SourceUnit,
    TypeDeclaration,
    TypeKind,
)
from .base import bodies_of, finding

# Standard library and framework protocols a class may list first without it being a superclass.
KNOWN_PROTOCOLS = frozenset(
    {
        "AnyObject",
        "CaseIterable",
        "Codable",
        "Collection",
        "Comparable",
        "CustomDebugStringConvertible",
        "CustomStringConvertible",
        "Decodable",
        "Encodable",
        "Equatable",
        "Error",
        "Hashable",
        "Identifiable",
        "IteratorProtocol",
        "LocalizedError",
        "NSCoding",
        "NSCopying",
        "ObservableObject",
        "OptionSet",
        "RawRepresentable",
        "Sendable",
        "Sequence",
    }
)
_PROTOCOL_SUFFIXES = ("Protocol", "Delegate", "DataSource", "Convertible", "Representable")
RAW_VALUE_TYPES = frozenset(
    {
        "Character",
        "Double",
        "Float",
        "Int",
        "Int8",
        "Int16",
        "Int32",
        "Int64",
        "String",
        "UInt",
        "UInt8",
        "UInt16",
        "UInt32",
        "UInt64",
    }
)
_REFERENCE_MODIFIERS = frozenset({"weak", "unowned", "override", "required", "convenience", "dynamic", "class"})
_REFERENCE_ATTRIBUTES = frozenset({"@objc", "@objcMembers", "@IBOutlet", "@IBAction", "@NSManaged"})
_MODULE_WIDE_ACCESS = (AccessLevel.OPEN, AccessLevel.PUBLIC, AccessLevel.PACKAGE, AccessLevel.INTERNAL)


def _base_name(entry: str) -> str:
    return entry.split("<", 1)[0].strip()


def protocol_names(unit: SourceUnit) -> Set[str]:
    return {declaration.name for declaration in unit.iter_types() if declaration.kind is TypeKind.PROTOCOL}


def is_protocol_name(name: str, local_protocols: Set[str]) -> bool:
    return name in KNOWN_PROTOCOLS or name in local_protocols or name.endswith(_PROTOCOL_SUFFIXES)


def superclass_of(declaration: TypeDeclaration, local_protocols: Set[str]) -> Optional[str]:
    """First inheritance entry of a class when it names a class rather than a protocol."""
    if declaration.kind is not TypeKind.CLASS or not declaration.inherited:
        return None
    first = _base_name(declaration.inherited[0])
    if is_protocol_name(first, local_protocols):
        return None
    return first


def inline_conformances(declaration: TypeDeclaration, local_protocols: Set[str]) -> List[str]:
    """Protocols listed in a primary declaration's inheritance clause."""
    entries = list(declaration.inherited)
    if not entries:
        return []
    if declaration.kind is TypeKind.CLASS and superclass_of(declaration, local_protocols) is not None:
        entries = entries[1:]
    elif declaration.kind is TypeKind.ENUM and _base_name(entries[0]) in RAW_VALUE_TYPES:
        entries = entries[1:]
    return entries


class ProtocolConformanceViaExtension:
    rule_id = "protocol-conformance-via-extension"
    description = "Add protocol conformances in separate extensions, not in the type's declaration."
    default_severity = Severity.WARNING

    def check(self, unit: SourceUnit) -> Iterable[Finding]:
        local_protocols = protocol_names(unit)
        for declaration in unit.iter_types():
            if declaration.kind not in (TypeKind.CLASS, TypeKind.STRUCT, TypeKind.ENUM, TypeKind.ACTOR):
                continue
            conformances = inline_conformances(declaration, local_protocols)
            if not conformances:
                continue
            listed = ", ".join(f"'{name}'" for name in conformances)
            yield finding(
                self,
                unit,
                declaration.inherited_span or declaration.name_span,
                f"'{declaration.name}' declares conformance to {listed} inline; "
                "move each conformance to its own extension",
            )


class PreferStructOverClass:
    rule_id = "prefer-struct-over-class"
    description = "Use a struct unless the type needs identity, inheritance or deinitialization."
    default_severity = Severity.WARNING

    def check(self, unit: SourceUnit) -> Iterable[Finding]:
        local_protocols = protocol_names(unit)
        class_bound = class_bound_protocols(unit)
        classes = [declaration for declaration in unit.iter_types() if declaration.kind is TypeKind.CLASS]
        superclasses = {superclass_of(declaration, local_protocols) for declaration in classes}
        for declaration in classes:
            if self._needs_reference_semantics(unit, declaration, local_protocols, class_bound, superclasses):
                continue
            yield finding(
                self,
                unit,
                declaration.name_span,
                f"Class '{declaration.name}' does not rely on reference semantics; consider a struct",
            )

    @staticmethod
    def _needs_reference_semantics(
        unit: SourceUnit,
        declaration: TypeDeclaration,
        local_protocols: Set[str],
        class_bound: Set[str],
        superclasses: Set[Optional[str]],
    ) -> bool:
        if declaration.name in superclasses or declaration.access is AccessLevel.OPEN:
            return True
        if superclass_of(declaration, local_protocols) is not None:
            return True
        if set(declaration.attributes) & _REFERENCE_ATTRIBUTES:
            return True
        for part in unit.types_named(declaration.qualified_name):
            if any(_base_name(entry) in class_bound or _base_name(entry) == "AnyObject" for entry in part.inherited):
                return True
            for member in part.members:
                if member.modifiers & _REFERENCE_MODIFIERS or set(member.attributes) & _REFERENCE_ATTRIBUTES:
                    return True
                if isinstance(member, Function) and member.kind is FunctionKind.DEINITIALIZER:
                    return True
                for body in bodies_of(member):
                    if body.identity_comparisons or "ObjectIdentifier" in body.calls:
                        return True
        return False


def class_bound_protocols(unit: SourceUnit) -> Set[str]:
    """Protocols in the file that only classes can adopt."""
    protocols = {
        declaration.name: {_base_name(entry) for entry in declaration.inherited}
        for declaration in unit.iter_types()
        if declaration.kind is TypeKind.PROTOCOL
    }
    bound = {name for name, parents in protocols.items() if parents & {"AnyObject", "class", "NSObjectProtocol"}}
    changed = True
    while changed:
        changed = False
        for name, parents in protocols.items():
            if name not in bound and parents & bound:
                bound.add(name)
                changed = True
    return bound


class NoGlobalModifierOnStruct:
    rule_id = "no-global-modifier-on-struct"
    description = "Put access modifiers on a struct's members rather than on the struct declaration."
    default_severity = Severity.WARNING

    def check(self, unit: SourceUnit) -> Iterable[Finding]:
        for declaration in unit.iter_types():
            if declaration.kind is not TypeKind.STRUCT or declaration.access not in _MODULE_WIDE_ACCESS:
                continue
            yield finding(
                self,
                unit,
                declaration.name_span,
                f"Struct '{declaration.name}' is declared '{declaration.access.value}'; "
                "apply access modifiers to its members instead",
            )


__all__ = [
    "KNOWN_PROTOCOLS",
    "NoGlobalModifierOnStruct",
    "PreferStructOverClass",
    "ProtocolConformanceViaExtension",
    "class_bound_protocols",
    "inline_conformances",
    "superclass_of",
]
