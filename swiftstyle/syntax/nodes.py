"""Structural model of a Swift source file.

Everything here is immutable: the parser builds the model once per linter
invocation and rules only read it. Member order inside a type is exactly the
order in which members appear in the source.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Dict, FrozenSet, Iterator, List, Mapping, Optional, Tuple

from ..models import SourceSpan
from .lexer import Comment


class TypeKind(str, Enum):
    CLASS = "class"
    STRUCT = "struct"
    ENUM = "enum"
    PROTOCOL = "protocol"
    EXTENSION = "extension"
    ACTOR = "actor"


class AccessLevel(str, Enum):
    OPEN = "open"
    PUBLIC = "public"
    PACKAGE = "package"
    INTERNAL = "internal"
    FILEPRIVATE = "fileprivate"
    PRIVATE = "private"

    @property
    def is_private(self) -> bool:
        return self in (AccessLevel.PRIVATE, AccessLevel.FILEPRIVATE)


class Mutability(str, Enum):
    IMMUTABLE = "immutable"
    MUTABLE = "mutable"


class OptionalKind(str, Enum):
    NONE = "none"
    OPTIONAL = "optional"
    IMPLICITLY_UNWRAPPED = "implicitly-unwrapped"


class FunctionKind(str, Enum):
    FUNCTION = "function"
    INITIALIZER = "initializer"
    DEINITIALIZER = "deinitializer"
    SUBSCRIPT = "subscript"


class ScopeKind(str, Enum):
    FILE = "file"
    FUNCTION = "function"
    BLOCK = "block"
    LOOP = "loop"
    CLOSURE = "closure"


class MutationKind(str, Enum):
    ASSIGN = "assign"
    COMPOUND = "compound"
    MEMBER_WRITE = "member-write"
    INOUT = "inout"
    MUTATING_CALL = "mutating-call"


# Implicit access of members that carry no access modifier, keyed by the kind
# of the type that declares them. ``None`` means "inherit the owner's access".
DEFAULT_MEMBER_ACCESS: Dict[TypeKind, Optional[AccessLevel]] = {
    TypeKind.CLASS: AccessLevel.INTERNAL,
    TypeKind.STRUCT: AccessLevel.INTERNAL,
    TypeKind.ENUM: AccessLevel.INTERNAL,
    TypeKind.ACTOR: AccessLevel.INTERNAL,
    TypeKind.PROTOCOL: None,
    TypeKind.EXTENSION: None,
}


def resolve_access(
    explicit: Optional[AccessLevel],
    owner_kind: Optional[TypeKind] = None,
    owner_access: Optional[AccessLevel] = None,
) -> AccessLevel:
    """Effective access of a declaration given its owner's kind and access."""
    if explicit is not None:
        return explicit
    if owner_kind is None:
        return AccessLevel.INTERNAL
    default = DEFAULT_MEMBER_ACCESS[owner_kind]
    if default is not None:
        return default
    if owner_access is None:
        return AccessLevel.INTERNAL
    # Members of a private extension are fileprivate, not private to the extension body.
    if owner_access is AccessLevel.PRIVATE:
        return AccessLevel.FILEPRIVATE
    return owner_access


@dataclass(frozen=True)
class Scope:
    scope_id: int
    kind: ScopeKind
    parent_id: Optional[int]
    span: SourceSpan


@dataclass(frozen=True)
class Reference:
    """A bare or ``self.``-qualified name used inside a body."""

    name: str
    span: SourceSpan
    scope_id: int
    self_qualified: bool
    local: bool


@dataclass(frozen=True)
class Mutation:
    """A write to a named storage location: assignment, in-out pass or mutating call."""

    name: str
    path: str
    kind: MutationKind
    span: SourceSpan
    scope_id: int
    self_qualified: bool
    target: Optional[int]
    local: bool


@dataclass(frozen=True)
class Narrowing:
    """``path`` is known to be non-nil inside ``scope_id`` from offset ``start`` on."""

    path: str
    scope_id: int
    start: int
    span: SourceSpan


@dataclass(frozen=True)
class ForceUnwrap:
    path: Optional[str]
    span: SourceSpan
    scope_id: int
    guarded: bool


@dataclass(frozen=True)
class Body:
    """A statement body with its scope tree and per-scope symbol facts."""

    span: SourceSpan
    scopes: Tuple[Scope, ...]
    bindings: Tuple["Binding", ...] = ()
    references: Tuple[Reference, ...] = ()
    mutations: Tuple[Mutation, ...] = ()
    narrowings: Tuple[Narrowing, ...] = ()
    force_unwraps: Tuple[ForceUnwrap, ...] = ()
    identity_comparisons: Tuple[SourceSpan, ...] = ()
    calls: FrozenSet[str] = frozenset()

    def ancestors(self, scope_id: Optional[int]) -> Iterator[Scope]:
        """Yield the scope and its ancestors, innermost first."""
        while scope_id is not None:
            scope = self.scopes[scope_id]
            yield scope
            scope_id = scope.parent_id


@dataclass(frozen=True)
class Initializer:
    """The expression assigned where a binding is declared."""

    text: str
    span: SourceSpan
    literal_type: Optional[str]
    body: Optional[Body] = None


@dataclass(frozen=True)
class Parameter:
    label: Optional[str]
    name: str
    type_annotation: Optional[str]
    span: SourceSpan


@dataclass(frozen=True)
class Declaration:
    name: str
    span: SourceSpan
    name_span: SourceSpan
    access: Optional[AccessLevel]
    effective_access: AccessLevel
    modifiers: FrozenSet[str]
    attributes: Tuple[str, ...]

    @property
    def is_static(self) -> bool:
        return "static" in self.modifiers or "class" in self.modifiers


@dataclass(frozen=True)
class Binding(Declaration):
    mutability: Mutability = Mutability.IMMUTABLE
    type_annotation: Optional[str] = None
    type_span: Optional[SourceSpan] = None
    optional_kind: OptionalKind = OptionalKind.NONE
    colon_span: Optional[SourceSpan] = None
    space_after_colon: bool = True
    initializer: Optional[Initializer] = None
    is_computed: bool = False
    has_observers: bool = False
    accessors: Tuple[Body, ...] = ()
    is_local: bool = False
    is_conditional: bool = False
    scope_id: Optional[int] = None
    reassigned: bool = False

    @property
    def has_explicit_type(self) -> bool:
        return self.type_annotation is not None

    @property
    def is_mutable(self) -> bool:
        return self.mutability is Mutability.MUTABLE


@dataclass(frozen=True)
class Function(Declaration):
    kind: FunctionKind = FunctionKind.FUNCTION
    parameters: Tuple[Parameter, ...] = ()
    return_type: Optional[str] = None
    body: Optional[Body] = None


@dataclass(frozen=True)
class TypeDeclaration(Declaration):
    kind: TypeKind = TypeKind.STRUCT
    qualified_name: str = ""
    members: Tuple[Declaration, ...] = ()
    inherited: Tuple[str, ...] = ()
    inherited_span: Optional[SourceSpan] = None

    def bindings(self) -> Tuple[Binding, ...]:
        return tuple(member for member in self.members if isinstance(member, Binding))

    def functions(self) -> Tuple[Function, ...]:
        return tuple(member for member in self.members if isinstance(member, Function))

    def nested_types(self) -> Tuple["TypeDeclaration", ...]:
        return tuple(member for member in self.members if isinstance(member, TypeDeclaration))


@dataclass(frozen=True)
class SourceUnit:
    """Parsed model of one input file.

    The type index is built once, at construction.
    """

    path: str
    text: str
    declarations: Tuple[Declaration, ...]
    statements: Optional[Body] = None
    comments: Tuple[Comment, ...] = ()
    skipped: Tuple[SourceSpan, ...] = ()
    types_by_name: Mapping[str, Tuple[TypeDeclaration, ...]] = field(
        init=False, compare=False, repr=False
    )

    def __post_init__(self) -> None:
        grouped: Dict[str, List[TypeDeclaration]] = {}
        for decl in self.iter_types():
            grouped.setdefault(decl.qualified_name, []).append(decl)
        index = MappingProxyType({name: tuple(decls) for name, decls in grouped.items()})
        object.__setattr__(self, "types_by_name", index)

    def iter_types(self) -> Iterator[TypeDeclaration]:
        """Every type declaration in the file, outer before nested, in source order."""
        stack = [decl for decl in reversed(self.declarations) if isinstance(decl, TypeDeclaration)]
        while stack:
            current = stack.pop()
            yield current
            stack.extend(reversed(current.nested_types()))

    def types_named(self, qualified_name: str) -> Tuple[TypeDeclaration, ...]:
        """Primary declaration and extensions sharing ``qualified_name``, in source order."""
        return self.types_by_name.get(qualified_name, ())

    def iter_functions(self) -> Iterator[Function]:
        for decl in self.declarations:
            if isinstance(decl, Function):
                yield decl
        for type_decl in self.iter_types():
            yield from type_decl.functions()

    def iter_bodies(self) -> Iterator[Body]:
        """Every analyzed body: functions, accessors, initializer expressions, top-level code."""
        if self.statements is not None:
            yield self.statements
        containers = list(self.declarations)
        for type_decl in self.iter_types():
            containers.extend(type_decl.members)
        for decl in containers:
            if isinstance(decl, Function) and decl.body is not None:
                yield decl.body
            elif isinstance(decl, Binding):
                yield from decl.accessors
                if decl.initializer is not None and decl.initializer.body is not None:
                    yield decl.initializer.body


__all__ = [
    "AccessLevel",
    "Binding",
    "Body",
    "DEFAULT_MEMBER_ACCESS",
    "Declaration",
    "ForceUnwrap",
    "Function",
    "FunctionKind",
    "Initializer",
    "Mutability",
    "Mutation",
    "MutationKind",
    "Narrowing",
    "OptionalKind",
    "Parameter",
    "Reference",
    "Scope",
    "ScopeKind",
    "SourceUnit",
    "TypeDeclaration",
    "TypeKind",
    "resolve_access",
]
