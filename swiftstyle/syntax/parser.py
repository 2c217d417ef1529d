"""
Swift declaration parser.

Builds the structural skeleton of a file from the token stream: type
declarations with their members in source order, bindings with their
type/optionality/mutability markers, and function signatures. Statement
bodies are handed to :mod:`swiftstyle.syntax.body`.

A malformed declaration is skipped and its span recorded; only lexical
failures and unbalanced brackets make the whole file unparseable.

Usage:
    unit = parse(text, path="Sources/App/Model.swift")
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from ..logging import get_logger
from ..models import SourceSpan
from .body import BodyAnalyzer, analyze_body, analyze_expression
from .fragments import (
    SyntaxIssue,
    make_binding,
    read_parameters,
    read_pattern_clauses,
    split_accessors,
)
from .lexer import TokenKind
from .nodes import (
    AccessLevel,
    Binding,
    Body,
    Declaration,
    Function,
    FunctionKind,
    Mutation,
    MutationKind,
    Mutability,
    ScopeKind,
    SourceUnit,
    TypeDeclaration,
    TypeKind,
    resolve_access,
)
from .stream import TokenStream, plain_name

_LOGGER = get_logger("syntax.parser")

_ACCESS_LEVELS = {level.value: level for level in AccessLevel}
_TYPE_KEYWORDS = {kind.value: kind for kind in TypeKind}
_MODIFIERS = frozenset(
    {
        "borrowing",
        "consuming",
        "convenience",
        "distributed",
        "dynamic",
        "final",
        "indirect",
        "infix",
        "isolated",
        "lazy",
        "mutating",
        "nonisolated",
        "nonmutating",
        "optional",
        "override",
        "postfix",
        "prefix",
        "required",
        "static",
        "unowned",
        "weak",
    }
)
_CLASS_MEMBER_FOLLOWERS = frozenset({"var", "let", "func", "subscript"}) | _MODIFIERS | frozenset(_ACCESS_LEVELS)
_IGNORED_DECLARATIONS = frozenset({"typealias", "associatedtype", "import", "case", "operator", "macro"})
_EFFECTS = frozenset({"async", "throws", "rethrows", "reasync"})
_DIRECTIVES = frozenset({"#if", "#elseif", "#else", "#endif", "#warning", "#error", "#sourceLocation"})
_DECLARATION_STARTS = frozenset({"let", "var", "func", "init", "class", "struct", "enum", "protocol", "extension"})


@dataclass(frozen=True)
class _Owner:
    """The type declaration whose body is being parsed."""

    kind: TypeKind
    qualified_name: str
    member_access: Optional[AccessLevel]


@dataclass
class _Prefix:
    attributes: List[str]
    modifiers: List[str]
    access: Optional[AccessLevel]
    end: int


class Parser:
    """
    Recursive-descent reader for Swift declarations.

    Usage:
        parser = Parser(text, path)
        unit = parser.parse()
    """

    def __init__(self, text: str, path: str = "<memory>") -> None:
        self.text = text
        self.path = path
        self.stream = TokenStream(text)
        self._skipped: List[SourceSpan] = []
        self._top_level: Dict[int, int] = {}

    def parse(self) -> SourceUnit:
        stream = self.stream
        declarations = self._declarations(0, len(stream), owner=None)
        file_span = stream.lines.span(0, len(self.text))
        statements = BodyAnalyzer(
            stream,
            0,
            len(stream),
            span=file_span,
            kind=ScopeKind.FILE,
            skip=self._top_level,
        ).analyze()
        declarations = _with_reassignments(declarations, statements)
        return SourceUnit(
            path=self.path,
            text=self.text,
            declarations=tuple(declarations),
            statements=statements,
            comments=stream.comments,
            skipped=tuple(self._skipped),
        )

    # Declaration lists

    def _declarations(self, start: int, end: int, owner: Optional[_Owner]) -> List[Declaration]:
        stream = self.stream
        result: List[Declaration] = []
        cursor = start
        while cursor < end:
            token = stream[cursor]
            if token.kind is TokenKind.POUND and token.text in _DIRECTIVES:
                cursor = self._skip_line(cursor, end)
                continue
            if token.is_punct(";"):
                cursor += 1
                continue
            try:
                parsed = self._declaration(cursor, end, owner)
            except SyntaxIssue as issue:
                after = max(stream.statement_end(cursor, end), cursor + 1)
                self._skip(cursor, after, str(issue), owner)
                cursor = after
                continue
            if parsed is None:
                after = max(stream.statement_end(cursor, end), cursor + 1)
                if owner is not None:
                    self._skip(cursor, after, "Unrecognized member", owner)
                cursor = after
                continue
            declarations, after = parsed
            if owner is None:
                self._top_level[cursor] = after
            result.extend(declarations)
            cursor = max(after, cursor + 1)
        return result

    def _skip(self, start: int, after: int, reason: str, owner: Optional[_Owner]) -> None:
        span = self.stream.span(start, after - 1)
        self._skipped.append(span)
        if owner is None:
            self._top_level[start] = after
        _LOGGER.debug("%s:%s:%s: skipped construct (%s)", self.path, span.line, span.column, reason)

    def _skip_line(self, index: int, end: int) -> int:
        stream = self.stream
        cursor = index + 1
        while cursor < end and not stream[cursor].newline_before:
            cursor = stream.skip_group(cursor) if stream[cursor].is_punct("(", "[") else cursor + 1
        return cursor

    def _declaration(
        self, start: int, end: int, owner: Optional[_Owner]
    ) -> Optional[Tuple[List[Declaration], int]]:
        """Parse one declaration at ``start``; ``None`` when ``start`` begins a statement."""
        stream = self.stream
        prefix = self._prefix(start, end)
        cursor = prefix.end
        token = stream.get(cursor) if cursor < end else None
        has_prefix = bool(prefix.attributes or prefix.modifiers) or prefix.access is not None
        if token is None or token.kind is not TokenKind.IDENT:
            if has_prefix:
                raise SyntaxIssue("Expected a declaration after modifiers", cursor)
            return None
        following = stream.get(cursor + 1)
        keyword = token.text

        if keyword in _TYPE_KEYWORDS and following is not None and following.kind is TokenKind.IDENT:
            return self._type_declaration(start, cursor, end, owner, prefix)
        if keyword == "extension" and following is not None and following.is_punct("["):
            return self._type_declaration(start, cursor, end, owner, prefix)
        if keyword in ("let", "var"):
            return self._bindings(start, cursor, end, owner, prefix)
        if keyword == "func":
            return self._function(start, cursor, end, owner, prefix)
        if keyword == "init":
            return self._initializer(start, cursor, end, owner, prefix)
        if keyword == "deinit":
            return self._deinitializer(start, cursor, end, owner, prefix)
        if keyword == "subscript":
            return self._subscript(start, cursor, end, owner, prefix)
        if keyword == "precedencegroup":
            open_index = self._find_brace(cursor + 1, end)
            return [], stream.skip_group(open_index)
        if keyword in _IGNORED_DECLARATIONS:
            return [], max(stream.statement_end(cursor, end), cursor + 1)
        if has_prefix:
            raise SyntaxIssue(f"Unexpected '{keyword}' after modifiers", cursor)
        return None

    def _prefix(self, start: int, end: int) -> _Prefix:
        """Collect attributes, modifiers and the access level preceding a declaration keyword."""
        stream = self.stream
        attributes: List[str] = []
        modifiers: List[str] = []
        access: Optional[AccessLevel] = None
        cursor = start
        while cursor < end:
            token = stream[cursor]
            following = stream.get(cursor + 1)
            if token.kind is TokenKind.ATTRIBUTE:
                attributes.append(token.text)
                cursor += 1
                if cursor < end and stream[cursor].is_punct("(") and not stream[cursor].space_before:
                    cursor = stream.skip_group(cursor)
                continue
            if following is None or token.kind is not TokenKind.IDENT:
                break
            text = token.text
            if text in _ACCESS_LEVELS or text in _MODIFIERS:
                if following.is_punct("(") and not following.space_before:
                    close = stream.matching[cursor + 1]
                    detail = stream.source(cursor + 2, close)
                    if detail not in ("set", "safe", "unsafe"):
                        break
                    modifiers.append(f"{text}({detail})")
                    cursor = close + 1
                    continue
                if following.kind not in (TokenKind.IDENT, TokenKind.ATTRIBUTE):
                    break
                if text in _ACCESS_LEVELS:
                    access = _ACCESS_LEVELS[text]
                else:
                    modifiers.append(text)
                cursor += 1
                continue
            if text == "class" and following.is_ident(*_CLASS_MEMBER_FOLLOWERS):
                modifiers.append(text)
                cursor += 1
                continue
            break
        return _Prefix(attributes=attributes, modifiers=modifiers, access=access, end=cursor)

    def _find_brace(self, start: int, end: int) -> int:
        stream = self.stream
        cursor = start
        while cursor < end:
            token = stream[cursor]
            if token.is_punct("{"):
                return cursor
            if token.is_punct("(", "["):
                cursor = stream.skip_group(cursor)
                continue
            if token.is_punct("}", ";"):
                break
            if cursor > start and token.newline_before and token.is_ident(*_DECLARATION_STARTS):
                break
            cursor += 1
        raise SyntaxIssue("Expected '{'", cursor if cursor < end else max(start - 1, 0))

    def _access(self, explicit: Optional[AccessLevel], owner: Optional[_Owner]) -> AccessLevel:
        if owner is None:
            return resolve_access(explicit)
        return resolve_access(explicit, owner.kind, owner.member_access)

    # Types

    def _type_declaration(
        self,
        first: int,
        keyword: int,
        end: int,
        owner: Optional[_Owner],
        prefix: _Prefix,
    ) -> Tuple[List[Declaration], int]:
        stream = self.stream
        kind = _TYPE_KEYWORDS[stream[keyword].text]
        name_start = keyword + 1
        if kind is TypeKind.EXTENSION:
            name_end = stream.read_type(name_start, end)
            if name_end == name_start:
                raise SyntaxIssue("Expected an extended type name", name_start)
            name = stream.source(name_start, name_end)
            name_span = stream.span(name_start, name_end - 1)
            cursor = name_end
        else:
            name_token = stream[name_start]
            if name_token.kind is not TokenKind.IDENT:
                raise SyntaxIssue("Expected a type name", name_start)
            name = plain_name(name_token.text)
            name_span = stream.token_span(name_start)
            cursor = name_start + 1
            if cursor < end and stream[cursor].is_op("<"):
                cursor = stream.skip_angles(cursor, end)

        inherited: Tuple[str, ...] = ()
        inherited_span = None
        if cursor < end and stream[cursor].is_punct(":"):
            list_end = cursor + 1
            while list_end < end and not stream[list_end].is_punct("{") and not stream[list_end].is_ident("where"):
                if stream[list_end].is_punct("(", "["):
                    list_end = stream.skip_group(list_end)
                    continue
                list_end += 1
            parts = stream.split_commas(cursor + 1, list_end)
            inherited = tuple(stream.source(part_start, part_stop) for part_start, part_stop in parts)
            if not inherited or not all(inherited):
                raise SyntaxIssue("Malformed inheritance clause", cursor)
            inherited_span = stream.span(cursor + 1, list_end - 1)
            cursor = list_end

        open_index = self._find_brace(cursor, end)
        close = stream.matching[open_index]
        if kind is TypeKind.EXTENSION or owner is None:
            qualified_name = name
        else:
            qualified_name = f"{owner.qualified_name}.{name}"
        effective = self._access(prefix.access, owner)
        member_access = prefix.access if kind is TypeKind.EXTENSION else effective
        members = self._declarations(
            open_index + 1,
            close,
            owner=_Owner(kind=kind, qualified_name=qualified_name, member_access=member_access),
        )
        declaration = TypeDeclaration(
            name=name,
            span=stream.span(first, close),
            name_span=name_span,
            access=prefix.access,
            effective_access=effective,
            modifiers=frozenset(prefix.modifiers),
            attributes=tuple(prefix.attributes),
            kind=kind,
            qualified_name=qualified_name,
            members=tuple(members),
            inherited=inherited,
            inherited_span=inherited_span,
        )
        return [declaration], close + 1

    # Bindings

    def _bindings(
        self,
        first: int,
        keyword: int,
        end: int,
        owner: Optional[_Owner],
        prefix: _Prefix,
    ) -> Tuple[List[Declaration], int]:
        stream = self.stream
        mutability = Mutability.IMMUTABLE if stream[keyword].text == "let" else Mutability.MUTABLE
        clauses, after = read_pattern_clauses(stream, keyword + 1, end)
        effective = self._access(prefix.access, owner)
        bindings: List[Declaration] = []
        for clause in clauses:
            initializer_body = None
            if clause.init_range is not None:
                initializer_body = analyze_expression(stream, *clause.init_range)
            accessors: Tuple[Body, ...] = ()
            if clause.accessor_group is not None:
                accessors = tuple(
                    analyze_body(stream, block.open_index, parameters=block.parameters)
                    for block in split_accessors(stream, clause.accessor_group)
                    if block.open_index >= 0
                )
            for name_index in clause.names:
                bindings.append(
                    make_binding(
                        stream,
                        clause,
                        name_index,
                        first=first,
                        mutability=mutability,
                        access=prefix.access,
                        effective_access=effective,
                        modifiers=frozenset(prefix.modifiers),
                        attributes=tuple(prefix.attributes),
                        initializer_body=initializer_body,
                        accessors=accessors,
                    )
                )
        return bindings, after

    # Functions

    def _function(
        self,
        first: int,
        keyword: int,
        end: int,
        owner: Optional[_Owner],
        prefix: _Prefix,
    ) -> Tuple[List[Declaration], int]:
        stream = self.stream
        cursor = keyword + 1
        if cursor >= end:
            raise SyntaxIssue("Expected a function name", keyword)
        token = stream[cursor]
        if token.kind is TokenKind.IDENT:
            name = plain_name(token.text)
            name_span = stream.token_span(cursor)
            cursor += 1
        elif token.kind is TokenKind.OPERATOR:
            name_first = cursor
            while cursor < end and stream[cursor].kind is TokenKind.OPERATOR and (
                cursor == name_first or not stream[cursor].space_before
            ):
                cursor += 1
            name = stream.source(name_first, cursor)
            name_span = stream.span(name_first, cursor - 1)
        else:
            raise SyntaxIssue("Expected a function name", cursor)
        return self._callable(first, cursor, end, owner, prefix, FunctionKind.FUNCTION, name, name_span)

    def _initializer(
        self,
        first: int,
        keyword: int,
        end: int,
        owner: Optional[_Owner],
        prefix: _Prefix,
    ) -> Tuple[List[Declaration], int]:
        stream = self.stream
        cursor = keyword + 1
        while cursor < end and stream[cursor].is_op("?", "!") and not stream[cursor].space_before:
            cursor += 1
        return self._callable(
            first, cursor, end, owner, prefix, FunctionKind.INITIALIZER, "init", stream.token_span(keyword)
        )

    def _deinitializer(
        self,
        first: int,
        keyword: int,
        end: int,
        owner: Optional[_Owner],
        prefix: _Prefix,
    ) -> Tuple[List[Declaration], int]:
        stream = self.stream
        cursor = keyword + 1
        body = None
        last = keyword
        if cursor < end and stream[cursor].is_punct("{"):
            body = analyze_body(stream, cursor)
            last = stream.matching[cursor]
        function = Function(
            name="deinit",
            span=stream.span(first, last),
            name_span=stream.token_span(keyword),
            access=prefix.access,
            effective_access=self._access(prefix.access, owner),
            modifiers=frozenset(prefix.modifiers),
            attributes=tuple(prefix.attributes),
            kind=FunctionKind.DEINITIALIZER,
            body=body,
        )
        return [function], last + 1

    def _callable(
        self,
        first: int,
        cursor: int,
        end: int,
        owner: Optional[_Owner],
        prefix: _Prefix,
        kind: FunctionKind,
        name: str,
        name_span: SourceSpan,
    ) -> Tuple[List[Declaration], int]:
        stream = self.stream
        if cursor < end and stream[cursor].is_op("<"):
            cursor = stream.skip_angles(cursor, end)
        if cursor >= end or not stream[cursor].is_punct("("):
            raise SyntaxIssue("Expected a parameter clause", min(cursor, end - 1))
        parameters = read_parameters(stream, cursor)
        cursor = stream.skip_group(cursor)
        cursor = self._skip_effects(cursor, end)
        return_type = None
        if cursor < end and stream[cursor].is_op("->"):
            type_end = stream.read_type(cursor + 1, end)
            if type_end == cursor + 1:
                raise SyntaxIssue("Expected a return type", cursor)
            return_type = stream.source(cursor + 1, type_end)
            cursor = type_end
        cursor = self._skip_where(cursor, end)
        body = None
        last = cursor - 1
        after = cursor
        if cursor < end and stream[cursor].is_punct("{"):
            body = analyze_body(stream, cursor, parameters=[parameter.name for parameter in parameters])
            last = stream.matching[cursor]
            after = last + 1
        function = Function(
            name=name,
            span=stream.span(first, last),
            name_span=name_span,
            access=prefix.access,
            effective_access=self._access(prefix.access, owner),
            modifiers=frozenset(prefix.modifiers),
            attributes=tuple(prefix.attributes),
            kind=kind,
            parameters=parameters,
            return_type=return_type,
            body=body,
        )
        return [function], after

    def _subscript(
        self,
        first: int,
        keyword: int,
        end: int,
        owner: Optional[_Owner],
        prefix: _Prefix,
    ) -> Tuple[List[Declaration], int]:
        stream = self.stream
        cursor = keyword + 1
        if cursor < end and stream[cursor].is_op("<"):
            cursor = stream.skip_angles(cursor, end)
        if cursor >= end or not stream[cursor].is_punct("("):
            raise SyntaxIssue("Expected a subscript parameter clause", keyword)
        parameters = read_parameters(stream, cursor)
        cursor = stream.skip_group(cursor)
        if cursor >= end or not stream[cursor].is_op("->"):
            raise SyntaxIssue("Expected a subscript result type", cursor - 1)
        type_end = stream.read_type(cursor + 1, end)
        return_type = stream.source(cursor + 1, type_end)
        cursor = self._skip_where(type_end, end)
        body = None
        last = cursor - 1
        if cursor < end and stream[cursor].is_punct("{"):
            names = [parameter.name for parameter in parameters]
            blocks = [block for block in split_accessors(stream, cursor) if block.open_index >= 0]
            if blocks:
                body = analyze_body(stream, blocks[0].open_index, parameters=names + list(blocks[0].parameters))
            last = stream.matching[cursor]
        function = Function(
            name="subscript",
            span=stream.span(first, last),
            name_span=stream.token_span(keyword),
            access=prefix.access,
            effective_access=self._access(prefix.access, owner),
            modifiers=frozenset(prefix.modifiers),
            attributes=tuple(prefix.attributes),
            kind=FunctionKind.SUBSCRIPT,
            parameters=parameters,
            return_type=return_type,
            body=body,
        )
        return [function], last + 1

    def _skip_effects(self, cursor: int, end: int) -> int:
        stream = self.stream
        while cursor < end and stream[cursor].is_ident(*_EFFECTS):
            cursor += 1
            if cursor < end and stream[cursor].is_punct("(") and not stream[cursor].space_before:
                cursor = stream.skip_group(cursor)
        return cursor

    def _skip_where(self, cursor: int, end: int) -> int:
        stream = self.stream
        if cursor >= end or not stream[cursor].is_ident("where"):
            return cursor
        cursor += 1
        while cursor < end and not stream[cursor].is_punct("{", "}", ";"):
            if cursor > 0 and stream[cursor].newline_before and not stream.continues_line(cursor):
                break
            if stream[cursor].is_punct("(", "["):
                cursor = stream.skip_group(cursor)
                continue
            cursor += 1
        return cursor


def parse(text: str, path: str = "<memory>") -> SourceUnit:
    """Parse Swift source text into a :class:`SourceUnit`, raising ParseError if unrecognizable."""
    return Parser(text, path).parse()


# Reassignment of stored properties and globals


def _iter_types(declarations: Iterable[Declaration]) -> Iterable[TypeDeclaration]:
    for declaration in declarations:
        if isinstance(declaration, TypeDeclaration):
            yield declaration
            yield from _iter_types(declaration.members)


def _member_mutations(declaration: TypeDeclaration) -> Iterable[Tuple[Mutation, bool]]:
    """Mutations made by a type's own members, flagged when made inside an initializer."""
    for member in declaration.members:
        if isinstance(member, Function) and member.body is not None:
            in_initializer = member.kind is FunctionKind.INITIALIZER
            for mutation in member.body.mutations:
                yield mutation, in_initializer
        elif isinstance(member, Binding):
            bodies = list(member.accessors)
            if member.initializer is not None and member.initializer.body is not None:
                bodies.append(member.initializer.body)
            for body in bodies:
                for mutation in body.mutations:
                    yield mutation, False


def _all_bodies(declarations: Sequence[Declaration], statements: Body) -> List[Body]:
    bodies = [statements]
    containers: List[Declaration] = list(declarations)
    for type_declaration in _iter_types(declarations):
        containers.extend(type_declaration.members)
    for declaration in containers:
        if isinstance(declaration, Function) and declaration.body is not None:
            bodies.append(declaration.body)
        elif isinstance(declaration, Binding):
            bodies.extend(declaration.accessors)
            if declaration.initializer is not None and declaration.initializer.body is not None:
                bodies.append(declaration.initializer.body)
    return bodies


def _with_reassignments(declarations: Sequence[Declaration], statements: Body) -> List[Declaration]:
    """Fill ``Binding.reassigned`` for stored properties and globals from every body in the file."""
    mutations = [mutation for body in _all_bodies(declarations, statements) for mutation in body.mutations]
    by_type: Dict[str, List[Tuple[Mutation, bool]]] = {}
    for type_declaration in _iter_types(declarations):
        by_type.setdefault(type_declaration.qualified_name, []).extend(_member_mutations(type_declaration))

    def property_reassigned(binding: Binding, qualified_name: str) -> bool:
        for mutation, in_initializer in by_type.get(qualified_name, ()):
            if mutation.name != binding.name or mutation.local:
                continue
            if in_initializer and mutation.kind is MutationKind.ASSIGN and binding.initializer is None:
                continue
            return True
        suffix = "." + binding.name
        return any(
            mutation.path.endswith(suffix) or (suffix + ".") in mutation.path for mutation in mutations
        )

    def global_reassigned(binding: Binding) -> bool:
        return any(
            mutation.name == binding.name and not mutation.local and not mutation.self_qualified
            for mutation in mutations
        )

    def rebuild(declaration: Declaration, owner: Optional[str]) -> Declaration:
        if isinstance(declaration, TypeDeclaration):
            members = tuple(rebuild(member, declaration.qualified_name) for member in declaration.members)
            return replace(declaration, members=members)
        if isinstance(declaration, Binding):
            if owner is None:
                return replace(declaration, reassigned=global_reassigned(declaration))
            return replace(declaration, reassigned=property_reassigned(declaration, owner))
        return declaration

    return [rebuild(declaration, None) for declaration in declarations]


__all__ = ["Parser", "parse"]
