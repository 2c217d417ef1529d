"""Readers for declaration fragments that appear both at member level and inside bodies."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import FrozenSet, List, Optional, Tuple

from ..models import SourceSpan
from .lexer import TokenKind
from .nodes import (
    AccessLevel,
    Binding,
    Body,
    Initializer,
    Mutability,
    OptionalKind,
    Parameter,
)
from .stream import TokenStream, is_keyword, plain_name

ACCESSOR_NAMES = frozenset({"get", "set", "willSet", "didSet", "_read", "_modify", "unsafeAddress"})
ACCESSOR_PARAMETERS = {"set": "newValue", "willSet": "newValue", "didSet": "oldValue"}


class SyntaxIssue(Exception):
    """A single declaration could not be read; the caller skips it."""

    def __init__(self, message: str, index: int) -> None:
        super().__init__(message)
        self.index = index


@dataclass
class PatternClause:
    """One ``name: Type = value { accessors }`` clause of a let/var declaration."""

    names: List[int]
    first: int
    last: int = 0
    colon: Optional[int] = None
    type_range: Optional[Tuple[int, int]] = None
    init_range: Optional[Tuple[int, int]] = None
    accessor_group: Optional[int] = None
    tuple_pattern: bool = False


@dataclass
class AccessorBlock:
    name: str
    open_index: int
    close_index: int
    parameters: Tuple[str, ...] = field(default_factory=tuple)


def expression_end(stream: TokenStream, start: int, end: int) -> int:
    """Index past an initializer expression; stops at top-level commas and observer blocks."""
    cursor = start
    while cursor < end:
        token = stream[cursor]
        if cursor > start and token.newline_before and not stream.continues_line(cursor):
            break
        if token.is_punct(",", ";", "}", ")", "]"):
            break
        if token.is_punct("{"):
            following = stream.get(cursor + 1)
            if following is not None and following.is_ident("willSet", "didSet"):
                break
            cursor = stream.skip_group(cursor)
            continue
        if token.is_punct("(", "["):
            cursor = stream.skip_group(cursor)
            continue
        cursor += 1
    return cursor


def read_pattern_clauses(stream: TokenStream, start: int, end: int) -> Tuple[List[PatternClause], int]:
    """Read the clauses following ``let``/``var`` starting at ``start``."""
    clauses: List[PatternClause] = []
    cursor = start
    while True:
        if cursor >= end:
            raise SyntaxIssue("Expected a binding name", max(start - 1, 0))
        token = stream[cursor]
        if token.is_punct("("):
            close = stream.matching[cursor]
            names = [
                index
                for index in range(cursor + 1, close)
                if stream[index].kind is TokenKind.IDENT
                and not is_keyword(stream[index])
                and stream[index].text != "_"
                and not stream[index - 1].is_punct(":")
            ]
            clause = PatternClause(names=names, first=cursor, tuple_pattern=True)
            cursor = close + 1
        elif token.kind is TokenKind.IDENT and (not is_keyword(token) or token.text.startswith("`")):
            clause = PatternClause(names=[cursor] if token.text != "_" else [], first=cursor)
            cursor += 1
        else:
            raise SyntaxIssue(f"Unexpected '{token.text}' in binding", cursor)

        if cursor < end and stream[cursor].is_punct(":"):
            clause.colon = cursor
            type_end = stream.read_type(cursor + 1, end)
            if type_end == cursor + 1:
                raise SyntaxIssue("Missing type annotation", cursor)
            clause.type_range = (cursor + 1, type_end)
            cursor = type_end
        if cursor < end and stream[cursor].is_op("="):
            init_end = expression_end(stream, cursor + 1, end)
            if init_end == cursor + 1:
                raise SyntaxIssue("Missing initial value", cursor)
            clause.init_range = (cursor + 1, init_end)
            cursor = init_end
        if cursor < end and stream[cursor].is_punct("{"):
            following = stream.get(cursor + 1)
            observers = following is not None and following.is_ident("willSet", "didSet")
            if observers or (clause.init_range is None and not stream[cursor].newline_before):
                clause.accessor_group = cursor
                cursor = stream.skip_group(cursor)
        clause.last = cursor - 1
        clauses.append(clause)
        if cursor < end and stream[cursor].is_punct(","):
            cursor += 1
            continue
        break
    if cursor < end and stream[cursor].is_punct(";"):
        cursor += 1
    return clauses, cursor


def split_accessors(stream: TokenStream, open_index: int) -> List[AccessorBlock]:
    """Break an accessor group into ``get``/``set``/observer blocks.

    A group without accessor keywords is an implicit getter and comes back as a
    single ``get`` block spanning the whole group.
    """
    close = stream.matching[open_index]
    first = stream.get(open_index + 1)
    if first is None or open_index + 1 >= close or not _starts_accessor(stream, open_index + 1):
        return [AccessorBlock("get", open_index, close)]
    blocks: List[AccessorBlock] = []
    cursor = open_index + 1
    while cursor < close:
        token = stream[cursor]
        if token.kind is TokenKind.ATTRIBUTE or token.is_ident(
            "mutating", "nonmutating", "private", "fileprivate", "internal", "public", "async", "throws"
        ):
            cursor += 1
            continue
        if not token.is_ident(*ACCESSOR_NAMES):
            raise SyntaxIssue(f"Unexpected '{token.text}' in accessor block", cursor)
        name = token.text
        cursor += 1
        parameters: Tuple[str, ...] = ()
        if cursor < close and stream[cursor].is_punct("("):
            inner = [
                stream[index].text
                for index in range(cursor + 1, stream.matching[cursor])
                if stream[index].kind is TokenKind.IDENT
            ]
            parameters = tuple(inner)
            cursor = stream.skip_group(cursor)
        elif name in ACCESSOR_PARAMETERS:
            parameters = (ACCESSOR_PARAMETERS[name],)
        while cursor < close and stream[cursor].is_ident("async", "throws"):
            cursor += 1
        if cursor >= close or not stream[cursor].is_punct("{"):
            # Protocol requirement style `{ get set }`.
            blocks.append(AccessorBlock(name, -1, -1, parameters))
            continue
        block_close = stream.matching[cursor]
        blocks.append(AccessorBlock(name, cursor, block_close, parameters))
        cursor = block_close + 1
    return blocks


def _starts_accessor(stream: TokenStream, index: int) -> bool:
    token = stream[index]
    while token.kind is TokenKind.ATTRIBUTE or token.is_ident("mutating", "nonmutating"):
        index += 1
        token = stream[index]
    if not token.is_ident(*ACCESSOR_NAMES):
        return False
    following = stream.get(index + 1)
    if following is None:
        return True
    return following.is_punct("{", "(", "}") or following.is_ident("async", "throws", *ACCESSOR_NAMES)


def read_parameters(stream: TokenStream, open_index: int) -> Tuple[Parameter, ...]:
    """Parameters of a function or subscript clause whose ``(`` is at ``open_index``."""
    close = stream.matching[open_index]
    parameters: List[Parameter] = []
    for start, stop in stream.split_commas(open_index + 1, close):
        colon = next((index for index in range(start, stop) if stream[index].is_punct(":")), None)
        head_end = colon if colon is not None else stop
        names = [
            plain_name(stream[index].text)
            for index in range(start, head_end)
            if stream[index].kind is TokenKind.IDENT and not stream[index].is_ident("inout", "isolated")
        ]
        if not names:
            raise SyntaxIssue("Malformed parameter", start)
        label = names[0]
        name = names[-1]
        annotation = None
        if colon is not None:
            type_end = stream.read_type(colon + 1, stop)
            annotation = stream.source(colon + 1, type_end) or None
        parameters.append(
            Parameter(
                label=None if label == "_" else label,
                name=name,
                type_annotation=annotation,
                span=stream.span(start, stop - 1),
            )
        )
    return tuple(parameters)


def optional_kind_of(annotation: Optional[str]) -> OptionalKind:
    if not annotation:
        return OptionalKind.NONE
    text = annotation.strip()
    if text.endswith("!") or text.startswith("ImplicitlyUnwrappedOptional<"):
        return OptionalKind.IMPLICITLY_UNWRAPPED
    if text.endswith("?") or text.startswith("Optional<"):
        return OptionalKind.OPTIONAL
    return OptionalKind.NONE


def literal_type(stream: TokenStream, start: int, end: int) -> Optional[str]:
    """Type a literal initializer unambiguously has, or ``None``."""
    if end <= start:
        return None
    first = stream[start]
    if end - start == 1:
        return _single_literal_type(stream, start)
    if end - start == 2 and first.is_op("-") and stream[start + 1].kind is TokenKind.NUMBER:
        return _single_literal_type(stream, start + 1)
    if first.is_punct("[") and stream.matching[start] == end - 1:
        return _collection_literal_type(stream, start)
    return _construction_type(stream, start, end)


def _single_literal_type(stream: TokenStream, index: int) -> Optional[str]:
    token = stream[index]
    if token.kind is TokenKind.NUMBER:
        text = token.text.lower()
        if text.startswith(("0x", "0b", "0o")):
            return "Double" if "p" in text else "Int"
        return "Double" if ("." in text or "e" in text) else "Int"
    if token.kind is TokenKind.STRING:
        return "String"
    if token.is_ident("true", "false"):
        return "Bool"
    return None


def _collection_literal_type(stream: TokenStream, open_index: int) -> Optional[str]:
    close = stream.matching[open_index]
    elements = stream.split_commas(open_index + 1, close)
    if not elements:
        return None
    key_types = set()
    value_types = set()
    dictionary = None
    for start, stop in elements:
        colon = next(
            (index for index in range(start, stop) if stream[index].is_punct(":")),
            None,
        )
        if dictionary is None:
            dictionary = colon is not None
        if dictionary != (colon is not None):
            return None
        if colon is not None:
            key_types.add(literal_type(stream, start, colon))
            value_types.add(literal_type(stream, colon + 1, stop))
        else:
            value_types.add(literal_type(stream, start, stop))
    if None in key_types or None in value_types or len(value_types) != 1:
        return None
    value = value_types.pop()
    if dictionary:
        if len(key_types) != 1:
            return None
        return f"[{key_types.pop()}: {value}]"
    return f"[{value}]"


def _construction_type(stream: TokenStream, start: int, end: int) -> Optional[str]:
    close = end - 1
    if not stream[close].is_punct(")"):
        return None
    opener = stream.matching[close]
    parts: List[str] = []
    cursor = start
    while cursor < opener:
        token = stream[cursor]
        if token.kind is not TokenKind.IDENT or not token.text[:1].isupper():
            return None
        parts.append(token.text)
        cursor += 1
        if cursor < opener:
            if not stream[cursor].is_op("."):
                return None
            cursor += 1
    if not parts or cursor != opener:
        return None
    return ".".join(parts)


def make_binding(
    stream: TokenStream,
    clause: PatternClause,
    name_index: int,
    *,
    first: int,
    mutability: Mutability,
    access: Optional[AccessLevel],
    effective_access: AccessLevel,
    modifiers: FrozenSet[str],
    attributes: Tuple[str, ...],
    is_local: bool = False,
    is_conditional: bool = False,
    scope_id: Optional[int] = None,
    initializer_body: Optional[Body] = None,
    accessors: Tuple[Body, ...] = (),
    computed: Optional[bool] = None,
) -> Binding:
    """Build the Binding for one name of a let/var clause."""
    annotation = None
    type_span: Optional[SourceSpan] = None
    if clause.type_range is not None and len(clause.names) <= 1:
        type_start, type_end = clause.type_range
        annotation = stream.source(type_start, type_end)
        type_span = stream.span(type_start, type_end - 1)
    colon_span = None
    space_after_colon = True
    if clause.colon is not None:
        colon = stream[clause.colon]
        colon_span = stream.token_span(clause.colon)
        space_after_colon = stream.text[colon.end : colon.end + 1].isspace()
    initializer = None
    if clause.init_range is not None:
        init_start, init_end = clause.init_range
        initializer = Initializer(
            text=stream.source(init_start, init_end),
            span=stream.span(init_start, init_end - 1),
            literal_type=literal_type(stream, init_start, init_end),
            body=initializer_body,
        )
    has_observers = False
    is_computed = False
    if clause.accessor_group is not None:
        kinds = {block.name for block in split_accessors(stream, clause.accessor_group)}
        has_observers = bool(kinds & {"willSet", "didSet"})
        is_computed = not has_observers
    if computed is not None:
        is_computed = computed
    return Binding(
        name=plain_name(stream[name_index].text),
        span=stream.span(first, max(clause.last, name_index)),
        name_span=stream.token_span(name_index),
        access=access,
        effective_access=effective_access,
        modifiers=modifiers,
        attributes=attributes,
        mutability=mutability,
        type_annotation=annotation,
        type_span=type_span,
        optional_kind=optional_kind_of(annotation),
        colon_span=colon_span,
        space_after_colon=space_after_colon,
        initializer=initializer,
        is_computed=is_computed,
        has_observers=has_observers,
        accessors=accessors,
        is_local=is_local,
        is_conditional=is_conditional,
        scope_id=scope_id,
    )


__all__ = [
    "ACCESSOR_NAMES",
    "AccessorBlock",
    "PatternClause",
    "SyntaxIssue",
    "expression_end",
    "literal_type",
    "make_binding",
    "optional_kind_of",
    "read_parameters",
    "read_pattern_clauses",
    "split_accessors",
]
