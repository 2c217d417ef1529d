"""Scope-aware analysis of statement bodies.

A single pass over the tokens of a function, accessor, initializer expression
or the top level of a file records the scope tree (function, block, loop and
closure scopes), local bindings, name references, mutations, narrowing facts
and force unwraps. Rules only read the resulting :class:`Body`; none of them
walks the text again.
"""

from __future__ import annotations

from bisect import bisect_right
from collections import defaultdict
from dataclasses import dataclass, replace
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Set, Tuple

from ..models import SourceSpan
from .fragments import (
    PatternClause,
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
    ForceUnwrap,
    Mutability,
    Mutation,
    MutationKind,
    Narrowing,
    Reference,
    Scope,
    ScopeKind,
)
from .stream import TokenStream, is_keyword, plain_name

MUTATING_METHODS = frozenset(
    {
        "append",
        "formIntersection",
        "formSymmetricDifference",
        "formUnion",
        "insert",
        "merge",
        "popFirst",
        "popLast",
        "remove",
        "removeAll",
        "removeFirst",
        "removeLast",
        "removeSubrange",
        "removeValue",
        "replaceSubrange",
        "reserveCapacity",
        "reverse",
        "shuffle",
        "sort",
        "subtract",
        "swapAt",
        "toggle",
        "updateValue",
    }
)

ASSIGNMENT_OPERATORS = frozenset({"=", "+=", "-=", "*=", "/=", "%=", "&=", "|=", "^=", "<<=", ">>="})

_TYPE_KEYWORDS = frozenset({"class", "struct", "enum", "protocol", "extension", "actor"})
_LOCAL_MODIFIERS = frozenset(
    {
        "fileprivate",
        "final",
        "internal",
        "lazy",
        "nonisolated",
        "open",
        "override",
        "private",
        "public",
        "static",
        "unowned",
        "weak",
    }
)
_DIRECTIVES = frozenset({"#if", "#elseif", "#else", "#endif", "#warning", "#error", "#sourceLocation"})
_SIGNATURE_WORDS = frozenset({"throws", "rethrows", "async", "inout", "some", "any"})
_SCOPE_BOUNDARIES = (ScopeKind.CLOSURE, ScopeKind.FUNCTION)


@dataclass(frozen=True)
class _Pending:
    """A name bound by a condition header, declared once its scope is known."""

    keyword: int
    clause: Optional[PatternClause] = None
    name: Optional[str] = None


class BodyAnalyzer:
    """Builds a :class:`Body` for the token range ``[start, end)`` of ``stream``.

    ``skip`` maps token indices to the index just past a construct the caller
    models separately (top-level declarations of a file).
    """

    def __init__(
        self,
        stream: TokenStream,
        start: int,
        end: int,
        *,
        span: SourceSpan,
        kind: ScopeKind = ScopeKind.FUNCTION,
        parameters: Iterable[str] = (),
        skip: Optional[Mapping[int, int]] = None,
    ) -> None:
        self.stream = stream
        self.start = start
        self.end = end
        self.span = span
        self.kind = kind
        self.parameters = tuple(parameters)
        self.skip = dict(skip or {})
        self._skip_starts = sorted(self.skip)
        self._scopes: List[Scope] = []
        self._declared: List[Dict[str, Optional[int]]] = []
        self._facts: Dict[int, List[Narrowing]] = defaultdict(list)
        self._bindings: List[Binding] = []
        self._references: List[Reference] = []
        self._mutations: List[Mutation] = []
        self._unwraps: List[ForceUnwrap] = []
        self._identity: List[SourceSpan] = []
        self._calls: Set[str] = set()

    def analyze(self) -> Body:
        root = self._open_scope(self.kind, None, self.span)
        for name in self.parameters:
            self._declare(root, name)
        self._walk(self.start, self.end, root)
        narrowings = tuple(fact for scope_id in sorted(self._facts) for fact in self._facts[scope_id])
        return Body(
            span=self.span,
            scopes=tuple(self._scopes),
            bindings=self._resolve_reassignments(),
            references=tuple(self._references),
            mutations=tuple(self._mutations),
            narrowings=narrowings,
            force_unwraps=tuple(self._unwraps),
            identity_comparisons=tuple(self._identity),
            calls=frozenset(self._calls),
        )

    # Scopes and symbols

    def _open_scope(self, kind: ScopeKind, parent: Optional[int], span: SourceSpan) -> int:
        scope_id = len(self._scopes)
        self._scopes.append(Scope(scope_id=scope_id, kind=kind, parent_id=parent, span=span))
        self._declared.append({})
        return scope_id

    def _enter(self, open_index: int, parent: int, kind: ScopeKind) -> int:
        close = self.stream.matching[open_index]
        return self._open_scope(kind, parent, self.stream.span(open_index, close))

    def _walk_group(self, open_index: int, scope_id: int) -> int:
        close = self.stream.matching[open_index]
        self._walk(open_index + 1, close, scope_id)
        return close + 1

    def _ancestors(self, scope_id: Optional[int]) -> Iterable[Scope]:
        while scope_id is not None:
            scope = self._scopes[scope_id]
            yield scope
            scope_id = scope.parent_id

    def _declare(self, scope_id: int, name: str, binding: Optional[int] = None) -> None:
        if name and name != "_":
            self._declared[scope_id][plain_name(name)] = binding

    def _resolve(self, scope_id: int, name: str) -> Tuple[bool, Optional[int]]:
        for scope in self._ancestors(scope_id):
            declared = self._declared[scope.scope_id]
            if name in declared:
                return True, declared[name]
        return False, None

    # Statements

    def _walk(self, start: int, end: int, scope_id: int) -> None:
        cursor = start
        while cursor < end:
            if cursor in self.skip:
                cursor = self.skip[cursor]
                continue
            limit = self._limit(cursor, end)
            cursor = max(self._statement(cursor, limit, scope_id), cursor + 1)

    def _limit(self, cursor: int, end: int) -> int:
        position = bisect_right(self._skip_starts, cursor)
        if position < len(self._skip_starts):
            return min(end, self._skip_starts[position])
        return end

    def _statement(self, index: int, end: int, scope_id: int) -> int:
        stream = self.stream
        token = stream[index]
        if token.kind is TokenKind.POUND and token.text in _DIRECTIVES:
            cursor = index + 1
            while cursor < end and not stream[cursor].newline_before:
                cursor = stream.skip_group(cursor) if stream[cursor].is_punct("(", "[") else cursor + 1
            return cursor
        if token.is_punct(";") or token.is_ident("else"):
            return index + 1

        first = index
        modifiers: List[str] = []
        attributes: List[str] = []
        cursor = index
        while cursor < end:
            current = stream[cursor]
            following = stream.get(cursor + 1)
            if current.kind is TokenKind.ATTRIBUTE:
                attributes.append(current.text)
                cursor += 1
                if cursor < end and stream[cursor].is_punct("(") and not stream[cursor].space_before:
                    cursor = stream.skip_group(cursor)
                continue
            if current.is_ident(*_LOCAL_MODIFIERS) and following is not None:
                after = cursor + 1
                if following.is_punct("(") and not following.space_before:
                    after = stream.skip_group(cursor + 1)
                landing = stream.get(after)
                if (
                    landing is not None
                    and not landing.newline_before
                    and landing.kind in (TokenKind.IDENT, TokenKind.ATTRIBUTE)
                ):
                    modifiers.append(current.text)
                    cursor = after
                    continue
            break
        if cursor >= end:
            return cursor
        token = stream[cursor]
        following = stream.get(cursor + 1)

        if token.is_ident("let", "var"):
            return self._local_binding(first, cursor, end, scope_id, modifiers, attributes)
        if token.is_ident("func"):
            return self._nested_function(cursor, end, scope_id)
        if token.is_ident(*_TYPE_KEYWORDS) and following is not None and following.kind is TokenKind.IDENT:
            return self._skip_declaration(cursor, end)
        if token.is_ident("typealias", "import"):
            return stream.statement_end(cursor, end)
        if token.is_ident("if", "while"):
            return self._conditional(cursor, end, scope_id)
        if token.is_ident("guard"):
            return self._guard(cursor, end, scope_id)
        if token.is_ident("for"):
            return self._for_loop(cursor, end, scope_id)
        if token.is_ident("switch"):
            return self._switch(cursor, end, scope_id)
        if token.is_ident("case", "default"):
            return self._case_label(cursor, end, scope_id)
        if token.is_ident("repeat", "defer") and following is not None and following.is_punct("{"):
            kind = ScopeKind.LOOP if token.text == "repeat" else ScopeKind.BLOCK
            after = self._walk_group(cursor + 1, self._enter(cursor + 1, scope_id, kind))
            if token.text == "repeat" and after < end and stream[after].is_ident("while"):
                stop = stream.statement_end(after, end)
                self._scan(after + 1, stop, scope_id)
                return stop
            return after
        if token.is_ident("do") and following is not None and following.is_punct("{"):
            return self._do_catch(cursor, end, scope_id)
        if token.is_ident("catch"):
            return self._catch_clause(cursor, end, scope_id)
        if (
            token.kind is TokenKind.IDENT
            and following is not None
            and following.is_punct(":")
            and stream.get(cursor + 2) is not None
            and stream[cursor + 2].is_ident("for", "while", "repeat", "do", "if", "switch")
        ):
            return cursor + 2

        stop = stream.statement_end(cursor, end)
        self._expression(cursor, stop, scope_id)
        return stop

    def _local_binding(
        self,
        first: int,
        keyword: int,
        end: int,
        scope_id: int,
        modifiers: Sequence[str],
        attributes: Sequence[str],
    ) -> int:
        stream = self.stream
        mutability = Mutability.IMMUTABLE if stream[keyword].text == "let" else Mutability.MUTABLE
        try:
            clauses, after = read_pattern_clauses(stream, keyword + 1, end)
        except SyntaxIssue:
            stop = stream.statement_end(keyword, end)
            self._scan(keyword + 1, stop, scope_id)
            return stop
        for clause in clauses:
            if clause.init_range is not None:
                self._scan(clause.init_range[0], clause.init_range[1], scope_id)
            if clause.accessor_group is not None:
                self._accessor_group(clause.accessor_group, scope_id)
            for name_index in clause.names:
                binding = make_binding(
                    stream,
                    clause,
                    name_index,
                    first=first,
                    mutability=mutability,
                    access=None,
                    effective_access=AccessLevel.PRIVATE,
                    modifiers=frozenset(modifiers),
                    attributes=tuple(attributes),
                    is_local=True,
                    scope_id=scope_id,
                )
                self._bindings.append(binding)
                self._declare(scope_id, binding.name, len(self._bindings) - 1)
        return after

    def _accessor_group(self, open_index: int, scope_id: int) -> None:
        try:
            blocks = split_accessors(self.stream, open_index)
        except SyntaxIssue:
            self._walk_group(open_index, self._enter(open_index, scope_id, ScopeKind.FUNCTION))
            return
        for block in blocks:
            if block.open_index < 0:
                continue
            child = self._enter(block.open_index, scope_id, ScopeKind.FUNCTION)
            for name in block.parameters:
                self._declare(child, name)
            self._walk_group(block.open_index, child)

    def _nested_function(self, keyword: int, end: int, scope_id: int) -> int:
        stream = self.stream
        name = stream.get(keyword + 1)
        cursor = keyword + 2
        if cursor < end and stream[cursor].is_op("<"):
            cursor = stream.skip_angles(cursor, end)
        parameters: Tuple[str, ...] = ()
        if cursor < end and stream[cursor].is_punct("("):
            try:
                parameters = tuple(parameter.name for parameter in read_parameters(stream, cursor))
            except SyntaxIssue:
                parameters = ()
            cursor = stream.skip_group(cursor)
        open_index = self._find_body_brace(cursor, end)
        if name is not None and name.kind is TokenKind.IDENT:
            self._declare(scope_id, name.text)
        if open_index is None:
            return stream.statement_end(keyword, end)
        child = self._enter(open_index, scope_id, ScopeKind.FUNCTION)
        for parameter in parameters:
            self._declare(child, parameter)
        return self._walk_group(open_index, child)

    def _skip_declaration(self, keyword: int, end: int) -> int:
        open_index = self._find_body_brace(keyword + 1, end)
        if open_index is None:
            return self.stream.statement_end(keyword, end)
        return self.stream.skip_group(open_index)

    def _find_body_brace(self, start: int, end: int) -> Optional[int]:
        """Index of the first top-level ``{`` in ``[start, end)``."""
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
                return None
            cursor += 1
        return None

    # Control flow

    def _conditional(self, keyword: int, end: int, scope_id: int) -> int:
        stream = self.stream
        open_index = self._find_body_brace(keyword + 1, end)
        if open_index is None:
            stop = stream.statement_end(keyword, end)
            self._scan(keyword + 1, stop, scope_id)
            return stop
        facts, pending = self._header(keyword + 1, open_index, scope_id)
        is_loop = stream[keyword].text == "while"
        child = self._enter(open_index, scope_id, ScopeKind.LOOP if is_loop else ScopeKind.BLOCK)
        self._bind_pending(pending, child)
        start_offset = stream[open_index].start
        for path, span in facts:
            self._facts[child].append(Narrowing(path=path, scope_id=child, start=start_offset, span=span))
        after = self._walk_group(open_index, child)
        if is_loop:
            return after
        if after < end and stream[after].is_ident("else"):
            following = stream.get(after + 1)
            if following is not None and following.is_ident("if"):
                return self._conditional(after + 1, end, scope_id)
            if following is not None and following.is_punct("{"):
                return self._walk_group(after + 1, self._enter(after + 1, scope_id, ScopeKind.BLOCK))
        return after

    def _guard(self, keyword: int, end: int, scope_id: int) -> int:
        stream = self.stream
        cursor = keyword + 1
        else_index = None
        while cursor < end:
            token = stream[cursor]
            if token.is_ident("else"):
                else_index = cursor
                break
            if token.is_punct("(", "[", "{"):
                cursor = stream.skip_group(cursor)
                continue
            cursor += 1
        if else_index is None or not stream.get(else_index + 1) or not stream[else_index + 1].is_punct("{"):
            stop = stream.statement_end(keyword, end)
            self._scan(keyword + 1, stop, scope_id)
            return stop
        facts, pending = self._header(keyword + 1, else_index, scope_id)
        open_index = else_index + 1
        after = self._walk_group(open_index, self._enter(open_index, scope_id, ScopeKind.BLOCK))
        self._bind_pending(pending, scope_id)
        start_offset = stream[after - 1].end
        for path, span in facts:
            self._facts[scope_id].append(Narrowing(path=path, scope_id=scope_id, start=start_offset, span=span))
        return after

    def _header(self, start: int, stop: int, scope_id: int) -> Tuple[List[Tuple[str, SourceSpan]], List[_Pending]]:
        """Scan a condition list, returning narrowing facts and names it binds."""
        stream = self.stream
        facts: List[Tuple[str, SourceSpan]] = []
        pending: List[_Pending] = []
        has_or = False
        for part_start, part_stop in stream.split_commas(start, stop):
            token = stream[part_start]
            if token.is_ident("let", "var"):
                try:
                    clauses, _ = read_pattern_clauses(stream, part_start + 1, part_stop)
                except SyntaxIssue:
                    self._scan(part_start + 1, part_stop, scope_id)
                    continue
                for clause in clauses:
                    if clause.init_range is None:
                        for name_index in clause.names:
                            name = plain_name(stream[name_index].text)
                            self._reference(name_index, scope_id, self_qualified=False)
                            facts.append((name, stream.token_span(name_index)))
                    else:
                        init_start, init_end = clause.init_range
                        self._scan(init_start, init_end, scope_id)
                        path, first = stream.path_before(init_end - 1, init_start)
                        if path is not None and first == init_start:
                            facts.append((path, stream.span(init_start, init_end - 1)))
                    pending.append(_Pending(keyword=part_start, clause=clause))
            elif token.is_ident("case"):
                names = self._pattern_names(part_start + 1, part_stop)
                for name_index in names:
                    pending.append(_Pending(keyword=part_start, name=stream[name_index].text))
                self._scan(part_start + 1, part_stop, scope_id, exclude=set(names))
            else:
                self._scan(part_start, part_stop, scope_id)
                for piece_start, piece_stop in self._split_and(part_start, part_stop):
                    fact = self._nil_comparison(piece_start, piece_stop)
                    if fact is not None:
                        facts.append(fact)
            has_or = has_or or self._has_top_level(part_start, part_stop, "||")
        if has_or:
            facts = []
        return facts, pending

    def _bind_pending(self, pending: Sequence[_Pending], scope_id: int) -> None:
        stream = self.stream
        for item in pending:
            if item.name is not None:
                self._declare(scope_id, item.name)
                continue
            keyword = stream[item.keyword]
            mutability = Mutability.IMMUTABLE if keyword.text == "let" else Mutability.MUTABLE
            for name_index in item.clause.names:
                binding = make_binding(
                    stream,
                    item.clause,
                    name_index,
                    first=item.keyword,
                    mutability=mutability,
                    access=None,
                    effective_access=AccessLevel.PRIVATE,
                    modifiers=frozenset(),
                    attributes=(),
                    is_local=True,
                    is_conditional=True,
                    scope_id=scope_id,
                )
                self._bindings.append(binding)
                self._declare(scope_id, binding.name, len(self._bindings) - 1)

    def _split_and(self, start: int, stop: int) -> List[Tuple[int, int]]:
        stream = self.stream
        pieces: List[Tuple[int, int]] = []
        cursor = piece_start = start
        while cursor < stop:
            token = stream[cursor]
            if token.is_punct("(", "[", "{"):
                cursor = stream.skip_group(cursor)
                continue
            if token.is_op("&&"):
                pieces.append((piece_start, cursor))
                piece_start = cursor + 1
            cursor += 1
        pieces.append((piece_start, stop))
        return pieces

    def _has_top_level(self, start: int, stop: int, symbol: str) -> bool:
        stream = self.stream
        cursor = start
        while cursor < stop:
            token = stream[cursor]
            if token.is_punct("(", "[", "{"):
                if token.is_punct("(") and self._has_top_level(cursor + 1, stream.matching[cursor], symbol):
                    return True
                cursor = stream.skip_group(cursor)
                continue
            if token.is_op(symbol):
                return True
            cursor += 1
        return False

    def _nil_comparison(self, start: int, stop: int) -> Optional[Tuple[str, SourceSpan]]:
        """``path != nil`` (either operand order) as a narrowing fact."""
        stream = self.stream
        if stop - start < 3:
            return None
        if stream[stop - 1].is_ident("nil") and stream[stop - 2].is_op("!="):
            path, first = stream.path_before(stop - 3, start)
            if path is not None and first == start:
                return path, stream.span(start, stop - 1)
        if stream[start].is_ident("nil") and stream[start + 1].is_op("!="):
            path, first = stream.path_before(stop - 1, start + 2)
            if path is not None and first == start + 2:
                return path, stream.span(start, stop - 1)
        return None

    def _pattern_names(self, start: int, stop: int) -> List[int]:
        """Indices of names bound by a ``case`` pattern."""
        stream = self.stream
        names: List[int] = []
        for element_start, element_stop in stream.split_commas(start, stop):
            binding = False
            for index in range(element_start, element_stop):
                token = stream[index]
                if token.is_ident("let", "var"):
                    binding = True
                    continue
                if token.is_ident("where") or token.is_op("="):
                    break
                if not binding or token.kind is not TokenKind.IDENT or is_keyword(token) or token.text == "_":
                    continue
                previous = stream[index - 1]
                following = stream.get(index + 1)
                if previous.is_op(".") or previous.is_punct(":"):
                    continue
                if following is not None and (following.is_punct("(") or following.is_op(".")):
                    continue
                names.append(index)
        return names

    def _for_loop(self, keyword: int, end: int, scope_id: int) -> int:
        stream = self.stream
        cursor = keyword + 1
        in_index = None
        while cursor < end:
            token = stream[cursor]
            if token.is_ident("in"):
                in_index = cursor
                break
            if token.is_punct("{"):
                break
            if token.is_punct("(", "["):
                cursor = stream.skip_group(cursor)
                continue
            cursor += 1
        open_index = self._find_body_brace(in_index + 1, end) if in_index is not None else None
        if in_index is None or open_index is None:
            stop = stream.statement_end(keyword, end)
            self._scan(keyword + 1, stop, scope_id)
            return stop
        names = [
            index
            for index in range(keyword + 1, in_index)
            if stream[index].kind is TokenKind.IDENT
            and not is_keyword(stream[index])
            and stream[index].text != "_"
            and not stream[index - 1].is_op(".")
            and not stream[index - 1].is_punct(":")
        ]
        where_index = next(
            (index for index in range(in_index + 1, open_index) if stream[index].is_ident("where")),
            open_index,
        )
        self._scan(in_index + 1, where_index, scope_id)
        child = self._enter(open_index, scope_id, ScopeKind.LOOP)
        for index in names:
            self._declare(child, stream[index].text)
        self._scan(where_index + 1, open_index, child)
        return self._walk_group(open_index, child)

    def _switch(self, keyword: int, end: int, scope_id: int) -> int:
        open_index = self._find_body_brace(keyword + 1, end)
        if open_index is None:
            stop = self.stream.statement_end(keyword, end)
            self._scan(keyword + 1, stop, scope_id)
            return stop
        self._scan(keyword + 1, open_index, scope_id)
        return self._walk_group(open_index, self._enter(open_index, scope_id, ScopeKind.BLOCK))

    def _case_label(self, keyword: int, end: int, scope_id: int) -> int:
        stream = self.stream
        cursor = keyword + 1
        while cursor < end and not stream[cursor].is_punct(":"):
            if stream[cursor].is_punct("(", "[", "{"):
                cursor = stream.skip_group(cursor)
                continue
            cursor += 1
        if stream[keyword].is_ident("case"):
            names = self._pattern_names(keyword + 1, cursor)
            for index in names:
                self._declare(scope_id, stream[index].text)
            self._scan(keyword + 1, cursor, scope_id, exclude=set(names))
        return cursor + 1

    def _do_catch(self, keyword: int, end: int, scope_id: int) -> int:
        after = self._walk_group(keyword + 1, self._enter(keyword + 1, scope_id, ScopeKind.BLOCK))
        while after < end and self.stream[after].is_ident("catch"):
            after = self._catch_clause(after, end, scope_id)
        return after

    def _catch_clause(self, keyword: int, end: int, scope_id: int) -> int:
        stream = self.stream
        open_index = self._find_body_brace(keyword + 1, end)
        if open_index is None:
            return keyword + 1
        names = self._pattern_names(keyword + 1, open_index)
        child = self._enter(open_index, scope_id, ScopeKind.BLOCK)
        if open_index == keyword + 1:
            self._declare(child, "error")
        for index in names:
            self._declare(child, stream[index].text)
        self._scan(keyword + 1, open_index, child, exclude=set(names))
        return self._walk_group(open_index, child)

    # Expressions

    def _expression(self, start: int, stop: int, scope_id: int) -> None:
        stream = self.stream
        cursor = start
        while cursor < stop:
            token = stream[cursor]
            if token.is_punct("(", "[", "{"):
                cursor = stream.skip_group(cursor)
                continue
            if token.kind is TokenKind.OPERATOR and token.text in ASSIGNMENT_OPERATORS:
                if cursor > start:
                    self._record_assignment(start, cursor, scope_id)
                break
            cursor += 1
        self._scan(start, stop, scope_id)

    def _record_assignment(self, start: int, operator: int, scope_id: int) -> None:
        stream = self.stream
        compound = stream[operator].text != "="
        span = stream.span(start, operator - 1)
        if stream[start].is_punct("(") and stream.matching[start] == operator - 1:
            for index in range(start + 1, operator - 1):
                token = stream[index]
                if token.kind is not TokenKind.IDENT or is_keyword(token) or token.text == "_":
                    continue
                if stream[index - 1].is_op("."):
                    if stream[index - 2].is_ident("self"):
                        self._add_mutation(token.text, token.text, MutationKind.ASSIGN, span, scope_id, True)
                    continue
                self._add_mutation(token.text, token.text, MutationKind.ASSIGN, span, scope_id, False)
            return
        root = self._root_of(start, operator - 1)
        if root is None:
            return
        root_index, self_qualified = root
        name = plain_name(stream[root_index].text)
        path, first = stream.path_before(operator - 1, start)
        if path is None or first != start:
            self._add_mutation(name, name, MutationKind.MEMBER_WRITE, span, scope_id, self_qualified)
        elif "." in path:
            self._add_mutation(name, path, MutationKind.MEMBER_WRITE, span, scope_id, self_qualified)
        else:
            kind = MutationKind.COMPOUND if compound else MutationKind.ASSIGN
            self._add_mutation(name, path, kind, span, scope_id, self_qualified)

    def _root_of(self, first: int, last: int) -> Optional[Tuple[int, bool]]:
        """Index of the storage name an lvalue starts with, and whether it is ``self.``-qualified."""
        stream = self.stream
        token = stream[first]
        if token.is_ident("self"):
            cursor = first + 1
            while cursor <= last and stream[cursor].is_op("?", "!"):
                cursor += 1
            if cursor + 1 <= last and stream[cursor].is_op(".") and stream[cursor + 1].kind is TokenKind.IDENT:
                return cursor + 1, True
            return None
        if token.kind is TokenKind.IDENT and (not is_keyword(token) or token.text == "Self") and token.text != "_":
            return first, False
        return None

    def _add_mutation(
        self,
        name: str,
        path: str,
        kind: MutationKind,
        span: SourceSpan,
        scope_id: int,
        self_qualified: bool,
    ) -> None:
        name = plain_name(name)
        if self_qualified:
            local, target = False, None
        else:
            local, target = self._resolve(scope_id, name)
        self._mutations.append(
            Mutation(
                name=name,
                path=path,
                kind=kind,
                span=span,
                scope_id=scope_id,
                self_qualified=self_qualified,
                target=target,
                local=local,
            )
        )

    def _scan(self, start: int, stop: int, scope_id: int, exclude: Optional[Set[int]] = None) -> None:
        """Record references, in-out passes, unwraps and closures in ``[start, stop)``."""
        stream = self.stream
        cursor = start
        while cursor < stop:
            token = stream[cursor]
            if token.is_punct("{"):
                cursor = self._closure(cursor, scope_id)
                continue
            if token.kind is TokenKind.IDENT:
                if exclude and cursor in exclude:
                    cursor += 1
                    continue
                cursor = self._identifier(cursor, stop, scope_id)
                continue
            if token.is_op("&") and cursor + 1 < stop:
                previous = stream.get(cursor - 1)
                following = stream[cursor + 1]
                if (
                    following.kind is TokenKind.IDENT
                    and not following.space_before
                    and (previous is None or previous.is_punct("(", ",", "[", ":"))
                ):
                    self._inout(cursor + 1, stop, scope_id)
            elif token.is_op("!"):
                self._force_unwrap(cursor, start, scope_id)
            elif token.is_op("===", "!=="):
                self._identity.append(stream.token_span(cursor))
            cursor += 1

    def _identifier(self, index: int, stop: int, scope_id: int) -> int:
        stream = self.stream
        token = stream[index]
        previous = stream.get(index - 1)
        following = stream.get(index + 1)
        if token.is_ident("self"):
            cursor = index + 1
            while cursor < stop and stream[cursor].is_op("?", "!") and not stream[cursor].space_before:
                cursor += 1
            if cursor + 1 < stop and stream[cursor].is_op(".") and stream[cursor + 1].kind is TokenKind.IDENT:
                self._reference(cursor + 1, scope_id, self_qualified=True)
                if stream[cursor + 1].text in MUTATING_METHODS:
                    self._mutating_call(cursor + 1, scope_id)
                return cursor + 2
            return index + 1
        if is_keyword(token) or token.text.startswith("$"):
            return index + 1
        if previous is not None and previous.is_op("."):
            if token.text in MUTATING_METHODS and following is not None and following.is_punct("(", "{"):
                self._mutating_call(index, scope_id)
            return index + 1
        if following is not None and following.is_punct(":") and previous is not None and previous.is_punct("(", ","):
            return index + 1
        if following is not None and following.is_punct("(") and not following.space_before:
            self._calls.add(token.text)
        self._reference(index, scope_id, self_qualified=False)
        return index + 1

    def _reference(self, index: int, scope_id: int, *, self_qualified: bool) -> None:
        name = plain_name(self.stream[index].text)
        local = False if self_qualified else self._resolve(scope_id, name)[0]
        self._references.append(
            Reference(
                name=name,
                span=self.stream.token_span(index),
                scope_id=scope_id,
                self_qualified=self_qualified,
                local=local,
            )
        )

    def _mutating_call(self, method: int, scope_id: int) -> None:
        stream = self.stream
        if method < 2 or not stream[method - 1].is_op("."):
            return
        path, first = stream.path_before(method - 2, self.start)
        root = self._root_of(first, method - 2)
        if root is None:
            return
        root_index, self_qualified = root
        following = stream.get(root_index + 1)
        if path is None and following is not None and following.is_punct("(") and not following.space_before:
            return
        name = plain_name(stream[root_index].text)
        self._add_mutation(
            name,
            path or name,
            MutationKind.MUTATING_CALL,
            stream.span(first, method),
            scope_id,
            self_qualified,
        )

    def _inout(self, index: int, stop: int, scope_id: int) -> None:
        stream = self.stream
        last = index
        while last + 2 < stop and stream[last + 1].is_op(".") and stream[last + 2].kind is TokenKind.IDENT:
            last += 2
        root = self._root_of(index, last)
        if root is None:
            return
        root_index, self_qualified = root
        parts = [stream[position].text for position in range(root_index, last + 1, 2)]
        self._add_mutation(
            stream[root_index].text,
            ".".join(parts),
            MutationKind.INOUT,
            stream.span(index, last),
            scope_id,
            self_qualified,
        )

    def _force_unwrap(self, index: int, floor: int, scope_id: int) -> None:
        stream = self.stream
        token = stream[index]
        previous = stream.get(index - 1)
        if token.space_before or previous is None or index <= floor:
            return
        if previous.kind is TokenKind.IDENT:
            if is_keyword(previous) and not previous.is_ident("self", "super"):
                return
        elif not previous.is_punct(")", "]"):
            return
        path, first = stream.path_before(index - 1, floor)
        guarded = path is not None and self._is_narrowed(path, scope_id, token.start)
        self._unwraps.append(
            ForceUnwrap(path=path, span=stream.span(first, index), scope_id=scope_id, guarded=guarded)
        )

    def _is_narrowed(self, path: str, scope_id: int, offset: int) -> bool:
        for scope in self._ancestors(scope_id):
            for fact in self._facts.get(scope.scope_id, ()):
                if fact.path == path and fact.start <= offset and not self._invalidated(fact, offset):
                    return True
            if scope.kind in _SCOPE_BOUNDARIES:
                break
        return False

    def _invalidated(self, fact: Narrowing, offset: int) -> bool:
        for mutation in self._mutations:
            if not fact.start <= mutation.span.start < offset:
                continue
            if mutation.path == fact.path or fact.path.startswith(mutation.path + "."):
                return True
        return False

    def _closure(self, open_index: int, scope_id: int) -> int:
        stream = self.stream
        close = stream.matching[open_index]
        child = self._enter(open_index, scope_id, ScopeKind.CLOSURE)
        body_start = open_index + 1
        signature = self._closure_signature(open_index + 1, close)
        if signature is not None:
            parameters, in_index = signature
            for name in parameters:
                self._declare(child, name)
            body_start = in_index + 1
        self._walk(body_start, close, child)
        return close + 1

    def _closure_signature(self, start: int, close: int) -> Optional[Tuple[List[str], int]]:
        """Parameter names and the ``in`` index of a closure signature, if it has one."""
        stream = self.stream
        cursor = start
        if cursor < close and stream[cursor].is_punct("["):
            cursor = stream.skip_group(cursor)
        signature_start = cursor
        while cursor < close:
            token = stream[cursor]
            if token.is_ident("in"):
                break
            if token.is_punct("(", "["):
                cursor = stream.skip_group(cursor)
                continue
            if (
                token.kind is TokenKind.ATTRIBUTE
                or token.is_punct(",", ":")
                or token.is_op("->", ".", "?", "!", "<", ">", "&")
                or (token.kind is TokenKind.IDENT and (not is_keyword(token) or token.text in _SIGNATURE_WORDS))
            ):
                cursor += 1
                continue
            return None
        else:
            return None
        in_index = cursor
        names: List[str] = []
        if signature_start < in_index and stream[signature_start].is_punct("("):
            group_close = stream.matching[signature_start]
            for part_start, part_stop in stream.split_commas(signature_start + 1, group_close):
                colon = next((i for i in range(part_start, part_stop) if stream[i].is_punct(":")), part_stop)
                candidates = [
                    stream[i].text
                    for i in range(part_start, colon)
                    if stream[i].kind is TokenKind.IDENT and not is_keyword(stream[i])
                ]
                if candidates:
                    names.append(candidates[-1])
        else:
            region_end = signature_start
            while region_end < in_index and not (
                stream[region_end].is_op("->") or stream[region_end].text in _SIGNATURE_WORDS
            ):
                region_end += 1
            for part_start, _part_stop in stream.split_commas(signature_start, region_end):
                if stream[part_start].kind is TokenKind.IDENT:
                    names.append(stream[part_start].text)
        return [name for name in names if name != "_"], in_index

    # Results

    def _resolve_reassignments(self) -> Tuple[Binding, ...]:
        by_target: Dict[int, List[Mutation]] = defaultdict(list)
        for mutation in self._mutations:
            if mutation.target is not None:
                by_target[mutation.target].append(mutation)
        resolved: List[Binding] = []
        for index, binding in enumerate(self._bindings):
            mutations = by_target.get(index, [])
            if binding.initializer is not None or binding.is_conditional:
                reassigned = bool(mutations)
            else:
                assignments = [m for m in mutations if m.kind is MutationKind.ASSIGN]
                reassigned = (
                    len(assignments) != len(mutations)
                    or len(assignments) > 1
                    or any(self._repeats(m.scope_id, binding.scope_id) for m in assignments)
                )
            resolved.append(replace(binding, reassigned=reassigned))
        return tuple(resolved)

    def _repeats(self, scope_id: int, home: Optional[int]) -> bool:
        """True when code in ``scope_id`` may run more than once per run of ``home``."""
        for scope in self._ancestors(scope_id):
            if scope.scope_id == home:
                return False
            if scope.kind in (ScopeKind.LOOP, ScopeKind.CLOSURE, ScopeKind.FUNCTION):
                return True
        return False


def analyze_body(
    stream: TokenStream,
    open_index: int,
    *,
    kind: ScopeKind = ScopeKind.FUNCTION,
    parameters: Iterable[str] = (),
) -> Body:
    """Analyze the brace group opened at ``open_index``."""
    close = stream.matching[open_index]
    analyzer = BodyAnalyzer(
        stream,
        open_index + 1,
        close,
        span=stream.span(open_index, close),
        kind=kind,
        parameters=parameters,
    )
    return analyzer.analyze()


def analyze_expression(stream: TokenStream, start: int, end: int) -> Body:
    """Analyze an initializer expression occupying ``[start, end)``."""
    analyzer = BodyAnalyzer(stream, start, end, span=stream.span(start, end - 1), kind=ScopeKind.FUNCTION)
    return analyzer.analyze()


__all__ = ["ASSIGNMENT_OPERATORS", "BodyAnalyzer", "MUTATING_METHODS", "analyze_body", "analyze_expression"]
