"""Token stream helpers shared by the declaration parser and the body analyzer."""

from __future__ import annotations

from typing import Dict, List, Optional, Tuple

from ..models import LineIndex, SourceSpan
from .lexer import ParseError, Token, TokenKind, tokenize

_OPENERS = {"(": ")", "[": "]", "{": "}"}
_CLOSERS = {")": "(", "]": "[", "}": "{"}

# Operators that keep an expression going when they start or end a line.
_CONTINUATION_OPERATORS = {
    ".",
    "=",
    "==",
    "!=",
    "===",
    "!==",
    "<",
    ">",
    "<=",
    ">=",
    "+",
    "-",
    "*",
    "/",
    "%",
    "&&",
    "||",
    "??",
    "->",
    "...",
    "..<",
    "+=",
    "-=",
    "*=",
    "/=",
    "%=",
    "&=",
    "|=",
    "^=",
    "|",
    "^",
    "?",
}

KEYWORDS = frozenset(
    {
        "as",
        "associatedtype",
        "async",
        "await",
        "break",
        "case",
        "catch",
        "class",
        "continue",
        "default",
        "defer",
        "deinit",
        "do",
        "else",
        "enum",
        "extension",
        "fallthrough",
        "false",
        "fileprivate",
        "for",
        "func",
        "guard",
        "if",
        "import",
        "in",
        "init",
        "inout",
        "internal",
        "is",
        "let",
        "nil",
        "open",
        "operator",
        "private",
        "protocol",
        "public",
        "repeat",
        "rethrows",
        "return",
        "self",
        "Self",
        "static",
        "struct",
        "subscript",
        "super",
        "switch",
        "throw",
        "throws",
        "true",
        "try",
        "typealias",
        "var",
        "where",
        "while",
        "some",
        "any",
    }
)


class TokenStream:
    """Tokens of one file with bracket matching and position helpers."""

    def __init__(self, text: str) -> None:
        self.text = text
        self.tokens, self.comments = tokenize(text)
        self.lines = LineIndex(text)
        self.matching = self._match_brackets()

    def __len__(self) -> int:
        return len(self.tokens)

    def __getitem__(self, index: int) -> Token:
        return self.tokens[index]

    def get(self, index: int) -> Optional[Token]:
        if 0 <= index < len(self.tokens):
            return self.tokens[index]
        return None

    def _match_brackets(self) -> Dict[int, int]:
        matching: Dict[int, int] = {}
        stack: List[int] = []
        for index, token in enumerate(self.tokens):
            if token.kind is not TokenKind.PUNCT:
                continue
            if token.text in _OPENERS:
                stack.append(index)
            elif token.text in _CLOSERS:
                if not stack:
                    raise ParseError(
                        f"Unbalanced '{token.text}'", token.start, self.lines.span(token.start, token.end)
                    )
                opener = stack.pop()
                if self.tokens[opener].text != _CLOSERS[token.text]:
                    raise ParseError(
                        f"Mismatched '{token.text}' for '{self.tokens[opener].text}'",
                        token.start,
                        self.lines.span(token.start, token.end),
                    )
                matching[opener] = index
                matching[index] = opener
        if stack:
            opener_token = self.tokens[stack[-1]]
            raise ParseError(
                f"Unclosed '{opener_token.text}'",
                opener_token.start,
                self.lines.span(opener_token.start, opener_token.end),
            )
        return matching

    # Spans

    def span(self, first: int, last: int) -> SourceSpan:
        """Span covering tokens ``first`` through ``last`` inclusive."""
        return self.lines.span(self.tokens[first].start, self.tokens[last].end)

    def token_span(self, index: int) -> SourceSpan:
        token = self.tokens[index]
        return self.lines.span(token.start, token.end)

    def source(self, first: int, end: int) -> str:
        """Source text of tokens ``first`` up to (excluding) ``end``."""
        if end <= first:
            return ""
        return self.text[self.tokens[first].start : self.tokens[end - 1].end]

    # Navigation

    def skip_group(self, index: int) -> int:
        """Index just past the bracket group opened at ``index``."""
        return self.matching[index] + 1

    def skip_angles(self, index: int, end: int) -> int:
        """Index past a generic clause starting at ``index`` (a ``<``), or ``index + 1``."""
        depth = 0
        cursor = index
        while cursor < end:
            token = self.tokens[cursor]
            if token.is_op("<"):
                depth += 1
            elif token.is_op(">"):
                depth -= 1
                if depth == 0:
                    return cursor + 1
            elif token.is_punct("(", "["):
                cursor = self.skip_group(cursor)
                continue
            elif token.is_punct("{", "}", ";") or token.is_op("=", "==", ">="):
                break
            cursor += 1
        return index + 1

    def split_commas(self, start: int, end: int) -> List[Tuple[int, int]]:
        """Split ``[start, end)`` on top-level commas."""
        parts: List[Tuple[int, int]] = []
        cursor = start
        part_start = start
        while cursor < end:
            token = self.tokens[cursor]
            if token.is_punct("(", "[", "{"):
                cursor = self.skip_group(cursor)
                continue
            if token.is_op("<"):
                after = self.skip_angles(cursor, end)
                if after > cursor + 1:
                    cursor = after
                    continue
            if token.is_punct(","):
                parts.append((part_start, cursor))
                part_start = cursor + 1
            cursor += 1
        if part_start < end:
            parts.append((part_start, end))
        return parts

    def continues_line(self, index: int) -> bool:
        """True when the token at ``index`` continues the expression on the previous line."""
        token = self.tokens[index]
        previous = self.get(index - 1)
        if token.kind is TokenKind.OPERATOR and token.text in _CONTINUATION_OPERATORS:
            return True
        if previous is None:
            return False
        if previous.is_punct(",", ":", "(", "["):
            return True
        if previous.kind is TokenKind.OPERATOR and previous.text in _CONTINUATION_OPERATORS:
            return previous.text not in {"?", ">"}
        return False

    def statement_end(self, start: int, end: int) -> int:
        """Index just past the statement beginning at ``start``."""
        cursor = start
        while cursor < end:
            token = self.tokens[cursor]
            if cursor > start and token.newline_before and not self.continues_line(cursor):
                if not (token.is_ident("else", "where", "catch") or token.is_punct("{")):
                    return cursor
            if token.is_punct(";"):
                return cursor + 1
            if token.is_punct("}", ")", "]"):
                return cursor
            if token.is_punct("(", "[", "{"):
                cursor = self.skip_group(cursor)
                continue
            cursor += 1
        return end

    def read_type(self, start: int, end: int) -> int:
        """Index past a type annotation starting at ``start``."""
        cursor = start
        while cursor < end:
            token = self.tokens[cursor]
            if cursor > start and token.newline_before:
                previous = self.tokens[cursor - 1]
                if not (previous.is_op("->", "&", ".") or token.is_op("->", "&", ".")):
                    break
            if token.is_punct("(", "["):
                cursor = self.skip_group(cursor)
                continue
            if token.is_op("<"):
                cursor = self.skip_angles(cursor, end)
                continue
            if token.is_punct("{", "}", ")", "]", ",", ";", ":"):
                break
            if token.is_op("=", "==", "!=", "??", "&&", "||"):
                break
            if token.is_ident("where", "else", "in"):
                break
            if token.kind in (TokenKind.STRING, TokenKind.NUMBER):
                break
            if cursor > start and token.kind is TokenKind.IDENT and not token.is_ident(
                "throws", "rethrows", "async", "some", "any", "inout"
            ):
                previous = self.tokens[cursor - 1]
                if not (
                    previous.is_op(".", "&", "->")
                    or previous.kind is TokenKind.ATTRIBUTE
                    or previous.is_ident("some", "any", "inout")
                ):
                    break
            cursor += 1
        return cursor

    def path_before(self, index: int, floor: int) -> Tuple[Optional[str], int]:
        """Walk back from ``index`` over a dotted path like ``self.a.b``.

        Returns the normalized path (``self.`` stripped) and the index of its
        first token. The path is ``None`` when the expression is not a plain
        dotted name (calls, subscripts, optional chains).
        """
        cursor = index
        first = index
        parts: List[str] = []
        plain = True
        while cursor >= floor:
            token = self.tokens[cursor]
            if token.kind is TokenKind.IDENT:
                parts.append(token.text)
                first = cursor
                if cursor - 1 > floor and self.tokens[cursor - 1].is_op("."):
                    cursor -= 2
                    continue
                break
            if token.is_punct(")", "]"):
                plain = False
                opener = self.matching[cursor]
                first = opener
                if opener - 1 >= floor and not self.tokens[opener].space_before:
                    cursor = opener - 1
                    continue
                break
            if token.is_op("?", "!") and cursor > floor and not token.space_before:
                plain = False
                cursor -= 1
                continue
            break
        if not parts:
            return None, first
        parts.reverse()
        if parts[0] == "self" and len(parts) > 1:
            parts = parts[1:]
        if not plain:
            return None, first
        return ".".join(parts), first


def is_keyword(token: Token) -> bool:
    return token.kind is TokenKind.IDENT and token.text in KEYWORDS


def plain_name(text: str) -> str:
    return text.strip("`")


__all__ = ["KEYWORDS", "TokenStream", "is_keyword", "plain_name"]
