"""
Swift source lexer.

Converts raw source text into a flat token stream plus the comments found
along the way. Handles identifiers (including backtick-escaped and `$0`
forms), numbers, single-line, multi-line and raw string literals with
interpolation, attributes, compiler directives, punctuation and operators.

Usage:
    tokens, comments = tokenize(text)
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple

from ..models import LineIndex, SourceSpan


class TokenKind(Enum):
    """Token categories produced by the lexer."""

    IDENT = "ident"  # names and keywords alike: foo, let, `default`, $0
    NUMBER = "number"  # 42, 0xFF, 1_000.5e3
    STRING = "string"  # "text", """block""", #"raw"#
    PUNCT = "punct"  # { } ( ) [ ] , : ;
    OPERATOR = "operator"  # = == ! ? . -> ...
    ATTRIBUTE = "attribute"  # @objc, @escaping
    POUND = "pound"  # #if, #selector, #available


@dataclass(frozen=True)
class Token:
    """A single token with its absolute offsets and 1-based position."""

    kind: TokenKind
    text: str
    start: int
    end: int
    line: int
    column: int
    space_before: bool
    newline_before: bool

    def is_ident(self, *names: str) -> bool:
        return self.kind is TokenKind.IDENT and (not names or self.text in names)

    def is_op(self, *symbols: str) -> bool:
        return self.kind is TokenKind.OPERATOR and (not symbols or self.text in symbols)

    def is_punct(self, *symbols: str) -> bool:
        return self.kind is TokenKind.PUNCT and (not symbols or self.text in symbols)

    def __repr__(self) -> str:
        return f"Token({self.kind.name}, {self.text!r}, L{self.line}:{self.column})"


@dataclass(frozen=True)
class Comment:
    """A line or block comment, kept for suppression directives."""

    text: str
    start: int
    end: int
    line: int
    end_line: int


class ParseError(Exception):
    """Raised when a file is structurally unrecognizable."""

    def __init__(self, message: str, offset: int = 0, span: Optional[SourceSpan] = None) -> None:
        self.offset = offset
        self.span = span
        location = f" at line {span.line}, column {span.column}" if span is not None else ""
        super().__init__(f"{message}{location}")
        self.reason = message


_IDENT_RE = re.compile(r"[^\W\d]\w*")
_DOLLAR_RE = re.compile(r"\$\w+")
_NUMBER_RE = re.compile(
    r"0x[0-9a-fA-F_]+(?:\.[0-9a-fA-F_]+)?(?:[pP][+-]?[0-9_]+)?"
    r"|0b[01_]+"
    r"|0o[0-7_]+"
    r"|[0-9][0-9_]*(?:\.[0-9][0-9_]*)?(?:[eE][+-]?[0-9][0-9_]*)?"
)
_WHITESPACE = frozenset(" \t\r\n\f\v\ufeff")
_PUNCTUATION = frozenset("{}()[],:;")
_OPERATORS = (
    "===",
    "!==",
    "...",
    "..<",
    "<<=",
    ">>=",
    "->",
    "==",
    "!=",
    "<=",
    ">=",
    "&&",
    "||",
    "+=",
    "-=",
    "*=",
    "/=",
    "%=",
    "&=",
    "|=",
    "^=",
    "??",
)


class Lexer:
    """
    Tokenizer for Swift source files.

    Usage:
        lexer = Lexer(source_text)
        tokens, comments = lexer.tokenize()
    """

    def __init__(self, source: str) -> None:
        self.source = source
        self.length = len(source)
        self.pos = 0
        self._index: Optional[LineIndex] = None
        self._tokens: List[Token] = []
        self._comments: List[Comment] = []
        self._last_end = 0

    def tokenize(self) -> Tuple[Tuple[Token, ...], Tuple[Comment, ...]]:
        source = self.source
        while self.pos < self.length:
            ch = source[self.pos]
            if ch in _WHITESPACE:
                self.pos += 1
                continue
            if source.startswith("//", self.pos):
                self._read_line_comment()
                continue
            if source.startswith("/*", self.pos):
                self._read_block_comment()
                continue

            start = self.pos
            if ch == '"' or (ch == "#" and self._raw_string_ahead()):
                self._read_string()
                self._emit(TokenKind.STRING, start)
            elif ch == "`":
                closing = source.find("`", start + 1)
                if closing == -1 or "\n" in source[start:closing]:
                    raise self._error("Unterminated escaped identifier", start)
                self.pos = closing + 1
                self._emit(TokenKind.IDENT, start)
            elif ch == "$" and (match := _DOLLAR_RE.match(source, start)):
                self.pos = match.end()
                self._emit(TokenKind.IDENT, start)
            elif ch.isdigit() and (match := _NUMBER_RE.match(source, start)):
                self.pos = match.end()
                self._emit(TokenKind.NUMBER, start)
            elif ch == "@" and (match := _IDENT_RE.match(source, start + 1)):
                self.pos = match.end()
                self._emit(TokenKind.ATTRIBUTE, start)
            elif ch == "#" and (match := _IDENT_RE.match(source, start + 1)):
                self.pos = match.end()
                self._emit(TokenKind.POUND, start)
            elif match := _IDENT_RE.match(source, start):
                self.pos = match.end()
                self._emit(TokenKind.IDENT, start)
            elif ch in _PUNCTUATION:
                self.pos += 1
                self._emit(TokenKind.PUNCT, start)
            else:
                self.pos += self._operator_length()
                self._emit(TokenKind.OPERATOR, start)
        return tuple(self._tokens), tuple(self._comments)

    def _line_index(self) -> LineIndex:
        if self._index is None:
            self._index = LineIndex(self.source)
        return self._index

    def _error(self, message: str, offset: int) -> ParseError:
        span = self._line_index().span(offset, offset)
        return ParseError(message, offset, span)

    def _emit(self, kind: TokenKind, start: int) -> None:
        gap = self.source[self._last_end : start]
        line, column = self._line_index().position(start)
        self._tokens.append(
            Token(
                kind=kind,
                text=self.source[start : self.pos],
                start=start,
                end=self.pos,
                line=line,
                column=column,
                space_before=start > self._last_end or not self._tokens,
                newline_before="\n" in gap or not self._tokens,
            )
        )
        self._last_end = self.pos

    def _operator_length(self) -> int:
        for symbol in _OPERATORS:
            if self.source.startswith(symbol, self.pos):
                return len(symbol)
        return 1

    def _read_line_comment(self) -> None:
        start = self.pos
        newline = self.source.find("\n", start)
        self.pos = self.length if newline == -1 else newline
        self._add_comment(start)

    def _read_block_comment(self) -> None:
        start = self.pos
        depth = 0
        while self.pos < self.length:
            if self.source.startswith("/*", self.pos):
                depth += 1
                self.pos += 2
            elif self.source.startswith("*/", self.pos):
                depth -= 1
                self.pos += 2
                if depth == 0:
                    self._add_comment(start)
                    return
            else:
                self.pos += 1
        raise self._error("Unterminated block comment", start)

    def _add_comment(self, start: int) -> None:
        index = self._line_index()
        self._comments.append(
            Comment(
                text=self.source[start : self.pos],
                start=start,
                end=self.pos,
                line=index.position(start)[0],
                end_line=index.position(self.pos)[0],
            )
        )

    def _raw_string_ahead(self) -> bool:
        cursor = self.pos
        while cursor < self.length and self.source[cursor] == "#":
            cursor += 1
        return cursor < self.length and self.source[cursor] == '"'

    def _read_string(self) -> None:
        """Advance past one string literal, including nested interpolations."""
        source = self.source
        start = self.pos
        hashes = 0
        while source[self.pos] == "#":
            hashes += 1
            self.pos += 1
        multiline = source.startswith('"""', self.pos)
        self.pos += 3 if multiline else 1
        closing = ('"""' if multiline else '"') + "#" * hashes
        escape = "\\" + "#" * hashes

        while True:
            if self.pos >= self.length:
                raise self._error("Unterminated string literal", start)
            ch = source[self.pos]
            if ch == "\n" and not multiline:
                raise self._error("Unterminated string literal", start)
            if source.startswith(escape, self.pos):
                self.pos += len(escape)
                if self.pos < self.length and source[self.pos] == "(":
                    self.pos += 1
                    self._skip_interpolation(start)
                else:
                    self.pos += 1
                continue
            if source.startswith(closing, self.pos):
                self.pos += len(closing)
                return
            self.pos += 1

    def _skip_interpolation(self, string_start: int) -> None:
        depth = 1
        while self.pos < self.length:
            ch = self.source[self.pos]
            if ch == '"' or (ch == "#" and self._raw_string_ahead()):
                self._read_string()
                continue
            if ch == "(":
                depth += 1
            elif ch == ")":
                depth -= 1
                if depth == 0:
                    self.pos += 1
                    return
            self.pos += 1
        raise self._error("Unterminated string interpolation", string_start)


def tokenize(text: str) -> Tuple[Tuple[Token, ...], Tuple[Comment, ...]]:
    """Tokenize Swift source text, raising ParseError on lexical failures."""
    return Lexer(text).tokenize()


__all__ = ["Comment", "Lexer", "ParseError", "Token", "TokenKind", "tokenize"]
