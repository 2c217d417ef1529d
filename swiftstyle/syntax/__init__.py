"""Lexical and structural model of Swift source files."""

from .lexer import Comment, ParseError, Token, TokenKind, tokenize
from .nodes import (
    AccessLevel,
    Binding,
    Body,
    Declaration,
    ForceUnwrap,
    Function,
    FunctionKind,
    Initializer,
    Mutability,
    Mutation,
    MutationKind,
    Narrowing,
    OptionalKind,
    Parameter,
    Reference,
    Scope,
    ScopeKind,
    SourceUnit,
    TypeDeclaration,
    TypeKind,
)
from .parser import Parser, parse

__all__ = [
    "AccessLevel",
    "Binding",
    "Body",
    "Comment",
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
    "ParseError",
    "Parser",
    "Reference",
    "Scope",
    "ScopeKind",
    "SourceUnit",
    "Token",
    "TokenKind",
    "TypeDeclaration",
    "TypeKind",
    "parse",
    "tokenize",
]
