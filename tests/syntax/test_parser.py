"""Tests for the declaration parser."""

from __future__ import annotations

import pytest

from swiftstyle.syntax import (
    AccessLevel,
    Binding,
    Function,
    FunctionKind,
    Mutability,
    OptionalKind,
    ParseError,
    TypeDeclaration,
    TypeKind,
    parse,
)
from tests._fixtures.swift import parse_source, source


def test_members_keep_source_order() -> None:
    unit = parse_source(
        """
        class Foo {
            var a = 1
            func b() {}
            let c: Int
            init() { c = 2 }
        }
        """
    )

    foo = unit.declarations[0]
    assert isinstance(foo, TypeDeclaration)
    assert foo.kind is TypeKind.CLASS
    assert [member.name for member in foo.members] == ["a", "b", "c", "init"]
    assert isinstance(foo.members[3], Function)
    assert foo.members[3].kind is FunctionKind.INITIALIZER


def test_effective_access_follows_owner_kind() -> None:
    unit = parse_source(
        """
        public protocol Service {
            func start()
        }

        private extension Foo {
            func helper() {}
        }

        struct Box {
            func open() {}
        }
        """
    )

    service, extension, box = unit.declarations
    assert service.members[0].effective_access is AccessLevel.PUBLIC
    assert extension.members[0].effective_access is AccessLevel.FILEPRIVATE
    assert box.access is None
    assert box.effective_access is AccessLevel.INTERNAL
    assert box.members[0].effective_access is AccessLevel.INTERNAL


def test_binding_annotations_and_optionality() -> None:
    unit = parse_source(
        """
        struct Profile {
            var name:String? = nil
            var avatar: Image!
            let id = 42
        }
        """
    )

    name, avatar, identifier = unit.declarations[0].members
    assert isinstance(name, Binding)
    assert name.mutability is Mutability.MUTABLE
    assert name.type_annotation == "String?"
    assert name.optional_kind is OptionalKind.OPTIONAL
    assert name.space_after_colon is False
    assert avatar.optional_kind is OptionalKind.IMPLICITLY_UNWRAPPED
    assert identifier.has_explicit_type is False
    assert identifier.initializer is not None
    assert identifier.initializer.literal_type == "Int"


def test_inheritance_clause_is_split() -> None:
    unit = parse_source("class Model: NSObject, Codable {}\n")

    model = unit.declarations[0]
    assert model.inherited == ("NSObject", "Codable")


def test_computed_and_observed_properties() -> None:
    unit = parse_source(
        """
        struct Square {
            var side = 1
            var area: Int { side * side }
            var label = "" {
                didSet { print(oldValue) }
            }
        }
        """
    )

    side, area, label = unit.declarations[0].members
    assert side.is_computed is False
    assert area.is_computed is True
    assert label.has_observers is True
    assert label.is_computed is False


def test_malformed_member_is_skipped_and_rest_is_modeled() -> None:
    unit = parse_source(
        """
        struct A {
            var = 3
            let ok = 1
        }
        """
    )

    assert [member.name for member in unit.declarations[0].members] == ["ok"]
    assert len(unit.skipped) == 1
    assert unit.skipped[0].line == 2


def test_unbalanced_braces_raise_parse_error() -> None:
    with pytest.raises(ParseError):
        parse("struct A {\n  let a = 1\n")


def test_mismatched_brackets_raise_parse_error() -> None:
    with pytest.raises(ParseError):
        parse("let a = [1, 2)\n")


def test_property_reassignment_is_resolved_across_members() -> None:
    unit = parse_source(
        """
        struct Counter {
            var count = 0
            var limit = 10
            mutating func increment() { count += 1 }
        }
        """
    )

    count, limit, _ = unit.declarations[0].members
    assert count.reassigned is True
    assert limit.reassigned is False


def test_nested_types_are_qualified() -> None:
    unit = parse_source(
        """
        struct Outer {
            enum Inner {
                case one
            }
        }
        """
    )

    names = [declaration.qualified_name for declaration in unit.iter_types()]
    assert names == ["Outer", "Outer.Inner"]


def test_type_index_is_built_with_the_unit() -> None:
    unit = parse_source(
        """
        extension Model: Equatable {}
        struct Model {}
        extension Model: Hashable {}
        """
    )

    assert list(unit.types_by_name) == ["Model"]
    assert [part.inherited for part in unit.types_named("Model")] == [("Equatable",), (), ("Hashable",)]
    assert unit.types_named("Missing") == ()
    with pytest.raises(TypeError):
        unit.types_by_name["Other"] = ()  # type: ignore[index]


def test_spans_stay_inside_text() -> None:
    text = source(
        """
        class Foo {
            public func bar() {}
            private var x = 1
        }
        """
    )
    unit = parse(text)

    for declaration in unit.iter_types():
        for item in (declaration, *declaration.members):
            assert 0 <= item.span.start <= item.span.end <= len(text)
            assert text[item.name_span.start : item.name_span.end] == item.name
