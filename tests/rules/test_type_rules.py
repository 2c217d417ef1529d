"""Tests for type-declaration rules."""

from __future__ import annotations

from swiftstyle.rules.types import (
    NoGlobalModifierOnStruct,
    PreferStructOverClass,
    ProtocolConformanceViaExtension,
)
from tests._fixtures.swift import run_rule


def test_inline_conformances_are_flagged() -> None:
    findings = run_rule(
        ProtocolConformanceViaExtension(),
        """
        struct User: Codable, Equatable {}
        class View: UIView {}
        class Model: NSObject, Codable {}
        enum Kind: String {
            case a
        }
        extension User: Hashable {}
        """,
    )

    assert [item.line for item in findings] == [1, 3]
    assert "'Codable', 'Equatable'" in findings[0].message
    assert "'Codable'" in findings[1].message
    assert "NSObject" not in findings[1].message


def test_class_without_reference_semantics_should_be_struct() -> None:
    findings = run_rule(
        PreferStructOverClass(),
        """
        class Plain {
            let value = 1
        }

        class Base {}
        class Derived: Base {}

        class Resource {
            deinit { print("bye") }
        }

        class Owner {
            weak var delegate: OwnerDelegate?
        }

        class Node {
            func same(other: Node) -> Bool { return self === other }
        }

        protocol Observer: AnyObject {}
        class Listener {}
        extension Listener: Observer {}
        """,
    )

    assert [item.message for item in findings] == [
        "Class 'Plain' does not rely on reference semantics; consider a struct",
    ]


def test_struct_level_access_modifiers() -> None:
    findings = run_rule(
        NoGlobalModifierOnStruct(),
        """
        public struct A {}
        struct B {}
        internal struct C {}
        private struct D {}
        public class E {}
        """,
    )

    assert [item.line for item in findings] == [1, 3]
    assert findings[0].message == (
        "Struct 'A' is declared 'public'; apply access modifiers to its members instead"
    )
