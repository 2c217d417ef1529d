"""Tests for the member layout rule."""

from __future__ import annotations

from swiftstyle.rules.layout import ClassLayoutOrder
from tests._fixtures.swift import run_rule


def test_method_before_property_is_reported() -> None:
    findings = run_rule(
        ClassLayoutOrder(),
        """
        class Foo {
            public func bar() {}
            private var x = 1
        }
        """,
    )

    assert len(findings) == 1
    assert findings[0].line == 2
    assert findings[0].message == "'bar' (public method) should come after 'x' (property) in 'Foo'"


def test_expected_order_passes() -> None:
    findings = run_rule(
        ClassLayoutOrder(),
        """
        class Widget {
            var title = ""
            lazy var cache = [String]()

            init() {}

            func render() {}

            private func layout() {}
        }
        """,
    )

    assert findings == []


def test_only_first_misplaced_member_is_reported_per_type() -> None:
    findings = run_rule(
        ClassLayoutOrder(),
        """
        struct Panel {
            private func draw() {}
            func show() {}
            init() {}
        }
        """,
    )

    assert [item.message for item in findings] == [
        "'draw' (private method) should come after 'init' (initializer) in 'Panel'",
    ]


def test_conformance_extension_before_type_is_reported() -> None:
    findings = run_rule(
        ClassLayoutOrder(),
        """
        extension Widget: Equatable {}

        struct Widget {
            let id: Int
        }

        extension Widget: Hashable {}
        """,
    )

    assert [item.line for item in findings] == [1]
    assert findings[0].message == "Conformance extension of 'Widget' should follow the type's own declaration"
