"""Tests for binding and annotation rules."""

from __future__ import annotations

from swiftstyle.rules.bindings import (
    AvoidRedundantTypeAnnotation,
    PreferImmutableBinding,
    RequireSpaceAfterDeclaration,
    RequireTypedCollection,
)
from tests._fixtures.swift import run_rule


def test_unmutated_var_is_flagged_and_let_is_not() -> None:
    findings = run_rule(
        PreferImmutableBinding(),
        """
        var retries = 3
        let limit = 5

        func run() {
            var attempts = 0
            attempts += 1
            var name = "job"
            print(name, attempts, retries, limit)
        }
        """,
    )

    assert [(item.line, item.message) for item in findings] == [
        (1, "'retries' is never reassigned; declare it with 'let'"),
        (7, "'name' is never reassigned; declare it with 'let'"),
    ]


def test_stored_property_assigned_only_in_initializer() -> None:
    findings = run_rule(
        PreferImmutableBinding(),
        """
        struct Point {
            var x: Int
            var y = 0

            init(x: Int) {
                self.x = x
                self.y = x
            }
        }
        """,
    )

    assert [item.message for item in findings] == ["'x' is never reassigned; declare it with 'let'"]


def test_property_mutated_from_outside_the_type_is_not_flagged() -> None:
    findings = run_rule(
        PreferImmutableBinding(),
        """
        final class Settings {
            var theme = "light"
        }

        func apply(settings: Settings) {
            settings.theme = "dark"
        }
        """,
    )

    assert findings == []


def test_framework_managed_bindings_are_ignored() -> None:
    findings = run_rule(
        PreferImmutableBinding(),
        """
        class Controller {
            weak var delegate: ControllerDelegate?
            lazy var formatter = DateFormatter()
            @IBOutlet var label: UILabel?
            var area: Int { return 4 }
            var title = "" {
                didSet { print(title) }
            }
        }
        """,
    )

    assert findings == []


def test_redundant_annotation_for_literals() -> None:
    findings = run_rule(
        AvoidRedundantTypeAnnotation(),
        """
        let count: Int = 0
        let ratio: Double = 1
        let names: [String] = ["a", "b"]
        let lookup: [String: Int] = ["a": 1]
        let view: UIView = UIView()
        let mixed: [Any] = [1, "a"]
        let flag: Bool = true
        """,
    )

    assert [item.line for item in findings] == [1, 3, 4, 5, 7]
    assert findings[0].message == "Type annotation 'Int' on 'count' is redundant; let it be inferred"


def test_missing_space_after_colon() -> None:
    findings = run_rule(
        RequireSpaceAfterDeclaration(),
        """
        struct Item {
            let id:Int
            let name: String
        }
        """,
    )

    assert len(findings) == 1
    assert findings[0].line == 2
    assert findings[0].column == 11
    assert findings[0].message == "Missing space after ':' in the declaration of 'id'"


def test_untyped_collection_annotations() -> None:
    findings = run_rule(
        RequireTypedCollection(),
        """
        struct Foo { var list: Array? }

        func load(items: NSArray, ids: [Int]) {}
        """,
    )

    assert [(item.line, item.rule_id) for item in findings] == [
        (1, "require-typed-collection"),
        (3, "require-typed-collection"),
    ]
    assert "'list' is declared as untyped 'Array'" in findings[0].message
    assert "Parameter 'items'" in findings[1].message
