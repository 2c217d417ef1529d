"""Tests for optional-related rules."""

from __future__ import annotations

from swiftstyle.rules.optionals import AvoidForceUnwrap, AvoidImplicitUnwrapOptional
from tests._fixtures.swift import run_rule


def test_implicitly_unwrapped_binding_is_flagged() -> None:
    findings = run_rule(
        AvoidImplicitUnwrapOptional(),
        """
        class ViewController {
            var label: UILabel!
            var title: String?
        }
        """,
    )

    assert len(findings) == 1
    assert findings[0].line == 2
    assert findings[0].message == "'label' is an implicitly unwrapped optional; use 'UILabel?'"


def test_narrowed_unwrap_is_not_flagged_but_unguarded_is() -> None:
    findings = run_rule(
        AvoidForceUnwrap(),
        """
        func show(name: String?) {
            if name != nil {
                print(name!)
            }
            print(name!)
        }
        """,
    )

    assert [item.line for item in findings] == [5]
    assert findings[0].message == (
        "Force unwrap of 'name' is not guarded by a nil check; use optional binding instead"
    )


def test_unwraps_in_property_initializers_and_accessors_are_checked() -> None:
    findings = run_rule(
        AvoidForceUnwrap(),
        """
        struct Config {
            let url = URL(string: "https://example.com")!
            var host: String { return url.host! }
        }
        """,
    )

    assert [item.line for item in findings] == [2, 3]
    assert "expression" in findings[0].message
    assert "'url.host'" in findings[1].message


def test_guard_let_protects_later_unwraps() -> None:
    findings = run_rule(
        AvoidForceUnwrap(),
        """
        class Player {
            var track: Track?

            func play() {
                guard self.track != nil else { return }
                start(self.track!)
            }
        }
        """,
    )

    assert findings == []
