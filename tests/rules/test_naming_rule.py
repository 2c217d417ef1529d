"""Tests for naming conventions."""

from __future__ import annotations

from swiftstyle.rules.naming import NamingConvention, is_lower_camel, is_upper_camel
from tests._fixtures.swift import run_rule


def test_case_helpers() -> None:
    assert is_upper_camel("URLSession")
    assert is_upper_camel("_Storage")
    assert not is_upper_camel("user_profile")
    assert is_lower_camel("maxCount")
    assert not is_lower_camel("MaxCount")
    assert not is_lower_camel("max_count")


def test_misnamed_declarations_are_reported() -> None:
    findings = run_rule(
        NamingConvention(),
        """
        struct user_profile {
            let FirstName: String
            func Load() {}
            init() {}
        }

        extension user_profile {}

        let maxCount = 3
        """,
    )

    assert [item.message for item in findings] == [
        "Type name 'user_profile' should be UpperCamelCase",
        "Binding name 'FirstName' should be lowerCamelCase",
        "Function name 'Load' should be lowerCamelCase",
    ]


def test_non_ascii_identifiers_follow_the_same_casing() -> None:
    assert is_lower_camel("café")
    assert is_upper_camel("Ñandú")
    assert is_lower_camel("名前")
    assert not is_lower_camel("Émile")
    assert not is_upper_camel("ñandú")

    findings = run_rule(
        NamingConvention(),
        """
        let café = 1
        struct Ñandú {}
        let Émile = 2
        """,
    )

    assert [item.message for item in findings] == ["Binding name 'Émile' should be lowerCamelCase"]
