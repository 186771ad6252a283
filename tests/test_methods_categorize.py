from __future__ import annotations

from freight_reports.definitions import CategoryRule
from freight_reports.methods.categorize import catch_all_name, categorize_item

from tests.fixtures import DECKED_CATEGORIES


def test_keyword_match_is_case_insensitive_substring() -> None:
    assert categorize_item("Decked drawer system for Ram 1500", DECKED_CATEGORIES) == "DRAWER SYSTEM"
    assert categorize_item("cargoglide 1500 HD", DECKED_CATEGORIES) == "CARGOGLIDE"
    assert categorize_item("Crossover TOOL-BOX", DECKED_CATEGORIES) == "TOOLBOX"


def test_unmatched_and_missing_descriptions_fall_into_catch_all() -> None:
    assert categorize_item("Pallet of straps", DECKED_CATEGORIES) == "OTHER"
    assert categorize_item(None, DECKED_CATEGORIES) == "OTHER"
    assert categorize_item("", DECKED_CATEGORIES) == "OTHER"


def test_rules_are_evaluated_in_order() -> None:
    rules = [
        CategoryRule("FIRST", ["BOX"], "#000001"),
        CategoryRule("SECOND", ["TOOLBOX"], "#000002"),
    ]
    assert categorize_item("toolbox", rules) == "FIRST"


def test_catch_all_is_evaluated_last_even_when_listed_first() -> None:
    rules = [
        CategoryRule("MISC", [], "#64748b", is_default=True),
        CategoryRule("GLIDE", ["GLIDE"], "#10b981"),
    ]
    assert categorize_item("CargoGlide", rules) == "GLIDE"
    assert categorize_item("something else", rules) == "MISC"


def test_without_catch_all_rule_unmatched_is_other() -> None:
    rules = [CategoryRule("GLIDE", ["GLIDE"], "#10b981")]
    assert catch_all_name(rules) == "OTHER"
    assert categorize_item("drawer", rules) == "OTHER"
