from __future__ import annotations

from collections.abc import Sequence

from freight_reports.definitions.report_definition import CATCH_ALL_NAME, CategoryRule


def catch_all_name(categories: Sequence[CategoryRule]) -> str:
    for rule in categories:
        if rule.is_default:
            return rule.name
    return CATCH_ALL_NAME


def categorize_item(description: str | None, categories: Sequence[CategoryRule]) -> str:
    """Return the name of the first rule with a keyword contained in `description`.

    Matching is a case-insensitive substring test, in rule order. Catch-all rules
    without keywords never match directly; they receive everything unmatched.
    """

    if not description:
        return catch_all_name(categories)

    desc = description.upper()

    for rule in categories:
        if rule.is_default and not rule.keywords:
            continue
        for keyword in rule.keywords:
            if keyword.upper() in desc:
                return rule.name

    return catch_all_name(categories)
