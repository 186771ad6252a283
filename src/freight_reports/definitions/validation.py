from __future__ import annotations

import json
from dataclasses import dataclass
from importlib import resources
from typing import Any

SCHEMA_RESOURCE = "customer_reports.schema.json"


@dataclass(frozen=True, slots=True)
class ValidationResult:
    ok: bool
    errors: list[str]
    warnings: list[str]


def load_schema() -> dict[str, Any]:
    schema_file = (
        resources.files("freight_reports.definitions").joinpath("schemas").joinpath(SCHEMA_RESOURCE)
    )
    return json.loads(schema_file.read_text(encoding="utf-8"))


def _schema_errors(document: Any) -> list[str]:
    try:
        from jsonschema import Draft202012Validator  # type: ignore[import-untyped]
    except Exception as exc:  # pragma: no cover
        raise RuntimeError(
            "jsonschema library is required. Install with: pip install jsonschema"
        ) from exc

    validator = Draft202012Validator(load_schema())
    errors: list[str] = []
    found = sorted(validator.iter_errors(document), key=lambda e: [str(p) for p in e.absolute_path])
    for err in found:
        location = "/".join(str(p) for p in err.absolute_path) or "<root>"
        errors.append(f"{location}: {err.message}")
    return errors


def _category_errors(report_index: int, report: dict[str, Any]) -> tuple[list[str], list[str]]:
    errors: list[str] = []
    warnings: list[str] = []

    categories = (report.get("config") or {}).get("categories") or []
    label = f"reports/{report_index} ({report.get('id')})"

    names = [c.get("name") for c in categories]
    duplicates = sorted({n for n in names if names.count(n) > 1})
    if duplicates:
        errors.append(f"{label}: duplicate category names: {', '.join(duplicates)}")

    default_positions = [i for i, c in enumerate(categories) if c.get("isDefault")]
    if len(default_positions) > 1:
        errors.append(f"{label}: more than one catch-all category")
    elif default_positions and default_positions[0] != len(categories) - 1:
        errors.append(
            f"{label}: catch-all category {names[default_positions[0]]!r} must be the last rule"
        )

    for i in default_positions:
        if categories[i].get("keywords"):
            warnings.append(f"{label}: catch-all category {names[i]!r} has keywords that never match")

    if report.get("type") == "category_breakdown" and not categories:
        errors.append(f"{label}: category_breakdown report has no categories")
    elif categories and not default_positions:
        warnings.append(f"{label}: no catch-all category; unmatched items fall into 'OTHER'")

    return errors, warnings


def validate_customer_reports(document: Any) -> ValidationResult:
    """Validate a customer report document before it is uploaded.

    Structural checks come from the bundled JSON schema. Rule ordering is checked
    here: categories are evaluated in order, so a catch-all rule must come last.
    """

    errors = _schema_errors(document)
    warnings: list[str] = []
    if errors:
        return ValidationResult(False, errors, warnings)

    ids = [r.get("id") for r in document.get("reports", [])]
    duplicate_ids = sorted({i for i in ids if ids.count(i) > 1})
    if duplicate_ids:
        errors.append(f"duplicate report ids: {', '.join(duplicate_ids)}")

    for index, report in enumerate(document.get("reports", [])):
        report_errors, report_warnings = _category_errors(index, report)
        errors.extend(report_errors)
        warnings.extend(report_warnings)

    return ValidationResult(ok=not errors, errors=errors, warnings=warnings)
