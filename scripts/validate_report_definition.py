from __future__ import annotations

import argparse
import json
from pathlib import Path

from freight_reports.definitions import ValidationResult, validate_customer_reports
from freight_reports.evidence.stable_json import read_json


def validate_definition_file(path: str | Path) -> ValidationResult:
    p = Path(path)
    if not p.is_file():
        return ValidationResult(False, [f"Definition file does not exist: {p}"], [])
    try:
        document = read_json(p)
    except json.JSONDecodeError as exc:
        return ValidationResult(False, [f"Invalid JSON: {exc}"], [])
    return validate_customer_reports(document)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python scripts/validate_report_definition.py",
        description="Validate a customer report definition document (schema + category rules).",
    )
    parser.add_argument("paths", nargs="+", help="Report definition JSON file(s)")
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    failed = 0
    for path in args.paths:
        result = validate_definition_file(path)

        for w in result.warnings:
            print(f"WARN: {path}: {w}")

        if result.ok:
            print(f"PASS: {path}")
            continue

        failed += 1
        print(f"FAIL: {path}")
        for e in result.errors:
            print(f"- {e}")

    return 1 if failed else 0


if __name__ == "__main__":
    raise SystemExit(main())
