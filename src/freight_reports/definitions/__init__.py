"""Report definitions stored per customer in object storage.

The static payloads live as JSON data files next to this module so they can be
reviewed and diffed without reading code.
"""

from __future__ import annotations

from importlib import resources
from pathlib import Path

from freight_reports.definitions.report_definition import (
    CATCH_ALL_NAME,
    Calculation,
    CategoryRule,
    CustomerReports,
    JoinSpec,
    RatioTerm,
    ReportConfig,
    ReportDefinition,
    load_customer_reports,
)
from freight_reports.definitions.validation import ValidationResult, validate_customer_reports

DEFAULT_DEFINITION = "decked_avg_cost_per_unit"


def bundled_definition_path(name: str = DEFAULT_DEFINITION) -> Path:
    resource = resources.files("freight_reports.definitions").joinpath("data").joinpath(
        f"{name}.json"
    )
    return Path(str(resource))


def load_bundled_customer_reports(name: str = DEFAULT_DEFINITION) -> CustomerReports:
    return load_customer_reports(bundled_definition_path(name))


__all__ = [
    "CATCH_ALL_NAME",
    "Calculation",
    "CategoryRule",
    "CustomerReports",
    "DEFAULT_DEFINITION",
    "JoinSpec",
    "RatioTerm",
    "ReportConfig",
    "ReportDefinition",
    "ValidationResult",
    "bundled_definition_path",
    "load_bundled_customer_reports",
    "load_customer_reports",
    "validate_customer_reports",
]
