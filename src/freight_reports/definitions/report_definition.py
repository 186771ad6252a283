from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from freight_reports.evidence.stable_json import read_json

CATCH_ALL_NAME = "OTHER"


@dataclass(frozen=True, slots=True)
class CategoryRule:
    name: str
    keywords: list[str]
    color: str
    is_default: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CategoryRule:
        return cls(
            name=str(data["name"]),
            keywords=[str(k) for k in data.get("keywords") or []],
            color=str(data["color"]),
            is_default=bool(data.get("isDefault", False)),
        )

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "name": self.name,
            "keywords": list(self.keywords),
            "color": self.color,
        }
        # The stored documents only carry the flag on the catch-all rule.
        if self.is_default:
            out["isDefault"] = True
        return out


@dataclass(frozen=True, slots=True)
class RatioTerm:
    field: str
    aggregation: str = "sum"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RatioTerm:
        return cls(field=str(data["field"]), aggregation=str(data.get("aggregation", "sum")))

    def to_dict(self) -> dict[str, Any]:
        return {"field": self.field, "aggregation": self.aggregation}


@dataclass(frozen=True, slots=True)
class Calculation:
    numerator: RatioTerm
    denominator: RatioTerm

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Calculation:
        return cls(
            numerator=RatioTerm.from_dict(data["numerator"]),
            denominator=RatioTerm.from_dict(data["denominator"]),
        )

    def to_dict(self) -> dict[str, Any]:
        return {"numerator": self.numerator.to_dict(), "denominator": self.denominator.to_dict()}


@dataclass(frozen=True, slots=True)
class JoinSpec:
    table: str
    on: str
    type: str = "inner"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> JoinSpec:
        return cls(table=str(data["table"]), on=str(data["on"]), type=str(data.get("type", "inner")))

    def to_dict(self) -> dict[str, Any]:
        return {"table": self.table, "on": self.on, "type": self.type}


@dataclass(frozen=True, slots=True)
class ReportConfig:
    primary_table: str
    calculation: Calculation
    group_by: str
    joins: list[JoinSpec] = field(default_factory=list)
    categories: list[CategoryRule] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ReportConfig:
        return cls(
            primary_table=str(data["primaryTable"]),
            calculation=Calculation.from_dict(data["calculation"]),
            group_by=str(data["groupBy"]),
            joins=[JoinSpec.from_dict(j) for j in data.get("joins") or []],
            categories=[CategoryRule.from_dict(c) for c in data.get("categories") or []],
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "primaryTable": self.primary_table,
            "joins": [j.to_dict() for j in self.joins],
            "calculation": self.calculation.to_dict(),
            "groupBy": self.group_by,
            "categories": [c.to_dict() for c in self.categories],
        }

    def catch_all(self) -> CategoryRule | None:
        for rule in self.categories:
            if rule.is_default:
                return rule
        return None


@dataclass(frozen=True, slots=True)
class ReportDefinition:
    """A named analytical report as stored in the customer's report document."""

    id: str
    name: str
    description: str
    type: str
    config: ReportConfig
    visualization: str
    created_at: str
    created_by: str

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ReportDefinition:
        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            description=str(data.get("description", "")),
            type=str(data["type"]),
            config=ReportConfig.from_dict(data["config"]),
            visualization=str(data["visualization"]),
            created_at=str(data["createdAt"]),
            created_by=str(data["createdBy"]),
        )

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "config": self.config.to_dict(),
            "visualization": self.visualization,
            "createdAt": self.created_at,
            "createdBy": self.created_by,
        }
        if self.description:
            out["description"] = self.description
        return out


@dataclass(frozen=True, slots=True)
class CustomerReports:
    """The document stored at `<customer-id>.json`."""

    reports: list[ReportDefinition]

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CustomerReports:
        return cls(reports=[ReportDefinition.from_dict(r) for r in data.get("reports") or []])

    def to_dict(self) -> dict[str, Any]:
        return {"reports": [r.to_dict() for r in self.reports]}

    def find(self, report_id: str) -> ReportDefinition | None:
        for report in self.reports:
            if report.id == report_id:
                return report
        return None


def load_customer_reports(path: str | Path) -> CustomerReports:
    return CustomerReports.from_dict(read_json(path))
