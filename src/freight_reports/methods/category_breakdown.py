from __future__ import annotations

import hashlib
import json
from collections.abc import Iterable, Sequence
from dataclasses import asdict, dataclass, field
from datetime import date, datetime
from typing import Any

from freight_reports.definitions.report_definition import CategoryRule, ReportDefinition
from freight_reports.methods.categorize import categorize_item

METHOD_VERSION = "0.1.0"

EXCLUDED_STATUSES = {"cancelled", "quoted"}


def _canonicalize_json(value: Any) -> Any:
    if isinstance(value, dict):
        return {k: _canonicalize_json(value[k]) for k in sorted(value)}
    if isinstance(value, list):
        return [_canonicalize_json(v) for v in value]
    return value


def _fingerprint_payload(payload: dict[str, Any]) -> str:
    canonical = _canonicalize_json(payload)
    data = json.dumps(
        canonical, sort_keys=True, separators=(",", ":"), ensure_ascii=False, default=str
    ).encode("utf-8")
    return hashlib.sha256(data).hexdigest()


@dataclass(frozen=True, slots=True)
class ShipmentRecord:
    load_id: int
    retail: float | None
    pickup_date: str | date
    status_name: str | None


@dataclass(frozen=True, slots=True)
class ShipmentItem:
    load_id: int
    quantity: float | None
    description: str | None


@dataclass(slots=True)
class CategoryPeriod:
    ratio: float = 0.0
    revenue: float = 0.0
    quantity: float = 0.0
    count: int = 0


@dataclass(slots=True)
class PeriodMetric:
    period: str
    ratio: float
    total_revenue: float
    total_quantity: float
    shipment_count: int
    categories: dict[str, CategoryPeriod] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class CategoryMetric:
    ratio: float
    total_revenue: float
    total_quantity: float
    shipment_count: int
    percent_change: float


@dataclass(frozen=True, slots=True)
class BreakdownResult:
    group_by: str
    periods: list[PeriodMetric]
    ratio: float
    total_revenue: float
    total_quantity: float
    total_shipments: int
    percent_change: float
    categories: dict[str, CategoryMetric]
    method_version: str
    inputs_fingerprint: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _as_date(value: str | date) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def period_key(value: str | date, group_by: str) -> str:
    d = _as_date(value)
    if group_by == "day":
        return d.isoformat()
    if group_by == "week":
        iso_year, iso_week, _ = d.isocalendar()
        return f"{iso_year}-W{iso_week:02d}"
    if group_by == "month":
        return f"{d.year}-{d.month:02d}"
    if group_by == "quarter":
        return f"{d.year}-Q{(d.month - 1) // 3 + 1}"
    if group_by == "year":
        return str(d.year)
    raise ValueError(f"Unsupported group_by: {group_by!r}")


def _ratio(numerator: float, denominator: float) -> float:
    return numerator / denominator if denominator > 0 else 0.0


def _percent_change(current: float, previous: float) -> float:
    if previous <= 0:
        return 0.0
    return (current - previous) / previous * 100.0


def _is_countable(shipment: ShipmentRecord) -> bool:
    status = (shipment.status_name or "").strip().lower()
    return bool(status) and status not in EXCLUDED_STATUSES


def fingerprint_breakdown_inputs(
    shipments: Sequence[ShipmentRecord],
    items: Sequence[ShipmentItem],
    categories: Sequence[CategoryRule],
    group_by: str,
) -> str:
    payload: dict[str, Any] = {
        "shipments": [asdict(s) for s in shipments],
        "items": [asdict(i) for i in items],
        "categories": [c.to_dict() for c in categories],
        "group_by": group_by,
        "method_version": METHOD_VERSION,
    }
    return _fingerprint_payload(payload)


def compute_category_breakdown(
    shipments: Iterable[ShipmentRecord],
    items: Iterable[ShipmentItem],
    categories: Sequence[CategoryRule],
    *,
    group_by: str = "month",
) -> BreakdownResult:
    """Revenue per unit over time, split by item category.

    Each countable shipment contributes its retail value and the summed quantity
    of its items to its period. A category's revenue share is the shipment's
    retail apportioned by that category's fraction of the shipment's quantity.
    """

    shipments = list(shipments)
    items = list(items)
    fingerprint = fingerprint_breakdown_inputs(shipments, items, categories, group_by)

    names = [c.name for c in categories]
    countable = [s for s in shipments if _is_countable(s)]
    countable_ids = {s.load_id for s in countable}

    qty_by_load: dict[int, dict[str, float]] = {}
    for item in items:
        if item.load_id not in countable_ids:
            continue
        bucket = qty_by_load.setdefault(item.load_id, {"__total__": 0.0, **{n: 0.0 for n in names}})
        category = categorize_item(item.description, categories)
        qty = float(item.quantity or 0)
        bucket["__total__"] += qty
        bucket[category] = bucket.get(category, 0.0) + qty

    periods: dict[str, PeriodMetric] = {}
    for shipment in countable:
        load = qty_by_load.get(shipment.load_id)
        if not load or load["__total__"] == 0 or not shipment.retail:
            continue

        key = period_key(shipment.pickup_date, group_by)
        metric = periods.get(key)
        if metric is None:
            metric = PeriodMetric(
                period=key,
                ratio=0.0,
                total_revenue=0.0,
                total_quantity=0.0,
                shipment_count=0,
                categories={n: CategoryPeriod() for n in names},
            )
            periods[key] = metric

        retail = float(shipment.retail)
        metric.total_revenue += retail
        metric.total_quantity += load["__total__"]
        metric.shipment_count += 1

        for name in names:
            category_qty = load.get(name, 0.0)
            if category_qty > 0:
                share = metric.categories[name]
                share.revenue += retail * category_qty / load["__total__"]
                share.quantity += category_qty
                share.count += 1

    ordered = [periods[k] for k in sorted(periods)]
    for metric in ordered:
        metric.ratio = _ratio(metric.total_revenue, metric.total_quantity)
        for share in metric.categories.values():
            share.ratio = _ratio(share.revenue, share.quantity)

    total_revenue = sum(m.total_revenue for m in ordered)
    total_quantity = sum(m.total_quantity for m in ordered)
    total_shipments = sum(m.shipment_count for m in ordered)

    percent_change = 0.0
    if len(ordered) >= 2:
        percent_change = _percent_change(ordered[-1].ratio, ordered[-2].ratio)

    category_metrics: dict[str, CategoryMetric] = {}
    for name in names:
        revenue = sum(m.categories[name].revenue for m in ordered)
        quantity = sum(m.categories[name].quantity for m in ordered)
        count = sum(m.categories[name].count for m in ordered)
        change = 0.0
        if len(ordered) >= 2:
            change = _percent_change(
                ordered[-1].categories[name].ratio, ordered[-2].categories[name].ratio
            )
        category_metrics[name] = CategoryMetric(
            ratio=_ratio(revenue, quantity),
            total_revenue=revenue,
            total_quantity=quantity,
            shipment_count=count,
            percent_change=change,
        )

    return BreakdownResult(
        group_by=group_by,
        periods=ordered,
        ratio=_ratio(total_revenue, total_quantity),
        total_revenue=total_revenue,
        total_quantity=total_quantity,
        total_shipments=total_shipments,
        percent_change=percent_change,
        categories=category_metrics,
        method_version=METHOD_VERSION,
        inputs_fingerprint=fingerprint,
    )


def compute_report_breakdown(
    report: ReportDefinition,
    shipments: Iterable[ShipmentRecord],
    items: Iterable[ShipmentItem],
) -> BreakdownResult:
    calc = report.config.calculation
    if (calc.numerator.aggregation, calc.denominator.aggregation) != ("sum", "sum"):
        raise ValueError(
            f"Report {report.id!r}: only sum-over-sum calculations are supported, got "
            f"{calc.numerator.aggregation}/{calc.denominator.aggregation}"
        )
    if (calc.numerator.field, calc.denominator.field) != ("retail", "quantity"):
        raise ValueError(
            f"Report {report.id!r}: breakdown expects retail/quantity, got "
            f"{calc.numerator.field}/{calc.denominator.field}"
        )
    return compute_category_breakdown(
        shipments, items, report.config.categories, group_by=report.config.group_by
    )
