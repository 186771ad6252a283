from __future__ import annotations

import pytest

from freight_reports.definitions import load_bundled_customer_reports
from freight_reports.methods.category_breakdown import (
    METHOD_VERSION,
    compute_category_breakdown,
    compute_report_breakdown,
    period_key,
)

from tests.fixtures import DECKED_CATEGORIES, ITEMS, SHIPMENTS


def test_monthly_ratio_is_sum_over_sum() -> None:
    result = compute_category_breakdown(SHIPMENTS, ITEMS, DECKED_CATEGORIES)

    assert [p.period for p in result.periods] == ["2025-11", "2025-12"]

    nov, dec = result.periods
    assert nov.total_revenue == pytest.approx(1600.0)
    assert nov.total_quantity == pytest.approx(6.0)
    assert nov.shipment_count == 2
    assert nov.ratio == pytest.approx(1600.0 / 6.0)

    assert dec.total_revenue == pytest.approx(900.0)
    assert dec.total_quantity == pytest.approx(3.0)
    assert dec.ratio == pytest.approx(300.0)


def test_category_revenue_is_apportioned_by_quantity_share() -> None:
    result = compute_category_breakdown(SHIPMENTS, ITEMS, DECKED_CATEGORIES)
    nov, dec = result.periods

    assert nov.categories["DRAWER SYSTEM"].revenue == pytest.approx(750.0)
    assert nov.categories["CARGOGLIDE"].revenue == pytest.approx(250.0)
    assert nov.categories["TOOLBOX"].revenue == pytest.approx(600.0)
    assert nov.categories["OTHER"].count == 0

    assert dec.categories["DRAWER SYSTEM"].revenue == pytest.approx(600.0)
    assert dec.categories["OTHER"].revenue == pytest.approx(300.0)
    assert dec.categories["OTHER"].quantity == pytest.approx(1.0)


def test_cancelled_and_unpriced_shipments_are_excluded() -> None:
    result = compute_category_breakdown(SHIPMENTS, ITEMS, DECKED_CATEGORIES)
    assert result.total_shipments == 3
    assert result.total_revenue == pytest.approx(2500.0)
    assert result.total_quantity == pytest.approx(9.0)


def test_overall_and_percent_change() -> None:
    result = compute_category_breakdown(SHIPMENTS, ITEMS, DECKED_CATEGORIES)

    assert result.ratio == pytest.approx(2500.0 / 9.0)
    assert result.percent_change == pytest.approx(12.5)

    drawer = result.categories["DRAWER SYSTEM"]
    assert drawer.total_revenue == pytest.approx(1350.0)
    assert drawer.ratio == pytest.approx(270.0)
    assert drawer.shipment_count == 2
    assert drawer.percent_change == pytest.approx(20.0)

    # Previous month ratio of zero gives no percent change.
    assert result.categories["OTHER"].percent_change == 0.0


def test_empty_inputs_give_zeroed_result() -> None:
    result = compute_category_breakdown([], [], DECKED_CATEGORIES)
    assert result.periods == []
    assert result.ratio == 0.0
    assert result.percent_change == 0.0
    assert result.method_version == METHOD_VERSION


def test_inputs_fingerprint_is_deterministic() -> None:
    r1 = compute_category_breakdown(SHIPMENTS, ITEMS, DECKED_CATEGORIES)
    r2 = compute_category_breakdown(list(SHIPMENTS), list(ITEMS), DECKED_CATEGORIES)
    assert r1.inputs_fingerprint == r2.inputs_fingerprint

    r3 = compute_category_breakdown(SHIPMENTS, ITEMS, DECKED_CATEGORIES, group_by="quarter")
    assert r3.inputs_fingerprint != r1.inputs_fingerprint


@pytest.mark.parametrize(
    ("group_by", "expected"),
    [
        ("day", "2025-12-29"),
        ("week", "2026-W01"),
        ("month", "2025-12"),
        ("quarter", "2025-Q4"),
        ("year", "2025"),
    ],
)
def test_period_keys(group_by: str, expected: str) -> None:
    assert period_key("2025-12-29", group_by) == expected


def test_unknown_group_by_is_rejected() -> None:
    with pytest.raises(ValueError, match="Unsupported group_by"):
        period_key("2025-12-29", "fortnight")


def test_bundled_report_drives_breakdown() -> None:
    report = load_bundled_customer_reports().reports[0]
    result = compute_report_breakdown(report, SHIPMENTS, ITEMS)
    assert result.group_by == "month"
    assert set(result.categories) == {"DRAWER SYSTEM", "CARGOGLIDE", "TOOLBOX", "OTHER"}
    assert result.ratio == pytest.approx(2500.0 / 9.0)
