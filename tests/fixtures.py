from __future__ import annotations

import copy
from typing import Any

from freight_reports.definitions import CategoryRule
from freight_reports.methods.category_breakdown import ShipmentItem, ShipmentRecord

# Mirrors the bundled DECKED report: three product lines plus a trailing catch-all.
DECKED_CATEGORIES: list[CategoryRule] = [
    CategoryRule("DRAWER SYSTEM", ["DRAWER SYSTEM", "DRAWER-SYSTEM", "DRAWERSYSTEM"], "#3b82f6"),
    CategoryRule("CARGOGLIDE", ["CARGOGLIDE", "CARGO GLIDE", "CARGO-GLIDE"], "#10b981"),
    CategoryRule("TOOLBOX", ["TOOLBOX", "TOOL BOX", "TOOL-BOX"], "#f59e0b"),
    CategoryRule("OTHER", [], "#64748b", is_default=True),
]

# Two months of shipments; load 4 is cancelled and load 5 has no retail value.
SHIPMENTS: list[ShipmentRecord] = [
    ShipmentRecord(1, 1000.0, "2025-11-03", "Delivered"),
    ShipmentRecord(2, 600.0, "2025-11-20T14:00:00+00:00", "Delivered"),
    ShipmentRecord(3, 900.0, "2025-12-05", "In Transit"),
    ShipmentRecord(4, 5000.0, "2025-12-06", "Cancelled"),
    ShipmentRecord(5, None, "2025-12-07", "Delivered"),
]

ITEMS: list[ShipmentItem] = [
    ShipmentItem(1, 3, "Decked Drawer System - Ford F150"),
    ShipmentItem(1, 1, "CargoGlide 1000"),
    ShipmentItem(2, 2, "Tool Box crossover"),
    ShipmentItem(3, 2, "drawer-system midsize"),
    ShipmentItem(3, 1, "pallet wrap"),
    ShipmentItem(4, 10, "Drawer System"),
    ShipmentItem(5, 4, "Toolbox"),
]

SAMPLE_DOCUMENT: dict = {
    "reports": [
        {
            "id": "sample-report",
            "name": "Sample",
            "description": "Sample report",
            "type": "category_breakdown",
            "config": {
                "primaryTable": "shipment",
                "joins": [{"table": "shipment_item", "on": "load_id", "type": "inner"}],
                "calculation": {
                    "numerator": {"field": "retail", "aggregation": "sum"},
                    "denominator": {"field": "quantity", "aggregation": "sum"},
                },
                "groupBy": "month",
                "categories": [
                    {"name": "A", "keywords": ["ALPHA"], "color": "#111111"},
                    {"name": "OTHER", "keywords": [], "color": "#64748b", "isDefault": True},
                ],
            },
            "visualization": "category_breakdown",
            "createdAt": "2026-01-01T00:00:00.000Z",
            "createdBy": "admin",
        }
    ]
}


def sample_document() -> dict:
    """Return a deep copy of the shared sample report document.

    Tests should treat fixtures as immutable; a deep copy prevents accidental mutation.
    """

    return copy.deepcopy(SAMPLE_DOCUMENT)


class FakeStorageError(Exception):
    pass


class _FakeBucket:
    def __init__(self, storage: FakeStorage, bucket: str):
        self._storage = storage
        self._bucket = bucket

    def upload(self, path: str, file: bytes, file_options: dict[str, Any] | None = None) -> dict:
        options = dict(file_options or {})
        self._storage.calls.append(("upload", self._bucket, path, options))
        if self._storage.fail_uploads:
            raise FakeStorageError("simulated upload failure")
        key = (self._bucket, path)
        if key in self._storage.objects and options.get("upsert") != "true":
            raise FakeStorageError("The resource already exists")
        self._storage.objects[key] = (bytes(file), options.get("content-type"))
        return {"Key": f"{self._bucket}/{path}"}

    def download(self, path: str) -> bytes:
        self._storage.calls.append(("download", self._bucket, path, {}))
        try:
            return self._storage.objects[(self._bucket, path)][0]
        except KeyError:
            raise FakeStorageError("Object not found") from None


class FakeStorage:
    """In-memory stand-in for the storage client's bucket API."""

    def __init__(self) -> None:
        self.objects: dict[tuple[str, str], tuple[bytes, str | None]] = {}
        self.calls: list[tuple[str, str, str, dict]] = []
        self.fail_uploads = False

    def from_(self, bucket: str) -> _FakeBucket:
        return _FakeBucket(self, bucket)


class FakeStorageClient:
    def __init__(self, storage: FakeStorage | None = None) -> None:
        self.storage = storage or FakeStorage()
