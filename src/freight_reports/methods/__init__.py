"""Report evaluation methods.

These methods are owned by `freight_reports` and are intended to be deterministic and testable.
"""

__all__: list[str] = [
    "categorize",
    "category_breakdown",
]
