"""Customer report definitions and the deterministic methods that evaluate them.

`report_seeder` and `rls_audit` are the operator-facing entry points; this package
holds the data model and pure computations they share.
"""

__all__ = ["definitions", "evidence", "methods"]
