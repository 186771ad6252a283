"""Read-only row-level-security audit.

The SQL battery in `sql/rls_policy_audit.sql` can be run directly in psql; `audit_runner`
executes it, classifies the rows and returns an exit code for schedulers.
"""

__all__: list[str] = ["audit_runner"]
