from __future__ import annotations

import argparse
import json
import logging
import os
import re
import sys
from dataclasses import asdict, dataclass, field
from importlib import resources
from pathlib import Path
from typing import Any

import psycopg

logger = logging.getLogger(__name__)

AUDIT_SQL_RESOURCE = "rls_policy_audit.sql"
CHECK_COLUMNS = ("check_name", "measured", "status")
FINDING_COLUMNS = ("tablename", "policyname")
DATABASE_URL_ENV = ("RLS_AUDIT_DATABASE_URL", "DATABASE_URL")
STATEMENT_TIMEOUT = "30s"

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_MISSING_CONFIG = 2

_CHECK_NAME_RE = re.compile(r"'([A-Za-z0-9_]+)'\s+AS\s+check_name", re.IGNORECASE)
_DOLLAR_TAG_RE = re.compile(r"\$(?:[A-Za-z_][A-Za-z0-9_]*)?\$")


class AuditConfigError(RuntimeError):
    pass


@dataclass(frozen=True, slots=True)
class CheckResult:
    check_name: str
    measured: int | None
    status: str  # "PASS" | "FAIL" | "ERROR"
    error: str | None = None


@dataclass(frozen=True, slots=True)
class PolicyFinding:
    schemaname: str
    tablename: str
    policyname: str
    cmd: str | None = None


@dataclass(slots=True)
class AuditReport:
    checks: list[CheckResult] = field(default_factory=list)
    findings: list[PolicyFinding] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.findings and all(c.status == "PASS" for c in self.checks)

    def to_dict(self) -> dict[str, Any]:
        return {
            "ok": self.ok,
            "checks": [asdict(c) for c in self.checks],
            "findings": [asdict(f) for f in self.findings],
        }


def split_sql_statements(text: str) -> list[str]:
    """Split a SQL script on top-level semicolons.

    Semicolons inside quoted strings, quoted identifiers, dollar-quoted bodies and
    comments do not end a statement. Chunks holding only comments are dropped.
    """

    statements: list[str] = []
    buf: list[str] = []
    has_code = False
    i = 0
    n = len(text)

    while i < n:
        ch = text[i]

        if ch == "-" and text.startswith("--", i):
            end = text.find("\n", i)
            end = n if end == -1 else end + 1
            buf.append(text[i:end])
            i = end
            continue

        if ch == "/" and text.startswith("/*", i):
            end = text.find("*/", i + 2)
            end = n if end == -1 else end + 2
            buf.append(text[i:end])
            i = end
            continue

        if ch in ("'", '"'):
            # Doubled quotes re-enter the same literal on the next pass.
            end = text.find(ch, i + 1)
            end = n if end == -1 else end + 1
            buf.append(text[i:end])
            has_code = True
            i = end
            continue

        if ch == "$":
            m = _DOLLAR_TAG_RE.match(text, i)
            if m:
                tag = m.group(0)
                end = text.find(tag, m.end())
                end = n if end == -1 else end + len(tag)
                buf.append(text[i:end])
                has_code = True
                i = end
                continue

        if ch == ";":
            if has_code:
                statements.append("".join(buf).strip())
            buf = []
            has_code = False
            i += 1
            continue

        if not ch.isspace():
            has_code = True
        buf.append(ch)
        i += 1

    if has_code:
        statements.append("".join(buf).strip())

    return statements


def load_audit_statements(path: str | Path | None = None) -> list[str]:
    if path is None:
        sql_file = resources.files("rls_audit").joinpath("sql").joinpath(AUDIT_SQL_RESOURCE)
        text = sql_file.read_text(encoding="utf-8")
    else:
        text = Path(path).read_text(encoding="utf-8")
    return split_sql_statements(text)


def statement_label(statement: str, index: int) -> str:
    m = _CHECK_NAME_RE.search(statement)
    if m:
        return m.group(1)
    return f"statement_{index + 1}"


def _impersonate(cur: Any, user_id: str) -> None:
    claims = json.dumps({"sub": user_id, "role": "authenticated"})
    cur.execute("SELECT set_config('request.jwt.claims', %s, true)", (claims,))
    cur.execute("SET LOCAL ROLE authenticated")


def _collect(report: AuditReport, label: str, columns: list[str], rows: list[tuple]) -> None:
    if not columns:
        return

    if all(c in columns for c in CHECK_COLUMNS):
        for row in rows:
            values = dict(zip(columns, row))
            measured = values["measured"]
            report.checks.append(
                CheckResult(
                    check_name=str(values["check_name"]),
                    measured=int(measured) if measured is not None else None,
                    status=str(values["status"]),
                )
            )
        return

    if not all(c in columns for c in FINDING_COLUMNS):
        report.checks.append(
            CheckResult(
                check_name=label,
                measured=None,
                status="ERROR",
                error="unrecognized result columns: " + ", ".join(columns),
            )
        )
        return

    for row in rows:
        values = dict(zip(columns, row))
        report.findings.append(
            PolicyFinding(
                schemaname=str(values.get("schemaname") or "public"),
                tablename=str(values["tablename"]),
                policyname=str(values["policyname"]),
                cmd=values.get("cmd"),
            )
        )


def run_audit(conn: Any, statements: list[str], *, as_user: str | None = None) -> AuditReport:
    """Run the audit statements in one read-only transaction that is always rolled back.

    With `as_user`, every statement runs as role `authenticated` with JWT claims
    carrying that user id, so row-level security applies as it would for the user.
    A failing statement is reported as an ERROR check; the remaining ones still run.
    """

    report = AuditReport()
    conn.read_only = True
    try:
        with conn.cursor() as cur:
            # Opens the outer transaction; each statement below runs in a savepoint.
            cur.execute(f"SET LOCAL statement_timeout = '{STATEMENT_TIMEOUT}'")
            if as_user:
                logger.info("Impersonating user %s", as_user)
                _impersonate(cur, as_user)

            for index, statement in enumerate(statements):
                label = statement_label(statement, index)
                try:
                    with conn.transaction():
                        cur.execute(statement)
                        columns = [d.name for d in (cur.description or [])]
                        rows = cur.fetchall() if columns else []
                except psycopg.Error as exc:
                    logger.error("Audit statement %s failed: %s", label, exc)
                    report.checks.append(
                        CheckResult(check_name=label, measured=None, status="ERROR", error=str(exc))
                    )
                    continue

                logger.debug("%s returned %d row(s)", label, len(rows))
                _collect(report, label, columns, rows)
    finally:
        conn.rollback()

    return report


def resolve_database_url(explicit: str | None = None) -> str:
    if explicit:
        return explicit
    for name in DATABASE_URL_ENV:
        value = os.getenv(name)
        if value:
            return value
    raise AuditConfigError(
        "Missing database URL: pass --database-url or set " + " / ".join(DATABASE_URL_ENV)
    )


def render_text(report: AuditReport) -> str:
    lines: list[str] = []
    for check in report.checks:
        line = f"{check.status:<5} {check.check_name} measured={check.measured}"
        if check.error:
            line += f" error={check.error}"
        lines.append(line)

    if report.findings:
        lines.append(f"Policies still checking admin role via JWT claims: {len(report.findings)}")
        for f in report.findings:
            lines.append(f"- {f.schemaname}.{f.tablename}: {f.policyname} ({f.cmd})")
    else:
        lines.append("No policies outside user_roles check the admin role via JWT claims")

    lines.append("PASS: RLS audit clean" if report.ok else "FAIL: RLS audit found problems")
    return "\n".join(lines)


def _setup_logging(log_file: Path | None) -> None:
    root = logging.getLogger("rls_audit")
    root.setLevel(logging.DEBUG)
    root.handlers.clear()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(logging.INFO)
    console_handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
    root.addHandler(console_handler)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        )
        root.addHandler(file_handler)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python -m rls_audit.audit_runner",
        description="Run the read-only row-level-security audit against a database.",
    )
    parser.add_argument(
        "--database-url",
        default=None,
        help="Connection URL (default: $RLS_AUDIT_DATABASE_URL or $DATABASE_URL)",
    )
    parser.add_argument(
        "--sql",
        default=None,
        help="Path to an audit SQL script (default: bundled rls_policy_audit.sql)",
    )
    parser.add_argument(
        "--as-user",
        default=None,
        help="Auth user id to impersonate as role 'authenticated' (should be an admin)",
    )
    parser.add_argument("--json", action="store_true", help="Emit the report as JSON on stdout")
    parser.add_argument("--log-file", default=None, help="Optional log file (DEBUG level)")
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    _setup_logging(Path(args.log_file) if args.log_file else None)

    try:
        database_url = resolve_database_url(args.database_url)
    except AuditConfigError as exc:
        logger.error("%s", exc)
        return EXIT_MISSING_CONFIG

    try:
        statements = load_audit_statements(args.sql)
    except OSError as exc:
        logger.error("Cannot read audit SQL %s: %s", args.sql, exc)
        return EXIT_MISSING_CONFIG
    logger.info("Loaded %d audit statement(s)", len(statements))

    try:
        with psycopg.connect(database_url, connect_timeout=10) as conn:
            report = run_audit(conn, statements, as_user=args.as_user)
    except psycopg.Error as exc:
        logger.error("Database connection failed: %s", exc)
        return EXIT_FAILED

    if args.json:
        print(json.dumps(report.to_dict(), indent=2, sort_keys=True))
    else:
        print(render_text(report))

    return EXIT_OK if report.ok else EXIT_FAILED


if __name__ == "__main__":
    raise SystemExit(main())
