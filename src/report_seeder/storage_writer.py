from __future__ import annotations

import json
import logging
import os
import re
from dataclasses import dataclass
from typing import Any

from freight_reports.evidence.hash_utils import sha256_bytes
from freight_reports.evidence.stable_json import to_json_bytes

logger = logging.getLogger(__name__)

DEFAULT_BUCKET = "customer-reports"
CONTENT_TYPE = "application/json"


class SeederError(RuntimeError):
    """Base class for report seeding failures."""


class MissingConfigError(SeederError):
    def __init__(self, missing: list[str]):
        self.missing = list(missing)
        super().__init__(
            "Missing required storage environment variables: " + ", ".join(self.missing)
        )


class UploadError(SeederError):
    pass


class VerificationError(SeederError):
    pass


def _env(name: str, default: str | None = None) -> str | None:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return value


@dataclass(frozen=True, slots=True)
class StorageConfig:
    url: str
    service_role_key: str
    bucket: str

    def __repr__(self) -> str:
        return f"StorageConfig(url={self.url!r}, service_role_key='***', bucket={self.bucket!r})"


def _maybe_load_storage_env_from_file(path: str) -> None:
    """Populate missing SUPABASE_* vars from a local credentials summary file.

    Supports common formats:
      - KEY=VALUE
      - export KEY=VALUE
      - KEY: VALUE

    Never overwrites already-set environment variables.
    """

    try:
        text = open(path, encoding="utf-8", errors="replace").read()
    except OSError:
        logger.warning("Credentials file not readable: %s", path)
        return

    wanted = {
        "SUPABASE_URL",
        "SUPABASE_SERVICE_ROLE_KEY",
        "CUSTOMER_REPORTS_BUCKET",
    }

    def parse_value(raw: str) -> str:
        v = raw.strip()
        if len(v) >= 2 and ((v[0] == v[-1] == "\"") or (v[0] == v[-1] == "'")):
            v = v[1:-1]
        return v.strip()

    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue

        m = re.match(r"^(?:export\s+)?([A-Z0-9_]+)\s*=\s*(.*)$", line) or re.match(
            r"^([A-Z0-9_]+)\s*:\s*(.*)$", line
        )
        if not m:
            continue

        key, value = m.group(1), m.group(2)
        if key not in wanted or os.getenv(key):
            continue

        parsed = parse_value(value)
        if parsed:
            os.environ[key] = parsed


def load_storage_config_from_env(*, credentials_file: str | None = None) -> StorageConfig:
    if credentials_file:
        _maybe_load_storage_env_from_file(credentials_file)

    env_file = os.getenv("CUSTOMER_REPORTS_CREDENTIALS_FILE")
    if env_file:
        _maybe_load_storage_env_from_file(env_file)

    url = _env("SUPABASE_URL")
    service_role_key = _env("SUPABASE_SERVICE_ROLE_KEY")
    bucket = _env("CUSTOMER_REPORTS_BUCKET", default=DEFAULT_BUCKET)

    missing: list[str] = []
    if not url:
        missing.append("SUPABASE_URL")
    if not service_role_key:
        missing.append("SUPABASE_SERVICE_ROLE_KEY")

    if missing:
        raise MissingConfigError(missing)

    return StorageConfig(url=str(url), service_role_key=str(service_role_key), bucket=str(bucket))


def get_storage_client(config: StorageConfig) -> Any:
    try:
        from supabase import create_client  # type: ignore[import-not-found]
    except Exception as exc:  # pragma: no cover
        raise SeederError(
            "supabase library is required. Install with: pip install supabase"
        ) from exc

    return create_client(config.url, config.service_role_key)


def object_key_for_customer(customer_id: int | str) -> str:
    """Deterministic object key: one report document per customer."""

    customer = str(customer_id).strip()
    if not customer or "/" in customer:
        raise ValueError(f"Invalid customer id: {customer_id!r}")
    return f"{customer}.json"


def write_customer_reports(
    customer_id: int | str,
    document: dict[str, Any],
    *,
    config: StorageConfig | None = None,
    client: Any = None,
) -> dict[str, Any]:
    """Upload the customer's report document, replacing any existing object.

    A single attempt: failures raise `UploadError` and nothing is retried. The
    upload is idempotent, so callers may re-run after a failure.

    Returns:
      dict with bucket, object key, byte length and sha256 (for logging).
    """

    config = config or load_storage_config_from_env()
    client = client or get_storage_client(config)

    key = object_key_for_customer(customer_id)
    payload = to_json_bytes(document)

    logger.info("Uploading %s (%d bytes) to bucket %s", key, len(payload), config.bucket)
    try:
        client.storage.from_(config.bucket).upload(
            path=key,
            file=payload,
            file_options={"content-type": CONTENT_TYPE, "upsert": "true"},
        )
    except Exception as exc:
        raise UploadError(f"Upload of {config.bucket}/{key} failed: {exc}") from exc

    return {
        "bucket": config.bucket,
        "key": key,
        "bytes": len(payload),
        "sha256": sha256_bytes(payload),
    }


def read_customer_reports(
    customer_id: int | str,
    *,
    config: StorageConfig | None = None,
    client: Any = None,
) -> dict[str, Any]:
    config = config or load_storage_config_from_env()
    client = client or get_storage_client(config)

    key = object_key_for_customer(customer_id)
    try:
        raw = client.storage.from_(config.bucket).download(key)
    except Exception as exc:
        raise VerificationError(f"Download of {config.bucket}/{key} failed: {exc}") from exc

    if isinstance(raw, (bytes, bytearray)):
        raw = raw.decode("utf-8")
    return json.loads(raw)


def verify_customer_reports(
    customer_id: int | str,
    expected: dict[str, Any],
    *,
    config: StorageConfig | None = None,
    client: Any = None,
) -> None:
    stored = read_customer_reports(customer_id, config=config, client=client)
    if stored != expected:
        raise VerificationError(
            f"Stored document for customer {customer_id} does not match the uploaded definition"
        )
    logger.info("Verified stored document for customer %s", customer_id)
