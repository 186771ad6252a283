from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import Any

from freight_reports.definitions import (
    bundled_definition_path,
    validate_customer_reports,
)
from freight_reports.evidence.stable_json import read_json, write_json
from report_seeder.storage_writer import (
    MissingConfigError,
    SeederError,
    load_storage_config_from_env,
    object_key_for_customer,
    verify_customer_reports,
    write_customer_reports,
)

DEFAULT_CUSTOMER_ID = "4586648"

EXIT_OK = 0
EXIT_UPLOAD_FAILED = 1
EXIT_MISSING_CONFIG = 2
EXIT_INVALID_DEFINITION = 3

LOGGER_NAME = "report_seeder"


def _setup_logging(log_file: Path | None) -> logging.Logger:
    """Configure logging to stderr and, optionally, a file."""
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG)
    logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(logging.INFO)
    console_handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
    logger.addHandler(console_handler)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        )
        logger.addHandler(file_handler)

    return logger


def _load_document(path: Path, logger: logging.Logger) -> dict[str, Any] | None:
    try:
        raw = read_json(path)
    except (OSError, json.JSONDecodeError) as exc:
        logger.error("Cannot read report definition %s: %s", path, exc)
        return None

    result = validate_customer_reports(raw)
    for w in result.warnings:
        logger.warning("%s", w)
    if not result.ok:
        logger.error("Report definition %s is invalid:", path)
        for e in result.errors:
            logger.error("- %s", e)
        return None

    # Uploaded as read so the stored object deep-equals the file on disk.
    return raw


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python -m report_seeder.seed_customer_report",
        description=(
            "Upload a customer's report definition document to object storage at "
            "<customer-id>.json, replacing any existing object."
        ),
    )
    parser.add_argument(
        "--customer-id",
        default=DEFAULT_CUSTOMER_ID,
        help=f"Customer id; names the stored object (default: {DEFAULT_CUSTOMER_ID})",
    )
    parser.add_argument(
        "--definition",
        default=None,
        help="Path to a report definition JSON file (default: bundled DECKED definition)",
    )
    parser.add_argument(
        "--bucket",
        default=None,
        help="Storage bucket override (default: $CUSTOMER_REPORTS_BUCKET or customer-reports)",
    )
    parser.add_argument(
        "--out-local",
        default=None,
        help="Optional directory: also write the document locally for debug/audit.",
    )
    parser.add_argument(
        "--skip-upload",
        action="store_true",
        help="Validate (and optionally write locally) without contacting storage.",
    )
    parser.add_argument(
        "--verify",
        action="store_true",
        help="Download the object after upload and compare it to the definition.",
    )
    parser.add_argument(
        "--credentials-file",
        default=None,
        help=(
            "Optional path to a local credentials summary file that contains SUPABASE_* values. "
            "Only used to populate missing environment variables."
        ),
    )
    parser.add_argument("--log-file", default=None, help="Optional log file (DEBUG level)")
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    logger = _setup_logging(Path(args.log_file) if args.log_file else None)

    definition_path = (
        Path(args.definition).resolve() if args.definition else bundled_definition_path()
    )
    document = _load_document(definition_path, logger)
    if document is None:
        return EXIT_INVALID_DEFINITION

    try:
        key = object_key_for_customer(args.customer_id)
    except ValueError as exc:
        logger.error("%s", exc)
        return EXIT_INVALID_DEFINITION
    customer_id = key.removesuffix(".json")

    if args.out_local:
        out_dir = Path(args.out_local).resolve()
        write_json(out_dir / key, document, make_parents=True)
        logger.info("Wrote local copy to %s", out_dir / key)

    uploaded: dict[str, Any] | None = None
    if args.skip_upload and args.verify:
        logger.warning("--verify has no effect with --skip-upload; nothing is uploaded")
    if not args.skip_upload:
        try:
            config = load_storage_config_from_env(credentials_file=args.credentials_file)
        except MissingConfigError as exc:
            logger.error("%s", exc)
            return EXIT_MISSING_CONFIG

        if args.bucket:
            config = replace(config, bucket=args.bucket)

        try:
            uploaded = write_customer_reports(customer_id, document, config=config)
            if args.verify:
                verify_customer_reports(customer_id, document, config=config)
                uploaded["verified"] = True
        except SeederError as exc:
            logger.error("%s", exc)
            if exc.__cause__ is not None:
                logger.debug("Cause: %r", exc.__cause__)
            return EXIT_UPLOAD_FAILED

        logger.info("Seeded %s/%s", uploaded["bucket"], uploaded["key"])

    # Structured final output for operators/logging.
    print(
        json.dumps(
            {
                "customer_id": customer_id,
                "definition": str(definition_path),
                "report_ids": [r["id"] for r in document["reports"]],
                "uploaded": uploaded,
            },
            sort_keys=True,
        )
    )
    return EXIT_OK


if __name__ == "__main__":
    raise SystemExit(main())
