from __future__ import annotations

from freight_reports.evidence import hash_utils
from freight_reports.evidence.hash_utils import sha256_bytes


def test_sha256_bytes_known_digest() -> None:
    assert sha256_bytes(b"abc") == (
        "ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad"
    )


def test_only_payload_hashing_is_exposed() -> None:
    assert not hasattr(hash_utils, "sha256_file")
