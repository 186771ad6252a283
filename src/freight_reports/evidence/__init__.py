"""Deterministic serialization and hashing helpers."""
