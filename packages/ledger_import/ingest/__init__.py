"""Ingest helpers: upload checks/decoding and category seeding."""

from .upload import decode_csv_bytes, ensure_csv_upload

__all__ = ["decode_csv_bytes", "ensure_csv_upload"]
