"""Upload checks performed before any CSV parsing.

An upload is accepted when its declared content type mentions ``csv`` *or*
its file name ends with ``.csv`` (browsers disagree on the content type for
CSV files, so either signal suffices). Bytes are decoded as UTF-8; a leading
byte-order mark is dropped.
"""

from __future__ import annotations

from ..errors import ImportRejected, UnsupportedUploadError


def ensure_csv_upload(file_name: str | None, content_type: str | None = None) -> None:
    """Raise :class:`UnsupportedUploadError` unless the upload looks like CSV."""

    ctype = (content_type or "").lower()
    name = (file_name or "").strip().lower()
    if "csv" in ctype or name.endswith(".csv"):
        return
    raise UnsupportedUploadError("File must be a CSV file")


def decode_csv_bytes(data: bytes) -> str:
    """Decode upload bytes as UTF-8 text, rejecting undecodable content."""

    try:
        return data.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise ImportRejected(f"File is not valid UTF-8 text: {e.reason} at byte {e.start}") from e


__all__ = ["ensure_csv_upload", "decode_csv_bytes"]
