"""Statement ingestion: delimited text to untagged transactions."""

from __future__ import annotations

from .csv_rows import CsvFormatError, parse_csv_text

__all__ = ["CsvFormatError", "parse_csv_text"]
