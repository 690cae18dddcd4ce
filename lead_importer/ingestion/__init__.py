"""Utilities for reading uploaded lead files, resolving their headers, and exporting leads."""
from __future__ import annotations

from .decoding import decode_text, parse_delimited
from .exporters import export_leads, leads_to_dataframe
from .headers import find_header_row, infer_columns, resolve_columns
from .loaders import NoDataFoundError, UnsupportedFileTypeError, ValidationError, read_sheets
from .models import CANONICAL_FIELDS, ColumnMapping, RawRow, SheetData

__all__ = [
    "CANONICAL_FIELDS",
    "ColumnMapping",
    "NoDataFoundError",
    "RawRow",
    "SheetData",
    "UnsupportedFileTypeError",
    "ValidationError",
    "decode_text",
    "export_leads",
    "find_header_row",
    "infer_columns",
    "leads_to_dataframe",
    "parse_delimited",
    "read_sheets",
    "resolve_columns",
]
