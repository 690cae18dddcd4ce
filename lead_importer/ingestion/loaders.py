"""Utilities for reading uploaded lead spreadsheets into raw rows."""
from __future__ import annotations

import io
import logging
import math
import zipfile
from datetime import date, datetime
from pathlib import Path
from typing import Any, Iterable, List, Optional

import pandas as pd

from ..config import ImportSettings
from .decoding import decode_text, parse_delimited
from .models import RawRow, SheetData

LOGGER = logging.getLogger(__name__)

SPREADSHEET_SUFFIXES = {".xlsx", ".xlsm", ".xls", ".xlsb"}
TEXT_SUFFIXES = {".csv", ".tsv", ".txt"}
_OPENPYXL_SUFFIXES = {".xlsx", ".xlsm"}


class ValidationError(ValueError):
    """Raised when an upload cannot be imported at all."""


class UnsupportedFileTypeError(ValidationError):
    """Raised when an unsupported file format is passed to the loader."""


class NoDataFoundError(ValidationError):
    """Raised when no sheet with data survives filtering."""


def is_excluded_sheet(sheet_name: str, keywords: Iterable[str]) -> bool:
    lowered = sheet_name.lower()
    return any(keyword in lowered for keyword in keywords)


def read_sheets(data: bytes, filename: str, settings: Optional[ImportSettings] = None) -> List[SheetData]:
    """Read an uploaded file into one :class:`SheetData` per usable sheet.

    Parameters
    ----------
    data:
        Raw bytes of the upload.
    filename:
        Original filename; its extension selects the reader.
    settings:
        Import settings providing the sheet exclusion keywords and the
        encoding fallback thresholds.
    """

    settings = settings or ImportSettings()
    suffix = Path(filename).suffix.lower()

    if suffix in SPREADSHEET_SUFFIXES:
        sheets = _read_workbook(data, suffix, settings)
    elif suffix in TEXT_SUFFIXES:
        sheets = [_read_delimited(data, filename, suffix, settings)]
    else:
        raise UnsupportedFileTypeError(f"Unsupported file extension: {suffix or filename}")

    sheets = [sheet for sheet in sheets if any(_row_has_values(row) for row in sheet.rows)]
    if not sheets:
        raise NoDataFoundError(f"No data found in '{filename}'")
    return sheets


def _read_workbook(data: bytes, suffix: str, settings: ImportSettings) -> List[SheetData]:
    engine = "openpyxl" if suffix in _OPENPYXL_SUFFIXES else None
    try:
        frames = pd.read_excel(io.BytesIO(data), sheet_name=None, header=None, dtype=object, engine=engine)
    except (ValueError, OSError, KeyError, ImportError, zipfile.BadZipFile) as exc:
        raise ValidationError(f"Error parsing spreadsheet: {exc}") from exc

    sheets: List[SheetData] = []
    for sheet_name, frame in frames.items():
        name = str(sheet_name)
        if is_excluded_sheet(name, settings.excluded_sheet_keywords):
            LOGGER.info("Skipping non-data sheet %s", name)
            continue
        rows = [[_cell_to_text(value) for value in values] for values in frame.itertuples(index=False, name=None)]
        LOGGER.debug("Read %s rows from sheet %s", len(rows), name)
        sheets.append(SheetData(name=name, rows=rows))
    return sheets


def _read_delimited(data: bytes, filename: str, suffix: str, settings: ImportSettings) -> SheetData:
    text = decode_text(
        data,
        invalid_char_threshold=settings.invalid_char_threshold,
        invalid_char_ratio=settings.invalid_char_ratio,
        legacy_encoding=settings.legacy_encoding,
    )
    delimiter = "\t" if suffix == ".tsv" else ","
    rows = parse_delimited(text, delimiter)
    LOGGER.debug("Read %s records from %s", len(rows), filename)
    return SheetData(name=Path(filename).stem or "CSV", rows=rows)


def _row_has_values(row: RawRow) -> bool:
    return any(cell.strip() for cell in row)


def _cell_to_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float):
        if math.isnan(value):
            return ""
        if value.is_integer():
            return str(int(value))
        return str(value)
    if isinstance(value, (pd.Timestamp, datetime)):
        if pd.isna(value):
            return ""
        if value.hour == value.minute == value.second == 0:
            return value.date().isoformat()
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if pd.isna(value):
        return ""
    return str(value).strip()


__all__ = [
    "NoDataFoundError",
    "UnsupportedFileTypeError",
    "ValidationError",
    "is_excluded_sheet",
    "read_sheets",
]
