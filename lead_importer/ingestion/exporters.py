"""Export utilities for leads stored in the CRM."""
from __future__ import annotations

from pathlib import Path
from typing import Any, Iterable, MutableMapping, Optional, Sequence, Union

import pandas as pd

PathLike = Union[str, Path]

EXPORT_COLUMNS = (
    "id",
    "name",
    "phone_country_code",
    "phone_number",
    "secondary_phone_number",
    "whatsapp_number",
    "email",
    "country",
    "program",
    "occupation",
    "status",
    "priority",
    "source",
    "assigned_staff_id",
    "follow_up_date",
    "follow_up_status",
    "ielts_score",
    "comment",
    "created_at",
)


def export_leads(
    leads: Sequence[Any],
    path: PathLike,
    *,
    include_row_data: bool = False,
    sheet_name: str = "Leads",
    exporter_kwargs: Optional[MutableMapping[str, object]] = None,
) -> Path:
    """Write stored leads to a CSV, TSV or Excel file."""

    dataframe = leads_to_dataframe(leads, include_row_data=include_row_data)
    output_path = Path(path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    _write_dataframe(dataframe, output_path, sheet_name=sheet_name, exporter_kwargs=exporter_kwargs)
    return output_path


def leads_to_dataframe(leads: Iterable[Any], *, include_row_data: bool = False) -> pd.DataFrame:
    """Convert lead rows (ORM objects or :class:`NormalizedLead`) to a frame.

    With ``include_row_data`` every original spreadsheet cell kept in
    ``excel_row_data`` becomes a ``row.<header>`` column.
    """

    records = [_lead_to_row(lead, include_row_data=include_row_data) for lead in leads]
    if not records:
        return pd.DataFrame(columns=list(EXPORT_COLUMNS))
    return pd.DataFrame(records)


def _lead_to_row(lead: Any, *, include_row_data: bool) -> MutableMapping[str, object]:
    row: MutableMapping[str, object] = {}
    for column in EXPORT_COLUMNS:
        value = getattr(lead, column, None)
        row[column] = _format_value(value)

    if include_row_data:
        for key, value in (getattr(lead, "excel_row_data", None) or {}).items():
            row[f"row.{key}"] = value
    return row


def _format_value(value: Any) -> object:
    if value is None:
        return ""
    isoformat = getattr(value, "isoformat", None)
    if callable(isoformat):
        return isoformat()
    return value


def _write_dataframe(
    dataframe: pd.DataFrame,
    path: Path,
    *,
    sheet_name: str,
    exporter_kwargs: Optional[MutableMapping[str, object]],
) -> None:
    exporter_kwargs = dict(exporter_kwargs or {})
    suffix = path.suffix.lower()

    if suffix in {".csv", ".tsv"}:
        if suffix == ".tsv":
            exporter_kwargs.setdefault("sep", "\t")
        dataframe.to_csv(path, index=False, **exporter_kwargs)
        return

    if suffix in {".xlsx", ".xlsm"}:
        engine = exporter_kwargs.pop("engine", None) or "openpyxl"
        dataframe.to_excel(path, index=False, sheet_name=sheet_name, engine=engine, **exporter_kwargs)
        return

    raise ValueError(f"Unsupported export file extension: {suffix}")


__all__ = ["EXPORT_COLUMNS", "export_leads", "leads_to_dataframe"]
