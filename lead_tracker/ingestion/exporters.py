"""Export utilities that flatten leads back into one spreadsheet row per director."""
from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date
from pathlib import Path
from typing import Callable, Dict, Iterable, List, MutableMapping, Optional, Sequence, Union

import pandas as pd

from ..models import DIRECTOR_FIELD_KEYS, Director, FieldDescriptor, Lead, LeadStatus
from ..registry import FieldRegistry
from .loaders import UnsupportedFileTypeError

LOGGER = logging.getLogger(__name__)

PathLike = Union[str, Path]
AssigneeLookup = Callable[[str], str]

CREATED_DATE_COLUMN = "Created Date"
DEFAULT_SHEET_NAME = "Leads"
TEMPLATE_SHEET_NAME = "Leads Template"
TEMPLATE_FILE_NAME = "lead_import_template.xlsx"


class ExportError(RuntimeError):
    """Raised when an export workbook cannot be written."""


def export_columns(registry: FieldRegistry, *, include_created_date: bool = True) -> List[str]:
    """Column order of an export: visible fields in registry order, then ``Created Date``."""

    columns: List[str] = []
    for descriptor in registry.export_descriptors():
        if descriptor.export_header not in columns:
            columns.append(descriptor.export_header)
    if include_created_date and CREATED_DATE_COLUMN not in columns:
        columns.append(CREATED_DATE_COLUMN)
    return columns


def flatten_leads(
    leads: Iterable[Lead],
    registry: FieldRegistry,
    assignee_name: Optional[AssigneeLookup] = None,
    *,
    include_created_date: bool = True,
) -> List[Dict[str, str]]:
    """Expand each lead into one row per director.

    Company values are repeated on every director row of a lead. The
    ``assignedTo`` field goes through ``assignee_name`` when one is given.
    A lead without directors still produces a single row with blank director
    columns.
    """

    descriptors = registry.export_descriptors()
    _warn_duplicate_headers(registry)

    rows: List[Dict[str, str]] = []
    for lead in leads:
        directors: Sequence[Optional[Director]] = lead.directors or [None]
        for director in directors:
            row = _lead_row(lead, director, descriptors, assignee_name)
            if include_created_date:
                row[CREATED_DATE_COLUMN] = lead.created_at or ""
            rows.append(row)
    return rows


def _lead_row(
    lead: Lead,
    director: Optional[Director],
    descriptors: Sequence[FieldDescriptor],
    assignee_name: Optional[AssigneeLookup],
) -> Dict[str, str]:
    row: Dict[str, str] = {}
    for descriptor in descriptors:
        attribute = DIRECTOR_FIELD_KEYS.get(descriptor.key)
        if attribute is not None:
            value = getattr(director, attribute) if director is not None else ""
        elif descriptor.key == "assignedTo":
            value = assignee_name(lead.assigned_to) if assignee_name else lead.assigned_to
        else:
            value = lead.value_for(descriptor.key)
        row[descriptor.export_header] = value or ""
    return row


def _warn_duplicate_headers(registry: FieldRegistry) -> None:
    for header, keys in registry.duplicate_export_headers().items():
        LOGGER.warning(
            "Fields %s share the export header %r; the value of %r will be written",
            ", ".join(keys),
            header,
            keys[-1],
        )


def leads_to_dataframe(
    leads: Iterable[Lead],
    registry: FieldRegistry,
    assignee_name: Optional[AssigneeLookup] = None,
    *,
    include_created_date: bool = True,
) -> pd.DataFrame:
    """Convert leads into a :class:`pandas.DataFrame` with a fixed column order."""

    rows = flatten_leads(leads, registry, assignee_name, include_created_date=include_created_date)
    columns = export_columns(registry, include_created_date=include_created_date)
    return pd.DataFrame(rows, columns=columns, dtype=object)


def export_leads(
    leads: Iterable[Lead],
    path: PathLike,
    registry: FieldRegistry,
    *,
    assignee_name: Optional[AssigneeLookup] = None,
    sheet_name: str = DEFAULT_SHEET_NAME,
    exporter_kwargs: Optional[MutableMapping[str, object]] = None,
) -> Path:
    """Write leads to a CSV or Excel file, one row per director."""

    leads = list(leads)
    dataframe = leads_to_dataframe(leads, registry, assignee_name)
    output_path = Path(path)
    _write_dataframe(dataframe, output_path, sheet_name=sheet_name, exporter_kwargs=exporter_kwargs)
    LOGGER.info("Exported %s leads (%s rows) to %s", len(leads), len(dataframe), output_path)
    return output_path


def export_file_name(today: Optional[date] = None) -> str:
    """Default workbook name for an export made on ``today``."""

    return f"lead_export_{(today or date.today()).isoformat()}.xlsx"


# --- Import template ---

_TEMPLATE_COMPANY: Dict[str, str] = {
    "cin": "U74999DL2020PTC123456",
    "companyName": "Sample Company Pvt Ltd",
    "authorisedCapital": "10,00,000",
    "paidUpCapital": "7,50,000",
    "dateOfIncorporation": "2020-05-15",
    "registeredAddress": "Plot 123, Sector 18, Noida, UP 201301",
    "companyEmail": "info@samplecompany.com",
    "notes": "Sample lead entry - Multiple directors for same CIN",
}

_TEMPLATE_DIRECTORS = (
    Director(
        id="template-dir-1",
        din="08765432",
        first_name="John",
        last_name="Doe",
        mobile="+91 98765 43210",
        email="john@samplecompany.com",
    ),
    Director(
        id="template-dir-2",
        din="08765433",
        first_name="Jane",
        last_name="Smith",
        mobile="+91 98765 43211",
        email="jane@samplecompany.com",
    ),
)


def template_lead() -> Lead:
    """Sample company with two directors illustrating the one-row-per-director layout."""

    return Lead(
        id="template",
        fields=dict(_TEMPLATE_COMPANY),
        directors=[replace(director) for director in _TEMPLATE_DIRECTORS],
        status=LeadStatus.HOT,
        follow_up_date="2025-10-15",
    )


def template_rows(registry: FieldRegistry) -> List[Dict[str, str]]:
    return flatten_leads([template_lead()], registry, include_created_date=False)


def export_template(
    path: PathLike,
    registry: FieldRegistry,
    *,
    exporter_kwargs: Optional[MutableMapping[str, object]] = None,
) -> Path:
    """Write the sample import template."""

    dataframe = leads_to_dataframe([template_lead()], registry, include_created_date=False)
    output_path = Path(path)
    _write_dataframe(dataframe, output_path, sheet_name=TEMPLATE_SHEET_NAME, exporter_kwargs=exporter_kwargs)
    LOGGER.info("Wrote import template to %s", output_path)
    return output_path


def _write_dataframe(
    dataframe: pd.DataFrame,
    path: Path,
    *,
    sheet_name: str,
    exporter_kwargs: Optional[MutableMapping[str, object]],
) -> None:
    exporter_kwargs = dict(exporter_kwargs or {})
    suffix = path.suffix.lower()
    if suffix not in {".csv", ".xlsx"}:
        raise UnsupportedFileTypeError(f"Unsupported export file extension: {suffix or '(none)'}")

    existed = path.exists()
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        if suffix == ".csv":
            dataframe.to_csv(path, index=False, **exporter_kwargs)
        else:
            engine = exporter_kwargs.pop("engine", None) or "openpyxl"
            dataframe.to_excel(path, index=False, sheet_name=sheet_name, engine=engine, **exporter_kwargs)
    except Exception as exc:
        LOGGER.error("Failed to write %s: %s", path, exc)
        if not existed:
            path.unlink(missing_ok=True)
        raise ExportError(f"Error exporting leads to '{path}'. Please try again.") from exc


__all__ = [
    "CREATED_DATE_COLUMN",
    "ExportError",
    "TEMPLATE_FILE_NAME",
    "export_columns",
    "export_file_name",
    "export_leads",
    "export_template",
    "flatten_leads",
    "leads_to_dataframe",
    "template_lead",
    "template_rows",
]
