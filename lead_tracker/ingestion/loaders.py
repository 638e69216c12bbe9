"""Utilities for loading lead rows from CSV and Excel spreadsheets."""
from __future__ import annotations

import csv
import io
import logging
from datetime import date
from pathlib import Path
from typing import Any, BinaryIO, Iterable, List, Optional, Sequence, Union

import pandas as pd
from openpyxl import load_workbook

from ..models import AssigneeDirectory, ImportResult, RawRow
from ..registry import FieldRegistry
from .grouping import IdFactory, group_rows
from .headers import cell_text, row_is_blank

LOGGER = logging.getLogger(__name__)

PathLike = Union[str, Path]
SourceLike = Union[PathLike, bytes, BinaryIO]

SUPPORTED_EXTENSIONS = (".csv", ".xlsx", ".xls")


class UnsupportedFileTypeError(ValueError):
    """Raised when an unsupported file format is passed to the loader."""


class SpreadsheetReadError(RuntimeError):
    """Raised when a spreadsheet cannot be read or parsed."""


def read_rows(source: SourceLike, *, filename: Optional[str] = None) -> List[RawRow]:
    """Read the first sheet of a spreadsheet into a list of raw rows.

    Parameters
    ----------
    source:
        Path to a ``.csv``/``.xlsx``/``.xls`` file, or the file's bytes (or a
        binary file object).
    filename:
        Name used to pick the format when ``source`` is not a path.
    """

    suffix = _detect_suffix(source, filename)
    if suffix not in SUPPORTED_EXTENSIONS:
        raise UnsupportedFileTypeError(
            f"Unsupported file extension: {suffix or '(none)'}. Upload an Excel (.xlsx, .xls) or CSV file"
        )

    display_name = filename or _describe(source)
    try:
        data = _read_bytes(source)
        if suffix == ".csv":
            rows = _read_csv(data)
        elif suffix == ".xlsx":
            rows = _read_xlsx(data)
        else:
            rows = _read_xls(data)
    except Exception as exc:
        LOGGER.error("Failed to read spreadsheet %s: %s", display_name, exc)
        raise SpreadsheetReadError(
            f"Error reading '{display_name}'. Check the file format and try again."
        ) from exc

    rows = _drop_trailing_blank_rows(rows)
    LOGGER.debug("Read %s rows from %s", len(rows), display_name)
    return rows


def import_leads(
    source: SourceLike,
    registry: FieldRegistry,
    default_assignee: str = "",
    *,
    filename: Optional[str] = None,
    today: Optional[date] = None,
    assignees: Optional[AssigneeDirectory] = None,
    id_factory: Optional[IdFactory] = None,
) -> ImportResult:
    """Read a spreadsheet and group its rows into leads."""

    rows = read_rows(source, filename=filename)
    result = group_rows(
        rows,
        registry,
        default_assignee,
        today=today,
        id_factory=id_factory,
        assignees=assignees,
    )
    LOGGER.info("Import of %s: %s", filename or _describe(source), result.summary.message())
    return result


def _detect_suffix(source: SourceLike, filename: Optional[str]) -> str:
    if filename:
        return Path(filename).suffix.lower()
    if isinstance(source, (str, Path)):
        return Path(source).suffix.lower()
    name = getattr(source, "name", None)
    if isinstance(name, str):
        return Path(name).suffix.lower()
    return ""


def _describe(source: SourceLike) -> str:
    if isinstance(source, (str, Path)):
        return str(source)
    return getattr(source, "name", None) or "uploaded file"


def _read_bytes(source: SourceLike) -> bytes:
    if isinstance(source, bytes):
        return source
    if isinstance(source, (str, Path)):
        return Path(source).read_bytes()
    if hasattr(source, "seek"):
        source.seek(0)
    return source.read()


def _read_csv(data: bytes) -> List[RawRow]:
    reader = csv.reader(io.StringIO(data.decode("utf-8-sig"), newline=""))
    header_row = next(reader, None)
    if header_row is None:
        return []
    header = [column.strip() for column in header_row]

    rows: List[RawRow] = []
    for values in reader:
        record: RawRow = {}
        for index, column in enumerate(header):
            if not column or column in record:
                continue
            record[column] = values[index].strip() if index < len(values) else ""
        rows.append(record)
    return rows


def _read_xlsx(data: bytes) -> List[RawRow]:
    workbook = load_workbook(filename=io.BytesIO(data), read_only=True, data_only=True)
    try:
        sheet = workbook.worksheets[0]
        grid = list(sheet.iter_rows(values_only=True))
    finally:
        workbook.close()
    return _rows_from_grid(grid)


def _read_xls(data: bytes) -> List[RawRow]:
    dataframe = pd.read_excel(io.BytesIO(data), sheet_name=0, header=None, dtype=object)
    dataframe = dataframe.astype(object).where(dataframe.notna(), None)
    return _rows_from_grid(dataframe.itertuples(index=False, name=None))


def _rows_from_grid(grid: Iterable[Sequence[Any]]) -> List[RawRow]:
    """Use the first non-empty row as the header and map the rows beneath it."""

    header: Optional[List[str]] = None
    rows: List[RawRow] = []
    for values in grid:
        values = list(values)
        if header is None:
            if any(cell_text(value) for value in values):
                header = [cell_text(value) for value in values]
            continue

        record: RawRow = {}
        for index, column in enumerate(header):
            if not column or column in record:
                continue
            record[column] = values[index] if index < len(values) else None
        rows.append(record)
    return rows


def _drop_trailing_blank_rows(rows: List[RawRow]) -> List[RawRow]:
    end = len(rows)
    while end and row_is_blank(rows[end - 1]):
        end -= 1
    return rows[:end]


__all__ = [
    "SUPPORTED_EXTENSIONS",
    "SpreadsheetReadError",
    "UnsupportedFileTypeError",
    "import_leads",
    "read_rows",
]
