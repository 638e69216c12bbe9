"""Utilities for importing, grouping, and exporting lead spreadsheets."""
from __future__ import annotations

from .dates import normalise_date
from .exporters import (
    CREATED_DATE_COLUMN,
    ExportError,
    export_columns,
    export_file_name,
    export_leads,
    export_template,
    flatten_leads,
    template_rows,
)
from .grouping import GroupingState, fold_row, group_rows
from .headers import HEADER_SYNONYMS, HeaderResolver, candidate_headers, match_value, normalise_header
from .loaders import SpreadsheetReadError, UnsupportedFileTypeError, import_leads, read_rows

__all__ = [
    "CREATED_DATE_COLUMN",
    "ExportError",
    "GroupingState",
    "HEADER_SYNONYMS",
    "HeaderResolver",
    "SpreadsheetReadError",
    "UnsupportedFileTypeError",
    "candidate_headers",
    "export_columns",
    "export_file_name",
    "export_leads",
    "export_template",
    "flatten_leads",
    "fold_row",
    "group_rows",
    "import_leads",
    "match_value",
    "normalise_date",
    "normalise_header",
    "read_rows",
    "template_rows",
]
