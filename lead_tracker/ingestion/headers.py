"""Resolve spreadsheet columns with inconsistent naming to lead fields."""
from __future__ import annotations

import re
from datetime import date, datetime
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple

import pandas as pd

from ..models import FieldDescriptor, RawRow
from ..registry import FieldRegistry

# Extra column names accepted for each field key, after the field's export
# header, label, and key.
HEADER_SYNONYMS: Mapping[str, Tuple[str, ...]] = {
    "cin": ("CIN", "cin", "C.I.N", "Company Identification Number"),
    "companyName": ("Company Name", "Company name", "companyName", "Name", "name", "COMPANY NAME"),
    "authorisedCapital": ("Authorised Capital(₹)", "Authorised Capital", "authorisedCapital", "Authorized Capital"),
    "paidUpCapital": ("Paid up Capital(₹)", "Paid up Capital", "paidUpCapital", "Paid-up Capital"),
    "dateOfIncorporation": ("Date of Incorporation", "dateOfIncorporation", "Incorporation Date", "DOI"),
    "registeredAddress": ("Registered Address", "registeredAddress", "Address", "Reg Address"),
    "companyEmail": ("Company E-mail id", "Company Email", "companyEmail", "Email"),
    "din": ("DIN", "din", "D.I.N", "Director Identification Number"),
    "directorFirstName": ("F Name", "First Name", "directorFirstName", "FirstName", "Director First Name"),
    "directorLastName": ("L Name", "Last Name", "directorLastName", "LastName", "Director Last Name"),
    "mobile": ("Mobile", "mobile", "Phone", "Contact", "Mobile No", "Contact Number"),
    "directorEmail": ("Director E-mail id", "Director Email", "directorEmail", "Dir Email"),
    "status": ("Status", "status", "Lead Status"),
    "followUpDate": ("Follow-up Date", "Follow Up Date", "followUpDate", "Next Follow Up"),
    "notes": ("Notes", "notes", "Remarks", "Comments"),
    "assignedTo": ("Assigned To", "assignedTo", "Assignee"),
}

_NON_ALPHANUMERIC = re.compile(r"[^a-z0-9]")


def normalise_header(text: str) -> str:
    """Lower-case ``text`` and drop every character that is not a letter or digit."""

    return _NON_ALPHANUMERIC.sub("", str(text).lower())


def cell_text(value: Any) -> str:
    """Render a spreadsheet cell as stripped text; blanks become ``""``."""

    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, bool):
        return str(value)
    if pd.isna(value):
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def row_is_blank(row: Mapping[str, Any]) -> bool:
    return all(not cell_text(value) for value in row.values())


def _unique(values: Sequence[str]) -> Tuple[str, ...]:
    ordered: list[str] = []
    for value in values:
        if value and value not in ordered:
            ordered.append(value)
    return tuple(ordered)


def candidate_headers(descriptor: FieldDescriptor) -> Tuple[str, ...]:
    """Return accepted column names for ``descriptor`` in priority order."""

    return _unique(
        [descriptor.export_header, descriptor.label, descriptor.key, *HEADER_SYNONYMS.get(descriptor.key, ())]
    )


def candidate_headers_for_key(key: str) -> Tuple[str, ...]:
    """Column names for a key that has no descriptor in the current registry."""

    return _unique([key, *HEADER_SYNONYMS.get(key, ())])


def match_value(row: RawRow, candidates: Sequence[str]) -> str:
    """Return the first non-blank value in ``row`` under any of ``candidates``.

    Exact column names are tried first in candidate order. Failing that, row
    columns and candidates are compared after :func:`normalise_header`, again
    in candidate order and then in row column order. Returns ``""`` when no
    column matches or every matching cell is blank.
    """

    for candidate in candidates:
        if candidate in row:
            text = cell_text(row[candidate])
            if text:
                return text

    normalised_columns = [(normalise_header(column), column) for column in row]
    for candidate in candidates:
        target = normalise_header(candidate)
        if not target:
            continue
        for normalised, column in normalised_columns:
            if normalised != target:
                continue
            text = cell_text(row[column])
            if text:
                return text
    return ""


class HeaderResolver:
    """Candidate lookups bound to one registry snapshot."""

    def __init__(self, registry: FieldRegistry) -> None:
        self._registry = registry
        self._candidates: Dict[str, Tuple[str, ...]] = {}

    @property
    def registry(self) -> FieldRegistry:
        return self._registry

    def candidates(self, key: str) -> Tuple[str, ...]:
        cached: Optional[Tuple[str, ...]] = self._candidates.get(key)
        if cached is None:
            descriptor = self._registry.get(key)
            cached = candidate_headers(descriptor) if descriptor else candidate_headers_for_key(key)
            self._candidates[key] = cached
        return cached

    def value(self, row: RawRow, key: str) -> str:
        return match_value(row, self.candidates(key))


__all__ = [
    "HEADER_SYNONYMS",
    "HeaderResolver",
    "candidate_headers",
    "candidate_headers_for_key",
    "cell_text",
    "match_value",
    "normalise_header",
    "row_is_blank",
]
