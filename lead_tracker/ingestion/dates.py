"""Normalise the date formats found in lead spreadsheets to ISO strings."""
from __future__ import annotations

import re
from datetime import date, datetime
from typing import Any, Optional

_YEAR_FIRST = re.compile(r"^(\d{4})[/\-](\d{1,2})[/\-](\d{1,2})$", re.ASCII)
_DAY_FIRST = re.compile(r"^(\d{1,2})[/\-](\d{1,2})[/\-](\d{4})$", re.ASCII)


def normalise_date(value: Any) -> str:
    """Return ``value`` as ``YYYY-MM-DD`` or ``""`` when it is not a valid date.

    ISO dates (and datetimes), year-first dates separated by ``/`` or ``-``,
    and day-first ``DD/MM/YYYY`` or ``DD-MM-YYYY`` text are accepted. Anything
    ambiguous or out of range yields ``""``; this function never raises.
    """

    if value is None:
        return ""
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()

    text = str(value).strip()
    if not text:
        return ""

    parsed = _parse_iso(text) or _parse_year_first(text) or _parse_day_first(text)
    return parsed.isoformat() if parsed else ""


def _parse_iso(text: str) -> Optional[date]:
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        return None


def _parse_year_first(text: str) -> Optional[date]:
    match = _YEAR_FIRST.match(text)
    if not match:
        return None
    year, month, day = (int(part) for part in match.groups())
    return _build(year, month, day)


def _parse_day_first(text: str) -> Optional[date]:
    match = _DAY_FIRST.match(text)
    if not match:
        return None
    day, month, year = (int(part) for part in match.groups())
    return _build(year, month, day)


def _build(year: int, month: int, day: int) -> Optional[date]:
    try:
        return date(year, month, day)
    except (ValueError, OverflowError):
        return None


__all__ = ["normalise_date"]
