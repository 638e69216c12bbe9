"""Group raw spreadsheet rows into company leads with nested directors.

Rows are folded left to right through a :class:`GroupingState`. Each row is
attributed to an identity key (CIN, else company name, else the key carried
forward from the last row that supplied one), so a company followed by
several director-only rows ends up as one lead with several directors.
"""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import date, timedelta
from functools import partial, reduce
from typing import Callable, Dict, Iterable, Optional

from ..models import (
    DIRECTOR_FIELD_KEYS,
    AssigneeDirectory,
    DataType,
    Director,
    ImportResult,
    ImportSummary,
    Lead,
    LeadStatus,
    RawRow,
)
from ..registry import COMPANY_ID_KEY, COMPANY_NAME_KEY, FieldRegistry
from .dates import normalise_date
from .headers import HeaderResolver, row_is_blank

LOGGER = logging.getLogger(__name__)

FOLLOW_UP_DEFAULT_DAYS = 7

IdFactory = Callable[[], str]


def _new_id() -> str:
    return uuid.uuid4().hex


@dataclass
class GroupingState:
    """Accumulator threaded through :func:`fold_row`."""

    leads_by_key: Dict[str, Lead] = field(default_factory=dict)
    last_key: Optional[str] = None
    skipped: int = 0
    total: int = 0


@dataclass
class GroupingContext:
    """Per-import settings that stay fixed while rows are folded."""

    resolver: HeaderResolver
    default_assignee: str
    today: date
    id_factory: IdFactory = _new_id
    assignees: Optional[AssigneeDirectory] = None

    @property
    def registry(self) -> FieldRegistry:
        return self.resolver.registry


def fold_row(state: GroupingState, row: RawRow, *, context: GroupingContext) -> GroupingState:
    """Attribute one raw row to a lead, creating the lead on first sight."""

    state.total += 1
    if row_is_blank(row):
        LOGGER.debug("Row %s is blank; skipping", state.total)
        state.skipped += 1
        return state

    resolver = context.resolver
    identifier = resolver.value(row, COMPANY_ID_KEY)
    company_name = resolver.value(row, COMPANY_NAME_KEY)
    key = identifier or company_name or state.last_key
    if not key:
        LOGGER.warning("Row %s has no CIN, company name, or preceding company; skipping", state.total)
        state.skipped += 1
        return state
    if identifier or company_name:
        state.last_key = key

    lead = state.leads_by_key.get(key)
    if lead is None:
        lead = _create_lead(row, context)
        state.leads_by_key[key] = lead
        LOGGER.debug("Row %s starts lead %s (%s)", state.total, lead.id, key)
    else:
        _fill_blank_fields(lead, row, context)

    director = _director_from_row(lead, row, resolver)
    if director is not None:
        lead.directors.append(director)
    return state


def _create_lead(row: RawRow, context: GroupingContext) -> Lead:
    lead = Lead(
        id=context.id_factory(),
        created_at=context.today.isoformat(),
        assigned_to=context.default_assignee,
    )

    for descriptor in context.registry.company_descriptors():
        value = context.resolver.value(row, descriptor.key)
        if descriptor.key == "status":
            lead.status = LeadStatus.parse(value)
        elif descriptor.key == "followUpDate":
            lead.follow_up_date = normalise_date(value)
        elif descriptor.key == "assignedTo":
            lead.assigned_to = _resolve_assignee(value, context)
        elif descriptor.data_type is DataType.DATE:
            lead.fields[descriptor.key] = normalise_date(value)
        else:
            lead.fields[descriptor.key] = value

    if not lead.follow_up_date:
        lead.follow_up_date = (context.today + timedelta(days=FOLLOW_UP_DEFAULT_DAYS)).isoformat()
    return lead


def _fill_blank_fields(lead: Lead, row: RawRow, context: GroupingContext) -> None:
    # Later rows of the same company only fill gaps left by the first row.
    for key, current in lead.fields.items():
        if current:
            continue
        descriptor = context.registry.get(key)
        value = context.resolver.value(row, key)
        if descriptor is not None and descriptor.data_type is DataType.DATE:
            value = normalise_date(value)
        if value:
            lead.fields[key] = value


def _resolve_assignee(value: str, context: GroupingContext) -> str:
    if value and context.assignees is not None:
        resolved = context.assignees.resolve(value)
        if resolved:
            return resolved
        LOGGER.debug("Unknown assignee %r; using default %r", value, context.default_assignee)
    return context.default_assignee


def _director_from_row(lead: Lead, row: RawRow, resolver: HeaderResolver) -> Optional[Director]:
    values = {attribute: resolver.value(row, key) for key, attribute in DIRECTOR_FIELD_KEYS.items()}
    director = Director(id=f"{lead.id}-dir-{len(lead.directors) + 1}", **values)
    if not director.has_contact_data():
        return None
    return director


def finalise_leads(state: GroupingState) -> list[Lead]:
    """Give every lead at least one director and return them in first-seen order."""

    leads = list(state.leads_by_key.values())
    for lead in leads:
        if not lead.directors:
            lead.directors.append(Director(id=f"{lead.id}-dir-1"))
    return leads


def group_rows(
    rows: Iterable[RawRow],
    registry: FieldRegistry,
    default_assignee: str = "",
    *,
    today: Optional[date] = None,
    id_factory: Optional[IdFactory] = None,
    assignees: Optional[AssigneeDirectory] = None,
) -> ImportResult:
    """Fold ``rows`` into leads using the field configuration in ``registry``."""

    context = GroupingContext(
        resolver=HeaderResolver(registry),
        default_assignee=default_assignee,
        today=today or date.today(),
        id_factory=id_factory or _new_id,
        assignees=assignees,
    )
    state = reduce(partial(fold_row, context=context), rows, GroupingState())
    leads = finalise_leads(state)

    summary = ImportSummary(imported=len(leads), skipped=state.skipped, total_rows=state.total)
    LOGGER.info(
        "Grouped %s rows into %s leads (%s skipped)",
        summary.total_rows,
        summary.imported,
        summary.skipped,
    )
    return ImportResult(leads=leads, summary=summary)


__all__ = [
    "FOLLOW_UP_DEFAULT_DAYS",
    "GroupingContext",
    "GroupingState",
    "finalise_leads",
    "fold_row",
    "group_rows",
]
