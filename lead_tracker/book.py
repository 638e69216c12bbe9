"""In-memory lead collection with the lost-lead pool and follow-up tracking."""
from __future__ import annotations

import logging
import uuid
from datetime import date, datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Iterable, List, Optional, Union

from .ingestion.exporters import export_leads
from .ingestion.dates import normalise_date
from .ingestion.loaders import SourceLike, import_leads
from .models import (
    DIRECTOR_FIELD_KEYS,
    LEAD_ATTRIBUTE_KEYS,
    AssigneeDirectory,
    Director,
    FollowUp,
    ImportResult,
    Lead,
    LeadStatus,
    LostLead,
)
from .registry import COMPANY_NAME_KEY, FieldRegistry

LOGGER = logging.getLogger(__name__)


class LeadNotFoundError(KeyError):
    """Raised when no lead with the requested id exists."""


class DirectorRemovalError(ValueError):
    """Raised when removing a director would leave a lead without any."""


class PermanentlyLostError(ValueError):
    """Raised when restoring a lead that was marked as permanently lost."""


class LeadBook:
    """Active leads plus the pool of leads marked as lost.

    Operations run one at a time; imports are all-or-nothing, so a failed
    import leaves the collection untouched.
    """

    def __init__(self, leads: Iterable[Lead] = (), lost_leads: Iterable[LostLead] = ()) -> None:
        self._leads: List[Lead] = []
        self._lost: List[LostLead] = list(lost_leads)
        for lead in leads:
            self.add_lead(lead)

    @property
    def leads(self) -> List[Lead]:
        return list(self._leads)

    @property
    def lost_leads(self) -> List[LostLead]:
        return list(self._lost)

    def __len__(self) -> int:
        return len(self._leads)

    def get(self, lead_id: str) -> Lead:
        for lead in self._leads:
            if lead.id == lead_id:
                return lead
        raise LeadNotFoundError(lead_id)

    # ------------------------------------------------------------------
    def add_lead(self, lead: Lead) -> Lead:
        if any(existing.id == lead.id for existing in self._leads):
            raise ValueError(f"A lead with id '{lead.id}' already exists")
        if not lead.directors:
            lead.directors.append(Director(id=f"{lead.id}-dir-1"))
        self._leads.append(lead)
        return lead

    def update_lead(
        self,
        lead_id: str,
        *,
        fields: Optional[dict] = None,
        status: Union[LeadStatus, str, None] = None,
        follow_up_date: Optional[str] = None,
        assigned_to: Optional[str] = None,
        registry: Optional[FieldRegistry] = None,
    ) -> Lead:
        """Change company fields and lead attributes; nothing is applied if any value is rejected.

        ``status``, ``followUpDate``, ``assignedTo`` and ``createdAt`` live on the
        lead itself and are refused inside ``fields``. A blank company name is
        always refused; with ``registry`` every required field must stay filled.
        """

        lead = self.get(lead_id)
        updates = {key: str(value).strip() for key, value in (fields or {}).items()}
        director_keys = sorted(set(updates) & set(DIRECTOR_FIELD_KEYS))
        if director_keys:
            raise ValueError(f"Director fields {director_keys} must be changed with update_director()")
        attribute_keys = sorted(set(updates) & set(LEAD_ATTRIBUTE_KEYS))
        if attribute_keys:
            raise ValueError(f"Fields {attribute_keys} must be changed with their own arguments")
        blank_required = sorted(
            key for key, value in updates.items() if not value and self._is_required(key, registry)
        )
        if blank_required:
            raise ValueError(f"Required fields {blank_required} cannot be blank")

        new_status = LeadStatus(status) if status is not None else None
        new_follow_up = self._require_date(follow_up_date, "follow-up date") if follow_up_date is not None else None

        lead.fields.update(updates)
        if new_status is not None:
            lead.status = new_status
        if new_follow_up is not None:
            lead.follow_up_date = new_follow_up
        if assigned_to is not None:
            lead.assigned_to = assigned_to
        return lead

    @staticmethod
    def _is_required(key: str, registry: Optional[FieldRegistry]) -> bool:
        if key == COMPANY_NAME_KEY:
            return True
        descriptor = registry.get(key) if registry is not None else None
        return descriptor is not None and descriptor.required

    def delete_lead(self, lead_id: str) -> Lead:
        lead = self.get(lead_id)
        self._leads.remove(lead)
        return lead

    def assign_lead(self, lead_id: str, user_id: str) -> Lead:
        return self.update_lead(lead_id, assigned_to=user_id)

    def reschedule(self, lead_id: str, follow_up_date: str) -> Lead:
        return self.update_lead(lead_id, follow_up_date=follow_up_date)

    # Directors ---------------------------------------------------------
    def add_director(self, lead_id: str, **values: Any) -> Director:
        lead = self.get(lead_id)
        existing = {director.id for director in lead.directors}
        number = len(lead.directors) + 1
        while f"{lead.id}-dir-{number}" in existing:
            number += 1
        director = Director(id=f"{lead.id}-dir-{number}", **values)
        lead.directors.append(director)
        return director

    def update_director(self, lead_id: str, director_id: str, **values: Any) -> Director:
        director = self._find_director(self.get(lead_id), director_id)
        for name, value in values.items():
            if name == "id" or not hasattr(director, name):
                raise ValueError(f"Directors have no editable field '{name}'")
            setattr(director, name, value)
        return director

    def remove_director(self, lead_id: str, director_id: str) -> Director:
        lead = self.get(lead_id)
        director = self._find_director(lead, director_id)
        if len(lead.directors) == 1:
            raise DirectorRemovalError("At least one director is required")
        lead.directors.remove(director)
        return director

    @staticmethod
    def _find_director(lead: Lead, director_id: str) -> Director:
        for director in lead.directors:
            if director.id == director_id:
                return director
        raise LeadNotFoundError(f"{lead.id}/{director_id}")

    # Follow-ups --------------------------------------------------------
    def add_follow_up(
        self,
        lead_id: str,
        day: str,
        remark: str,
        created_by: str,
        *,
        next_follow_up_date: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> FollowUp:
        """Record a follow-up remark and optionally reschedule the lead."""

        lead = self.get(lead_id)
        if not remark or not remark.strip():
            raise ValueError("Please fill in both date and remark")
        follow_up = FollowUp(
            id=uuid.uuid4().hex,
            date=self._require_date(day, "follow-up date"),
            remark=remark.strip(),
            created_by=created_by,
            created_at=(now or datetime.now(timezone.utc)).isoformat(timespec="seconds"),
        )
        if next_follow_up_date is not None:
            lead.follow_up_date = self._require_date(next_follow_up_date, "next follow-up date")
        lead.history.append(follow_up)
        return follow_up

    def leads_for_date(self, day: Union[str, date]) -> List[Lead]:
        target = normalise_date(day)
        return [lead for lead in self._leads if target and lead.follow_up_date == target]

    def upcoming_follow_ups(self, today: Optional[date] = None, days: int = 7) -> List[Lead]:
        """Leads due between ``today`` and ``today + days`` inclusive, soonest first."""

        start = today or date.today()
        end = start + timedelta(days=days)
        upcoming = []
        for lead in self._leads:
            due = normalise_date(lead.follow_up_date)
            if due and start.isoformat() <= due <= end.isoformat():
                upcoming.append((due, lead))
        upcoming.sort(key=lambda item: item[0])
        return [lead for _, lead in upcoming]

    def search(
        self,
        term: str = "",
        *,
        status: Union[LeadStatus, str, None] = None,
        assigned_to: Optional[str] = None,
    ) -> List[Lead]:
        """Filter leads by company, CIN, or director details plus status and assignee."""

        needle = term.strip().lower()
        wanted_status = LeadStatus(status) if status is not None else None
        matches = []
        for lead in self._leads:
            if wanted_status is not None and lead.status is not wanted_status:
                continue
            if assigned_to is not None and lead.assigned_to != assigned_to:
                continue
            if needle and not _lead_matches(lead, needle):
                continue
            matches.append(lead)
        return matches

    # Lost pool ---------------------------------------------------------
    def mark_as_lost(
        self,
        lead_id: str,
        remark: str,
        user_id: str,
        *,
        is_permanent: bool = False,
        today: Optional[date] = None,
    ) -> LostLead:
        """Move a lead from the active collection into the lost pool."""

        if not remark or not remark.strip():
            raise ValueError("Please provide a reason for marking this lead as lost")
        lead = self.delete_lead(lead_id)
        previous_status = lead.status
        lead.status = LeadStatus.LOST
        lost = LostLead(
            lead=lead,
            lost_by=user_id,
            lost_date=(today or date.today()).isoformat(),
            lost_remark=remark.strip(),
            is_permanent=is_permanent,
            previous_status=previous_status,
        )
        self._lost.append(lost)
        LOGGER.info("Lead %s marked as lost by %s (permanent=%s)", lead_id, user_id, is_permanent)
        return lost

    def restore_lost_lead(self, lead_id: str) -> Lead:
        """Return a lost lead to the active collection with its earlier status.

        A lead that was already ``Lost`` before being moved comes back as ``Cold``.
        """

        lost = self._find_lost(lead_id)
        if lost.is_permanent:
            raise PermanentlyLostError("Permanent lost leads cannot be restored")
        self._lost.remove(lost)
        lead = lost.lead
        lead.status = lost.previous_status if lost.previous_status is not LeadStatus.LOST else LeadStatus.COLD
        self._leads.append(lead)
        LOGGER.info("Lead %s restored with status %s", lead_id, lead.status.value)
        return lead

    def permanently_delete_lost(self, lead_id: str) -> LostLead:
        lost = self._find_lost(lead_id)
        self._lost.remove(lost)
        return lost

    def _find_lost(self, lead_id: str) -> LostLead:
        for lost in self._lost:
            if lost.lead.id == lead_id:
                return lost
        raise LeadNotFoundError(lead_id)

    # Import / export ---------------------------------------------------
    def import_file(
        self,
        source: SourceLike,
        registry: FieldRegistry,
        default_assignee: str = "",
        **options: Any,
    ) -> ImportResult:
        """Import a spreadsheet and append its leads once the whole file has been read."""

        result = import_leads(source, registry, default_assignee, **options)
        self._leads.extend(result.leads)
        return result

    def export_file(
        self,
        path: Union[str, Path],
        registry: FieldRegistry,
        *,
        leads: Optional[Iterable[Lead]] = None,
        assignees: Optional[AssigneeDirectory] = None,
    ) -> Path:
        selected = self._leads if leads is None else list(leads)
        return export_leads(
            selected,
            path,
            registry,
            assignee_name=assignees.name_for if assignees is not None else None,
        )

    @staticmethod
    def _require_date(value: str, label: str) -> str:
        normalised = normalise_date(value)
        if not normalised:
            raise ValueError(f"Invalid {label}: {value!r}")
        return normalised


def _lead_matches(lead: Lead, needle: str) -> bool:
    if needle in lead.company_name.lower() or needle in lead.cin.lower():
        return True
    for director in lead.directors:
        if (
            needle in director.first_name.lower()
            or needle in director.last_name.lower()
            or needle in director.mobile.lower()
            or needle in director.email.lower()
        ):
            return True
    return False


__all__ = [
    "DirectorRemovalError",
    "LeadBook",
    "LeadNotFoundError",
    "PermanentlyLostError",
]
