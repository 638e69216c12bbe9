"""Unified data models for leads, directors, field descriptors, and import results."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

RawRow = Dict[str, Any]


# --- Field descriptors ---

class DataType(str, Enum):
    """Kinds of values a configurable lead field can hold."""

    TEXT = "text"
    EMAIL = "email"
    PHONE = "phone"
    DATE = "date"
    LONGTEXT = "longtext"
    ENUM = "enum"


@dataclass(frozen=True)
class FieldDescriptor:
    """Describes one configurable lead column for forms, imports, and exports."""

    key: str
    label: str
    data_type: DataType = DataType.TEXT
    required: bool = False
    visible_in_form: bool = True
    visible_in_export: bool = True
    export_header: str = ""
    options: Tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if not self.export_header:
            object.__setattr__(self, "export_header", self.label)


# Descriptor keys stored on a director rather than on the lead itself, mapped to
# the :class:`Director` attribute that holds them.
DIRECTOR_FIELD_KEYS: Mapping[str, str] = {
    "din": "din",
    "directorFirstName": "first_name",
    "directorLastName": "last_name",
    "mobile": "mobile",
    "directorEmail": "email",
}

# Descriptor keys stored as dedicated :class:`Lead` attributes instead of ``fields``.
LEAD_ATTRIBUTE_KEYS: Mapping[str, str] = {
    "status": "status",
    "followUpDate": "follow_up_date",
    "assignedTo": "assigned_to",
    "createdAt": "created_at",
}


# --- Leads ---

class LeadStatus(str, Enum):
    HOT = "Hot"
    WARM = "Warm"
    COLD = "Cold"
    CONVERTED = "Converted"
    LOST = "Lost"

    @classmethod
    def parse(cls, value: Any, default: Optional["LeadStatus"] = None) -> "LeadStatus":
        """Match ``value`` case-insensitively, falling back to ``default`` (Cold)."""

        if isinstance(value, LeadStatus):
            return value
        text = str(value or "").strip().lower()
        for status in cls:
            if status.value.lower() == text:
                return status
        return default or cls.COLD


@dataclass
class Director:
    """A director nested under exactly one lead."""

    id: str
    din: str = ""
    first_name: str = ""
    last_name: str = ""
    mobile: str = ""
    email: str = ""

    @property
    def full_name(self) -> str:
        return " ".join(filter(None, [self.first_name, self.last_name])).strip()

    def has_contact_data(self) -> bool:
        """Return ``True`` when a name or contact detail is present."""

        return any([self.first_name, self.last_name, self.mobile, self.email])


@dataclass
class FollowUp:
    """A remark recorded against a lead on a given day."""

    id: str
    date: str
    remark: str
    created_by: str = ""
    created_at: str = ""


@dataclass
class Lead:
    """A company lead with its directors and follow-up history."""

    id: str
    fields: Dict[str, str] = field(default_factory=dict)
    directors: List[Director] = field(default_factory=list)
    status: LeadStatus = LeadStatus.COLD
    follow_up_date: str = ""
    created_at: str = ""
    assigned_to: str = ""
    history: List[FollowUp] = field(default_factory=list)

    @property
    def company_name(self) -> str:
        return self.fields.get("companyName", "")

    @property
    def cin(self) -> str:
        return self.fields.get("cin", "")

    # Legacy mirror of the first director. These are always derived from
    # ``directors[0]`` and cannot be assigned.

    @property
    def primary_director(self) -> Optional[Director]:
        return self.directors[0] if self.directors else None

    @property
    def din(self) -> str:
        return self._mirror("din")

    @property
    def director_first_name(self) -> str:
        return self._mirror("first_name")

    @property
    def director_last_name(self) -> str:
        return self._mirror("last_name")

    @property
    def mobile(self) -> str:
        return self._mirror("mobile")

    @property
    def director_email(self) -> str:
        return self._mirror("email")

    def _mirror(self, attribute: str) -> str:
        director = self.primary_director
        if director is None:
            return ""
        return getattr(director, attribute)

    def legacy_view(self) -> Dict[str, str]:
        """Return the first director's values keyed by their legacy field keys."""

        return {key: self._mirror(attribute) for key, attribute in DIRECTOR_FIELD_KEYS.items()}

    def value_for(self, key: str) -> str:
        """Return the value of any descriptor key as text."""

        if key == "status":
            return self.status.value
        if key in LEAD_ATTRIBUTE_KEYS:
            return getattr(self, LEAD_ATTRIBUTE_KEYS[key]) or ""
        if key in DIRECTOR_FIELD_KEYS:
            return self._mirror(DIRECTOR_FIELD_KEYS[key])
        return self.fields.get(key, "")

    def to_dict(self) -> Dict[str, Any]:
        """Return a JSON serialisable representation including the legacy mirror."""

        data = asdict(self)
        data["status"] = self.status.value
        data["legacy"] = self.legacy_view()
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Lead":
        return cls(
            id=str(data["id"]),
            fields={str(key): str(value) for key, value in (data.get("fields") or {}).items()},
            directors=[Director(**director) for director in data.get("directors") or []],
            status=LeadStatus.parse(data.get("status")),
            follow_up_date=data.get("follow_up_date") or "",
            created_at=data.get("created_at") or "",
            assigned_to=data.get("assigned_to") or "",
            history=[FollowUp(**entry) for entry in data.get("history") or []],
        )


@dataclass
class LostLead:
    """A lead moved out of the active collection after being marked as lost."""

    lead: Lead
    lost_by: str
    lost_date: str
    lost_remark: str
    is_permanent: bool = False
    previous_status: LeadStatus = LeadStatus.COLD


# --- Assignees ---

@dataclass(frozen=True)
class Assignee:
    id: str
    name: str


class AssigneeDirectory:
    """Lookup between user ids and display names for lead assignment."""

    UNASSIGNED = "Unassigned"

    def __init__(self, assignees: Iterable[Assignee] = ()) -> None:
        self._by_id: Dict[str, Assignee] = {}
        for assignee in assignees:
            self._by_id[assignee.id] = assignee

    def __len__(self) -> int:
        return len(self._by_id)

    def __contains__(self, user_id: object) -> bool:
        return user_id in self._by_id

    def name_for(self, user_id: str) -> str:
        """Return the display name for ``user_id`` or ``Unassigned``."""

        assignee = self._by_id.get(user_id)
        return assignee.name if assignee else self.UNASSIGNED

    def resolve(self, value: str) -> Optional[str]:
        """Return the user id matching ``value`` by id or by case-insensitive name."""

        text = (value or "").strip()
        if not text:
            return None
        if text in self._by_id:
            return text
        lowered = text.lower()
        for assignee in self._by_id.values():
            if assignee.name.strip().lower() == lowered:
                return assignee.id
        return None


# --- Import results ---

@dataclass
class ImportSummary:
    """Counts reported to the user after an import."""

    imported: int = 0
    skipped: int = 0
    total_rows: int = 0

    def message(self) -> str:
        if self.imported == 0:
            return "No valid leads found. Check that the file has a 'Company Name' or 'CIN' column."
        if self.skipped:
            return (
                f"Successfully imported {self.imported} leads. "
                f"{self.skipped} rows skipped (empty or invalid data)."
            )
        return f"Successfully imported {self.imported} leads!"


@dataclass
class ImportResult:
    """Leads produced by one import together with its summary."""

    leads: List[Lead] = field(default_factory=list)
    summary: ImportSummary = field(default_factory=ImportSummary)

    @property
    def skipped_rows(self) -> int:
        return self.summary.skipped


__all__ = [
    "Assignee",
    "AssigneeDirectory",
    "DataType",
    "DIRECTOR_FIELD_KEYS",
    "Director",
    "FieldDescriptor",
    "FollowUp",
    "ImportResult",
    "ImportSummary",
    "LEAD_ATTRIBUTE_KEYS",
    "Lead",
    "LeadStatus",
    "LostLead",
    "RawRow",
]
