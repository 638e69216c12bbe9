"""Top-level package for the lead tracking spreadsheet toolkit."""

from . import ingestion, models  # noqa: F401
from .book import LeadBook  # noqa: F401
from .models import (
    Assignee,
    AssigneeDirectory,
    DataType,
    Director,
    FieldDescriptor,
    FollowUp,
    ImportResult,
    ImportSummary,
    Lead,
    LeadStatus,
    LostLead,
)
from .registry import FieldRegistry, default_registry  # noqa: F401

__all__ = [
    "Assignee",
    "AssigneeDirectory",
    "DataType",
    "Director",
    "FieldDescriptor",
    "FieldRegistry",
    "FollowUp",
    "ImportResult",
    "ImportSummary",
    "Lead",
    "LeadBook",
    "LeadStatus",
    "LostLead",
    "default_registry",
    "ingestion",
]
