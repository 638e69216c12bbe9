"""Field registry describing the configurable lead columns.

A :class:`FieldRegistry` is an immutable, ordered snapshot of field
descriptors. Callers build (or load) one per import/export operation and pass
it through explicitly; editing a label or export header produces a new
registry instead of mutating shared state.
"""
from __future__ import annotations

import dataclasses
import logging
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Tuple

from .config import ConfigurationError
from .models import DIRECTOR_FIELD_KEYS, DataType, FieldDescriptor

LOGGER = logging.getLogger(__name__)

COMPANY_NAME_KEY = "companyName"
COMPANY_ID_KEY = "cin"

_OVERRIDABLE = {"label", "export_header", "required", "visible_in_form", "visible_in_export"}


class RegistryError(ValueError):
    """Raised when a set of field descriptors breaks the registry invariants."""


class FieldRegistry:
    """Ordered, read-only collection of :class:`FieldDescriptor` objects."""

    def __init__(self, descriptors: Iterable[FieldDescriptor]) -> None:
        self._descriptors: Tuple[FieldDescriptor, ...] = tuple(descriptors)
        self._by_key: Dict[str, FieldDescriptor] = {}
        for descriptor in self._descriptors:
            if descriptor.key in self._by_key:
                raise RegistryError(f"Duplicate field key '{descriptor.key}'")
            self._by_key[descriptor.key] = descriptor
        self._validate_company_name()

    def _validate_company_name(self) -> None:
        descriptor = self._by_key.get(COMPANY_NAME_KEY)
        if descriptor is None:
            raise RegistryError("The registry must define a 'companyName' field")
        if not (descriptor.required and descriptor.visible_in_form and descriptor.visible_in_export):
            raise RegistryError("Company Name must be required and shown in the form and export")

    def __iter__(self) -> Iterator[FieldDescriptor]:
        return iter(self._descriptors)

    def __len__(self) -> int:
        return len(self._descriptors)

    def __contains__(self, key: object) -> bool:
        return key in self._by_key

    def __repr__(self) -> str:
        return f"FieldRegistry({list(self.keys())!r})"

    def get(self, key: str) -> Optional[FieldDescriptor]:
        return self._by_key.get(key)

    def keys(self) -> Tuple[str, ...]:
        return tuple(descriptor.key for descriptor in self._descriptors)

    def form_descriptors(self) -> List[FieldDescriptor]:
        return [descriptor for descriptor in self._descriptors if descriptor.visible_in_form]

    def export_descriptors(self) -> List[FieldDescriptor]:
        return [descriptor for descriptor in self._descriptors if descriptor.visible_in_export]

    def company_descriptors(self) -> List[FieldDescriptor]:
        """Descriptors stored on the lead itself rather than on a director."""

        return [descriptor for descriptor in self._descriptors if descriptor.key not in DIRECTOR_FIELD_KEYS]

    def director_descriptors(self) -> List[FieldDescriptor]:
        return [descriptor for descriptor in self._descriptors if descriptor.key in DIRECTOR_FIELD_KEYS]

    def duplicate_export_headers(self) -> Dict[str, List[str]]:
        """Return export headers shared by more than one exported field."""

        seen: Dict[str, List[str]] = {}
        for descriptor in self.export_descriptors():
            seen.setdefault(descriptor.export_header, []).append(descriptor.key)
        return {header: keys for header, keys in seen.items() if len(keys) > 1}

    # Builder-style copies -------------------------------------------------

    def replace(self, key: str, **changes: Any) -> "FieldRegistry":
        """Return a new registry with the descriptor for ``key`` updated."""

        if key not in self._by_key:
            raise RegistryError(f"Unknown field key '{key}'")
        unknown = set(changes) - _OVERRIDABLE
        if unknown:
            raise RegistryError(f"Fields {sorted(unknown)} cannot be changed on '{key}'")
        return FieldRegistry(
            dataclasses.replace(descriptor, **changes) if descriptor.key == key else descriptor
            for descriptor in self._descriptors
        )

    def with_label(self, key: str, label: str) -> "FieldRegistry":
        return self.replace(key, label=label)

    def with_export_header(self, key: str, header: str) -> "FieldRegistry":
        header = header.strip()
        if not header:
            raise RegistryError(f"Export header for '{key}' cannot be blank")
        return self.replace(key, export_header=header)

    def with_flags(
        self,
        key: str,
        *,
        required: Optional[bool] = None,
        visible_in_form: Optional[bool] = None,
        visible_in_export: Optional[bool] = None,
    ) -> "FieldRegistry":
        changes = {
            name: value
            for name, value in {
                "required": required,
                "visible_in_form": visible_in_form,
                "visible_in_export": visible_in_export,
            }.items()
            if value is not None
        }
        return self.replace(key, **changes)


STATUS_OPTIONS = ("Hot", "Warm", "Cold", "Converted", "Lost")

_DEFAULT_DESCRIPTORS: Tuple[FieldDescriptor, ...] = (
    FieldDescriptor("cin", "CIN", export_header="CIN"),
    FieldDescriptor("companyName", "Company Name", required=True, export_header="Company Name"),
    FieldDescriptor("authorisedCapital", "Authorised Capital", export_header="Authorised Capital(₹)"),
    FieldDescriptor("paidUpCapital", "Paid up Capital", export_header="Paid up Capital(₹)"),
    FieldDescriptor("dateOfIncorporation", "Date of Incorporation", DataType.DATE, export_header="Date of Incorporation"),
    FieldDescriptor("registeredAddress", "Registered Address", DataType.LONGTEXT, export_header="Registered Address"),
    FieldDescriptor("companyEmail", "Company Email", DataType.EMAIL, export_header="Company E-mail id"),
    FieldDescriptor("din", "DIN", export_header="DIN"),
    FieldDescriptor("directorFirstName", "Director First Name", export_header="F Name"),
    FieldDescriptor("directorLastName", "Director Last Name", export_header="L Name"),
    FieldDescriptor("mobile", "Mobile", DataType.PHONE, export_header="Mobile"),
    FieldDescriptor("directorEmail", "Director Email", DataType.EMAIL, export_header="Director E-mail id"),
    FieldDescriptor("status", "Status", DataType.ENUM, required=True, export_header="Status", options=STATUS_OPTIONS),
    FieldDescriptor("followUpDate", "Follow-up Date", DataType.DATE, required=True, export_header="Follow-up Date"),
    FieldDescriptor("notes", "Notes", DataType.LONGTEXT, export_header="Notes"),
    FieldDescriptor("assignedTo", "Assigned To", visible_in_form=False, export_header="Assigned To"),
)


def default_registry() -> FieldRegistry:
    """Return the stock lead field configuration."""

    return FieldRegistry(_DEFAULT_DESCRIPTORS)


def registry_from_config(config: Mapping[str, Any], base: Optional[FieldRegistry] = None) -> FieldRegistry:
    """Apply the ``fields`` overrides of a configuration mapping to ``base``."""

    registry = base or default_registry()
    overrides = config.get("fields") or {}
    if not isinstance(overrides, Mapping):
        raise ConfigurationError("The 'fields' section must map field keys to overrides")

    for key, changes in overrides.items():
        if key not in registry:
            raise ConfigurationError(f"Unknown field '{key}' in configuration")
        if not isinstance(changes, Mapping):
            raise ConfigurationError(f"Overrides for field '{key}' must be a mapping")
        unknown = set(changes) - _OVERRIDABLE
        if unknown:
            raise ConfigurationError(f"Unsupported overrides {sorted(unknown)} for field '{key}'")
        try:
            registry = registry.replace(str(key), **dict(changes))
        except RegistryError as exc:
            raise ConfigurationError(str(exc)) from exc
        LOGGER.debug("Applied configuration overrides to field %s: %s", key, sorted(changes))

    return registry


__all__ = [
    "COMPANY_ID_KEY",
    "COMPANY_NAME_KEY",
    "FieldRegistry",
    "RegistryError",
    "STATUS_OPTIONS",
    "default_registry",
    "registry_from_config",
]
