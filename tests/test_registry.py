import pytest

from lead_tracker.config import ConfigurationError
from lead_tracker.models import DataType, FieldDescriptor
from lead_tracker.registry import FieldRegistry, RegistryError, default_registry, registry_from_config


def test_default_registry_order_and_partitions():
    registry = default_registry()

    assert registry.keys()[:2] == ("cin", "companyName")
    assert len(registry) == 16
    assert [d.key for d in registry.director_descriptors()] == [
        "din",
        "directorFirstName",
        "directorLastName",
        "mobile",
        "directorEmail",
    ]
    assert "status" in [d.key for d in registry.company_descriptors()]
    assert "assignedTo" not in [d.key for d in registry.form_descriptors()]
    assert registry.get("dateOfIncorporation").data_type is DataType.DATE
    assert registry.get("status").options == ("Hot", "Warm", "Cold", "Converted", "Lost")


def test_export_header_defaults_to_label():
    descriptor = FieldDescriptor("website", "Web Site")

    assert descriptor.export_header == "Web Site"


def test_registry_edits_return_new_snapshots():
    registry = default_registry()

    renamed = registry.with_export_header("companyName", " Firm ").with_label("cin", "Company ID")

    assert renamed.get("companyName").export_header == "Firm"
    assert renamed.get("cin").label == "Company ID"
    assert registry.get("companyName").export_header == "Company Name"
    assert registry.get("cin").label == "CIN"


def test_blank_export_header_is_rejected():
    with pytest.raises(RegistryError):
        default_registry().with_export_header("companyName", "   ")


def test_company_name_cannot_be_hidden_or_optional():
    registry = default_registry()

    with pytest.raises(RegistryError):
        registry.with_flags("companyName", visible_in_export=False)
    with pytest.raises(RegistryError):
        registry.with_flags("companyName", required=False)


def test_unknown_keys_and_fixed_attributes_are_rejected():
    registry = default_registry()

    with pytest.raises(RegistryError):
        registry.with_label("nope", "Nope")
    with pytest.raises(RegistryError):
        registry.replace("cin", data_type=DataType.DATE)


def test_registry_requires_unique_keys_and_company_name():
    with pytest.raises(RegistryError):
        FieldRegistry([FieldDescriptor("cin", "CIN")])
    with pytest.raises(RegistryError):
        FieldRegistry(
            [
                FieldDescriptor("companyName", "Company Name", required=True),
                FieldDescriptor("companyName", "Name", required=True),
            ]
        )


def test_duplicate_export_headers_are_reported():
    registry = default_registry().with_export_header("paidUpCapital", "Authorised Capital(₹)")

    assert registry.duplicate_export_headers() == {
        "Authorised Capital(₹)": ["authorisedCapital", "paidUpCapital"]
    }
    assert default_registry().duplicate_export_headers() == {}


def test_registry_from_config_applies_overrides():
    config = {
        "fields": {
            "companyName": {"export_header": "Firm"},
            "notes": {"visible_in_export": False, "label": "Remarks"},
        }
    }

    registry = registry_from_config(config)

    assert registry.get("companyName").export_header == "Firm"
    assert registry.get("notes").label == "Remarks"
    assert "notes" not in [d.key for d in registry.export_descriptors()]
    assert registry_from_config({}).keys() == default_registry().keys()


@pytest.mark.parametrize(
    "fields",
    [
        {"unknown": {"label": "X"}},
        {"cin": {"data_type": "date"}},
        {"cin": "CIN"},
        {"companyName": {"required": False}},
        ["cin"],
    ],
)
def test_registry_from_config_rejects_invalid_overrides(fields):
    with pytest.raises(ConfigurationError):
        registry_from_config({"fields": fields})
