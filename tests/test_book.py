from datetime import date, datetime, timezone

import pytest

from lead_tracker.book import DirectorRemovalError, LeadBook, LeadNotFoundError, PermanentlyLostError
from lead_tracker.ingestion.loaders import UnsupportedFileTypeError
from lead_tracker.models import Director, Lead, LeadStatus
from lead_tracker.registry import default_registry


@pytest.fixture()
def book():
    return LeadBook(
        [
            Lead(
                id="a",
                fields={"cin": "U1", "companyName": "Acme Pvt Ltd"},
                directors=[Director(id="a-dir-1", first_name="Ada", mobile="555-1111")],
                status=LeadStatus.HOT,
                follow_up_date="2024-06-03",
                assigned_to="1",
            ),
            Lead(
                id="b",
                fields={"cin": "U2", "companyName": "Globex"},
                directors=[Director(id="b-dir-1", first_name="Hank", email="hank@globex.test")],
                status=LeadStatus.WARM,
                follow_up_date="2024-06-01",
                assigned_to="2",
            ),
            Lead(id="c", fields={"companyName": "Initech"}, follow_up_date="2024-07-01"),
        ]
    )


def test_added_leads_always_have_a_director(book):
    lead = book.get("c")

    assert [director.id for director in lead.directors] == ["c-dir-1"]
    assert lead.director_first_name == ""


def test_duplicate_lead_ids_are_rejected(book):
    with pytest.raises(ValueError):
        book.add_lead(Lead(id="a", fields={"companyName": "Again"}))


def test_update_lead_changes_company_fields_and_status(book):
    lead = book.update_lead("a", fields={"notes": "Call after lunch"}, status="Converted", follow_up_date="5/7/2024")

    assert lead.fields["notes"] == "Call after lunch"
    assert lead.status is LeadStatus.CONVERTED
    assert lead.follow_up_date == "2024-07-05"


def test_update_lead_rejects_director_keys_and_bad_values(book):
    with pytest.raises(ValueError):
        book.update_lead("a", fields={"mobile": "000"})
    with pytest.raises(ValueError):
        book.update_lead("a", status="Lukewarm")
    with pytest.raises(ValueError):
        book.reschedule("a", "31/02/2024")
    with pytest.raises(LeadNotFoundError):
        book.update_lead("missing", status="Hot")


def test_update_lead_keeps_required_fields_filled(book):
    with pytest.raises(ValueError):
        book.update_lead("a", fields={"companyName": "  "})
    assert book.get("a").company_name == "Acme Pvt Ltd"

    registry = default_registry().with_flags("cin", required=True)
    with pytest.raises(ValueError):
        book.update_lead("a", fields={"cin": ""}, registry=registry)
    assert book.update_lead("a", fields={"cin": ""}).cin == ""


def test_update_lead_refuses_lead_attributes_inside_fields(book):
    with pytest.raises(ValueError):
        book.update_lead("a", fields={"status": "Cold"})
    with pytest.raises(ValueError):
        book.update_lead("a", fields={"followUpDate": "2024-09-01"})

    lead = book.get("a")
    assert lead.status is LeadStatus.HOT
    assert "status" not in lead.fields


def test_rejected_update_changes_nothing(book):
    with pytest.raises(ValueError):
        book.update_lead("a", fields={"notes": "New note"}, status="Lukewarm")

    assert "notes" not in book.get("a").fields


def test_director_operations_keep_the_legacy_mirror_in_sync(book):
    added = book.add_director("a", first_name="Grace", last_name="Hopper")
    assert added.id == "a-dir-2"

    book.update_director("a", "a-dir-1", mobile="555-9999")
    assert book.get("a").mobile == "555-9999"

    book.remove_director("a", "a-dir-1")
    lead = book.get("a")
    assert lead.director_first_name == "Grace"
    assert lead.mobile == ""

    with pytest.raises(DirectorRemovalError):
        book.remove_director("a", "a-dir-2")
    with pytest.raises(ValueError):
        book.update_director("a", "a-dir-2", id="other")


def test_follow_up_history_and_rescheduling(book):
    now = datetime(2024, 6, 1, 9, 30, tzinfo=timezone.utc)

    entry = book.add_follow_up("a", "01/06/2024", " Spoke to Ada ", "1", next_follow_up_date="2024-06-10", now=now)

    lead = book.get("a")
    assert lead.history == [entry]
    assert entry.date == "2024-06-01"
    assert entry.remark == "Spoke to Ada"
    assert entry.created_at == "2024-06-01T09:30:00+00:00"
    assert lead.follow_up_date == "2024-06-10"

    with pytest.raises(ValueError):
        book.add_follow_up("a", "2024-06-01", "   ", "1")


def test_follow_up_queries(book):
    assert [lead.id for lead in book.leads_for_date(date(2024, 6, 3))] == ["a"]
    assert [lead.id for lead in book.upcoming_follow_ups(today=date(2024, 6, 1))] == ["b", "a"]
    assert book.upcoming_follow_ups(today=date(2024, 6, 1), days=1) == [book.get("b")]


def test_search_matches_company_cin_and_director_details(book):
    assert [lead.id for lead in book.search("acme")] == ["a"]
    assert [lead.id for lead in book.search("u2")] == ["b"]
    assert [lead.id for lead in book.search("hank@")] == ["b"]
    assert [lead.id for lead in book.search(status="Hot")] == ["a"]
    assert [lead.id for lead in book.search(assigned_to="2")] == ["b"]
    assert book.search("nothing like this") == []


def test_mark_as_lost_and_restore(book):
    lost = book.mark_as_lost("a", " Went with a competitor ", "1", today=date(2024, 6, 2))

    assert lost.lead.status is LeadStatus.LOST
    assert lost.previous_status is LeadStatus.HOT
    assert lost.lost_date == "2024-06-02"
    assert lost.lost_remark == "Went with a competitor"
    assert [lead.id for lead in book.leads] == ["b", "c"]

    restored = book.restore_lost_lead("a")

    assert restored.status is LeadStatus.HOT
    assert book.lost_leads == []
    assert "a" in [lead.id for lead in book.leads]


def test_lead_lost_while_already_lost_restores_as_cold(book):
    book.update_lead("c", status=LeadStatus.LOST)
    book.mark_as_lost("c", "No budget", "1")

    assert book.restore_lost_lead("c").status is LeadStatus.COLD


def test_permanent_loss_cannot_be_restored(book):
    book.mark_as_lost("b", "Closed down", "2", is_permanent=True)

    with pytest.raises(PermanentlyLostError):
        book.restore_lost_lead("b")

    removed = book.permanently_delete_lost("b")
    assert removed.lead.id == "b"
    assert book.lost_leads == []
    with pytest.raises(LeadNotFoundError):
        book.restore_lost_lead("b")


def test_mark_as_lost_requires_a_remark(book):
    with pytest.raises(ValueError):
        book.mark_as_lost("a", "", "1")

    assert len(book) == 3


def test_import_file_appends_leads(book, tmp_path):
    source = tmp_path / "new.csv"
    source.write_text("CIN,Company Name,F Name\nU9,Umbrella,Alice\n,,Bob\n", encoding="utf-8")

    result = book.import_file(source, default_registry(), "2", today=date(2024, 6, 1))

    assert result.summary.imported == 1
    assert len(book) == 4
    imported = book.leads[-1]
    assert [director.first_name for director in imported.directors] == ["Alice", "Bob"]
    assert imported.assigned_to == "2"


def test_failed_import_leaves_the_book_untouched(book, tmp_path):
    source = tmp_path / "new.txt"
    source.write_text("CIN\nU9\n", encoding="utf-8")

    with pytest.raises(UnsupportedFileTypeError):
        book.import_file(source, default_registry())

    assert len(book) == 3


def test_export_file_writes_selected_leads(book, tmp_path):
    output = book.export_file(tmp_path / "leads.csv", default_registry(), leads=[book.get("b")])

    lines = output.read_text(encoding="utf-8").splitlines()
    assert len(lines) == 2
    assert "Globex" in lines[1]
