from datetime import date, datetime

import pandas as pd
import pytest
from openpyxl import Workbook

from lead_tracker.ingestion import loaders
from lead_tracker.ingestion.loaders import (
    SpreadsheetReadError,
    UnsupportedFileTypeError,
    import_leads,
    read_rows,
)
from lead_tracker.registry import default_registry


@pytest.fixture()
def sample_dataframe():
    return pd.DataFrame(
        [
            {
                "C.I.N": "U74999DL2020PTC123456",
                "Company name": "Analytical Engines Pvt Ltd",
                "Authorised Capital": "10,00,000",
                "First Name": "Ada",
                "Last Name": "Lovelace",
                "Mobile No": "555-1111",
            },
            {
                "C.I.N": "",
                "Company name": "",
                "Authorised Capital": "",
                "First Name": "Charles",
                "Last Name": "Babbage",
                "Mobile No": "555-2222",
            },
            {
                "C.I.N": "U72200MH2019PLC234567",
                "Company name": "Difference Works",
                "Authorised Capital": "50,00,000",
                "First Name": "Grace",
                "Last Name": "Hopper",
                "Mobile No": "",
            },
        ]
    )


def test_read_rows_from_csv_strips_quotes_and_keeps_text(sample_dataframe, tmp_path):
    csv_path = tmp_path / "leads.csv"
    sample_dataframe.to_csv(csv_path, index=False)

    rows = read_rows(csv_path)

    assert len(rows) == 3
    assert rows[0]["Authorised Capital"] == "10,00,000"
    assert rows[0]["C.I.N"] == "U74999DL2020PTC123456"
    assert rows[1]["C.I.N"] == ""
    assert list(rows[0]) == list(sample_dataframe.columns)


def test_import_leads_from_csv_groups_directors(sample_dataframe, tmp_path):
    csv_path = tmp_path / "leads.csv"
    sample_dataframe.to_csv(csv_path, index=False)

    result = import_leads(csv_path, default_registry(), "u1", today=date(2024, 6, 1))

    assert result.summary.imported == 2
    assert result.summary.skipped == 0
    first, second = result.leads
    assert first.company_name == "Analytical Engines Pvt Ltd"
    assert first.fields["authorisedCapital"] == "10,00,000"
    assert [d.last_name for d in first.directors] == ["Lovelace", "Babbage"]
    assert [d.mobile for d in first.directors] == ["555-1111", "555-2222"]
    assert second.directors[0].first_name == "Grace"


def test_import_leads_from_excel_with_automatic_mapping(sample_dataframe, tmp_path):
    excel_path = tmp_path / "leads.xlsx"
    sample_dataframe.to_excel(excel_path, index=False)

    result = import_leads(excel_path, default_registry(), today=date(2024, 6, 1))

    assert [lead.cin for lead in result.leads] == ["U74999DL2020PTC123456", "U72200MH2019PLC234567"]
    assert len(result.leads[0].directors) == 2


def test_excel_header_row_is_the_first_non_empty_row(tmp_path):
    workbook = Workbook()
    sheet = workbook.active
    sheet.append([None, None, None])
    sheet.append(["CIN", "Company Name", "DIN", "Date of Incorporation", None])
    sheet.append(["U1", "Acme", 8765432, datetime(2020, 5, 15), "ignored"])
    sheet.append([None, None, None, None, None])
    sheet.append(["U2", "Globex", None, "15/05/2021", None])
    sheet.append([None, None, None, None, None])
    other = workbook.create_sheet("Second")
    other.append(["CIN", "Company Name"])
    other.append(["U9", "Never read"])
    excel_path = tmp_path / "leads.xlsx"
    workbook.save(excel_path)

    rows = read_rows(excel_path)

    assert len(rows) == 3
    assert set(rows[0]) == {"CIN", "Company Name", "DIN", "Date of Incorporation"}
    assert rows[0]["DIN"] == 8765432

    result = import_leads(excel_path, default_registry(), today=date(2024, 6, 1))
    assert result.summary.skipped == 1
    assert [lead.fields["dateOfIncorporation"] for lead in result.leads] == ["2020-05-15", "2021-05-15"]
    assert result.leads[0].directors[0].din == ""


def test_import_leads_accepts_bytes_with_a_filename():
    payload = b'CIN,Company Name,F Name\nU1,"Acme, Inc",Ada\n,,Grace\n'

    result = import_leads(payload, default_registry(), filename="upload.CSV", today=date(2024, 6, 1))

    (lead,) = result.leads
    assert lead.company_name == "Acme, Inc"
    assert [d.first_name for d in lead.directors] == ["Ada", "Grace"]


def test_csv_interior_blank_rows_are_counted_and_trailing_ones_dropped(tmp_path):
    csv_path = tmp_path / "leads.csv"
    csv_path.write_text("CIN,Company Name\nU1,Acme\n,\nU2,Globex\n,\n,\n", encoding="utf-8")

    rows = read_rows(csv_path)
    result = import_leads(csv_path, default_registry(), today=date(2024, 6, 1))

    assert len(rows) == 3
    assert result.summary.total_rows == 3
    assert result.summary.skipped == 1


def test_xls_files_use_the_same_header_inference(monkeypatch):
    grid = pd.DataFrame(
        [
            [None, None],
            ["CIN", "Company Name"],
            ["U1", "Acme"],
        ]
    )
    seen = {}

    def fake_read_excel(buffer, **kwargs):
        seen.update(kwargs)
        return grid

    monkeypatch.setattr(loaders.pd, "read_excel", fake_read_excel)

    rows = read_rows(b"binary", filename="legacy.xls")

    assert rows == [{"CIN": "U1", "Company Name": "Acme"}]
    assert seen["header"] is None
    assert seen["sheet_name"] == 0


def test_unsupported_file_extension(tmp_path):
    bad_path = tmp_path / "leads.json"
    bad_path.write_text("{}", encoding="utf-8")

    with pytest.raises(UnsupportedFileTypeError):
        read_rows(bad_path)

    with pytest.raises(UnsupportedFileTypeError):
        import_leads(b"CIN\nU1\n", default_registry())


def test_corrupt_workbook_raises_read_error(tmp_path):
    broken = tmp_path / "broken.xlsx"
    broken.write_bytes(b"this is not a zip archive")

    with pytest.raises(SpreadsheetReadError):
        read_rows(broken)


def test_missing_file_raises_read_error(tmp_path):
    with pytest.raises(SpreadsheetReadError):
        read_rows(tmp_path / "missing.csv")
