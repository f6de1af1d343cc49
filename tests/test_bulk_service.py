"""Tests for the bulk import wizard and spreadsheet parsing."""
import io

import pytest
from openpyxl import Workbook

from qrstudio.core.exceptions import ValidationError
from qrstudio.services.bulk_service import BULK_DESIGN, BulkImportSession, BulkState
from qrstudio.services.file_service import FileService
from qrstudio.services.qr_service import qr_service

LINKS_CSV = (
    b"Label,Link\n"
    b"Home,https://example.com\n"
    b"Docs,https://example.com/docs\n"
    b"Blog,https://example.com/blog\n"
)


def _xlsx(rows):
    wb = Workbook()
    ws = wb.active
    for row in rows:
        ws.append(row)
    extra = wb.create_sheet("Ignored")
    extra.append(["Nope", "Nope"])
    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()


class FakeStore:
    """Stands in for the QR store: records requests, fails on demand."""

    def __init__(self, fail_names=()):
        self.requests = []
        self.fail_names = set(fail_names)

    def __call__(self, request):
        self.requests.append(request)
        if request["name"] in self.fail_names:
            raise ValidationError("Please enter a valid URL")
        return type("QR", (), {"id": len(self.requests), "name": request["name"]})()


def _mapped(content, filename="links.csv", name="Label", link="Link"):
    session = BulkImportSession()
    session.upload(filename, content)
    session.map_field("name", name)
    session.map_field("content", link)
    return session


def test_csv_upload_moves_to_mapping():
    session = BulkImportSession()
    columns = session.upload("links.csv", LINKS_CSV)
    assert columns == ["Label", "Link"]
    assert session.state is BulkState.MAPPING
    assert len(session.rows) == 3
    assert session.rows[0] == {"Label": "Home", "Link": "https://example.com"}


def test_blank_rows_are_dropped():
    content = b"Label,Link\nA,https://a.io\n,\nB,https://b.io\n"
    session = BulkImportSession()
    session.upload("links.csv", content)
    assert [r["Label"] for r in session.rows] == ["A", "B"]


def test_header_only_file_is_rejected_and_stays_in_upload():
    session = BulkImportSession()
    with pytest.raises(ValidationError):
        session.upload("empty.csv", b"Label,Link\n")
    assert session.state is BulkState.UPLOAD


def test_unsupported_extension():
    with pytest.raises(ValidationError):
        BulkImportSession().upload("links.txt", LINKS_CSV)


def test_row_and_size_limits():
    files = FileService(max_rows=2, max_upload_mb=1)
    with pytest.raises(ValidationError):
        files.parse("links.csv", LINKS_CSV)
    with pytest.raises(ValidationError):
        files.parse("big.csv", b"a,b\n" + b"x,y\n" * 300_000)


def test_xlsx_first_sheet_only():
    content = _xlsx([["Label", "Link"], ["Home", "https://example.com"], [None, None], ["Code", 42]])
    session = BulkImportSession()
    columns = session.upload("links.xlsx", content)
    assert columns == ["Label", "Link"]
    assert session.rows == [
        {"Label": "Home", "Link": "https://example.com"},
        {"Label": "Code", "Link": "42"},
    ]


def test_corrupt_xlsx_is_a_validation_error():
    with pytest.raises(ValidationError):
        BulkImportSession().upload("broken.xlsx", b"not a zip file")


def test_type_and_mapping_validation():
    session = BulkImportSession()
    session.upload("links.csv", LINKS_CSV)
    with pytest.raises(ValidationError):
        session.set_qr_type("wifi")
    with pytest.raises(ValidationError):
        session.map_field("title", "Label")
    with pytest.raises(ValidationError):
        session.map_field("name", "Missing")
    session.set_qr_type("text")
    assert session.qr_type == "text"


def test_preview_annotates_columns():
    preview = _mapped(LINKS_CSV).preview()
    assert preview["row_count"] == 3
    assert preview["columns"] == [
        {"name": "Label", "mapped_to": "name"},
        {"name": "Link", "mapped_to": "content"},
    ]
    assert preview["rows"][0] == {"row": 1, "name": "Home", "content": "https://example.com"}


def test_generate_requires_both_mappings():
    session = BulkImportSession()
    session.upload("links.csv", LINKS_CSV)
    session.map_field("name", "Label")
    with pytest.raises(ValidationError):
        session.generate(FakeStore())
    assert session.state is BulkState.MAPPING


def test_create_called_once_per_complete_row():
    content = (
        b"Label,Link\n"
        b"A,https://a.io\n"
        b",https://no-name.io\n"
        b"C,\n"
        b"D,https://d.io\n"
    )
    store = FakeStore()
    report = _mapped(content).generate(store)

    assert len(store.requests) == 2
    assert report.created_count == 2
    assert report.skipped_count == 2
    assert [o.status for o in report.outcomes] == ["created", "skipped", "skipped", "created"]
    assert store.requests[0]["design"] == BULK_DESIGN
    assert store.requests[0]["is_dynamic"] is True and store.requests[0]["is_active"] is True


def test_failed_row_does_not_abort():
    store = FakeStore(fail_names={"Docs"})
    session = _mapped(LINKS_CSV)
    report = session.generate(store)

    assert len(store.requests) == 3
    assert report.created_count == 2
    assert report.failed_count == 1
    failed = [o for o in report.outcomes if o.status == "failed"]
    assert failed[0].row == 2 and "valid URL" in failed[0].reason
    assert session.state is BulkState.RESULTS


def test_samples_and_remaining():
    rows = b"".join(f"Q{i},https://q{i}.io\n".encode() for i in range(8))
    report = _mapped(b"Label,Link\n" + rows).generate(FakeStore())
    assert len(report.samples) == 5
    assert report.remaining == 3


def test_reset_and_back():
    session = _mapped(LINKS_CSV)
    session.back()
    assert session.state is BulkState.UPLOAD and session.columns == []

    session = _mapped(LINKS_CSV)
    session.generate(FakeStore())
    with pytest.raises(ValidationError):
        session.back()
    session.reset()
    assert session.state is BulkState.UPLOAD
    assert session.report is None and session.mapping == {}


def test_three_row_csv_end_to_end(db, make_user):
    owner = make_user(role="editor")
    session = BulkImportSession()
    session.upload("links.csv", LINKS_CSV)
    session.set_qr_type("url")
    session.map_field("name", "Label")
    session.map_field("content", "Link")

    report = session.generate(lambda request: qr_service.create(db, owner, request))

    assert report.created_count == 3
    assert [qr.type for qr in report.created] == ["url", "url", "url"]
    assert [qr.content for qr in report.created] == [
        "https://example.com",
        "https://example.com/docs",
        "https://example.com/blog",
    ]
    assert {qr.owner_id for qr in report.created} == {owner.id}


def test_short_row_is_padded_not_collapsed():
    content = b"Label,Link,Notes\nHome,https://a.io\nDocs,https://b.io,n\n"
    session = BulkImportSession()
    assert session.upload("links.csv", content) == ["Label", "Link", "Notes"]
    assert session.rows == [
        {"Label": "Home", "Link": "https://a.io", "Notes": ""},
        {"Label": "Docs", "Link": "https://b.io", "Notes": "n"},
    ]


def test_single_column_with_semicolons_keeps_its_header():
    session = BulkImportSession()
    assert session.upload("links.csv", b"Label\nhttps://a.io?x=1;y=2\n") == ["Label"]
    assert session.rows == [{"Label": "https://a.io?x=1;y=2"}]


def test_quoted_commas_stay_in_one_cell():
    session = BulkImportSession()
    session.upload("links.csv", b'Label,Link\n"Home, sweet",https://a.io\n')
    assert session.rows == [{"Label": "Home, sweet", "Link": "https://a.io"}]


def test_content_is_passed_through_unstripped():
    content = b'Label,Body\nNote,"  indented text  "\nBlank,"   "\n'
    session = BulkImportSession()
    session.upload("notes.csv", content)
    session.set_qr_type("text")
    session.map_field("name", "Label")
    session.map_field("content", "Body")
    store = FakeStore()
    report = session.generate(store)

    assert [r["content"] for r in store.requests] == ["  indented text  "]
    assert [o.status for o in report.outcomes] == ["created", "skipped"]
