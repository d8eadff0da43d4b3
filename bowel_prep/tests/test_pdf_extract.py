from __future__ import annotations

import csv
from pathlib import Path

import pytest
from docx import Document

from bowel_prep import instruction_extractor
from bowel_prep.instruction_extractor import intake, pdf, pipeline, sink, sources
from bowel_prep.instruction_extractor.errors import (
    ExtractionError,
    UnsupportedDocumentError,
    UploadRejected,
)
from bowel_prep.instruction_extractor.normalize import normalize_lines
from bowel_prep.instruction_extractor.pdf import extract_pdf_text
from bowel_prep.scripts import extract_instructions

BACKENDS = ["pypdf"]

PREP_SHEET_LINES = [
    "Plenvu Prep Instructions",
    "Take first dose 2 days before procedure at 6pm",
    "Eat light breakfast",
    "Procedure in the morning, split dose required",
    "Page 1",
]

SHORT_SHEET_LINES = ["Plenvu prep", "Drink fluids at 6pm"]


def _escape_pdf_string(value: str) -> str:
    return value.replace("\\", "\\\\").replace("(", "\\(").replace(")", "\\)")


def build_pdf(lines: list[str]) -> bytes:
    """Build a single-page PDF with one text line per vertical position."""
    operations = ["BT", "/F1 12 Tf", "72 720 Td"]
    for index, line in enumerate(lines):
        if index:
            operations.append("0 -24 Td")
        operations.append(f"({_escape_pdf_string(line)}) Tj")
    operations.append("ET")
    stream = "\n".join(operations).encode("latin-1")
    objects = [
        b"<< /Type /Catalog /Pages 2 0 R >>",
        b"<< /Type /Pages /Kids [3 0 R] /Count 1 >>",
        b"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] "
        b"/Contents 4 0 R /Resources << /Font << /F1 5 0 R >> >> >>",
        b"<< /Length %d >>\nstream\n" % len(stream) + stream + b"\nendstream",
        b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>",
    ]
    output = bytearray(b"%PDF-1.4\n")
    offsets: list[int] = []
    for number, body in enumerate(objects, start=1):
        offsets.append(len(output))
        output += b"%d 0 obj\n" % number + body + b"\nendobj\n"
    xref_offset = len(output)
    output += b"xref\n0 %d\n" % (len(objects) + 1)
    output += b"0000000000 65535 f \n"
    for offset in offsets:
        output += b"%010d 00000 n \n" % offset
    output += b"trailer\n<< /Size %d /Root 1 0 R >>\n" % (len(objects) + 1)
    output += b"startxref\n%d\n%%%%EOF\n" % xref_offset
    return bytes(output)


@pytest.fixture()
def prep_pdf(tmp_path: Path) -> Path:
    path = tmp_path / "plenvu_sheet.pdf"
    path.write_bytes(build_pdf(PREP_SHEET_LINES))
    return path


@pytest.fixture()
def blank_pdf(tmp_path: Path) -> Path:
    path = tmp_path / "scanned.pdf"
    path.write_bytes(build_pdf([]))
    return path


@pytest.fixture()
def short_pdf(tmp_path: Path) -> Path:
    path = tmp_path / "short_sheet.pdf"
    path.write_bytes(build_pdf(SHORT_SHEET_LINES))
    return path


def read_csv(path: Path) -> list[list[str]]:
    with path.open("r", encoding="utf-8", newline="") as fh:
        return list(csv.reader(fh))


def test_extract_pdf_text_groups_lines_by_position(prep_pdf: Path) -> None:
    text, meta = extract_pdf_text(prep_pdf, min_chars=20, prefer_backends=BACKENDS)
    lines = [line.strip() for line in text.splitlines() if line.strip()]
    assert lines == PREP_SHEET_LINES
    assert meta["backend"] == "pypdf"
    assert meta["bytes"] > 0
    assert meta["error"] is None


def test_extract_pdf_text_blank_returns_empty(blank_pdf: Path) -> None:
    text, meta = extract_pdf_text(blank_pdf, min_chars=20, prefer_backends=BACKENDS)
    assert text == ""
    assert meta["backend"] == "none"
    assert meta["chars"] == 0


def test_extract_pdf_text_keeps_short_text(short_pdf: Path) -> None:
    text, meta = extract_pdf_text(short_pdf, min_chars=40, prefer_backends=BACKENDS)
    assert normalize_lines(text) == SHORT_SHEET_LINES
    assert meta["backend"] == "pypdf"
    assert meta["error"] is None
    assert any("shorter than min_chars" in warning for warning in meta["warnings"])


def test_extract_pdf_text_with_pdfminer(prep_pdf: Path) -> None:
    text, meta = extract_pdf_text(prep_pdf, min_chars=20, prefer_backends=["pdfminer"])
    assert normalize_lines(text) == PREP_SHEET_LINES[:-1]
    assert meta["backend"] == "pdfminer"
    assert meta["repaired"] is False


def test_extract_pdf_text_after_pikepdf_repair(prep_pdf: Path) -> None:
    text, meta = extract_pdf_text(prep_pdf, min_chars=20, prefer_backends=["pikepdf+pypdf"])
    assert normalize_lines(text) == PREP_SHEET_LINES[:-1]
    assert meta["backend"] == "pikepdf+pypdf"
    assert meta["repaired"] is True


def test_extract_pdf_text_falls_back_to_next_backend(
    prep_pdf: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    def broken_reader(path: Path) -> tuple[str, list[str]]:
        raise RuntimeError("xref table damaged")

    monkeypatch.setattr(pdf, "_extract_with_pypdf", broken_reader)
    text, meta = extract_pdf_text(prep_pdf, min_chars=20, prefer_backends=["pypdf", "pdfminer"])
    assert "Eat light breakfast" in normalize_lines(text)
    assert meta["backend"] == "pdfminer"
    assert "pypdf: xref table damaged" in meta["warnings"]


def test_extract_pdf_text_unknown_backend(prep_pdf: Path) -> None:
    text, meta = extract_pdf_text(prep_pdf, prefer_backends=["bogus"])
    assert text == ""
    assert meta["backend"] == "none"
    assert "unknown backend" in meta["error"]


def test_backend_order_from_environment(
    prep_pdf: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("PREP_PDF_BACKENDS", "pdfminer, pypdf")
    _, meta = extract_pdf_text(prep_pdf, min_chars=20)
    assert meta["backend"] == "pdfminer"


@pytest.mark.parametrize(
    ("env_value", "expected"),
    [
        ("5", 5),
        ("not-a-number", pdf.DEFAULT_MIN_PDF_CHARS),
        ("-3", 0),
        ("", pdf.DEFAULT_MIN_PDF_CHARS),
    ],
)
def test_resolve_min_pdf_chars_from_environment(
    env_value: str, expected: int, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("PREP_MIN_PDF_CHARS", env_value)
    assert pdf.resolve_min_pdf_chars(None) == expected
    assert pdf.resolve_min_pdf_chars(12) == 12


def test_process_document_writes_csv(prep_pdf: Path, tmp_path: Path) -> None:
    output = tmp_path / "out" / "output.csv"
    result = pipeline.process_document(prep_pdf, output, pdf_backends=BACKENDS)
    assert result.success
    assert result.message == pipeline.SUCCESS_MESSAGE
    assert result.output_path == output
    assert [record.order for record in result.records] == [1, 2, 3, 4]

    rows = read_csv(output)
    assert rows[0] == list(sink.RECORD_FIELDS)
    assert rows[2] == [
        "plenvu",
        "2",
        "bowelprep",
        "Take first dose 2 days before procedure at 6pm",
        "-2",
        "18.0",
        "true",
        "morning",
    ]
    # no time token -> empty cell
    assert rows[1][5] == ""
    assert len(rows) == 5


def test_process_document_reports_unreadable_pdf(blank_pdf: Path, tmp_path: Path) -> None:
    output = tmp_path / "output.csv"
    result = pipeline.process_document(blank_pdf, output, pdf_backends=BACKENDS)
    assert not result.success
    assert result.message.startswith("Error processing PDF:")
    assert result.records == []
    assert not output.exists()


def test_process_document_accepts_short_pdf(short_pdf: Path, tmp_path: Path) -> None:
    # a short sheet sits under the default min_chars but is still readable
    output = tmp_path / "output.csv"
    result = pipeline.process_document(short_pdf, output, pdf_backends=BACKENDS)
    assert result.success, result.message
    assert [record.message for record in result.records] == SHORT_SHEET_LINES
    assert result.records[1].time == 18.0
    assert result.records[1].bowelprep == "plenvu"
    assert len(read_csv(output)) == 3


def test_process_document_reports_missing_file(tmp_path: Path) -> None:
    result = pipeline.process_document(tmp_path / "missing.pdf", tmp_path / "output.csv")
    assert not result.success
    assert "File not found" in result.message


def test_load_document_text_plain_text(tmp_path: Path) -> None:
    path = tmp_path / "sheet.txt"
    path.write_text("Moviprep prep guide\nDrink clear fluids 2 days before\n", encoding="utf-8")
    records = pipeline.extract_records(sources.load_document_text(path))
    assert [record.bowelprep for record in records] == ["moviprep", "moviprep"]
    assert records[1].offset == -2


def test_load_document_text_html(tmp_path: Path) -> None:
    path = tmp_path / "sheet.html"
    path.write_text(
        "<html><head><style>p {color: red}</style></head><body>"
        "<h1>Glycoprep prep</h1><p>Eat light breakfast</p><p>Page 2</p></body></html>",
        encoding="utf-8",
    )
    records = pipeline.extract_records(sources.load_document_text(path))
    assert [record.message for record in records] == ["Glycoprep prep", "Eat light breakfast"]
    assert records[1].bowelprep == "glycoprep"


def test_load_document_text_docx(tmp_path: Path) -> None:
    path = tmp_path / "sheet.docx"
    document = Document()
    document.add_paragraph("Picolax prep instructions")
    document.add_paragraph("Stop iron tablets 7 days before procedure")
    document.save(str(path))
    records = pipeline.extract_records(sources.load_document_text(path))
    assert records[1].category == "medication"
    assert records[1].offset == -7
    assert records[1].bowelprep == "picolax"


def test_load_document_text_rejects_unknown_suffix(tmp_path: Path) -> None:
    path = tmp_path / "sheet.rtf"
    path.write_text("text", encoding="utf-8")
    with pytest.raises(UnsupportedDocumentError):
        sources.load_document_text(path)


def test_load_document_text_rejects_empty_text(tmp_path: Path) -> None:
    path = tmp_path / "empty.txt"
    path.write_text("   \n", encoding="utf-8")
    with pytest.raises(ExtractionError):
        sources.load_document_text(path)


def test_cli_writes_output(
    prep_pdf: Path, tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    output = tmp_path / "output.csv"
    extract_instructions.main(
        [str(prep_pdf), "--output", str(output), "--pdf-backends", "pypdf"]
    )
    assert "CSV file has been created successfully" in capsys.readouterr().out
    assert len(read_csv(output)) == 5


def test_cli_requires_path() -> None:
    with pytest.raises(SystemExit) as excinfo:
        extract_instructions.main([])
    assert excinfo.value.code != 0


def test_cli_failure_does_not_exit(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    output = tmp_path / "output.csv"
    extract_instructions.main([str(tmp_path / "missing.pdf"), "--output", str(output)])
    assert "successfully" not in capsys.readouterr().out
    assert not output.exists()


def test_parse_backend_list() -> None:
    assert extract_instructions.parse_backend_list("pypdf, pdfminer,") == ["pypdf", "pdfminer"]
    assert extract_instructions.parse_backend_list("") is None


@pytest.mark.parametrize(
    ("content_type", "size"),
    [
        ("text/plain", 100),
        (None, 100),
        ("application/pdf", intake.MAX_UPLOAD_BYTES + 1),
    ],
)
def test_validate_upload_rejects(content_type: str | None, size: int) -> None:
    with pytest.raises(UploadRejected):
        intake.validate_upload("sheet.pdf", content_type, size)


def test_validate_upload_accepts_pdf_at_limit() -> None:
    intake.validate_upload("sheet.pdf", "application/pdf", intake.MAX_UPLOAD_BYTES)


def test_output_path_for_uses_base_name(tmp_path: Path) -> None:
    assert intake.output_path_for(tmp_path, "My Prep.Sheet.pdf") == tmp_path / "My Prep.Sheet.csv"


def test_process_upload_converts_and_cleans_up(prep_pdf: Path, tmp_path: Path) -> None:
    upload = tmp_path / "uploads" / "1700000000-42"
    upload.parent.mkdir()
    upload.write_bytes(prep_pdf.read_bytes())
    output_dir = tmp_path / "output"
    result = intake.process_upload(
        upload, "plenvu_sheet.pdf", "application/pdf", output_dir, pdf_backends=BACKENDS
    )
    assert result.success
    assert result.output_path == output_dir / "plenvu_sheet.csv"
    assert result.output_path.exists()
    assert not upload.exists()


def test_process_upload_rejects_and_cleans_up(tmp_path: Path) -> None:
    upload = tmp_path / "upload.bin"
    upload.write_bytes(b"not a pdf")
    result = intake.process_upload(upload, "notes.txt", "text/plain", tmp_path / "output")
    assert not result.success
    assert result.message == "Only PDF files are allowed"
    assert not upload.exists()
    assert not (tmp_path / "output").exists()


def test_process_upload_cleans_up_after_failure(blank_pdf: Path, tmp_path: Path) -> None:
    result = intake.process_upload(
        blank_pdf, "scanned.pdf", "application/pdf", tmp_path / "output", pdf_backends=BACKENDS
    )
    assert not result.success
    assert not blank_pdf.exists()


def test_read_records_returns_records_without_csv(tmp_path: Path) -> None:
    path = tmp_path / "sheet.txt"
    path.write_text("Plenvu prep\nProcedure in the morning\n", encoding="utf-8")
    records = instruction_extractor.read_records(path)
    assert [record.procedure_time for record in records] == ["morning", "morning"]
    assert not list(tmp_path.glob("*.csv"))
