from __future__ import annotations

import fitz
import pytest

from pdfcore.document import loader
from pdfcore.document.loader import load_document
from pdfcore.errors import CorruptPageError, ParseError
from pdfcore.page.models import DEFAULT_RUN_HEIGHT, PageText, TextRun
from pdfcore.page.text_runs import _span_to_run


def test_load_document_reports_pages_and_size(three_page_pdf: bytes) -> None:
    with load_document(three_page_pdf) as handle:
        assert handle.page_count == 3
        assert handle.byte_length == len(three_page_pdf)


@pytest.mark.parametrize("content", [None, b"", bytearray()])
def test_load_document_rejects_missing_content(content) -> None:
    with pytest.raises(ParseError):
        load_document(content)


def test_load_document_rejects_non_pdf_bytes() -> None:
    with pytest.raises(ParseError):
        load_document(b"this is plainly not a pdf document")


def test_load_document_rejects_encrypted_document(hello_pdf: bytes) -> None:
    doc = fitz.open(stream=hello_pdf, filetype="pdf")
    encrypted = doc.tobytes(
        encryption=fitz.PDF_ENCRYPT_AES_256, owner_pw="owner", user_pw="user"
    )
    doc.close()

    with pytest.raises(ParseError, match="encrypted"):
        load_document(encrypted)


def test_load_document_copies_the_callers_buffer(hello_pdf: bytes) -> None:
    buffer = bytearray(hello_pdf)
    with load_document(buffer) as handle:
        buffer[:] = b"\x00" * len(buffer)
        assert handle.page_runs(1).text == "Hello world"


def test_load_page_out_of_range_raises_corrupt_page(hello_pdf: bytes) -> None:
    with load_document(hello_pdf) as handle:
        with pytest.raises(CorruptPageError) as excinfo:
            handle.load_page(2)
    assert excinfo.value.page_number == 2
    assert "Page 2" in str(excinfo.value)


def test_closed_handle_refuses_page_access(hello_pdf: bytes) -> None:
    handle = load_document(hello_pdf)
    handle.close()
    with pytest.raises(CorruptPageError, match="closed"):
        handle.page_runs(1)


def test_page_runs_carry_baseline_origin_and_font_size(make_pdf) -> None:
    content = make_pdf([(72, 100, "first"), (72, 140, "second")])
    with load_document(content) as handle:
        page_text = handle.page_runs(1)

    assert [run.text for run in page_text.runs] == ["first", "second"]
    first = page_text.runs[0]
    assert first.page_number == 1
    assert first.x == pytest.approx(72, abs=0.5)
    # baseline at 100pt from the top of a 792pt page, in y-up user space
    assert first.y == pytest.approx(792 - 100, abs=0.5)
    assert first.height == pytest.approx(12)
    assert first.width > 0


def test_blank_page_has_no_runs(make_pdf) -> None:
    with load_document(make_pdf([])) as handle:
        page_text = handle.page_runs(1)
    assert page_text.is_empty
    assert page_text.text == ""


def test_page_text_offsets_follow_single_space_join() -> None:
    runs = tuple(
        TextRun(text=t, x=0, y=10, width=10, height=10, page_number=1)
        for t in ("ab", "", "cde")
    )
    page_text = PageText(page_number=1, runs=runs)

    assert page_text.text == "ab  cde"
    assert page_text.offsets() == [(0, 2), (3, 3), (4, 7)]
    for run, (start, end) in zip(runs, page_text.offsets()):
        assert page_text.text[start:end] == run.text


def test_span_without_size_gets_default_height() -> None:
    span = {"text": "x", "bbox": (10, 20, 18, 32), "origin": (10, 30), "size": 0}
    run = _span_to_run(span, page_number=4)

    assert run.height == DEFAULT_RUN_HEIGHT
    assert run.width == pytest.approx(8)
    assert (run.x, run.y) == (10, 30)
    assert run.top == pytest.approx(30 - DEFAULT_RUN_HEIGHT)


def test_text_failure_is_reported_against_its_page(
    three_page_pdf: bytes, monkeypatch: pytest.MonkeyPatch
) -> None:
    def _fail(page, page_number):
        raise RuntimeError("cannot decode font")

    monkeypatch.setattr(loader, "extract_page_text", _fail)

    with load_document(three_page_pdf) as handle:
        with pytest.raises(CorruptPageError) as excinfo:
            handle.page_runs(2)

    assert excinfo.value.page_number == 2
    assert "cannot decode font" in str(excinfo.value)
    assert isinstance(excinfo.value.__cause__, RuntimeError)
