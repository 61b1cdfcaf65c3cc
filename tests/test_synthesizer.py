from __future__ import annotations

import re

import fitz
import pytest

from offload.engines.extraction import extract_text
from offload.engines.synthesizer import (
    build_content_stream,
    create_document,
    edit_document,
    escape_pdf_text,
)
from offload.errors import ParseError
from pdfcore.document.loader import load_document


def _normalize(text: str) -> str:
    return " ".join(text.split())


def _text_of(content: bytes) -> str:
    with load_document(content) as handle:
        return _normalize(extract_text(handle))


def _xref_entries(data: bytes) -> list[int]:
    start = int(re.search(rb"startxref\n(\d+)\n%%EOF\n$", data).group(1))
    assert data[start:].startswith(b"xref\n")
    header = re.match(rb"xref\n0 (\d+)\n", data[start:])
    size = int(header.group(1))
    table = data[start + header.end():]
    entries = [table[i * 20 : (i + 1) * 20] for i in range(size)]
    assert entries[0] == b"0000000000 65535 f \n"
    return [int(entry[:10]) for entry in entries[1:]]


def test_create_document_framing() -> None:
    data = create_document("Hello")
    assert data.startswith(b"%PDF-1.7\n")
    assert data.endswith(b"%%EOF\n")
    assert b"/MediaBox [0 0 612 792]" in data
    assert b"/BaseFont /Helvetica" in data


def test_xref_offsets_point_at_object_headers() -> None:
    data = create_document("Offsets must be exact\nacross several lines")
    offsets = _xref_entries(data)

    assert len(offsets) == 5
    for number, offset in enumerate(offsets, start=1):
        assert data[offset:].startswith(f"{number} 0 obj\n".encode("ascii"))


def test_stream_length_matches_stream_bytes() -> None:
    data = create_document("(parens) and \\ backslash")
    found = re.search(rb"<< /Length (\d+) >>\nstream\n", data)
    length = int(found.group(1))
    body = data[found.end():]
    assert body[length:].startswith(b"\nendstream")


def test_synthesized_document_opens_without_repair() -> None:
    data = create_document("Clean file")
    doc = fitz.open(stream=data, filetype="pdf")
    try:
        assert not doc.is_repaired
        assert doc.page_count == 1
        assert tuple(doc[0].rect) == (0, 0, 612, 792)
    finally:
        doc.close()


def test_create_round_trips_text_with_delimiters() -> None:
    assert _text_of(create_document(r"a (nested) \ case")) == r"a (nested) \ case"


def test_each_line_becomes_a_show_operation() -> None:
    stream = build_content_stream("one\n\ntwo", font_size=10, origin=(50, 700))
    ops = stream.decode("cp1252").split("\n")

    assert ops[:4] == ["BT", "/F1 10 Tf", "12 TL", "50 700 Td"]
    assert ops[4:] == ["(one) Tj", "T*", "T*", "(two) Tj", "ET"]


def test_escape_pdf_text_escapes_backslash_first() -> None:
    assert escape_pdf_text(r"\(x)") == r"\\\(x\)"


def test_unencodable_characters_are_replaced() -> None:
    stream = build_content_stream("café ☃")
    assert b"(caf\xe9 ?) Tj" in stream


def test_custom_font_is_declared() -> None:
    data = create_document("mono", font="Courier", font_size=10)
    assert b"/BaseFont /Courier" in data
    assert b"/F1 10 Tf" in data


def test_edit_replaces_requested_page(three_page_pdf: bytes) -> None:
    edited = edit_document(three_page_pdf, "Replaced text", page_number=2)
    assert _text_of(edited) == _normalize(
        "Alpha page mentions the cat Replaced text Gamma page: another cat appears"
    )


def test_edit_out_of_range_keeps_every_page(three_page_pdf: bytes) -> None:
    edited = edit_document(three_page_pdf, "ignored", page_number=9)
    assert "ignored" not in _text_of(edited)
    assert _text_of(edited) == _normalize(
        "Alpha page mentions the cat Beta page has nothing Gamma page: another cat appears"
    )


def test_edit_rejects_invalid_document() -> None:
    with pytest.raises(ParseError):
        edit_document(b"%PDF-garbage", "text")
