from __future__ import annotations

from typing import Callable, Sequence

import fitz
import pytest

# One page: a list of (x, y, text) lines drawn at baseline (x, y) in page space
PageSpec = Sequence[tuple[float, float, str]]


def build_pdf(*pages: PageSpec, fontsize: float = 12) -> bytes:
    doc = fitz.open()
    for lines in pages:
        page = doc.new_page(width=612, height=792)
        for x, y, text in lines:
            page.insert_text((x, y), text, fontsize=fontsize, fontname="helv")
    data = doc.tobytes()
    doc.close()
    return data


@pytest.fixture
def make_pdf() -> Callable[..., bytes]:
    return build_pdf


@pytest.fixture
def hello_pdf() -> bytes:
    return build_pdf([(72, 100, "Hello world")])


@pytest.fixture
def three_page_pdf() -> bytes:
    return build_pdf(
        [(72, 100, "Alpha page mentions the cat")],
        [(72, 100, "Beta page has nothing")],
        [(72, 100, "Gamma page: another cat appears")],
    )


@pytest.fixture
def annotated_pdf() -> bytes:
    doc = fitz.open()
    page = doc.new_page(width=612, height=792)
    page.insert_text((72, 100), "Annotated text", fontname="helv")

    highlight = page.add_highlight_annot(fitz.Rect(72, 88, 160, 102))
    highlight.set_colors(stroke=(1, 0, 0))
    highlight.set_info(content="important")
    highlight.update()

    note = page.add_text_annot(fitz.Point(300, 300), "a sticky note")
    note.update()

    square = page.add_rect_annot(fitz.Rect(100, 400, 200, 450))
    square.set_colors(stroke=(0, 0, 1))
    square.update()

    underline = page.add_underline_annot(fitz.Rect(72, 88, 160, 102))
    underline.update()

    doc.new_page(width=612, height=792)

    data = doc.tobytes()
    doc.close()
    return data


@pytest.fixture
def damaged_middle_page_pdf(three_page_pdf: bytes) -> bytes:
    """The three-page document with page 2's content stream replaced by a plain string."""
    doc = fitz.open(stream=three_page_pdf, filetype="pdf")
    page = doc[1]
    doc.xref_set_key(page.xref, "Contents", "(not a content stream)")
    doc.xref_set_key(page.xref, "Resources", "(not a resource dictionary)")
    data = doc.tobytes()
    doc.close()
    return data
