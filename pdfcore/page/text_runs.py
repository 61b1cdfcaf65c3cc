"""
Span-level text run extraction for PDF pages.
"""

from typing import List, Optional

import fitz

from .models import DEFAULT_RUN_HEIGHT, PageText, TextRun


def extract_page_text(page: fitz.Page, page_number: int) -> PageText:
    """
    Extract the positioned text runs of a page.

    Each PyMuPDF span becomes one :class:`TextRun`, positioned at the span's
    baseline origin in PDF user space (origin bottom-left, y grows upward),
    the same space annotation rectangles are stored in.  Spans are visited
    in content-stream order (no reading-order sort), so run order reflects
    the document's internal ordering.

    Args:
        page:        PyMuPDF page object
        page_number: 1-based page number recorded on each run

    Returns:
        :class:`PageText` for the page (no runs for image-only pages)
    """
    flags = fitz.TEXT_PRESERVE_WHITESPACE | fitz.TEXT_PRESERVE_LIGATURES
    text_dict = page.get_text("dict", flags=flags, sort=False)

    # get_text reports y-down page coordinates
    to_user = ~page.transformation_matrix

    runs: List[TextRun] = []

    for block_data in text_dict.get("blocks", []):
        # Skip image blocks
        if block_data.get("type") != 0:
            continue

        for line_data in block_data.get("lines", []):
            for span_data in line_data.get("spans", []):
                runs.append(_span_to_run(span_data, page_number, to_user))

    return PageText(page_number=page_number, runs=tuple(runs))


def _span_to_run(
    span_data: dict, page_number: int, to_user: Optional[fitz.Matrix] = None
) -> TextRun:
    """Convert a PyMuPDF span dict into a TextRun."""
    x0, y0, x1, y1 = span_data.get("bbox", (0, 0, 0, 0))
    origin = fitz.Point(span_data.get("origin", (x0, y1)))
    if to_user is not None:
        origin = origin * to_user

    height = span_data.get("size") or 0.0
    if height <= 0:
        height = DEFAULT_RUN_HEIGHT

    return TextRun(
        text=span_data.get("text", ""),
        x=float(origin.x),
        y=float(origin.y),
        width=float(max(0.0, x1 - x0)),
        height=float(height),
        page_number=page_number,
    )
