"""
Minimal PDF synthesis from plain text.

:func:`create_document` writes a self-contained, single-page PDF 1.7 file
by hand: catalog, page tree, one page, a standard Type1 font, and a
content stream holding one text block.  Object offsets in the
cross-reference table, the stream ``/Length`` and ``startxref`` are all
measured from the emitted bytes, so conforming readers open the file
without falling back to repair.

:func:`edit_document` replaces one page's text and re-synthesizes the
whole document into a single page; the original layout is not kept.
"""

import logging
from typing import List, Sequence, Tuple

from pdfcore.document.loader import load_document

from .extraction import PAGE_SEPARATOR, extract_page_texts

logger = logging.getLogger(__name__)

PDF_HEADER = b"%PDF-1.7\n%\xe2\xe3\xcf\xd3\n"
MEDIA_BOX = (0, 0, 612, 792)  # US Letter in points

DEFAULT_FONT = "Helvetica"
DEFAULT_FONT_SIZE = 12.0
DEFAULT_ORIGIN = (36.0, 700.0)

# Text is written with the font's WinAnsi encoding
TEXT_ENCODING = "cp1252"


def _fmt(value: float) -> str:
    """Format a number for PDF syntax without a trailing ``.0``."""
    text = f"{float(value):.4f}".rstrip("0").rstrip(".")
    return text if text not in ("", "-0") else "0"


def escape_pdf_text(text: str) -> str:
    """Escape the characters that delimit PDF literal strings."""
    return text.replace("\\", "\\\\").replace("(", "\\(").replace(")", "\\)")


def build_content_stream(
    text: str,
    font_size: float = DEFAULT_FONT_SIZE,
    origin: Tuple[float, float] = DEFAULT_ORIGIN,
) -> bytes:
    """
    Build the page content stream: one ``BT``/``ET`` block at *origin*,
    one ``Tj`` per input line, lines advanced with ``T*``.
    """
    leading = font_size * 1.2
    ops: List[str] = [
        "BT",
        f"/F1 {_fmt(font_size)} Tf",
        f"{_fmt(leading)} TL",
        f"{_fmt(origin[0])} {_fmt(origin[1])} Td",
    ]

    for index, line in enumerate(text.splitlines()):
        if index:
            ops.append("T*")
        if line:
            ops.append(f"({escape_pdf_text(line)}) Tj")

    ops.append("ET")
    return "\n".join(ops).encode(TEXT_ENCODING, errors="replace")


def write_pdf(objects: Sequence[bytes]) -> bytes:
    """
    Serialise numbered objects (1..N, in order) into a complete PDF file.

    Each xref entry is exactly 20 bytes and points at the first byte of
    its ``N 0 obj`` line.
    """
    buf = bytearray(PDF_HEADER)
    offsets: List[int] = []

    for number, body in enumerate(objects, start=1):
        offsets.append(len(buf))
        buf += f"{number} 0 obj\n".encode("ascii")
        buf += body
        buf += b"\nendobj\n"

    xref_offset = len(buf)
    size = len(objects) + 1
    buf += f"xref\n0 {size}\n".encode("ascii")
    buf += b"0000000000 65535 f \n"
    for offset in offsets:
        buf += f"{offset:010d} 00000 n \n".encode("ascii")

    buf += (
        f"trailer\n<< /Size {size} /Root 1 0 R >>\n"
        f"startxref\n{xref_offset}\n%%EOF\n"
    ).encode("ascii")
    return bytes(buf)


def create_document(
    text: str,
    font: str = DEFAULT_FONT,
    font_size: float = DEFAULT_FONT_SIZE,
    origin: Tuple[float, float] = DEFAULT_ORIGIN,
) -> bytes:
    """
    Create a single-page PDF containing *text*.

    Args:
        text:      Text to typeset; newlines start new lines
        font:      Standard 14 font name (e.g. ``"Helvetica"``, ``"Courier"``)
        font_size: Font size in points
        origin:    Baseline origin of the first line, in PDF user space

    Returns:
        The complete PDF file as bytes.
    """
    stream = build_content_stream(text, font_size=font_size, origin=origin)
    media_box = " ".join(_fmt(v) for v in MEDIA_BOX)

    objects = [
        b"<< /Type /Catalog /Pages 2 0 R >>",
        b"<< /Type /Pages /Kids [3 0 R] /Count 1 >>",
        (
            f"<< /Type /Page /Parent 2 0 R /MediaBox [{media_box}] "
            f"/Resources << /Font << /F1 4 0 R >> >> /Contents 5 0 R >>"
        ).encode("ascii"),
        (
            f"<< /Type /Font /Subtype /Type1 /BaseFont /{font} "
            f"/Encoding /WinAnsiEncoding >>"
        ).encode("ascii"),
        f"<< /Length {len(stream)} >>\nstream\n".encode("ascii")
        + stream
        + b"\nendstream",
    ]

    data = write_pdf(objects)
    logger.debug("Synthesized %d-byte document (%d-byte stream)", len(data), len(stream))
    return data


def edit_document(
    content: bytes, text: str, page_number: int = 1, show_progress: bool = False
) -> bytes:
    """
    Replace the text of one page and re-synthesize the document.

    All page texts are extracted, page *page_number* (1-based) is replaced
    by *text*, and the pages are joined with blank lines into a single-page
    document.  An out-of-range page number leaves every page unchanged.

    Raises:
        ParseError: If *content* is not a valid PDF
    """
    with load_document(content) as handle:
        page_texts = extract_page_texts(handle, show_progress=show_progress)

    if 1 <= page_number <= len(page_texts):
        page_texts[page_number - 1] = text
    else:
        logger.info(
            "Page %d out of range (document has %d pages); no page replaced",
            page_number,
            len(page_texts),
        )

    return create_document(PAGE_SEPARATOR.join(page_texts))
