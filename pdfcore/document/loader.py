"""
PDF document loading for background tasks.
Documents are opened from in-memory byte buffers, never from file paths.
"""

import logging
from typing import Union

import fitz  # PyMuPDF

from pdfcore.errors import CorruptPageError, ParseError
from pdfcore.page.models import PageText
from pdfcore.page.text_runs import extract_page_text

logger = logging.getLogger(__name__)

ByteBuffer = Union[bytes, bytearray, memoryview]


class DocumentHandle:
    """
    Page-addressable handle over an open PDF document.

    Owned by the task that loaded it and closed when that task finishes.
    Pages are addressed 1-based, matching the page numbers reported in
    search matches and annotations.
    """

    def __init__(self, doc: fitz.Document, byte_length: int):
        self.doc = doc
        self.page_count: int = doc.page_count
        self.byte_length = byte_length

    def load_page(self, page_number: int) -> fitz.Page:
        """
        Load a page object.

        Args:
            page_number: 1-based page number

        Returns:
            PyMuPDF page object

        Raises:
            CorruptPageError: If the page is out of range or cannot be loaded
        """
        if self.doc is None:
            raise CorruptPageError(page_number, "document is closed")
        if page_number < 1 or page_number > self.page_count:
            raise CorruptPageError(
                page_number, f"out of range (document has {self.page_count} pages)"
            )

        try:
            return self.doc.load_page(page_number - 1)
        except Exception as e:
            raise CorruptPageError(page_number, f"failed to load: {e}") from e

    def page_runs(self, page_number: int) -> PageText:
        """
        Read the positioned text runs of a page.

        Raises:
            CorruptPageError: If the page or its text content is unreadable
        """
        page = self.load_page(page_number)
        try:
            return extract_page_text(page, page_number)
        except Exception as e:
            raise CorruptPageError(page_number, f"failed to read text: {e}") from e

    def to_bytes(self) -> bytes:
        """Serialize the (possibly modified) document."""
        return self.doc.tobytes(garbage=1, deflate=True)

    def close(self) -> None:
        """Close the underlying document."""
        if self.doc:
            self.doc.close()
            self.doc = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def __repr__(self) -> str:
        return f"DocumentHandle(pages={self.page_count}, bytes={self.byte_length})"


def load_document(content: ByteBuffer) -> DocumentHandle:
    """
    Open a PDF document from a byte buffer.

    A private copy of *content* is taken before parsing, so the caller may
    reuse or mutate its buffer while the document is open.

    Args:
        content: Raw PDF bytes

    Returns:
        An open :class:`DocumentHandle`

    Raises:
        ParseError: If the buffer is empty, not a PDF, encrypted, or has no pages
    """
    if content is None:
        raise ParseError("No document content supplied")

    data = bytes(content)
    if not data:
        raise ParseError("Document content is empty")

    try:
        doc = fitz.open(stream=data, filetype="pdf")
    except Exception as e:
        raise ParseError(f"Failed to open PDF: {e}") from e

    if doc.needs_pass:
        doc.close()
        raise ParseError("Document is encrypted")

    if doc.page_count < 1:
        doc.close()
        raise ParseError("Document has no pages")

    if doc.is_repaired:
        logger.debug("Document structure was repaired while loading")

    handle = DocumentHandle(doc, byte_length=len(data))
    logger.debug("Loaded %r", handle)
    return handle
