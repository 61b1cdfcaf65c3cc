"""
Errors raised while reading PDF documents.
"""


class DocumentError(Exception):
    """Base error for document loading and page access."""


class ParseError(DocumentError):
    """Raised when a byte buffer cannot be opened as a PDF document."""


class CorruptPageError(DocumentError):
    """Raised when a single page cannot be loaded or its text read."""

    def __init__(self, page_number: int, message: str):
        super().__init__(f"Page {page_number}: {message}")
        self.page_number = page_number
