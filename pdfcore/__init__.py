"""
PDF access layer for background document tasks.
Loading from byte buffers and span-level text runs; no rendering.
"""

from .document import DocumentHandle, load_document
from .errors import CorruptPageError, DocumentError, ParseError
from .page import PageText, TextRun, extract_page_text

__all__ = [
    "DocumentHandle",
    "load_document",
    "PageText",
    "TextRun",
    "extract_page_text",
    "DocumentError",
    "ParseError",
    "CorruptPageError",
]
