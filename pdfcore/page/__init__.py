"""
Page text runs for PDF documents.
"""

from .models import DEFAULT_RUN_HEIGHT, PageText, TextRun
from .text_runs import extract_page_text

__all__ = [
    "TextRun",
    "PageText",
    "DEFAULT_RUN_HEIGHT",
    "extract_page_text",
]
