"""
Document engines run inside execution contexts.
"""

from .annotations import (
    build_annotation_summary,
    extract_annotations,
    save_annotations,
)
from .extraction import extract_page_texts, extract_region_text, extract_text
from .search import search_document
from .synthesizer import create_document, edit_document

__all__ = [
    "extract_text",
    "extract_page_texts",
    "extract_region_text",
    "search_document",
    "extract_annotations",
    "save_annotations",
    "build_annotation_summary",
    "create_document",
    "edit_document",
]
