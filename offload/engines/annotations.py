"""
Annotation extraction, embedding, and summaries.

Native PDF annotations are normalised into :class:`Annotation` objects:
subtypes are mapped through a fixed table (unknown subtypes become
highlights), the ``/Rect`` box is converted to ``x/y/width/height`` with
``y`` at the bottom edge, and the stroke color becomes a ``#rrggbb``
string.
"""

import logging
import uuid
from collections import defaultdict
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Union

import fitz

from offload.errors import InvalidArgumentError
from offload.models import Annotation, AnnotationRect, AnnotationType
from offload.utils.colors import hex_to_rgb, rgb_to_hex
from pdfcore.document.loader import DocumentHandle, load_document
from pdfcore.errors import CorruptPageError

from .extraction import page_progress

logger = logging.getLogger(__name__)

AnnotationLike = Union[Annotation, Dict[str, Any]]


# ---------------------------------------------------------------------------
# Extraction
# ---------------------------------------------------------------------------


def _generate_id() -> str:
    return f"annotation-{uuid.uuid4().hex[:12]}"


def _native_box(
    doc: fitz.Document, page: fitz.Page, annot: fitz.Annot
) -> Tuple[float, float, float, float]:
    """
    Return the annotation's ``/Rect`` as ``(left, bottom, right, top)`` in
    PDF user space.

    Reads the raw ``/Rect`` array; when that is unreadable, maps PyMuPDF's
    page-space rect back through the inverse page transformation.
    """
    kind, value = doc.xref_get_key(annot.xref, "Rect")
    if kind == "array":
        try:
            numbers = [float(v) for v in value.strip("[]").split()]
        except ValueError:
            numbers = []
        if len(numbers) == 4:
            x0, y0, x1, y1 = numbers
            return min(x0, x1), min(y0, y1), max(x0, x1), max(y0, y1)

    r = annot.rect * ~page.transformation_matrix
    return r.x0, r.y0, r.x1, r.y1


def normalize_annotation(
    doc: fitz.Document, page: fitz.Page, annot: fitz.Annot, page_number: int
) -> Annotation:
    """Convert one PyMuPDF annotation into the :class:`Annotation` schema."""
    info = annot.info or {}
    left, bottom, right, top = _native_box(doc, page, annot)
    stroke = (annot.colors or {}).get("stroke")

    return Annotation(
        id=info.get("id") or _generate_id(),
        type=AnnotationType.from_native(annot.type[1] if annot.type else None),
        page_number=page_number,
        rect=AnnotationRect.from_box(left, bottom, right, top),
        content=info.get("content") or None,
        color=rgb_to_hex(stroke),
    )


def read_page_annotations(handle: DocumentHandle, page_number: int) -> List[Annotation]:
    """
    Read and normalise every annotation on one page.

    Raises:
        CorruptPageError: If the page or its annotation list is unreadable
    """
    page = handle.load_page(page_number)
    try:
        return [
            normalize_annotation(handle.doc, page, annot, page_number)
            for annot in page.annots()
        ]
    except Exception as e:
        raise CorruptPageError(page_number, f"failed to read annotations: {e}") from e


def extract_annotations(
    handle: DocumentHandle, show_progress: bool = False
) -> List[Annotation]:
    """
    Extract annotations from every page, in page order.

    Pages whose annotations cannot be read are logged and skipped.
    """
    annotations: List[Annotation] = []

    for page_number in page_progress(
        handle, desc="Reading annotations", show_progress=show_progress
    ):
        try:
            annotations.extend(read_page_annotations(handle, page_number))
        except CorruptPageError as e:
            logger.warning("Skipping page during annotation extraction: %s", e)

    logger.debug(
        "Extracted %d annotations from %d pages", len(annotations), handle.page_count
    )
    return annotations


# ---------------------------------------------------------------------------
# Embedding
# ---------------------------------------------------------------------------


def coerce_annotations(items: Optional[Iterable[AnnotationLike]]) -> List[Annotation]:
    """
    Accept annotations as :class:`Annotation` objects or ``to_dict()`` dicts.

    Raises:
        InvalidArgumentError: If an entry is neither, or is malformed
    """
    annotations: List[Annotation] = []
    for item in items or []:
        if isinstance(item, Annotation):
            annotations.append(item)
        elif isinstance(item, dict):
            annotations.append(Annotation.from_dict(item))
        else:
            raise InvalidArgumentError(f"Unsupported annotation entry: {item!r}")
    return annotations


def _add_native_annotation(page: fitz.Page, annotation: Annotation) -> fitz.Annot:
    """Insert *annotation* into *page* as a native PDF annotation."""
    left, bottom, right, top = annotation.rect.to_box()
    # User space (y up) → PyMuPDF page space (y down)
    rect = fitz.Rect(left, bottom, right, top) * page.transformation_matrix
    rgb = hex_to_rgb(annotation.color)
    content = annotation.content or ""
    kind = annotation.type

    if kind is AnnotationType.NOTE:
        annot = page.add_text_annot(rect.top_left, content)
    elif kind is AnnotationType.FREETEXT:
        annot = page.add_freetext_annot(rect, content, text_color=rgb)
    elif kind is AnnotationType.SQUARE:
        annot = page.add_rect_annot(rect)
    elif kind is AnnotationType.CIRCLE:
        annot = page.add_circle_annot(rect)
    elif kind is AnnotationType.INK:
        outline = [
            rect.top_left,
            rect.top_right,
            rect.bottom_right,
            rect.bottom_left,
            rect.top_left,
        ]
        annot = page.add_ink_annot([[(p.x, p.y) for p in outline]])
    else:
        annot = page.add_highlight_annot(rect)

    # FreeText carries its color on the text, not the border
    if kind is not AnnotationType.FREETEXT:
        annot.set_colors(stroke=rgb)
    if content:
        annot.set_info(content=content)
    annot.update()
    # /NM carries the id read back by extraction
    page.parent.xref_set_key(annot.xref, "NM", fitz.get_pdf_str(annotation.id))
    return annot


def save_annotations(
    content: bytes, annotations: Optional[Iterable[AnnotationLike]]
) -> bytes:
    """
    Write annotations into a document and return the new document bytes.

    Annotations whose id already exists on their page are left alone, and
    annotations on pages the document does not have are skipped.  When
    nothing is written (including an empty list) the original bytes are
    returned unchanged.

    Raises:
        ParseError:           If *content* is not a valid PDF
        InvalidArgumentError: If an annotation entry is malformed
    """
    requested = coerce_annotations(annotations)
    if not requested:
        logger.debug("No annotations to save; returning document unchanged")
        return bytes(content)

    by_page: Dict[int, List[Annotation]] = defaultdict(list)
    for annotation in requested:
        by_page[annotation.page_number].append(annotation)

    added = 0
    with load_document(content) as handle:
        for page_number in sorted(by_page):
            if not 1 <= page_number <= handle.page_count:
                logger.warning(
                    "Skipping %d annotations for page %d (document has %d pages)",
                    len(by_page[page_number]),
                    page_number,
                    handle.page_count,
                )
                continue

            page = handle.load_page(page_number)
            existing_ids = {annot.info.get("id") for annot in page.annots()}

            for annotation in by_page[page_number]:
                if annotation.id in existing_ids:
                    logger.debug("Annotation %s already on page %d", annotation.id, page_number)
                    continue
                try:
                    _add_native_annotation(page, annotation)
                    added += 1
                except Exception as e:
                    logger.warning(
                        "Failed to add %s annotation on page %d: %s",
                        annotation.type.value,
                        page_number,
                        e,
                    )

        logger.info("Saved %d of %d annotations", added, len(requested))
        if not added:
            return bytes(content)
        return handle.to_bytes()


# ---------------------------------------------------------------------------
# Summary
# ---------------------------------------------------------------------------


def build_annotation_summary(annotations: Sequence[AnnotationLike]) -> str:
    """
    Format a plain-text report of annotations grouped by page.

    Used by the ``summarize`` task, which typesets the report into a new
    single-page document.
    """
    items = coerce_annotations(annotations)
    by_page: Dict[int, List[Annotation]] = defaultdict(list)
    for annotation in items:
        by_page[annotation.page_number].append(annotation)

    lines = [
        "PDF Annotation Summary",
        f"Generated: {datetime.now(timezone.utc).isoformat(timespec='seconds')}",
        f"Total Annotations: {len(items)}",
        "",
    ]

    for page_number in sorted(by_page):
        page_items = by_page[page_number]
        lines.append(f"--- Page {page_number} ({len(page_items)} annotations) ---")
        lines.append("")
        for index, annotation in enumerate(page_items, start=1):
            r = annotation.rect
            lines.append(f"[{index}] Type: {annotation.type.value}")
            if annotation.content:
                lines.append(f"    Content: {annotation.content}")
            lines.append(
                f"    Position: ({round(r.x)}, {round(r.y)}, "
                f"{round(r.width)}x{round(r.height)})"
            )
            lines.append("")

    return "\n".join(lines)
