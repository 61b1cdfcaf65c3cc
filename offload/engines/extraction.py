"""
Text extraction across every page of a document.

Pages are flattened by joining their text runs with a single space and
separated by a blank line in the whole-document text.  A page that fails
to load is logged and contributes empty text; the remaining pages are
still extracted.
"""

import logging
from typing import Dict, Iterable, List, Optional

import fitz
from tqdm import tqdm

from offload.errors import InvalidArgumentError
from pdfcore.document.loader import DocumentHandle
from pdfcore.errors import CorruptPageError

logger = logging.getLogger(__name__)

PAGE_SEPARATOR = "\n\n"


def page_progress(
    handle: DocumentHandle,
    page_numbers: Optional[Iterable[int]] = None,
    desc: str = "Reading pages",
    show_progress: bool = False,
) -> Iterable[int]:
    """Iterate 1-based page numbers, optionally behind a tqdm progress bar."""
    if page_numbers is None:
        page_numbers = range(1, handle.page_count + 1)
    numbers = list(page_numbers)
    return tqdm(numbers, desc=desc, unit="page", disable=not show_progress)


def extract_page_texts(
    handle: DocumentHandle, show_progress: bool = False
) -> List[str]:
    """
    Extract the flattened text of every page, in page order.

    Returns:
        One string per page; ``""`` for pages that could not be read.
    """
    texts: List[str] = []

    for page_number in page_progress(
        handle, desc="Extracting text", show_progress=show_progress
    ):
        try:
            texts.append(handle.page_runs(page_number).text)
        except CorruptPageError as e:
            logger.warning("Skipping unreadable page during extraction: %s", e)
            texts.append("")

    return texts


def extract_text(handle: DocumentHandle, show_progress: bool = False) -> str:
    """
    Extract the whole-document text.

    Each page's text is followed by a blank line; surrounding whitespace
    is trimmed from the result.
    """
    page_texts = extract_page_texts(handle, show_progress=show_progress)
    full_text = "".join(text + PAGE_SEPARATOR for text in page_texts)
    logger.debug(
        "Extracted %d characters from %d pages", len(full_text), len(page_texts)
    )
    return full_text.strip()


def extract_region_text(
    handle: DocumentHandle, page_number: int, rect: Dict[str, float]
) -> str:
    """
    Extract the text of runs whose origin falls inside a page region.

    The region is given in viewer terms (top-left origin, y grows downward)
    and is mapped into PDF user space before it is compared with run origins.

    Args:
        handle:      Open document
        page_number: 1-based page number
        rect:        ``{x, y, width, height}`` in page space (top-left origin)

    Raises:
        InvalidArgumentError: If *rect* is malformed
        CorruptPageError:     If the page cannot be read
    """
    try:
        x0 = float(rect["x"])
        y0 = float(rect["y"])
        x1 = x0 + float(rect["width"])
        y1 = y0 + float(rect["height"])
    except (KeyError, TypeError, ValueError) as e:
        raise InvalidArgumentError(f"Malformed region rect {rect!r}: {e}") from e

    to_user = ~handle.load_page(page_number).transformation_matrix
    corner_a = fitz.Point(x0, y0) * to_user
    corner_b = fitz.Point(x1, y1) * to_user
    ux0, ux1 = sorted((corner_a.x, corner_b.x))
    uy0, uy1 = sorted((corner_a.y, corner_b.y))

    page_text = handle.page_runs(page_number)
    inside = [run.text for run in page_text.runs if run.origin_in(ux0, uy0, ux1, uy1)]
    return " ".join(inside).strip()
