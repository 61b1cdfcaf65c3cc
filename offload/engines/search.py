"""
Text search with highlight geometry reconstruction.

Each page is flattened into a single string (runs joined by one space)
while recording every run's character interval.  The query is scanned
across that string, and each match is mapped back to the run it starts in
to produce a highlight rectangle and quad points.

The rectangle is taken from the starting run only: a match that
continues into the next run still reports the first run's box.
"""

import logging
import re
from typing import Iterable, List, Optional, Sequence, Tuple

from offload.models import HighlightRect, SearchMatch
from pdfcore.document.loader import DocumentHandle
from pdfcore.errors import CorruptPageError
from pdfcore.page.models import PageText, TextRun

from .extraction import page_progress

logger = logging.getLogger(__name__)


def build_pattern(
    query: str, match_case: bool = False, whole_word: bool = False
) -> "re.Pattern[str]":
    """
    Compile the search pattern for a literal *query*.

    Case-insensitive matching uses ``re.IGNORECASE`` rather than
    lower-casing the page text, so match offsets always index the
    original page string.
    """
    pattern = re.escape(query)
    if whole_word:
        pattern = rf"\b{pattern}\b"
    flags = 0 if match_case else re.IGNORECASE
    return re.compile(pattern, flags)


def locate_run(offsets: Sequence[Tuple[int, int]], position: int) -> int:
    """
    Index of the first run whose interval reaches or exceeds *position*.

    Linear scan of the offset table; falls back to the last run when the
    position lies past every interval.
    """
    for index, (_start, end) in enumerate(offsets):
        if end >= position:
            return index
    return len(offsets) - 1


def rect_for_run(run: TextRun) -> HighlightRect:
    """Highlight box of a whole run: ``bottom`` is the baseline, ``top`` is ``y - height``."""
    left = run.x
    top = run.y - run.height
    right = left + run.width
    bottom = run.y
    return HighlightRect(left=left, top=top, right=right, bottom=bottom)


def search_page(page_text: PageText, pattern: "re.Pattern[str]") -> List[SearchMatch]:
    """Find every non-overlapping occurrence of *pattern* on one page."""
    if page_text.is_empty:
        return []

    text = page_text.text
    offsets = page_text.offsets()
    matches: List[SearchMatch] = []

    for found in pattern.finditer(text):
        start_index = locate_run(offsets, found.start())
        end_index = locate_run(offsets, found.end())

        rect = rect_for_run(page_text.runs[start_index])
        matches.append(
            SearchMatch(
                page_number=page_text.page_number,
                matched_text=found.group(0),
                rect=rect,
                quad_points=rect.quad_points(),
                run_range=(start_index, end_index),
            )
        )

        if end_index != start_index:
            logger.debug(
                "Match %r on page %d spans runs %d-%d; using start run box",
                found.group(0),
                page_text.page_number,
                start_index,
                end_index,
            )

    return matches


def search_document(
    handle: DocumentHandle,
    query: Optional[str],
    match_case: bool = False,
    whole_word: bool = False,
    pages: Optional[Iterable[int]] = None,
    show_progress: bool = False,
) -> List[SearchMatch]:
    """
    Search every page (or the listed *pages*) for *query*.

    Args:
        handle:        Open document
        query:         Literal text to find; empty or ``None`` finds nothing
        match_case:    Case-sensitive matching
        whole_word:    Only match at word boundaries
        pages:         Optional 1-based page numbers to restrict the search;
                       out-of-range numbers are ignored
        show_progress: Show a tqdm progress bar

    Returns:
        Matches ordered by page number, then by position on the page.
    """
    if not query:
        return []

    pattern = build_pattern(query, match_case=match_case, whole_word=whole_word)

    if pages is not None:
        page_numbers = sorted(
            {int(n) for n in pages if 1 <= int(n) <= handle.page_count}
        )
    else:
        page_numbers = None

    results: List[SearchMatch] = []
    for page_number in page_progress(
        handle, page_numbers, desc="Searching", show_progress=show_progress
    ):
        try:
            page_text = handle.page_runs(page_number)
        except CorruptPageError as e:
            logger.warning("Skipping unreadable page during search: %s", e)
            continue
        results.extend(search_page(page_text, pattern))

    logger.debug("Search for %r found %d matches", query, len(results))
    return results
