"""
Text run data models for PDF pages.
"""

from dataclasses import dataclass, field
from typing import List, Tuple

# Height used when a span reports no usable font size
DEFAULT_RUN_HEIGHT = 12.0

# Separator placed between runs when flattening a page to a string
RUN_SEPARATOR = " "


@dataclass(frozen=True)
class TextRun:
    """
    One positioned fragment of page text (a PyMuPDF span).

    ``x``/``y`` is the baseline origin in PDF user space (y grows upward).
    """

    text: str
    x: float
    y: float
    width: float
    height: float
    page_number: int

    @property
    def left(self) -> float:
        return self.x

    @property
    def top(self) -> float:
        return self.y - self.height

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y

    def origin_in(self, x0: float, y0: float, x1: float, y1: float) -> bool:
        """Check if the run's origin lies within the given box (inclusive)."""
        return x0 <= self.x <= x1 and y0 <= self.y <= y1


@dataclass(frozen=True)
class PageText:
    """
    The ordered text runs of one page.

    Runs keep the document's internal content order, which is not
    necessarily reading order.
    """

    page_number: int
    runs: Tuple[TextRun, ...] = field(default_factory=tuple)

    @property
    def text(self) -> str:
        """Run strings joined with a single separating space."""
        return RUN_SEPARATOR.join(run.text for run in self.runs)

    def offsets(self) -> List[Tuple[int, int]]:
        """
        Character interval ``[start, end)`` of each run within :attr:`text`.

        The offset advances by the run length plus one for the separator.
        """
        intervals = []
        offset = 0
        for run in self.runs:
            end = offset + len(run.text)
            intervals.append((offset, end))
            offset = end + len(RUN_SEPARATOR)
        return intervals

    @property
    def is_empty(self) -> bool:
        return not self.runs

    def __len__(self) -> int:
        return len(self.runs)
