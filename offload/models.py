"""
Data models for offloaded document tasks.

TaskDescriptor and ResultEnvelope form the request/response protocol
between callers and execution contexts.  SearchMatch and Annotation are
the structured payloads returned by the search and annotation tasks.
Every result model has a ``to_dict()`` producing the camelCase shape
consumed by highlight overlays and markup panels.
"""

import copy
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple, Union

from offload.errors import InvalidArgumentError
from offload.utils.colors import DEFAULT_COLOR

# ---------------------------------------------------------------------------
# Task protocol
# ---------------------------------------------------------------------------


class TaskKind(str, Enum):
    """Operations an execution context can run."""

    EXTRACT = "extract"
    SEARCH = "search"
    EXTRACT_ANNOTATIONS = "extractAnnotations"
    SAVE_ANNOTATIONS = "saveAnnotations"
    EDIT = "edit"
    CREATE = "create"
    EXTRACT_REGION = "extractRegion"
    SUMMARIZE = "summarize"

    @classmethod
    def parse(cls, value: Union["TaskKind", str]) -> "TaskKind":
        """
        Resolve a kind name.

        Raises:
            InvalidArgumentError: If *value* names no known task kind
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise InvalidArgumentError(f"Unknown action: {value}") from None


@dataclass
class TaskDescriptor:
    """
    A unit of work submitted to an execution context.

    Attributes:
        kind:          Task kind (a :class:`TaskKind` or its string value).
                       Validated inside the context, so an unknown kind
                       comes back as a failure envelope.
        content:       Raw PDF bytes (empty for ``create``).
        options:       Open option map (``searchText``, ``matchCase``,
                       ``wholeWord``, ``annotations``, ``pageNumber``,
                       ``text``, ...).
        show_progress: Draw a tqdm progress bar while iterating pages.
    """

    kind: Union[TaskKind, str]
    content: bytes = b""
    options: Dict[str, Any] = field(default_factory=dict)
    show_progress: bool = False

    def copy(self) -> "TaskDescriptor":
        """Return a descriptor owning private copies of the buffer and options."""
        content = self.content if self.content is not None else b""
        return TaskDescriptor(
            kind=self.kind,
            content=bytes(content),
            options=copy.deepcopy(self.options or {}),
            show_progress=self.show_progress,
        )

    @property
    def kind_name(self) -> str:
        return self.kind.value if isinstance(self.kind, TaskKind) else str(self.kind)

    def __repr__(self) -> str:
        return (
            f"TaskDescriptor({self.kind_name}, "
            f"bytes={len(self.content or b'')}, "
            f"options={sorted(self.options or {})})"
        )


@dataclass(frozen=True)
class ResultEnvelope:
    """
    Uniform task outcome.  Exactly one of ``result`` / ``error`` is set;
    build instances with :meth:`ok` or :meth:`failure`.
    """

    success: bool
    result: Any = None
    error: Optional[str] = None

    @classmethod
    def ok(cls, result: Any) -> "ResultEnvelope":
        return cls(success=True, result=result, error=None)

    @classmethod
    def failure(cls, message: str) -> "ResultEnvelope":
        return cls(success=False, result=None, error=message or "Unknown error")


@dataclass(frozen=True)
class TaskRequest:
    """A descriptor tagged with the correlation id of its submission."""

    correlation_id: str
    descriptor: TaskDescriptor


@dataclass(frozen=True)
class TaskReply:
    """An envelope tagged with the correlation id it answers."""

    correlation_id: str
    envelope: ResultEnvelope


def new_correlation_id() -> str:
    """Generate a unique correlation id for one submission."""
    return uuid.uuid4().hex


# ---------------------------------------------------------------------------
# Search results
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class HighlightRect:
    """Highlight box in PDF user space (y grows upward), built from a run's baseline."""

    left: float
    top: float
    right: float
    bottom: float

    def quad_points(self) -> Tuple[float, ...]:
        """
        The eight corner coordinates of the box, ordered bottom-left,
        bottom-right, top-left, top-right.
        """
        return (
            self.left, self.bottom,
            self.right, self.bottom,
            self.left, self.top,
            self.right, self.top,
        )  # fmt: skip

    def to_annotation_rect(self) -> "AnnotationRect":
        """The same box as an :class:`AnnotationRect`, ready to save as a highlight."""
        return AnnotationRect.from_box(
            self.left,
            min(self.top, self.bottom),
            self.right,
            max(self.top, self.bottom),
        )

    def to_dict(self) -> Dict[str, float]:
        return {
            "left": self.left,
            "top": self.top,
            "right": self.right,
            "bottom": self.bottom,
        }


@dataclass(frozen=True)
class SearchMatch:
    """
    One occurrence of a search query on a page.

    ``rect`` comes from the run in which the match starts, even when the
    match continues into later runs; ``run_range`` records the first and
    last run indices the match touches.
    """

    page_number: int
    matched_text: str
    rect: HighlightRect
    quad_points: Tuple[float, ...]
    run_range: Tuple[int, int] = (0, 0)

    @property
    def spans_runs(self) -> bool:
        return self.run_range[0] != self.run_range[1]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pageNumber": self.page_number,
            "matchedText": self.matched_text,
            "rect": self.rect.to_dict(),
            "quadPoints": list(self.quad_points),
        }


# ---------------------------------------------------------------------------
# Annotations
# ---------------------------------------------------------------------------


class AnnotationType(Enum):
    """Markup types exposed to callers."""

    HIGHLIGHT = "highlight"
    NOTE = "note"
    FREETEXT = "freetext"
    SQUARE = "square"
    CIRCLE = "circle"
    INK = "ink"

    @classmethod
    def from_native(cls, subtype: Optional[str]) -> "AnnotationType":
        """Map a PDF annotation subtype; unknown subtypes become HIGHLIGHT."""
        return NATIVE_SUBTYPE_TO_TYPE.get(subtype or "", cls.HIGHLIGHT)

    @classmethod
    def parse(cls, value: Union["AnnotationType", str, None]) -> "AnnotationType":
        """Resolve a type name; unknown or missing names become HIGHLIGHT."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            return cls.HIGHLIGHT


# PDF /Subtype name → AnnotationType
NATIVE_SUBTYPE_TO_TYPE = {
    "Highlight": AnnotationType.HIGHLIGHT,
    "Text": AnnotationType.NOTE,
    "FreeText": AnnotationType.FREETEXT,
    "Square": AnnotationType.SQUARE,
    "Circle": AnnotationType.CIRCLE,
    "Ink": AnnotationType.INK,
}


@dataclass(frozen=True)
class AnnotationRect:
    """Annotation box in PDF user space: ``(x, y)`` is the bottom-left corner."""

    x: float
    y: float
    width: float
    height: float

    @classmethod
    def from_box(
        cls, left: float, bottom: float, right: float, top: float
    ) -> "AnnotationRect":
        return cls(x=left, y=bottom, width=right - left, height=top - bottom)

    def to_box(self) -> Tuple[float, float, float, float]:
        """``(left, bottom, right, top)``"""
        return (self.x, self.y, self.x + self.width, self.y + self.height)

    def to_dict(self) -> Dict[str, float]:
        return {
            "x": self.x,
            "y": self.y,
            "width": self.width,
            "height": self.height,
        }


@dataclass(frozen=True)
class Annotation:
    """A markup annotation normalised from (or destined for) a PDF page."""

    id: str
    type: AnnotationType
    page_number: int
    rect: AnnotationRect
    content: Optional[str] = None
    color: str = DEFAULT_COLOR

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type.value,
            "pageNumber": self.page_number,
            "rect": self.rect.to_dict(),
            "content": self.content,
            "color": self.color,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Annotation":
        """
        Build an annotation from its ``to_dict()`` shape.

        Raises:
            InvalidArgumentError: If the page number or rect is missing or malformed
        """
        try:
            rect = data["rect"]
            return cls(
                id=str(data.get("id") or f"annotation-{uuid.uuid4().hex[:12]}"),
                type=AnnotationType.parse(data.get("type")),
                page_number=int(data["pageNumber"]),
                rect=AnnotationRect(
                    x=float(rect["x"]),
                    y=float(rect["y"]),
                    width=float(rect["width"]),
                    height=float(rect["height"]),
                ),
                content=data.get("content"),
                color=data.get("color") or DEFAULT_COLOR,
            )
        except (KeyError, TypeError, ValueError) as e:
            raise InvalidArgumentError(f"Malformed annotation {data!r}: {e}") from e
