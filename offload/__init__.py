"""
Background PDF tasks: extraction, search, annotations and synthesis,
run in isolated execution contexts behind an async dispatcher.
"""

from .dispatcher import (
    DEFAULT_FAMILY,
    TASK_FAMILIES,
    ExecutionContext,
    OffloadConfig,
    TaskDispatcher,
    family_for,
)
from .errors import (
    CorruptPageError,
    DocumentError,
    InvalidArgumentError,
    OffloadError,
    ParseError,
    TaskFailedError,
    UnavailableError,
)
from .models import (
    Annotation,
    AnnotationRect,
    AnnotationType,
    HighlightRect,
    ResultEnvelope,
    SearchMatch,
    TaskDescriptor,
    TaskKind,
)

__all__ = [
    "OffloadConfig",
    "TaskDispatcher",
    "ExecutionContext",
    "family_for",
    "DEFAULT_FAMILY",
    "TASK_FAMILIES",
    "TaskKind",
    "TaskDescriptor",
    "ResultEnvelope",
    "SearchMatch",
    "HighlightRect",
    "Annotation",
    "AnnotationRect",
    "AnnotationType",
    "OffloadError",
    "InvalidArgumentError",
    "UnavailableError",
    "TaskFailedError",
    "DocumentError",
    "ParseError",
    "CorruptPageError",
]
