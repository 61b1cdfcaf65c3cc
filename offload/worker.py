"""
Task runner executed inside an execution context.

:func:`run_task` is the only entry point a context calls: it unpacks a
:class:`TaskRequest`, runs the engine for the task kind, and answers
with a :class:`TaskReply` carrying the same correlation id.  Every
failure is reported in the envelope; nothing is raised back across the
context boundary.
"""

import logging
import time
from typing import Any, Callable, Dict, List, Optional

from offload.engines.annotations import (
    build_annotation_summary,
    extract_annotations,
    save_annotations,
)
from offload.engines.extraction import extract_region_text, extract_text
from offload.engines.search import search_document
from offload.engines.synthesizer import create_document, edit_document
from offload.errors import InvalidArgumentError, OffloadError
from offload.log import configure_logging
from offload.models import (
    ResultEnvelope,
    TaskDescriptor,
    TaskKind,
    TaskReply,
    TaskRequest,
)
from pdfcore.document.loader import load_document
from pdfcore.errors import DocumentError

logger = logging.getLogger(__name__)

# Layout of the annotation summary page
SUMMARY_FONT = "Courier"
SUMMARY_FONT_SIZE = 10.0
SUMMARY_ORIGIN = (50.0, 700.0)


# ------------------------------------------------------------------
# Option helpers
# ------------------------------------------------------------------


def _require_text(descriptor: TaskDescriptor, kind: TaskKind) -> str:
    text = descriptor.options.get("text")
    if text is None:
        raise InvalidArgumentError(f"Text is required for {kind.value} action")
    return str(text)


def _int_option(options: Dict[str, Any], key: str, default: Optional[int]) -> Optional[int]:
    value = options.get(key)
    if value is None:
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        raise InvalidArgumentError(f"Option '{key}' must be an integer, got {value!r}") from None


def _pages_option(options: Dict[str, Any]) -> Optional[List[int]]:
    pages = options.get("pages")
    if pages is None:
        return None
    if isinstance(pages, (str, bytes)) or not hasattr(pages, "__iter__"):
        raise InvalidArgumentError(f"Option 'pages' must be a list of page numbers, got {pages!r}")
    try:
        return [int(n) for n in pages]
    except (TypeError, ValueError):
        raise InvalidArgumentError(f"Option 'pages' must be a list of page numbers, got {pages!r}") from None


# ------------------------------------------------------------------
# Handlers
# ------------------------------------------------------------------


def _handle_extract(descriptor: TaskDescriptor) -> str:
    with load_document(descriptor.content) as handle:
        return extract_text(handle, show_progress=descriptor.show_progress)


def _handle_search(descriptor: TaskDescriptor):
    options = descriptor.options
    with load_document(descriptor.content) as handle:
        return search_document(
            handle,
            options.get("searchText"),
            match_case=bool(options.get("matchCase", False)),
            whole_word=bool(options.get("wholeWord", False)),
            pages=_pages_option(options),
            show_progress=descriptor.show_progress,
        )


def _handle_extract_annotations(descriptor: TaskDescriptor):
    with load_document(descriptor.content) as handle:
        return extract_annotations(handle, show_progress=descriptor.show_progress)


def _handle_save_annotations(descriptor: TaskDescriptor) -> bytes:
    return save_annotations(descriptor.content, descriptor.options.get("annotations"))


def _handle_edit(descriptor: TaskDescriptor) -> bytes:
    text = _require_text(descriptor, TaskKind.EDIT)
    # A missing or zero page number targets the first page
    page_number = _int_option(descriptor.options, "pageNumber", 1) or 1
    return edit_document(
        descriptor.content,
        text,
        page_number=page_number,
        show_progress=descriptor.show_progress,
    )


def _handle_create(descriptor: TaskDescriptor) -> bytes:
    return create_document(_require_text(descriptor, TaskKind.CREATE))


def _handle_extract_region(descriptor: TaskDescriptor) -> str:
    page_number = _int_option(descriptor.options, "pageNumber", None)
    rect = descriptor.options.get("rect")
    if page_number is None or rect is None:
        raise InvalidArgumentError(
            "pageNumber and rect are required for extractRegion action"
        )
    with load_document(descriptor.content) as handle:
        return extract_region_text(handle, page_number, rect)


def _handle_summarize(descriptor: TaskDescriptor) -> bytes:
    summary = build_annotation_summary(descriptor.options.get("annotations") or [])
    return create_document(
        summary,
        font=SUMMARY_FONT,
        font_size=SUMMARY_FONT_SIZE,
        origin=SUMMARY_ORIGIN,
    )


_HANDLERS: Dict[TaskKind, Callable[[TaskDescriptor], Any]] = {
    TaskKind.EXTRACT: _handle_extract,
    TaskKind.SEARCH: _handle_search,
    TaskKind.EXTRACT_ANNOTATIONS: _handle_extract_annotations,
    TaskKind.SAVE_ANNOTATIONS: _handle_save_annotations,
    TaskKind.EDIT: _handle_edit,
    TaskKind.CREATE: _handle_create,
    TaskKind.EXTRACT_REGION: _handle_extract_region,
    TaskKind.SUMMARIZE: _handle_summarize,
}


# ------------------------------------------------------------------
# Entry points
# ------------------------------------------------------------------


def execute(descriptor: TaskDescriptor) -> ResultEnvelope:
    """
    Run one task in the current process and wrap its outcome.

    Argument and document errors become failure envelopes with their
    message; unexpected exceptions are logged with a traceback and
    reported the same way.
    """
    t0 = time.perf_counter()
    try:
        kind = TaskKind.parse(descriptor.kind)
        result = _HANDLERS[kind](descriptor)
    except (OffloadError, DocumentError) as e:
        logger.warning("Task %s failed: %s", descriptor.kind_name, e)
        return ResultEnvelope.failure(str(e))
    except Exception as e:
        logger.exception("Unexpected error in %s task", descriptor.kind_name)
        return ResultEnvelope.failure(str(e) or e.__class__.__name__)

    logger.debug(
        "Task %s finished in %.3fs", kind.value, time.perf_counter() - t0
    )
    return ResultEnvelope.ok(result)


def run_task(request: TaskRequest) -> TaskReply:
    """Answer a correlated request; the reply echoes the request's id."""
    return TaskReply(
        correlation_id=request.correlation_id,
        envelope=execute(request.descriptor),
    )


def init_context(log_level: int) -> None:
    """Executor initializer for process-backed contexts."""
    configure_logging(log_level)
    logger.debug("Execution context started")
