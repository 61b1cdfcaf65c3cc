"""
Error taxonomy for offloaded document tasks.

Document-level errors (:class:`ParseError`, :class:`CorruptPageError`)
come from :mod:`pdfcore` and are re-exported here so callers have a
single import point.
"""

from pdfcore.errors import CorruptPageError, DocumentError, ParseError


class OffloadError(Exception):
    """Base error for task dispatch and task argument failures."""


class InvalidArgumentError(OffloadError):
    """Raised when a task kind is unknown or a required option is missing."""


class UnavailableError(OffloadError):
    """Raised when an execution context cannot accept or answer a request."""


class TaskFailedError(OffloadError):
    """Raised by convenience APIs when a task's result envelope reports failure."""


__all__ = [
    "OffloadError",
    "InvalidArgumentError",
    "UnavailableError",
    "TaskFailedError",
    "DocumentError",
    "ParseError",
    "CorruptPageError",
]
