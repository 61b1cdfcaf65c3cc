"""
Logging setup shared by the CLI and process-backed execution contexts.
"""

import logging
import sys

# Mapping from --verbose integer to logging level
VERBOSITY_MAP = {
    0: logging.WARNING,
    1: logging.INFO,
    2: logging.DEBUG,
}

PACKAGE_LOGGERS = ("offload", "pdfcore")


def configure_logging(level: int = logging.INFO) -> None:
    """
    Set up the ``offload`` and ``pdfcore`` loggers.

    At WARNING, uses a minimal format.  At INFO / DEBUG, includes the
    process and module name so records from background contexts can be
    told apart.
    """
    if level <= logging.DEBUG:
        fmt = "%(asctime)s %(processName)s %(name)s %(levelname)s: %(message)s"
        datefmt = "%H:%M:%S"
    elif level <= logging.INFO:
        fmt = "%(processName)s: %(message)s"
        datefmt = None
    else:
        fmt = "%(levelname)s: %(message)s"
        datefmt = None

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(fmt, datefmt=datefmt))

    for name in PACKAGE_LOGGERS:
        root = logging.getLogger(name)
        root.setLevel(level)
        root.handlers.clear()
        root.addHandler(handler)

    # Suppress noisy third-party loggers regardless of verbosity
    for name in ("asyncio", "concurrent.futures"):
        logging.getLogger(name).setLevel(logging.WARNING)
