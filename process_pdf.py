#!/usr/bin/env python3
"""
PDF Offload CLI entry point.

Runs one document task in an isolated execution context and writes the
result: PDF bytes go to OUTPUT, text goes to OUTPUT or stdout, and
structured results (search matches, annotations) are printed as JSON.

Usage::

    python process_pdf.py extract paper.pdf
    python process_pdf.py search paper.pdf --search "neural" --whole-word
    python process_pdf.py extractAnnotations marked.pdf > notes.json
    python process_pdf.py saveAnnotations paper.pdf out.pdf --annotations notes.json
    python process_pdf.py edit paper.pdf edited.pdf --page 2 --text "New text"
    python process_pdf.py create hello.pdf --text "Hello, world"
    python process_pdf.py extractRegion paper.pdf --page 1 --rect 72,72,300,120

Verbosity levels::

    -v 0   Quiet: warnings and errors only (default).
    -v 1   Normal: context lifecycle and task summaries.
    -v 2   Debug: correlation ids, timings, per-page decisions.
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List

from offload.dispatcher import ISOLATION_MODES, OffloadConfig, TaskDispatcher
from offload.errors import OffloadError
from offload.log import VERBOSITY_MAP, configure_logging
from offload.models import TaskKind

logger = logging.getLogger("offload")

# Kinds whose result is a PDF byte buffer
_BYTE_KINDS = {
    TaskKind.SAVE_ANNOTATIONS,
    TaskKind.EDIT,
    TaskKind.CREATE,
    TaskKind.SUMMARIZE,
}


# ------------------------------------------------------------------
# Argument parsing
# ------------------------------------------------------------------


def _parse_pages(value: str) -> List[int]:
    """
    Parse a 1-based page list (e.g. ``"1,3,5-7"``) into page numbers.

    Raises:
        argparse.ArgumentTypeError: On malformed input.
    """
    pages: List[int] = []
    for part in value.split(","):
        bounds = part.strip().split("-")
        try:
            start = int(bounds[0])
            end = int(bounds[1]) if len(bounds) > 1 else start
        except (ValueError, IndexError):
            raise argparse.ArgumentTypeError(
                f"Invalid page list '{value}'. Use N, N-M or a comma-separated mix (1-based)."
            )
        if start < 1 or end < start:
            raise argparse.ArgumentTypeError(
                f"Invalid page list '{value}'. Pages must be >= 1 and ranges ascending."
            )
        pages.extend(range(start, end + 1))
    return pages


def _parse_rect(value: str) -> Dict[str, float]:
    """
    Parse ``"X,Y,W,H"`` (page space, top-left origin) into a rect map.

    Raises:
        argparse.ArgumentTypeError: On malformed input.
    """
    parts = value.split(",")
    try:
        x, y, width, height = (float(p) for p in parts)
    except ValueError:
        raise argparse.ArgumentTypeError(
            f"Invalid rect '{value}'. Use X,Y,WIDTH,HEIGHT in points."
        )
    if width < 0 or height < 0:
        raise argparse.ArgumentTypeError(
            f"Invalid rect '{value}'. Width and height must be >= 0."
        )
    return {"x": x, "y": y, "width": width, "height": height}


def _build_parser() -> argparse.ArgumentParser:
    """Construct the argument parser with all task options."""
    p = argparse.ArgumentParser(
        description="Run a PDF task in an isolated background context.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "examples:\n"
            "  python process_pdf.py extract paper.pdf\n"
            "  python process_pdf.py search paper.pdf --search neural --pages 1-3\n"
            "  python process_pdf.py edit paper.pdf out.pdf --page 2 --text 'New text'\n"
            "  python process_pdf.py create hello.pdf --text 'Hello'\n"
        ),
    )

    # -- Positional --------------------------------------------------------
    p.add_argument(
        "kind",
        choices=[k.value for k in TaskKind],
        help="Task to run",
    )
    p.add_argument(
        "input",
        nargs="?",
        default=None,
        help="Path to the input PDF file (for 'create', the output path)",
    )
    p.add_argument(
        "output",
        nargs="?",
        default=None,
        help="Output file. Required for tasks that produce a PDF; "
        "text results go to stdout when omitted.",
    )

    # -- Search ------------------------------------------------------------
    search = p.add_argument_group("search")
    search.add_argument(
        "--search",
        default=None,
        metavar="TEXT",
        help="Text to search for",
    )
    search.add_argument(
        "--match-case",
        action="store_true",
        help="Case-sensitive search",
    )
    search.add_argument(
        "--whole-word",
        action="store_true",
        help="Only match whole words",
    )
    search.add_argument(
        "--pages",
        type=_parse_pages,
        default=None,
        metavar="LIST",
        help="Pages to search, 1-based (e.g. 1,3,5-7). Default: all.",
    )

    # -- Editing -----------------------------------------------------------
    editing = p.add_argument_group("editing")
    editing.add_argument(
        "--text",
        default=None,
        help="Text for 'edit' and 'create'",
    )
    editing.add_argument(
        "--page",
        type=int,
        default=None,
        metavar="N",
        help="1-based page for 'edit' (default: 1) and 'extractRegion'",
    )
    editing.add_argument(
        "--rect",
        type=_parse_rect,
        default=None,
        metavar="X,Y,W,H",
        help="Region for 'extractRegion', in points from the top-left corner",
    )
    editing.add_argument(
        "--annotations",
        default=None,
        metavar="JSON",
        help="JSON file with a list of annotations for 'saveAnnotations' / 'summarize'",
    )

    # -- Execution ---------------------------------------------------------
    execution = p.add_argument_group("execution")
    execution.add_argument(
        "--isolation",
        default="process",
        choices=list(ISOLATION_MODES),
        help="Run the task in a worker process (default) or thread",
    )
    execution.add_argument(
        "--timeout",
        type=float,
        default=None,
        metavar="SECONDS",
        help="Give up waiting for the task after SECONDS",
    )

    # -- Output control ----------------------------------------------------
    output = p.add_argument_group("output control")
    output.add_argument(
        "--progress",
        action="store_true",
        help="Show tqdm progress bars while pages are processed",
    )
    output.add_argument(
        "-v",
        "--verbose",
        type=int,
        choices=[0, 1, 2],
        default=0,
        help="Verbosity: 0=quiet (default), 1=normal, 2=debug",
    )

    return p


# ------------------------------------------------------------------
# Task options
# ------------------------------------------------------------------


def _load_annotations(path: str, parser: argparse.ArgumentParser) -> List[Dict[str, Any]]:
    """Read an annotation list in the ``extractAnnotations`` JSON shape."""
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        parser.error(f"Cannot read annotations from {path}: {e}")
    if not isinstance(data, list):
        parser.error(f"Annotations file must contain a JSON list: {path}")
    return data


def _build_options(
    kind: TaskKind, args: argparse.Namespace, parser: argparse.ArgumentParser
) -> Dict[str, Any]:
    """Translate CLI flags into the option map of a task descriptor."""
    options: Dict[str, Any] = {}

    if kind is TaskKind.SEARCH:
        if not args.search:
            parser.error("--search is required for the 'search' task")
        options.update(
            searchText=args.search,
            matchCase=args.match_case,
            wholeWord=args.whole_word,
        )
        if args.pages:
            options["pages"] = args.pages

    elif kind in (TaskKind.EDIT, TaskKind.CREATE):
        if args.text is None:
            parser.error(f"--text is required for the '{kind.value}' task")
        options["text"] = args.text
        if kind is TaskKind.EDIT and args.page is not None:
            options["pageNumber"] = args.page

    elif kind in (TaskKind.SAVE_ANNOTATIONS, TaskKind.SUMMARIZE):
        options["annotations"] = (
            _load_annotations(args.annotations, parser) if args.annotations else []
        )

    elif kind is TaskKind.EXTRACT_REGION:
        if args.page is None or args.rect is None:
            parser.error("--page and --rect are required for the 'extractRegion' task")
        options.update(pageNumber=args.page, rect=args.rect)

    return options


# ------------------------------------------------------------------
# Result output
# ------------------------------------------------------------------


def _to_jsonable(result: Any) -> Any:
    if isinstance(result, (list, tuple)):
        return [_to_jsonable(item) for item in result]
    if hasattr(result, "to_dict"):
        return result.to_dict()
    return result


def _write_result(result: Any, output_path: str | None) -> None:
    """Write bytes to *output_path*; print text and structured results."""
    if isinstance(result, bytes):
        Path(output_path).write_bytes(result)
        logger.info("Wrote %d bytes to %s", len(result), output_path)
        return

    if isinstance(result, str):
        text = result
    else:
        text = json.dumps(_to_jsonable(result), indent=2, ensure_ascii=False)

    if output_path:
        Path(output_path).write_text(text + "\n", encoding="utf-8")
        logger.info("Wrote result to %s", output_path)
    else:
        print(text)


# ------------------------------------------------------------------
# Entry point
# ------------------------------------------------------------------


async def _run(config: OffloadConfig, kind: TaskKind, content: bytes, options, timeout):
    with TaskDispatcher(config) as dispatcher:
        return await dispatcher.execute(kind, content, timeout=timeout, **options)


def main():
    """Parse arguments, configure logging, and run one task."""
    parser = _build_parser()
    args = parser.parse_args()

    # Logging must be configured before any logger calls
    level = VERBOSITY_MAP.get(args.verbose, logging.WARNING)
    configure_logging(level)

    kind = TaskKind.parse(args.kind)

    # Resolve paths; 'create' has no input document
    if kind is TaskKind.CREATE:
        input_path = None
        output_path = args.output or args.input
    else:
        if not args.input:
            parser.error(f"An input PDF is required for the '{kind.value}' task")
        input_path = Path(args.input)
        if not input_path.exists():
            parser.error(f"Input file not found: {input_path}")
        output_path = args.output

    if kind in _BYTE_KINDS and not output_path:
        parser.error(f"An output path is required for the '{kind.value}' task")

    options = _build_options(kind, args, parser)
    content = input_path.read_bytes() if input_path else b""

    config = OffloadConfig(
        isolation=args.isolation,
        log_level=level,
        show_progress=args.progress,
        default_timeout=args.timeout,
    )

    # Log run header
    logger.info("PDF Offload: %s", kind.value)
    if input_path:
        logger.info("  Input:  %s (%d bytes)", input_path, len(content))
    if output_path:
        logger.info("  Output: %s", output_path)
    logger.info("  Context: %s", config.isolation)

    try:
        result = asyncio.run(_run(config, kind, content, options, args.timeout))
    except OffloadError as e:
        logger.error("%s failed: %s", kind.value, e)
        sys.exit(1)

    _write_result(result, output_path)


if __name__ == "__main__":
    main()
