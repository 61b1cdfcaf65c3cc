from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

import pytest

import process_pdf
from offload.log import PACKAGE_LOGGERS
from process_pdf import _parse_pages, _parse_rect


@pytest.fixture(autouse=True)
def _reset_package_loggers():
    yield
    for name in PACKAGE_LOGGERS:
        package_logger = logging.getLogger(name)
        package_logger.handlers.clear()
        package_logger.setLevel(logging.NOTSET)


def _run(monkeypatch: pytest.MonkeyPatch, *argv: str) -> None:
    monkeypatch.setattr(sys, "argv", ["process_pdf.py", *argv, "--isolation", "thread"])
    process_pdf.main()


def test_parse_pages_accepts_lists_and_ranges() -> None:
    assert _parse_pages("1,3,5-7") == [1, 3, 5, 6, 7]
    assert _parse_pages("2") == [2]


@pytest.mark.parametrize("value", ["0", "3-1", "a", "1,,2"])
def test_parse_pages_rejects_malformed(value: str) -> None:
    with pytest.raises(argparse.ArgumentTypeError):
        _parse_pages(value)


def test_parse_rect() -> None:
    assert _parse_rect("72,72,300,120") == {"x": 72, "y": 72, "width": 300, "height": 120}
    with pytest.raises(argparse.ArgumentTypeError):
        _parse_rect("1,2,3")
    with pytest.raises(argparse.ArgumentTypeError):
        _parse_rect("1,2,-3,4")


def test_create_writes_pdf(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    out = tmp_path / "hello.pdf"
    _run(monkeypatch, "create", str(out), "--text", "Hello from the CLI")
    assert out.read_bytes().startswith(b"%PDF-1.7")


def test_extract_prints_text(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path, capsys: pytest.CaptureFixture, hello_pdf: bytes
) -> None:
    source = tmp_path / "in.pdf"
    source.write_bytes(hello_pdf)

    _run(monkeypatch, "extract", str(source))
    assert capsys.readouterr().out.strip() == "Hello world"


def test_search_prints_json(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path, capsys: pytest.CaptureFixture, three_page_pdf: bytes
) -> None:
    source = tmp_path / "in.pdf"
    source.write_bytes(three_page_pdf)

    _run(monkeypatch, "search", str(source), "--search", "cat", "--pages", "3")
    (match,) = json.loads(capsys.readouterr().out)
    assert match["pageNumber"] == 3
    assert match["matchedText"] == "cat"
    assert len(match["quadPoints"]) == 8


def test_failed_task_exits_nonzero(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    source = tmp_path / "broken.pdf"
    source.write_bytes(b"not a pdf at all")

    with pytest.raises(SystemExit) as excinfo:
        _run(monkeypatch, "extract", str(source))
    assert excinfo.value.code == 1


def test_byte_tasks_require_output(monkeypatch: pytest.MonkeyPatch, tmp_path: Path, hello_pdf: bytes) -> None:
    source = tmp_path / "in.pdf"
    source.write_bytes(hello_pdf)

    with pytest.raises(SystemExit) as excinfo:
        _run(monkeypatch, "edit", str(source), "--text", "x")
    assert excinfo.value.code == 2
