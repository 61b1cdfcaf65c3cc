from __future__ import annotations

import pytest

from offload.engines.search import (
    build_pattern,
    locate_run,
    rect_for_run,
    search_document,
    search_page,
)
from pdfcore.document.loader import load_document
from pdfcore.page.models import PageText, TextRun


def _page(*texts: str, page_number: int = 1) -> PageText:
    runs = tuple(
        TextRun(text=t, x=10.0 + 100 * i, y=50.0, width=60.0, height=12.0, page_number=page_number)
        for i, t in enumerate(texts)
    )
    return PageText(page_number=page_number, runs=runs)


def test_every_match_text_equals_query_ignoring_case(three_page_pdf: bytes) -> None:
    with load_document(three_page_pdf) as handle:
        matches = search_document(handle, "CAT")

    assert [m.page_number for m in matches] == [1, 3]
    assert all(m.matched_text.lower() == "cat" for m in matches)


def test_match_case_filters_differently_cased_text(hello_pdf: bytes) -> None:
    with load_document(hello_pdf) as handle:
        assert len(search_document(handle, "hello")) == 1
        assert search_document(handle, "hello", match_case=True) == []
        assert len(search_document(handle, "Hello", match_case=True)) == 1


def test_whole_word_requires_word_boundaries() -> None:
    page = _page("concatenate the cat")
    assert len(search_page(page, build_pattern("cat"))) == 2

    whole = search_page(page, build_pattern("cat", whole_word=True))
    assert len(whole) == 1
    assert whole[0].matched_text == "cat"


def test_query_is_matched_literally() -> None:
    page = _page("cost is $5.00 (net)")
    matches = search_page(page, build_pattern("$5.00 (net)"))
    assert [m.matched_text for m in matches] == ["$5.00 (net)"]


def test_empty_query_finds_nothing(hello_pdf: bytes) -> None:
    with load_document(hello_pdf) as handle:
        assert search_document(handle, "") == []
        assert search_document(handle, None) == []


def test_pages_option_restricts_and_ignores_out_of_range(three_page_pdf: bytes) -> None:
    with load_document(three_page_pdf) as handle:
        matches = search_document(handle, "cat", pages=[3, 99, 0])
    assert [m.page_number for m in matches] == [3]


def test_rect_and_quad_points_come_from_the_matching_run() -> None:
    page = _page("alpha", "beta gamma")
    (match,) = search_page(page, build_pattern("gamma"))

    run = page.runs[1]
    assert match.rect == rect_for_run(run)
    assert match.rect.left == run.x
    assert match.rect.bottom == run.y
    assert match.rect.top == run.y - run.height
    assert match.rect.right == run.x + run.width

    r = match.rect
    assert match.quad_points == (
        r.left, r.bottom, r.right, r.bottom, r.left, r.top, r.right, r.top
    )  # fmt: skip
    assert len(match.quad_points) == 8


def test_match_spanning_runs_uses_start_run_box() -> None:
    page = _page("foo", "bar")
    (match,) = search_page(page, build_pattern("oo ba"))

    assert match.rect == rect_for_run(page.runs[0])
    assert match.run_range == (0, 1)
    assert match.spans_runs


def test_locate_run_scans_offsets_linearly() -> None:
    offsets = [(0, 3), (4, 7), (8, 12)]
    assert locate_run(offsets, 0) == 0
    assert locate_run(offsets, 3) == 0
    assert locate_run(offsets, 4) == 1
    assert locate_run(offsets, 99) == 2


def test_matches_are_ordered_by_page_then_position(make_pdf) -> None:
    content = make_pdf(
        [(72, 100, "dog one"), (72, 140, "dog two")],
        [(72, 100, "dog three")],
    )
    with load_document(content) as handle:
        matches = search_document(handle, "dog")

    assert [m.page_number for m in matches] == [1, 1, 2]
    # user space grows upward, so the line nearer the top has the larger y
    assert matches[0].rect.bottom > matches[1].rect.bottom


def test_match_to_dict_uses_camel_case_keys() -> None:
    (match,) = search_page(_page("needle"), build_pattern("needle"))
    data = match.to_dict()

    assert set(data) == {"pageNumber", "matchedText", "rect", "quadPoints"}
    assert set(data["rect"]) == {"left", "top", "right", "bottom"}
    assert len(data["quadPoints"]) == 8


@pytest.mark.parametrize("query", ["Hello", "world", "o w"])
def test_search_on_real_page_reports_its_run_geometry(hello_pdf: bytes, query: str) -> None:
    with load_document(hello_pdf) as handle:
        (match,) = search_document(handle, query)
        run = handle.page_runs(1).runs[0]

    assert match.rect == rect_for_run(run)
