"""Pagination — page window, envelope and sort allow-list."""

from backstage.core.pagination import build_page, page_window, resolve_sort


def test_page_window():
    assert page_window(1, 25) == (0, 25)
    assert page_window(3, 10) == (20, 10)


def test_build_page_envelope():
    page = build_page([1, 2], total=12, page=2, page_size=5)
    assert page["data"] == [1, 2]
    assert page["pagination"] == {"page": 2, "page_size": 5, "total": 12, "total_pages": 3}


def test_build_page_empty_has_one_page():
    assert build_page([], 0, 1, 25)["pagination"]["total_pages"] == 1


def test_resolve_sort_allow_list():
    assert resolve_sort("title", "asc", ("title",)) == [("title", 1)]
    assert resolve_sort("password", None, ("title",)) == [("createdAt", -1)]
    assert resolve_sort(None, None, ("date",), "date", "asc") == [("date", 1)]
