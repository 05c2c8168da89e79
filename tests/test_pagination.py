import asyncio

import pytest

from pagination import MAX_PAGE_SIZE, PaginationEngine, clamp_page, clamp_page_size


@pytest.mark.parametrize("requested, expected", [(None, 10), (0, 10), (-3, 10), (1, 1), (25, 25), (50, 50), (51, 50), (1000, 50), ("7", 7), ("x", 10)])
def test_clamp_page_size(requested, expected):
    assert clamp_page_size(requested) == expected


@pytest.mark.parametrize("requested, expected", [(None, 1), (0, 1), (-1, 1), (3, 3), ("2", 2)])
def test_clamp_page(requested, expected):
    assert clamp_page(requested) == expected


@pytest.fixture
def numbered(store):
    for n in range(23):
        store.insert("item", n=n)
    return [{"$sort": {"n": 1}}]


def test_returns_window_and_total(store, numbered):
    page = asyncio.run(PaginationEngine(store).paginate("item", numbered, page=2, page_size=10))

    assert [d["n"] for d in page.items] == list(range(10, 20))
    assert page.total == 23
    assert page.total_pages == 3
    assert page.has_next_page and page.has_prev_page


def test_last_partial_page(store, numbered):
    page = asyncio.run(PaginationEngine(store).paginate("item", numbered, page=3, page_size=10))

    assert [d["n"] for d in page.items] == [20, 21, 22]
    assert not page.has_next_page


def test_page_past_the_end_is_empty_with_true_total(store, numbered):
    page = asyncio.run(PaginationEngine(store).paginate("item", numbered, page=9, page_size=10))

    assert page.items == []
    assert page.total == 23
    # Only the count ran
    assert [call[0] for call in store.calls] == ["count"]


def test_page_size_above_ceiling_uses_ceiling(store, numbered):
    for n in range(23, 80):
        store.insert("item", n=n)

    page = asyncio.run(PaginationEngine(store).paginate("item", numbered, page=1, page_size=120))

    assert page.page_size == MAX_PAGE_SIZE
    assert len(page.items) == MAX_PAGE_SIZE
    assert page.total == 80


def test_empty_collection_is_a_valid_page(store):
    page = asyncio.run(PaginationEngine(store).paginate("item", [], page=1, page_size=10))

    assert page.items == []
    assert page.total == 0
    assert page.total_pages == 0


def test_count_uses_count_stages(store, numbered):
    count_stages = [{"$match": {"n": 3}}]
    page = asyncio.run(
        PaginationEngine(store).paginate("item", numbered, page=1, page_size=5, count_stages=count_stages)
    )

    assert page.total == 1
    assert store.calls[0] == ("count", "item", count_stages)
    assert store.calls[1][2][-2:] == [{"$skip": 0}, {"$limit": 5}]
