"""Tests for reading filters and sorting from query-string pairs."""

from catalog_search.filters import RequestFilterSource, no_filters, parse_filters, parse_sorting


def test_parse_filters_accumulates_values():
    items = [
        ("filters[color]", "red"),
        ("filters[color]", "blue,red"),
        ("filters[size][]", "m"),
        ("page", "2"),
        ("filters[empty]", " "),
    ]

    assert parse_filters(items) == {"color": ["red", "blue"], "size": ["m"]}


def test_request_filter_source_returns_copies():
    source = RequestFilterSource.from_query_items([("filters[color]", "red")])

    resolved = source()
    resolved["color"].append("green")

    assert source() == {"color": ["red"]}
    assert no_filters() == {}


def test_parse_sorting_keeps_order_and_normalizes_direction():
    items = [("sorting[price]", "DESC"), ("q", "shoe"), ("sorting[name]", "whatever")]

    assert list(parse_sorting(items).items()) == [("price", "desc"), ("name", "asc")]
