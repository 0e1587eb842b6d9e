"""Facet filters and sort order selected by the shopper.

Filters travel in the query string as ``filters[<code>]=<value>``. Requests
that do not hand explicit filters to the query builder fall back to a filter
source resolved at the request boundary.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Tuple

Filters = Dict[str, List[str]]
FilterSource = Callable[[], Filters]

_FILTER_KEY_RE = re.compile(r"^filters\[([^\]]+)\](?:\[\d*\])?$")


def no_filters() -> Filters:
    return {}


def parse_filters(items: Iterable[Tuple[str, str]]) -> Filters:
    """Collect ``filters[code]`` query parameters into a filter mapping.

    Repeated keys accumulate and comma separated values are split, so
    ``filters[color]=red,blue`` and two ``filters[color]`` pairs are equal.
    """

    filters: Filters = {}
    for key, raw_value in items:
        match = _FILTER_KEY_RE.match(key)
        if not match:
            continue
        code = match.group(1).strip()
        values = [value.strip() for value in str(raw_value).split(",") if value.strip()]
        if not code or not values:
            continue
        selected = filters.setdefault(code, [])
        for value in values:
            if value not in selected:
                selected.append(value)
    return filters


@dataclass
class RequestFilterSource:
    """Filters of the current request, used when a caller passes none."""

    filters: Filters = field(default_factory=dict)

    @classmethod
    def from_query_items(cls, items: Iterable[Tuple[str, str]]) -> "RequestFilterSource":
        return cls(parse_filters(items))

    def __call__(self) -> Filters:
        return {code: list(values) for code, values in self.filters.items()}


_SORTING_KEY_RE = re.compile(r"^sorting\[([^\]]+)\]$")


def parse_sorting(items: Iterable[Tuple[str, str]]) -> Dict[str, str]:
    """Collect ``sorting[field]=asc|desc`` pairs, keeping their order."""

    sorting: Dict[str, str] = {}
    for key, raw_value in items:
        match = _SORTING_KEY_RE.match(key)
        if not match:
            continue
        order = str(raw_value).strip().lower()
        sorting[match.group(1).strip()] = "desc" if order == "desc" else "asc"
    return sorting
