"""Assemble Elasticsearch queries from rendered fragments."""
from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Mapping, Optional

from .catalog import Taxon
from .errors import QueryAssemblyError
from .filters import Filters, FilterSource, no_filters
from .fragments import FragmentRenderer
from .locale import LocaleContext, is_valid_locale_code

logger = logging.getLogger(__name__)

AGGREGATION_FRAGMENTS = ("attributes", "translated-attributes", "options")


class QueryBuilder:
    """Build search and taxon-browse queries.

    Both entry points share the same assembly: a base query fragment, one sort
    fragment per requested field, optional paging and the three aggregation
    fragments merged into ``aggs``.
    """

    def __init__(
        self,
        renderer: FragmentRenderer,
        locale_context: LocaleContext,
        filter_source: FilterSource = no_filters,
    ) -> None:
        self.renderer = renderer
        self.locale_context = locale_context
        self.filter_source = filter_source

    def resolve_filters(self, filters: Optional[Filters]) -> Filters:
        return filters if filters is not None else self.filter_source()

    def build_search_query(
        self,
        search_term: str,
        from_: Optional[int] = None,
        size: Optional[int] = None,
        sorting: Optional[Mapping[str, str]] = None,
        with_aggregates: bool = False,
        filters: Optional[Filters] = None,
    ) -> Dict[str, Any]:
        query = self._build("search", {"search_term": search_term}, from_, size, sorting, with_aggregates, filters)
        logger.debug("Built search query: %s", json.dumps(query))
        return query

    def build_taxon_query(
        self,
        taxon: Taxon,
        from_: Optional[int] = None,
        size: Optional[int] = None,
        sorting: Optional[Mapping[str, str]] = None,
        with_aggregates: bool = False,
        filters: Optional[Filters] = None,
    ) -> Dict[str, Any]:
        query = self._build("taxon", {"taxon": taxon}, from_, size, sorting, with_aggregates, filters)
        logger.debug("Built taxon query: %s", json.dumps(query))
        return query

    def _build(
        self,
        kind: str,
        subject: Dict[str, Any],
        from_: Optional[int],
        size: Optional[int],
        sorting: Optional[Mapping[str, str]],
        with_aggregates: bool,
        filters: Optional[Filters],
    ) -> Dict[str, Any]:
        locale_code = self.locale_context.get_locale_code()
        if not is_valid_locale_code(locale_code):
            raise QueryAssemblyError(f"{kind}/query", f"invalid locale code {locale_code!r}")
        query: Dict[str, Any] = {
            "query": self._render(
                f"{kind}/query",
                {**subject, "filters": self.resolve_filters(filters), "locale_code": locale_code},
            )
        }

        if sorting is not None:
            sort: List[Any] = []
            for field, order in sorting.items():
                sort.append(
                    self._render(
                        f"{kind}/sort/{field}",
                        {**subject, "field": field, "order": order, "locale_code": locale_code},
                    )
                )
            if sort:
                query["sort"] = sort
        if from_ is not None:
            query["from"] = from_
        if size is not None:
            query["size"] = size

        if with_aggregates:
            aggs: Dict[str, Any] = {}
            for name in AGGREGATION_FRAGMENTS:
                fragment_id = f"{kind}/aggs/{name}"
                aggregation = self._render(fragment_id, {**subject, "locale_code": locale_code})
                if not isinstance(aggregation, dict):
                    raise QueryAssemblyError(fragment_id, "aggregation fragment must be a JSON object")
                aggs.update(aggregation)
            query["aggs"] = aggs

        return query

    def _render(self, fragment_id: str, params: Dict[str, Any]) -> Any:
        raw = self.renderer.render(fragment_id, params)
        try:
            return json.loads(raw)
        except (TypeError, ValueError) as exc:
            raise QueryAssemblyError(fragment_id, f"invalid JSON: {exc}") from exc
