"""One-shot query adapters backing paginated listings.

A rendering layer tends to ask for the total count and the current page
separately. The adapters run the query on the first of those calls and
answer every later call from the stored result, so one adapter instance maps
to exactly one search execution. Build a new adapter for another page or
other parameters.
"""
from __future__ import annotations

import logging
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence

from .catalog import Taxon
from .es_client import SearchClient
from .filters import Filters
from .models import FilterSummary, ProductResponse, QueryResult
from .query_builder import QueryBuilder
from .result_mapper import QueryResultMapper

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Pager:
    """1-based page arithmetic for a fixed page size."""

    page: int = 1
    per_page: int = 9

    def __post_init__(self) -> None:
        if self.page < 1:
            raise ValueError(f"Page must be >= 1, got {self.page}")
        if self.per_page < 1:
            raise ValueError(f"Page size must be >= 1, got {self.per_page}")

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.per_page

    def nb_pages(self, total: int) -> int:
        return max(1, math.ceil(total / self.per_page))


class QueryAdapter(ABC):
    def __init__(
        self,
        query_builder: QueryBuilder,
        client: SearchClient,
        result_mapper: QueryResultMapper,
        index_names: Sequence[str],
        sorting: Optional[Mapping[str, str]] = None,
        from_: Optional[int] = None,
        size: Optional[int] = None,
        filters: Optional[Filters] = None,
        with_aggregates: bool = True,
    ) -> None:
        self.query_builder = query_builder
        self.client = client
        self.result_mapper = result_mapper
        self.index_names = list(index_names)
        self.sorting = dict(sorting) if sorting is not None else None
        self.from_ = from_
        self.size = size
        self.filters = filters
        self.with_aggregates = with_aggregates
        self._query_result: Optional[QueryResult] = None

    @classmethod
    def for_page(cls, pager: Pager, *args: Any, **kwargs: Any) -> "QueryAdapter":
        return cls(*args, from_=pager.offset, size=pager.per_page, **kwargs)

    @property
    def is_executed(self) -> bool:
        return self._query_result is not None

    @abstractmethod
    def build_query(self, filters: Filters) -> Dict[str, Any]: ...

    def get_query_result(self) -> QueryResult:
        if self._query_result is None:
            filters = self.query_builder.resolve_filters(self.filters)
            query = self.build_query(filters)
            result = self.client.search(self.index_names, query)
            self._query_result = self.result_mapper.map(result, filters)
            logger.info(
                "%s executed total=%s slice=%s from=%s size=%s",
                type(self).__name__,
                self._query_result.total,
                len(self._query_result.products),
                self.from_,
                self.size,
            )
        return self._query_result

    def get_nb_results(self) -> int:
        return self.get_query_result().total

    def get_slice(self) -> List[ProductResponse]:
        return self.get_query_result().products

    def get_filters(self) -> Dict[str, FilterSummary]:
        return self.get_query_result().filters


class TaxonQueryAdapter(QueryAdapter):
    def __init__(
        self,
        query_builder: QueryBuilder,
        client: SearchClient,
        result_mapper: QueryResultMapper,
        index_names: Sequence[str],
        taxon: Taxon,
        sorting: Optional[Mapping[str, str]] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(query_builder, client, result_mapper, index_names, sorting, **kwargs)
        self.taxon = taxon

    def build_query(self, filters: Filters) -> Dict[str, Any]:
        return self.query_builder.build_taxon_query(
            self.taxon,
            from_=self.from_,
            size=self.size,
            sorting=self.sorting,
            with_aggregates=self.with_aggregates,
            filters=filters,
        )


class SearchQueryAdapter(QueryAdapter):
    def __init__(
        self,
        query_builder: QueryBuilder,
        client: SearchClient,
        result_mapper: QueryResultMapper,
        index_names: Sequence[str],
        search_term: str,
        sorting: Optional[Mapping[str, str]] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(query_builder, client, result_mapper, index_names, sorting, **kwargs)
        self.search_term = search_term

    def build_query(self, filters: Filters) -> Dict[str, Any]:
        return self.query_builder.build_search_query(
            self.search_term,
            from_=self.from_,
            size=self.size,
            sorting=self.sorting,
            with_aggregates=self.with_aggregates,
            filters=filters,
        )
