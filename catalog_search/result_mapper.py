"""Map raw search results to products and a facet summary."""
from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional

from .es_client import SearchResult
from .filters import Filters
from .models import FilterSummary, FilterValue, QueryResult
from .parser import ProductDocumentParser

logger = logging.getLogger(__name__)

# Aggregation name -> facet kind. Plain and translated attributes share a kind
# so that buckets for the same attribute code end up in one facet.
FACET_AGGREGATIONS = {
    "attributes": "attribute",
    "translated-attributes": "attribute",
    "options": "option",
}


def _find_codes(aggregation: Any) -> List[Dict[str, Any]]:
    """Walk nested/filter wrappers down to the ``codes`` terms aggregation."""

    if not isinstance(aggregation, dict):
        return []
    codes = aggregation.get("codes")
    if isinstance(codes, dict) and "buckets" in codes:
        return list(codes["buckets"])
    for value in aggregation.values():
        if isinstance(value, dict) and "buckets" not in value:
            found = _find_codes(value)
            if found:
                return found
    return []


def _first_key(aggregation: Optional[Dict[str, Any]]) -> Optional[str]:
    if not aggregation:
        return None
    buckets = aggregation.get("buckets") or []
    if not buckets:
        return None
    return str(buckets[0].get("key"))


def _bucket_count(bucket: Dict[str, Any]) -> int:
    products = bucket.get("products")
    if isinstance(products, dict) and "doc_count" in products:
        return int(products["doc_count"])
    return int(bucket.get("doc_count", 0))


class QueryResultMapper:
    def __init__(self, parser: ProductDocumentParser) -> None:
        self.parser = parser

    def map(self, result: SearchResult, applied_filters: Optional[Filters] = None) -> QueryResult:
        products = [self.parser.parse(hit) for hit in result.hits]
        filters = self.map_filters(result.aggregations, applied_filters or {})
        return QueryResult(total=result.total, products=products, filters=filters)

    def map_filters(self, aggregations: Dict[str, Any], applied_filters: Filters) -> Dict[str, FilterSummary]:
        summaries: Dict[str, FilterSummary] = {}
        for name, kind in FACET_AGGREGATIONS.items():
            for code_bucket in _find_codes(aggregations.get(name)):
                code = str(code_bucket.get("key"))
                summary = summaries.get(code)
                if summary is None:
                    summary = FilterSummary(code=code, kind=kind, label=_first_key(code_bucket.get("label")))
                    summaries[code] = summary
                elif summary.label is None:
                    summary.label = _first_key(code_bucket.get("label"))
                self._merge_values(
                    summary,
                    (code_bucket.get("values") or {}).get("buckets", []),
                    applied_filters.get(code, []),
                )
        logger.debug("mapped %s facets from aggregations %s", len(summaries), sorted(aggregations))
        return summaries

    @staticmethod
    def _merge_values(summary: FilterSummary, buckets: Iterable[Dict[str, Any]], selected: List[str]) -> None:
        existing = {value.value: value for value in summary.values}
        for bucket in buckets:
            key = bucket.get("key_as_string", bucket.get("key"))
            value = str(key)
            count = _bucket_count(bucket)
            if value in existing:
                existing[value].count += count
                continue
            filter_value = FilterValue(
                value=value,
                label=_first_key(bucket.get("label")) or value,
                count=count,
                selected=value in selected,
            )
            existing[value] = filter_value
            summary.values.append(filter_value)
