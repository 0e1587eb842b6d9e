"""Elasticsearch client factory and the search client used by the adapters.

The rest of the code works against the official synchronous client. Blocking
calls are wrapped via ``asyncio.to_thread`` by the caller where necessary.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from functools import lru_cache
from time import perf_counter
from typing import Any, Dict, List, Protocol, Sequence

from elasticsearch import Elasticsearch

from .config import settings

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_client() -> Elasticsearch:
    logger.info("Connecting to Elasticsearch at %s", settings.es_host)
    return Elasticsearch(settings.es_host)


@dataclass
class SearchResult:
    hits: List[Dict[str, Any]] = field(default_factory=list)
    total: int = 0
    aggregations: Dict[str, Any] = field(default_factory=dict)
    took_ms: float = 0.0

    @classmethod
    def from_response(cls, response: Any) -> "SearchResult":
        response = getattr(response, "body", response)
        hits = response.get("hits", {})
        total = hits.get("total", 0)
        if isinstance(total, dict):
            total = total.get("value", 0)
        return cls(
            hits=list(hits.get("hits", [])),
            total=int(total),
            aggregations=dict(response.get("aggregations") or {}),
            took_ms=float(response.get("took", 0)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "hits": self.hits,
            "total": self.total,
            "aggregations": self.aggregations,
            "took_ms": self.took_ms,
        }


class SearchClient(Protocol):
    def search(self, index_names: Sequence[str], query: Dict[str, Any]) -> SearchResult: ...


class ElasticsearchSearchClient:
    """Run assembled queries against one or more indices or aliases."""

    def __init__(self, es: Elasticsearch) -> None:
        self.es = es

    def search(self, index_names: Sequence[str], query: Dict[str, Any]) -> SearchResult:
        started = perf_counter()
        response = self.es.search(index=list(index_names), body=query)
        result = SearchResult.from_response(response)
        logger.info(
            "search indices=%s hits=%s total=%s took=%sms elapsed=%.2fms",
            ",".join(index_names),
            len(result.hits),
            result.total,
            result.took_ms,
            (perf_counter() - started) * 1000,
        )
        return result
