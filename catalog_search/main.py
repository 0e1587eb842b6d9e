"""FastAPI application wiring the catalog search pipeline."""
from __future__ import annotations

import asyncio
import logging
from functools import lru_cache
from pathlib import Path
from time import perf_counter
from typing import Any, Dict, Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.responses import JSONResponse

from .cache import CachingSearchClient, get_cache
from .catalog import Channel, Taxon
from .config import settings
from .errors import CatalogSearchError
from .es_client import ElasticsearchSearchClient, SearchClient, get_client
from .filters import RequestFilterSource, parse_sorting
from .fragments import JinjaFragmentRenderer
from .importer import Catalog, load_catalog
from .indexing import IndexNameGenerator, ProductDocumentType, index_is_empty, load_mapping, reindex
from .locale import StaticChannelContext, StaticLocaleContext, is_valid_locale_code
from .models import PageResponse
from .normalizer import ProductNormalizer
from .pagination import Pager, QueryAdapter, SearchQueryAdapter, TaxonQueryAdapter
from .parser import ProductDocumentParser
from .query_builder import QueryBuilder
from .result_mapper import QueryResultMapper

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_LEVEL = logging.getLevelName(settings.log_level.upper())

logging.basicConfig(level=LOG_LEVEL, format=LOG_FORMAT, force=True)
for name in ("uvicorn", "uvicorn.error", "uvicorn.access", "elastic_transport"):
    logging.getLogger(name).setLevel(LOG_LEVEL)

logger = logging.getLogger(__name__)
logger.info("Logging configured at %s", settings.log_level.upper())

app = FastAPI(title="Catalog Search Service")

DEFAULT_TAXON_SORTING = {"position": "asc"}


@lru_cache(maxsize=1)
def get_catalog() -> Catalog:
    return load_catalog(Path(settings.catalog_path))


def get_channel(catalog: Catalog = Depends(get_catalog)) -> Channel:
    channel = catalog.get_channel(settings.channel_code)
    if channel is None:
        if catalog.channels:
            raise HTTPException(status_code=404, detail=f"Unknown channel {settings.channel_code}")
        channel = Channel(code=settings.channel_code, default_locale=settings.default_locale)
    return channel


def get_search_client() -> SearchClient:
    client: SearchClient = ElasticsearchSearchClient(get_client())
    if settings.cache_ttl_seconds > 0:
        client = CachingSearchClient(client, get_cache(), settings.cache_ttl_seconds)
    return client


def get_index_name_generator() -> IndexNameGenerator:
    return IndexNameGenerator(settings.index_prefix)


@lru_cache(maxsize=1)
def get_index_body() -> Dict[str, Any]:
    return load_mapping(settings.mapping_path)


def get_document_type(catalog: Catalog = Depends(get_catalog)) -> ProductDocumentType:
    return ProductDocumentType(
        products=lambda: catalog.products,
        normalizer=ProductNormalizer(),
        mappings=get_index_body(),
    )


@app.exception_handler(CatalogSearchError)
async def catalog_search_error_handler(request: Request, exc: CatalogSearchError) -> JSONResponse:
    logger.error("%s while handling %s %s: %s", type(exc).__name__, request.method, request.url.path, exc)
    return JSONResponse(status_code=500, content={"error": str(exc), "category": type(exc).__name__})


class _RequestPipeline:
    """Per-request collaborators: locale, ambient filters and the query builder."""

    def __init__(self, request: Request, channel: Channel, locale: Optional[str]) -> None:
        if locale is not None and not is_valid_locale_code(locale):
            raise HTTPException(status_code=400, detail="Invalid locale code")
        items = list(request.query_params.multi_items())
        self.locale_code = locale or channel.default_locale or settings.default_locale
        self.sorting = parse_sorting(items)
        locale_context = StaticLocaleContext(self.locale_code)
        self.query_builder = QueryBuilder(
            JinjaFragmentRenderer(),
            locale_context,
            RequestFilterSource.from_query_items(items),
        )
        parser = ProductDocumentParser(locale_context, StaticChannelContext(channel), settings.fallback_locale)
        self.result_mapper = QueryResultMapper(parser)


def _run_page(adapter: QueryAdapter, pager: Pager) -> PageResponse:
    started = perf_counter()
    result = adapter.get_query_result()
    return PageResponse(
        page=pager.page,
        per_page=pager.per_page,
        nb_pages=pager.nb_pages(result.total),
        total=result.total,
        products=result.products,
        filters=result.filters,
        took_ms=(perf_counter() - started) * 1000,
    )


@app.get("/health")
async def health(
    channel: Channel = Depends(get_channel),
    document_type: ProductDocumentType = Depends(get_document_type),
    generator: IndexNameGenerator = Depends(get_index_name_generator),
) -> Dict[str, object]:
    es = get_client()
    status = await asyncio.to_thread(es.cluster.health)
    alias = generator.generate_alias(channel, document_type)
    empty = await asyncio.to_thread(index_is_empty, es, alias)
    return {
        "elasticsearch": status.get("status"),
        "index": alias,
        "empty": empty,
    }


@app.get("/search", response_model=PageResponse)
async def search(
    request: Request,
    q: str = Query(..., description="Search term"),
    page: int = Query(1, ge=1),
    limit: int = Query(settings.default_page_size, ge=1, le=100),
    locale: Optional[str] = None,
    channel: Channel = Depends(get_channel),
    client: SearchClient = Depends(get_search_client),
    document_type: ProductDocumentType = Depends(get_document_type),
    generator: IndexNameGenerator = Depends(get_index_name_generator),
) -> PageResponse:
    if not q.strip():
        raise HTTPException(status_code=400, detail="Query must not be empty")
    pipeline = _RequestPipeline(request, channel, locale)
    pager = Pager(page, limit)
    adapter = SearchQueryAdapter.for_page(
        pager,
        pipeline.query_builder,
        client,
        pipeline.result_mapper,
        [generator.generate_alias(channel, document_type)],
        q.strip(),
        sorting=pipeline.sorting or None,
    )
    return await asyncio.to_thread(_run_page, adapter, pager)


@app.get("/taxons/{code}", response_model=PageResponse)
async def taxon(
    request: Request,
    code: str,
    page: int = Query(1, ge=1),
    limit: int = Query(settings.default_page_size, ge=1, le=100),
    locale: Optional[str] = None,
    catalog: Catalog = Depends(get_catalog),
    channel: Channel = Depends(get_channel),
    client: SearchClient = Depends(get_search_client),
    document_type: ProductDocumentType = Depends(get_document_type),
    generator: IndexNameGenerator = Depends(get_index_name_generator),
) -> PageResponse:
    browsed = catalog.get_taxon(code) or Taxon(id=None, code=code)
    pipeline = _RequestPipeline(request, channel, locale)
    pager = Pager(page, limit)
    adapter = TaxonQueryAdapter.for_page(
        pager,
        pipeline.query_builder,
        client,
        pipeline.result_mapper,
        [generator.generate_alias(channel, document_type)],
        browsed,
        sorting=pipeline.sorting or DEFAULT_TAXON_SORTING,
    )
    return await asyncio.to_thread(_run_page, adapter, pager)


@app.post("/reindex")
async def reindex_catalog(
    channel: Channel = Depends(get_channel),
    document_type: ProductDocumentType = Depends(get_document_type),
    generator: IndexNameGenerator = Depends(get_index_name_generator),
) -> Dict[str, object]:
    es = get_client()
    count = await asyncio.to_thread(reindex, es, channel, document_type, generator)
    return {"indexed": count, "alias": generator.generate_alias(channel, document_type)}
