"""Terminal client that reuses the in-process search pipeline."""
from __future__ import annotations

import argparse
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from catalog_search.catalog import Channel, Taxon
from catalog_search.config import settings
from catalog_search.es_client import ElasticsearchSearchClient, get_client
from catalog_search.filters import parse_filters
from catalog_search.fragments import JinjaFragmentRenderer
from catalog_search.importer import Catalog, load_catalog
from catalog_search.indexing import IndexNameGenerator, ProductDocumentType, load_mapping, reindex
from catalog_search.locale import StaticChannelContext, StaticLocaleContext
from catalog_search.models import QueryResult
from catalog_search.pagination import Pager, SearchQueryAdapter, TaxonQueryAdapter
from catalog_search.parser import ProductDocumentParser
from catalog_search.query_builder import QueryBuilder
from catalog_search.result_mapper import QueryResultMapper

GREEN = "\033[92m"
RESET = "\033[0m"


def _channel(catalog: Catalog) -> Channel:
    return catalog.get_channel(settings.channel_code) or Channel(
        code=settings.channel_code, default_locale=settings.default_locale
    )


def _document_type(catalog: Catalog) -> ProductDocumentType:
    return ProductDocumentType(products=lambda: catalog.products, mappings=load_mapping(settings.mapping_path))


def _parse_pairs(values: Optional[List[str]]) -> List[tuple[str, str]]:
    pairs = []
    for item in values or []:
        code, _, value = item.partition("=")
        pairs.append((f"filters[{code}]", value))
    return pairs


def _parse_sort(values: Optional[List[str]]) -> Optional[Dict[str, str]]:
    if not values:
        return None
    sorting: Dict[str, str] = {}
    for item in values:
        field, _, order = item.partition(":")
        sorting[field] = order or "asc"
    return sorting


def pretty_print_result(title: str, pager: Pager, result: QueryResult) -> None:
    print(f"{title} | total: {result.total} | page {pager.page}/{pager.nb_pages(result.total)}")
    for idx, product in enumerate(result.products, start=pager.offset + 1):
        variant = product.default_variant
        pricing = variant.channel_pricing if variant else None
        price = pricing.price if pricing and pricing.price is not None else "-"
        print(f"  {idx:02d}. {GREEN}{product.code}{RESET} | {product.name} | /{product.slug} | price={price}")
    for summary in result.filters.values():
        values = ", ".join(
            f"{'*' if value.selected else ''}{value.label} ({value.count})" for value in summary.values
        )
        print(f"  [{summary.label or summary.code}] {values}")


def main(argv: Iterable[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="CLI client for the catalog search service")
    subparsers = parser.add_subparsers(dest="command", required=True)

    for name in ("search", "taxon"):
        sub = subparsers.add_parser(name)
        sub.add_argument("subject", help="Search term or taxon code")
        sub.add_argument("--page", type=int, default=1)
        sub.add_argument("--limit", type=int, default=settings.default_page_size)
        sub.add_argument("--locale", default=None)
        sub.add_argument("--filter", action="append", help="code=value, may be repeated")
        sub.add_argument("--sort", action="append", help="field:asc|desc, may be repeated")

    reindex_parser = subparsers.add_parser("reindex")
    reindex_parser.add_argument("--catalog", type=Path, default=Path(settings.catalog_path))

    args = parser.parse_args(list(argv) if argv is not None else None)

    catalog = load_catalog(getattr(args, "catalog", None) or Path(settings.catalog_path))
    channel = _channel(catalog)
    document_type = _document_type(catalog)
    generator = IndexNameGenerator(settings.index_prefix)
    es = get_client()

    if args.command == "reindex":
        count = reindex(es, channel, document_type, generator)
        print(f"Indexed {count} products into {generator.generate_alias(channel, document_type)}")
        return 0

    locale_context = StaticLocaleContext(args.locale or channel.default_locale or settings.default_locale)
    query_builder = QueryBuilder(JinjaFragmentRenderer(), locale_context)
    result_mapper = QueryResultMapper(
        ProductDocumentParser(locale_context, StaticChannelContext(channel), settings.fallback_locale)
    )
    pager = Pager(args.page, args.limit)
    index_names = [generator.generate_alias(channel, document_type)]
    filters = parse_filters(_parse_pairs(args.filter))
    client = ElasticsearchSearchClient(es)

    if args.command == "search":
        adapter = SearchQueryAdapter.for_page(
            pager, query_builder, client, result_mapper, index_names, args.subject,
            sorting=_parse_sort(args.sort), filters=filters,
        )
    else:
        taxon = catalog.get_taxon(args.subject) or Taxon(id=None, code=args.subject)
        adapter = TaxonQueryAdapter.for_page(
            pager, query_builder, client, result_mapper, index_names, taxon,
            sorting=_parse_sort(args.sort) or {"position": "asc"}, filters=filters,
        )
    pretty_print_result(f"{args.command}: {args.subject}", pager, adapter.get_query_result())
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
