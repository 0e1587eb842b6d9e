"""Index naming, document types and full reindexing behind an alias."""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Protocol

from elasticsearch import Elasticsearch, helpers
from elasticsearch.exceptions import NotFoundError

from .catalog import Channel, Product
from .normalizer import ProductNormalizer

logger = logging.getLogger(__name__)


class DocumentType(Protocol):
    code: str

    def get_documents(self, channel: Channel) -> Iterable[Dict[str, Any]]: ...

    def get_mappings(self) -> Dict[str, Any]: ...


BUNDLED_MAPPING = Path(__file__).parent / "mapping" / "product-mapping.json"


def load_mapping(mapping_path: str | Path | None = None) -> Dict[str, Any]:
    """Read an index body (settings + mappings) from JSON.

    Without a path, or when the configured file is missing, the bundled product
    mapping is used. It declares the nested paths the query templates rely on.
    """

    path = Path(mapping_path) if mapping_path else BUNDLED_MAPPING
    if not path.is_file():
        logger.warning("Mapping file %s not found; using the bundled product mapping", path)
        path = BUNDLED_MAPPING
    with path.open("r", encoding="utf-8") as fh:
        return json.load(fh)


@dataclass
class ProductDocumentType:
    products: Callable[[], Iterable[Product]]
    normalizer: ProductNormalizer = field(default_factory=ProductNormalizer)
    mappings: Dict[str, Any] = field(default_factory=dict)
    code: str = "product"

    def get_documents(self, channel: Channel) -> Iterable[Dict[str, Any]]:
        for product in self.products():
            yield self.normalizer.normalize(product, channel)

    def get_mappings(self) -> Dict[str, Any]:
        return self.mappings


class IndexNameGenerator:
    def __init__(self, prefix: str = "", clock: Callable[[], datetime] | None = None) -> None:
        self.prefix = prefix
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    def generate_alias(self, channel: Channel, document_type: DocumentType) -> str:
        return f"{self.prefix}{channel.code}_{document_type.code}".lower()

    def generate(self, channel: Channel, document_type: DocumentType) -> str:
        timestamp = self.clock().strftime("%Y%m%d%H%M%S")
        return f"{self.generate_alias(channel, document_type)}_{timestamp}"


def _iter_actions(index: str, documents: Iterable[Dict[str, Any]]) -> Iterable[Dict[str, Any]]:
    for document in documents:
        yield {
            "_index": index,
            "_id": document.get("code") or document.get("sylius-id"),
            "_source": document,
        }


def _aliased_indices(es: Elasticsearch, alias: str) -> List[str]:
    try:
        response = es.indices.get_alias(name=alias)
    except NotFoundError:
        return []
    return list(getattr(response, "body", response).keys())


def reindex(
    es: Elasticsearch,
    channel: Channel,
    document_type: DocumentType,
    generator: IndexNameGenerator,
) -> int:
    """Build a fresh index for ``channel`` and move the alias onto it.

    Indices previously behind the alias are deleted once the alias points at
    the new one. Returns the number of indexed documents.
    """

    alias = generator.generate_alias(channel, document_type)
    index_name = generator.generate(channel, document_type)
    logger.info("Creating index %s for alias %s", index_name, alias)
    es.indices.create(index=index_name, body=document_type.get_mappings() or None)

    try:
        indexed, _ = helpers.bulk(es, _iter_actions(index_name, document_type.get_documents(channel)))
        previous = [name for name in _aliased_indices(es, alias) if name != index_name]
        actions: List[Dict[str, Any]] = [{"remove": {"index": name, "alias": alias}} for name in previous]
        actions.append({"add": {"index": index_name, "alias": alias}})
        es.indices.update_aliases(body={"actions": actions})
    except Exception:
        logger.exception("Reindex into %s failed; dropping the partial index", index_name)
        es.indices.delete(index=index_name, ignore_unavailable=True)
        raise

    for name in previous:
        logger.info("Dropping previous index %s", name)
        es.indices.delete(index=name)
    logger.info("Indexed %s %s documents into %s", indexed, document_type.code, index_name)
    return indexed


def index_is_empty(es: Elasticsearch, index: str) -> bool:
    try:
        stats = es.count(index=index)
        return getattr(stats, "body", stats).get("count", 0) == 0
    except NotFoundError:
        return True
