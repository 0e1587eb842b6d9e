"""Error categories raised by the indexing and query pipeline.

Search-engine failures are not wrapped: they reach the caller as the
``elasticsearch`` exceptions the client raised.
"""
from __future__ import annotations


class CatalogSearchError(Exception):
    """Base class for failures detected by the catalog search core."""


class IntegrityError(CatalogSearchError):
    """Source data violates a contract the index document relies on."""


class SlugNotFoundError(IntegrityError):
    def __init__(self, locale_code: str) -> None:
        self.locale_code = locale_code
        super().__init__(f"Slug not found for locale {locale_code!r}")


class QueryAssemblyError(CatalogSearchError):
    """A query fragment could not be rendered or decoded."""

    def __init__(self, fragment_id: str, message: str) -> None:
        self.fragment_id = fragment_id
        super().__init__(f"Query fragment {fragment_id!r}: {message}")
