"""Application configuration and constants."""
from __future__ import annotations

import os
from dataclasses import dataclass


def _get_env(name: str, default: str) -> str:
    value = os.getenv(name)
    return value if value is not None else default


@dataclass(frozen=True)
class Settings:
    """Simple settings container with environment variable overrides."""

    es_host: str = _get_env("ES_HOST", "http://localhost:9200")
    index_prefix: str = _get_env("INDEX_PREFIX", "catalog_")
    channel_code: str = _get_env("CHANNEL_CODE", "WEB")
    default_locale: str = _get_env("DEFAULT_LOCALE", "en_US")
    fallback_locale: str = _get_env("FALLBACK_LOCALE", "en_US")
    template_dir: str = _get_env("TEMPLATE_DIR", "")
    mapping_path: str = _get_env("MAPPING_PATH", "")
    catalog_path: str = _get_env("CATALOG_PATH", "catalog.json")
    redis_host: str = _get_env("REDIS_HOST", "localhost")
    redis_port: int = int(_get_env("REDIS_PORT", "6379"))
    cache_ttl_seconds: int = int(_get_env("CACHE_TTL_SECONDS", "0"))
    default_page_size: int = int(_get_env("DEFAULT_PAGE_SIZE", "9"))
    log_level: str = _get_env("LOG_LEVEL", "INFO")


settings = Settings()
