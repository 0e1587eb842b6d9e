"""Rendering of query fragments from Jinja2 templates.

Each fragment is a small JSON template under ``templates/query``. A fragment
id such as ``taxon/sort/price`` maps to ``query/taxon/sort/price.json.j2``.
"""
from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path
from typing import Any, Mapping, Protocol

from jinja2 import Environment, FileSystemLoader, StrictUndefined, TemplateError, TemplateNotFound

from .config import settings
from .errors import QueryAssemblyError

logger = logging.getLogger(__name__)

_DEFAULT_TEMPLATE_DIR = (Path(__file__).parent / "templates").resolve()
TEMPLATE_SUFFIX = ".json.j2"


class FragmentRenderer(Protocol):
    def render(self, fragment_id: str, params: Mapping[str, Any]) -> str: ...


def _resolve_template_dir(configured: str | None) -> Path:
    if configured:
        candidate = Path(configured).expanduser()
        if candidate.is_dir():
            return candidate.resolve()
        logger.warning("Template directory %s not found; using bundled templates", candidate)
    return _DEFAULT_TEMPLATE_DIR


@lru_cache(maxsize=4)
def get_environment(template_dir: str | None = None) -> Environment:
    """Return a cached Jinja2 environment for query fragments."""

    loader = FileSystemLoader(str(_resolve_template_dir(template_dir or settings.template_dir)))
    return Environment(
        loader=loader,
        autoescape=False,
        undefined=StrictUndefined,
        keep_trailing_newline=True,
    )


class JinjaFragmentRenderer:
    def __init__(self, environment: Environment | None = None) -> None:
        self.environment = environment or get_environment()

    def render(self, fragment_id: str, params: Mapping[str, Any]) -> str:
        template_name = f"query/{fragment_id}{TEMPLATE_SUFFIX}"
        try:
            template = self.environment.get_template(template_name)
        except TemplateNotFound as exc:
            raise QueryAssemblyError(fragment_id, f"template {template_name} not found") from exc
        try:
            return template.render(**params)
        except TemplateError as exc:
            raise QueryAssemblyError(fragment_id, str(exc)) from exc
