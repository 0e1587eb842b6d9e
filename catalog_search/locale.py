"""Locale and channel context plus localized field helpers.

A localized field is stored in the index as an ordered list of single-entry
mappings, e.g. ``[{"en_US": "Shoe"}, {"it_IT": "Scarpa"}]``. The list form is
kept on purpose: the same locale may show up more than once and the first
entry wins.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Protocol

from .catalog import Channel
from .errors import SlugNotFoundError

LocalizedField = List[Dict[str, Optional[str]]]

LOCALE_CODE_PATTERN = re.compile(r"[A-Za-z]{2,3}(_[A-Za-z0-9]+)?")


class LocaleContext(Protocol):
    def get_locale_code(self) -> str: ...


class ChannelContext(Protocol):
    def get_channel(self) -> Channel: ...


@dataclass(frozen=True)
class StaticLocaleContext:
    locale_code: str

    def get_locale_code(self) -> str:
        return self.locale_code


@dataclass(frozen=True)
class StaticChannelContext:
    channel: Channel

    def get_channel(self) -> Channel:
        return self.channel


def is_valid_locale_code(locale_code: object) -> bool:
    return isinstance(locale_code, str) and LOCALE_CODE_PATTERN.fullmatch(locale_code) is not None


def localized_entry(locale_code: str, value: Optional[str]) -> Dict[str, Optional[str]]:
    return {locale_code: value}


def localize(translations: Iterable, attribute: str) -> LocalizedField:
    """Build a localized field from translation records in iteration order."""

    return [localized_entry(translation.locale, getattr(translation, attribute)) for translation in translations]


def resolve_localized(field: LocalizedField, locale_code: str, fallback_locale: Optional[str]) -> Optional[str]:
    """Return the value for ``locale_code``, else for ``fallback_locale``, else None."""

    fallback_value: Optional[str] = None
    fallback_found = False
    for entry in field:
        if locale_code in entry:
            return entry[locale_code]
        if not fallback_found and fallback_locale is not None and fallback_locale in entry:
            fallback_value = entry[fallback_locale]
            fallback_found = True
    return fallback_value


def resolve_slug(field: LocalizedField, locale_code: str) -> str:
    # Only the active locale counts for slugs, never the fallback. A null slug counts as missing.
    for entry in field:
        slug = entry.get(locale_code)
        if slug is not None:
            return slug
    raise SlugNotFoundError(locale_code)


def channel_fallback_locale(channel: Channel, configured_fallback: str) -> str:
    return channel.default_locale or configured_fallback
