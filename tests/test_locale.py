"""Tests for localized field resolution."""

import pytest

from catalog_search.catalog import Channel
from catalog_search.errors import IntegrityError, SlugNotFoundError
from catalog_search.locale import channel_fallback_locale, is_valid_locale_code, resolve_localized, resolve_slug


def test_exact_locale_wins_over_fallback():
    field = [{"en_US": "Shoe"}, {"it_IT": "Scarpa"}]

    assert resolve_localized(field, "it_IT", "en_US") == "Scarpa"


def test_fallback_used_when_locale_missing():
    assert resolve_localized([{"en_US": "Shoe"}], "it_IT", "en_US") == "Shoe"


def test_absent_when_neither_locale_present():
    assert resolve_localized([{"de_DE": "Schuh"}], "it_IT", "en_US") is None
    assert resolve_localized([], "it_IT", "en_US") is None


def test_first_entry_wins_for_repeated_locale():
    field = [{"en_US": "first"}, {"en_US": "second"}]

    assert resolve_localized(field, "en_US", None) == "first"
    assert resolve_localized(field, "it_IT", "en_US") == "first"


def test_slug_uses_active_locale_only():
    field = [{"en_US": "shoe"}]

    assert resolve_slug(field, "en_US") == "shoe"
    with pytest.raises(SlugNotFoundError) as excinfo:
        resolve_slug(field, "it_IT")
    assert isinstance(excinfo.value, IntegrityError)
    assert excinfo.value.locale_code == "it_IT"


def test_channel_fallback_locale():
    assert channel_fallback_locale(Channel(code="WEB", default_locale="it_IT"), "en_US") == "it_IT"
    assert channel_fallback_locale(Channel(code="WEB"), "en_US") == "en_US"


def test_null_slug_counts_as_missing():
    assert resolve_slug([{"en_US": None}, {"en_US": "shoe"}], "en_US") == "shoe"
    with pytest.raises(SlugNotFoundError):
        resolve_slug([{"en_US": None}], "en_US")


@pytest.mark.parametrize("locale_code", ["en", "en_US", "fil_PH", "sr_Latn", "EN_us"])
def test_valid_locale_codes(locale_code):
    assert is_valid_locale_code(locale_code)


@pytest.mark.parametrize(
    "locale_code",
    ["", "e", "en-US", 'en"', "en_US\n", "en_US.keyword", 'en_US", "size": 1', None, 7],
)
def test_invalid_locale_codes(locale_code):
    assert not is_valid_locale_code(locale_code)
