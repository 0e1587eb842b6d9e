"""Shared fixtures: a small catalog, locale contexts and a recording renderer."""

import json
from datetime import datetime

import pytest

from catalog_search.catalog import (
    CatalogPromotion,
    CatalogPromotionTranslation,
    Channel,
    ChannelPricing,
    FilterableProductAttribute,
    FilterableProductOption,
    Product,
    ProductAttribute,
    ProductAttributeTranslation,
    ProductAttributeValue,
    ProductImage,
    ProductOption,
    ProductOptionTranslation,
    ProductOptionValue,
    ProductOptionValueTranslation,
    ProductTaxon,
    ProductTranslation,
    ProductVariant,
    ProductVariantTranslation,
    Taxon,
    TaxonTranslation,
)
from catalog_search.locale import StaticChannelContext, StaticLocaleContext
from catalog_search.parser import ProductDocumentParser


class RecordingRenderer:
    """Fragment renderer returning canned JSON and remembering every call."""

    def __init__(self, fragments=None):
        self.fragments = fragments or {}
        self.calls = []

    def render(self, fragment_id, params):
        self.calls.append((fragment_id, dict(params)))
        if fragment_id in self.fragments:
            return self.fragments[fragment_id]
        if "/sort/" in fragment_id:
            return json.dumps({params["field"]: {"order": params["order"]}})
        if "/aggs/" in fragment_id:
            name = fragment_id.rsplit("/", 1)[1]
            return json.dumps({name: {"terms": {"field": f"{name}.code"}}})
        return json.dumps({"match_all": {}})

    def calls_for(self, fragment_id):
        return [params for called, params in self.calls if called == fragment_id]


@pytest.fixture
def renderer():
    return RecordingRenderer()


@pytest.fixture
def channel():
    return Channel(code="WEB", default_locale="en_US", locales=["en_US", "it_IT"])


@pytest.fixture
def locale_context():
    return StaticLocaleContext("en_US")


@pytest.fixture
def document_parser(locale_context, channel):
    return ProductDocumentParser(locale_context, StaticChannelContext(channel), "en_US")


@pytest.fixture
def color_option():
    option = FilterableProductOption(
        id=1,
        code="color",
        position=0,
        translations=[ProductOptionTranslation("en_US", "Color"), ProductOptionTranslation("it_IT", "Colore")],
        filterable=True,
    )
    option.add_value(
        ProductOptionValue(
            id=11,
            code="color_red",
            translations=[ProductOptionValueTranslation("en_US", "Red"), ProductOptionValueTranslation("it_IT", "Rosso")],
        )
    )
    option.add_value(
        ProductOptionValue(
            id=12,
            code="color_blue",
            translations=[ProductOptionValueTranslation("en_US", "Blue"), ProductOptionValueTranslation("it_IT", "Blu")],
        )
    )
    return option


@pytest.fixture
def size_option():
    option = ProductOption(id="size", code="size", position=1, translations=[ProductOptionTranslation("en_US", "Size")])
    option.add_value(ProductOptionValue(id=21, code="size_s", translations=[ProductOptionValueTranslation("en_US", "S")]))
    option.add_value(ProductOptionValue(id=22, code="size_m", translations=[ProductOptionValueTranslation("en_US", "M")]))
    return option


@pytest.fixture
def shoes_taxon():
    return Taxon(
        id=5,
        code="shoes",
        translations=[TaxonTranslation("en_US", "Shoes", "shoes"), TaxonTranslation("it_IT", "Scarpe", "scarpe")],
    )


@pytest.fixture
def promotion():
    return CatalogPromotion(
        id=3,
        code="summer",
        translations=[
            CatalogPromotionTranslation("en_US", "Summer sale", "Hot deals"),
            CatalogPromotionTranslation("it_IT", "Saldi estivi", "Offerte"),
        ],
    )


@pytest.fixture
def product(color_option, size_option, shoes_taxon, promotion):
    red, blue = color_option.values
    small, medium = size_option.values
    # Variants intentionally out of position order.
    second = ProductVariant(
        id=102,
        code="SHOE-RED-M",
        position=1,
        weight=1.2,
        option_values=[red, medium],
        translations=[ProductVariantTranslation("en_US", "Red shoe M")],
        channel_pricings=[ChannelPricing("WEB", price=1200, original_price=1500, applied_promotions=[promotion])],
    )
    first = ProductVariant(
        id=101,
        code="SHOE-BLUE-S",
        position=0,
        option_values=[blue, small],
        translations=[ProductVariantTranslation("en_US", "Blue shoe S")],
        channel_pricings=[
            ChannelPricing("WEB", price=1000, original_price=1000),
            ChannelPricing("APP", price=900, original_price=900),
        ],
    )
    material = FilterableProductAttribute(
        id=7,
        code="material",
        storage_type="text",
        translatable=False,
        translations=[ProductAttributeTranslation("en_US", "Material")],
        filterable=True,
    )
    care = ProductAttribute(
        id="care",
        code="care",
        storage_type="text",
        translatable=True,
        translations=[ProductAttributeTranslation("en_US", "Care")],
    )
    return Product(
        id=42,
        code="SHOE",
        created_at=datetime(2024, 3, 1, 10, 20, 30, 123456),
        translations=[
            ProductTranslation("en_US", "Shoe", "shoe", "A comfortable shoe", "Comfy"),
            ProductTranslation("it_IT", "Scarpa", "scarpa", "Una scarpa comoda", None),
        ],
        variants=[second, first],
        options=[color_option, size_option],
        attributes=[
            ProductAttributeValue(1001, material, "leather"),
            ProductAttributeValue(1002, care, "Hand wash", "en_US"),
            ProductAttributeValue(1003, care, "Lavare a mano", "it_IT"),
            ProductAttributeValue(1004, material, "rubber"),
        ],
        product_taxons=[ProductTaxon(shoes_taxon, position=3)],
        main_taxon=shoes_taxon,
        images=[ProductImage(id=9, path="sh/oe/shoe.jpg", type="main", variants=[first])],
    )


@pytest.fixture
def make_renderer():
    return RecordingRenderer
