"""Load a catalog export (JSON) into catalog aggregates.

The export references shared records by code: products point at taxons,
options, attributes and promotions declared once at the top level.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from .catalog import (
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

logger = logging.getLogger(__name__)


@dataclass
class Catalog:
    channels: Dict[str, Channel] = field(default_factory=dict)
    taxons: Dict[str, Taxon] = field(default_factory=dict)
    products: List[Product] = field(default_factory=list)

    def get_channel(self, code: str) -> Optional[Channel]:
        return self.channels.get(code)

    def get_taxon(self, code: str) -> Optional[Taxon]:
        return self.taxons.get(code)


def _translations(raw: Dict[str, Any], cls: type, *fields: str) -> list:
    return [
        cls(locale=item["locale"], **{name: item.get(name) for name in fields})
        for item in raw.get("translations", [])
    ]


def _parse_datetime(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    return datetime.fromisoformat(value)


def _build_option(raw: Dict[str, Any]) -> ProductOption:
    cls = FilterableProductOption if "filterable" in raw else ProductOption
    extra = {"filterable": bool(raw["filterable"])} if "filterable" in raw else {}
    option = cls(
        id=raw["id"],
        code=raw["code"],
        position=raw.get("position", 0),
        translations=_translations(raw, ProductOptionTranslation, "name"),
        **extra,
    )
    for value in raw.get("values", []):
        option.add_value(
            ProductOptionValue(
                id=value["id"],
                code=value["code"],
                translations=_translations(value, ProductOptionValueTranslation, "value"),
            )
        )
    return option


def _build_attribute(raw: Dict[str, Any]) -> ProductAttribute:
    cls = FilterableProductAttribute if "filterable" in raw else ProductAttribute
    extra = {"filterable": bool(raw["filterable"])} if "filterable" in raw else {}
    return cls(
        id=raw["id"],
        code=raw["code"],
        type=raw.get("type", "text"),
        storage_type=raw.get("storage_type", "text"),
        position=raw.get("position", 0),
        translatable=raw.get("translatable", True),
        translations=_translations(raw, ProductAttributeTranslation, "name"),
        **extra,
    )


class _CatalogBuilder:
    def __init__(self, data: Dict[str, Any]) -> None:
        self.data = data
        self.taxons = {
            raw["code"]: Taxon(id=raw["id"], code=raw["code"], translations=_translations(raw, TaxonTranslation, "name", "slug"))
            for raw in data.get("taxons", [])
        }
        self.options = {raw["code"]: _build_option(raw) for raw in data.get("options", [])}
        self.option_values = {value.code: value for option in self.options.values() for value in option.values}
        self.attributes = {raw["code"]: _build_attribute(raw) for raw in data.get("attributes", [])}
        self.promotions = {
            raw["code"]: CatalogPromotion(
                id=raw["id"],
                code=raw["code"],
                translations=_translations(raw, CatalogPromotionTranslation, "label", "description"),
            )
            for raw in data.get("promotions", [])
        }

    def build(self) -> Catalog:
        channels = {
            raw["code"]: Channel(code=raw["code"], default_locale=raw.get("default_locale"), locales=raw.get("locales", []))
            for raw in self.data.get("channels", [])
        }
        products = [self._build_product(raw) for raw in self.data.get("products", [])]
        return Catalog(channels=channels, taxons=self.taxons, products=products)

    def _build_variant(self, raw: Dict[str, Any]) -> ProductVariant:
        return ProductVariant(
            id=raw["id"],
            code=raw["code"],
            position=raw.get("position", 0),
            enabled=raw.get("enabled", True),
            weight=raw.get("weight"),
            width=raw.get("width"),
            height=raw.get("height"),
            depth=raw.get("depth"),
            shipping_required=raw.get("shipping_required", True),
            option_values=[self.option_values[code] for code in raw.get("option_values", [])],
            translations=_translations(raw, ProductVariantTranslation, "name"),
            channel_pricings=[
                ChannelPricing(
                    channel_code=pricing["channel"],
                    price=pricing.get("price"),
                    original_price=pricing.get("original_price"),
                    applied_promotions=[self.promotions[code] for code in pricing.get("promotions", [])],
                )
                for pricing in raw.get("pricings", [])
            ],
        )

    def _build_product(self, raw: Dict[str, Any]) -> Product:
        variants = [self._build_variant(item) for item in raw.get("variants", [])]
        variants_by_code = {variant.code: variant for variant in variants}
        main_taxon = raw.get("main_taxon")
        return Product(
            id=raw["id"],
            code=raw["code"],
            enabled=raw.get("enabled", True),
            variant_selection_method=raw.get("variant_selection_method", "choice"),
            created_at=_parse_datetime(raw.get("created_at")),
            translations=_translations(raw, ProductTranslation, "name", "slug", "description", "short_description"),
            variants=variants,
            options=[self.options[code] for code in raw.get("options", [])],
            attributes=[
                ProductAttributeValue(
                    id=item["id"],
                    attribute=self.attributes[item["attribute"]],
                    value=item.get("value"),
                    locale_code=item.get("locale"),
                )
                for item in raw.get("attributes", [])
            ],
            product_taxons=[
                ProductTaxon(taxon=self.taxons[item["code"]], position=item.get("position", 0))
                for item in raw.get("taxons", [])
            ],
            main_taxon=self.taxons[main_taxon] if main_taxon else None,
            images=[
                ProductImage(
                    id=item["id"],
                    path=item["path"],
                    type=item.get("type"),
                    variants=[variants_by_code[code] for code in item.get("variants", [])],
                )
                for item in raw.get("images", [])
            ],
        )


def build_catalog(data: Dict[str, Any]) -> Catalog:
    return _CatalogBuilder(data).build()


def load_catalog(path: Path) -> Catalog:
    if not path.exists():
        logger.warning("Catalog file %s is missing", path)
        return Catalog()
    with path.open("r", encoding="utf-8") as fh:
        catalog = build_catalog(json.load(fh))
    logger.info("Loaded %s products and %s channels from %s", len(catalog.products), len(catalog.channels), path)
    return catalog
