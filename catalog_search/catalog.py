"""Catalog aggregate as seen by the indexer.

These dataclasses are the live product graph handed to the normalizer. They
carry no persistence logic; whatever loads the catalog (see
:mod:`catalog_search.importer`) builds them and wires the back references.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, List, Optional, Protocol, runtime_checkable

VARIANT_SELECTION_LABELS = {
    "choice": "Variant choice",
    "match": "Options matching",
}


@runtime_checkable
class Filterable(Protocol):
    """Capability exposed by attributes and options that can drive facets."""

    def is_filterable(self) -> bool: ...


@dataclass
class Channel:
    code: str
    default_locale: Optional[str] = None
    locales: List[str] = field(default_factory=list)


@dataclass
class TaxonTranslation:
    locale: str
    name: Optional[str] = None
    slug: Optional[str] = None


@dataclass
class Taxon:
    id: Any
    code: str
    translations: List[TaxonTranslation] = field(default_factory=list)


@dataclass
class ProductTaxon:
    taxon: Taxon
    position: int = 0


@dataclass
class CatalogPromotionTranslation:
    locale: str
    label: Optional[str] = None
    description: Optional[str] = None


@dataclass
class CatalogPromotion:
    id: Any
    code: str
    translations: List[CatalogPromotionTranslation] = field(default_factory=list)


@dataclass
class ChannelPricing:
    channel_code: str
    price: Optional[int] = None
    original_price: Optional[int] = None
    applied_promotions: List[CatalogPromotion] = field(default_factory=list)


@dataclass
class ProductOptionTranslation:
    locale: str
    name: Optional[str] = None


@dataclass
class ProductOptionValueTranslation:
    locale: str
    value: Optional[str] = None


@dataclass(eq=False)
class ProductOptionValue:
    id: Any
    code: str
    option: Optional["ProductOption"] = field(default=None, repr=False)
    translations: List[ProductOptionValueTranslation] = field(default_factory=list)

    @property
    def value(self) -> Optional[str]:
        for translation in self.translations:
            return translation.value
        return None


@dataclass(eq=False)
class ProductOption:
    id: Any
    code: str
    position: int = 0
    translations: List[ProductOptionTranslation] = field(default_factory=list)
    values: List[ProductOptionValue] = field(default_factory=list)

    def add_value(self, value: ProductOptionValue) -> None:
        value.option = self
        self.values.append(value)


@dataclass(eq=False)
class FilterableProductOption(ProductOption):
    filterable: bool = False

    def is_filterable(self) -> bool:
        return self.filterable


@dataclass
class ProductAttributeTranslation:
    locale: str
    name: Optional[str] = None


@dataclass(eq=False)
class ProductAttribute:
    id: Any
    code: str
    type: str = "text"
    storage_type: str = "text"
    position: int = 0
    translatable: bool = True
    translations: List[ProductAttributeTranslation] = field(default_factory=list)


@dataclass(eq=False)
class FilterableProductAttribute(ProductAttribute):
    filterable: bool = False

    def is_filterable(self) -> bool:
        return self.filterable


@dataclass
class ProductAttributeValue:
    id: Any
    attribute: ProductAttribute
    value: Any = None
    locale_code: Optional[str] = None

    @property
    def code(self) -> str:
        return self.attribute.code


@dataclass
class ProductVariantTranslation:
    locale: str
    name: Optional[str] = None


@dataclass(eq=False)
class ProductVariant:
    id: Any
    code: str
    position: int = 0
    enabled: bool = True
    weight: Optional[float] = None
    width: Optional[float] = None
    height: Optional[float] = None
    depth: Optional[float] = None
    shipping_required: bool = True
    option_values: List[ProductOptionValue] = field(default_factory=list)
    translations: List[ProductVariantTranslation] = field(default_factory=list)
    channel_pricings: List[ChannelPricing] = field(default_factory=list)

    def get_channel_pricing_for_channel(self, channel: Channel) -> Optional[ChannelPricing]:
        for pricing in self.channel_pricings:
            if pricing.channel_code == channel.code:
                return pricing
        return None


@dataclass(eq=False)
class ProductImage:
    id: Any
    path: str
    type: Optional[str] = None
    variants: List[ProductVariant] = field(default_factory=list)


@dataclass
class ProductTranslation:
    locale: str
    name: Optional[str] = None
    slug: Optional[str] = None
    description: Optional[str] = None
    short_description: Optional[str] = None


@dataclass(eq=False)
class Product:
    id: Any
    code: str
    enabled: bool = True
    variant_selection_method: str = "choice"
    created_at: Optional[datetime] = None
    translations: List[ProductTranslation] = field(default_factory=list)
    variants: List[ProductVariant] = field(default_factory=list)
    options: List[ProductOption] = field(default_factory=list)
    attributes: List[ProductAttributeValue] = field(default_factory=list)
    product_taxons: List[ProductTaxon] = field(default_factory=list)
    main_taxon: Optional[Taxon] = None
    images: List[ProductImage] = field(default_factory=list)

    @property
    def variant_selection_method_label(self) -> str:
        return VARIANT_SELECTION_LABELS.get(self.variant_selection_method, self.variant_selection_method)


VariantResolver = Callable[[Product], Optional[ProductVariant]]


def resolve_default_variant(product: Product) -> Optional[ProductVariant]:
    """Return the first enabled variant by position, if any."""

    enabled = [variant for variant in product.variants if variant.enabled]
    if not enabled:
        return None
    return min(enabled, key=lambda variant: variant.position)
