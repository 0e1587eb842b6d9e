"""Turn a catalog product into the flat document stored in the index."""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from .catalog import (
    Channel,
    ChannelPricing,
    Filterable,
    Product,
    ProductAttribute,
    ProductAttributeValue,
    ProductImage,
    ProductOption,
    ProductOptionValue,
    ProductTaxon,
    ProductVariant,
    Taxon,
    VariantResolver,
    resolve_default_variant,
)
from .errors import IntegrityError
from .locale import localize

logger = logging.getLogger(__name__)


def _identity(value: Any, kind: str) -> Any:
    # bool is an int subclass but makes no sense as a grouping key.
    if isinstance(value, bool) or not isinstance(value, (int, str)):
        raise IntegrityError(f"{kind} ID different from string or integer is not supported.")
    return value


def _is_filterable(subject: Any) -> bool:
    if isinstance(subject, Filterable):
        return subject.is_filterable()
    return False


class ProductNormalizer:
    """Build index documents for one channel.

    ``variant_resolver`` picks the product's default variant; it receives the
    product and returns a variant or ``None``.
    """

    def __init__(self, variant_resolver: VariantResolver = resolve_default_variant) -> None:
        self.variant_resolver = variant_resolver

    def normalize(self, product: Product, channel: Channel) -> Dict[str, Any]:
        if not isinstance(product, Product):
            raise TypeError(f"Expected a Product, got {type(product).__name__}")
        if not isinstance(channel, Channel):
            raise TypeError(f"Expected a Channel, got {type(channel).__name__}")

        created_at = product.created_at
        document: Dict[str, Any] = {
            "sylius-id": product.id,
            "code": product.code,
            "enabled": product.enabled,
            "variant-selection-method": product.variant_selection_method,
            "variant-selection-method-label": product.variant_selection_method_label,
            "created-at": created_at.isoformat(timespec="seconds") if created_at is not None else None,
            "name": localize(product.translations, "name"),
            "description": localize(product.translations, "description"),
            "short-description": localize(product.translations, "short_description"),
            "slug": localize(product.translations, "slug"),
            "taxons": [self._normalize_product_taxon(product_taxon) for product_taxon in product.product_taxons],
            "variants": [],
            "default-variant": None,
            "main-taxon": None,
            "attributes": [],
            "translated-attributes": [],
            "product-options": [self._normalize_option(option) for option in product.options],
            "images": [self._normalize_image(image) for image in product.images],
        }

        default_variant = self.variant_resolver(product)
        if default_variant is not None:
            document["default-variant"] = self._normalize_variant(default_variant, channel)
        if product.main_taxon is not None:
            document["main-taxon"] = self._normalize_taxon(product.main_taxon)
        document["variants"] = [self._normalize_variant(variant, channel) for variant in product.variants]

        translated, plain = self._group_attribute_values(product.attributes)
        document["translated-attributes"] = [
            self._normalize_attribute(attribute, values) for attribute, values in translated.values()
        ]
        document["attributes"] = [self._normalize_attribute(attribute, values) for attribute, values in plain.values()]

        logger.debug(
            "normalized product code=%s channel=%s variants=%s attributes=%s",
            product.code,
            channel.code,
            len(document["variants"]),
            len(document["attributes"]) + len(document["translated-attributes"]),
        )
        return document

    @staticmethod
    def _group_attribute_values(values: List[ProductAttributeValue]):
        translated: Dict[Any, tuple[ProductAttribute, List[ProductAttributeValue]]] = {}
        plain: Dict[Any, tuple[ProductAttribute, List[ProductAttributeValue]]] = {}
        for attribute_value in values:
            attribute = attribute_value.attribute
            attribute_id = _identity(attribute.id, "Attribute")
            bucket = translated if attribute.translatable else plain
            bucket.setdefault(attribute_id, (attribute, []))[1].append(attribute_value)
        return translated, plain

    def _normalize_taxon(self, taxon: Taxon) -> Dict[str, Any]:
        return {
            "sylius-id": taxon.id,
            "code": taxon.code,
            "name": localize(taxon.translations, "name"),
        }

    def _normalize_product_taxon(self, product_taxon: ProductTaxon) -> Dict[str, Any]:
        return {**self._normalize_taxon(product_taxon.taxon), "position": product_taxon.position}

    def _normalize_variant(self, variant: ProductVariant, channel: Channel) -> Dict[str, Any]:
        options_with_value: Dict[Any, tuple[ProductOption, ProductOptionValue]] = {}
        for option_value in variant.option_values:
            option = option_value.option
            if option is None:
                raise IntegrityError(f"Option value {option_value.code!r} is not attached to an option.")
            option_id = _identity(option.id, "Option")
            if option_id in options_with_value:
                raise IntegrityError("Multiple values for the same option are not supported.")
            options_with_value[option_id] = (option, option_value)

        return {
            "sylius-id": variant.id,
            "code": variant.code,
            "enabled": variant.enabled,
            "position": variant.position,
            "weight": variant.weight,
            "width": variant.width,
            "height": variant.height,
            "depth": variant.depth,
            "shipping-required": variant.shipping_required,
            "name": localize(variant.translations, "name"),
            "price": self._normalize_channel_pricing(variant.get_channel_pricing_for_channel(channel)),
            "options": [
                self._normalize_variant_option(option, option_value)
                for option, option_value in options_with_value.values()
            ],
        }

    @staticmethod
    def _normalize_channel_pricing(channel_pricing: Optional[ChannelPricing]) -> Optional[Dict[str, Any]]:
        if channel_pricing is None:
            return None
        return {
            "price": channel_pricing.price,
            "original-price": channel_pricing.original_price,
            "applied-promotions": [
                {
                    "sylius-id": promotion.id,
                    "code": promotion.code,
                    "label": localize(promotion.translations, "label"),
                    "description": localize(promotion.translations, "description"),
                }
                for promotion in channel_pricing.applied_promotions
            ],
        }

    def _normalize_attribute(
        self, attribute: ProductAttribute, values: List[ProductAttributeValue]
    ) -> Dict[str, Any]:
        normalized_values: Any
        if attribute.translatable:
            normalized_values = {}
            for attribute_value in values:
                if not isinstance(attribute_value.locale_code, str):
                    raise IntegrityError(f"Translatable attribute {attribute.code!r} has a value without locale.")
                normalized_values.setdefault(attribute_value.locale_code, []).append(
                    self._normalize_attribute_value(attribute_value)
                )
        else:
            normalized_values = [self._normalize_attribute_value(attribute_value) for attribute_value in values]

        return {
            "sylius-id": attribute.id,
            "code": attribute.code,
            "type": attribute.type,
            "storage-type": attribute.storage_type,
            "position": attribute.position,
            "translatable": attribute.translatable,
            "filterable": _is_filterable(attribute),
            "name": localize(attribute.translations, "name"),
            "values": normalized_values,
        }

    @staticmethod
    def _normalize_attribute_value(attribute_value: ProductAttributeValue) -> Dict[str, Any]:
        storage_type = attribute_value.attribute.storage_type
        if not storage_type:
            raise IntegrityError(f"Attribute {attribute_value.code!r} has no storage type.")
        return {
            "sylius-id": attribute_value.id,
            "code": attribute_value.code,
            "locale": attribute_value.locale_code,
            f"{storage_type}-value": attribute_value.value,
        }

    def _normalize_variant_option(self, option: ProductOption, option_value: ProductOptionValue) -> Dict[str, Any]:
        return {
            "sylius-id": option.id,
            "code": option.code,
            "name": localize(option.translations, "name"),
            "filterable": _is_filterable(option),
            "value": self._normalize_option_value(option_value),
        }

    def _normalize_option(self, option: ProductOption) -> Dict[str, Any]:
        return {
            "sylius-id": option.id,
            "code": option.code,
            "position": option.position,
            "filterable": _is_filterable(option),
            "name": localize(option.translations, "name"),
            "values": [self._normalize_option_value(value) for value in option.values],
        }

    @staticmethod
    def _normalize_option_value(option_value: ProductOptionValue) -> Dict[str, Any]:
        return {
            "sylius-id": option_value.id,
            "code": option_value.code,
            "value": option_value.value,
            "name": localize(option_value.translations, "value"),
        }

    @staticmethod
    def _normalize_image(image: ProductImage) -> Dict[str, Any]:
        return {
            "sylius-id": image.id,
            "type": image.type,
            "path": image.path,
            "variants": [{"sylius-id": variant.id, "code": variant.code} for variant in image.variants],
        }
