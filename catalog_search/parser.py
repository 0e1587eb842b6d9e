"""Rebuild display-ready products from raw Elasticsearch hits."""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from .locale import (
    ChannelContext,
    LocaleContext,
    channel_fallback_locale,
    resolve_localized,
    resolve_slug,
)
from .models import (
    ChannelPricingResponse,
    ImageResponse,
    OptionResponse,
    OptionValueResponse,
    ProductResponse,
    PromotionResponse,
    VariantResponse,
)


class ProductDocumentParser:
    """Parse the ``_source`` of a product hit into a :class:`ProductResponse`.

    Localized fields resolve against the active locale, then the channel's
    default locale (or ``fallback_locale`` when the channel has none). The
    slug is the exception: it must exist for the active locale.
    """

    def __init__(
        self,
        locale_context: LocaleContext,
        channel_context: ChannelContext,
        fallback_locale: str,
    ) -> None:
        self.locale_context = locale_context
        self.channel_context = channel_context
        self.fallback_locale = fallback_locale

    def parse(self, document: Dict[str, Any]) -> ProductResponse:
        channel = self.channel_context.get_channel()
        default_locale = channel_fallback_locale(channel, self.fallback_locale)
        locale_code = self.locale_context.get_locale_code()
        source = document["_source"]

        def localized(field: List[Dict[str, Optional[str]]]) -> Optional[str]:
            return resolve_localized(field, locale_code, default_locale)

        images = [ImageResponse(path=image.get("path"), type=image.get("type")) for image in source.get("images", [])]

        # Variants come back in index order; position decides the default one.
        sorted_variants = sorted(source.get("variants", []), key=lambda variant: variant["position"])
        variants = []
        for es_variant in sorted_variants:
            es_price = es_variant.get("price")
            channel_pricing = None
            if es_price is not None:
                channel_pricing = ChannelPricingResponse(
                    channel_code=channel.code,
                    price=es_price.get("price"),
                    original_price=es_price.get("original-price"),
                    applied_promotions=[
                        PromotionResponse(current_locale=locale_code, label=localized(promotion.get("label", [])))
                        for promotion in es_price.get("applied-promotions", [])
                    ],
                )
            variants.append(
                VariantResponse(
                    code=es_variant.get("code"),
                    enabled=es_variant.get("enabled"),
                    position=es_variant["position"],
                    channel_pricing=channel_pricing,
                )
            )

        options = []
        for es_option in source.get("product-options", []):
            options.append(
                OptionResponse(
                    code=es_option["code"],
                    position=es_option.get("position", 0),
                    current_locale=locale_code,
                    name=localized(es_option.get("name", [])),
                    values=[
                        OptionValueResponse(
                            code=es_value["code"],
                            value=es_value.get("value"),
                            current_locale=locale_code,
                            fallback_locale=self.fallback_locale,
                            names=es_value.get("name", []),
                        )
                        for es_value in es_option.get("values", [])
                    ],
                )
            )

        return ProductResponse(
            code=source["code"],
            current_locale=locale_code,
            name=localized(source.get("name", [])),
            slug=resolve_slug(source.get("slug", []), locale_code),
            description=localized(source.get("description", [])),
            short_description=localized(source.get("short-description", [])),
            images=images,
            variants=variants,
            options=options,
        )
