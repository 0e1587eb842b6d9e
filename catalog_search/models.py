"""Pydantic read models built from search hits, plus API payloads."""
from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .locale import LocalizedField, resolve_localized


class ReadModel(BaseModel):
    model_config = ConfigDict(frozen=True)


class ImageResponse(ReadModel):
    path: Optional[str] = None
    type: Optional[str] = None


class PromotionResponse(ReadModel):
    current_locale: str
    label: Optional[str] = None


class ChannelPricingResponse(ReadModel):
    channel_code: Optional[str] = None
    price: Optional[int] = None
    original_price: Optional[int] = None
    applied_promotions: List[PromotionResponse] = Field(default_factory=list)

    @property
    def is_discounted(self) -> bool:
        return (
            self.price is not None
            and self.original_price is not None
            and self.original_price > self.price
        )


class VariantResponse(ReadModel):
    code: Optional[str] = None
    enabled: Optional[bool] = None
    position: int = 0
    channel_pricing: Optional[ChannelPricingResponse] = None


class OptionValueResponse(ReadModel):
    """An option value; the label is resolved lazily by the display layer."""

    code: str
    value: Optional[str] = None
    current_locale: str
    fallback_locale: str
    names: LocalizedField = Field(default_factory=list)

    @property
    def label(self) -> Optional[str]:
        resolved = resolve_localized(self.names, self.current_locale, self.fallback_locale)
        return resolved if resolved is not None else self.value


class OptionResponse(ReadModel):
    code: str
    position: int = 0
    current_locale: str
    name: Optional[str] = None
    values: List[OptionValueResponse] = Field(default_factory=list)


class ProductResponse(ReadModel):
    code: str
    current_locale: str
    name: Optional[str] = None
    slug: str
    description: Optional[str] = None
    short_description: Optional[str] = None
    images: List[ImageResponse] = Field(default_factory=list)
    variants: List[VariantResponse] = Field(default_factory=list)
    options: List[OptionResponse] = Field(default_factory=list)

    @property
    def default_variant(self) -> Optional[VariantResponse]:
        return self.variants[0] if self.variants else None


class FilterValue(BaseModel):
    value: str
    label: str
    count: int
    selected: bool = False


class FilterSummary(BaseModel):
    code: str
    kind: str
    label: Optional[str] = None
    values: List[FilterValue] = Field(default_factory=list)


class QueryResult(BaseModel):
    total: int
    products: List[ProductResponse] = Field(default_factory=list)
    filters: Dict[str, FilterSummary] = Field(default_factory=dict)


class PageResponse(BaseModel):
    page: int
    per_page: int
    nb_pages: int
    total: int
    products: List[ProductResponse]
    filters: Dict[str, FilterSummary]
    took_ms: float
