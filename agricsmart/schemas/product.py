# ==============================================================================
# PRODUCT SCHEMAS - Marketplace Catalog
# ==============================================================================
# Request/Response schemas for product listings and search
# ==============================================================================

from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import Field, field_validator, model_validator

from agricsmart.schemas.base import BaseSchema, GeoPoint, TimestampSchema

DeliveryOption = Literal["pickup", "delivery", "shipping"]
ProductStatusName = Literal["active", "inactive", "sold-out"]


def _dedupe(options: List[str]) -> List[str]:
    seen: List[str] = []
    for option in options:
        if option not in seen:
            seen.append(option)
    return seen


class ProductCreate(BaseSchema):
    """Schema for listing a product."""

    name: str = Field(
        ...,
        min_length=3,
        max_length=100,
        description="Product name",
    )
    description: str = Field(
        ...,
        min_length=10,
        max_length=1000,
        description="Product description",
    )
    price: float = Field(
        ...,
        gt=0,
        description="Unit price",
    )
    quantity: int = Field(
        ...,
        ge=1,
        description="Units in stock",
    )
    category: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Product category",
    )
    images: List[str] = Field(
        default_factory=list,
        description="Image URLs",
    )
    location: GeoPoint = Field(..., description="Where the product is held")
    delivery_options: List[DeliveryOption] = Field(
        ...,
        min_length=1,
        description="Supported delivery methods",
    )
    status: Literal["active", "inactive"] = Field(
        "active",
        description="Initial listing status",
    )

    @field_validator("delivery_options")
    @classmethod
    def unique_options(cls, v: List[str]) -> List[str]:
        return _dedupe(v)


class ProductUpdate(BaseSchema):
    """Schema for updating a product. Omitted fields are left untouched."""

    name: Optional[str] = Field(None, min_length=3, max_length=100)
    description: Optional[str] = Field(None, min_length=10, max_length=1000)
    price: Optional[float] = Field(None, gt=0)
    quantity: Optional[int] = Field(None, ge=0)
    category: Optional[str] = Field(None, min_length=1, max_length=100)
    images: Optional[List[str]] = None
    location: Optional[GeoPoint] = None
    delivery_options: Optional[List[DeliveryOption]] = Field(None, min_length=1)
    status: Optional[ProductStatusName] = None

    @field_validator("delivery_options")
    @classmethod
    def unique_options(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        return _dedupe(v) if v is not None else v


class ProductResponse(TimestampSchema):
    """Schema for product response."""

    seller_id: str
    name: str
    description: str
    price: float
    quantity: int
    category: str
    images: List[str] = Field(default_factory=list)
    location: GeoPoint
    delivery_options: List[DeliveryOption]
    status: ProductStatusName


class ProductSearchParams(BaseSchema):
    """Filters for product search."""

    query: Optional[str] = Field(None, max_length=200, description="Text matched against name and description")
    category: Optional[str] = None
    min_price: Optional[float] = Field(None, ge=0)
    max_price: Optional[float] = Field(None, ge=0)
    sort_by: Literal["created_at", "price", "name", "quantity"] = "created_at"
    sort_order: Literal["asc", "desc"] = "desc"
    page: int = Field(1, ge=1)
    page_size: int = Field(10, ge=1, le=100)

    @model_validator(mode="after")
    def check_price_range(self) -> "ProductSearchParams":
        if (
            self.min_price is not None
            and self.max_price is not None
            and self.min_price > self.max_price
        ):
            raise ValueError("min_price cannot exceed max_price")
        return self
