# ==============================================================================
# ORDER SCHEMAS - Marketplace Orders & Delivery Fees
# ==============================================================================
# Request/Response schemas for order placement and fulfilment
# ==============================================================================

from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import Field, field_validator

from agricsmart.schemas.base import BaseSchema, TimestampSchema, validate_coordinates

DeliveryMethodName = Literal["pickup", "delivery", "shipping"]
OrderPaymentMethodName = Literal["momo", "card", "bank", "cash", "crypto"]
OrderStatusName = Literal["pending", "processing", "shipped", "delivered", "cancelled"]
CurrencyCode = Literal["USD", "GHS", "EUR", "GBP", "NGN"]


class DeliveryAddress(BaseSchema):
    """Where an order is delivered. Coordinates are ``[lng, lat]``."""

    street: str = Field(..., min_length=1, max_length=200)
    city: str = Field(..., min_length=1, max_length=100)
    state: Optional[str] = Field(None, max_length=100)
    country: str = Field(..., min_length=1, max_length=100)
    postal_code: Optional[str] = Field(None, max_length=20)
    coordinates: Optional[List[float]] = Field(
        None,
        description="[longitude, latitude]; required for delivery and shipping fees",
    )

    @field_validator("coordinates")
    @classmethod
    def check_coordinates(cls, v: Optional[List[float]]) -> Optional[List[float]]:
        return validate_coordinates(v) if v is not None else v


class OrderItemCreate(BaseSchema):
    """A requested line item. Name and price are taken from the product."""

    product_id: str = Field(..., min_length=1, description="Product identifier")
    quantity: int = Field(..., ge=1, description="Units requested")


class OrderCreate(BaseSchema):
    """Schema for placing an order with one seller."""

    seller_id: str = Field(..., min_length=1, description="Seller of every line item")
    products: List[OrderItemCreate] = Field(
        ...,
        min_length=1,
        description="Line items",
    )
    delivery_address: DeliveryAddress
    delivery_method: DeliveryMethodName = "pickup"
    payment_method: OrderPaymentMethodName = "momo"
    currency: Optional[CurrencyCode] = None
    total_amount: Optional[float] = Field(
        None,
        ge=0,
        description="Client-computed total; rejected if it disagrees with the server",
    )
    notes: Optional[str] = Field(None, max_length=500)


class OrderLineItem(BaseSchema):
    """Line item as stored: price and name snapshotted at purchase time."""

    product_id: str
    name: str
    price: float
    quantity: int


class OrderResponse(TimestampSchema):
    """Schema for order response."""

    buyer_id: str
    seller_id: str
    products: List[OrderLineItem]
    subtotal: float
    delivery_fee: float
    total_amount: float
    currency: str
    delivery_address: DeliveryAddress
    delivery_method: DeliveryMethodName
    payment_method: OrderPaymentMethodName
    payment_id: Optional[str] = None
    payment_status: str = Field(
        "pending",
        description="Status of the linked payment",
    )
    order_status: OrderStatusName
    cancellation_reason: Optional[str] = None
    notes: Optional[str] = None


class OrderStatusUpdate(BaseSchema):
    """
    Seller request to move an order forward.

    ``status`` is checked by the service so that unknown values are
    reported with the allowed set.
    """

    status: str = Field(..., description="processing, shipped, delivered or cancelled")
    cancellation_reason: Optional[str] = Field(None, max_length=500)


class DeliveryFeeRequest(BaseSchema):
    seller_coordinates: List[float] = Field(..., description="[longitude, latitude]")
    buyer_coordinates: List[float] = Field(..., description="[longitude, latitude]")
    delivery_method: str = Field(..., description="pickup, delivery or shipping")

    @field_validator("seller_coordinates", "buyer_coordinates")
    @classmethod
    def check_coordinates(cls, v: List[float]) -> List[float]:
        return validate_coordinates(v)


class DeliveryFeeResponse(BaseSchema):
    delivery_method: str
    distance_km: float
    delivery_fee: float
