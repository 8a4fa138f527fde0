# ==============================================================================
# MARKET ENDPOINTS - Products, Orders & Delivery Fees
# ==============================================================================

from __future__ import annotations

from typing import Annotated, List

from fastapi import APIRouter, Query, status

from agricsmart.api.dependencies import (
    CurrentUser,
    OrderServiceDep,
    ProductServiceDep,
    SellerUser,
)
from agricsmart.core.constants import SuccessMessages
from agricsmart.core.settings import settings
from agricsmart.schemas.base import APIResponse, MessageResponse, PaginatedResponse
from agricsmart.schemas.order import (
    DeliveryFeeRequest,
    DeliveryFeeResponse,
    OrderCreate,
    OrderResponse,
    OrderStatusUpdate,
)
from agricsmart.schemas.product import (
    ProductCreate,
    ProductResponse,
    ProductSearchParams,
    ProductUpdate,
)
from agricsmart.services.delivery import fee_for_distance, haversine_km

router = APIRouter(prefix="/market", tags=["Marketplace"])


# ==============================================================================
# PRODUCTS
# ==============================================================================

@router.post(
    "/products",
    response_model=APIResponse[ProductResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Create product",
    description="List a product for sale. Sellers only.",
)
async def create_product(
    schema: ProductCreate,
    user: CurrentUser,
    service: ProductServiceDep,
) -> APIResponse[ProductResponse]:
    product = await service.create_product(user["id"], schema)
    return APIResponse.ok(data=product, message=SuccessMessages.PRODUCT_CREATED)


@router.get(
    "/products/search",
    response_model=APIResponse[PaginatedResponse[ProductResponse]],
    summary="Search products",
    description="Text, category and price-range search over active products.",
)
async def search_products(
    params: Annotated[ProductSearchParams, Query()],
    service: ProductServiceDep,
) -> APIResponse[PaginatedResponse[ProductResponse]]:
    result = await service.search_products(params)
    return APIResponse.ok(data=result)


@router.get(
    "/products/nearby",
    response_model=APIResponse[List[ProductResponse]],
    summary="Nearby products",
    description="Active products within a radius of a point, nearest first.",
)
async def nearby_products(
    service: ProductServiceDep,
    lng: float = Query(..., ge=-180, le=180),
    lat: float = Query(..., ge=-90, le=90),
    max_distance_km: float = Query(settings.NEARBY_MAX_DISTANCE_KM, gt=0, le=1000),
    limit: int = Query(50, ge=1, le=100),
) -> APIResponse[List[ProductResponse]]:
    products = await service.find_nearby_products([lng, lat], max_distance_km, limit)
    return APIResponse.ok(data=products)


@router.get(
    "/products/seller/{seller_id}",
    response_model=APIResponse[List[ProductResponse]],
    summary="Products by seller",
)
async def seller_products(
    seller_id: str,
    service: ProductServiceDep,
) -> APIResponse[List[ProductResponse]]:
    products = await service.get_products_by_seller(seller_id)
    return APIResponse.ok(data=products)


@router.get(
    "/products/{product_id}",
    response_model=APIResponse[ProductResponse],
    summary="Get product",
)
async def get_product(
    product_id: str,
    service: ProductServiceDep,
) -> APIResponse[ProductResponse]:
    product = await service.get_by_id(product_id)
    return APIResponse.ok(data=product)


@router.patch(
    "/products/{product_id}",
    response_model=APIResponse[ProductResponse],
    summary="Update product",
    description="Update one of the caller's own products.",
)
async def update_product(
    product_id: str,
    schema: ProductUpdate,
    user: SellerUser,
    service: ProductServiceDep,
) -> APIResponse[ProductResponse]:
    product = await service.update_product(product_id, user["id"], schema)
    return APIResponse.ok(data=product, message=SuccessMessages.UPDATED)


@router.delete(
    "/products/{product_id}",
    response_model=MessageResponse,
    summary="Delete product",
)
async def delete_product(
    product_id: str,
    user: SellerUser,
    service: ProductServiceDep,
) -> MessageResponse:
    await service.delete_product(product_id, user["id"])
    return MessageResponse(message=SuccessMessages.DELETED)


# ==============================================================================
# ORDERS
# ==============================================================================

@router.post(
    "/orders",
    response_model=APIResponse[OrderResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Place order",
    description=(
        "Reserve stock for every line item and create the order. "
        "Fails without side effects when any item is unavailable."
    ),
)
async def create_order(
    schema: OrderCreate,
    user: CurrentUser,
    service: OrderServiceDep,
) -> APIResponse[OrderResponse]:
    order = await service.create_order(user["id"], schema)
    return APIResponse.ok(data=order, message=SuccessMessages.ORDER_PLACED)


@router.get(
    "/orders",
    response_model=APIResponse[List[OrderResponse]],
    summary="My orders",
    description="Orders placed by the current user, newest first.",
)
async def list_my_orders(
    user: CurrentUser,
    service: OrderServiceDep,
) -> APIResponse[List[OrderResponse]]:
    orders = await service.get_orders_by_buyer(user["id"])
    return APIResponse.ok(data=orders)


@router.get(
    "/orders/seller",
    response_model=APIResponse[List[OrderResponse]],
    summary="Orders received",
    description="Orders placed with the current seller, newest first.",
)
async def list_seller_orders(
    user: SellerUser,
    service: OrderServiceDep,
) -> APIResponse[List[OrderResponse]]:
    orders = await service.get_orders_by_seller(user["id"])
    return APIResponse.ok(data=orders)


@router.get(
    "/orders/{order_id}",
    response_model=APIResponse[OrderResponse],
    summary="Get order",
)
async def get_order(
    order_id: str,
    user: CurrentUser,
    service: OrderServiceDep,
) -> APIResponse[OrderResponse]:
    order = await service.get_order(order_id, user["id"])
    return APIResponse.ok(data=order)


@router.patch(
    "/orders/{order_id}/status",
    response_model=APIResponse[OrderResponse],
    summary="Update order status",
    description="Seller moves an order along its lifecycle. Cancelling restocks.",
)
async def update_order_status(
    order_id: str,
    schema: OrderStatusUpdate,
    user: CurrentUser,
    service: OrderServiceDep,
) -> APIResponse[OrderResponse]:
    order = await service.update_order_status(order_id, user["id"], schema)
    return APIResponse.ok(data=order, message=SuccessMessages.ORDER_STATUS_UPDATED)


# ==============================================================================
# DELIVERY
# ==============================================================================

@router.post(
    "/delivery-fee",
    response_model=APIResponse[DeliveryFeeResponse],
    summary="Quote delivery fee",
    description="Fee for a delivery method between two [longitude, latitude] points.",
)
async def quote_delivery_fee(schema: DeliveryFeeRequest) -> APIResponse[DeliveryFeeResponse]:
    distance = haversine_km(schema.seller_coordinates, schema.buyer_coordinates)
    return APIResponse.ok(
        data=DeliveryFeeResponse(
            delivery_method=schema.delivery_method,
            distance_km=round(distance, 2),
            delivery_fee=fee_for_distance(distance, schema.delivery_method),
        )
    )
