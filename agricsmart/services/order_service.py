# ==============================================================================
# ORDER SERVICE - Marketplace Orders
# ==============================================================================
# Order placement with atomic stock reservation, fulfilment state machine
# and restock on cancellation
# ==============================================================================

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple

from agricsmart.core.constants import (
    Collections,
    DeliveryMethod,
    ErrorMessages,
    EventType,
    OrderStatus,
    PaymentConstants,
    PaymentStatus,
)
from agricsmart.core.exceptions import (
    AppException,
    AuthorizationError,
    BusinessRuleError,
    NotFoundError,
    ValidationError,
)
from agricsmart.core.settings import settings
from agricsmart.database.adapters.base_adapter import BaseDatabaseAdapter
from agricsmart.schemas.order import OrderCreate, OrderResponse, OrderStatusUpdate
from agricsmart.services.base_service import BaseService
from agricsmart.services.delivery import calculate_delivery_fee
from agricsmart.services.outbox import OutboxService
from agricsmart.services.product_service import ProductService

logger = logging.getLogger(__name__)


class OrderService(BaseService[OrderResponse]):
    """
    Order placement and fulfilment.

    ``payment_status`` on responses is read from the linked payment; the
    order document itself does not store it.
    """

    response_schema = OrderResponse
    not_found_message = ErrorMessages.ORDER_NOT_FOUND

    def __init__(
        self,
        adapter: BaseDatabaseAdapter,
        product_service: Optional[ProductService] = None,
        outbox: Optional[OutboxService] = None,
    ) -> None:
        super().__init__(adapter, Collections.ORDERS)
        self._products = product_service or ProductService(adapter)
        self._outbox = outbox or OutboxService(adapter)

    # ==========================================================================
    # RESPONSE ASSEMBLY
    # ==========================================================================

    async def _payment_statuses(self, orders: List[Dict[str, Any]]) -> Dict[str, str]:
        payment_ids = [o["payment_id"] for o in orders if o.get("payment_id")]
        if not payment_ids:
            return {}
        payments = await self._adapter.get_all(
            Collections.PAYMENTS,
            limit=len(payment_ids),
            filters={"id": {"$in": payment_ids}},
        )
        return {p["id"]: p.get("status", PaymentStatus.PENDING) for p in payments}

    async def _to_responses(self, orders: List[Dict[str, Any]]) -> List[OrderResponse]:
        statuses = await self._payment_statuses(orders)
        responses = []
        for order in orders:
            order["payment_status"] = statuses.get(order.get("payment_id"), PaymentStatus.PENDING)
            responses.append(self._to_response(order))
        return responses

    async def _to_order_response(self, order: Dict[str, Any]) -> OrderResponse:
        return (await self._to_responses([order]))[0]

    async def _emit(
        self,
        event_type: str,
        order_id: str,
        dedupe_key: str,
        **extra: Any,
    ) -> None:
        try:
            await self._outbox.enqueue(event_type, {"order_id": order_id, **extra}, dedupe_key)
        except Exception as e:
            logger.error(f"Failed to queue {event_type} for order {order_id}: {e}")

    # ==========================================================================
    # PLACEMENT
    # ==========================================================================

    async def _load_party(self, user_id: str, message: str) -> Dict[str, Any]:
        user = await self._adapter.get_by_id(Collections.USERS, user_id)
        if not user:
            raise NotFoundError(message=message, resource_type="user", resource_id=user_id)
        return user

    async def _check_line_items(self, schema: OrderCreate) -> List[Dict[str, Any]]:
        """Validate every product up front; stock is checked when reserving."""
        products = []
        for item in schema.products:
            product = await self._products.get_product_document(item.product_id)
            if not product:
                raise NotFoundError(
                    message=f"{ErrorMessages.PRODUCT_NOT_FOUND}: {item.product_id}",
                    resource_type="product",
                    resource_id=item.product_id,
                )
            if product.get("seller_id") != schema.seller_id:
                raise ValidationError(
                    message=f"Product {product['name']} does not belong to this seller",
                )
            if schema.delivery_method not in product.get("delivery_options", []):
                raise BusinessRuleError(
                    message=f"Product {product['name']} does not offer {schema.delivery_method}",
                    rule="delivery_method_supported",
                )
            products.append(product)
        return products

    def _delivery_fee(self, schema: OrderCreate, products: List[Dict[str, Any]]) -> float:
        if schema.delivery_method == DeliveryMethod.PICKUP:
            return 0.0
        buyer_coordinates = schema.delivery_address.coordinates
        if not buyer_coordinates:
            raise ValidationError(
                message="Delivery address coordinates are required for delivery and shipping",
                errors={"delivery_address.coordinates": "required"},
            )
        seller_coordinates = products[0]["location"]["coordinates"]
        return calculate_delivery_fee(
            seller_coordinates,
            buyer_coordinates,
            schema.delivery_method,
        )

    async def _reserve_all(self, schema: OrderCreate) -> List[Tuple[Dict[str, Any], int]]:
        """
        Reserve every line item, releasing earlier reservations if one fails.
        """
        reserved: List[Tuple[Dict[str, Any], int]] = []
        try:
            for item in schema.products:
                product = await self._products.reserve_stock(item.product_id, item.quantity)
                reserved.append((product, item.quantity))
        except AppException:
            await self._release_all(reserved)
            raise
        return reserved

    async def _release_all(self, reserved: List[Tuple[Dict[str, Any], int]]) -> None:
        for product, quantity in reserved:
            await self._products.release_stock(product["id"], quantity)

    async def create_order(self, buyer_id: str, schema: OrderCreate) -> OrderResponse:
        """
        Place an order.

        Raises:
            NotFoundError: Buyer, seller or a product is missing
            ValidationError: Bad line items, missing coordinates or a
                client total that disagrees with the computed one
            InsufficientStockError: A product has fewer units than requested
            BusinessRuleError: A product is not available
        """
        await self._load_party(buyer_id, ErrorMessages.BUYER_NOT_FOUND)
        await self._load_party(schema.seller_id, ErrorMessages.SELLER_NOT_FOUND)
        if buyer_id == schema.seller_id:
            raise BusinessRuleError(
                message="You cannot order your own products",
                rule="buyer_is_not_seller",
            )

        products = await self._check_line_items(schema)
        delivery_fee = self._delivery_fee(schema, products)

        reserved = await self._reserve_all(schema)

        line_items = [
            {
                "product_id": product["id"],
                "name": product["name"],
                "price": float(product["price"]),
                "quantity": quantity,
            }
            for product, quantity in reserved
        ]
        subtotal = round(sum(i["price"] * i["quantity"] for i in line_items), 2)
        total = round(subtotal + delivery_fee, 2)

        if (
            schema.total_amount is not None
            and abs(schema.total_amount - total) > PaymentConstants.AMOUNT_TOLERANCE
        ):
            await self._release_all(reserved)
            raise ValidationError(
                message=f"Total amount mismatch: expected {total:.2f}",
                errors={"total_amount": {"expected": total, "received": schema.total_amount}},
            )

        data = {
            "buyer_id": buyer_id,
            "seller_id": schema.seller_id,
            "products": line_items,
            "subtotal": subtotal,
            "delivery_fee": delivery_fee,
            "total_amount": total,
            "currency": schema.currency or settings.DEFAULT_CURRENCY,
            "delivery_address": schema.delivery_address.model_dump(),
            "delivery_method": schema.delivery_method,
            "payment_method": schema.payment_method,
            "payment_id": None,
            "order_status": OrderStatus.PENDING,
            "cancellation_reason": None,
            "notes": schema.notes,
        }

        try:
            order = await self._adapter.create(self._collection_name, data)
        except Exception:
            await self._release_all(reserved)
            raise

        logger.info(
            f"Order {order['id']} placed by {buyer_id} with seller {schema.seller_id} "
            f"({len(line_items)} items, total {total:.2f})"
        )
        await self._emit(EventType.NEW_ORDER, order["id"], f"{EventType.NEW_ORDER}:{order['id']}")
        return await self._to_order_response(order)

    # ==========================================================================
    # QUERIES
    # ==========================================================================

    async def get_order(self, order_id: str, user_id: str) -> OrderResponse:
        """Fetch an order visible to its buyer or seller."""
        order = await self._get_document(order_id)
        if user_id not in (order.get("buyer_id"), order.get("seller_id")):
            raise AuthorizationError(message=ErrorMessages.NOT_ORDER_PARTY)
        return await self._to_order_response(order)

    async def get_orders_by_buyer(self, buyer_id: str) -> List[OrderResponse]:
        orders = await self._adapter.get_all(
            self._collection_name,
            limit=500,
            filters={"buyer_id": buyer_id},
            sort=[("created_at", -1)],
        )
        return await self._to_responses(orders)

    async def get_orders_by_seller(self, seller_id: str) -> List[OrderResponse]:
        orders = await self._adapter.get_all(
            self._collection_name,
            limit=500,
            filters={"seller_id": seller_id},
            sort=[("created_at", -1)],
        )
        return await self._to_responses(orders)

    # ==========================================================================
    # FULFILMENT
    # ==========================================================================

    async def update_order_status(
        self,
        order_id: str,
        seller_id: str,
        schema: OrderStatusUpdate,
    ) -> OrderResponse:
        """
        Move an order along its lifecycle.

        The write is a compare-and-set on the status that was read, so of
        two concurrent cancellations only one restocks.

        Raises:
            ValidationError: Unknown target status
            AuthorizationError: Caller is not the order's seller
            BusinessRuleError: Transition not allowed from the current status
        """
        new_status = schema.status
        if new_status not in OrderStatus.SETTABLE:
            raise ValidationError(
                message=f"Invalid order status: {new_status}",
                errors={"status": f"must be one of {', '.join(OrderStatus.SETTABLE)}"},
            )

        order = await self._get_document(order_id)
        if order.get("seller_id") != seller_id:
            raise AuthorizationError(message=ErrorMessages.NOT_ORDER_SELLER)

        current = order["order_status"]
        if new_status not in OrderStatus.TRANSITIONS.get(current, frozenset()):
            raise BusinessRuleError(
                message=f"Cannot change order status from {current} to {new_status}",
                rule="order_status_transition",
            )

        changes: Dict[str, Any] = {"order_status": new_status}
        if new_status == OrderStatus.CANCELLED:
            changes["cancellation_reason"] = schema.cancellation_reason

        updated = await self._adapter.find_one_and_update(
            self._collection_name,
            {"id": order_id, "order_status": current},
            {"$set": changes},
        )
        if updated is None:
            raise BusinessRuleError(
                message="Order status was changed by another request; reload and retry",
                rule="order_status_transition",
            )

        if new_status == OrderStatus.CANCELLED:
            for item in updated.get("products", []):
                await self._products.release_stock(item["product_id"], item["quantity"])
            logger.info(f"Order {order_id} cancelled; stock restored")

        logger.info(f"Order {order_id} status {current} -> {new_status}")
        await self._emit(
            EventType.ORDER_STATUS_UPDATE,
            order_id,
            f"{EventType.ORDER_STATUS_UPDATE}:{order_id}:{new_status}",
            status=new_status,
        )
        return await self._to_order_response(updated)
