# ==============================================================================
# PRODUCT SERVICE - Marketplace Catalog & Stock
# ==============================================================================
# Listings, search, geospatial lookup and atomic stock movements
# ==============================================================================

from __future__ import annotations

import logging
import re
from typing import Any, Dict, List, Optional, Sequence

from agricsmart.core.constants import (
    Collections,
    ErrorMessages,
    ProductStatus,
    UserRoles,
)
from agricsmart.core.exceptions import (
    AuthorizationError,
    BusinessRuleError,
    InsufficientStockError,
    NotFoundError,
)
from agricsmart.database.adapters.base_adapter import BaseDatabaseAdapter
from agricsmart.schemas.product import (
    ProductCreate,
    ProductResponse,
    ProductSearchParams,
    ProductUpdate,
)
from agricsmart.services.base_service import BaseService
from agricsmart.utils.helpers import calculate_offset, paginate_results

logger = logging.getLogger(__name__)


def normalize_status(quantity: int, requested_status: str) -> str:
    """
    Reconcile a listing status with its stock level.

    Zero stock is always ``sold-out``; a ``sold-out`` listing with stock
    becomes ``active`` again. ``inactive`` with stock is kept.
    """
    if quantity <= 0:
        return ProductStatus.SOLD_OUT
    if requested_status == ProductStatus.SOLD_OUT:
        return ProductStatus.ACTIVE
    return requested_status


def build_nearby_query(
    coordinates: Sequence[float],
    max_distance_km: float,
) -> Dict[str, Any]:
    """MongoDB ``$near`` filter for active products within a radius."""
    return {
        "status": ProductStatus.ACTIVE,
        "location": {
            "$near": {
                "$geometry": {"type": "Point", "coordinates": list(coordinates)},
                "$maxDistance": max_distance_km * 1000,
            }
        },
    }


def build_search_query(params: ProductSearchParams) -> Dict[str, Any]:
    """Filter document for product search; only active listings match."""
    query: Dict[str, Any] = {"status": ProductStatus.ACTIVE}

    if params.query:
        pattern = {"$regex": re.escape(params.query), "$options": "i"}
        query["$or"] = [{"name": pattern}, {"description": pattern}]

    if params.category:
        query["category"] = {"$regex": f"^{re.escape(params.category)}$", "$options": "i"}

    price: Dict[str, float] = {}
    if params.min_price is not None:
        price["$gte"] = params.min_price
    if params.max_price is not None:
        price["$lte"] = params.max_price
    if price:
        query["price"] = price

    return query


class ProductService(BaseService[ProductResponse]):
    """
    Product catalog and inventory.

    Stock only ever moves through single-document conditional updates:
    a reservation matches ``quantity >= n`` and decrements in the same
    write, so two concurrent buyers can never both take the last unit.
    """

    response_schema = ProductResponse
    not_found_message = ErrorMessages.PRODUCT_NOT_FOUND

    def __init__(self, adapter: BaseDatabaseAdapter) -> None:
        super().__init__(adapter, Collections.PRODUCTS)

    # ==========================================================================
    # LISTINGS
    # ==========================================================================

    async def create_product(self, seller_id: str, schema: ProductCreate) -> ProductResponse:
        """
        List a new product for a seller.

        Raises:
            NotFoundError: If the seller does not exist
            AuthorizationError: If the user is not a Seller
        """
        seller = await self._adapter.get_by_id(Collections.USERS, seller_id)
        if not seller:
            raise NotFoundError(
                message=ErrorMessages.SELLER_NOT_FOUND,
                resource_type="user",
                resource_id=seller_id,
            )
        if seller.get("role") != UserRoles.SELLER:
            raise AuthorizationError(
                message=ErrorMessages.ONLY_SELLERS,
                required_permission=UserRoles.SELLER,
            )

        data = schema.model_dump()
        data["seller_id"] = seller_id
        data["status"] = normalize_status(data["quantity"], data["status"])

        result = await self._adapter.create(self._collection_name, data)
        logger.info(f"Product {result['id']} listed by seller {seller_id}")
        return self._to_response(result)

    async def _get_owned(self, product_id: str, seller_id: str) -> Dict[str, Any]:
        product = await self._get_document(product_id)
        if product.get("seller_id") != seller_id:
            raise AuthorizationError(message=ErrorMessages.NOT_PRODUCT_OWNER)
        return product

    async def update_product(
        self,
        product_id: str,
        seller_id: str,
        schema: ProductUpdate,
    ) -> ProductResponse:
        """Apply a partial update; status is re-derived from quantity."""
        product = await self._get_owned(product_id, seller_id)

        data = schema.model_dump(exclude_unset=True)
        if "quantity" in data or "status" in data:
            quantity = data.get("quantity", product.get("quantity", 0))
            status = data.get("status", product.get("status", ProductStatus.ACTIVE))
            data["status"] = normalize_status(quantity, status)

        if not data:
            return self._to_response(product)

        result = await self._adapter.update(self._collection_name, product_id, data)
        if not result:
            raise NotFoundError(
                message=ErrorMessages.PRODUCT_NOT_FOUND,
                resource_type="product",
                resource_id=product_id,
            )
        return self._to_response(result)

    async def delete_product(self, product_id: str, seller_id: str) -> bool:
        await self._get_owned(product_id, seller_id)
        deleted = await self._adapter.delete(self._collection_name, product_id)
        if deleted:
            logger.info(f"Product {product_id} deleted by seller {seller_id}")
        return deleted

    async def get_products_by_seller(self, seller_id: str) -> List[ProductResponse]:
        return await self.get_all(
            limit=500,
            filters={"seller_id": seller_id},
            sort=[("created_at", -1)],
        )

    # ==========================================================================
    # SEARCH
    # ==========================================================================

    async def find_nearby_products(
        self,
        coordinates: Sequence[float],
        max_distance_km: float = 50.0,
        limit: int = 50,
    ) -> List[ProductResponse]:
        """Active products within ``max_distance_km``, nearest first."""
        return await self.get_all(
            limit=limit,
            filters=build_nearby_query(coordinates, max_distance_km),
        )

    async def search_products(self, params: ProductSearchParams) -> Dict[str, Any]:
        """Paginated text/category/price search over active products."""
        query = build_search_query(params)
        direction = 1 if params.sort_order == "asc" else -1

        total = await self._adapter.count(self._collection_name, query)
        items = await self.get_all(
            skip=calculate_offset(params.page, params.page_size),
            limit=params.page_size,
            filters=query,
            sort=[(params.sort_by, direction)],
        )
        return paginate_results(items, params.page, params.page_size, total)

    # ==========================================================================
    # STOCK MOVEMENTS
    # ==========================================================================

    # Conditional writes retried when a concurrent write moved the quantity
    # between the two branches below
    STOCK_WRITE_ATTEMPTS = 5

    async def _take(self, product_id: str, quantity: int) -> Optional[Dict[str, Any]]:
        """One conditional decrement; the status flips in the same write."""
        active = {"id": product_id, "status": ProductStatus.ACTIVE}
        product = await self._adapter.find_one_and_update(
            self._collection_name,
            {**active, "quantity": quantity},
            {"$set": {"quantity": 0, "status": ProductStatus.SOLD_OUT}},
        )
        if product is not None:
            return product
        return await self._adapter.find_one_and_update(
            self._collection_name,
            {**active, "quantity": {"$gt": quantity}},
            {"$inc": {"quantity": -quantity}},
        )

    async def reserve_stock(self, product_id: str, quantity: int) -> Dict[str, Any]:
        """
        Atomically take ``quantity`` units of an active product.

        Taking the last units marks the product sold-out in the same write.

        Returns:
            The product document after the decrement

        Raises:
            NotFoundError: If the product does not exist
            InsufficientStockError: If fewer units remain than requested
            BusinessRuleError: If the product is not active
        """
        for _ in range(self.STOCK_WRITE_ATTEMPTS):
            product = await self._take(product_id, quantity)
            if product is not None:
                return product

            # The conditional writes matched nothing; report why
            current = await self._get_document(product_id)
            available = current.get("quantity", 0)
            if available < quantity:
                raise InsufficientStockError(
                    message=f"Insufficient quantity for product {current.get('name', product_id)}",
                    product_id=product_id,
                    requested=quantity,
                    available=available,
                )
            if current.get("status") != ProductStatus.ACTIVE:
                raise BusinessRuleError(
                    message=f"Product {current.get('name', product_id)} is not available",
                    rule="product_must_be_active",
                )

        raise BusinessRuleError(
            message=f"Product {product_id} is busy, please retry",
            rule="stock_contention",
        )

    async def release_stock(self, product_id: str, quantity: int) -> None:
        """
        Return ``quantity`` units and reactivate a sold-out listing.

        A product deleted since the reservation is skipped.
        """
        for _ in range(self.STOCK_WRITE_ATTEMPTS):
            product = await self._adapter.find_one_and_update(
                self._collection_name,
                {"id": product_id, "status": ProductStatus.SOLD_OUT},
                {"$inc": {"quantity": quantity}, "$set": {"status": ProductStatus.ACTIVE}},
            )
            if product is None:
                product = await self._adapter.find_one_and_update(
                    self._collection_name,
                    {"id": product_id, "status": {"$ne": ProductStatus.SOLD_OUT}},
                    {"$inc": {"quantity": quantity}},
                )
            if product is not None:
                return
            if await self.get_product_document(product_id) is None:
                logger.warning(f"Cannot restock missing product {product_id}")
                return

        logger.error(f"Gave up restocking {quantity} units of product {product_id}")

    async def get_product_document(self, product_id: str) -> Optional[Dict[str, Any]]:
        return await self._adapter.get_by_id(self._collection_name, product_id)
