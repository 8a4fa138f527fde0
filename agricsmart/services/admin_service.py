# ==============================================================================
# ADMIN SERVICE - Platform Statistics
# ==============================================================================

from __future__ import annotations

import logging
from typing import Any, Dict, List

from agricsmart.core.constants import (
    Collections,
    PaymentStatus,
    ProductStatus,
)
from agricsmart.database.adapters.base_adapter import BaseDatabaseAdapter
from agricsmart.schemas.user import PlatformStats

logger = logging.getLogger(__name__)


def _counts(rows: List[Dict[str, Any]]) -> Dict[str, int]:
    """``[{"id": key, "count": n}]`` from a $group stage to ``{key: n}``."""
    return {str(row["id"]): int(row["count"]) for row in rows if row.get("id") is not None}


class AdminService:
    """Read-only figures across every collection."""

    def __init__(self, adapter: BaseDatabaseAdapter) -> None:
        self._adapter = adapter

    async def _group_count(self, collection: str, field: str) -> Dict[str, int]:
        rows = await self._adapter.aggregate(
            collection,
            [{"$group": {"_id": f"${field}", "count": {"$sum": 1}}}],
        )
        return _counts(rows)

    async def get_platform_stats(self) -> PlatformStats:
        users_by_role = await self._group_count(Collections.USERS, "role")
        orders_by_status = await self._group_count(Collections.ORDERS, "order_status")

        volume_rows = await self._adapter.aggregate(
            Collections.PAYMENTS,
            [
                {"$match": {"status": PaymentStatus.COMPLETED}},
                {"$group": {"_id": "$currency", "total": {"$sum": "$amount"}}},
            ],
        )
        volume = {
            str(row["id"]): round(float(row["total"]), 2)
            for row in volume_rows
            if row.get("id") is not None
        }

        stats = PlatformStats(
            users_by_role=users_by_role,
            total_users=sum(users_by_role.values()),
            active_products=await self._adapter.count(
                Collections.PRODUCTS,
                {"status": ProductStatus.ACTIVE},
            ),
            total_orders=sum(orders_by_status.values()),
            orders_by_status=orders_by_status,
            completed_payment_volume=volume,
            published_courses=await self._adapter.count(
                Collections.COURSES,
                {"is_published": True},
            ),
        )
        logger.debug(f"Platform stats computed: {stats.total_users} users, {stats.total_orders} orders")
        return stats
