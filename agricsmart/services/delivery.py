# ==============================================================================
# DELIVERY FEES - Distance-Based Pricing
# ==============================================================================
# Pure functions; coordinates are GeoJSON order [longitude, latitude].
# ==============================================================================

from __future__ import annotations

import math
from decimal import ROUND_HALF_UP, Decimal
from typing import Sequence

from agricsmart.core.constants import DeliveryFeeConstants, DeliveryMethod
from agricsmart.core.exceptions import ValidationError


def haversine_km(origin: Sequence[float], destination: Sequence[float]) -> float:
    """
    Great-circle distance between two ``[lng, lat]`` points in kilometres.

    Example:
        >>> round(haversine_km([-0.187, 5.6037], [-1.6244, 6.6885]), 1)
        199.5
    """
    lng1, lat1 = origin
    lng2, lat2 = destination

    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lng2 - lng1)

    a = (
        math.sin(d_phi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return DeliveryFeeConstants.EARTH_RADIUS_KM * c


def fee_for_distance(distance_km: float, delivery_method: str) -> float:
    """
    Fee for a known distance.

    - pickup: 0
    - delivery: base 10, first 5 km included, then 1.5 per km
    - shipping: base 15 plus 0.8 per km

    Raises:
        ValidationError: For an unknown delivery method
    """
    if delivery_method == DeliveryMethod.PICKUP:
        return 0.0
    if delivery_method == DeliveryMethod.DELIVERY:
        extra_km = max(0.0, distance_km - DeliveryFeeConstants.DELIVERY_FREE_KM)
        fee = DeliveryFeeConstants.DELIVERY_BASE + extra_km * DeliveryFeeConstants.DELIVERY_PER_KM
    elif delivery_method == DeliveryMethod.SHIPPING:
        fee = DeliveryFeeConstants.SHIPPING_BASE + distance_km * DeliveryFeeConstants.SHIPPING_PER_KM
    else:
        raise ValidationError(
            message=f"Invalid delivery method: {delivery_method}",
            errors={"delivery_method": f"must be one of {', '.join(DeliveryMethod.ALL)}"},
        )
    return float(Decimal(str(fee)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def calculate_delivery_fee(
    seller_coordinates: Sequence[float],
    buyer_coordinates: Sequence[float],
    delivery_method: str,
) -> float:
    """Delivery fee between a seller and a buyer, rounded to 2 decimals."""
    if delivery_method == DeliveryMethod.PICKUP:
        return 0.0
    if delivery_method not in DeliveryMethod.ALL:
        return fee_for_distance(0.0, delivery_method)
    return fee_for_distance(haversine_km(seller_coordinates, buyer_coordinates), delivery_method)
