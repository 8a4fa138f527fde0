# ==============================================================================
# HELPER UTILITIES
# ==============================================================================
# Common utility functions used across the application
# ==============================================================================

from __future__ import annotations

import math
import random
import re
import time
import unicodedata
from datetime import datetime, timezone
from typing import Any, Dict, List, TypeVar
from uuid import uuid4

T = TypeVar("T")


def utc_now() -> datetime:
    """
    Current UTC time as a naive datetime.

    MongoDB stores datetimes as naive UTC and hands them back that way,
    so comparisons against stored values stay consistent.
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)


def epoch_millis() -> int:
    """Milliseconds since the Unix epoch."""
    return int(time.time() * 1000)


def generate_payment_reference(prefix: str = "PAY") -> str:
    """
    Generate a payment reference.

    Format: ``{PREFIX}-{epochMillis}-{4-digit random}``

    Example:
        >>> generate_payment_reference("MOMO")
        'MOMO-1718000000000-0421'
    """
    return f"{prefix}-{epoch_millis()}-{random.randint(0, 9999):04d}"


def generate_certificate_id() -> str:
    """Certificate id in the form ``CERT-XXXXXXXX-NNNNNN``."""
    random_part = uuid4().hex[:8].upper()
    return f"CERT-{random_part}-{str(epoch_millis())[-6:]}"


def generate_uuid() -> str:
    """Generate a compact unique id for embedded documents."""
    return uuid4().hex


def slugify(value: str) -> str:
    """
    Turn a title into a URL slug.

    Example:
        >>> slugify("Soil Health 101: Basics")
        'soil-health-101-basics'
    """
    value = unicodedata.normalize("NFKD", value).encode("ascii", "ignore").decode("ascii")
    value = re.sub(r"[^\w\s-]", "", value.lower())
    return re.sub(r"[-\s_]+", "-", value).strip("-")


def paginate_results(
    items: List[T],
    page: int,
    page_size: int,
    total: int,
) -> Dict[str, Any]:
    """
    Create a pagination response dict.

    Args:
        items: List of items for current page
        page: Current page number (1-indexed)
        page_size: Items per page
        total: Total item count
    """
    pages = math.ceil(total / page_size) if total > 0 else 0

    return {
        "items": items,
        "total": total,
        "page": page,
        "page_size": page_size,
        "pages": pages,
        "has_next": page < pages,
        "has_prev": page > 1,
    }


def calculate_offset(page: int, page_size: int) -> int:
    """Calculate database offset from page number."""
    return (page - 1) * page_size
