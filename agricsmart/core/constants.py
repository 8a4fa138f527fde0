# ==============================================================================
# APPLICATION CONSTANTS - Centralized Domain Values
# ==============================================================================
# Roles, statuses, transition tables and collection names
# ==============================================================================

from __future__ import annotations

from typing import Dict, FrozenSet, Final, Tuple


# ==============================================================================
# API CONSTANTS
# ==============================================================================

class APIConstants:
    """API-related constants."""

    DEFAULT_PAGE_SIZE: Final[int] = 10
    MAX_PAGE_SIZE: Final[int] = 100

    REQUEST_ID_HEADER: Final[str] = "X-Request-ID"
    RESPONSE_TIME_HEADER: Final[str] = "X-Response-Time"


# ==============================================================================
# DATABASE CONSTANTS
# ==============================================================================

class Collections:
    """MongoDB collection names."""

    USERS: Final[str] = "users"
    PRODUCTS: Final[str] = "products"
    ORDERS: Final[str] = "orders"
    PAYMENTS: Final[str] = "payments"
    NOTIFICATIONS: Final[str] = "notifications"
    CHATS: Final[str] = "chats"
    CATEGORIES: Final[str] = "education_categories"
    COURSES: Final[str] = "courses"
    PROGRESS: Final[str] = "progress"
    CERTIFICATES: Final[str] = "certificates"
    OUTBOX: Final[str] = "outbox"


# ==============================================================================
# USER ROLES
# ==============================================================================

class UserRoles:
    """Platform roles carried on every user and in the access token."""

    ADMIN: Final[str] = "Admin"
    SELLER: Final[str] = "Seller"
    BUYER: Final[str] = "Buyer"
    EDUCATOR: Final[str] = "Educator"

    ALL: Final[Tuple[str, ...]] = (ADMIN, SELLER, BUYER, EDUCATOR)
    SELF_REGISTRABLE: Final[Tuple[str, ...]] = (SELLER, BUYER, EDUCATOR)


# ==============================================================================
# MARKETPLACE CONSTANTS
# ==============================================================================

class ProductStatus:
    ACTIVE: Final[str] = "active"
    INACTIVE: Final[str] = "inactive"
    SOLD_OUT: Final[str] = "sold-out"


class DeliveryMethod:
    PICKUP: Final[str] = "pickup"
    DELIVERY: Final[str] = "delivery"
    SHIPPING: Final[str] = "shipping"

    ALL: Final[Tuple[str, ...]] = (PICKUP, DELIVERY, SHIPPING)


class DeliveryFeeConstants:
    """Delivery fee model: base amount plus a per-kilometre rate."""

    EARTH_RADIUS_KM: Final[float] = 6371.0

    DELIVERY_BASE: Final[float] = 10.0
    DELIVERY_FREE_KM: Final[float] = 5.0
    DELIVERY_PER_KM: Final[float] = 1.5

    SHIPPING_BASE: Final[float] = 15.0
    SHIPPING_PER_KM: Final[float] = 0.8


class OrderStatus:
    PENDING: Final[str] = "pending"
    PROCESSING: Final[str] = "processing"
    SHIPPED: Final[str] = "shipped"
    DELIVERED: Final[str] = "delivered"
    CANCELLED: Final[str] = "cancelled"

    # Statuses a seller may request through update_order_status
    SETTABLE: Final[Tuple[str, ...]] = (PROCESSING, SHIPPED, DELIVERED, CANCELLED)

    TRANSITIONS: Final[Dict[str, FrozenSet[str]]] = {
        PENDING: frozenset({PROCESSING, CANCELLED}),
        PROCESSING: frozenset({SHIPPED, CANCELLED}),
        SHIPPED: frozenset({DELIVERED}),
        DELIVERED: frozenset(),
        CANCELLED: frozenset(),
    }


# ==============================================================================
# PAYMENT CONSTANTS
# ==============================================================================

class PaymentStatus:
    PENDING: Final[str] = "pending"
    COMPLETED: Final[str] = "completed"
    FAILED: Final[str] = "failed"
    REFUNDED: Final[str] = "refunded"

    ALL: Final[Tuple[str, ...]] = (PENDING, COMPLETED, FAILED, REFUNDED)

    TRANSITIONS: Final[Dict[str, FrozenSet[str]]] = {
        PENDING: frozenset({COMPLETED, FAILED}),
        COMPLETED: frozenset({REFUNDED}),
        FAILED: frozenset(),
        REFUNDED: frozenset(),
    }

    # Provider webhook vocabulary -> internal status
    WEBHOOK_MAP: Final[Dict[str, str]] = {
        "successful": COMPLETED,
        "failed": FAILED,
    }


class PaymentConstants:
    METHODS: Final[Tuple[str, ...]] = ("momo", "card", "bank", "crypto")
    CURRENCIES: Final[Tuple[str, ...]] = ("USD", "GHS", "EUR", "GBP", "NGN")

    REFERENCE_PREFIX: Final[str] = "PAY"
    MOMO_PREFIX: Final[str] = "MOMO"
    CARD_PREFIX: Final[str] = "CARD"
    MOMO_PROVIDER: Final[str] = "MTN"
    MOMO_INSTRUCTIONS: Final[str] = "Check your phone to confirm payment"

    AMOUNT_TOLERANCE: Final[float] = 0.01


# ==============================================================================
# NOTIFICATION / OUTBOX CONSTANTS
# ==============================================================================

class NotificationType:
    MESSAGE: Final[str] = "message"
    ORDER: Final[str] = "order"
    PAYMENT: Final[str] = "payment"
    SYSTEM: Final[str] = "system"

    ALL: Final[Tuple[str, ...]] = (MESSAGE, ORDER, PAYMENT, SYSTEM)


class EventType:
    """Outbox event types."""

    NEW_ORDER: Final[str] = "new-order"
    ORDER_STATUS_UPDATE: Final[str] = "order-status-update"
    PAYMENT_RECEIVED: Final[str] = "payment-received"
    COURSE_ENROLLMENT: Final[str] = "course-enrollment"
    COURSE_COMPLETED: Final[str] = "course-completed"

    ORDER_EVENTS: Final[Tuple[str, ...]] = (NEW_ORDER, ORDER_STATUS_UPDATE, PAYMENT_RECEIVED)
    COURSE_EVENTS: Final[Tuple[str, ...]] = (COURSE_ENROLLMENT, COURSE_COMPLETED)


class OutboxStatus:
    PENDING: Final[str] = "pending"
    PROCESSING: Final[str] = "processing"
    DONE: Final[str] = "done"
    FAILED: Final[str] = "failed"


# ==============================================================================
# CHAT CONSTANTS
# ==============================================================================

class ChatEvents:
    """WebSocket event names (client <-> server)."""

    JOIN_CHAT: Final[str] = "joinChat"
    LEAVE_CHAT: Final[str] = "leaveChat"
    SEND_MESSAGE: Final[str] = "sendMessage"
    RECEIVE_MESSAGE: Final[str] = "receiveMessage"
    TYPING: Final[str] = "typing"
    TYPING_INDICATOR: Final[str] = "typingIndicator"
    STOPPED_TYPING: Final[str] = "stoppedTyping"
    UPDATE_MESSAGE_STATUS: Final[str] = "updateMessageStatus"
    MESSAGE_STATUS_UPDATED: Final[str] = "messageStatusUpdated"
    JOINED: Final[str] = "joined"
    ERROR: Final[str] = "error"


class MessageStatus:
    DELIVERED: Final[str] = "delivered"
    READ: Final[str] = "read"

    ALL: Final[Tuple[str, ...]] = (DELIVERED, READ)


# ==============================================================================
# EDUCATION CONSTANTS
# ==============================================================================

class CourseSort:
    NEWEST: Final[str] = "newest"
    OLDEST: Final[str] = "oldest"
    POPULAR: Final[str] = "popular"


DEFAULT_EDUCATION_CATEGORIES: Final[Tuple[Tuple[str, str, str], ...]] = (
    (
        "Organic Farming",
        "Sustainable organic farming practices, soil health management and natural pest control.",
        "leaf",
    ),
    (
        "Agriculture Economics",
        "Agricultural markets, farm management and economic principles for successful farming.",
        "chart-line",
    ),
    (
        "Agricultural Digital Technology",
        "Precision agriculture, IoT applications, drones and digital tools for modern farming.",
        "microchip",
    ),
    (
        "Animal Care Skills",
        "Animal husbandry, veterinary care basics and livestock management techniques.",
        "paw",
    ),
)


# ==============================================================================
# ERROR MESSAGES
# ==============================================================================

class ErrorMessages:
    """Standardized error messages."""

    INVALID_CREDENTIALS: Final[str] = "Invalid email or password"
    UNAUTHORIZED: Final[str] = "Authentication required"
    ACCOUNT_DISABLED: Final[str] = "Account is deactivated"
    PERMISSION_DENIED: Final[str] = "You don't have permission to perform this action"

    USER_NOT_FOUND: Final[str] = "User not found"
    SELLER_NOT_FOUND: Final[str] = "Seller not found"
    BUYER_NOT_FOUND: Final[str] = "Buyer not found"
    PRODUCT_NOT_FOUND: Final[str] = "Product not found"
    ORDER_NOT_FOUND: Final[str] = "Order not found"
    PAYMENT_NOT_FOUND: Final[str] = "Payment not found"
    NOTIFICATION_NOT_FOUND: Final[str] = "Notification not found"
    CHAT_NOT_FOUND: Final[str] = "Chat not found"
    MESSAGE_NOT_FOUND: Final[str] = "Message not found"
    COURSE_NOT_FOUND: Final[str] = "Course not found"
    CATEGORY_NOT_FOUND: Final[str] = "Category not found"
    LESSON_NOT_FOUND: Final[str] = "Lesson not found in this course"
    CERTIFICATE_NOT_FOUND: Final[str] = "Certificate not found"

    ONLY_SELLERS: Final[str] = "Only sellers can create products"
    NOT_PRODUCT_OWNER: Final[str] = "You can only modify your own products"
    NOT_ORDER_SELLER: Final[str] = "Only the seller can update this order"
    NOT_ORDER_PARTY: Final[str] = "You are not a party to this order"
    NOT_CHAT_PARTICIPANT: Final[str] = "You are not a participant in this chat"
    NOT_ENROLLED: Final[str] = "You are not enrolled in this course"


# ==============================================================================
# SUCCESS MESSAGES
# ==============================================================================

class SuccessMessages:
    """Standardized success messages."""

    CREATED: Final[str] = "Resource created successfully"
    UPDATED: Final[str] = "Resource updated successfully"
    DELETED: Final[str] = "Resource deleted successfully"

    LOGIN_SUCCESS: Final[str] = "Login successful"
    USER_REGISTERED: Final[str] = "User registered successfully"

    PRODUCT_CREATED: Final[str] = "Product created successfully"
    ORDER_PLACED: Final[str] = "Order placed successfully"
    ORDER_STATUS_UPDATED: Final[str] = "Order status updated successfully"
    PAYMENT_CREATED: Final[str] = "Payment initiated successfully"
    PAYMENT_STATUS_UPDATED: Final[str] = "Payment status updated successfully"
    ENROLLED: Final[str] = "Enrolled successfully"
