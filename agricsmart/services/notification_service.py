# ==============================================================================
# NOTIFICATION SERVICE - In-App Notifications
# ==============================================================================
# Per-user notifications plus the order event templates. Email is a
# best-effort follow-up: its failure is logged and never propagated.
# ==============================================================================

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple

from agricsmart.core.constants import (
    Collections,
    ErrorMessages,
    EventType,
    NotificationType,
)
from agricsmart.core.exceptions import (
    AppException,
    AuthorizationError,
    NotFoundError,
    ValidationError,
)
from agricsmart.database.adapters.base_adapter import BaseDatabaseAdapter
from agricsmart.schemas.notification import (
    NotificationCreate,
    NotificationListResponse,
    NotificationResponse,
)
from agricsmart.services.base_service import BaseService
from agricsmart.services.email_service import EmailService, render_order_email

logger = logging.getLogger(__name__)


class NotificationService(BaseService[NotificationResponse]):
    """
    Notification storage and order event fan-out.

    Creation is idempotent per ``event_id``: delivering the same outbox
    event twice yields one notification and one email.
    """

    response_schema = NotificationResponse
    not_found_message = ErrorMessages.NOTIFICATION_NOT_FOUND

    def __init__(
        self,
        adapter: BaseDatabaseAdapter,
        email_service: Optional[EmailService] = None,
    ) -> None:
        super().__init__(adapter, Collections.NOTIFICATIONS)
        self._email = email_service or EmailService()

    # ==========================================================================
    # CRUD
    # ==========================================================================

    async def create_notification(
        self,
        schema: NotificationCreate,
        event_id: Optional[str] = None,
    ) -> Tuple[NotificationResponse, bool]:
        """
        Store a notification.

        Returns:
            ``(notification, created)``; ``created`` is False when a
            notification for ``event_id`` already existed
        """
        data = schema.model_dump()
        data["is_read"] = False

        if event_id is None:
            result = await self._adapter.create(self._collection_name, data)
            return self._to_response(result), True

        data["event_id"] = event_id
        created = await self._adapter.insert_if_absent(
            self._collection_name,
            {"event_id": event_id},
            data,
        )
        stored = await self._adapter.find_one(self._collection_name, {"event_id": event_id})
        return self._to_response(stored), created

    async def get_notifications(
        self,
        user_id: str,
        limit: int = 20,
        skip: int = 0,
        unread_only: bool = False,
    ) -> NotificationListResponse:
        filters: Dict[str, Any] = {"user_id": user_id}
        if unread_only:
            filters["is_read"] = False

        notifications = await self.get_all(
            skip=skip,
            limit=limit,
            filters=filters,
            sort=[("created_at", -1)],
        )
        total = await self._adapter.count(self._collection_name, filters)
        unread = await self._adapter.count(
            self._collection_name,
            {"user_id": user_id, "is_read": False},
        )
        return NotificationListResponse(
            notifications=notifications,
            total=total,
            unread_count=unread,
        )

    async def _get_owned(self, notification_id: str, user_id: str) -> Dict[str, Any]:
        notification = await self._get_document(notification_id)
        if notification.get("user_id") != user_id:
            raise AuthorizationError(message="You can only manage your own notifications")
        return notification

    async def mark_as_read(self, notification_id: str, user_id: str) -> NotificationResponse:
        await self._get_owned(notification_id, user_id)
        result = await self._adapter.update(
            self._collection_name,
            notification_id,
            {"is_read": True},
        )
        return self._to_response(result)

    async def mark_all_as_read(self, user_id: str) -> int:
        return await self._adapter.update_many(
            self._collection_name,
            {"user_id": user_id, "is_read": False},
            {"$set": {"is_read": True}},
        )

    async def delete_notification(self, notification_id: str, user_id: str) -> bool:
        await self._get_owned(notification_id, user_id)
        return await self._adapter.delete(self._collection_name, notification_id)

    # ==========================================================================
    # ORDER EVENTS
    # ==========================================================================

    @staticmethod
    def _display_name(user: Dict[str, Any]) -> str:
        return user.get("full_name") or user.get("username") or "there"

    async def send_order_notification(
        self,
        event_type: str,
        order_id: str,
        event_id: Optional[str] = None,
        status: Optional[str] = None,
    ) -> NotificationResponse:
        """
        Notify the right party about an order event.

        ``status`` is the order status the event was raised for; it
        defaults to the order's current status.

        - ``new-order`` and ``payment-received`` go to the seller
        - ``order-status-update`` goes to the buyer

        Raises:
            ValidationError: For an unknown event type
            NotFoundError: If the order or one of its parties is missing
        """
        if event_type not in EventType.ORDER_EVENTS:
            raise ValidationError(message=f"Unknown order notification type: {event_type}")

        order = await self._adapter.get_by_id(Collections.ORDERS, order_id)
        if not order:
            raise NotFoundError(
                message=ErrorMessages.ORDER_NOT_FOUND,
                resource_type="order",
                resource_id=order_id,
            )
        buyer = await self._adapter.get_by_id(Collections.USERS, order["buyer_id"])
        seller = await self._adapter.get_by_id(Collections.USERS, order["seller_id"])
        if not buyer or not seller:
            raise NotFoundError(message=ErrorMessages.USER_NOT_FOUND, resource_type="user")

        product_names: List[str] = [item["name"] for item in order.get("products", [])]
        order_status = status or order.get("order_status")

        if event_type == EventType.NEW_ORDER:
            recipient = seller
            kind = NotificationType.ORDER
            content = f"New order #{order_id} received from {self._display_name(buyer)}"
        elif event_type == EventType.ORDER_STATUS_UPDATE:
            recipient = buyer
            kind = NotificationType.ORDER
            content = (
                f"Your order #{order_id} status has been updated to: "
                f"{order_status}"
            )
        else:
            recipient = seller
            kind = NotificationType.PAYMENT
            content = f"Payment received for order #{order_id}"

        notification, created = await self.create_notification(
            NotificationCreate(
                user_id=recipient["id"],
                type=kind,
                content=content,
                data={
                    "order_id": order_id,
                    "event": event_type,
                    "order_status": order_status,
                    "products": product_names,
                },
            ),
            event_id=event_id,
        )

        if created and recipient.get("email"):
            subject, body = render_order_email(
                event_type,
                {**order, "order_status": order_status},
                self._display_name(recipient),
                product_names,
            )
            try:
                await self._email.send_email(recipient["email"], subject, body)
            except AppException as e:
                logger.warning(f"Order email for {order_id} not sent: {e.message}")

        return notification

    # ==========================================================================
    # COURSE EVENTS
    # ==========================================================================

    async def send_course_notification(
        self,
        event_type: str,
        user_id: str,
        course_id: str,
        event_id: Optional[str] = None,
        certificate_id: Optional[str] = None,
    ) -> NotificationResponse:
        """Tell a learner about an enrollment or a completed course."""
        if event_type not in EventType.COURSE_EVENTS:
            raise ValidationError(message=f"Unknown course notification type: {event_type}")

        user = await self._adapter.get_by_id(Collections.USERS, user_id)
        if not user:
            raise NotFoundError(message=ErrorMessages.USER_NOT_FOUND, resource_type="user")
        course = await self._adapter.get_by_id(Collections.COURSES, course_id)
        if not course:
            raise NotFoundError(message=ErrorMessages.COURSE_NOT_FOUND, resource_type="course")

        title = course["title"]
        if event_type == EventType.COURSE_ENROLLMENT:
            content = f"You are now enrolled in {title}"
            subject = f"Welcome to {title}"
        else:
            content = f"Congratulations! You completed {title}"
            if certificate_id:
                content += f". Certificate: {certificate_id}"
            subject = f"You completed {title}"

        notification, created = await self.create_notification(
            NotificationCreate(
                user_id=user_id,
                type=NotificationType.SYSTEM,
                content=content,
                data={
                    "course_id": course_id,
                    "event": event_type,
                    "certificate_id": certificate_id,
                },
            ),
            event_id=event_id,
        )

        if created and user.get("email"):
            body = f"Hello {self._display_name(user)},\n\n{content}.\n\nThe AgricSmart team\n"
            try:
                await self._email.send_email(user["email"], subject, body)
            except AppException as e:
                logger.warning(f"Course email for {user_id} not sent: {e.message}")

        return notification
