# ==============================================================================
# EVENT HANDLERS - Outbox Consumers
# ==============================================================================
# Maps outbox event types to notification fan-out. Each handler passes
# the event's dedupe key as the notification event id, so redelivery
# never produces a second notification or email.
# ==============================================================================

from __future__ import annotations

from typing import Any, Dict, Optional

from agricsmart.core.constants import EventType
from agricsmart.database.adapters.base_adapter import BaseDatabaseAdapter
from agricsmart.services.email_service import EmailService
from agricsmart.services.notification_service import NotificationService
from agricsmart.services.outbox import EventHandler, OutboxDispatcher


def build_event_handlers(
    adapter: BaseDatabaseAdapter,
    email_service: Optional[EmailService] = None,
) -> Dict[str, EventHandler]:
    notifications = NotificationService(adapter, email_service)

    async def on_order_event(event: Dict[str, Any]) -> None:
        payload = event["payload"]
        await notifications.send_order_notification(
            event["event_type"],
            payload["order_id"],
            event_id=event["dedupe_key"],
            status=payload.get("status"),
        )

    async def on_course_event(event: Dict[str, Any]) -> None:
        payload = event["payload"]
        await notifications.send_course_notification(
            event["event_type"],
            payload["user_id"],
            payload["course_id"],
            event_id=event["dedupe_key"],
            certificate_id=payload.get("certificate_id"),
        )

    handlers: Dict[str, EventHandler] = {}
    for event_type in EventType.ORDER_EVENTS:
        handlers[event_type] = on_order_event
    for event_type in EventType.COURSE_EVENTS:
        handlers[event_type] = on_course_event
    return handlers


def create_dispatcher(
    adapter: BaseDatabaseAdapter,
    email_service: Optional[EmailService] = None,
    **options: Any,
) -> OutboxDispatcher:
    """Dispatcher wired with every notification handler."""
    return OutboxDispatcher(adapter, build_event_handlers(adapter, email_service), **options)
