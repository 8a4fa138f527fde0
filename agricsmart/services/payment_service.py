# ==============================================================================
# PAYMENT SERVICE - Payments, Mock Providers & Webhook
# ==============================================================================
# Payment documents are the single source of truth for payment state;
# orders only reference them by id.
# ==============================================================================

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from pydantic import ValidationError as PydanticValidationError
from pymongo.errors import DuplicateKeyError

from agricsmart.core.constants import (
    Collections,
    ErrorMessages,
    EventType,
    OrderStatus,
    PaymentConstants,
    PaymentStatus,
)
from agricsmart.core.exceptions import (
    AlreadyExistsError,
    AppException,
    AuthorizationError,
    BusinessRuleError,
    NotFoundError,
    ValidationError,
)
from agricsmart.core.settings import settings
from agricsmart.database.adapters.base_adapter import BaseDatabaseAdapter
from agricsmart.schemas.payment import (
    CardPaymentRequest,
    MomoPaymentRequest,
    MomoPaymentResponse,
    PaymentCreate,
    PaymentResponse,
    WebhookPayload,
    WebhookResult,
)
from agricsmart.services.base_service import BaseService
from agricsmart.services.outbox import OutboxService
from agricsmart.utils.helpers import epoch_millis, generate_payment_reference

logger = logging.getLogger(__name__)


class PaymentService(BaseService[PaymentResponse]):
    """
    Payment recording and status lifecycle.

    Providers are mocked: MoMo and card requests are accepted as
    ``pending`` with a generated transaction id, and the outcome arrives
    later through ``handle_webhook`` or an admin status update.
    """

    response_schema = PaymentResponse
    not_found_message = ErrorMessages.PAYMENT_NOT_FOUND

    def __init__(
        self,
        adapter: BaseDatabaseAdapter,
        outbox: Optional[OutboxService] = None,
    ) -> None:
        super().__init__(adapter, Collections.PAYMENTS)
        self._outbox = outbox or OutboxService(adapter)

    # ==========================================================================
    # CREATION
    # ==========================================================================

    async def _check_order(
        self,
        user_id: str,
        order_id: str,
        amount: float,
        currency: str,
    ) -> Dict[str, Any]:
        """An order may only be paid by its buyer, in full, while open."""
        order = await self._adapter.get_by_id(Collections.ORDERS, order_id)
        if not order:
            raise NotFoundError(
                message=ErrorMessages.ORDER_NOT_FOUND,
                resource_type="order",
                resource_id=order_id,
            )
        if order.get("buyer_id") != user_id:
            raise AuthorizationError(message="Only the buyer can pay for this order")
        if order.get("order_status") == OrderStatus.CANCELLED:
            raise BusinessRuleError(message="Cannot pay for a cancelled order", rule="order_open")
        if abs(order["total_amount"] - amount) > PaymentConstants.AMOUNT_TOLERANCE:
            raise ValidationError(
                message=f"Payment amount must equal the order total ({order['total_amount']:.2f})",
                errors={"amount": {"expected": order["total_amount"], "received": amount}},
            )
        if order.get("currency") and order["currency"] != currency:
            raise ValidationError(
                message=f"Payment currency must be {order['currency']}",
            )
        if order.get("payment_id"):
            existing = await self._adapter.get_by_id(self._collection_name, order["payment_id"])
            if existing and existing.get("status") in (PaymentStatus.COMPLETED, PaymentStatus.REFUNDED):
                raise BusinessRuleError(message="Order has already been paid", rule="single_payment")
            if existing and existing.get("status") == PaymentStatus.PENDING:
                raise BusinessRuleError(
                    message="Order already has a pending payment",
                    rule="single_payment",
                )
        return order

    async def _record(
        self,
        user_id: str,
        order_id: Optional[str],
        amount: float,
        currency: Optional[str],
        payment_method: str,
        description: Optional[str],
        details: Dict[str, Any],
        prefix: str,
    ) -> Dict[str, Any]:
        currency = currency or settings.DEFAULT_CURRENCY
        if currency not in PaymentConstants.CURRENCIES:
            raise ValidationError(message=f"Unsupported currency: {currency}")

        previous_payment_id = None
        if order_id:
            order = await self._check_order(user_id, order_id, amount, currency)
            previous_payment_id = order.get("payment_id")

        details = {k: v for k, v in details.items() if v is not None}
        details.setdefault("reference", generate_payment_reference(prefix))

        try:
            payment = await self._adapter.create(
                self._collection_name,
                {
                    "user_id": user_id,
                    "order_id": order_id,
                    "amount": amount,
                    "currency": currency,
                    "payment_method": payment_method,
                    "status": PaymentStatus.PENDING,
                    "description": description,
                    "payment_details": details,
                },
            )
        except DuplicateKeyError:
            raise AlreadyExistsError(
                message=f"Payment reference {details['reference']} is already in use",
                resource_type="payment",
            )

        if order_id:
            # Compare-and-set: a concurrent payment for the same order loses
            linked = await self._adapter.update_one(
                Collections.ORDERS,
                {"id": order_id, "payment_id": previous_payment_id},
                {"$set": {"payment_id": payment["id"]}},
            )
            if not linked:
                await self._adapter.delete(self._collection_name, payment["id"])
                raise BusinessRuleError(
                    message="Order already has a pending payment",
                    rule="single_payment",
                )

        logger.info(
            f"Payment {payment['id']} ({payment_method}, {amount:.2f} {currency}) "
            f"created for user {user_id}, reference {details['reference']}"
        )
        return payment

    async def create_payment(self, user_id: str, schema: PaymentCreate) -> PaymentResponse:
        details = schema.payment_details.model_dump() if schema.payment_details else {}
        payment = await self._record(
            user_id=user_id,
            order_id=schema.order_id,
            amount=schema.amount,
            currency=schema.currency,
            payment_method=schema.payment_method,
            description=schema.description,
            details=details,
            prefix=PaymentConstants.REFERENCE_PREFIX,
        )
        return self._to_response(payment)

    async def process_momo_payment(
        self,
        user_id: str,
        schema: MomoPaymentRequest,
    ) -> MomoPaymentResponse:
        """Start a mobile-money collection (mock MTN provider)."""
        payment = await self._record(
            user_id=user_id,
            order_id=schema.order_id,
            amount=schema.amount,
            currency=schema.currency,
            payment_method="momo",
            description=schema.description,
            details={
                "transaction_id": f"{PaymentConstants.MOMO_PREFIX}-{epoch_millis()}",
                "provider": PaymentConstants.MOMO_PROVIDER,
                "phone_number": schema.phone_number,
            },
            prefix=PaymentConstants.MOMO_PREFIX,
        )
        return MomoPaymentResponse(
            **self._to_response(payment).model_dump(),
            momo_reference=payment["payment_details"]["reference"],
            instructions=PaymentConstants.MOMO_INSTRUCTIONS,
        )

    async def process_card_payment(
        self,
        user_id: str,
        schema: CardPaymentRequest,
    ) -> PaymentResponse:
        """Charge a card (mock). Only the card type and last four digits are kept."""
        payment = await self._record(
            user_id=user_id,
            order_id=schema.order_id,
            amount=schema.amount,
            currency=schema.currency,
            payment_method="card",
            description=schema.description,
            details={
                "transaction_id": f"{PaymentConstants.CARD_PREFIX}-{epoch_millis()}",
                "card_type": schema.card_type or "card",
                "last4": schema.card_number[-4:],
            },
            prefix=PaymentConstants.CARD_PREFIX,
        )
        return self._to_response(payment)

    # ==========================================================================
    # QUERIES
    # ==========================================================================

    async def get_payment(
        self,
        payment_id: str,
        user_id: str,
        is_admin: bool = False,
    ) -> PaymentResponse:
        payment = await self._get_document(payment_id)
        if not is_admin and payment.get("user_id") != user_id:
            raise AuthorizationError(message="You can only view your own payments")
        return self._to_response(payment)

    async def get_user_payments(self, user_id: str) -> List[PaymentResponse]:
        return await self.get_all(
            limit=500,
            filters={"user_id": user_id},
            sort=[("created_at", -1)],
        )

    # ==========================================================================
    # STATUS LIFECYCLE
    # ==========================================================================

    async def update_payment_status(
        self,
        payment_id: str,
        status: str,
        transaction_id: Optional[str] = None,
    ) -> PaymentResponse:
        """
        Move a payment to ``status``.

        Setting the current status again is a no-op. Completing an
        order-linked payment queues a ``payment-received`` event.

        Raises:
            ValidationError: Unknown status
            NotFoundError: Payment missing
            BusinessRuleError: Transition not allowed
        """
        if status not in PaymentStatus.ALL:
            raise ValidationError(
                message=f"Invalid payment status: {status}",
                errors={"status": f"must be one of {', '.join(PaymentStatus.ALL)}"},
            )

        payment = await self._get_document(payment_id)
        current = payment.get("status", PaymentStatus.PENDING)

        changes: Dict[str, Any] = {}
        if transaction_id:
            changes["payment_details.transaction_id"] = transaction_id

        if status == current:
            if changes:
                payment = await self._adapter.update(self._collection_name, payment_id, changes)
            return self._to_response(payment)

        if status not in PaymentStatus.TRANSITIONS.get(current, frozenset()):
            raise BusinessRuleError(
                message=f"Cannot change payment status from {current} to {status}",
                rule="payment_status_transition",
            )

        if status == PaymentStatus.COMPLETED and payment.get("order_id"):
            order = await self._adapter.find_one(
                Collections.ORDERS,
                {"id": payment["order_id"], "payment_id": payment_id},
            )
            if order is None:
                raise BusinessRuleError(
                    message="Payment is no longer the active payment for its order",
                    rule="single_payment",
                )

        changes["status"] = status
        updated = await self._adapter.find_one_and_update(
            self._collection_name,
            {"id": payment_id, "status": current},
            {"$set": changes},
        )
        if updated is None:
            raise BusinessRuleError(
                message="Payment status was changed by another request",
                rule="payment_status_transition",
            )

        logger.info(f"Payment {payment_id} status {current} -> {status}")

        if status == PaymentStatus.COMPLETED and updated.get("order_id"):
            try:
                await self._outbox.enqueue(
                    EventType.PAYMENT_RECEIVED,
                    {"order_id": updated["order_id"], "payment_id": payment_id},
                    f"{EventType.PAYMENT_RECEIVED}:{payment_id}",
                )
            except Exception as e:
                logger.error(f"Failed to queue payment-received for {payment_id}: {e}")

        return self._to_response(updated)

    async def handle_webhook(self, body: Any) -> WebhookResult:
        """
        Apply a provider callback. Never raises.

        ``successful`` maps to completed and ``failed`` to failed; any
        other provider status leaves the payment unchanged.
        """
        try:
            payload = WebhookPayload.model_validate(body)
        except PydanticValidationError as e:
            logger.warning(f"Webhook ignored, invalid payload: {e.error_count()} errors")
            return WebhookResult(success=False, message="Invalid webhook payload")

        try:
            payment = await self._adapter.find_one(
                self._collection_name,
                {"payment_details.reference": payload.reference},
            )
            if not payment:
                logger.warning(f"Webhook for unknown payment reference {payload.reference}")
                return WebhookResult(success=False, message=ErrorMessages.PAYMENT_NOT_FOUND)

            target = PaymentStatus.WEBHOOK_MAP.get(payload.status.lower(), payment["status"])
            updated = await self.update_payment_status(
                payment["id"],
                target,
                transaction_id=payload.transaction_id,
            )
            return WebhookResult(
                success=True,
                message="Webhook processed",
                payment_id=updated.id,
                status=updated.status,
            )
        except AppException as e:
            logger.warning(f"Webhook for {payload.reference} rejected: {e.message}")
            return WebhookResult(success=False, message=e.message)
        except Exception as e:
            logger.exception(f"Webhook for {payload.reference} failed: {e}")
            return WebhookResult(success=False, message="Webhook processing failed")
