# ==============================================================================
# PAYMENT ENDPOINTS - Payments, Mobile Money, Cards & Webhook
# ==============================================================================

from __future__ import annotations

import json
import logging
from typing import List

from fastapi import APIRouter, Request, status

from agricsmart.api.dependencies import AdminUser, CurrentUser, PaymentServiceDep
from agricsmart.core.constants import SuccessMessages, UserRoles
from agricsmart.schemas.base import APIResponse
from agricsmart.schemas.payment import (
    CardPaymentRequest,
    MomoPaymentRequest,
    MomoPaymentResponse,
    PaymentCreate,
    PaymentResponse,
    PaymentStatusUpdate,
    WebhookResult,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/payments", tags=["Payments"])


@router.post(
    "",
    response_model=APIResponse[PaymentResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Create payment",
    description="Record a pending payment, optionally against one of the caller's orders.",
)
async def create_payment(
    schema: PaymentCreate,
    user: CurrentUser,
    service: PaymentServiceDep,
) -> APIResponse[PaymentResponse]:
    payment = await service.create_payment(user["id"], schema)
    return APIResponse.ok(data=payment, message=SuccessMessages.PAYMENT_CREATED)


@router.post(
    "/momo",
    response_model=APIResponse[MomoPaymentResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Mobile money payment",
    description="Start a mobile-money collection. Completion arrives via the webhook.",
)
async def momo_payment(
    schema: MomoPaymentRequest,
    user: CurrentUser,
    service: PaymentServiceDep,
) -> APIResponse[MomoPaymentResponse]:
    payment = await service.process_momo_payment(user["id"], schema)
    return APIResponse.ok(data=payment, message=SuccessMessages.PAYMENT_CREATED)


@router.post(
    "/card",
    response_model=APIResponse[PaymentResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Card payment",
)
async def card_payment(
    schema: CardPaymentRequest,
    user: CurrentUser,
    service: PaymentServiceDep,
) -> APIResponse[PaymentResponse]:
    payment = await service.process_card_payment(user["id"], schema)
    return APIResponse.ok(data=payment, message=SuccessMessages.PAYMENT_CREATED)


@router.post(
    "/webhook",
    response_model=WebhookResult,
    summary="Provider webhook",
    description=(
        "Payment provider callback. Always answers 200; the body reports "
        "whether the callback was applied."
    ),
)
async def payment_webhook(
    request: Request,
    service: PaymentServiceDep,
) -> WebhookResult:
    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        logger.warning("Webhook ignored, body is not JSON")
        return WebhookResult(success=False, message="Invalid webhook payload")
    return await service.handle_webhook(body)


@router.get(
    "",
    response_model=APIResponse[List[PaymentResponse]],
    summary="My payments",
)
async def list_payments(
    user: CurrentUser,
    service: PaymentServiceDep,
) -> APIResponse[List[PaymentResponse]]:
    payments = await service.get_user_payments(user["id"])
    return APIResponse.ok(data=payments)


@router.get(
    "/{payment_id}",
    response_model=APIResponse[PaymentResponse],
    summary="Get payment",
)
async def get_payment(
    payment_id: str,
    user: CurrentUser,
    service: PaymentServiceDep,
) -> APIResponse[PaymentResponse]:
    payment = await service.get_payment(
        payment_id,
        user["id"],
        is_admin=user.get("role") == UserRoles.ADMIN,
    )
    return APIResponse.ok(data=payment)


@router.patch(
    "/{payment_id}/status",
    response_model=APIResponse[PaymentResponse],
    summary="Update payment status",
    description="Manually settle, fail or refund a payment. Admin only.",
)
async def update_payment_status(
    payment_id: str,
    schema: PaymentStatusUpdate,
    admin: AdminUser,
    service: PaymentServiceDep,
) -> APIResponse[PaymentResponse]:
    payment = await service.update_payment_status(payment_id, schema.status)
    return APIResponse.ok(data=payment, message=SuccessMessages.PAYMENT_STATUS_UPDATED)
