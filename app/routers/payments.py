# app/routers/payments.py
import uuid

from fastapi import APIRouter, Depends, Header, Request, status
from starlette.concurrency import run_in_threadpool

from app.core.action_log import log_success
from app.core.auth import require_admin, require_auth
from app.core.errors import AppError, ErrorCode
from app.core.handlers_config import HandlersConfig, get_handlers
from app.models.user import User
from app.schemas.common import MessageResponse
from app.schemas.payment import (
    ConfirmPaymentRequest,
    ConfirmPaymentResponse,
    CreatePaymentRequest,
    CreatePaymentResponse,
    PaymentRead,
)

router = APIRouter(prefix="/payments", tags=["Payments"])

# Stripe event bodies are small; anything larger is rejected unread
MAX_WEBHOOK_BYTES = 65536


# -------- Customer endpoints --------


@router.post(
    "/intent",
    response_model=CreatePaymentResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_payment(
    payload: CreatePaymentRequest,
    request: Request,
    current_user: User = Depends(require_auth),
    handlers: HandlersConfig = Depends(get_handlers),
):
    """
    Create a Stripe PaymentIntent for one of the caller's pending orders.

    The returned client_secret is handed to Stripe.js on the frontend.
    """
    created = handlers.get_payment_service().create_payment(
        current_user.id,
        payload.order_id,
        payload.currency,
    )
    log_success(request, "create_payment", "Created payment successful", current_user.id)
    return created


@router.post("/confirm", response_model=ConfirmPaymentResponse)
def confirm_payment(
    payload: ConfirmPaymentRequest,
    request: Request,
    current_user: User = Depends(require_auth),
    handlers: HandlersConfig = Depends(get_handlers),
):
    new_status = handlers.get_payment_service().confirm_payment(payload.order_id, current_user.id)
    log_success(request, "confirm_payment", f"Payment status is {new_status}", current_user.id)
    return {"status": new_status}


@router.get("/history", response_model=list[PaymentRead])
def get_payment_history(
    current_user: User = Depends(require_auth),
    handlers: HandlersConfig = Depends(get_handlers),
):
    return handlers.get_payment_service().get_payment_history(current_user.id)


@router.get("/admin/{payment_status}", response_model=list[PaymentRead])
def get_all_payments(
    payment_status: str,
    request: Request,
    admin: User = Depends(require_admin),
    handlers: HandlersConfig = Depends(get_handlers),
):
    """
    List payments by status (admin only). Use "all" for no filter.
    """
    payments = handlers.get_payment_service().get_all_payments(payment_status)
    log_success(request, "get_all_payments", f"Listed {payment_status} payments", admin.id)
    return payments


@router.get("/{order_id}", response_model=PaymentRead)
def get_payment(
    order_id: uuid.UUID,
    current_user: User = Depends(require_auth),
    handlers: HandlersConfig = Depends(get_handlers),
):
    return handlers.get_payment_service().get_payment(order_id, current_user.id)


@router.post("/{order_id}/refund", response_model=MessageResponse)
def refund_payment(
    order_id: uuid.UUID,
    request: Request,
    current_user: User = Depends(require_auth),
    handlers: HandlersConfig = Depends(get_handlers),
):
    handlers.get_payment_service().refund_payment(order_id, current_user.id)
    log_success(request, "refund_payment", "Refund processed", current_user.id)
    return {"message": "Refund processed successfully"}


# -------- Stripe webhook --------


@router.post("/webhook", response_model=MessageResponse)
async def stripe_webhook(
    request: Request,
    stripe_signature: str | None = Header(default=None, alias="Stripe-Signature"),
    handlers: HandlersConfig = Depends(get_handlers),
):
    """
    Receive Stripe events.

    The raw body is required for signature verification, so this route
    reads it directly instead of declaring a payload model.
    """
    if not request.headers.get("Content-Type", "").startswith("application/json"):
        raise AppError(ErrorCode.WEBHOOK_ERROR, "Invalid content type")
    if not stripe_signature:
        raise AppError(ErrorCode.WEBHOOK_ERROR, "Missing signature")

    payload = await request.body()
    if len(payload) > MAX_WEBHOOK_BYTES:
        raise AppError(ErrorCode.WEBHOOK_ERROR, "Payload too large")

    await run_in_threadpool(
        handlers.get_payment_service().handle_webhook, payload, stripe_signature
    )
    log_success(request, "payment_webhook", "Webhook processed successfully")
    return {"message": "Updated payment successfully"}
