# app/services/payment_service.py
import logging
import uuid
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

import stripe
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from app.core.errors import AppError, ErrorCode
from app.core.stripe_client import StripeGateway
from app.database import SessionFactory, commit, read_session, transaction
from app.models.payment import Payment
from app.models.user import utcnow
from app.repositories.order_repo import OrderRepository
from app.repositories.payment_repo import PaymentRepository

logger = logging.getLogger("uvicorn.error")

VALID_CURRENCIES = {"USD", "EUR", "GBP", "JPY", "CAD", "AUD", "CHF", "CNY", "SEK", "NZD"}
PAYMENT_STATUSES = {"pending", "succeeded", "failed", "cancelled", "refunded"}

# Payment status -> order status it implies
ORDER_STATUS_FOR_PAYMENT = {
    "succeeded": "paid",
    "cancelled": "cancelled",
    "refunded": "refunded",
}


@dataclass
class CreatedPayment:
    payment_id: str
    client_secret: str


def payment_status_from_intent(intent_status: str) -> str:
    """
    Map a Stripe PaymentIntent status onto ours.

      succeeded              -> succeeded
      canceled               -> cancelled
      requires_* / processing -> pending
      anything else          -> failed
    """
    if intent_status == "succeeded":
        return "succeeded"
    if intent_status == "canceled":
        return "cancelled"
    if intent_status.startswith("requires_") or intent_status == "processing":
        return "pending"
    return "failed"


def to_cents(amount: Decimal) -> int:
    return int((Decimal(amount) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class PaymentService:
    """
    Stripe-backed payments for orders.

    Responsibilities:
      - create a PaymentIntent for a pending order and record it
      - sync payment/order status from Stripe (confirm, webhook)
      - refunds
      - payment lookups for owners and admins
    """

    def __init__(
        self,
        payment_repo: PaymentRepository | None,
        order_repo: OrderRepository | None,
        session_factory: SessionFactory | None,
        gateway: StripeGateway | None,
    ):
        self.payment_repo = payment_repo
        self.order_repo = order_repo
        self.session_factory = session_factory
        self.gateway = gateway

    def _require_writer(self) -> None:
        if self.session_factory is None or self.payment_repo is None or self.order_repo is None:
            raise AppError(ErrorCode.TRANSACTION_ERROR, "DB connection is nil")

    def _require_reader(self) -> None:
        if self.payment_repo is None:
            raise AppError(ErrorCode.DATABASE_ERROR, "Database not initialized")

    def _require_gateway(self) -> StripeGateway:
        if self.gateway is None or not self.gateway.api_key:
            raise AppError(ErrorCode.PROVIDER_NOT_CONFIGURED, "Stripe is not configured")
        return self.gateway

    # ----- Create / confirm -----

    def create_payment(
        self,
        user_id: uuid.UUID,
        order_id: uuid.UUID | None,
        currency: str,
    ) -> CreatedPayment:
        """
        Open a PaymentIntent for the order total.

        Rules:
          - order exists, belongs to the caller and is still pending
          - one payment per order
          - currency from VALID_CURRENCIES

        The payment row starts as `pending` until Stripe reports otherwise.
        """
        if order_id is None or not currency:
            raise AppError(ErrorCode.INVALID_REQUEST, "Missing required fields")
        currency = currency.upper()
        if currency not in VALID_CURRENCIES:
            raise AppError(ErrorCode.INVALID_CURRENCY, "Unsupported currency")
        self._require_writer()
        gateway = self._require_gateway()

        with transaction(self.session_factory) as session:
            try:
                order = self.order_repo.get_by_id(session, order_id)
            except SQLAlchemyError as e:
                raise AppError(ErrorCode.ORDER_NOT_FOUND, "Order not found", e) from e
            if order is None:
                raise AppError(ErrorCode.ORDER_NOT_FOUND, "Order not found")
            if order.user_id != user_id:
                raise AppError(ErrorCode.UNAUTHORIZED, "Order does not belong to user")
            if order.status != "pending":
                raise AppError(ErrorCode.INVALID_ORDER_STATUS, "Order is not pending payment")

            try:
                existing = self.payment_repo.get_by_order_id(session, order_id)
            except SQLAlchemyError as e:
                raise AppError(ErrorCode.DATABASE_ERROR, "Error checking existing payment", e) from e
            if existing is not None:
                raise AppError(ErrorCode.PAYMENT_EXISTS, "Payment already exists for this order")

            amount_cents = to_cents(order.total_amount)
            if amount_cents <= 0:
                raise AppError(ErrorCode.INVALID_AMOUNT, "Invalid order amount")

            try:
                intent = gateway.create_payment_intent(
                    amount=amount_cents,
                    currency=currency.lower(),
                    metadata={"order_id": str(order_id), "user_id": str(user_id)},
                )
            except stripe.StripeError as e:
                raise AppError(ErrorCode.STRIPE_ERROR, "Failed to create payment intent", e) from e

            payment = Payment(
                id=uuid.uuid4(),
                order_id=order_id,
                user_id=user_id,
                amount=order.total_amount,
                currency=currency,
                status="pending",
                provider="stripe",
                provider_payment_id=intent.id,
            )
            try:
                self.payment_repo.create(session, payment)
            except SQLAlchemyError as e:
                raise AppError(ErrorCode.DATABASE_ERROR, "Failed to record payment", e) from e
            commit(session)

        return CreatedPayment(payment_id=str(payment.id), client_secret=intent.client_secret)

    def confirm_payment(self, order_id: uuid.UUID, user_id: uuid.UUID) -> str:
        """
        Pull the latest intent status from Stripe and apply it.

        Returns the resulting payment status.
        """
        self._require_writer()
        gateway = self._require_gateway()

        with transaction(self.session_factory) as session:
            payment = self._owned_payment(session, order_id, user_id)
            if not payment.provider_payment_id:
                raise AppError(ErrorCode.INVALID_PAYMENT, "Payment has no provider reference")

            try:
                intent = gateway.retrieve_payment_intent(payment.provider_payment_id)
            except stripe.StripeError as e:
                raise AppError(ErrorCode.STRIPE_ERROR, "Failed to retrieve payment intent", e) from e

            new_status = payment_status_from_intent(intent.status)
            self._apply_status(session, payment, new_status)
            commit(session)

        return new_status

    # ----- Reads -----

    def get_payment(self, order_id: uuid.UUID, user_id: uuid.UUID) -> Payment:
        self._require_reader()
        with read_session(self.session_factory) as session:
            return self._owned_payment(session, order_id, user_id)

    def get_payment_history(self, user_id: uuid.UUID) -> list[Payment]:
        self._require_reader()
        with read_session(self.session_factory) as session:
            try:
                return self.payment_repo.list_for_user(session, user_id)
            except SQLAlchemyError as e:
                raise AppError(ErrorCode.DATABASE_ERROR, "Failed to fetch payment history", e) from e

    def get_all_payments(self, status: str) -> list[Payment]:
        """Admin listing; `status` is one of PAYMENT_STATUSES or "all"."""
        self._require_reader()
        if status != "all" and status not in PAYMENT_STATUSES:
            raise AppError(ErrorCode.INVALID_STATUS, "Invalid payment status")

        with read_session(self.session_factory) as session:
            try:
                return self.payment_repo.list_all(session, None if status == "all" else status)
            except SQLAlchemyError as e:
                raise AppError(ErrorCode.DATABASE_ERROR, "Failed to fetch payments", e) from e

    # ----- Refunds -----

    def refund_payment(self, order_id: uuid.UUID, user_id: uuid.UUID) -> None:
        """
        Refund a succeeded payment in full.

        The payment becomes `refunded` and the order follows.
        """
        self._require_writer()
        gateway = self._require_gateway()

        with transaction(self.session_factory) as session:
            payment = self._owned_payment(session, order_id, user_id)
            if payment.status != "succeeded":
                raise AppError(ErrorCode.INVALID_STATUS, "Only succeeded payments can be refunded")
            if not payment.provider_payment_id:
                raise AppError(ErrorCode.INVALID_PAYMENT, "Payment has no provider reference")

            try:
                gateway.create_refund(payment.provider_payment_id)
            except stripe.StripeError as e:
                raise AppError(ErrorCode.STRIPE_ERROR, "Failed to refund payment", e) from e

            self._apply_status(session, payment, "refunded")
            commit(session)

    # ----- Webhooks -----

    def handle_webhook(self, payload: bytes, signature: str) -> None:
        """
        Verify a Stripe event and apply it.

        Handled:
          - payment_intent.succeeded       -> succeeded
          - payment_intent.payment_failed  -> failed
          - payment_intent.canceled        -> cancelled
          - charge.refunded                -> refunded
        Other event types are acknowledged and ignored.
        """
        self._require_writer()
        gateway = self._require_gateway()

        try:
            event = gateway.construct_event(payload, signature)
        except (ValueError, stripe.SignatureVerificationError) as e:
            raise AppError(ErrorCode.WEBHOOK_ERROR, "Invalid webhook payload", e) from e

        event_type = event["type"]
        obj = event["data"]["object"]
        if event_type == "payment_intent.succeeded":
            self._sync_from_event(obj["id"], "succeeded")
        elif event_type == "payment_intent.payment_failed":
            self._sync_from_event(obj["id"], "failed")
        elif event_type == "payment_intent.canceled":
            self._sync_from_event(obj["id"], "cancelled")
        elif event_type == "charge.refunded":
            intent_id = obj.get("payment_intent")
            if not intent_id:
                raise AppError(ErrorCode.WEBHOOK_ERROR, "Refund event without payment intent")
            self._sync_from_event(intent_id, "refunded")
        else:
            logger.info("Ignoring Stripe event %s", event_type)

    def _sync_from_event(self, intent_id: str, new_status: str) -> None:
        with transaction(self.session_factory) as session:
            try:
                payment = self.payment_repo.get_by_provider_payment_id(session, intent_id)
            except SQLAlchemyError as e:
                raise AppError(ErrorCode.DATABASE_ERROR, "Failed to fetch payment", e) from e
            if payment is None:
                raise AppError(ErrorCode.PAYMENT_NOT_FOUND, "Payment not found")
            self._apply_status(session, payment, new_status)
            commit(session)

    # ----- Helpers -----

    def _owned_payment(self, session: Session, order_id: uuid.UUID, user_id: uuid.UUID) -> Payment:
        try:
            payment = self.payment_repo.get_by_order_id(session, order_id)
        except SQLAlchemyError as e:
            raise AppError(ErrorCode.DATABASE_ERROR, "Failed to fetch payment", e) from e
        if payment is None:
            raise AppError(ErrorCode.PAYMENT_NOT_FOUND, "Payment not found")
        if payment.user_id != user_id:
            raise AppError(ErrorCode.UNAUTHORIZED, "Payment does not belong to user")
        return payment

    def _apply_status(self, session: Session, payment: Payment, new_status: str) -> None:
        """Update the payment and, where implied, its order."""
        now = utcnow()
        payment.status = new_status
        payment.updated_at = now
        try:
            self.payment_repo.update(session, payment)
            order_status = ORDER_STATUS_FOR_PAYMENT.get(new_status)
            if order_status is not None:
                order = self.order_repo.get_by_id(session, payment.order_id)
                if order is not None:
                    order.status = order_status
                    order.updated_at = now
                    self.order_repo.update(session, order)
        except SQLAlchemyError as e:
            raise AppError(ErrorCode.UPDATE_FAILED, "Failed to update payment status", e) from e
