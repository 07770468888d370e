# app/repositories/payment_repo.py
import uuid

from sqlmodel import Session, select

from app.models.payment import Payment


class PaymentRepository:
    """
    Data access layer for payments.

    - Lookups by order, by Stripe PaymentIntent id, by user and by status.
    - No commits; the payment service owns the transaction.
    """

    def get_by_order_id(self, session: Session, order_id: uuid.UUID) -> Payment | None:
        stmt = (
            select(Payment)
            .where(Payment.order_id == order_id)
            .order_by(Payment.created_at.desc())
        )
        return session.exec(stmt).first()

    def get_by_provider_payment_id(
        self,
        session: Session,
        provider_payment_id: str,
    ) -> Payment | None:
        stmt = select(Payment).where(Payment.provider_payment_id == provider_payment_id)
        return session.exec(stmt).first()

    def list_for_user(self, session: Session, user_id: uuid.UUID) -> list[Payment]:
        stmt = (
            select(Payment)
            .where(Payment.user_id == user_id)
            .order_by(Payment.created_at.desc())
        )
        return list(session.exec(stmt).all())

    def list_all(self, session: Session, status: str | None = None) -> list[Payment]:
        """All payments, optionally narrowed to one status."""
        stmt = select(Payment)
        if status is not None:
            stmt = stmt.where(Payment.status == status)
        stmt = stmt.order_by(Payment.created_at.desc())
        return list(session.exec(stmt).all())

    def create(self, session: Session, payment: Payment) -> Payment:
        session.add(payment)
        session.flush()
        return payment

    def update(self, session: Session, payment: Payment) -> Payment:
        session.add(payment)
        session.flush()
        return payment
