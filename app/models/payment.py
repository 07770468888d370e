# app/models/payment.py
import uuid
from datetime import datetime
from decimal import Decimal

from sqlmodel import SQLModel, Field

from app.models.user import utcnow


class Payment(SQLModel, table=True):
    """
    Payment attempt for an order, mirrored from a Stripe PaymentIntent.

    Status:
      - pending | succeeded | failed | cancelled | refunded
    """

    __tablename__ = "payments"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    order_id: uuid.UUID = Field(
        foreign_key="orders.id",
        index=True,
    )

    user_id: uuid.UUID = Field(
        foreign_key="users.id",
        index=True,
    )

    amount: Decimal = Field(
        max_digits=10,
        decimal_places=2,
    )

    currency: str = Field(max_length=3)

    status: str = Field(
        default="pending",
        index=True,
    )

    provider: str = Field(default="stripe")

    provider_payment_id: str | None = Field(
        default=None,
        unique=True,
        index=True,
        description="Stripe PaymentIntent id",
    )

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
