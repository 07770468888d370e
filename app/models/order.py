# app/models/order.py
import uuid
from datetime import datetime
from decimal import Decimal

from sqlmodel import SQLModel, Field

from app.models.user import utcnow


class Order(SQLModel, table=True):
    """
    Purchase placed by a user.

    Status lifecycle:
      pending -> paid -> shipped -> delivered
      any of the above -> cancelled | refunded (payment driven)
    """

    __tablename__ = "orders"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    user_id: uuid.UUID = Field(
        foreign_key="users.id",
        index=True,
    )

    total_amount: Decimal = Field(
        max_digits=10,
        decimal_places=2,
    )

    # pending | paid | shipped | delivered | cancelled | refunded
    status: str = Field(
        default="pending",
        index=True,
    )

    payment_method: str | None = Field(default=None)
    external_payment_id: str | None = Field(default=None)
    tracking_number: str | None = Field(default=None)
    shipping_address: str | None = Field(default=None)
    contact_phone: str | None = Field(default=None)

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class OrderItem(SQLModel, table=True):
    """
    One product line of an order.

    price is the product's unit price at the time of ordering.
    """

    __tablename__ = "order_items"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    order_id: uuid.UUID = Field(
        foreign_key="orders.id",
        index=True,
    )

    product_id: uuid.UUID = Field(
        foreign_key="products.id",
        index=True,
    )

    quantity: int = Field(gt=0)

    price: Decimal = Field(
        max_digits=10,
        decimal_places=2,
    )

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
