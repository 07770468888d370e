# app/schemas/order.py
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Literal

from pydantic import ConfigDict, field_validator
from sqlmodel import SQLModel, Field

OrderStatus = Literal["pending", "paid", "shipped", "delivered", "cancelled", "refunded"]


class OrderItemInput(SQLModel):
    """
    One requested line. The unit price is read from the product row,
    not from the client.
    """

    model_config = ConfigDict(extra="forbid")

    product_id: uuid.UUID
    quantity: int = Field(gt=0, le=2_147_483_647)


class OrderCreate(SQLModel):
    """
    Payload for creating an order.

    Filled in server side:
      - user_id from the access token
      - status, always "pending" at creation
      - total_amount, summed from current unit prices
    """

    model_config = ConfigDict(extra="forbid")

    items: list[OrderItemInput] = []
    payment_method: str | None = None
    shipping_address: str | None = None
    contact_phone: str | None = None
    external_payment_id: str | None = None
    tracking_number: str | None = None

    @field_validator(
        "payment_method",
        "shipping_address",
        "contact_phone",
        "external_payment_id",
        "tracking_number",
    )
    @classmethod
    def normalize(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        return v or None


class OrderItemRead(SQLModel):
    id: uuid.UUID
    product_id: uuid.UUID
    quantity: int
    price: Decimal


class OrderRead(SQLModel):
    """
    Order header as returned by listings. Lines are not loaded.
    """

    id: uuid.UUID
    user_id: uuid.UUID
    total_amount: Decimal
    status: str
    payment_method: str | None
    external_payment_id: str | None
    tracking_number: str | None
    shipping_address: str | None
    contact_phone: str | None
    created_at: datetime
    updated_at: datetime


class OrderWithItemsRead(OrderRead):
    """
    Order header plus its lines.
    """

    items: list[OrderItemRead]


class OrderCreated(SQLModel):
    message: str
    order_id: str


class OrderStatusUpdate(SQLModel):
    """
    Admin payload to change order status. Checked against the allowed
    set by the service.
    """

    model_config = ConfigDict(extra="forbid")

    status: str
