# app/schemas/cart.py
import uuid
from decimal import Decimal

from pydantic import ConfigDict
from sqlmodel import SQLModel


class CartItemAdd(SQLModel):
    """
    Payload for putting a product in the cart.

    Quantity bounds (1..1000) are checked by the service.
    """

    model_config = ConfigDict(extra="forbid")

    product_id: uuid.UUID
    quantity: int


class CartItemUpdate(SQLModel):
    model_config = ConfigDict(extra="forbid")

    quantity: int


class CartLine(SQLModel):
    """One cart line as stored for guests and returned to clients."""

    product_id: uuid.UUID
    name: str
    quantity: int
    price: Decimal


class CartItemRead(CartLine):
    line_total: Decimal


class CartSummary(SQLModel):
    """Whole cart with totals, computed from the stored line prices."""

    items: list[CartItemRead]
    total_quantity: int
    total_price: Decimal


class CheckoutResult(SQLModel):
    message: str
    order_id: str
