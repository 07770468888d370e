# app/models/cart.py
import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import UniqueConstraint
from sqlmodel import SQLModel, Field

from app.models.user import utcnow


class CartItem(SQLModel, table=True):
    """
    A product sitting in a signed-in user's cart.

    One row per (user, product); adding the product again raises quantity.
    Guest carts never touch this table, they live in Redis.
    """

    __tablename__ = "cart_items"
    __table_args__ = (
        UniqueConstraint("user_id", "product_id", name="uq_cart_items_user_product"),
    )

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
    )

    user_id: uuid.UUID = Field(
        foreign_key="users.id",
        index=True,
    )

    product_id: uuid.UUID = Field(foreign_key="products.id")

    quantity: int = Field(gt=0)

    # catalog price and name when the line was last touched
    price: Decimal = Field(max_digits=10, decimal_places=2)
    name: str = Field(max_length=100)

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
