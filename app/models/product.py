# app/models/product.py
import uuid
from datetime import datetime
from decimal import Decimal

from sqlmodel import SQLModel, Field

from app.models.user import utcnow


class Product(SQLModel, table=True):
    """
    Product catalog entry.

    Visibility:
      - is_active=False hides the product from non-admin listings
    """

    __tablename__ = "products"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    category_id: uuid.UUID | None = Field(
        default=None,
        foreign_key="categories.id",
        index=True,
    )

    name: str = Field(
        max_length=100,
        index=True,
    )

    description: str | None = Field(default=None)

    price: Decimal = Field(
        max_digits=10,
        decimal_places=2,
        description="Unit price, two decimal places",
    )

    stock: int = Field(
        default=0,
        ge=0,
        description="Units currently in stock",
    )

    image_url: str | None = Field(default=None)

    is_active: bool = Field(
        default=True,
        index=True,
        description="Whether this product is visible on the storefront",
    )

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
