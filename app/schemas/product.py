# app/schemas/product.py
import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import ConfigDict, field_validator
from sqlmodel import SQLModel


class ProductCreate(SQLModel):
    """
    Payload for creating a product.

    Required (checked by the service, `invalid_request` otherwise):
      - category_id
      - name
      - price > 0
      - stock >= 0

    is_active defaults to True when omitted.
    """

    model_config = ConfigDict(extra="forbid")

    category_id: uuid.UUID | None = None
    name: str = ""
    description: str | None = None
    price: Decimal | None = None
    stock: int = 0
    image_url: str | None = None
    is_active: bool | None = None

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        return v.strip()


class ProductUpdate(ProductCreate):
    """
    Full update payload; the target id travels in the body.
    """

    id: uuid.UUID | None = None


class ProductFilter(SQLModel):
    """
    Optional narrowing criteria for product search.
    Every field left as None is ignored.
    """

    model_config = ConfigDict(extra="forbid")

    category_id: uuid.UUID | None = None
    is_active: bool | None = None
    min_price: Decimal | None = None
    max_price: Decimal | None = None


class ProductRead(SQLModel):
    """
    Product representation for clients.

    price serialises as a decimal string, e.g. "19.99".
    """

    id: uuid.UUID
    category_id: uuid.UUID | None
    name: str
    description: str | None
    price: Decimal
    stock: int
    image_url: str | None
    is_active: bool
    created_at: datetime
    updated_at: datetime


class ProductCreated(SQLModel):
    message: str
    product_id: str
