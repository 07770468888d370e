# app/models/category.py
import uuid
from datetime import datetime

from sqlmodel import SQLModel, Field

from app.models.user import utcnow


class Category(SQLModel, table=True):
    """Product grouping shown in the storefront navigation."""

    __tablename__ = "categories"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    name: str = Field(
        max_length=100,
        unique=True,
        index=True,
    )

    description: str | None = Field(
        default=None,
        max_length=500,
    )

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
