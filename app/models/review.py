# app/models/review.py
import uuid
from datetime import datetime

from sqlalchemy import JSON, Column
from sqlmodel import SQLModel, Field

from app.models.user import utcnow


class Review(SQLModel, table=True):
    """
    A user's rating and comment on a product.

    has_media mirrors `bool(media_urls)` so listings can filter on it
    without inspecting the JSON column.
    """

    __tablename__ = "reviews"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
    )

    user_id: uuid.UUID = Field(
        foreign_key="users.id",
        index=True,
    )

    product_id: uuid.UUID = Field(
        foreign_key="products.id",
        index=True,
    )

    # 1..5
    rating: int = Field(index=True)
    comment: str

    media_urls: list[str] = Field(
        default_factory=list,
        sa_column=Column(JSON, nullable=False),
    )
    has_media: bool = Field(default=False)

    created_at: datetime = Field(default_factory=utcnow, index=True)
    updated_at: datetime = Field(default_factory=utcnow)
