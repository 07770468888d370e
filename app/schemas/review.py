# app/schemas/review.py
import uuid
from datetime import datetime

from pydantic import ConfigDict, field_validator
from sqlmodel import SQLModel


class ReviewUpdate(SQLModel):
    """
    Editable part of a review.

    rating must be 1..5 and comment non-empty; the service checks both
    so the client gets a precise message.
    """

    model_config = ConfigDict(extra="forbid")

    rating: int = 0
    comment: str = ""
    media_urls: list[str] = []

    @field_validator("comment")
    @classmethod
    def strip_comment(cls, v: str) -> str:
        return v.strip()

    @field_validator("media_urls")
    @classmethod
    def drop_blank_urls(cls, v: list[str]) -> list[str]:
        return [url.strip() for url in v if url.strip()]


class ReviewCreate(ReviewUpdate):
    product_id: uuid.UUID | None = None


class ReviewFilter(SQLModel):
    """
    Listing criteria. Ratings outside 1..5 are ignored, and so is an
    unknown sort key (newest first is used instead).
    """

    rating: int | None = None
    min_rating: int | None = None
    max_rating: int | None = None
    date_from: datetime | None = None
    date_to: datetime | None = None
    has_media: bool | None = None
    sort: str | None = None


class ReviewRead(SQLModel):
    id: uuid.UUID
    user_id: uuid.UUID
    product_id: uuid.UUID
    rating: int
    comment: str
    media_urls: list[str]
    created_at: datetime
    updated_at: datetime


class ReviewPage(SQLModel):
    data: list[ReviewRead]
    total_count: int
    page: int
    page_size: int
    total_pages: int
    has_next: bool
    has_prev: bool


class ReviewCreated(SQLModel):
    message: str
    review_id: str
