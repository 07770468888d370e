# app/schemas/category.py
import uuid
from datetime import datetime

from pydantic import ConfigDict, field_validator
from sqlmodel import SQLModel


class CategoryCreate(SQLModel):
    """
    Payload for creating a category.

    Length bounds (name <= 100, description <= 500) are enforced by the
    service so they surface as `invalid_request`.
    """

    model_config = ConfigDict(extra="forbid")

    name: str = ""
    description: str | None = None

    @field_validator("name", "description")
    @classmethod
    def strip_text(cls, v: str | None) -> str | None:
        if v is None:
            return v
        return v.strip()


class CategoryUpdate(CategoryCreate):
    """Full replacement of name/description; the id travels in the body."""

    id: uuid.UUID | None = None


class CategoryRead(SQLModel):
    id: uuid.UUID
    name: str
    description: str | None
    created_at: datetime
    updated_at: datetime


class CategoryCreated(SQLModel):
    message: str
    category_id: str
