# app/schemas/user.py
import uuid
from typing import Literal

from pydantic import ConfigDict, field_validator
from sqlmodel import SQLModel, Field

# App-level roles. Anonymous callers have no row.
Role = Literal["user", "admin"]


class UserRead(SQLModel):
    """Profile returned to the authenticated user."""

    id: uuid.UUID
    name: str
    email: str
    phone: str | None = None
    address: str | None = None


class UserUpdate(SQLModel):
    """
    Profile update for authenticated users.

    Validation rules:
      - name/email are optional; when given they are re-validated by the
        service with the same rules as sign-up
      - phone up to 20 characters
    """

    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(default=None, max_length=30)
    email: str | None = None
    phone: str | None = Field(default=None, max_length=20)
    address: str | None = None

    @field_validator("name", "email", "phone", "address")
    @classmethod
    def normalize(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        return v or None


class PromoteUserRequest(SQLModel):
    """
    Admin-only promotion payload.
    """

    model_config = ConfigDict(extra="forbid")

    user_id: uuid.UUID
