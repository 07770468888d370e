# app/models/user.py
import uuid
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(SQLModel, table=True):
    """
    Persistent user identity.

    Provider:
      - "local": signed up with name/email/password (bcrypt hash stored)
      - "google": first signed in through Google OAuth, no password

    Role:
      - "user" | "admin" (admins are promoted, never self-registered)
    """

    __tablename__ = "users"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    name: str = Field(
        max_length=30,
        index=True,
        description="Public handle, unique at the application level",
    )

    email: str = Field(
        unique=True,
        index=True,
    )

    password: str | None = Field(
        default=None,
        description="bcrypt hash; NULL for OAuth-only accounts",
    )

    provider: str = Field(
        default="local",
        description="Sign-in provider: local | google",
    )

    provider_id: str | None = Field(
        default=None,
        index=True,
        description="Subject id at the OAuth provider",
    )

    phone: str | None = Field(default=None, max_length=20)
    address: str | None = Field(default=None)

    role: str = Field(
        default="user",
        index=True,
        description="Application role: user | admin",
    )

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
