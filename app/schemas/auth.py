# app/schemas/auth.py
from pydantic import ConfigDict, field_validator
from sqlmodel import SQLModel


class SignUpRequest(SQLModel):
    """
    Local sign-up payload.

    Name/email format and password length are checked by the auth
    validation helpers so they map to `invalid_request`.
    """

    model_config = ConfigDict(extra="forbid")

    name: str
    email: str
    password: str

    @field_validator("name", "email")
    @classmethod
    def strip_text(cls, v: str) -> str:
        return v.strip()


class SignInRequest(SQLModel):
    model_config = ConfigDict(extra="forbid")

    email: str
    password: str

    @field_validator("email")
    @classmethod
    def strip_email(cls, v: str) -> str:
        return v.strip()
