# app/schemas/common.py
from sqlmodel import SQLModel


class MessageResponse(SQLModel):
    """Standard success envelope."""

    message: str


class ErrorResponse(SQLModel):
    """Standard failure envelope."""

    error: str
