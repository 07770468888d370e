# app/schemas/payment.py
import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import ConfigDict
from sqlmodel import SQLModel


class CreatePaymentRequest(SQLModel):
    model_config = ConfigDict(extra="forbid")

    order_id: uuid.UUID | None = None
    currency: str = ""


class CreatePaymentResponse(SQLModel):
    payment_id: str
    client_secret: str


class ConfirmPaymentRequest(SQLModel):
    model_config = ConfigDict(extra="forbid")

    order_id: uuid.UUID


class ConfirmPaymentResponse(SQLModel):
    status: str


class PaymentRead(SQLModel):
    id: uuid.UUID
    order_id: uuid.UUID
    user_id: uuid.UUID
    amount: Decimal
    currency: str
    status: str
    provider: str
    provider_payment_id: str | None
    created_at: datetime
    updated_at: datetime
