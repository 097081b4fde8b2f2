from datetime import datetime, timezone
from decimal import Decimal
from typing import Annotated, Any

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from securepay.models import AMOUNT_DIGITS, AMOUNT_PLACES, MAX_ID, MIN_ID, PaymentStatus


def as_utc(value: datetime) -> datetime:
    # SQLite hands timestamps back without their offset; they are written in UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


UtcDatetime = Annotated[datetime, AfterValidator(as_utc)]


class CamelModel(BaseModel):
    # JSON uses userId / paymentMethod / transactionId / createdAt
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class UserCredentials(CamelModel):
    username: str = Field(..., min_length=1, examples=["user1"])
    password: str = Field(..., min_length=1, examples=["pass123"])


class UserRead(CamelModel):
    id: int
    username: str
    created_at: UtcDatetime


class PaymentCreate(CamelModel):
    user_id: int = Field(..., ge=MIN_ID, le=MAX_ID, examples=[1])
    amount: Decimal = Field(
        ..., gt=0, max_digits=AMOUNT_DIGITS, decimal_places=AMOUNT_PLACES, examples=["100.50"])
    currency: str = Field(..., min_length=1, examples=["USD"])
    payment_method: str = Field(..., min_length=1, examples=["CREDIT_CARD"])


class PaymentRead(CamelModel):
    id: int
    user_id: int
    amount: float
    currency: str
    payment_method: str
    status: PaymentStatus
    transaction_id: str
    remarks: str
    created_at: UtcDatetime

    @field_validator("amount", mode="before")
    @classmethod
    def amount_as_float(cls, v: Any) -> float:
        if isinstance(v, Decimal):
            return float(v)
        return v


class ErrorResponse(BaseModel):
    message: str
    status: int
    timestamp: int
