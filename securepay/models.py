import enum
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Enum, Integer, Numeric, String
from securepay.database import Base


# Signed 64-bit range of an INTEGER column
MIN_ID = -(2 ** 63)
MAX_ID = 2 ** 63 - 1

# Amounts are stored with cent precision
AMOUNT_DIGITS = 12
AMOUNT_PLACES = 2


def utcnow():
    return datetime.now(timezone.utc)


class PaymentStatus(str, enum.Enum):
    INITIATED = "INITIATED"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"
    REFUNDED = "REFUNDED"


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String, unique=True, index=True, nullable=False)
    password_hash = Column(String, nullable=False)             # bcrypt, never the raw password
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)


class Payment(Base):
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, index=True, nullable=False)     # not a foreign key
    amount = Column(Numeric(AMOUNT_DIGITS, AMOUNT_PLACES), nullable=False)
    currency = Column(String)
    payment_method = Column(String)
    status = Column(Enum(PaymentStatus), nullable=False)      # INITIATED | SUCCESS | FAILED | REFUNDED
    transaction_id = Column(String, unique=True, index=True)
    remarks = Column(String)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
