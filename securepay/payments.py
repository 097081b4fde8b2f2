"""
Payment engine: transaction ids, outcome resolution and refunds.

A payment is created INITIATED and resolved to SUCCESS or FAILED in the same
call. Only SUCCESS payments can move on to REFUNDED.
"""
import logging
import random
import threading
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional, Protocol, Union

from securepay.config import MAX_AMOUNT, SUCCESS_RATE, TRANSACTION_PREFIX
from securepay.ledger import PaymentLedger
from securepay.models import Payment, PaymentStatus

logger = logging.getLogger(__name__)

REMARK_SUCCESS = "Payment processed successfully"
REMARK_FAILED = "Payment failed due to insufficient funds or technical error"
REMARK_OVER_LIMIT = "Payment amount exceeds maximum allowed limit"
REMARK_REFUNDED = "Payment refunded successfully"

CENT = Decimal("0.01")


class OutcomeStrategy(Protocol):
    def decide(self, amount: Decimal) -> PaymentStatus:
        ...


class RandomOutcome:
    """SUCCESS with probability ``success_rate``, FAILED otherwise."""

    def __init__(self, success_rate: float = SUCCESS_RATE, rng: Optional[random.Random] = None):
        if not 0.0 <= success_rate <= 1.0:
            raise ValueError("success_rate must be between 0 and 1")
        self.success_rate = success_rate
        self.rng = rng or random.Random()

    def decide(self, amount: Decimal) -> PaymentStatus:
        if self.rng.random() < self.success_rate:
            return PaymentStatus.SUCCESS
        return PaymentStatus.FAILED


class FixedOutcome:
    def __init__(self, status: PaymentStatus):
        self.status = status

    def decide(self, amount: Decimal) -> PaymentStatus:
        return self.status


class MonotonicMillis:
    """Epoch milliseconds that never repeat within the process."""

    def __init__(self):
        self._last = 0
        self._lock = threading.Lock()

    def __call__(self) -> int:
        with self._lock:
            now = int(time.time() * 1000)
            if now <= self._last:
                now = self._last + 1
            self._last = now
            return now


@dataclass(frozen=True)
class Ok:
    payment: Payment


@dataclass(frozen=True)
class NotFound:
    payment_id: int


@dataclass(frozen=True)
class InvalidState:
    payment_id: int
    status: PaymentStatus


PaymentResult = Union[Ok, NotFound, InvalidState]

_default_clock = MonotonicMillis()


class PaymentEngine:
    def __init__(
        self,
        ledger: PaymentLedger,
        outcome: Optional[OutcomeStrategy] = None,
        max_amount: Decimal = MAX_AMOUNT,
        prefix: str = TRANSACTION_PREFIX,
        clock=None,
    ):
        self.ledger = ledger
        self.outcome = outcome or RandomOutcome()
        self.max_amount = Decimal(max_amount)
        self.prefix = prefix
        self.clock = clock or _default_clock

    def create(self, user_id: int, amount, currency: str, payment_method: str) -> Payment:
        # cents, so the limit check sees the value that is stored
        amount = Decimal(str(amount)).quantize(CENT)
        if amount <= 0:
            raise ValueError(f"Payment amount must be positive, got {amount}")
        logger.info("Creating payment for user ID: %s, Amount: %s %s", user_id, amount, currency)

        transaction_id = f"{self.prefix}-{user_id}-{self.clock()}"
        payment = Payment(
            user_id=user_id,
            amount=amount,
            currency=currency,
            payment_method=payment_method,
            transaction_id=transaction_id,
            status=PaymentStatus.INITIATED,
            created_at=datetime.now(timezone.utc),
        )
        logger.info("Transaction initiated with ID: %s", transaction_id)

        if amount > self.max_amount:
            payment.status = PaymentStatus.FAILED
            payment.remarks = REMARK_OVER_LIMIT
            logger.warning("Payment %s rejected: amount %s over limit %s",
                           transaction_id, amount, self.max_amount)
        elif self.outcome.decide(amount) == PaymentStatus.SUCCESS:
            payment.status = PaymentStatus.SUCCESS
            payment.remarks = REMARK_SUCCESS
            logger.info("Payment %s completed successfully", transaction_id)
        else:
            payment.status = PaymentStatus.FAILED
            payment.remarks = REMARK_FAILED
            logger.warning("Payment %s failed", transaction_id)

        saved = self.ledger.save(payment)
        logger.info("Payment saved to database with ID: %s, Status: %s", saved.id, saved.status.value)
        return saved

    def get_all(self) -> List[Payment]:
        logger.info("Retrieving all payments")
        return self.ledger.find_all()

    def get_by_id(self, payment_id: int) -> Union[Ok, NotFound]:
        logger.info("Retrieving payment with ID: %s", payment_id)
        payment = self.ledger.find_by_id(payment_id)
        if payment is None:
            logger.error("Payment not found with ID: %s", payment_id)
            return NotFound(payment_id)
        return Ok(payment)

    def get_by_user_id(self, user_id: int) -> List[Payment]:
        logger.info("Retrieving all payments for user ID: %s", user_id)
        payments = self.ledger.find_by_user_id(user_id)
        logger.info("Found %d payment(s) for user ID: %s", len(payments), user_id)
        return payments

    def refund(self, payment_id: int) -> PaymentResult:
        logger.info("Processing refund for payment ID: %s", payment_id)
        found = self.get_by_id(payment_id)
        if isinstance(found, NotFound):
            return found

        payment = found.payment
        if payment.status != PaymentStatus.SUCCESS:
            logger.error("Refund failed: Payment %s has status %s", payment_id, payment.status.value)
            return InvalidState(payment_id, payment.status)

        payment.status = PaymentStatus.REFUNDED
        payment.remarks = REMARK_REFUNDED
        refunded = self.ledger.save(payment)
        logger.info("Payment %s refunded successfully", payment_id)
        return Ok(refunded)
