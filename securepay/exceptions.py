"""
Error hierarchy for the payment service.

Every error carries the HTTP status it maps to; the handlers registered in
``securepay.main`` turn them into the ``{message, status, timestamp}`` envelope.
"""
import time
from typing import Any, Dict


class PaymentServiceError(Exception):
    """Base class for all business errors surfaced to API callers."""

    status_code = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class PaymentNotFoundError(PaymentServiceError):
    status_code = 404

    def __init__(self, payment_id: int):
        self.payment_id = payment_id
        super().__init__(f"Payment not found with id: {payment_id}")


class InvalidPaymentStateError(PaymentServiceError):
    """Refund requested for a payment that is not SUCCESS."""

    status_code = 409

    def __init__(self, payment_id: int, status: str):
        self.payment_id = payment_id
        self.status = status
        super().__init__(
            f"Only successful payments can be refunded (payment {payment_id} is {status})"
        )


class DuplicateUserError(PaymentServiceError):
    status_code = 409

    def __init__(self, username: str):
        self.username = username
        super().__init__(f"Username already exists: {username}")


class InvalidCredentialsError(PaymentServiceError):
    """Unknown user or wrong password. Both cases share one message."""

    status_code = 401

    def __init__(self):
        super().__init__("Invalid username or password")


class NotAuthenticatedError(PaymentServiceError):
    status_code = 401

    def __init__(self):
        super().__init__("Missing or invalid bearer token")


def error_body(message: str, status: int) -> Dict[str, Any]:
    return {
        "message": message,
        "status": status,
        "timestamp": int(time.time() * 1000),
    }
