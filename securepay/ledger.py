from typing import List, Optional

from sqlalchemy.orm import Session

from securepay.models import MAX_ID, MIN_ID, Payment


def _storable(value: int) -> bool:
    return MIN_ID <= value <= MAX_ID


class PaymentLedger:
    """Keyed store of payment records. Each save is its own commit."""

    def __init__(self, db: Session):
        self.db = db

    def save(self, payment: Payment) -> Payment:
        self.db.add(payment)
        self.db.commit()
        self.db.refresh(payment)
        return payment

    def find_by_id(self, payment_id: int) -> Optional[Payment]:
        # ids outside the INTEGER range cannot exist
        if not _storable(payment_id):
            return None
        return self.db.get(Payment, payment_id)

    def find_all(self) -> List[Payment]:
        return self.db.query(Payment).order_by(Payment.id).all()

    def find_by_user_id(self, user_id: int) -> List[Payment]:
        if not _storable(user_id):
            return []
        return self.db.query(Payment).filter_by(user_id=user_id).order_by(Payment.id).all()
