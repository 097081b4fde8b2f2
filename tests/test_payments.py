import random
import re
from decimal import Decimal

import pytest

from securepay.ledger import PaymentLedger
from securepay.models import Payment, PaymentStatus
from securepay.payments import (
    REMARK_FAILED,
    REMARK_OVER_LIMIT,
    REMARK_REFUNDED,
    REMARK_SUCCESS,
    FixedOutcome,
    InvalidState,
    MonotonicMillis,
    NotFound,
    Ok,
    PaymentEngine,
    RandomOutcome,
)

TRANSACTION_ID = re.compile(r"^HD-(\d+)-(\d{13})$")


def make_engine(db, status=PaymentStatus.SUCCESS):
    return PaymentEngine(PaymentLedger(db), outcome=FixedOutcome(status))


def test_create_successful_payment(db):
    engine = make_engine(db)

    payment = engine.create(1, Decimal("100.50"), "USD", "CREDIT_CARD")

    assert payment.id is not None
    assert payment.status == PaymentStatus.SUCCESS
    assert payment.remarks == REMARK_SUCCESS
    assert payment.amount == Decimal("100.50")
    assert payment.created_at is not None
    assert TRANSACTION_ID.match(payment.transaction_id).group(1) == "1"


def test_create_failed_payment(db):
    payment = make_engine(db, PaymentStatus.FAILED).create(7, 20, "EUR", "UPI")

    assert payment.status == PaymentStatus.FAILED
    assert payment.remarks == REMARK_FAILED


def test_over_limit_always_fails(db, mocker):
    outcome = FixedOutcome(PaymentStatus.SUCCESS)
    spy = mocker.spy(outcome, "decide")
    engine = PaymentEngine(PaymentLedger(db), outcome=outcome)

    for amount in ("100000.01", "250000", "99999999.99"):
        payment = engine.create(1, Decimal(amount), "USD", "CREDIT_CARD")
        assert payment.status == PaymentStatus.FAILED
        assert payment.remarks == REMARK_OVER_LIMIT

    # the random draw is never consulted for over-limit amounts
    spy.assert_not_called()


def test_amount_at_limit_is_not_rejected(db):
    payment = make_engine(db).create(1, Decimal("100000"), "USD", "CREDIT_CARD")
    assert payment.status == PaymentStatus.SUCCESS


def test_custom_limit_and_prefix(db):
    engine = PaymentEngine(
        PaymentLedger(db),
        outcome=FixedOutcome(PaymentStatus.SUCCESS),
        max_amount=Decimal("50"),
        prefix="TX",
    )

    payment = engine.create(3, Decimal("51"), "USD", "CARD")

    assert payment.status == PaymentStatus.FAILED
    assert payment.transaction_id.startswith("TX-3-")


def test_random_outcome_converges_to_success_rate():
    outcome = RandomOutcome(rng=random.Random(1234))
    trials = 20000

    successes = sum(
        outcome.decide(Decimal("10")) == PaymentStatus.SUCCESS for _ in range(trials)
    )

    assert abs(successes / trials - 0.75) < 0.02


def test_random_outcome_extremes():
    assert RandomOutcome(success_rate=1.0).decide(Decimal("1")) == PaymentStatus.SUCCESS
    assert RandomOutcome(success_rate=0.0).decide(Decimal("1")) == PaymentStatus.FAILED


def test_random_outcome_rejects_bad_rate():
    with pytest.raises(ValueError):
        RandomOutcome(success_rate=1.5)


def test_engine_outcomes_follow_random_draw(db):
    engine = PaymentEngine(PaymentLedger(db), outcome=RandomOutcome(rng=random.Random(99)))

    statuses = {engine.create(1, Decimal("5"), "USD", "CARD").status for _ in range(40)}

    assert statuses == {PaymentStatus.SUCCESS, PaymentStatus.FAILED}


def test_monotonic_millis_never_repeats(mocker):
    mocker.patch("securepay.payments.time.time", return_value=1700000000.5)
    clock = MonotonicMillis()

    assert [clock(), clock(), clock()] == [1700000000500, 1700000000501, 1700000000502]


def test_transaction_ids_unique_for_same_user(db):
    engine = make_engine(db)

    ids = [engine.create(42, Decimal("1"), "USD", "CARD").transaction_id for _ in range(25)]

    assert len(set(ids)) == len(ids)
    assert all(TRANSACTION_ID.match(i) for i in ids)


def test_get_all_in_insertion_order(db):
    engine = make_engine(db)
    created = [engine.create(u, Decimal("10"), "USD", "CARD").id for u in (3, 1, 2)]

    assert [p.id for p in engine.get_all()] == created


def test_get_by_id(db):
    engine = make_engine(db)
    payment = engine.create(1, Decimal("10"), "USD", "CARD")

    result = engine.get_by_id(payment.id)

    assert isinstance(result, Ok)
    assert result.payment.transaction_id == payment.transaction_id


def test_get_by_id_not_found(db):
    result = make_engine(db).get_by_id(999)

    assert result == NotFound(999)


def test_get_by_user_id(db):
    engine = make_engine(db)
    engine.create(1, Decimal("10"), "USD", "CARD")
    engine.create(2, Decimal("20"), "USD", "CARD")
    engine.create(1, Decimal("30"), "USD", "CARD")

    assert [p.amount for p in engine.get_by_user_id(1)] == [Decimal("10"), Decimal("30")]
    assert engine.get_by_user_id(404) == []


def test_refund_successful_payment_once(db):
    engine = make_engine(db)
    payment = engine.create(1, Decimal("10"), "USD", "CARD")

    first = engine.refund(payment.id)
    assert isinstance(first, Ok)
    assert first.payment.status == PaymentStatus.REFUNDED
    assert first.payment.remarks == REMARK_REFUNDED

    second = engine.refund(payment.id)
    assert second == InvalidState(payment.id, PaymentStatus.REFUNDED)


def test_refund_failed_payment_is_rejected(db):
    engine = make_engine(db, PaymentStatus.FAILED)
    payment = engine.create(1, Decimal("10"), "USD", "CARD")

    result = engine.refund(payment.id)

    assert result == InvalidState(payment.id, PaymentStatus.FAILED)
    stored = db.get(Payment, payment.id)
    assert stored.status == PaymentStatus.FAILED
    assert stored.remarks == REMARK_FAILED


def test_refund_initiated_payment_is_rejected(db):
    payment = PaymentLedger(db).save(Payment(
        user_id=1, amount=Decimal("10"), currency="USD", payment_method="CARD",
        status=PaymentStatus.INITIATED, transaction_id="HD-1-1700000000000",
    ))

    result = make_engine(db).refund(payment.id)

    assert isinstance(result, InvalidState)
    assert db.get(Payment, payment.id).status == PaymentStatus.INITIATED


def test_refund_unknown_payment(db):
    assert make_engine(db).refund(12345) == NotFound(12345)


def test_amount_is_judged_at_stored_precision(db):
    engine = make_engine(db)

    payment = engine.create(1, Decimal("100000.004"), "USD", "CARD")

    assert payment.amount == Decimal("100000.00")
    assert payment.status == PaymentStatus.SUCCESS


def test_amount_rounding_to_zero_is_rejected(db):
    with pytest.raises(ValueError):
        make_engine(db).create(1, Decimal("0.001"), "USD", "CARD")

    assert db.query(Payment).count() == 0


def test_ids_outside_integer_range_are_not_found(db):
    engine = make_engine(db)

    assert engine.get_by_id(2 ** 70) == NotFound(2 ** 70)
    assert engine.refund(-(2 ** 70)) == NotFound(-(2 ** 70))
    assert engine.get_by_user_id(2 ** 63) == []
