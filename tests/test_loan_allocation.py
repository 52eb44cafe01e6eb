from datetime import date
from decimal import Decimal
from types import SimpleNamespace

from loanbook.services import loan_schedules
from loanbook.services.loan_repayments import allocate_installments


def _schedule(amount="12000", duration=12):
    return loan_schedules.build_installments(Decimal(amount), duration, "monthly", date(2024, 1, 1))


def test_single_installment_payment_marks_first_paid():
    statuses = allocate_installments(Decimal("1000"), _schedule())

    assert statuses[0] == "paid"
    assert statuses[1:] == ["pending"] * 11


def test_full_payment_marks_everything_paid():
    assert allocate_installments(Decimal("12000"), _schedule()) == ["paid"] * 12


def test_partial_coverage_marks_one_partial():
    statuses = allocate_installments(Decimal("1500"), _schedule())

    assert statuses[:3] == ["paid", "partial", "pending"]


def test_zero_paid_leaves_schedule_pending():
    assert allocate_installments(Decimal("0"), _schedule(duration=3, amount="300")) == ["pending"] * 3


def test_overpayment_marks_everything_paid():
    assert allocate_installments(Decimal("99999"), _schedule(duration=3, amount="300")) == ["paid"] * 3


def test_allocation_depends_only_on_cumulative_total():
    schedule = _schedule()
    after_two_payments = allocate_installments(Decimal("1000") + Decimal("1000"), schedule)

    assert after_two_payments[:3] == ["paid", "paid", "pending"]
    assert allocate_installments(Decimal("2000"), schedule) == after_two_payments


def test_rounded_schedule_is_fully_paid_by_approved_amount():
    schedule = _schedule(amount="1000", duration=3)

    assert allocate_installments(Decimal("1000"), schedule) == ["paid"] * 3


def test_accepts_orm_like_rows():
    rows = [SimpleNamespace(amount="250.00"), SimpleNamespace(amount=Decimal("250.00"))]

    assert allocate_installments(Decimal("300"), rows) == ["paid", "partial"]
