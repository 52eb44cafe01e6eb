from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal, ROUND_HALF_UP

from loanbook.schemas.loan import InstallmentStatus, PaymentMode


TWOPLACES = Decimal("0.01")


@dataclass(frozen=True)
class ScheduledInstallment:
    amount: Decimal
    due_date: date
    payment_date: date
    status: str = InstallmentStatus.PENDING.value


def _as_decimal(value) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def _add_months(start: date, months: int) -> date:
    """Same day-of-month ``months`` later; days past the month's end spill into the next month."""
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    return date(year, month, 1) + timedelta(days=start.day - 1)


def _due_date(start_date: date, index: int, payment_mode: PaymentMode) -> date:
    if payment_mode == PaymentMode.WEEKLY:
        return start_date + timedelta(days=7 * index)
    return _add_months(start_date, index)


def installment_amount(approved_amount, duration: int) -> Decimal:
    """Equal split rounded to cents; the remainder is not redistributed."""
    if duration < 1:
        raise ValueError("loan_duration must be >= 1")
    amount = _as_decimal(approved_amount)
    if amount <= 0:
        raise ValueError("approved_amount must be positive")
    return (amount / Decimal(duration)).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def build_installments(
    approved_amount,
    duration: int,
    payment_mode: PaymentMode | str,
    start_date: date,
) -> list[ScheduledInstallment]:
    mode = PaymentMode(payment_mode)
    per_installment = installment_amount(approved_amount, duration)
    entries: list[ScheduledInstallment] = []
    for index in range(duration):
        due = _due_date(start_date, index, mode)
        entries.append(ScheduledInstallment(amount=per_installment, due_date=due, payment_date=due))
    return entries


def compute_end_date(duration: int, payment_mode: PaymentMode | str, start_date: date) -> date:
    if duration < 1:
        raise ValueError("loan_duration must be >= 1")
    return _due_date(start_date, duration - 1, PaymentMode(payment_mode))
