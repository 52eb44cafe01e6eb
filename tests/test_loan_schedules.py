from datetime import date, timedelta
from decimal import Decimal

import pytest

from loanbook.services import loan_schedules


def test_monthly_schedule_splits_evenly_and_steps_by_month():
    entries = loan_schedules.build_installments(Decimal("12000"), 12, "monthly", date(2024, 1, 1))

    assert len(entries) == 12
    assert all(entry.amount == Decimal("1000.00") for entry in entries)
    assert [entry.due_date for entry in entries] == [date(2024, month, 1) for month in range(1, 13)]
    assert all(entry.status == "pending" for entry in entries)
    assert all(entry.payment_date == entry.due_date for entry in entries)


def test_weekly_schedule_steps_seven_days():
    start = date(2024, 3, 4)
    entries = loan_schedules.build_installments(Decimal("700"), 7, "weekly", start)

    assert [entry.amount for entry in entries] == [Decimal("100.00")] * 7
    assert [entry.due_date for entry in entries] == [start + timedelta(days=7 * i) for i in range(7)]


def test_uneven_split_is_rounded_without_redistribution():
    entries = loan_schedules.build_installments(Decimal("1000"), 3, "monthly", date(2024, 1, 1))

    assert [entry.amount for entry in entries] == [Decimal("333.33")] * 3
    total = sum(entry.amount for entry in entries)
    assert abs(total - Decimal("1000")) <= Decimal("0.01") * 3


def test_rounding_half_up_to_cents():
    # 1000.05 / 2 = 500.025
    assert loan_schedules.installment_amount(Decimal("1000.05"), 2) == Decimal("500.03")


def test_month_end_start_rolls_into_next_month():
    entries = loan_schedules.build_installments(Decimal("300"), 3, "monthly", date(2024, 1, 31))

    assert [entry.due_date for entry in entries] == [
        date(2024, 1, 31),
        date(2024, 3, 2),
        date(2024, 3, 31),
    ]


def test_rollover_does_not_drift_later_due_dates():
    entries = loan_schedules.build_installments(Decimal("400"), 4, "monthly", date(2023, 1, 30))

    assert [entry.due_date for entry in entries] == [
        date(2023, 1, 30),
        date(2023, 3, 2),
        date(2023, 3, 30),
        date(2023, 4, 30),
    ]


def test_end_date_follows_rollover():
    assert loan_schedules.compute_end_date(2, "monthly", date(2024, 1, 31)) == date(2024, 3, 2)


def test_rounded_split_can_exceed_approved_amount():
    entries = loan_schedules.build_installments(Decimal("200"), 3, "monthly", date(2024, 1, 1))

    assert [entry.amount for entry in entries] == [Decimal("66.67")] * 3
    assert sum(entry.amount for entry in entries) == Decimal("200.01")


def test_single_installment_schedule():
    entries = loan_schedules.build_installments(Decimal("500"), 1, "weekly", date(2024, 5, 1))

    assert len(entries) == 1
    assert entries[0].amount == Decimal("500.00")
    assert entries[0].due_date == date(2024, 5, 1)


@pytest.mark.parametrize("duration", [0, -3])
def test_invalid_duration_is_rejected(duration):
    with pytest.raises(ValueError):
        loan_schedules.build_installments(Decimal("1000"), duration, "monthly", date(2024, 1, 1))


def test_non_positive_amount_is_rejected():
    with pytest.raises(ValueError):
        loan_schedules.build_installments(Decimal("0"), 4, "monthly", date(2024, 1, 1))


def test_unknown_payment_mode_is_rejected():
    with pytest.raises(ValueError):
        loan_schedules.build_installments(Decimal("1000"), 4, "daily", date(2024, 1, 1))


def test_end_date_matches_last_installment():
    start = date(2024, 1, 1)
    assert loan_schedules.compute_end_date(12, "monthly", start) == date(2024, 12, 1)
    assert loan_schedules.compute_end_date(7, "weekly", start) == date(2024, 2, 12)
