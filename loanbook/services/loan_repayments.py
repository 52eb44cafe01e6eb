from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import Sequence

from sqlalchemy import func, select
from sqlalchemy.orm import selectinload
from sqlalchemy.ext.asyncio import AsyncSession

from loanbook.db.session import transaction
from loanbook.models.loan import Loan
from loanbook.models.loan_payment import LoanPayment
from loanbook.models.loan_repayment import LoanRepayment
from loanbook.schemas.loan import (
    InstallmentStatus,
    LoanPhase,
    LoanRepaymentCreateRequest,
    LoanStatus,
)
from loanbook.services.audit import model_snapshot, record_audit_log
from loanbook.services.loan_errors import LoanNotFound, PhaseViolation


TWOPLACES = Decimal("0.01")
ZERO = Decimal("0.00")

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RepaymentResult:
    amount: Decimal
    payment_date: date
    remaining_balance: Decimal
    total_paid: Decimal
    next_due_amount: Decimal


@dataclass(frozen=True)
class LoanBalance:
    total_amount: Decimal
    total_paid: Decimal
    remaining_balance: Decimal
    next_due_amount: Decimal


def _as_decimal(value) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def _money(value) -> Decimal:
    return _as_decimal(value).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def allocate_installments(total_paid, installments: Sequence) -> list[str]:
    """Statuses for ``installments`` (oldest due first) once ``total_paid`` is spread over them.

    Every call starts from zero, so the result depends only on the cumulative
    total and never on earlier allocations.
    """
    remaining = _as_decimal(total_paid)
    statuses: list[str] = []
    for installment in installments:
        amount = _as_decimal(installment.amount)
        if remaining >= amount:
            statuses.append(InstallmentStatus.PAID.value)
            remaining -= amount
        elif remaining > 0:
            statuses.append(InstallmentStatus.PARTIAL.value)
            remaining = ZERO
        else:
            statuses.append(InstallmentStatus.PENDING.value)
    return statuses


def _pending_total(installments: Sequence, statuses: Sequence[str]) -> Decimal:
    total = ZERO
    for installment, status in zip(installments, statuses):
        if status == InstallmentStatus.PENDING.value:
            total += _as_decimal(installment.amount)
    return _money(total)


async def _sum_payments(db: AsyncSession, loan_id: int) -> Decimal:
    stmt = select(func.coalesce(func.sum(LoanPayment.amount), 0).label("total_paid")).where(
        LoanPayment.loan_id == loan_id
    )
    return _money((await db.execute(stmt)).scalar_one())


async def _load_installments(db: AsyncSession, loan_id: int) -> list[LoanRepayment]:
    stmt = (
        select(LoanRepayment)
        .where(LoanRepayment.loan_id == loan_id)
        .order_by(LoanRepayment.due_date.asc(), LoanRepayment.id.asc())
    )
    return list((await db.execute(stmt)).scalars().all())


async def _get_loan(db: AsyncSession, loan_id: int, *, for_update: bool = False) -> Loan:
    stmt = select(Loan).where(Loan.id == loan_id)
    if for_update:
        stmt = stmt.with_for_update()
    loan = (await db.execute(stmt)).scalar_one_or_none()
    if loan is None:
        raise LoanNotFound(message="Loan not found", details={"loan_id": loan_id})
    return loan


async def record_repayment(
    db: AsyncSession,
    loan_id: int,
    payload: LoanRepaymentCreateRequest,
    *,
    actor_id,
) -> RepaymentResult:
    amount = _money(payload.amount)
    if amount <= 0:
        raise ValueError("amount must be positive")

    async with transaction(db):
        # Row lock keeps concurrent payments on one loan from walking a stale total.
        loan = await _get_loan(db, loan_id, for_update=True)
        if loan.phase < LoanPhase.APPROVAL or loan.approved_amount is None:
            raise PhaseViolation(
                message="Loan has not been approved",
                details={"loan_id": loan_id, "phase": loan.phase},
            )

        payment = LoanPayment(
            loan_id=loan.id,
            amount=amount,
            payment_date=payload.payment_date,
            received_by=actor_id,
            notes=payload.notes or None,
        )
        db.add(payment)
        await db.flush()

        total_paid = await _sum_payments(db, loan.id)
        approved = _money(loan.approved_amount)
        outstanding = approved - total_paid
        remaining_balance = max(ZERO, outstanding)
        if outstanding < 0:
            logger.warning(
                "Loan overpaid by %s",
                -outstanding,
                extra={"loan_id": loan.id},
            )

        installments = await _load_installments(db, loan.id)
        statuses = allocate_installments(total_paid, installments)
        for installment, status in zip(installments, statuses):
            if installment.status == status:
                continue
            installment.status = status
            if status == InstallmentStatus.PENDING.value:
                installment.payment_date = installment.due_date
            else:
                installment.payment_date = payload.payment_date
            db.add(installment)

        if outstanding <= 0 and loan.status != LoanStatus.COMPLETED.value:
            old_snapshot = model_snapshot(loan)
            loan.status = LoanStatus.COMPLETED.value
            db.add(loan)
            record_audit_log(
                db,
                actor_id=actor_id,
                action="loan.completed",
                resource_type="loan",
                resource_id=loan.id,
                old_value=old_snapshot,
                new_value=model_snapshot(loan),
            )

        record_audit_log(
            db,
            actor_id=actor_id,
            action="loan_payment.recorded",
            resource_type="loan_payment",
            resource_id=payment.id,
            new_value=model_snapshot(payment),
        )
        next_due_amount = _pending_total(installments, statuses)

    logger.info(
        "Repayment of %s recorded, remaining %s",
        amount,
        remaining_balance,
        extra={"loan_id": loan_id},
    )
    return RepaymentResult(
        amount=amount,
        payment_date=payload.payment_date,
        remaining_balance=remaining_balance,
        total_paid=total_paid,
        next_due_amount=next_due_amount,
    )


async def get_loan_balance(db: AsyncSession, loan_id: int) -> LoanBalance:
    loan = await _get_loan(db, loan_id)
    total_amount = _money(loan.approved_amount) if loan.approved_amount is not None else ZERO
    total_paid = await _sum_payments(db, loan.id)
    next_due_stmt = select(func.coalesce(func.sum(LoanRepayment.amount), 0).label("next_due")).where(
        LoanRepayment.loan_id == loan.id,
        LoanRepayment.status == InstallmentStatus.PENDING.value,
    )
    next_due_amount = _money((await db.execute(next_due_stmt)).scalar_one())
    return LoanBalance(
        total_amount=total_amount,
        total_paid=total_paid,
        remaining_balance=max(ZERO, total_amount - total_paid),
        next_due_amount=next_due_amount,
    )


async def list_installments(db: AsyncSession, loan_id: int) -> list[LoanRepayment]:
    await _get_loan(db, loan_id)
    return await _load_installments(db, loan_id)


async def list_payments(db: AsyncSession, loan_id: int) -> list[LoanPayment]:
    await _get_loan(db, loan_id)
    stmt = (
        select(LoanPayment)
        .options(selectinload(LoanPayment.received_by_user))
        .where(LoanPayment.loan_id == loan_id)
        .order_by(LoanPayment.payment_date.desc(), LoanPayment.created_at.desc())
    )
    return list((await db.execute(stmt)).scalars().all())
