from __future__ import annotations

import logging
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from loanbook.db.session import transaction
from loanbook.models.client import BusinessLocation, Client, ClientWitness, Residence
from loanbook.models.loan import Loan
from loanbook.models.loan_repayment import LoanRepayment
from loanbook.schemas.loan import (
    LoanApproveRequest,
    LoanCaptureRequest,
    LoanDisburseRequest,
    LoanEditRequest,
    LoanPhase,
    LoanRegisterRequest,
    LoanStatus,
)
from loanbook.services import loan_schedules
from loanbook.services.audit import model_snapshot, record_audit_log
from loanbook.services.loan_errors import phase_violation
from loanbook.services.notifications import (
    LOAN_APPROVED,
    LOAN_DISBURSED,
    LoanEvent,
    NotificationDispatcher,
)


TWOPLACES = Decimal("0.01")

EARLY_PHASES = (LoanPhase.REGISTRATION.value, LoanPhase.CAPTURING.value)
EARLY_WINDOW = "registration/capturing"

CAPTURE_FIELDS = (
    "dob",
    "marital_status",
    "profile_image",
    "occupation",
    "id_type",
    "id_number",
    "id_front_image",
    "id_back_image",
)
EDIT_REQUIRED_FIELDS = ("fullname", "contact", "location")
EDIT_NULLABLE_FIELDS = ("email", "landmark", "business")

logger = logging.getLogger(__name__)


def _money(value) -> Decimal:
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def _now() -> datetime:
    return datetime.now(timezone.utc)


async def _get_loan_in_phases(
    db: AsyncSession,
    loan_id: int,
    phases: Iterable[int],
    window: str,
) -> Loan:
    stmt = select(Loan).where(Loan.id == loan_id, Loan.phase.in_(list(phases)))
    loan = (await db.execute(stmt)).scalar_one_or_none()
    if loan is None:
        raise phase_violation(loan_id, window)
    return loan


async def _get_client(db: AsyncSession, client_id: int) -> Client:
    stmt = select(Client).where(Client.id == client_id)
    return (await db.execute(stmt)).scalar_one()


async def _guarded_update(db: AsyncSession, loan_id: int, phase_clause, values: dict) -> int:
    stmt = update(Loan).where(Loan.id == loan_id, phase_clause).values(**values)
    result = await db.execute(stmt)
    return result.rowcount


def _previous_values(loan: Loan, values: dict) -> dict:
    return {key: getattr(loan, key, None) for key in values}


async def _notify(notifier: NotificationDispatcher | None, event: LoanEvent) -> None:
    if notifier is None:
        return
    await notifier.dispatch(event)


async def register_loan(
    db: AsyncSession,
    payload: LoanRegisterRequest,
    *,
    actor_id,
) -> tuple[Client, Loan]:
    async with transaction(db):
        client = Client(
            fullname=payload.fullname,
            contact=payload.contact,
            email=payload.email,
            location=payload.location,
            landmark=payload.landmark,
            business=payload.business,
            created_by=actor_id,
        )
        db.add(client)
        await db.flush()

        loan = Loan(
            client_id=client.id,
            requested_amount=_money(payload.requested_amount),
            status=LoanStatus.REGISTERED.value,
            phase=LoanPhase.REGISTRATION.value,
            registered_by=actor_id,
            registration_date=_now(),
        )
        db.add(loan)
        await db.flush()
        record_audit_log(
            db,
            actor_id=actor_id,
            action="loan.registered",
            resource_type="loan",
            resource_id=loan.id,
            new_value=model_snapshot(loan),
        )

    await db.refresh(client)
    await db.refresh(loan)
    logger.info("Loan registered for client %s", client.id, extra={"loan_id": loan.id})
    return client, loan


async def _replace_children(db: AsyncSession, model, client_id: int, items) -> None:
    await db.execute(delete(model).where(model.client_id == client_id))
    db.add_all([model(client_id=client_id, **item.model_dump()) for item in items])


async def capture_loan_details(
    db: AsyncSession,
    loan_id: int,
    payload: LoanCaptureRequest,
    *,
    actor_id,
) -> Loan:
    """Write KYC details and move the loan into the capturing phase.

    Re-capturing a phase 2 loan overwrites the supplied fields and leaves the
    phase marker alone.
    """
    async with transaction(db):
        loan = await _get_loan_in_phases(db, loan_id, EARLY_PHASES, EARLY_WINDOW)
        client = await _get_client(db, loan.client_id)

        old_client = model_snapshot(client)
        for name in CAPTURE_FIELDS:
            value = getattr(payload, name)
            if value:
                setattr(client, name, value)
        db.add(client)

        if payload.witnesses:
            await _replace_children(db, ClientWitness, client.id, payload.witnesses)
        if payload.business_locations:
            await _replace_children(db, BusinessLocation, client.id, payload.business_locations)
        if payload.residences:
            await _replace_children(db, Residence, client.id, payload.residences)

        values = {
            "phase": LoanPhase.CAPTURING.value,
            "status": LoanStatus.CAPTURED.value,
            "captured_by": actor_id,
            "capturing_date": _now(),
        }
        advanced = await _guarded_update(db, loan_id, Loan.phase < LoanPhase.CAPTURING.value, values)
        if not advanced:
            # A concurrent capture already set the marker; our field writes still land.
            logger.info("Capture left phase marker unchanged", extra={"loan_id": loan_id})

        record_audit_log(
            db,
            actor_id=actor_id,
            action="loan.captured",
            resource_type="loan",
            resource_id=loan_id,
            old_value={"client": old_client},
            new_value={"client": model_snapshot(client), "phase_advanced": bool(advanced)},
        )

    logger.info("Loan details captured", extra={"loan_id": loan_id})
    return loan


async def _materialize_schedule(db: AsyncSession, loan_id: int, terms: LoanApproveRequest) -> list[LoanRepayment]:
    entries = loan_schedules.build_installments(
        terms.approved_amount,
        terms.loan_duration,
        terms.payment_mode,
        terms.payment_start_date,
    )
    rows = [
        LoanRepayment(
            loan_id=loan_id,
            amount=entry.amount,
            due_date=entry.due_date,
            payment_date=entry.payment_date,
            status=entry.status,
        )
        for entry in entries
    ]
    db.add_all(rows)
    return rows


async def approve_loan(
    db: AsyncSession,
    loan_id: int,
    terms: LoanApproveRequest,
    *,
    actor_id,
    notifier: NotificationDispatcher | None = None,
) -> Loan:
    end_date = terms.payment_end_date or loan_schedules.compute_end_date(
        terms.loan_duration, terms.payment_mode, terms.payment_start_date
    )
    async with transaction(db):
        loan = await _get_loan_in_phases(db, loan_id, (LoanPhase.CAPTURING.value,), "capturing")
        values = {
            "phase": LoanPhase.APPROVAL.value,
            "status": LoanStatus.APPROVED.value,
            "approved_amount": _money(terms.approved_amount),
            "loan_duration": terms.loan_duration,
            "payment_mode": terms.payment_mode,
            "processing_fee": _money(terms.processing_fee),
            "interest_rate": terms.interest_rate,
            "payment_schedule_start": terms.payment_start_date,
            "payment_start_date": terms.payment_start_date,
            "payment_end_date": end_date,
            "approved_by": actor_id,
            "approval_date": _now(),
        }
        old_values = _previous_values(loan, values)
        if not await _guarded_update(db, loan_id, Loan.phase == LoanPhase.CAPTURING.value, values):
            raise phase_violation(loan_id, "capturing")

        installments = await _materialize_schedule(db, loan_id, terms)
        record_audit_log(
            db,
            actor_id=actor_id,
            action="loan.approved",
            resource_type="loan",
            resource_id=loan_id,
            old_value=old_values,
            new_value={**values, "installments": len(installments)},
        )

    logger.info(
        "Loan approved with %s %s installments",
        len(installments),
        terms.payment_mode,
        extra={"loan_id": loan_id},
    )
    await _notify(
        notifier,
        LoanEvent(
            event=LOAN_APPROVED,
            loan_id=loan_id,
            actor_id=actor_id,
            payload={
                "approved_amount": str(values["approved_amount"]),
                "loan_duration": terms.loan_duration,
                "payment_mode": terms.payment_mode,
            },
        ),
    )
    return loan


async def disburse_loan(
    db: AsyncSession,
    loan_id: int,
    payload: LoanDisburseRequest,
    *,
    actor_id,
    notifier: NotificationDispatcher | None = None,
) -> Loan:
    async with transaction(db):
        loan = await _get_loan_in_phases(db, loan_id, (LoanPhase.APPROVAL.value,), "approval")
        values = {
            "phase": LoanPhase.DISBURSEMENT.value,
            "status": LoanStatus.ACTIVE.value,
            "disbursed_by": actor_id,
            "disbursement_date": _now(),
            "disbursement_method": payload.disbursement_method,
            "disbursement_notes": payload.disbursement_notes,
        }
        old_values = _previous_values(loan, values)
        if not await _guarded_update(db, loan_id, Loan.phase == LoanPhase.APPROVAL.value, values):
            raise phase_violation(loan_id, "approval")
        record_audit_log(
            db,
            actor_id=actor_id,
            action="loan.disbursed",
            resource_type="loan",
            resource_id=loan_id,
            old_value=old_values,
            new_value=values,
        )

    logger.info("Loan disbursed via %s", payload.disbursement_method, extra={"loan_id": loan_id})
    await _notify(
        notifier,
        LoanEvent(
            event=LOAN_DISBURSED,
            loan_id=loan_id,
            actor_id=actor_id,
            payload={"disbursement_method": payload.disbursement_method},
        ),
    )
    return loan


async def edit_loan(
    db: AsyncSession,
    loan_id: int,
    patch: LoanEditRequest,
    *,
    actor_id,
) -> Loan:
    supplied = patch.model_fields_set
    async with transaction(db):
        loan = await _get_loan_in_phases(db, loan_id, EARLY_PHASES, EARLY_WINDOW)
        client = await _get_client(db, loan.client_id)

        old_client = model_snapshot(client)
        for name in EDIT_REQUIRED_FIELDS:
            value = getattr(patch, name)
            if name in supplied and value is not None:
                setattr(client, name, value)
        for name in EDIT_NULLABLE_FIELDS:
            if name in supplied:
                setattr(client, name, getattr(patch, name))
        db.add(client)

        old_amount = loan.requested_amount
        if "requested_amount" in supplied and patch.requested_amount is not None:
            amount = _money(patch.requested_amount)
            if not await _guarded_update(
                db, loan_id, Loan.phase.in_(EARLY_PHASES), {"requested_amount": amount}
            ):
                raise phase_violation(loan_id, EARLY_WINDOW)
        else:
            amount = old_amount

        record_audit_log(
            db,
            actor_id=actor_id,
            action="loan.updated",
            resource_type="loan",
            resource_id=loan_id,
            old_value={"client": old_client, "requested_amount": old_amount},
            new_value={"client": model_snapshot(client), "requested_amount": amount},
        )

    logger.info("Loan edited: %s", ", ".join(sorted(supplied)) or "no fields", extra={"loan_id": loan_id})
    return loan


async def delete_loan(db: AsyncSession, loan_id: int, *, actor_id) -> None:
    async with transaction(db):
        loan = await _get_loan_in_phases(db, loan_id, EARLY_PHASES, EARLY_WINDOW)
        client_id = loan.client_id
        snapshot = model_snapshot(loan)

        for model in (ClientWitness, BusinessLocation, Residence):
            await db.execute(delete(model).where(model.client_id == client_id))
        result = await db.execute(
            delete(Loan).where(Loan.id == loan_id, Loan.phase.in_(EARLY_PHASES))
        )
        if not result.rowcount:
            raise phase_violation(loan_id, EARLY_WINDOW)
        await db.execute(delete(Client).where(Client.id == client_id))

        record_audit_log(
            db,
            actor_id=actor_id,
            action="loan.deleted",
            resource_type="loan",
            resource_id=loan_id,
            old_value=snapshot,
        )

    logger.info("Loan and client %s deleted", client_id, extra={"loan_id": loan_id})
