from __future__ import annotations

import math
from dataclasses import dataclass
from decimal import Decimal
from typing import Mapping, Sequence

from sqlalchemy import case, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from loanbook.models.client import Client
from loanbook.models.loan import Loan
from loanbook.schemas.loan import (
    ApprovedSection,
    CapturedSection,
    DisbursementSection,
    LoanListResponse,
    LoanListStats,
    LoanPhase,
    LoanStatusSection,
    LocationDTO,
    RegisteredSection,
    StructuredLoanView,
    WitnessDTO,
)
from loanbook.services import authz


@dataclass(frozen=True)
class LoanListFilters:
    status: str | None = None
    phase: int | None = None
    search: str | None = None
    page: int = 1
    limit: int = 10


def build_loan_view(
    loan,
    client,
    actor_names: Mapping[int, str],
    witnesses: Sequence = (),
    business_locations: Sequence = (),
    residences: Sequence = (),
) -> StructuredLoanView:
    """Pure phase-sectioned view; sections not reached yet carry nulls."""

    def name_of(user_id):
        if user_id is None:
            return None
        return actor_names.get(user_id)

    registered = RegisteredSection(
        client_id=loan.client_id,
        client_name=getattr(client, "fullname", None),
        client_contact=getattr(client, "contact", None),
        client_email=getattr(client, "email", None),
        client_location=getattr(client, "location", None),
        client_landmark=getattr(client, "landmark", None),
        client_business=getattr(client, "business", None),
        requested_amount=loan.requested_amount,
        registered_by=loan.registered_by,
        registered_by_name=name_of(loan.registered_by),
        registration_date=loan.registration_date,
    )
    captured = CapturedSection(
        captured_by=loan.captured_by,
        captured_by_name=name_of(loan.captured_by),
        capturing_date=loan.capturing_date,
        dob=getattr(client, "dob", None),
        marital_status=getattr(client, "marital_status", None),
        occupation=getattr(client, "occupation", None),
        profile_image=getattr(client, "profile_image", None),
        id_type=getattr(client, "id_type", None),
        id_number=getattr(client, "id_number", None),
        id_front_image=getattr(client, "id_front_image", None),
        id_back_image=getattr(client, "id_back_image", None),
        witnesses=[WitnessDTO.model_validate(item) for item in witnesses],
        business_locations=[LocationDTO.model_validate(item) for item in business_locations],
        residences=[LocationDTO.model_validate(item) for item in residences],
    )
    approved = ApprovedSection(
        approved_amount=loan.approved_amount,
        loan_duration=loan.loan_duration,
        payment_mode=loan.payment_mode,
        processing_fee=loan.processing_fee,
        interest_rate=loan.interest_rate,
        payment_start_date=loan.payment_start_date,
        payment_end_date=loan.payment_end_date,
        approved_by=loan.approved_by,
        approved_by_name=name_of(loan.approved_by),
        approval_date=loan.approval_date,
    )
    disbursement = DisbursementSection(
        disbursed_by=loan.disbursed_by,
        disbursed_by_name=name_of(loan.disbursed_by),
        disbursement_date=loan.disbursement_date,
        disbursement_method=loan.disbursement_method,
        disbursement_notes=loan.disbursement_notes,
    )
    return StructuredLoanView(
        id=loan.id,
        registered=registered,
        captured=captured,
        approved=approved,
        disbursement=disbursement,
        loan_status=LoanStatusSection(
            status=loan.status,
            phase=loan.phase,
            payment_schedule_start=loan.payment_schedule_start,
        ),
        created_at=loan.created_at,
        updated_at=loan.updated_at,
    )


def _actor_names(loan: Loan) -> dict[int, str]:
    names: dict[int, str] = {}
    for user in (
        loan.registered_by_user,
        loan.captured_by_user,
        loan.approved_by_user,
        loan.disbursed_by_user,
    ):
        if user is not None:
            names[user.id] = user.full_name
    return names


def _view_options():
    return (
        selectinload(Loan.client).selectinload(Client.witnesses),
        selectinload(Loan.client).selectinload(Client.business_locations),
        selectinload(Loan.client).selectinload(Client.residences),
        selectinload(Loan.registered_by_user),
        selectinload(Loan.captured_by_user),
        selectinload(Loan.approved_by_user),
        selectinload(Loan.disbursed_by_user),
    )


def view_for_loaded(loan: Loan) -> StructuredLoanView:
    client = loan.client
    return build_loan_view(
        loan,
        client,
        _actor_names(loan),
        witnesses=client.witnesses if client is not None else (),
        business_locations=client.business_locations if client is not None else (),
        residences=client.residences if client is not None else (),
    )


async def get_loan_by_id(db: AsyncSession, loan_id: int) -> StructuredLoanView | None:
    stmt = (
        select(Loan)
        .options(*_view_options())
        .where(Loan.id == loan_id)
        .execution_options(populate_existing=True)
    )
    loan = (await db.execute(stmt)).scalar_one_or_none()
    if loan is None:
        return None
    return view_for_loaded(loan)


def _search_clause(search: str):
    pattern = f"%{search.strip()}%"
    return or_(
        Client.fullname.ilike(pattern),
        Client.contact.ilike(pattern),
        Client.email.ilike(pattern),
    )


async def list_loans(
    db: AsyncSession,
    filters: LoanListFilters,
    *,
    role_name: str | None,
) -> LoanListResponse:
    """Page of loans visible to ``role_name`` plus stats over the role and search scope."""
    page = max(filters.page, 1)
    limit = max(filters.limit, 1)

    scope = []
    phases = authz.visible_phases(role_name)
    if phases:
        scope.append(Loan.phase.in_(phases))
    if filters.search and filters.search.strip():
        scope.append(_search_clause(filters.search))

    conditions = list(scope)
    if filters.status:
        conditions.append(Loan.status == filters.status)
    if filters.phase is not None:
        conditions.append(Loan.phase == filters.phase)

    stats_stmt = (
        select(
            func.count(Loan.id).label("total_registrations"),
            func.count(case((Loan.phase == LoanPhase.REGISTRATION.value, Loan.id))).label("registered"),
            func.count(case((Loan.phase == LoanPhase.CAPTURING.value, Loan.id))).label("captured"),
            func.coalesce(func.sum(Loan.requested_amount), 0).label("total_requested"),
        )
        .select_from(Loan)
        .join(Client, Client.id == Loan.client_id)
        .where(*scope)
    )
    stats_row = (await db.execute(stats_stmt)).one()

    count_stmt = (
        select(func.count(Loan.id).label("total"))
        .select_from(Loan)
        .join(Client, Client.id == Loan.client_id)
        .where(*conditions)
    )
    total = int((await db.execute(count_stmt)).scalar_one() or 0)

    page_stmt = (
        select(Loan)
        .join(Client, Client.id == Loan.client_id)
        .options(*_view_options())
        .where(*conditions)
        .order_by(Loan.created_at.desc(), Loan.id.desc())
        .limit(limit)
        .offset((page - 1) * limit)
    )
    loans = (await db.execute(page_stmt)).scalars().all()

    return LoanListResponse(
        loans=[view_for_loaded(loan) for loan in loans],
        total=total,
        total_pages=math.ceil(total / limit) if total else 0,
        page=page,
        limit=limit,
        stats=LoanListStats(
            total_registrations=int(stats_row.total_registrations or 0),
            registered=int(stats_row.registered or 0),
            captured=int(stats_row.captured or 0),
            total_requested=Decimal(str(stats_row.total_requested or 0)),
        ),
    )
