from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from loanbook.api import deps
from loanbook.core.permissions import LoanOperation
from loanbook.schemas.loan import (
    ClientDTO,
    InstallmentDTO,
    LoanApproveRequest,
    LoanBalanceResponse,
    LoanCaptureRequest,
    LoanDisburseRequest,
    LoanDTO,
    LoanEditRequest,
    LoanListResponse,
    LoanPaymentDTO,
    LoanRegisterRequest,
    LoanRegisterResponse,
    LoanRepaymentCreateRequest,
    LoanRepaymentRecordResponse,
    LoanStatus,
    StructuredLoanView,
)
from loanbook.services import loan_projection, loan_repayments, loan_workflow
from loanbook.services.authz import Actor
from loanbook.services.notifications import NotificationDispatcher

router = APIRouter(prefix="/loans", tags=["loans"])


def _bad_request(exc: ValueError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail={"code": "invalid_request", "message": str(exc), "details": {}},
    )


async def _view_or_404(db: AsyncSession, loan_id: int) -> StructuredLoanView:
    view = await loan_projection.get_loan_by_id(db, loan_id)
    if view is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"code": "loan_not_found", "message": "Loan not found", "details": {"loan_id": loan_id}},
        )
    return view


@router.post(
    "/register",
    response_model=LoanRegisterResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a client and open a loan in the registration phase",
)
async def register_loan(
    payload: LoanRegisterRequest,
    actor: Actor = Depends(deps.require_operation(LoanOperation.REGISTER)),
    db: AsyncSession = Depends(deps.get_db_session),
) -> LoanRegisterResponse:
    client, loan = await loan_workflow.register_loan(db, payload, actor_id=actor.id)
    return LoanRegisterResponse(
        client=ClientDTO.model_validate(client),
        loan=LoanDTO.model_validate(loan),
    )


@router.get("", response_model=LoanListResponse, summary="List loans visible to the caller's role")
async def list_loans(
    status_filter: LoanStatus | None = Query(default=None, alias="status"),
    phase: int | None = Query(default=None, ge=1, le=4),
    search: str | None = Query(default=None, max_length=255),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    actor: Actor = Depends(deps.require_operation(LoanOperation.LIST)),
    db: AsyncSession = Depends(deps.get_db_session),
) -> LoanListResponse:
    filters = loan_projection.LoanListFilters(
        status=status_filter.value if status_filter else None,
        phase=phase,
        search=search,
        page=page,
        limit=limit,
    )
    return await loan_projection.list_loans(db, filters, role_name=actor.role_name)


@router.get("/{loan_id}", response_model=StructuredLoanView, summary="Get the phase-sectioned loan view")
async def get_loan(
    loan_id: int,
    _: Actor = Depends(deps.require_operation(LoanOperation.VIEW)),
    db: AsyncSession = Depends(deps.get_db_session),
) -> StructuredLoanView:
    return await _view_or_404(db, loan_id)


@router.put("/{loan_id}/capture", response_model=StructuredLoanView, summary="Capture client KYC details")
async def capture_loan_details(
    loan_id: int,
    payload: LoanCaptureRequest,
    actor: Actor = Depends(deps.require_operation(LoanOperation.CAPTURE)),
    db: AsyncSession = Depends(deps.get_db_session),
) -> StructuredLoanView:
    await loan_workflow.capture_loan_details(db, loan_id, payload, actor_id=actor.id)
    return await _view_or_404(db, loan_id)


@router.put("/{loan_id}/approve", response_model=StructuredLoanView, summary="Approve terms and build the schedule")
async def approve_loan(
    loan_id: int,
    payload: LoanApproveRequest,
    actor: Actor = Depends(deps.require_operation(LoanOperation.APPROVE)),
    db: AsyncSession = Depends(deps.get_db_session),
    notifier: NotificationDispatcher = Depends(deps.get_notification_dispatcher),
) -> StructuredLoanView:
    try:
        await loan_workflow.approve_loan(db, loan_id, payload, actor_id=actor.id, notifier=notifier)
    except ValueError as exc:
        raise _bad_request(exc) from exc
    return await _view_or_404(db, loan_id)


@router.put("/{loan_id}/disburse", response_model=StructuredLoanView, summary="Record disbursement of an approved loan")
async def disburse_loan(
    loan_id: int,
    payload: LoanDisburseRequest,
    actor: Actor = Depends(deps.require_operation(LoanOperation.DISBURSE)),
    db: AsyncSession = Depends(deps.get_db_session),
    notifier: NotificationDispatcher = Depends(deps.get_notification_dispatcher),
) -> StructuredLoanView:
    await loan_workflow.disburse_loan(db, loan_id, payload, actor_id=actor.id, notifier=notifier)
    return await _view_or_404(db, loan_id)


@router.put("/{loan_id}", response_model=StructuredLoanView, summary="Edit client identity or requested amount")
async def edit_loan(
    loan_id: int,
    payload: LoanEditRequest,
    actor: Actor = Depends(deps.require_operation(LoanOperation.EDIT)),
    db: AsyncSession = Depends(deps.get_db_session),
) -> StructuredLoanView:
    await loan_workflow.edit_loan(db, loan_id, payload, actor_id=actor.id)
    return await _view_or_404(db, loan_id)


@router.delete("/{loan_id}", summary="Delete a loan that has not been approved")
async def delete_loan(
    loan_id: int,
    actor: Actor = Depends(deps.require_operation(LoanOperation.DELETE)),
    db: AsyncSession = Depends(deps.get_db_session),
) -> dict:
    await loan_workflow.delete_loan(db, loan_id, actor_id=actor.id)
    return {"loan_id": loan_id, "deleted": True}


@router.post(
    "/{loan_id}/repayments",
    response_model=LoanRepaymentRecordResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Record a payment and re-allocate the schedule",
)
async def record_repayment(
    loan_id: int,
    payload: LoanRepaymentCreateRequest,
    actor: Actor = Depends(deps.require_operation(LoanOperation.RECORD_REPAYMENT)),
    db: AsyncSession = Depends(deps.get_db_session),
) -> LoanRepaymentRecordResponse:
    try:
        result = await loan_repayments.record_repayment(db, loan_id, payload, actor_id=actor.id)
    except ValueError as exc:
        raise _bad_request(exc) from exc
    return LoanRepaymentRecordResponse(
        amount=result.amount,
        payment_date=result.payment_date,
        remaining_balance=result.remaining_balance,
        total_paid=result.total_paid,
        next_due_amount=result.next_due_amount,
    )


@router.get("/{loan_id}/repayments", response_model=list[InstallmentDTO], summary="List scheduled installments")
async def list_installments(
    loan_id: int,
    _: Actor = Depends(deps.require_operation(LoanOperation.VIEW)),
    db: AsyncSession = Depends(deps.get_db_session),
) -> list[InstallmentDTO]:
    rows = await loan_repayments.list_installments(db, loan_id)
    return [InstallmentDTO.model_validate(row) for row in rows]


@router.get("/{loan_id}/payments", response_model=list[LoanPaymentDTO], summary="List received payments")
async def list_payments(
    loan_id: int,
    _: Actor = Depends(deps.require_operation(LoanOperation.VIEW)),
    db: AsyncSession = Depends(deps.get_db_session),
) -> list[LoanPaymentDTO]:
    rows = await loan_repayments.list_payments(db, loan_id)
    return [LoanPaymentDTO.model_validate(row) for row in rows]


@router.get("/{loan_id}/balance", response_model=LoanBalanceResponse, summary="Outstanding balance for a loan")
async def get_loan_balance(
    loan_id: int,
    _: Actor = Depends(deps.require_operation(LoanOperation.VIEW)),
    db: AsyncSession = Depends(deps.get_db_session),
) -> LoanBalanceResponse:
    balance = await loan_repayments.get_loan_balance(db, loan_id)
    return LoanBalanceResponse(
        total_amount=balance.total_amount,
        total_paid=balance.total_paid,
        remaining_balance=balance.remaining_balance,
        next_due_amount=balance.next_due_amount,
    )
