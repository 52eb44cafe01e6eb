from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    func,
)
from sqlalchemy.orm import relationship

from loanbook.db.base import Base


LOAN_STATUSES = ("registered", "captured", "approved", "disbursed", "active", "completed", "defaulted")
PAYMENT_MODES = ("weekly", "monthly")
DISBURSEMENT_METHODS = ("cash", "bank_transfer", "mobile_money", "cheque")


class Loan(Base):
    __tablename__ = "loans"
    __allow_unmapped__ = True
    __table_args__ = (
        CheckConstraint("phase BETWEEN 1 AND 4", name="ck_loan_phase_range"),
        CheckConstraint("requested_amount > 0", name="ck_loan_requested_positive"),
        CheckConstraint("approved_amount IS NULL OR approved_amount > 0", name="ck_loan_approved_positive"),
        CheckConstraint("loan_duration IS NULL OR loan_duration >= 1", name="ck_loan_duration_positive"),
        CheckConstraint(
            "status IN ('registered', 'captured', 'approved', 'disbursed', 'active', 'completed', 'defaulted')",
            name="ck_loan_status",
        ),
        CheckConstraint(
            "payment_mode IS NULL OR payment_mode IN ('weekly', 'monthly')",
            name="ck_loan_payment_mode",
        ),
        Index("ix_loans_phase_status", "phase", "status"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    client_id = Column(Integer, ForeignKey("clients.id", ondelete="CASCADE"), nullable=False, index=True)
    requested_amount = Column(Numeric(18, 2), nullable=False)

    # Terms, fixed at approval
    approved_amount = Column(Numeric(18, 2), nullable=True)
    loan_duration = Column(Integer, nullable=True)
    payment_mode = Column(String(20), nullable=True)
    processing_fee = Column(Numeric(18, 2), nullable=True)
    interest_rate = Column(Numeric(10, 4), nullable=True)
    payment_schedule_start = Column(Date, nullable=True)
    payment_start_date = Column(Date, nullable=True)
    payment_end_date = Column(Date, nullable=True)

    status = Column(String(20), nullable=False, default="registered")
    phase = Column(Integer, nullable=False, default=1)

    registered_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    captured_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    approved_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    disbursed_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    registration_date = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    capturing_date = Column(DateTime(timezone=True), nullable=True)
    approval_date = Column(DateTime(timezone=True), nullable=True)
    disbursement_date = Column(DateTime(timezone=True), nullable=True)

    disbursement_method = Column(String(30), nullable=True)
    disbursement_notes = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    client = relationship("Client")
    registered_by_user = relationship("User", foreign_keys=[registered_by])
    captured_by_user = relationship("User", foreign_keys=[captured_by])
    approved_by_user = relationship("User", foreign_keys=[approved_by])
    disbursed_by_user = relationship("User", foreign_keys=[disbursed_by])
    installments = relationship(
        "LoanRepayment",
        back_populates="loan",
        order_by="LoanRepayment.due_date",
        passive_deletes=True,
    )
    payments = relationship("LoanPayment", back_populates="loan", passive_deletes=True)
