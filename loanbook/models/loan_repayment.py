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
    func,
)
from sqlalchemy.orm import relationship

from loanbook.db.base import Base


INSTALLMENT_STATUSES = ("pending", "partial", "paid")


class LoanRepayment(Base):
    """One scheduled installment, created in bulk when the loan is approved."""

    __tablename__ = "loan_repayments"
    __allow_unmapped__ = True
    __table_args__ = (
        CheckConstraint("amount >= 0", name="ck_loan_repayment_amount_nonneg"),
        CheckConstraint(
            "status IN ('pending', 'partial', 'paid')",
            name="ck_loan_repayment_status",
        ),
        Index("ix_loan_repayments_loan_due", "loan_id", "due_date"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    loan_id = Column(Integer, ForeignKey("loans.id", ondelete="CASCADE"), nullable=False)
    amount = Column(Numeric(18, 2), nullable=False)
    due_date = Column(Date, nullable=False)
    payment_date = Column(Date, nullable=False)
    status = Column(String(20), nullable=False, default="pending")
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    loan = relationship("Loan", back_populates="installments")
