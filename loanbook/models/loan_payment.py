from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    Text,
    func,
)
from sqlalchemy.orm import relationship

from loanbook.db.base import Base


class LoanPayment(Base):
    """Append-only receipt; the sum of these rows is the loan's total paid."""

    __tablename__ = "loan_payments"
    __allow_unmapped__ = True
    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_loan_payment_amount_positive"),
        Index("ix_loan_payments_loan_date", "loan_id", "payment_date"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    loan_id = Column(Integer, ForeignKey("loans.id", ondelete="CASCADE"), nullable=False)
    amount = Column(Numeric(18, 2), nullable=False)
    payment_date = Column(Date, nullable=False)
    received_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    loan = relationship("Loan", back_populates="payments")
    received_by_user = relationship("User", foreign_keys=[received_by])

    @property
    def received_by_name(self) -> str | None:
        user = getattr(self, "received_by_user", None)
        return user.full_name if user else None
