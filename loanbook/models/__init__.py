from loanbook.models.audit_log import AuditLog
from loanbook.models.client import BusinessLocation, Client, ClientWitness, Residence
from loanbook.models.loan import Loan
from loanbook.models.loan_payment import LoanPayment
from loanbook.models.loan_repayment import LoanRepayment
from loanbook.models.user import User

__all__ = [
    "AuditLog",
    "BusinessLocation",
    "Client",
    "ClientWitness",
    "Loan",
    "LoanPayment",
    "LoanRepayment",
    "Residence",
    "User",
]
