from loanbook.models.client import Client
from loanbook.models.loan import Loan
from loanbook.models.loan_payment import LoanPayment
from loanbook.models.loan_repayment import LoanRepayment
from loanbook.models.types import EncryptedString


def _constraint_names(model) -> set[str]:
    return {constraint.name for constraint in model.__table__.constraints if constraint.name}


def test_encrypted_string_round_trip() -> None:
    enc = EncryptedString(secret="test-secret-key-1234567890abcdef")
    token = enc.process_bind_param("GHA-000111222-3", None)
    assert token is not None
    assert b"GHA-000111222-3" not in token
    plain = enc.process_result_value(token, None)
    assert plain == "GHA-000111222-3"


def test_encrypted_string_passes_none_through() -> None:
    enc = EncryptedString()
    assert enc.process_bind_param(None, None) is None
    assert enc.process_result_value(None, None) is None


def test_client_id_number_is_encrypted_column() -> None:
    assert isinstance(Client.__table__.c.id_number.type, EncryptedString)


def test_loan_check_constraints_present() -> None:
    names = _constraint_names(Loan)
    assert {"ck_loan_phase_range", "ck_loan_requested_positive", "ck_loan_status"} <= names


def test_ledger_check_constraints_present() -> None:
    assert "ck_loan_repayment_status" in _constraint_names(LoanRepayment)
    assert "ck_loan_payment_amount_positive" in _constraint_names(LoanPayment)


def test_received_by_name_without_user() -> None:
    payment = LoanPayment(loan_id=1, amount=10, received_by=None)
    assert payment.received_by_name is None
