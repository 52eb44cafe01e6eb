from datetime import date
from decimal import Decimal

from conftest import FakeAsyncSession, make_client, make_loan

from loanbook.models.audit_log import AuditLog
from loanbook.services.audit import model_snapshot, record_audit_log


def test_snapshot_omits_encrypted_identifier():
    client = make_client(id_number="GHA-000111222-3", occupation="Trader")

    snapshot = model_snapshot(client)

    assert "id_number" not in snapshot
    assert snapshot["occupation"] == "Trader"


def test_snapshot_serializes_money_and_dates():
    loan = make_loan(phase=3)

    snapshot = model_snapshot(loan)

    assert snapshot["approved_amount"] == "12000.00"
    assert snapshot["payment_start_date"] == "2024-01-01"


def test_record_audit_log_stages_row_with_changes():
    db = FakeAsyncSession()

    entry = record_audit_log(
        db,
        actor_id=4,
        action="loan.disbursed",
        resource_type="loan",
        resource_id=9,
        old_value={"phase": 3, "disbursement_method": None},
        new_value={"phase": 4, "disbursement_method": "cash", "when": date(2024, 2, 1)},
    )

    assert db.added_of(AuditLog) == [entry]
    assert entry.resource_id == "9"
    assert entry.changes["phase"] == {"from": 3, "to": 4}
    assert entry.new_value["when"] == "2024-02-01"
    assert entry.summary.startswith("loan.disbursed: ")


def test_record_audit_log_without_values_has_plain_summary():
    db = FakeAsyncSession()

    entry = record_audit_log(
        db, actor_id=1, action="loan.viewed", resource_type="loan", resource_id=1
    )

    assert entry.changes is None
    assert entry.summary == "loan.viewed"
    assert entry.old_value is None


def test_decimal_values_are_strings():
    db = FakeAsyncSession()

    entry = record_audit_log(
        db,
        actor_id=1,
        action="loan.updated",
        resource_type="loan",
        resource_id=1,
        new_value={"requested_amount": Decimal("8000.00")},
    )

    assert entry.new_value == {"requested_amount": "8000.00"}
