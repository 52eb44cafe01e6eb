from datetime import timedelta

import pytest

from loanbook.core import security
from loanbook.core.permissions import LoanOperation
from loanbook.core.security import create_access_token, decode_token
from loanbook.core.settings import settings
from loanbook.services import authz


def test_access_token_carries_role_and_permissions():
    token = create_access_token("17", role_name="Manager", permissions=["Loans.CanView"])

    decoded = decode_token(token, expected_type="access")

    assert decoded["sub"] == "17"
    assert decoded["role"] == "Manager"
    assert decoded["permissions"] == ["Loans.CanView"]


def test_expired_token_is_rejected():
    token = create_access_token("17", role_name="Admin", expires_delta=timedelta(seconds=-5))

    with pytest.raises(ValueError):
        decode_token(token)


def test_wrong_token_type_is_rejected():
    token = create_access_token("17", role_name="Admin")

    with pytest.raises(ValueError):
        decode_token(token, expected_type="refresh")


def test_rs256_round_trip(monkeypatch, tmp_path):
    from cryptography.hazmat.primitives import serialization
    from cryptography.hazmat.primitives.asymmetric import rsa

    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    private_pem = key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )
    public_pem = key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )
    priv_file = tmp_path / "priv.pem"
    pub_file = tmp_path / "pub.pem"
    priv_file.write_bytes(private_pem)
    pub_file.write_bytes(public_pem)

    # Settings are loaded at import time, so patch the instance directly
    monkeypatch.setattr(settings, "jwt_algorithm", "RS256")
    monkeypatch.setattr(settings, "jwt_private_key_path", str(priv_file))
    monkeypatch.setattr(settings, "jwt_public_key_path", str(pub_file))
    security._load_private_key.cache_clear()
    security._load_public_key.cache_clear()
    try:
        token = create_access_token("user-xyz", role_name="Credit Risk Analyst")
        decoded = decode_token(token, expected_type="access")
    finally:
        security._load_private_key.cache_clear()
        security._load_public_key.cache_clear()

    assert decoded["sub"] == "user-xyz"
    assert decoded["role"] == "Credit Risk Analyst"


@pytest.mark.parametrize(
    ("role", "operation", "allowed"),
    [
        ("Call Center", LoanOperation.REGISTER, True),
        ("Call Center", LoanOperation.APPROVE, False),
        ("Sales Executive", LoanOperation.CAPTURE, True),
        ("Credit Risk Analyst", LoanOperation.APPROVE, True),
        ("Credit Risk Analyst", LoanOperation.DISBURSE, False),
        ("Manager", LoanOperation.DISBURSE, True),
        ("Owner", LoanOperation.RECORD_REPAYMENT, True),
        ("Viewer", LoanOperation.LIST, False),
        ("Unknown Role", LoanOperation.VIEW, False),
    ],
)
def test_role_gates(role, operation, allowed):
    actor = authz.build_actor(1, role, [])

    assert authz.can_perform(actor, operation) is allowed


def test_permission_grant_opens_listed_operations_only():
    actor = authz.build_actor("3", "Viewer", ["Loans.CanUpdate", "Loans.CanList"])

    assert actor.id == 3
    assert authz.can_perform(actor, LoanOperation.RECORD_REPAYMENT)
    assert authz.can_perform(actor, "list")
    assert not authz.can_perform(actor, LoanOperation.APPROVE)


def test_visible_phases_by_role():
    assert authz.visible_phases("Call Center") == (1,)
    assert authz.visible_phases("Manager") == (3,)
    assert authz.visible_phases("Admin") is None
    assert authz.visible_phases(None) is None
