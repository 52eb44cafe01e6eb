from __future__ import annotations

from dataclasses import dataclass, field
from typing import ClassVar


@dataclass(eq=False)
class LoanError(Exception):
    message: str
    code: str = "loan_error"
    details: dict = field(default_factory=dict)

    status_code: ClassVar[int] = 400

    def __str__(self) -> str:
        return self.message


@dataclass(eq=False)
class PhaseViolation(LoanError):
    """Mutation attempted outside the phase window that allows it."""

    code: str = "phase_violation"

    status_code: ClassVar[int] = 409


@dataclass(eq=False)
class LoanNotFound(LoanError):
    code: str = "loan_not_found"

    status_code: ClassVar[int] = 404


@dataclass(eq=False)
class TransientStoreError(LoanError):
    """Connection or transaction failure; the whole operation may be re-issued."""

    code: str = "store_unavailable"

    status_code: ClassVar[int] = 503


def phase_violation(loan_id, window: str) -> PhaseViolation:
    return PhaseViolation(
        message=f"Loan not found or not in {window} phase",
        details={"loan_id": loan_id, "allowed_phase": window},
    )
