from enum import Enum
from typing import Iterable


class RoleName(str, Enum):
    OWNER = "Owner"
    ADMIN = "Admin"
    VIEWER = "Viewer"
    MANAGER = "Manager"
    CALL_CENTER = "Call Center"
    SALES_EXECUTIVE = "Sales Executive"
    LOAN_OFFICER = "Loan Officer"
    CREDIT_RISK_ANALYST = "Credit Risk Analyst"


class PermissionCode(str, Enum):
    LOANS_CREATE = "Loans.CanCreate"
    LOANS_DELETE = "Loans.CanDelete"
    LOANS_UPDATE = "Loans.CanUpdate"
    LOANS_VIEW = "Loans.CanView"
    LOANS_LIST = "Loans.CanList"
    LOANS_APPROVE = "Loans.CanApprove"
    LOANS_DISBURSE = "Loans.CanDisburse"


class LoanOperation(str, Enum):
    REGISTER = "register"
    CAPTURE = "capture"
    APPROVE = "approve"
    DISBURSE = "disburse"
    EDIT = "edit"
    DELETE = "delete"
    RECORD_REPAYMENT = "record_repayment"
    VIEW = "view"
    LIST = "list"


_SUPERVISORS = frozenset({RoleName.OWNER, RoleName.ADMIN})
_EARLY_PHASE_ROLES = frozenset(
    {RoleName.CALL_CENTER, RoleName.SALES_EXECUTIVE, RoleName.LOAN_OFFICER}
)
_WORKFLOW_ROLES = frozenset(RoleName) - {RoleName.VIEWER}

# Role gates per operation; a permission grant is an alternative path for the
# operations listed in OPERATION_PERMISSIONS.
OPERATION_ROLES: dict[LoanOperation, frozenset[RoleName]] = {
    LoanOperation.REGISTER: _SUPERVISORS | {RoleName.CALL_CENTER},
    LoanOperation.CAPTURE: _SUPERVISORS | {RoleName.SALES_EXECUTIVE, RoleName.LOAN_OFFICER},
    LoanOperation.APPROVE: _SUPERVISORS | {RoleName.CREDIT_RISK_ANALYST},
    LoanOperation.DISBURSE: _SUPERVISORS | {RoleName.MANAGER},
    LoanOperation.EDIT: _SUPERVISORS | _EARLY_PHASE_ROLES,
    LoanOperation.DELETE: _SUPERVISORS | _EARLY_PHASE_ROLES,
    LoanOperation.RECORD_REPAYMENT: _SUPERVISORS,
    LoanOperation.VIEW: _WORKFLOW_ROLES,
    LoanOperation.LIST: _WORKFLOW_ROLES,
}

OPERATION_PERMISSIONS: dict[LoanOperation, PermissionCode] = {
    LoanOperation.RECORD_REPAYMENT: PermissionCode.LOANS_UPDATE,
    LoanOperation.VIEW: PermissionCode.LOANS_VIEW,
    LoanOperation.LIST: PermissionCode.LOANS_LIST,
}

# Phases each role may see in list views; roles not listed see every phase.
ROLE_PHASE_SCOPE: dict[RoleName, tuple[int, ...]] = {
    RoleName.CALL_CENTER: (1,),
    RoleName.SALES_EXECUTIVE: (1, 2),
    RoleName.LOAN_OFFICER: (1, 2),
    RoleName.CREDIT_RISK_ANALYST: (2,),
    RoleName.MANAGER: (3,),
}


def normalize_role(role_name: str | None) -> RoleName | None:
    if not role_name:
        return None
    try:
        return RoleName(role_name)
    except ValueError:
        return None


def normalize_permissions(codes: Iterable[str] | None) -> set[str]:
    return {str(code) for code in (codes or []) if code}
