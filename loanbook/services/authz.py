from dataclasses import dataclass, field

from loanbook.core.permissions import (
    OPERATION_PERMISSIONS,
    OPERATION_ROLES,
    ROLE_PHASE_SCOPE,
    LoanOperation,
    normalize_permissions,
    normalize_role,
)


@dataclass(frozen=True, slots=True)
class Actor:
    """Authenticated staff member as handed over by the identity provider."""

    id: int
    role_name: str | None = None
    permissions: frozenset[str] = field(default_factory=frozenset)


def build_actor(user_id, role_name: str | None, permissions=None) -> Actor:
    return Actor(
        id=int(user_id),
        role_name=role_name,
        permissions=frozenset(normalize_permissions(permissions)),
    )


def can_perform(actor: Actor, operation: LoanOperation | str) -> bool:
    """Role gate first, then the permission grant where the operation has one."""
    op = LoanOperation(operation)
    role = normalize_role(actor.role_name)
    if role is not None and role in OPERATION_ROLES.get(op, frozenset()):
        return True
    permission = OPERATION_PERMISSIONS.get(op)
    return permission is not None and permission.value in actor.permissions


def visible_phases(role_name: str | None) -> tuple[int, ...] | None:
    """Phases a role may list, or None when the role sees every phase."""
    role = normalize_role(role_name)
    if role is None:
        return None
    return ROLE_PHASE_SCOPE.get(role)
