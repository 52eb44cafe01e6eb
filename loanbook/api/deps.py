from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession

from loanbook.core.context import set_actor_id
from loanbook.core.permissions import LoanOperation
from loanbook.core.security import decode_token
from loanbook.db.session import get_db
from loanbook.services import authz
from loanbook.services.authz import Actor
from loanbook.services.notifications import NotificationDispatcher, get_notifier

# Tokens are minted by the identity service; this service only verifies them.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login")


async def get_db_session(db: AsyncSession = Depends(get_db)) -> AsyncSession:
    return db


async def get_current_actor(token: str = Depends(oauth2_scheme)) -> Actor:
    try:
        payload = decode_token(token, expected_type="access")
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(exc)) from exc

    subject = payload.get("sub")
    try:
        actor = authz.build_actor(subject, payload.get("role"), payload.get("permissions"))
    except (TypeError, ValueError) as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token") from exc
    set_actor_id(actor.id)
    return actor


def require_operation(operation: LoanOperation):
    async def dependency(actor: Actor = Depends(get_current_actor)) -> Actor:
        if not authz.can_perform(actor, operation):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail={
                    "code": "forbidden",
                    "message": f"Role not allowed to {operation.value.replace('_', ' ')} loans",
                    "details": {"role": actor.role_name, "operation": operation.value},
                },
            )
        return actor

    return dependency


def get_notification_dispatcher() -> NotificationDispatcher:
    return get_notifier()
