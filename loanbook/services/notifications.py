"""Post-commit loan event fan-out.

Handlers run after the owning transaction has committed. A failing handler is
logged and skipped; it never reaches the caller and never undoes the commit.
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable

from redis.exceptions import RedisError

from loanbook.core.settings import settings
from loanbook.utils.redis_client import get_redis_client, redis_key

logger = logging.getLogger(__name__)

LOAN_APPROVED = "loan.approved"
LOAN_DISBURSED = "loan.disbursed"
CHANNEL_PREFIX = "loan-events"


@dataclass(frozen=True)
class LoanEvent:
    event: str
    loan_id: int
    actor_id: int | None
    payload: dict[str, Any] = field(default_factory=dict)
    occurred_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


Handler = Callable[[LoanEvent], Awaitable[None]]


class NotificationDispatcher:
    def __init__(self, handlers: list[Handler] | None = None, *, enabled: bool = True) -> None:
        self._handlers: list[Handler] = list(handlers or [])
        self.enabled = enabled

    def register(self, handler: Handler) -> Handler:
        self._handlers.append(handler)
        return handler

    @property
    def handlers(self) -> tuple[Handler, ...]:
        return tuple(self._handlers)

    async def dispatch(self, event: LoanEvent) -> None:
        if not self.enabled:
            return
        for handler in self._handlers:
            try:
                await handler(event)
            except Exception:
                logger.exception(
                    "Notification handler %s failed for %s",
                    getattr(handler, "__name__", repr(handler)),
                    event.event,
                    extra={"loan_id": event.loan_id},
                )


def channel_for_event(event_name: str) -> str:
    return redis_key(CHANNEL_PREFIX, event_name)


async def log_event(event: LoanEvent) -> None:
    logger.info("Loan event %s", event.event, extra={"loan_id": event.loan_id})


async def publish_event(event: LoanEvent) -> None:
    redis = get_redis_client()
    try:
        await redis.publish(channel_for_event(event.event), json.dumps(event.to_dict(), default=str))
    except RedisError as exc:
        logger.warning("Loan event publish failed: %s", exc, extra={"loan_id": event.loan_id})


_dispatcher: NotificationDispatcher | None = None


def get_notifier() -> NotificationDispatcher:
    global _dispatcher
    if _dispatcher is None:
        _dispatcher = NotificationDispatcher(
            [log_event, publish_event],
            enabled=settings.notifications_enabled,
        )
    return _dispatcher
