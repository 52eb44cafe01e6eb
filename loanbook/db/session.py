import logging
from collections.abc import AsyncGenerator, AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.exc import DBAPIError, InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from loanbook.core.settings import settings
from loanbook.db.url import normalize_database_url
from loanbook.services.loan_errors import TransientStoreError

logger = logging.getLogger(__name__)

engine = create_async_engine(
    normalize_database_url(settings.database_url),
    future=True,
    echo=False,
    pool_pre_ping=True,
)
AsyncSessionLocal = async_sessionmaker(engine, expire_on_commit=False, autoflush=False)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with AsyncSessionLocal() as session:
        yield session


@asynccontextmanager
async def transaction(db: AsyncSession) -> AsyncIterator[AsyncSession]:
    """Commit on success, roll back on any exit by exception."""
    try:
        yield db
        await db.commit()
    except (OperationalError, InterfaceError) as exc:
        await db.rollback()
        logger.warning("Transaction aborted by store failure: %s", exc.__class__.__name__)
        raise TransientStoreError(message="Database unavailable, retry the request") from exc
    except DBAPIError as exc:
        await db.rollback()
        if exc.connection_invalidated:
            raise TransientStoreError(message="Database connection lost, retry the request") from exc
        raise
    except BaseException:
        await db.rollback()
        raise
