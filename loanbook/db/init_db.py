import asyncio
import logging

from sqlalchemy import select

from loanbook.core.permissions import RoleName
from loanbook.core.settings import settings
from loanbook.db.session import AsyncSessionLocal
from loanbook.models.user import User

logger = logging.getLogger(__name__)


async def init_db() -> None:
    """Seed the staff directory with an Owner account so a fresh install is usable."""
    async with AsyncSessionLocal() as session:
        stmt = select(User).where(User.email == settings.seed_admin_email)
        user = (await session.execute(stmt)).scalar_one_or_none()
        if user:
            logger.info("Seed admin %s already present", settings.seed_admin_email)
            return

        session.add(
            User(
                email=settings.seed_admin_email,
                full_name=settings.seed_admin_full_name,
                role_name=RoleName.OWNER.value,
                is_active=True,
            )
        )
        await session.commit()
        logger.info("Seed admin %s created", settings.seed_admin_email)


if __name__ == "__main__":
    asyncio.run(init_db())
