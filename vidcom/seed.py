import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from vidcom.config import Settings
from vidcom.models.user import User
from vidcom.services.auth import create_user

logger = logging.getLogger(__name__)


async def seed_data(session: AsyncSession, settings: Settings) -> None:
    if not settings.admin_email or not settings.admin_password:
        return

    result = await session.execute(select(User).limit(1))
    if result.scalars().first() is not None:
        return

    user = await create_user(session, settings.admin_email, settings.admin_password, role="admin")
    logger.info("Seeded admin user %s", user.email)
