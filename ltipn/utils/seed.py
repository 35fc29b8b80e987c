"""
Seed de l'administrateur / Administrator seeding.
Crée le compte Admin par défaut au premier démarrage si aucun utilisateur n'existe.
Creates the default Admin account on first startup if no users exist.
"""

import logging

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ltipn.config import settings
from ltipn.models.user import User, UserRole
from ltipn.utils.auth import hash_password

logger = logging.getLogger(__name__)


async def seed_admin(session: AsyncSession) -> bool:
    """Créer l'Admin si aucun utilisateur n'existe / Create the Admin if no users exist."""
    count = await session.scalar(select(func.count(User.id)))
    if count:
        logger.info("%d existing user(s), admin seed skipped", count)
        return False

    session.add(User(
        username=settings.SEED_ADMIN_USERNAME,
        first_name="Admin",
        last_name="",
        email=settings.SEED_ADMIN_EMAIL,
        hashed_password=hash_password(settings.SEED_ADMIN_PASSWORD),
        role=UserRole.ADMIN,
        is_active=True,
    ))
    await session.commit()
    logger.info("Admin account created: %s", settings.SEED_ADMIN_USERNAME)
    return True
