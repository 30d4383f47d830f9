"""Start-up bootstrap tasks.

Runs once from the application lifespan, before any request is served.
Each step is idempotent: it checks the database first and treats a unique
constraint violation from a concurrently starting process as success.
"""

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.core.config import settings
from src.core.logging import get_logger
from src.core.security import hash_password
from src.models.user import User

logger = get_logger(__name__)


async def ensure_admin_user(
    session_factory: async_sessionmaker[AsyncSession],
    username: str | None = None,
    name: str | None = None,
    password: str | None = None,
) -> bool:
    """Create the default administrator account if it does not exist.

    Args:
        session_factory: Session factory bound to the application database.
        username: Administrator username. Defaults to settings.admin_username.
        name: Display name. Defaults to settings.admin_name.
        password: Plain password. Defaults to settings.admin_password.

    Returns:
        True if a user was created, False if it already existed or
        bootstrap is disabled because no password is configured.
    """
    username = username or settings.admin_username
    name = name or settings.admin_name
    password = password or settings.admin_password

    if not password:
        logger.info("admin_bootstrap_skipped", reason="no admin password configured")
        return False

    async with session_factory() as session:
        existing = await session.execute(
            select(User.id).where(User.username == username)
        )
        if existing.scalar_one_or_none() is not None:
            logger.debug("admin_user_exists", username=username)
            return False

        session.add(
            User(
                username=username,
                name=name,
                password_hash=hash_password(password),
                is_admin=True,
            )
        )
        try:
            await session.commit()
        except IntegrityError:
            await session.rollback()
            logger.info("admin_user_created_concurrently", username=username)
            return False

    logger.info("admin_user_created", username=username)
    return True
