"""Internal accounts and their settings."""

from sqlalchemy.ext.asyncio import AsyncSession

from core.logger import get_logger
from models import User
from repositories.user_repository import UserRepository
from schemas import UserSettings

logger = get_logger(__name__)


async def find_user_by_external_provider(
    db: AsyncSession, provider_name: str, provider_id: str
) -> User | None:
    return await UserRepository(db).find_by_external_provider(
        provider_name, provider_id
    )


async def create_user(db: AsyncSession, provider_name: str, provider_id: str) -> User:
    """Raises AlreadyExistsError when the identity already has an account."""
    user = await UserRepository(db).create(provider_name, provider_id)
    logger.info("user.created", user_id=user.id, provider=provider_name)
    return user


async def get_user_settings(db: AsyncSession, user_id: str) -> UserSettings | None:
    user = await UserRepository(db).find_by_id(user_id)
    if user is None:
        return None
    return UserSettings.model_validate(user.settings or {})


async def update_user_settings(
    db: AsyncSession, user_id: str, settings: UserSettings
) -> UserSettings | None:
    user = await UserRepository(db).update_settings(
        user_id, settings.model_dump(mode="json")
    )
    if user is None:
        return None
    return UserSettings.model_validate(user.settings)
