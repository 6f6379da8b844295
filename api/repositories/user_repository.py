"""User repository for database operations."""

from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from models import User
from repositories.utils import log_slow_query
from services.exceptions import AlreadyExistsError


class UserRepository:
    """Repository for User database operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    @log_slow_query("find_user_by_id")
    async def find_by_id(self, user_id: str) -> User | None:
        return await self.db.get(User, user_id)

    @log_slow_query("find_user_by_external_provider")
    async def find_by_external_provider(
        self, provider_name: str, provider_id: str
    ) -> User | None:
        """Uses the (ext_provider_name, ext_provider_id) unique constraint."""
        result = await self.db.execute(
            select(User).where(
                User.ext_provider_name == provider_name,
                User.ext_provider_id == provider_id,
            )
        )
        return result.scalar_one_or_none()

    @log_slow_query("create_user")
    async def create(self, provider_name: str, provider_id: str) -> User:
        user = User(ext_provider_name=provider_name, ext_provider_id=provider_id)
        try:
            async with self.db.begin_nested():
                self.db.add(user)
                await self.db.flush()
        except IntegrityError as e:
            raise AlreadyExistsError(str(e.orig)) from e
        return user

    @log_slow_query("update_user_settings")
    async def update_settings(
        self, user_id: str, settings: dict[str, Any]
    ) -> User | None:
        user = await self.find_by_id(user_id)
        if user is None:
            return None

        # Reassign so the JSON column is flagged as modified
        user.settings = {**(user.settings or {}), **settings}
        await self.db.flush()
        return user
