"""Generic service for the reference entities.

Every entity kind exposes the same operations: find, info, paginated list,
create, update and delete. Reads need an authenticated caller. Mutations
need the kind's permission flag, or ownership of the record for updates
and deletes.
"""

from typing import Any, Generic, TypeVar

from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from core.logger import get_logger
from core.permissions import EntityPermissions, LoggedUser, can_mutate
from repositories.entity_repository import EntityRepository
from schemas import EntityInfo, PaginationQuery
from services.exceptions import IsUsedError, NotAllowedError
from services.pagination import get_sql_pagination

logger = get_logger(__name__)


def require_user(user: LoggedUser | None) -> LoggedUser:
    if user is None:
        raise NotAllowedError("Authentication required")
    return user

M = TypeVar("M")


class EntityService(Generic[M]):
    def __init__(self, repository_class: type[EntityRepository[M]], kind: str):
        self.repository_class = repository_class
        self.kind = kind

    def _repository(self, db: AsyncSession) -> EntityRepository[M]:
        return self.repository_class(db)

    def _permissions(self, user: LoggedUser) -> EntityPermissions:
        return user.permissions.for_kind(self.kind)

    def _on_change(self) -> None:
        """Called after every successful write."""

    async def _ensure_can_mutate(
        self,
        repo: EntityRepository[M],
        entity_id: int,
        user: LoggedUser,
        permission_flag: bool,
    ) -> None:
        # Ownership is only looked up when the kind-wide flag is not enough
        if permission_flag:
            return
        existing = await repo.find_by_id(entity_id)
        owner_id = getattr(existing, "owner_id", None)
        if not can_mutate(owner_id, user, permission_flag):
            raise NotAllowedError(f"Not allowed to modify {self.kind} {entity_id}")

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    async def find(
        self, db: AsyncSession, entity_id: int, user: LoggedUser | None
    ) -> M | None:
        require_user(user)
        return await self._repository(db).find_by_id(entity_id)

    async def find_by_ids(
        self, db: AsyncSession, entity_ids: list[int], user: LoggedUser | None
    ) -> list[M]:
        require_user(user)
        return await self._repository(db).find_by_ids(entity_ids)

    async def entries_count(
        self, db: AsyncSession, entity_id: int, user: LoggedUser | None
    ) -> int:
        """Entries of the caller referencing the entity."""
        user = require_user(user)
        return await self._repository(db).entries_count(entity_id, owner_id=user.id)

    async def is_used(
        self, db: AsyncSession, entity_id: int, user: LoggedUser | None
    ) -> bool:
        require_user(user)
        return await self._repository(db).usage_count(entity_id) > 0

    async def find_all(self, db: AsyncSession) -> list[M]:
        return await self._repository(db).find_all()

    async def find_paginated(
        self,
        db: AsyncSession,
        user: LoggedUser | None,
        params: PaginationQuery,
        **filters: Any,
    ) -> list[M]:
        user = require_user(user)
        offset, limit = get_sql_pagination(params)
        return await self._repository(db).find_many(
            q=params.q,
            order_by=getattr(params, "order_by", None),
            sort_order=params.sort_order,
            offset=offset,
            limit=limit,
            owner_id=user.id,
            **filters,
        )

    async def get_count(
        self,
        db: AsyncSession,
        user: LoggedUser | None,
        q: str | None = None,
        **filters: Any,
    ) -> int:
        require_user(user)
        return await self._repository(db).count(q=q, **filters)

    async def get_info(
        self, db: AsyncSession, entity_id: int, user: LoggedUser | None
    ) -> EntityInfo:
        user = require_user(user)
        repo = self._repository(db)
        return EntityInfo(
            can_be_deleted=await repo.usage_count(entity_id) == 0,
            own_entries_count=await repo.entries_count(entity_id, owner_id=user.id),
        )

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    async def create(
        self, db: AsyncSession, data: BaseModel, user: LoggedUser | None
    ) -> M:
        user = require_user(user)
        if not self._permissions(user).can_create:
            raise NotAllowedError(f"Not allowed to create {self.kind}")

        entity = await self._repository(db).create(
            {**data.model_dump(), "owner_id": user.id}
        )
        logger.info("entity.created", kind=self.kind, entity_id=entity.id)
        self._on_change()
        return entity

    async def create_multiple(
        self, db: AsyncSession, items: list[BaseModel], user: LoggedUser | None
    ) -> list[M]:
        """Bulk insert, each record owned by the caller, in input order."""
        user = require_user(user)
        if not self._permissions(user).can_create:
            raise NotAllowedError(f"Not allowed to create {self.kind}")

        entities = await self._repository(db).create_many(
            [{**item.model_dump(), "owner_id": user.id} for item in items]
        )
        self._on_change()
        return entities

    async def update(
        self,
        db: AsyncSession,
        entity_id: int,
        data: BaseModel,
        user: LoggedUser | None,
    ) -> M | None:
        user = require_user(user)
        repo = self._repository(db)
        await self._ensure_can_mutate(
            repo, entity_id, user, self._permissions(user).can_edit
        )

        entity = await repo.update(entity_id, data.model_dump())
        if entity is not None:
            logger.info("entity.updated", kind=self.kind, entity_id=entity_id)
            self._on_change()
        return entity

    async def delete(
        self, db: AsyncSession, entity_id: int, user: LoggedUser | None
    ) -> M | None:
        """Returns the deleted record, or None if it did not exist."""
        user = require_user(user)
        repo = self._repository(db)
        await self._ensure_can_mutate(
            repo, entity_id, user, self._permissions(user).can_delete
        )

        if await self.is_used(db, entity_id, user):
            raise IsUsedError(f"{self.kind} {entity_id} is still referenced")

        entity = await repo.delete_by_id(entity_id)
        if entity is not None:
            logger.info("entity.deleted", kind=self.kind, entity_id=entity_id)
            self._on_change()
        return entity
