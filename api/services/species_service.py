"""Species service: listing through the entries search criteria."""

from sqlalchemy.ext.asyncio import AsyncSession

from core.permissions import LoggedUser
from models import Species
from repositories.species_repository import SpeciesRepository
from schemas import SpeciesInfo, SpeciesQueryParams
from services.entity_service import EntityService, require_user
from services.exceptions import NotAllowedError
from services.pagination import get_sql_pagination


def entries_scope(criteria_from_all_users: bool, user: LoggedUser) -> str | None:
    """Owner whose entries are searched; None means every user's."""
    if criteria_from_all_users:
        if not user.permissions.can_view_all_entries:
            raise NotAllowedError("Not allowed to view all users' entries")
        return None
    return user.id


class SpeciesService(EntityService[Species]):
    def __init__(self):
        super().__init__(SpeciesRepository, "species")

    async def find_paginated(
        self,
        db: AsyncSession,
        user: LoggedUser | None,
        params: SpeciesQueryParams,
    ) -> list[Species]:
        """``nbDonnees`` counts every user's entries when fromAllUsers is set."""
        user = require_user(user)
        owner_id = entries_scope(params.from_all_users, user)
        offset, limit = get_sql_pagination(params)
        return await self._repository(db).find_many(
            q=params.q,
            order_by=params.order_by,
            sort_order=params.sort_order,
            offset=offset,
            limit=limit,
            owner_id=owner_id,
            criteria=params,
            entries_owner_id=owner_id,
        )

    async def get_count(
        self,
        db: AsyncSession,
        user: LoggedUser | None,
        params: SpeciesQueryParams,
    ) -> int:
        user = require_user(user)
        owner_id = entries_scope(params.from_all_users, user)
        return await self._repository(db).count(
            q=params.q, criteria=params, entries_owner_id=owner_id
        )

    async def get_info(
        self, db: AsyncSession, entity_id: int, user: LoggedUser | None
    ) -> SpeciesInfo:
        user = require_user(user)
        repo = self._repository(db)
        total = await repo.entries_count(entity_id)
        return SpeciesInfo(
            can_be_deleted=total == 0,
            own_entries_count=await repo.entries_count(entity_id, owner_id=user.id),
            total_entries_count=(
                total if user.permissions.can_view_all_entries else None
            ),
        )


species_service = SpeciesService()
