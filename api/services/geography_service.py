"""Departments, towns and localities.

Their info payloads carry counts and the codes of the enclosing areas.
"""

from typing import TypeVar

from sqlalchemy.ext.asyncio import AsyncSession

from core.cache import invalidate_geojson_cache
from core.permissions import LoggedUser
from models import Department, Locality, Town
from repositories.department_repository import DepartmentRepository
from repositories.locality_repository import LocalityRepository
from repositories.town_repository import TownRepository
from schemas import DepartmentInfo, LocalityInfo, TownInfo
from services.entity_service import EntityService, require_user
from services.exceptions import ExtendedDataNotFoundError

M = TypeVar("M")


class _MappedAreaService(EntityService[M]):
    """Writes invalidate the cached locality GeoJSON."""

    def _on_change(self) -> None:
        invalidate_geojson_cache()


class DepartmentService(_MappedAreaService[Department]):
    def __init__(self):
        super().__init__(DepartmentRepository, "department")

    async def get_info(
        self, db: AsyncSession, entity_id: int, user: LoggedUser | None
    ) -> DepartmentInfo:
        user = require_user(user)
        repo = self._repository(db)
        towns_count = await repo.towns_count(entity_id)
        return DepartmentInfo(
            can_be_deleted=towns_count == 0,
            own_entries_count=await repo.entries_count(entity_id, owner_id=user.id),
            towns_count=towns_count,
            localities_count=await repo.localities_count(entity_id),
        )


class TownService(_MappedAreaService[Town]):
    def __init__(self):
        super().__init__(TownRepository, "town")

    async def get_info(
        self, db: AsyncSession, entity_id: int, user: LoggedUser | None
    ) -> TownInfo | None:
        user = require_user(user)
        repo = self._repository(db)
        town = await repo.find_by_id(entity_id)
        if town is None:
            return None

        department = await DepartmentRepository(db).find_by_id(town.department_id)
        if department is None:
            raise ExtendedDataNotFoundError(f"Department of town {entity_id}")

        localities_count = await repo.localities_count(entity_id)
        return TownInfo(
            can_be_deleted=localities_count == 0,
            own_entries_count=await repo.entries_count(entity_id, owner_id=user.id),
            department_code=department.code,
            localities_count=localities_count,
        )


class LocalityService(_MappedAreaService[Locality]):
    def __init__(self):
        super().__init__(LocalityRepository, "locality")

    async def get_info(
        self, db: AsyncSession, entity_id: int, user: LoggedUser | None
    ) -> LocalityInfo | None:
        user = require_user(user)
        repo = self._repository(db)
        locality = await repo.find_by_id(entity_id)
        if locality is None:
            return None

        town = await TownRepository(db).find_by_id(locality.town_id)
        if town is None:
            raise ExtendedDataNotFoundError(f"Town of locality {entity_id}")
        department = await DepartmentRepository(db).find_by_id(town.department_id)
        if department is None:
            raise ExtendedDataNotFoundError(f"Department of locality {entity_id}")

        return LocalityInfo(
            can_be_deleted=await repo.usage_count(entity_id) == 0,
            own_entries_count=await repo.entries_count(entity_id, owner_id=user.id),
            town_code=town.code,
            town_name=town.nom,
            department_code=department.code,
        )


department_service = DepartmentService()
town_service = TownService()
locality_service = LocalityService()
