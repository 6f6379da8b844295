"""Department repository."""

from typing import Any

from sqlalchemy import ColumnElement, Select, func, select

from models import Department, Inventory, Locality, Town
from repositories.entity_repository import EntityRepository
from repositories.utils import log_slow_query


class DepartmentRepository(EntityRepository[Department]):
    model = Department
    label_column = "code"
    search_columns = ("code",)

    def _join_entries(self, stmt: Select) -> Select:
        return stmt.join(Locality, Inventory.locality_id == Locality.id).join(
            Town, Locality.town_id == Town.id
        )

    def _entries_key(self) -> ColumnElement:
        return Town.department_id

    def _order_columns(self, owner_id: str | None) -> dict[str, Any]:
        towns_count = (
            select(func.count(Town.id))
            .where(Town.department_id == Department.id)
            .correlate(Department)
            .scalar_subquery()
        )
        localities_count = (
            select(func.count(Locality.id))
            .join(Town, Locality.town_id == Town.id)
            .where(Town.department_id == Department.id)
            .correlate(Department)
            .scalar_subquery()
        )
        return {
            "id": Department.id,
            "code": Department.code,
            "nbCommunes": towns_count,
            "nbLieuxDits": localities_count,
            "nbDonnees": self._entries_count_subquery(owner_id),
        }

    @log_slow_query("count_department_towns")
    async def towns_count(self, department_id: int) -> int:
        result = await self.db.execute(
            select(func.count(Town.id)).where(Town.department_id == department_id)
        )
        return result.scalar_one()

    @log_slow_query("count_department_localities")
    async def localities_count(self, department_id: int) -> int:
        result = await self.db.execute(
            select(func.count(Locality.id))
            .join(Town, Locality.town_id == Town.id)
            .where(Town.department_id == department_id)
        )
        return result.scalar_one()

    async def usage_count(self, entity_id: int) -> int:
        return await self.towns_count(entity_id)
