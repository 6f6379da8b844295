"""Town repository."""

from typing import Any

from sqlalchemy import ColumnElement, Select, func, select

from models import Department, Inventory, Locality, Town
from repositories.entity_repository import EntityRepository
from repositories.utils import log_slow_query


class TownRepository(EntityRepository[Town]):
    model = Town
    label_column = "nom"
    search_columns = ("nom",)

    def _base_query(self) -> Select:
        return select(Town).join(Department, Town.department_id == Department.id)

    def _apply_filters(
        self,
        stmt: Select,
        *,
        q: str | None = None,
        department_id: int | None = None,
        **filters: Any,
    ) -> Select:
        stmt = super()._apply_filters(stmt, q=q, **filters)
        if department_id is not None:
            stmt = stmt.where(Town.department_id == department_id)
        return stmt

    def _join_entries(self, stmt: Select) -> Select:
        return stmt.join(Locality, Inventory.locality_id == Locality.id)

    def _entries_key(self) -> ColumnElement:
        return Locality.town_id

    def _order_columns(self, owner_id: str | None) -> dict[str, Any]:
        localities_count = (
            select(func.count(Locality.id))
            .where(Locality.town_id == Town.id)
            .correlate(Town)
            .scalar_subquery()
        )
        return {
            "id": Town.id,
            "code": Town.code,
            "nom": Town.nom,
            "departement": Department.code,
            "nbLieuxDits": localities_count,
            "nbDonnees": self._entries_count_subquery(owner_id),
        }

    @log_slow_query("count_town_localities")
    async def localities_count(self, town_id: int) -> int:
        result = await self.db.execute(
            select(func.count(Locality.id)).where(Locality.town_id == town_id)
        )
        return result.scalar_one()

    async def usage_count(self, entity_id: int) -> int:
        return await self.localities_count(entity_id)

    @log_slow_query("find_all_towns_with_departments")
    async def find_all_with_departments(self) -> list[Any]:
        """(town, department_code) rows ordered by department then town code."""
        result = await self.db.execute(
            select(Town, Department.code.label("department_code"))
            .join(Department, Town.department_id == Department.id)
            .order_by(Department.code, Town.code)
        )
        return list(result.all())
