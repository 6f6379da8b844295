"""Locality (lieu-dit) repository."""

from typing import Any

from sqlalchemy import ColumnElement, Select, func, select

from models import Department, Inventory, Locality, Town
from repositories.entity_repository import EntityRepository
from repositories.utils import log_slow_query


class LocalityRepository(EntityRepository[Locality]):
    model = Locality
    label_column = "nom"
    search_columns = ("nom",)

    def _base_query(self) -> Select:
        return (
            select(Locality)
            .join(Town, Locality.town_id == Town.id)
            .join(Department, Town.department_id == Department.id)
        )

    def _apply_filters(
        self,
        stmt: Select,
        *,
        q: str | None = None,
        town_id: int | None = None,
        **filters: Any,
    ) -> Select:
        stmt = super()._apply_filters(stmt, q=q, **filters)
        if town_id is not None:
            stmt = stmt.where(Locality.town_id == town_id)
        return stmt

    def _entries_key(self) -> ColumnElement:
        return Inventory.locality_id

    def _order_columns(self, owner_id: str | None) -> dict[str, Any]:
        return {
            "id": Locality.id,
            "nom": Locality.nom,
            "altitude": Locality.altitude,
            "longitude": Locality.longitude,
            "latitude": Locality.latitude,
            "codeCommune": Town.code,
            "nomCommune": Town.nom,
            "departement": Department.code,
            "nbDonnees": self._entries_count_subquery(owner_id),
        }

    @log_slow_query("count_locality_inventories")
    async def usage_count(self, entity_id: int) -> int:
        result = await self.db.execute(
            select(func.count(Inventory.id)).where(Inventory.locality_id == entity_id)
        )
        return result.scalar_one()

    @log_slow_query("find_all_localities_with_towns")
    async def find_all_with_town_and_department(self) -> list[Any]:
        result = await self.db.execute(
            select(
                Locality,
                Town.code.label("town_code"),
                Town.nom.label("town_name"),
                Department.code.label("department_code"),
            )
            .join(Town, Locality.town_id == Town.id)
            .join(Department, Town.department_id == Department.id)
            .order_by(Department.code, Town.code, Locality.nom)
        )
        return list(result.all())
