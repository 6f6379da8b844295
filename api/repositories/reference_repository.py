"""Repositories for the label-like reference tables."""

from typing import Any

from sqlalchemy import ColumnElement, Select, func, or_, select

from models import (
    Age,
    Behavior,
    DistanceEstimate,
    Entry,
    Environment,
    Inventory,
    NumberEstimate,
    Observer,
    Sex,
    Species,
    SpeciesClass,
    Weather,
    entry_behaviors,
    entry_environments,
    inventory_associates,
    inventory_weathers,
)
from repositories.entity_repository import EntityRepository
from repositories.utils import log_slow_query


class AgeRepository(EntityRepository[Age]):
    model = Age

    def _entries_key(self) -> ColumnElement:
        return Entry.age_id


class SexRepository(EntityRepository[Sex]):
    model = Sex

    def _entries_key(self) -> ColumnElement:
        return Entry.sex_id


class DistanceEstimateRepository(EntityRepository[DistanceEstimate]):
    model = DistanceEstimate

    def _entries_key(self) -> ColumnElement:
        return Entry.distance_estimate_id


class NumberEstimateRepository(EntityRepository[NumberEstimate]):
    model = NumberEstimate

    def _entries_key(self) -> ColumnElement:
        return Entry.number_estimate_id


class WeatherRepository(EntityRepository[Weather]):
    """Weathers describe inventories; their entries are the inventories' entries."""

    model = Weather

    def _join_entries(self, stmt: Select) -> Select:
        return stmt.join(
            inventory_weathers, inventory_weathers.c.inventory_id == Inventory.id
        )

    def _entries_key(self) -> ColumnElement:
        return inventory_weathers.c.weather_id


class ObserverRepository(EntityRepository[Observer]):
    model = Observer

    def _entries_key(self) -> ColumnElement:
        return Inventory.observer_id

    @log_slow_query("count_observer_inventories")
    async def usage_count(self, entity_id: int) -> int:
        """Inventories naming the observer, as main observer or associate."""
        stmt = select(func.count(Inventory.id)).where(
            or_(
                Inventory.observer_id == entity_id,
                Inventory.id.in_(
                    select(inventory_associates.c.inventory_id).where(
                        inventory_associates.c.observer_id == entity_id
                    )
                ),
            )
        )
        result = await self.db.execute(stmt)
        return result.scalar_one()


class SpeciesClassRepository(EntityRepository[SpeciesClass]):
    model = SpeciesClass

    def _join_entries(self, stmt: Select) -> Select:
        return stmt.join(Species, Entry.species_id == Species.id)

    def _entries_key(self) -> ColumnElement:
        return Species.class_id

    def _species_count_subquery(self):
        return (
            select(func.count(Species.id))
            .where(Species.class_id == SpeciesClass.id)
            .correlate(SpeciesClass)
            .scalar_subquery()
        )

    def _order_columns(self, owner_id: str | None) -> dict[str, Any]:
        return {
            **super()._order_columns(owner_id),
            "nbEspeces": self._species_count_subquery(),
        }

    @log_slow_query("count_class_species")
    async def species_count(self, class_id: int) -> int:
        result = await self.db.execute(
            select(func.count(Species.id)).where(Species.class_id == class_id)
        )
        return result.scalar_one()

    async def usage_count(self, entity_id: int) -> int:
        return await self.species_count(entity_id)


class BehaviorRepository(EntityRepository[Behavior]):
    model = Behavior
    label_column = "code"
    search_columns = ("code", "libelle")

    def _join_entries(self, stmt: Select) -> Select:
        return stmt.join(entry_behaviors, entry_behaviors.c.entry_id == Entry.id)

    def _entries_key(self) -> ColumnElement:
        return entry_behaviors.c.behavior_id

    def _order_columns(self, owner_id: str | None) -> dict[str, Any]:
        return {
            **super()._order_columns(owner_id),
            "code": Behavior.code,
            "nicheur": Behavior.nicheur,
        }


class EnvironmentRepository(EntityRepository[Environment]):
    model = Environment
    label_column = "code"
    search_columns = ("code", "libelle")

    def _join_entries(self, stmt: Select) -> Select:
        return stmt.join(entry_environments, entry_environments.c.entry_id == Entry.id)

    def _entries_key(self) -> ColumnElement:
        return entry_environments.c.environment_id

    def _order_columns(self, owner_id: str | None) -> dict[str, Any]:
        return {**super()._order_columns(owner_id), "code": Environment.code}
