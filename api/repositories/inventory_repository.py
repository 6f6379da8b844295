"""Inventory repository."""

from typing import Any

from sqlalchemy import and_, asc, desc, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from models import Entry, Inventory, Observer, Weather
from repositories.utils import equals_or_null, is_unique_violation, log_slow_query
from services.exceptions import (
    AlreadyExistsError,
    IsUsedError,
    RequiredDataNotFoundError,
)

# Scalar columns compared when looking for an identical inventory
SIMILARITY_COLUMNS = (
    "owner_id",
    "observer_id",
    "date",
    "heure",
    "duree",
    "locality_id",
    "altitude",
    "longitude",
    "latitude",
    "temperature",
)


class InventoryRepository:
    """Repository for Inventory database operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    @log_slow_query("find_inventory_by_id")
    async def find_by_id(self, inventory_id: int) -> Inventory | None:
        return await self.db.get(Inventory, inventory_id)

    @log_slow_query("find_inventories")
    async def find_many(
        self,
        *,
        owner_id: str | None = None,
        order_by: str | None = None,
        sort_order: str | None = None,
        offset: int | None = None,
        limit: int | None = None,
    ) -> list[Inventory]:
        stmt = select(Inventory)
        if owner_id is not None:
            stmt = stmt.where(Inventory.owner_id == owner_id)

        if order_by == "creationDate" and sort_order == "asc":
            stmt = stmt.order_by(asc(Inventory.created_at), asc(Inventory.id))
        else:
            stmt = stmt.order_by(desc(Inventory.created_at), desc(Inventory.id))

        if offset is not None:
            stmt = stmt.offset(offset)
        if limit is not None:
            stmt = stmt.limit(limit)

        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    @log_slow_query("count_inventories")
    async def count(self, *, owner_id: str | None = None) -> int:
        stmt = select(func.count(Inventory.id))
        if owner_id is not None:
            stmt = stmt.where(Inventory.owner_id == owner_id)
        result = await self.db.execute(stmt)
        return result.scalar_one()

    @log_slow_query("find_inventory_index")
    async def find_index(self, inventory: Inventory, owner_id: str | None) -> int:
        """Position of the inventory among the owner's, newest first."""
        stmt = select(func.count(Inventory.id)).where(
            or_(
                Inventory.created_at > inventory.created_at,
                and_(
                    Inventory.created_at == inventory.created_at,
                    Inventory.id > inventory.id,
                ),
            )
        )
        if owner_id is not None:
            stmt = stmt.where(Inventory.owner_id == owner_id)
        result = await self.db.execute(stmt)
        return result.scalar_one()

    @log_slow_query("find_similar_inventory")
    async def find_existing(
        self,
        values: dict[str, Any],
        associate_ids: list[int],
        weather_ids: list[int],
    ) -> Inventory | None:
        stmt = select(Inventory).where(
            and_(
                *(
                    equals_or_null(getattr(Inventory, column), values[column])
                    for column in SIMILARITY_COLUMNS
                )
            )
        )
        result = await self.db.execute(stmt)
        for candidate in result.scalars().all():
            if set(candidate.associate_ids) == set(associate_ids) and set(
                candidate.weather_ids
            ) == set(weather_ids):
                return candidate
        return None

    async def _load_links(
        self, associate_ids: list[int], weather_ids: list[int]
    ) -> tuple[list[Observer], list[Weather]]:
        associates: list[Observer] = []
        weathers: list[Weather] = []
        if associate_ids:
            result = await self.db.execute(
                select(Observer).where(Observer.id.in_(associate_ids))
            )
            associates = list(result.scalars().all())
        if weather_ids:
            result = await self.db.execute(
                select(Weather).where(Weather.id.in_(weather_ids))
            )
            weathers = list(result.scalars().all())

        if len(associates) != len(set(associate_ids)) or len(weathers) != len(
            set(weather_ids)
        ):
            raise RequiredDataNotFoundError("Unknown associate or weather")
        return associates, weathers

    async def _flush_or_raise(self, *new_entities: Any) -> None:
        try:
            async with self.db.begin_nested():
                self.db.add_all(new_entities)
                await self.db.flush()
        except IntegrityError as e:
            if is_unique_violation(e):
                raise AlreadyExistsError(str(e.orig)) from e
            raise RequiredDataNotFoundError(str(e.orig)) from e

    @log_slow_query("create_inventory")
    async def create(
        self,
        values: dict[str, Any],
        associate_ids: list[int],
        weather_ids: list[int],
    ) -> Inventory:
        associates, weathers = await self._load_links(associate_ids, weather_ids)
        inventory = Inventory(**values, associates=associates, weathers=weathers)
        await self._flush_or_raise(inventory)
        return inventory

    @log_slow_query("update_inventory")
    async def update(
        self,
        inventory_id: int,
        values: dict[str, Any],
        associate_ids: list[int],
        weather_ids: list[int],
    ) -> Inventory | None:
        inventory = await self.find_by_id(inventory_id)
        if inventory is None:
            return None

        associates, weathers = await self._load_links(associate_ids, weather_ids)
        for key, value in values.items():
            setattr(inventory, key, value)
        inventory.associates = associates
        inventory.weathers = weathers
        await self._flush_or_raise()
        return inventory

    @log_slow_query("count_inventory_entries")
    async def entries_count(self, inventory_id: int) -> int:
        result = await self.db.execute(
            select(func.count(Entry.id)).where(Entry.inventory_id == inventory_id)
        )
        return result.scalar_one()

    @log_slow_query("delete_inventory")
    async def delete_by_id(self, inventory_id: int) -> Inventory | None:
        inventory = await self.find_by_id(inventory_id)
        if inventory is None:
            return None

        try:
            async with self.db.begin_nested():
                await self.db.delete(inventory)
                await self.db.flush()
        except IntegrityError as e:
            raise IsUsedError(str(e.orig)) from e
        return inventory
