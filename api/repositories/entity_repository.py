"""Generic repository for the reference tables (ages, species, towns...).

Subclasses declare the model, the searchable columns and how entries
reference the entity. The base class derives listing, ordering by entries
count, usage checks and the create/update/delete plumbing from that.
"""

from typing import Any, Generic, TypeVar

from sqlalchemy import ColumnElement, Select, asc, desc, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from models import Entry, Inventory
from repositories.utils import is_unique_violation, log_slow_query
from services.exceptions import (
    AlreadyExistsError,
    IsUsedError,
    RequiredDataNotFoundError,
)

M = TypeVar("M")


class EntityRepository(Generic[M]):
    model: type[M]
    # Column used by find_all() ordering
    label_column: str = "libelle"
    search_columns: tuple[str, ...] = ("libelle",)

    def __init__(self, db: AsyncSession):
        self.db = db

    # -------------------------------------------------------------------------
    # Hooks
    # -------------------------------------------------------------------------

    def _entries_key(self) -> ColumnElement:
        """Column of the entries query holding this entity's id."""
        raise NotImplementedError

    def _join_entries(self, stmt: Select) -> Select:
        """Extra joins needed to reach ``_entries_key()`` from entries/inventories."""
        return stmt

    def _base_query(self) -> Select:
        return select(self.model)

    def _apply_filters(
        self, stmt: Select, *, q: str | None = None, **filters: Any
    ) -> Select:
        if q:
            pattern = f"%{q}%"
            stmt = stmt.where(
                or_(
                    *(
                        getattr(self.model, column).ilike(pattern)
                        for column in self.search_columns
                    )
                )
            )
        return stmt

    def _order_columns(self, owner_id: str | None) -> dict[str, Any]:
        return {
            "id": self.model.id,
            "libelle": self.model.libelle,
            "nbDonnees": self._entries_count_subquery(owner_id),
        }

    # -------------------------------------------------------------------------
    # Entries counting
    # -------------------------------------------------------------------------

    def _entries_count_statement(
        self, entity_id: Any, owner_id: str | None = None
    ) -> Select:
        stmt = (
            select(func.count(Entry.id))
            .select_from(Entry)
            .join(Inventory, Entry.inventory_id == Inventory.id)
        )
        stmt = self._join_entries(stmt).where(self._entries_key() == entity_id)
        if owner_id is not None:
            stmt = stmt.where(Inventory.owner_id == owner_id)
        return stmt

    def _entries_count_subquery(self, owner_id: str | None):
        return (
            self._entries_count_statement(self.model.id, owner_id)
            .correlate(self.model)
            .scalar_subquery()
        )

    @log_slow_query("count_entity_entries")
    async def entries_count(self, entity_id: int, owner_id: str | None = None) -> int:
        result = await self.db.execute(
            self._entries_count_statement(entity_id, owner_id)
        )
        return result.scalar_one()

    async def usage_count(self, entity_id: int) -> int:
        """Number of records preventing deletion. Entries by default."""
        return await self.entries_count(entity_id)

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    @log_slow_query("find_entity_by_id")
    async def find_by_id(self, entity_id: int) -> M | None:
        return await self.db.get(self.model, entity_id)

    @log_slow_query("find_entities_by_ids")
    async def find_by_ids(self, entity_ids: list[int]) -> list[M]:
        if not entity_ids:
            return []
        result = await self.db.execute(
            select(self.model)
            .where(self.model.id.in_(entity_ids))
            .order_by(self.model.id)
        )
        return list(result.scalars().all())

    @log_slow_query("find_all_entities")
    async def find_all(self) -> list[M]:
        result = await self.db.execute(
            select(self.model).order_by(getattr(self.model, self.label_column))
        )
        return list(result.scalars().all())

    @log_slow_query("find_entities")
    async def find_many(
        self,
        *,
        q: str | None = None,
        order_by: str | None = None,
        sort_order: str | None = None,
        offset: int | None = None,
        limit: int | None = None,
        owner_id: str | None = None,
        **filters: Any,
    ) -> list[M]:
        """Filtered listing.

        ``owner_id`` scopes the ``nbDonnees`` ordering to that user's entries.
        """
        stmt = self._apply_filters(self._base_query(), q=q, **filters)

        if order_by:
            column = self._order_columns(owner_id)[order_by]
            stmt = stmt.order_by(desc(column) if sort_order == "desc" else asc(column))
        stmt = stmt.order_by(self.model.id)

        if offset is not None:
            stmt = stmt.offset(offset)
        if limit is not None:
            stmt = stmt.limit(limit)

        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    @log_slow_query("count_entities")
    async def count(self, *, q: str | None = None, **filters: Any) -> int:
        stmt = self._apply_filters(self._base_query(), q=q, **filters)
        result = await self.db.execute(
            select(func.count()).select_from(stmt.subquery())
        )
        return result.scalar_one()

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    async def _flush_or_raise(self, *new_entities: Any) -> None:
        """Flush in a savepoint so a constraint failure keeps the request usable."""
        try:
            async with self.db.begin_nested():
                self.db.add_all(new_entities)
                await self.db.flush()
        except IntegrityError as e:
            if is_unique_violation(e):
                raise AlreadyExistsError(str(e.orig)) from e
            raise RequiredDataNotFoundError(str(e.orig)) from e

    @log_slow_query("create_entity")
    async def create(self, values: dict[str, Any]) -> M:
        entity = self.model(**values)
        await self._flush_or_raise(entity)
        return entity

    @log_slow_query("create_entities")
    async def create_many(self, values_list: list[dict[str, Any]]) -> list[M]:
        entities = [self.model(**values) for values in values_list]
        await self._flush_or_raise(*entities)
        return entities

    @log_slow_query("update_entity")
    async def update(self, entity_id: int, values: dict[str, Any]) -> M | None:
        entity = await self.find_by_id(entity_id)
        if entity is None:
            return None

        for key, value in values.items():
            setattr(entity, key, value)
        await self._flush_or_raise()
        return entity

    @log_slow_query("delete_entity")
    async def delete_by_id(self, entity_id: int) -> M | None:
        """Returns the deleted record, or None when it was already absent.

        A foreign key still pointing at the row surfaces as IsUsedError.
        """
        entity = await self.find_by_id(entity_id)
        if entity is None:
            return None

        try:
            async with self.db.begin_nested():
                await self.db.delete(entity)
                await self.db.flush()
        except IntegrityError as e:
            raise IsUsedError(str(e.orig)) from e
        return entity
