"""Entry repository: observations and their search criteria."""

from typing import Any

from sqlalchemy import Select, and_, asc, desc, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from models import (
    Age,
    Behavior,
    Department,
    DistanceEstimate,
    Entry,
    Environment,
    Inventory,
    Locality,
    NumberEstimate,
    Observer,
    Sex,
    Species,
    SpeciesClass,
    Town,
    entry_behaviors,
    entry_environments,
)
from repositories.utils import equals_or_null, is_unique_violation, log_slow_query
from schemas import EntrySearchCriteria
from services.exceptions import (
    AlreadyExistsError,
    IsUsedError,
    RequiredDataNotFoundError,
)

# Scalar columns compared when looking for a duplicate entry
SIMILARITY_COLUMNS = (
    "inventory_id",
    "species_id",
    "sex_id",
    "age_id",
    "number_estimate_id",
    "number",
    "distance_estimate_id",
    "distance",
    "comment",
)


def apply_entry_criteria(
    stmt: Select, criteria: EntrySearchCriteria, owner_id: str | None = None
) -> Select:
    """Narrow a statement selecting from entries joined to inventories.

    Filters go through uncorrelated IN subqueries so the caller is free to
    join localities, towns or species for its own purposes.
    """
    if owner_id is not None:
        stmt = stmt.where(Inventory.owner_id == owner_id)
    if criteria.observer_ids:
        stmt = stmt.where(Inventory.observer_id.in_(criteria.observer_ids))
    if criteria.from_date is not None:
        stmt = stmt.where(Inventory.date >= criteria.from_date)
    if criteria.to_date is not None:
        stmt = stmt.where(Inventory.date <= criteria.to_date)
    if criteria.locality_ids:
        stmt = stmt.where(Inventory.locality_id.in_(criteria.locality_ids))
    if criteria.town_ids:
        stmt = stmt.where(
            Inventory.locality_id.in_(
                select(Locality.id)
                .where(Locality.town_id.in_(criteria.town_ids))
                .correlate(None)
            )
        )
    if criteria.department_ids:
        stmt = stmt.where(
            Inventory.locality_id.in_(
                select(Locality.id)
                .join(Town, Locality.town_id == Town.id)
                .where(Town.department_id.in_(criteria.department_ids))
                .correlate(None)
            )
        )
    if criteria.species_ids:
        stmt = stmt.where(Entry.species_id.in_(criteria.species_ids))
    if criteria.class_ids:
        stmt = stmt.where(
            Entry.species_id.in_(
                select(Species.id)
                .where(Species.class_id.in_(criteria.class_ids))
                .correlate(None)
            )
        )
    if criteria.sex_ids:
        stmt = stmt.where(Entry.sex_id.in_(criteria.sex_ids))
    if criteria.age_ids:
        stmt = stmt.where(Entry.age_id.in_(criteria.age_ids))
    if criteria.behavior_ids:
        stmt = stmt.where(
            Entry.id.in_(
                select(entry_behaviors.c.entry_id)
                .where(entry_behaviors.c.behavior_id.in_(criteria.behavior_ids))
                .correlate(None)
            )
        )
    if criteria.breeders:
        stmt = stmt.where(
            Entry.id.in_(
                select(entry_behaviors.c.entry_id)
                .join(Behavior, entry_behaviors.c.behavior_id == Behavior.id)
                .where(Behavior.nicheur.in_(criteria.breeders))
                .correlate(None)
            )
        )
    if criteria.environment_ids:
        stmt = stmt.where(
            Entry.id.in_(
                select(entry_environments.c.entry_id)
                .where(
                    entry_environments.c.environment_id.in_(criteria.environment_ids)
                )
                .correlate(None)
            )
        )
    if criteria.comment:
        stmt = stmt.where(Entry.comment.ilike(f"%{criteria.comment}%"))
    return stmt


class EntryRepository:
    """Repository for Entry database operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    @staticmethod
    def _listing_query() -> Select:
        # Every join is on a non-null foreign key, so inner joins keep all entries
        return (
            select(Entry)
            .join(Inventory, Entry.inventory_id == Inventory.id)
            .join(Species, Entry.species_id == Species.id)
            .join(Observer, Inventory.observer_id == Observer.id)
            .join(Locality, Inventory.locality_id == Locality.id)
            .join(Town, Locality.town_id == Town.id)
            .join(Department, Town.department_id == Department.id)
        )

    _ORDER_COLUMNS = {
        "codeEspece": Species.code,
        "nomFrancais": Species.nom_francais,
        "nombre": Entry.number,
        "departement": Department.code,
        "codeCommune": Town.code,
        "nomCommune": Town.nom,
        "lieuDit": Locality.nom,
        "date": Inventory.date,
        "heure": Inventory.heure,
        "duree": Inventory.duree,
        "observateur": Observer.libelle,
    }

    @log_slow_query("find_entry_by_id")
    async def find_by_id(self, entry_id: int) -> Entry | None:
        return await self.db.get(Entry, entry_id)

    @log_slow_query("find_entries")
    async def find_many(
        self,
        criteria: EntrySearchCriteria,
        *,
        order_by: str | None = None,
        sort_order: str | None = None,
        offset: int | None = None,
        limit: int | None = None,
        owner_id: str | None = None,
    ) -> list[Entry]:
        stmt = apply_entry_criteria(self._listing_query(), criteria, owner_id)

        if order_by:
            column = self._ORDER_COLUMNS[order_by]
            stmt = stmt.order_by(desc(column) if sort_order == "desc" else asc(column))
        stmt = stmt.order_by(Entry.id.desc())

        if offset is not None:
            stmt = stmt.offset(offset)
        if limit is not None:
            stmt = stmt.limit(limit)

        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    @log_slow_query("count_entries")
    async def count(
        self, criteria: EntrySearchCriteria, *, owner_id: str | None = None
    ) -> int:
        stmt = (
            select(func.count(Entry.id))
            .select_from(Entry)
            .join(Inventory, Entry.inventory_id == Inventory.id)
        )
        result = await self.db.execute(apply_entry_criteria(stmt, criteria, owner_id))
        return result.scalar_one()

    @log_slow_query("find_similar_entry")
    async def find_existing(
        self,
        values: dict[str, Any],
        behavior_ids: list[int],
        environment_ids: list[int],
    ) -> Entry | None:
        """An entry with the same fields, behaviors and environments."""
        stmt = select(Entry).where(
            and_(*(equals_or_null(getattr(Entry, c), values[c]) for c in SIMILARITY_COLUMNS))
        )
        result = await self.db.execute(stmt)
        for candidate in result.scalars().all():
            if set(candidate.behavior_ids) == set(behavior_ids) and set(
                candidate.environment_ids
            ) == set(environment_ids):
                return candidate
        return None

    async def _load_links(
        self, behavior_ids: list[int], environment_ids: list[int]
    ) -> tuple[list[Behavior], list[Environment]]:
        behaviors = list(
            (
                await self.db.execute(
                    select(Behavior).where(Behavior.id.in_(behavior_ids))
                )
            )
            .scalars()
            .all()
        )
        environments = list(
            (
                await self.db.execute(
                    select(Environment).where(Environment.id.in_(environment_ids))
                )
            )
            .scalars()
            .all()
        )
        if len(behaviors) != len(set(behavior_ids)) or len(environments) != len(
            set(environment_ids)
        ):
            raise RequiredDataNotFoundError("Unknown behavior or environment")
        return behaviors, environments

    async def _flush_or_raise(self, *new_entities: Any) -> None:
        try:
            async with self.db.begin_nested():
                self.db.add_all(new_entities)
                await self.db.flush()
        except IntegrityError as e:
            if is_unique_violation(e):
                raise AlreadyExistsError(str(e.orig)) from e
            raise RequiredDataNotFoundError(str(e.orig)) from e

    @log_slow_query("create_entry")
    async def create(
        self,
        values: dict[str, Any],
        behavior_ids: list[int],
        environment_ids: list[int],
    ) -> Entry:
        behaviors, environments = await self._load_links(behavior_ids, environment_ids)
        entry = Entry(**values, behaviors=behaviors, environments=environments)
        await self._flush_or_raise(entry)
        return entry

    @log_slow_query("update_entry")
    async def update(
        self,
        entry_id: int,
        values: dict[str, Any],
        behavior_ids: list[int],
        environment_ids: list[int],
    ) -> Entry | None:
        entry = await self.find_by_id(entry_id)
        if entry is None:
            return None

        behaviors, environments = await self._load_links(behavior_ids, environment_ids)
        for key, value in values.items():
            setattr(entry, key, value)
        entry.behaviors = behaviors
        entry.environments = environments
        await self._flush_or_raise()
        return entry

    @log_slow_query("move_entries")
    async def move_to_inventory(self, from_inventory_id: int, to_inventory_id: int) -> None:
        await self.db.execute(
            update(Entry)
            .where(Entry.inventory_id == from_inventory_id)
            .values(inventory_id=to_inventory_id)
            .execution_options(synchronize_session="fetch")
        )

    @log_slow_query("delete_entry")
    async def delete_by_id(self, entry_id: int) -> Entry | None:
        entry = await self.find_by_id(entry_id)
        if entry is None:
            return None

        try:
            async with self.db.begin_nested():
                await self.db.delete(entry)
                await self.db.flush()
        except IntegrityError as e:
            raise IsUsedError(str(e.orig)) from e
        return entry

    @log_slow_query("find_entries_for_export")
    async def find_for_export(
        self, criteria: EntrySearchCriteria, *, owner_id: str | None = None
    ) -> list[Any]:
        """Flattened rows: the entry with every label an export needs."""
        stmt = (
            select(
                Entry,
                Inventory,
                Observer.libelle.label("observer_name"),
                Locality,
                Town.code.label("town_code"),
                Town.nom.label("town_name"),
                Department.code.label("department_code"),
                Species,
                SpeciesClass.libelle.label("class_name"),
                Sex.libelle.label("sex_name"),
                Age.libelle.label("age_name"),
                NumberEstimate.libelle.label("number_estimate_name"),
                DistanceEstimate.libelle.label("distance_estimate_name"),
            )
            .select_from(Entry)
            .join(Inventory, Entry.inventory_id == Inventory.id)
            .join(Observer, Inventory.observer_id == Observer.id)
            .join(Locality, Inventory.locality_id == Locality.id)
            .join(Town, Locality.town_id == Town.id)
            .join(Department, Town.department_id == Department.id)
            .join(Species, Entry.species_id == Species.id)
            .outerjoin(SpeciesClass, Species.class_id == SpeciesClass.id)
            .join(Sex, Entry.sex_id == Sex.id)
            .join(Age, Entry.age_id == Age.id)
            .join(NumberEstimate, Entry.number_estimate_id == NumberEstimate.id)
            .outerjoin(
                DistanceEstimate, Entry.distance_estimate_id == DistanceEstimate.id
            )
        )
        stmt = apply_entry_criteria(stmt, criteria, owner_id).order_by(
            Inventory.date, Inventory.heure, Entry.id
        )
        result = await self.db.execute(stmt)
        return list(result.all())
