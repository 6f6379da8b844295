"""Species repository.

Species can be listed through the entries search criteria: only the species
having at least one matching entry are returned.
"""

from typing import Any

from sqlalchemy import ColumnElement, Select, select

from models import Entry, Inventory, Species, SpeciesClass
from repositories.entity_repository import EntityRepository
from repositories.entry_repository import apply_entry_criteria
from repositories.utils import log_slow_query
from schemas import EntrySearchCriteria


class SpeciesRepository(EntityRepository[Species]):
    model = Species
    label_column = "code"
    search_columns = ("code", "nom_francais", "nom_latin")

    def _base_query(self) -> Select:
        return select(Species).outerjoin(
            SpeciesClass, Species.class_id == SpeciesClass.id
        )

    def _apply_filters(
        self,
        stmt: Select,
        *,
        q: str | None = None,
        criteria: EntrySearchCriteria | None = None,
        entries_owner_id: str | None = None,
        **filters: Any,
    ) -> Select:
        stmt = super()._apply_filters(stmt, q=q, **filters)
        if criteria is not None and criteria.has_filters():
            matching = (
                select(Entry.species_id)
                .join(Inventory, Entry.inventory_id == Inventory.id)
                .correlate(None)
            )
            matching = apply_entry_criteria(matching, criteria, entries_owner_id)
            stmt = stmt.where(Species.id.in_(matching))
        return stmt

    def _entries_key(self) -> ColumnElement:
        return Entry.species_id

    def _order_columns(self, owner_id: str | None) -> dict[str, Any]:
        return {
            "id": Species.id,
            "code": Species.code,
            "nomFrancais": Species.nom_francais,
            "nomLatin": Species.nom_latin,
            "nomClasse": SpeciesClass.libelle,
            "nbDonnees": self._entries_count_subquery(owner_id),
        }

    @log_slow_query("find_all_species_with_classes")
    async def find_all_with_classes(self) -> list[Any]:
        """(species, class_name) rows ordered by species code."""
        result = await self.db.execute(
            select(Species, SpeciesClass.libelle.label("class_name"))
            .outerjoin(SpeciesClass, Species.class_id == SpeciesClass.id)
            .order_by(Species.code)
        )
        return list(result.all())
