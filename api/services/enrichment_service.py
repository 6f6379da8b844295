"""Builds response payloads that embed related records.

Lookups go through the entity services, so an anonymous caller is rejected
with NotAllowedError. A reference that points to nothing raises
ExtendedDataNotFoundError: the database should not allow it, so the caller
is told the payload could not be built rather than that the record is absent.
"""

from collections.abc import Sequence
from typing import TypeVar

from sqlalchemy.ext.asyncio import AsyncSession

from core.permissions import LoggedUser
from models import Entry, Inventory, Species
from schemas import (
    BehaviorResponse,
    EntryResponse,
    EnvironmentResponse,
    InventoryResponse,
    LabelResponse,
    LocalityResponse,
    NumberEstimateResponse,
    SpeciesResponse,
)
from services.entity_service import EntityService
from services.exceptions import ExtendedDataNotFoundError
from services.geography_service import locality_service
from services.reference_service import (
    age_service,
    distance_estimate_service,
    number_estimate_service,
    observer_service,
    sex_service,
    species_class_service,
)
from services.species_service import species_service

M = TypeVar("M")


async def _load_map(
    db: AsyncSession,
    service: EntityService[M],
    ids: set[int | None],
    user: LoggedUser | None,
) -> dict[int, M]:
    wanted = sorted(i for i in ids if i is not None)
    records = await service.find_by_ids(db, wanted, user)
    return {record.id: record for record in records}


def _lookup(records: dict[int, M], key: int, what: str, owner: str) -> M:
    record = records.get(key)
    if record is None:
        raise ExtendedDataNotFoundError(f"{what} {key} of {owner} not found")
    return record


async def enrich_species_list(
    db: AsyncSession, species: Sequence[Species], user: LoggedUser | None
) -> list[SpeciesResponse]:
    classes = await _load_map(
        db, species_class_service, {s.class_id for s in species}, user
    )

    responses = []
    for s in species:
        species_class = None
        if s.class_id is not None:
            species_class = LabelResponse.model_validate(
                _lookup(classes, s.class_id, "Class", f"species {s.id}")
            )
        responses.append(
            SpeciesResponse(
                id=s.id,
                owner_id=s.owner_id,
                code=s.code,
                nom_francais=s.nom_francais,
                nom_latin=s.nom_latin,
                species_class=species_class,
            )
        )
    return responses


async def enrich_species(
    db: AsyncSession, species: Species, user: LoggedUser | None
) -> SpeciesResponse:
    return (await enrich_species_list(db, [species], user))[0]


async def enrich_inventories(
    db: AsyncSession, inventories: Sequence[Inventory], user: LoggedUser | None
) -> list[InventoryResponse]:
    observers = await _load_map(
        db, observer_service, {i.observer_id for i in inventories}, user
    )
    localities = await _load_map(
        db, locality_service, {i.locality_id for i in inventories}, user
    )

    responses = []
    for inventory in inventories:
        owner = f"inventory {inventory.id}"
        responses.append(
            InventoryResponse(
                id=inventory.id,
                owner_id=inventory.owner_id,
                observer=LabelResponse.model_validate(
                    _lookup(observers, inventory.observer_id, "Observer", owner)
                ),
                associates=[
                    LabelResponse.model_validate(a) for a in inventory.associates
                ],
                date=inventory.date,
                heure=inventory.heure,
                duree=inventory.duree,
                locality=LocalityResponse.model_validate(
                    _lookup(localities, inventory.locality_id, "Locality", owner)
                ),
                customized_coordinates=inventory.customized_coordinates,
                temperature=inventory.temperature,
                weathers=[LabelResponse.model_validate(w) for w in inventory.weathers],
            )
        )
    return responses


async def enrich_inventory(
    db: AsyncSession, inventory: Inventory, user: LoggedUser | None
) -> InventoryResponse:
    return (await enrich_inventories(db, [inventory], user))[0]


async def enrich_entries(
    db: AsyncSession, entries: Sequence[Entry], user: LoggedUser | None
) -> list[EntryResponse]:
    species = await _load_map(db, species_service, {e.species_id for e in entries}, user)
    enriched_species = dict(
        zip(species, await enrich_species_list(db, list(species.values()), user))
    )
    sexes = await _load_map(db, sex_service, {e.sex_id for e in entries}, user)
    ages = await _load_map(db, age_service, {e.age_id for e in entries}, user)
    number_estimates = await _load_map(
        db, number_estimate_service, {e.number_estimate_id for e in entries}, user
    )
    distance_estimates = await _load_map(
        db, distance_estimate_service, {e.distance_estimate_id for e in entries}, user
    )

    responses = []
    for entry in entries:
        owner = f"entry {entry.id}"
        distance_estimate = None
        if entry.distance_estimate_id is not None:
            distance_estimate = LabelResponse.model_validate(
                _lookup(
                    distance_estimates,
                    entry.distance_estimate_id,
                    "Distance estimate",
                    owner,
                )
            )
        responses.append(
            EntryResponse(
                id=entry.id,
                inventory_id=entry.inventory_id,
                species=_lookup(enriched_species, entry.species_id, "Species", owner),
                sex=LabelResponse.model_validate(
                    _lookup(sexes, entry.sex_id, "Sex", owner)
                ),
                age=LabelResponse.model_validate(
                    _lookup(ages, entry.age_id, "Age", owner)
                ),
                number_estimate=NumberEstimateResponse.model_validate(
                    _lookup(
                        number_estimates,
                        entry.number_estimate_id,
                        "Number estimate",
                        owner,
                    )
                ),
                number=entry.number,
                distance_estimate=distance_estimate,
                distance=entry.distance,
                behaviors=[BehaviorResponse.model_validate(b) for b in entry.behaviors],
                environments=[
                    EnvironmentResponse.model_validate(e) for e in entry.environments
                ],
                comment=entry.comment,
            )
        )
    return responses


async def enrich_entry(
    db: AsyncSession, entry: Entry, user: LoggedUser | None
) -> EntryResponse:
    return (await enrich_entries(db, [entry], user))[0]
