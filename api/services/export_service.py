"""Export service: flattens records into rows with French column names.

Each export kind loads every record (no pagination) and stores the rows as
a workbook. The returned id is used to build the download URL.
"""

from collections.abc import Awaitable, Callable
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from core.logger import get_logger
from core.permissions import LoggedUser
from repositories.entry_repository import EntryRepository
from repositories.export_repository import ExportRepository
from repositories.locality_repository import LocalityRepository
from repositories.species_repository import SpeciesRepository
from repositories.town_repository import TownRepository
from schemas import EntrySearchCriteria
from services.breeders import get_breeder_status_to_display
from services.entity_service import EntityService, require_user
from services.geography_service import department_service
from services.reference_service import (
    age_service,
    behavior_service,
    distance_estimate_service,
    environment_service,
    number_estimate_service,
    observer_service,
    sex_service,
    species_class_service,
    weather_service,
)
from services.species_service import entries_scope

logger = get_logger(__name__)

SEPARATOR_COMMA = ", "
COORDINATES_SUFFIX = " en degrés (GPS)"
BEHAVIOR_COLUMNS = 6
ENVIRONMENT_COLUMNS = 4

Rows = list[dict[str, Any]]


def _label_rows(column: str) -> Callable[[list[Any]], Rows]:
    return lambda records: [{column: record.libelle} for record in records]


def _code_label_rows(records: list[Any]) -> Rows:
    return [{"Code": record.code, "Libellé": record.libelle} for record in records]


def _simple_export(
    service: EntityService, to_rows: Callable[[list[Any]], Rows], sheet_name: str
) -> Callable[[AsyncSession], Awaitable[tuple[Rows, str]]]:
    async def load(db: AsyncSession) -> tuple[Rows, str]:
        return to_rows(await service.find_all(db)), sheet_name

    return load


async def _towns(db: AsyncSession) -> tuple[Rows, str]:
    rows = [
        {"Département": department_code, "Code": town.code, "Nom": town.nom}
        for town, department_code in await TownRepository(db).find_all_with_departments()
    ]
    return rows, "Communes"


async def _localities(db: AsyncSession) -> tuple[Rows, str]:
    rows = [
        {
            "Département": department_code,
            "Code commune": town_code,
            "Nom commune": town_name,
            "Lieu-dit": locality.nom,
            "Latitude": locality.latitude,
            "Longitude": locality.longitude,
            "Altitude": locality.altitude,
        }
        for locality, town_code, town_name, department_code in await LocalityRepository(
            db
        ).find_all_with_town_and_department()
    ]
    return rows, "Lieux-dits"


async def _species(db: AsyncSession) -> tuple[Rows, str]:
    rows = [
        {
            "Classe": class_name,
            "Code": species.code,
            "Nom français": species.nom_francais,
            "Nom scientifique": species.nom_latin,
        }
        for species, class_name in await SpeciesRepository(db).find_all_with_classes()
    ]
    return rows, "Espèces"


SIMPLE_EXPORTS: dict[str, Callable[[AsyncSession], Awaitable[tuple[Rows, str]]]] = {
    "ages": _simple_export(age_service, _label_rows("Âge"), "Âges"),
    "behaviors": _simple_export(behavior_service, _code_label_rows, "Comportements"),
    "departments": _simple_export(
        department_service,
        lambda records: [{"Département": record.code} for record in records],
        "Départements",
    ),
    "distance-estimates": _simple_export(
        distance_estimate_service,
        _label_rows("Estimation de la distance"),
        "Estimations de la distance",
    ),
    "environments": _simple_export(environment_service, _code_label_rows, "Milieux"),
    "localities": _localities,
    "number-estimates": _simple_export(
        number_estimate_service,
        _label_rows("Estimation du nombre"),
        "Estimations du nombre",
    ),
    "observers": _simple_export(
        observer_service, _label_rows("Observateur"), "Observateurs"
    ),
    "sexes": _simple_export(sex_service, _label_rows("Sexe"), "Sexes"),
    "species": _species,
    "classes": _simple_export(
        species_class_service, _label_rows("Classe"), "Classes"
    ),
    "towns": _towns,
    "weathers": _simple_export(weather_service, _label_rows("Météo"), "Météos"),
}

EXPORT_KINDS: tuple[str, ...] = (*SIMPLE_EXPORTS, "entries")


def _nth(values: list[str], index: int) -> str:
    return values[index] if index < len(values) else ""


def entry_export_row(row: Any) -> dict[str, Any]:
    """One workbook line from a find_for_export() row."""
    entry, inventory, locality = row.Entry, row.Inventory, row.Locality
    behaviors = [f"{b.code} - {b.libelle}" for b in entry.behaviors]
    environments = [f"{e.code} - {e.libelle}" for e in entry.environments]

    # Inventory coordinates override the locality ones
    customized = inventory.customized_coordinates
    coordinates = customized or locality.coordinates

    line: dict[str, Any] = {
        "ID": entry.id,
        "Observateur": row.observer_name,
        "Observateurs associés": SEPARATOR_COMMA.join(
            a.libelle for a in inventory.associates
        ),
        "Date": inventory.date,
        "Heure": inventory.heure,
        "Durée": inventory.duree,
        "Département": row.department_code,
        "Code commune": row.town_code,
        "Nom commune": row.town_name,
        "Lieu-dit": locality.nom,
        f"Latitude{COORDINATES_SUFFIX}": coordinates["latitude"],
        f"Longitude{COORDINATES_SUFFIX}": coordinates["longitude"],
        "Altitude en mètres": coordinates["altitude"],
        "Température en °C": inventory.temperature,
        "Météo": SEPARATOR_COMMA.join(w.libelle for w in inventory.weathers),
        "Classe": row.class_name,
        "Code espèce": row.Species.code,
        "Nom francais": row.Species.nom_francais,
        "Nom scientifique": row.Species.nom_latin,
        "Sexe": row.sex_name,
        "Âge": row.age_name,
        "Nombre d'individus": entry.number,
        "Estimation du nombre": row.number_estimate_name,
        "Estimation de la distance": row.distance_estimate_name,
        "Distance en mètres": entry.distance,
        "Nicheur": get_breeder_status_to_display(b.nicheur for b in entry.behaviors),
    }
    for i in range(BEHAVIOR_COLUMNS):
        line[f"Comportement {i + 1}"] = _nth(behaviors, i)
    for i in range(ENVIRONMENT_COLUMNS):
        line[f"Milieu {i + 1}"] = _nth(environments, i)
    line["Commentaires"] = entry.comment
    return line


async def generate_export(
    db: AsyncSession,
    kind: str,
    user: LoggedUser | None,
    criteria: EntrySearchCriteria | None = None,
) -> str:
    """Builds the export and returns its id.

    Raises:
        NotAllowedError: no authenticated caller, or fromAllUsers without
            the view-all permission.
        KeyError: unknown export kind.
    """
    user = require_user(user)

    if kind == "entries":
        criteria = criteria or EntrySearchCriteria()
        entries_scope(criteria.from_all_users, user)
        # Every user's entries only with the manage-all permission
        owner_id = (
            None
            if criteria.from_all_users and user.permissions.can_manage_all_entries
            else user.id
        )
        records = await EntryRepository(db).find_for_export(criteria, owner_id=owner_id)
        rows, sheet_name = [entry_export_row(r) for r in records], "Données"
    else:
        rows, sheet_name = await SIMPLE_EXPORTS[kind](db)

    export_id = await ExportRepository().store_export(rows, sheet_name)
    logger.info("export.generated", kind=kind, rows=len(rows), export_id=export_id)
    return export_id


def get_export(export_id: str) -> bytes | None:
    return ExportRepository().get_export(export_id)
