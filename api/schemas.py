"""Pydantic schemas for API request/response validation.

JSON keys are camelCase (``ownerId``, ``nomFrancais``). Python attribute names
match the ORM columns so that input models dump straight into repository values.
"""

import datetime as dt
import re
from typing import Annotated, Any, Generic, Literal, TypeVar

from pydantic import (
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    StringConstraints,
    field_validator,
    model_serializer,
)
from pydantic.alias_generators import to_camel

from core.permissions import Permissions
from models import BreederStatus

T = TypeVar("T")

# Ids are integers in the database and strings on the wire
EntityId = Annotated[str, BeforeValidator(str)]
OptionalEntityId = Annotated[
    str | None, BeforeValidator(lambda v: None if v is None else str(v))
]

TrimmedStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]

SortOrder = Literal["asc", "desc"]

_TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")
_DURATION_PATTERN = re.compile(r"^\d{2}:[0-5]\d$")


class ApiModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


def _ensure_unique(ids: list[int]) -> list[int]:
    if len(set(ids)) != len(ids):
        raise ValueError("ids must be unique")
    return ids


# =============================================================================
# Pagination and query parameters
# =============================================================================


class PaginationQuery(ApiModel):
    q: str | None = None
    sort_order: SortOrder | None = None
    page_number: int | None = Field(default=None, ge=1)
    page_size: int | None = Field(default=None, ge=1)


class LabelQueryParams(PaginationQuery):
    order_by: Literal["id", "libelle", "nbDonnees"] | None = None


class SpeciesClassQueryParams(PaginationQuery):
    order_by: Literal["id", "libelle", "nbEspeces", "nbDonnees"] | None = None


class BehaviorQueryParams(PaginationQuery):
    order_by: Literal["id", "code", "libelle", "nicheur", "nbDonnees"] | None = None


class EnvironmentQueryParams(PaginationQuery):
    order_by: Literal["id", "code", "libelle", "nbDonnees"] | None = None


class DepartmentQueryParams(PaginationQuery):
    order_by: (
        Literal["id", "code", "nbCommunes", "nbLieuxDits", "nbDonnees"] | None
    ) = None


class TownQueryParams(PaginationQuery):
    order_by: (
        Literal["id", "code", "nom", "departement", "nbLieuxDits", "nbDonnees"] | None
    ) = None
    department_id: int | None = None


class LocalityQueryParams(PaginationQuery):
    order_by: (
        Literal[
            "id",
            "nom",
            "altitude",
            "longitude",
            "latitude",
            "codeCommune",
            "nomCommune",
            "departement",
            "nbDonnees",
        ]
        | None
    ) = None
    town_id: int | None = None


class EntrySearchCriteria(ApiModel):
    """Filters shared by the entries list, the species list and the entries export."""

    observer_ids: list[int] = []
    from_date: dt.date | None = None
    to_date: dt.date | None = None
    department_ids: list[int] = []
    town_ids: list[int] = []
    locality_ids: list[int] = []
    class_ids: list[int] = []
    species_ids: list[int] = []
    sex_ids: list[int] = []
    age_ids: list[int] = []
    behavior_ids: list[int] = []
    breeders: list[BreederStatus] = []
    environment_ids: list[int] = []
    comment: str | None = None
    from_all_users: bool = False

    def has_filters(self) -> bool:
        return any(
            getattr(self, name)
            for name in EntrySearchCriteria.model_fields
            if name != "from_all_users"
        )


class SpeciesQueryParams(PaginationQuery, EntrySearchCriteria):
    order_by: (
        Literal["id", "code", "nomFrancais", "nomLatin", "nomClasse", "nbDonnees"]
        | None
    ) = None


class EntryQueryParams(PaginationQuery, EntrySearchCriteria):
    order_by: (
        Literal[
            "codeEspece",
            "nomFrancais",
            "nombre",
            "departement",
            "codeCommune",
            "nomCommune",
            "lieuDit",
            "date",
            "heure",
            "duree",
            "observateur",
        ]
        | None
    ) = None


class InventoryQueryParams(PaginationQuery):
    order_by: Literal["creationDate"] | None = None


class PaginationMeta(ApiModel):
    count: int
    page_number: int | None = None
    page_size: int | None = None

    @model_serializer(mode="wrap")
    def _omit_missing_page(self, handler: Any) -> dict[str, Any]:
        return {key: value for key, value in handler(self).items() if value is not None}


class PaginatedResponse(ApiModel, Generic[T]):
    data: list[T]
    meta: PaginationMeta


def get_pagination_metadata(count: int, params: PaginationQuery) -> PaginationMeta:
    """Page info is only echoed back when the caller paginated."""
    if params.page_number is not None and params.page_size is not None:
        return PaginationMeta(
            count=count, page_number=params.page_number, page_size=params.page_size
        )
    return PaginationMeta(count=count)


# =============================================================================
# Inputs
# =============================================================================


class LabelInput(ApiModel):
    libelle: TrimmedStr


class NumberEstimateInput(LabelInput):
    non_compte: bool = False


class BehaviorInput(ApiModel):
    code: TrimmedStr
    libelle: TrimmedStr
    nicheur: BreederStatus | None = None


class EnvironmentInput(ApiModel):
    code: TrimmedStr
    libelle: TrimmedStr


class DepartmentInput(ApiModel):
    code: TrimmedStr


class TownInput(ApiModel):
    code: int = Field(ge=1)
    nom: TrimmedStr
    department_id: int


class LocalityInput(ApiModel):
    town_id: int
    nom: TrimmedStr
    altitude: int = Field(ge=-1000, le=9000)
    longitude: float = Field(ge=-180, le=180)
    latitude: float = Field(ge=-90, le=90)


class SpeciesInput(ApiModel):
    class_id: int
    code: TrimmedStr
    nom_francais: TrimmedStr
    nom_latin: TrimmedStr


class CoordinatesInput(ApiModel):
    altitude: int = Field(ge=-1000, le=9000)
    longitude: float = Field(ge=-180, le=180)
    latitude: float = Field(ge=-90, le=90)


class InventoryInput(ApiModel):
    observer_id: int
    associate_ids: list[int] = []
    date: dt.date
    time: str | None = None
    duration: str | None = None
    locality_id: int
    coordinates: CoordinatesInput | None = None
    weather_ids: list[int] = []
    temperature: int | None = Field(default=None, ge=-50, le=100)
    migrate_donnees_if_matches_existing_inventaire: bool = False

    @field_validator("date")
    @classmethod
    def validate_date(cls, value: dt.date) -> dt.date:
        if not 1990 <= value.year <= 2100:
            raise ValueError("date must be between 1990 and 2100")
        return value

    @field_validator("time")
    @classmethod
    def validate_time(cls, value: str | None) -> str | None:
        if value is not None and not _TIME_PATTERN.match(value):
            raise ValueError("time must be formatted as HH:MM")
        return value

    @field_validator("duration")
    @classmethod
    def validate_duration(cls, value: str | None) -> str | None:
        if value is not None and not _DURATION_PATTERN.match(value):
            raise ValueError("duration must be formatted as HH:MM")
        return value

    @field_validator("associate_ids", "weather_ids")
    @classmethod
    def validate_unique_ids(cls, value: list[int]) -> list[int]:
        return _ensure_unique(value)


class EntryInput(ApiModel):
    inventory_id: int
    species_id: int
    sex_id: int
    age_id: int
    number_estimate_id: int
    number: int | None = Field(default=None, ge=1)
    distance_estimate_id: int | None = None
    distance: int | None = Field(default=None, ge=0)
    comment: str | None = None
    behavior_ids: list[int] = []
    environment_ids: list[int] = []

    @field_validator("behavior_ids", "environment_ids")
    @classmethod
    def validate_unique_ids(cls, value: list[int]) -> list[int]:
        return _ensure_unique(value)


# =============================================================================
# Responses
# =============================================================================


class EntityIdResponse(ApiModel):
    id: EntityId


class LabelResponse(ApiModel):
    id: EntityId
    owner_id: OptionalEntityId = None
    libelle: str


class NumberEstimateResponse(LabelResponse):
    non_compte: bool


class BehaviorResponse(ApiModel):
    id: EntityId
    owner_id: OptionalEntityId = None
    code: str
    libelle: str
    nicheur: BreederStatus | None = None


class EnvironmentResponse(ApiModel):
    id: EntityId
    owner_id: OptionalEntityId = None
    code: str
    libelle: str


class DepartmentResponse(ApiModel):
    id: EntityId
    owner_id: OptionalEntityId = None
    code: str


class TownResponse(ApiModel):
    id: EntityId
    owner_id: OptionalEntityId = None
    code: int
    nom: str
    department_id: EntityId


class Coordinates(ApiModel):
    altitude: int
    longitude: float
    latitude: float


class LocalityResponse(ApiModel):
    id: EntityId
    owner_id: OptionalEntityId = None
    nom: str
    town_id: EntityId
    coordinates: Coordinates


class SpeciesResponse(ApiModel):
    id: EntityId
    owner_id: OptionalEntityId = None
    code: str
    nom_francais: str
    nom_latin: str
    species_class: LabelResponse | None = None


class InventoryResponse(ApiModel):
    id: EntityId
    owner_id: OptionalEntityId = None
    observer: LabelResponse
    associates: list[LabelResponse]
    date: dt.date
    heure: str | None = None
    duree: str | None = None
    locality: LocalityResponse
    customized_coordinates: Coordinates | None = None
    temperature: int | None = None
    weathers: list[LabelResponse]


class EntryResponse(ApiModel):
    id: EntityId
    inventory_id: EntityId
    species: SpeciesResponse
    sex: LabelResponse
    age: LabelResponse
    number_estimate: NumberEstimateResponse
    number: int | None = None
    distance_estimate: LabelResponse | None = None
    distance: int | None = None
    behaviors: list[BehaviorResponse]
    environments: list[EnvironmentResponse]
    comment: str | None = None


class EntityInfo(ApiModel):
    can_be_deleted: bool
    own_entries_count: int


class DepartmentInfo(EntityInfo):
    localities_count: int
    towns_count: int


class TownInfo(EntityInfo):
    department_code: str
    localities_count: int


class LocalityInfo(EntityInfo):
    town_code: int
    town_name: str
    department_code: str


class SpeciesInfo(EntityInfo):
    # Only disclosed to users allowed to see every user's entries
    total_entries_count: int | None = None


class InventoryIndexResponse(ApiModel):
    index: int


class SimilarInventoryResponse(ApiModel):
    corresponding_inventory_found: EntityId


class SimilarEntryResponse(ApiModel):
    corresponding_entry_found: EntityId


# =============================================================================
# Users
# =============================================================================


class UserSettings(ApiModel):
    default_observer_id: int | None = None
    default_department_id: int | None = None
    default_age_id: int | None = None
    default_sex_id: int | None = None
    default_number_estimate_id: int | None = None
    default_number: int | None = Field(default=None, ge=1)
    display_associates: bool = False
    display_weather: bool = False
    display_distance: bool = False


class OidcUserResponse(ApiModel):
    sub: str
    provider: str
    name: str | None = None
    email: str | None = None
    roles: list[str] = []


class MeResponse(ApiModel):
    id: str
    settings: UserSettings
    user: OidcUserResponse
    permissions: Permissions


# =============================================================================
# Health
# =============================================================================


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    service: str


class PoolStatusResponse(BaseModel):
    pool_size: int
    checked_out: int
    overflow: int
    checked_in: int


class DetailedHealthResponse(HealthResponse):
    database: bool
    pool: PoolStatusResponse | None = None
