"""Routers for the reference tables built from the entity router factory."""

from routes.entity_routes import build_entity_router
from schemas import (
    BehaviorInput,
    BehaviorQueryParams,
    BehaviorResponse,
    DepartmentInfo,
    DepartmentInput,
    DepartmentQueryParams,
    DepartmentResponse,
    EnvironmentInput,
    EnvironmentQueryParams,
    EnvironmentResponse,
    LabelInput,
    LabelQueryParams,
    LabelResponse,
    LocalityInfo,
    LocalityInput,
    LocalityQueryParams,
    LocalityResponse,
    NumberEstimateInput,
    NumberEstimateResponse,
    SpeciesClassQueryParams,
    TownInfo,
    TownInput,
    TownQueryParams,
    TownResponse,
)
from services.geography_service import (
    department_service,
    locality_service,
    town_service,
)
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


def _label_router(prefix: str, tag: str, service, query_model=LabelQueryParams):
    return build_entity_router(
        prefix=prefix,
        tag=tag,
        service=service,
        input_model=LabelInput,
        response_model=LabelResponse,
        query_model=query_model,
    )


ages_router = _label_router("ages", "age", age_service)
sexes_router = _label_router("sexes", "sex", sex_service)
weathers_router = _label_router("weathers", "weather", weather_service)
observers_router = _label_router("observers", "observer", observer_service)
species_classes_router = _label_router(
    "classes", "species class", species_class_service, SpeciesClassQueryParams
)
distance_estimates_router = _label_router(
    "distance-estimates", "distance estimate", distance_estimate_service
)

number_estimates_router = build_entity_router(
    prefix="number-estimates",
    tag="number estimate",
    service=number_estimate_service,
    input_model=NumberEstimateInput,
    response_model=NumberEstimateResponse,
    query_model=LabelQueryParams,
)

behaviors_router = build_entity_router(
    prefix="behaviors",
    tag="behavior",
    service=behavior_service,
    input_model=BehaviorInput,
    response_model=BehaviorResponse,
    query_model=BehaviorQueryParams,
)

environments_router = build_entity_router(
    prefix="environments",
    tag="environment",
    service=environment_service,
    input_model=EnvironmentInput,
    response_model=EnvironmentResponse,
    query_model=EnvironmentQueryParams,
)

departments_router = build_entity_router(
    prefix="departments",
    tag="department",
    service=department_service,
    input_model=DepartmentInput,
    response_model=DepartmentResponse,
    query_model=DepartmentQueryParams,
    info_model=DepartmentInfo,
)

towns_router = build_entity_router(
    prefix="towns",
    tag="town",
    service=town_service,
    input_model=TownInput,
    response_model=TownResponse,
    query_model=TownQueryParams,
    info_model=TownInfo,
    filter_names=("department_id",),
)

localities_router = build_entity_router(
    prefix="localities",
    tag="locality",
    service=locality_service,
    input_model=LocalityInput,
    response_model=LocalityResponse,
    query_model=LocalityQueryParams,
    info_model=LocalityInfo,
    filter_names=("town_id",),
)

routers = [
    ages_router,
    behaviors_router,
    departments_router,
    distance_estimates_router,
    environments_router,
    localities_router,
    number_estimates_router,
    observers_router,
    sexes_router,
    species_classes_router,
    towns_router,
    weathers_router,
]
