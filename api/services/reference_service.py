"""Services for the label-like reference tables."""

from models import (
    Age,
    Behavior,
    DistanceEstimate,
    Environment,
    NumberEstimate,
    Observer,
    Sex,
    SpeciesClass,
    Weather,
)
from repositories.reference_repository import (
    AgeRepository,
    BehaviorRepository,
    DistanceEstimateRepository,
    EnvironmentRepository,
    NumberEstimateRepository,
    ObserverRepository,
    SexRepository,
    SpeciesClassRepository,
    WeatherRepository,
)
from services.entity_service import EntityService

age_service: EntityService[Age] = EntityService(AgeRepository, "age")
sex_service: EntityService[Sex] = EntityService(SexRepository, "sex")
weather_service: EntityService[Weather] = EntityService(WeatherRepository, "weather")
observer_service: EntityService[Observer] = EntityService(
    ObserverRepository, "observer"
)
species_class_service: EntityService[SpeciesClass] = EntityService(
    SpeciesClassRepository, "species_class"
)
distance_estimate_service: EntityService[DistanceEstimate] = EntityService(
    DistanceEstimateRepository, "distance_estimate"
)
number_estimate_service: EntityService[NumberEstimate] = EntityService(
    NumberEstimateRepository, "number_estimate"
)
behavior_service: EntityService[Behavior] = EntityService(
    BehaviorRepository, "behavior"
)
environment_service: EntityService[Environment] = EntityService(
    EnvironmentRepository, "environment"
)
