"""Repository layer for database operations.

Repositories encapsulate all database queries, keeping routes thin and focused
on HTTP handling. Services build them from the request session, so unit
tests patch the repository classes with mocks.
"""

from repositories.department_repository import DepartmentRepository
from repositories.entity_repository import EntityRepository
from repositories.entry_repository import EntryRepository
from repositories.export_repository import ExportRepository
from repositories.inventory_repository import InventoryRepository
from repositories.locality_repository import LocalityRepository
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
from repositories.species_repository import SpeciesRepository
from repositories.town_repository import TownRepository
from repositories.user_repository import UserRepository
from repositories.utils import log_slow_query

__all__ = [
    "AgeRepository",
    "BehaviorRepository",
    "DepartmentRepository",
    "DistanceEstimateRepository",
    "EntityRepository",
    "EntryRepository",
    "EnvironmentRepository",
    "ExportRepository",
    "InventoryRepository",
    "LocalityRepository",
    "NumberEstimateRepository",
    "ObserverRepository",
    "SexRepository",
    "SpeciesClassRepository",
    "SpeciesRepository",
    "TownRepository",
    "UserRepository",
    "WeatherRepository",
    "log_slow_query",
]
