"""Factory Boy factories for generating test data.

Factories build ORM instances with sensible defaults; ``create_async``
persists them. Related records are passed explicitly by id.

Usage:
    department = await create_async(DepartmentFactory, db_session)
    town = await create_async(TownFactory, db_session, department_id=department.id)
"""

import datetime as dt

import factory
from faker import Faker
from sqlalchemy.ext.asyncio import AsyncSession

from core.permissions import LoggedUser, Role, get_permissions
from models import (
    Age,
    Behavior,
    BreederStatus,
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
    User,
    Weather,
)

fake = Faker("fr_FR")

# Accounts seeded by the ``accounts`` fixture, one per role
ADMIN_ID = "00000000-0000-4000-8000-000000000001"
CONTRIBUTOR_ID = "00000000-0000-4000-8000-000000000002"
USER_ID = "00000000-0000-4000-8000-000000000003"
NO_ROLE_ID = "00000000-0000-4000-8000-000000000004"

PROVIDER = "zitadel"


def make_logged_user(role: Role = Role.USER, user_id: str = USER_ID) -> LoggedUser:
    return LoggedUser(id=user_id, role=role, permissions=get_permissions(role))


# =============================================================================
# Async Factory Helpers
# =============================================================================


async def create_async(
    factory_class: type[factory.Factory], db: AsyncSession, **kwargs
):
    """Create an instance using a factory and persist to database.

    Usage:
        age = await create_async(AgeFactory, db_session, libelle="Adulte")
    """
    instance = factory_class.build(**kwargs)
    db.add(instance)
    await db.flush()
    await db.refresh(instance)
    return instance


async def create_batch_async(
    factory_class: type[factory.Factory], db: AsyncSession, size: int, **kwargs
):
    """Create multiple instances and persist to database."""
    instances = factory_class.build_batch(size, **kwargs)
    db.add_all(instances)
    await db.flush()
    for instance in instances:
        await db.refresh(instance)
    return instances


# =============================================================================
# Users
# =============================================================================


class UserFactory(factory.Factory):
    class Meta:
        model = User

    id = factory.LazyFunction(lambda: fake.uuid4())
    ext_provider_name = "zitadel"
    ext_provider_id = factory.Sequence(lambda n: f"sub-{n}")
    settings = factory.LazyFunction(dict)


# =============================================================================
# Reference tables
# =============================================================================


class AgeFactory(factory.Factory):
    class Meta:
        model = Age

    libelle = factory.Sequence(lambda n: f"Âge {n}")


class SexFactory(factory.Factory):
    class Meta:
        model = Sex

    libelle = factory.Sequence(lambda n: f"Sexe {n}")


class WeatherFactory(factory.Factory):
    class Meta:
        model = Weather

    libelle = factory.Sequence(lambda n: f"Météo {n}")


class ObserverFactory(factory.Factory):
    class Meta:
        model = Observer

    libelle = factory.Sequence(lambda n: f"{fake.name()} {n}")


class SpeciesClassFactory(factory.Factory):
    class Meta:
        model = SpeciesClass

    libelle = factory.Sequence(lambda n: f"Classe {n}")


class DistanceEstimateFactory(factory.Factory):
    class Meta:
        model = DistanceEstimate

    libelle = factory.Sequence(lambda n: f"Distance {n}")


class NumberEstimateFactory(factory.Factory):
    class Meta:
        model = NumberEstimate

    libelle = factory.Sequence(lambda n: f"Nombre {n}")
    non_compte = False


class BehaviorFactory(factory.Factory):
    class Meta:
        model = Behavior

    code = factory.Sequence(lambda n: f"C{n}")
    libelle = factory.Sequence(lambda n: f"Comportement {n}")
    nicheur = None


class EnvironmentFactory(factory.Factory):
    class Meta:
        model = Environment

    code = factory.Sequence(lambda n: f"M{n}")
    libelle = factory.Sequence(lambda n: f"Milieu {n}")


# =============================================================================
# Geography
# =============================================================================


class DepartmentFactory(factory.Factory):
    class Meta:
        model = Department

    code = factory.Sequence(lambda n: f"{n + 1:02d}")


class TownFactory(factory.Factory):
    class Meta:
        model = Town

    code = factory.Sequence(lambda n: 1000 + n)
    nom = factory.Sequence(lambda n: f"{fake.city()} {n}")


class LocalityFactory(factory.Factory):
    class Meta:
        model = Locality

    nom = factory.Sequence(lambda n: f"Lieu-dit {n}")
    altitude = factory.LazyFunction(lambda: fake.random_int(min=0, max=2000))
    longitude = factory.LazyFunction(lambda: float(fake.longitude()))
    latitude = factory.LazyFunction(lambda: float(fake.latitude()))


class SpeciesFactory(factory.Factory):
    class Meta:
        model = Species

    code = factory.Sequence(lambda n: f"SP{n:04d}")
    nom_francais = factory.Sequence(lambda n: f"Espèce {n}")
    nom_latin = factory.Sequence(lambda n: f"Species latina {n}")


# =============================================================================
# Observations
# =============================================================================


class InventoryFactory(factory.Factory):
    class Meta:
        model = Inventory

    date = factory.LazyFunction(lambda: dt.date(2024, 5, 12))
    heure = "07:30"
    duree = "01:00"
    temperature = None
    associates = factory.LazyFunction(list)
    weathers = factory.LazyFunction(list)


class EntryFactory(factory.Factory):
    class Meta:
        model = Entry

    number = 1
    comment = None
    behaviors = factory.LazyFunction(list)
    environments = factory.LazyFunction(list)


# =============================================================================
# Scenario helpers
# =============================================================================


async def create_locality_tree(db: AsyncSession, **locality_kwargs):
    """Department -> town -> locality. Returns the three records."""
    department = await create_async(DepartmentFactory, db)
    town = await create_async(TownFactory, db, department_id=department.id)
    locality = await create_async(
        LocalityFactory, db, town_id=town.id, **locality_kwargs
    )
    return department, town, locality


async def create_entry_scenario(
    db: AsyncSession, owner_id: str | None = None, breeder: BreederStatus | None = None
):
    """An inventory with one entry and every record it references.

    Returns a dict of the created records keyed by kind.
    """
    department, town, locality = await create_locality_tree(db)
    observer = await create_async(ObserverFactory, db)
    species_class = await create_async(SpeciesClassFactory, db)
    species = await create_async(SpeciesFactory, db, class_id=species_class.id)
    sex = await create_async(SexFactory, db)
    age = await create_async(AgeFactory, db)
    number_estimate = await create_async(NumberEstimateFactory, db)
    behavior = await create_async(BehaviorFactory, db, nicheur=breeder)

    inventory = await create_async(
        InventoryFactory,
        db,
        owner_id=owner_id,
        observer_id=observer.id,
        locality_id=locality.id,
    )
    entry = await create_async(
        EntryFactory,
        db,
        inventory_id=inventory.id,
        species_id=species.id,
        sex_id=sex.id,
        age_id=age.id,
        number_estimate_id=number_estimate.id,
        behaviors=[behavior],
    )
    return {
        "department": department,
        "town": town,
        "locality": locality,
        "observer": observer,
        "species_class": species_class,
        "species": species,
        "sex": sex,
        "age": age,
        "number_estimate": number_estimate,
        "behavior": behavior,
        "inventory": inventory,
        "entry": entry,
    }
