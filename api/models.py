"""SQLAlchemy models for field observations and their reference tables."""

import datetime as dt
import uuid
from datetime import UTC, datetime
from enum import StrEnum

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Integer,
    String,
    Table,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, declared_attr, mapped_column, relationship

from core.database import Base


def utcnow() -> datetime:
    """Return current UTC time (timezone-aware)."""
    return datetime.now(UTC)


def new_uuid() -> str:
    return str(uuid.uuid4())


class BreederStatus(StrEnum):
    POSSIBLE = "possible"
    PROBABLE = "probable"
    CERTAIN = "certain"


class TimestampMixin:
    @declared_attr
    def created_at(cls) -> Mapped[datetime]:
        return mapped_column(DateTime(timezone=True), default=utcnow)

    @declared_attr
    def updated_at(cls) -> Mapped[datetime]:
        return mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)


class OwnedMixin:
    """Records remember the user who created them.

    The owner may edit or delete the record without the kind-wide permission.
    """

    @declared_attr
    def owner_id(cls) -> Mapped[str | None]:
        return mapped_column(
            String(36),
            ForeignKey("users.id", ondelete="SET NULL"),
            nullable=True,
            index=True,
        )


class LabelMixin(OwnedMixin):
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    libelle: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)


class User(TimestampMixin, Base):
    """Internal account, linked to an identity of the OIDC provider."""

    __tablename__ = "users"
    __table_args__ = (
        UniqueConstraint(
            "ext_provider_name",
            "ext_provider_id",
            name="uq_users_ext_provider",
        ),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)
    ext_provider_name: Mapped[str] = mapped_column(String(100), nullable=False)
    ext_provider_id: Mapped[str] = mapped_column(String(255), nullable=False)
    settings: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)


class Age(LabelMixin, Base):
    __tablename__ = "ages"


class Sex(LabelMixin, Base):
    __tablename__ = "sexes"


class Weather(LabelMixin, Base):
    __tablename__ = "weathers"


class Observer(LabelMixin, Base):
    __tablename__ = "observers"


class SpeciesClass(LabelMixin, Base):
    __tablename__ = "species_classes"


class DistanceEstimate(LabelMixin, Base):
    __tablename__ = "distance_estimates"


class NumberEstimate(LabelMixin, Base):
    __tablename__ = "number_estimates"

    # "non compté": the individuals were not counted
    non_compte: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)


class Behavior(OwnedMixin, Base):
    __tablename__ = "behaviors"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    code: Mapped[str] = mapped_column(String(10), nullable=False, unique=True)
    libelle: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    nicheur: Mapped[BreederStatus | None] = mapped_column(
        Enum(
            BreederStatus,
            name="breeder_status",
            native_enum=False,
            values_callable=lambda statuses: [s.value for s in statuses],
        ),
        nullable=True,
    )


class Environment(OwnedMixin, Base):
    __tablename__ = "environments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    code: Mapped[str] = mapped_column(String(10), nullable=False, unique=True)
    libelle: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)


class Department(OwnedMixin, Base):
    __tablename__ = "departments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    code: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)


class Town(OwnedMixin, Base):
    __tablename__ = "towns"
    __table_args__ = (
        UniqueConstraint("department_id", "code", name="uq_towns_department_code"),
        UniqueConstraint("department_id", "nom", name="uq_towns_department_nom"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    code: Mapped[int] = mapped_column(Integer, nullable=False)
    nom: Mapped[str] = mapped_column(String(100), nullable=False)
    department_id: Mapped[int] = mapped_column(
        ForeignKey("departments.id", ondelete="RESTRICT"), nullable=False, index=True
    )


class Locality(OwnedMixin, Base):
    __tablename__ = "localities"
    __table_args__ = (
        UniqueConstraint("town_id", "nom", name="uq_localities_town_nom"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    nom: Mapped[str] = mapped_column(String(100), nullable=False)
    town_id: Mapped[int] = mapped_column(
        ForeignKey("towns.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    altitude: Mapped[int] = mapped_column(Integer, nullable=False)
    longitude: Mapped[float] = mapped_column(Float, nullable=False)
    latitude: Mapped[float] = mapped_column(Float, nullable=False)

    @property
    def coordinates(self) -> dict[str, float]:
        return {
            "altitude": self.altitude,
            "longitude": self.longitude,
            "latitude": self.latitude,
        }


class Species(OwnedMixin, Base):
    __tablename__ = "species"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    class_id: Mapped[int | None] = mapped_column(
        ForeignKey("species_classes.id", ondelete="RESTRICT"),
        nullable=True,
        index=True,
    )
    code: Mapped[str] = mapped_column(String(20), nullable=False, unique=True)
    nom_francais: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    nom_latin: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)


inventory_associates = Table(
    "inventory_associates",
    Base.metadata,
    Column(
        "inventory_id",
        ForeignKey("inventories.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "observer_id",
        ForeignKey("observers.id", ondelete="RESTRICT"),
        primary_key=True,
    ),
)

inventory_weathers = Table(
    "inventory_weathers",
    Base.metadata,
    Column(
        "inventory_id",
        ForeignKey("inventories.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "weather_id",
        ForeignKey("weathers.id", ondelete="RESTRICT"),
        primary_key=True,
    ),
)


class Inventory(OwnedMixin, Base):
    """One observation session: who, when, where, in which conditions."""

    __tablename__ = "inventories"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    observer_id: Mapped[int] = mapped_column(
        ForeignKey("observers.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    # "HH:MM"
    heure: Mapped[str | None] = mapped_column(String(5), nullable=True)
    duree: Mapped[str | None] = mapped_column(String(5), nullable=True)
    locality_id: Mapped[int] = mapped_column(
        ForeignKey("localities.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    # Overrides the locality coordinates when set
    altitude: Mapped[int | None] = mapped_column(Integer, nullable=True)
    longitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    latitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    temperature: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, index=True
    )

    associates: Mapped[list[Observer]] = relationship(
        secondary=inventory_associates, lazy="selectin", order_by=Observer.id
    )
    weathers: Mapped[list[Weather]] = relationship(
        secondary=inventory_weathers, lazy="selectin", order_by=Weather.id
    )

    @property
    def customized_coordinates(self) -> dict[str, float] | None:
        if self.altitude is None or self.longitude is None or self.latitude is None:
            return None
        return {
            "altitude": self.altitude,
            "longitude": self.longitude,
            "latitude": self.latitude,
        }

    @property
    def associate_ids(self) -> list[int]:
        return [associate.id for associate in self.associates]

    @property
    def weather_ids(self) -> list[int]:
        return [weather.id for weather in self.weathers]


entry_behaviors = Table(
    "entry_behaviors",
    Base.metadata,
    Column("entry_id", ForeignKey("entries.id", ondelete="CASCADE"), primary_key=True),
    Column(
        "behavior_id",
        ForeignKey("behaviors.id", ondelete="RESTRICT"),
        primary_key=True,
    ),
)

entry_environments = Table(
    "entry_environments",
    Base.metadata,
    Column("entry_id", ForeignKey("entries.id", ondelete="CASCADE"), primary_key=True),
    Column(
        "environment_id",
        ForeignKey("environments.id", ondelete="RESTRICT"),
        primary_key=True,
    ),
)


class Entry(Base):
    """A single species observation within an inventory.

    Ownership is inherited from the inventory.
    """

    __tablename__ = "entries"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    inventory_id: Mapped[int] = mapped_column(
        ForeignKey("inventories.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    species_id: Mapped[int] = mapped_column(
        ForeignKey("species.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    sex_id: Mapped[int] = mapped_column(
        ForeignKey("sexes.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    age_id: Mapped[int] = mapped_column(
        ForeignKey("ages.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    number_estimate_id: Mapped[int] = mapped_column(
        ForeignKey("number_estimates.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    number: Mapped[int | None] = mapped_column(Integer, nullable=True)
    distance_estimate_id: Mapped[int | None] = mapped_column(
        ForeignKey("distance_estimates.id", ondelete="RESTRICT"),
        nullable=True,
        index=True,
    )
    distance: Mapped[int | None] = mapped_column(Integer, nullable=True)
    comment: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    behaviors: Mapped[list[Behavior]] = relationship(
        secondary=entry_behaviors, lazy="selectin", order_by=Behavior.id
    )
    environments: Mapped[list[Environment]] = relationship(
        secondary=entry_environments, lazy="selectin", order_by=Environment.id
    )

    @property
    def behavior_ids(self) -> list[int]:
        return [behavior.id for behavior in self.behaviors]

    @property
    def environment_ids(self) -> list[int]:
        return [environment.id for environment in self.environments]
