"""Roles, permissions and the authenticated caller (LoggedUser)."""

from collections.abc import Iterable
from enum import StrEnum

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class Role(StrEnum):
    ADMIN = "admin"
    CONTRIBUTOR = "contributor"
    USER = "user"


# Highest first
ROLE_PRECEDENCE: tuple[Role, ...] = (Role.ADMIN, Role.CONTRIBUTOR, Role.USER)

# Entity kinds that carry their own create/edit/delete flags
ENTITY_KINDS: tuple[str, ...] = (
    "age",
    "behavior",
    "department",
    "distance_estimate",
    "environment",
    "locality",
    "number_estimate",
    "observer",
    "sex",
    "species",
    "species_class",
    "town",
    "weather",
)


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, frozen=True
    )


class EntityPermissions(_CamelModel):
    can_create: bool = False
    can_edit: bool = False
    can_delete: bool = False


class Permissions(_CamelModel):
    age: EntityPermissions = EntityPermissions()
    behavior: EntityPermissions = EntityPermissions()
    department: EntityPermissions = EntityPermissions()
    distance_estimate: EntityPermissions = EntityPermissions()
    environment: EntityPermissions = EntityPermissions()
    locality: EntityPermissions = EntityPermissions()
    number_estimate: EntityPermissions = EntityPermissions()
    observer: EntityPermissions = EntityPermissions()
    sex: EntityPermissions = EntityPermissions()
    species: EntityPermissions = EntityPermissions()
    species_class: EntityPermissions = EntityPermissions()
    town: EntityPermissions = EntityPermissions()
    weather: EntityPermissions = EntityPermissions()
    can_view_all_entries: bool = False
    can_manage_all_entries: bool = False
    can_import: bool = False

    def for_kind(self, kind: str) -> EntityPermissions:
        return getattr(self, kind)


class LoggedUser(_CamelModel):
    id: str
    role: Role
    permissions: Permissions


def get_permissions(role: Role) -> Permissions:
    if role == Role.ADMIN:
        everything = EntityPermissions(can_create=True, can_edit=True, can_delete=True)
        return Permissions(
            **{kind: everything for kind in ENTITY_KINDS},
            can_view_all_entries=True,
            can_manage_all_entries=True,
            can_import=True,
        )

    if role == Role.CONTRIBUTOR:
        create_only = EntityPermissions(can_create=True)
        return Permissions(
            **{kind: create_only for kind in ENTITY_KINDS},
            can_view_all_entries=True,
        )

    return Permissions()


def get_highest_role(roles: Iterable[str]) -> Role | None:
    granted = set(roles)
    for role in ROLE_PRECEDENCE:
        if role.value in granted:
            return role
    return None


def can_mutate(owner_id: str | None, user: LoggedUser, permission_flag: bool) -> bool:
    """Owner-or-permission policy shared by every mutating operation.

    ``permission_flag`` is the caller's edit/delete flag for the entity kind.
    """
    if permission_flag:
        return True
    return owner_id is not None and owner_id == user.id
