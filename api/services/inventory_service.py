"""Inventory service: creation reuses identical inventories."""

from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from core.logger import get_logger
from core.permissions import LoggedUser, can_mutate
from models import Inventory
from repositories.entry_repository import EntryRepository
from repositories.inventory_repository import InventoryRepository
from repositories.locality_repository import LocalityRepository
from repositories.reference_repository import ObserverRepository
from schemas import InventoryInput, InventoryQueryParams
from services.entity_service import require_user
from services.exceptions import (
    IsUsedError,
    NotAllowedError,
    RequiredDataNotFoundError,
    SimilarInventoryExistsError,
)
from services.pagination import get_sql_pagination

logger = get_logger(__name__)


def _to_values(data: InventoryInput, owner_id: str | None) -> dict[str, Any]:
    coordinates = data.coordinates
    return {
        "owner_id": owner_id,
        "observer_id": data.observer_id,
        "date": data.date,
        "heure": data.time,
        "duree": data.duration,
        "locality_id": data.locality_id,
        "altitude": coordinates.altitude if coordinates else None,
        "longitude": coordinates.longitude if coordinates else None,
        "latitude": coordinates.latitude if coordinates else None,
        "temperature": data.temperature,
    }


async def _ensure_references_exist(db: AsyncSession, data: InventoryInput) -> None:
    if await ObserverRepository(db).find_by_id(data.observer_id) is None:
        raise RequiredDataNotFoundError(f"Observer {data.observer_id} not found")
    if await LocalityRepository(db).find_by_id(data.locality_id) is None:
        raise RequiredDataNotFoundError(f"Locality {data.locality_id} not found")


def _ensure_can_mutate(inventory: Inventory, user: LoggedUser) -> None:
    if not can_mutate(
        inventory.owner_id, user, user.permissions.can_manage_all_entries
    ):
        raise NotAllowedError(f"Not allowed to modify inventory {inventory.id}")


async def find_inventory(
    db: AsyncSession, inventory_id: int, user: LoggedUser | None
) -> Inventory | None:
    require_user(user)
    return await InventoryRepository(db).find_by_id(inventory_id)


async def find_inventory_index(
    db: AsyncSession, inventory_id: int, user: LoggedUser | None
) -> int | None:
    """0-based position among the caller's inventories, newest first."""
    user = require_user(user)
    repo = InventoryRepository(db)
    inventory = await repo.find_by_id(inventory_id)
    if inventory is None:
        return None
    return await repo.find_index(inventory, owner_id=user.id)


async def find_paginated_inventories(
    db: AsyncSession, user: LoggedUser | None, params: InventoryQueryParams
) -> tuple[list[Inventory], int]:
    user = require_user(user)
    repo = InventoryRepository(db)
    offset, limit = get_sql_pagination(params)
    inventories = await repo.find_many(
        owner_id=user.id,
        order_by=params.order_by,
        sort_order=params.sort_order,
        offset=offset,
        limit=limit,
    )
    return inventories, await repo.count(owner_id=user.id)


async def create_inventory(
    db: AsyncSession, data: InventoryInput, user: LoggedUser | None
) -> Inventory:
    """Returns the caller's identical inventory when there is one."""
    user = require_user(user)
    repo = InventoryRepository(db)
    values = _to_values(data, owner_id=user.id)

    existing = await repo.find_existing(values, data.associate_ids, data.weather_ids)
    if existing is not None:
        logger.info("inventory.reused", inventory_id=existing.id)
        return existing

    await _ensure_references_exist(db, data)
    inventory = await repo.create(values, data.associate_ids, data.weather_ids)
    logger.info("inventory.created", inventory_id=inventory.id)
    return inventory


async def update_inventory(
    db: AsyncSession, inventory_id: int, data: InventoryInput, user: LoggedUser | None
) -> Inventory | None:
    """Update, or merge into an identical inventory when the caller asked for it.

    Raises:
        SimilarInventoryExistsError: an identical inventory exists and the
            migrate flag is not set.
    """
    user = require_user(user)
    repo = InventoryRepository(db)
    inventory = await repo.find_by_id(inventory_id)
    if inventory is None:
        return None
    _ensure_can_mutate(inventory, user)

    values = _to_values(data, owner_id=inventory.owner_id)
    existing = await repo.find_existing(values, data.associate_ids, data.weather_ids)
    if existing is not None and existing.id != inventory_id:
        if not data.migrate_donnees_if_matches_existing_inventaire:
            raise SimilarInventoryExistsError(existing.id)

        await EntryRepository(db).move_to_inventory(inventory_id, existing.id)
        await repo.delete_by_id(inventory_id)
        logger.info(
            "inventory.merged", inventory_id=inventory_id, target_id=existing.id
        )
        return existing

    await _ensure_references_exist(db, data)
    return await repo.update(
        inventory_id, values, data.associate_ids, data.weather_ids
    )


async def delete_inventory(
    db: AsyncSession, inventory_id: int, user: LoggedUser | None
) -> Inventory | None:
    user = require_user(user)
    repo = InventoryRepository(db)
    inventory = await repo.find_by_id(inventory_id)
    if inventory is None:
        return None
    _ensure_can_mutate(inventory, user)

    if await repo.entries_count(inventory_id) > 0:
        raise IsUsedError(f"Inventory {inventory_id} still has entries")

    deleted = await repo.delete_by_id(inventory_id)
    logger.info("inventory.deleted", inventory_id=inventory_id)
    return deleted
