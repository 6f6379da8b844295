"""Entry service.

An entry belongs to whoever owns its inventory.
"""

from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from core.logger import get_logger
from core.permissions import LoggedUser, can_mutate
from models import Entry, Inventory
from repositories.entry_repository import EntryRepository
from repositories.inventory_repository import InventoryRepository
from schemas import EntryInput, EntryQueryParams
from services.entity_service import require_user
from services.exceptions import (
    NotAllowedError,
    RequiredDataNotFoundError,
    SimilarEntryExistsError,
)
from services.pagination import get_sql_pagination
from services.species_service import entries_scope

logger = get_logger(__name__)


async def _writable_inventory(
    db: AsyncSession, inventory_id: int, user: LoggedUser
) -> Inventory:
    inventory = await InventoryRepository(db).find_by_id(inventory_id)
    if inventory is None:
        raise RequiredDataNotFoundError(f"Inventory {inventory_id} not found")
    if not can_mutate(
        inventory.owner_id, user, user.permissions.can_manage_all_entries
    ):
        raise NotAllowedError(f"Not allowed to modify entries of {inventory_id}")
    return inventory


def _to_values(data: EntryInput) -> dict[str, Any]:
    return data.model_dump(exclude={"behavior_ids", "environment_ids"})


async def find_entry(
    db: AsyncSession, entry_id: int, user: LoggedUser | None
) -> Entry | None:
    require_user(user)
    return await EntryRepository(db).find_by_id(entry_id)


async def find_paginated_entries(
    db: AsyncSession, user: LoggedUser | None, params: EntryQueryParams
) -> tuple[list[Entry], int]:
    """Raises NotAllowedError for fromAllUsers without canViewAllEntries."""
    user = require_user(user)
    owner_id = entries_scope(params.from_all_users, user)
    repo = EntryRepository(db)
    offset, limit = get_sql_pagination(params)
    entries = await repo.find_many(
        params,
        order_by=params.order_by,
        sort_order=params.sort_order,
        offset=offset,
        limit=limit,
        owner_id=owner_id,
    )
    return entries, await repo.count(params, owner_id=owner_id)


async def create_entry(
    db: AsyncSession, data: EntryInput, user: LoggedUser | None
) -> Entry:
    user = require_user(user)
    await _writable_inventory(db, data.inventory_id, user)

    repo = EntryRepository(db)
    values = _to_values(data)
    existing = await repo.find_existing(values, data.behavior_ids, data.environment_ids)
    if existing is not None:
        raise SimilarEntryExistsError(existing.id)

    entry = await repo.create(values, data.behavior_ids, data.environment_ids)
    logger.info("entry.created", entry_id=entry.id, inventory_id=data.inventory_id)
    return entry


async def update_entry(
    db: AsyncSession, entry_id: int, data: EntryInput, user: LoggedUser | None
) -> Entry | None:
    user = require_user(user)
    repo = EntryRepository(db)
    entry = await repo.find_by_id(entry_id)
    if entry is None:
        return None

    await _writable_inventory(db, entry.inventory_id, user)
    if data.inventory_id != entry.inventory_id:
        await _writable_inventory(db, data.inventory_id, user)

    values = _to_values(data)
    existing = await repo.find_existing(values, data.behavior_ids, data.environment_ids)
    if existing is not None and existing.id != entry_id:
        raise SimilarEntryExistsError(existing.id)

    return await repo.update(entry_id, values, data.behavior_ids, data.environment_ids)


async def delete_entry(
    db: AsyncSession, entry_id: int, user: LoggedUser | None
) -> Entry | None:
    user = require_user(user)
    repo = EntryRepository(db)
    entry = await repo.find_by_id(entry_id)
    if entry is None:
        return None

    await _writable_inventory(db, entry.inventory_id, user)
    deleted = await repo.delete_by_id(entry_id)
    logger.info("entry.deleted", entry_id=entry_id)
    return deleted
