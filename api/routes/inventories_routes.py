"""Inventory endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException

from core.auth import LoggedUserDep
from core.database import DbSession
from routes.params import query_params
from schemas import (
    EntityIdResponse,
    InventoryIndexResponse,
    InventoryInput,
    InventoryQueryParams,
    InventoryResponse,
    PaginatedResponse,
    get_pagination_metadata,
)
from services.enrichment_service import enrich_inventories, enrich_inventory
from services.inventory_service import (
    create_inventory,
    delete_inventory,
    find_inventory,
    find_inventory_index,
    find_paginated_inventories,
    update_inventory,
)

router = APIRouter(prefix="/api/v1/inventories", tags=["inventories"])

InventoryParams = Annotated[
    InventoryQueryParams, Depends(query_params(InventoryQueryParams))
]


@router.get("/{inventory_id}", response_model=InventoryResponse)
async def get_inventory(
    inventory_id: int, user: LoggedUserDep, db: DbSession
) -> InventoryResponse:
    inventory = await find_inventory(db, inventory_id, user)
    if inventory is None:
        raise HTTPException(status_code=404, detail="Inventory not found")
    return await enrich_inventory(db, inventory, user)


@router.get("/{inventory_id}/index", response_model=InventoryIndexResponse)
async def get_inventory_index(
    inventory_id: int, user: LoggedUserDep, db: DbSession
) -> InventoryIndexResponse:
    index = await find_inventory_index(db, inventory_id, user)
    if index is None:
        raise HTTPException(status_code=404, detail="Inventory not found")
    return InventoryIndexResponse(index=index)


@router.get("", response_model=PaginatedResponse[InventoryResponse])
async def list_inventories(
    params: InventoryParams, user: LoggedUserDep, db: DbSession
) -> PaginatedResponse[InventoryResponse]:
    inventories, count = await find_paginated_inventories(db, user, params)
    return PaginatedResponse[InventoryResponse](
        data=await enrich_inventories(db, inventories, user),
        meta=get_pagination_metadata(count, params),
    )


@router.post(
    "",
    response_model=InventoryResponse,
    responses={422: {"description": "Observer or locality not found"}},
)
async def create_inventory_endpoint(
    data: InventoryInput, user: LoggedUserDep, db: DbSession
) -> InventoryResponse:
    """Returns the caller's identical inventory instead of creating a duplicate."""
    inventory = await create_inventory(db, data, user)
    return await enrich_inventory(db, inventory, user)


@router.put(
    "/{inventory_id}",
    response_model=InventoryResponse,
    responses={
        409: {
            "description": "An identical inventory exists",
            "content": {
                "application/json": {"example": {"correspondingInventoryFound": "12"}}
            },
        }
    },
)
async def update_inventory_endpoint(
    inventory_id: int, data: InventoryInput, user: LoggedUserDep, db: DbSession
) -> InventoryResponse:
    inventory = await update_inventory(db, inventory_id, data, user)
    if inventory is None:
        raise HTTPException(status_code=404, detail="Inventory not found")
    return await enrich_inventory(db, inventory, user)


@router.delete("/{inventory_id}", response_model=EntityIdResponse)
async def delete_inventory_endpoint(
    inventory_id: int, user: LoggedUserDep, db: DbSession
) -> EntityIdResponse:
    inventory = await delete_inventory(db, inventory_id, user)
    if inventory is None:
        raise HTTPException(status_code=404, detail="Inventory not found")
    return EntityIdResponse(id=inventory.id)
