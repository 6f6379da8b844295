"""Entry (observation) endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException

from core.auth import LoggedUserDep
from core.database import DbSession
from routes.params import query_params
from schemas import (
    EntityIdResponse,
    EntryInput,
    EntryQueryParams,
    EntryResponse,
    PaginatedResponse,
    get_pagination_metadata,
)
from services.enrichment_service import enrich_entries, enrich_entry
from services.entry_service import (
    create_entry,
    delete_entry,
    find_entry,
    find_paginated_entries,
    update_entry,
)

router = APIRouter(prefix="/api/v1/entries", tags=["entries"])

EntryParams = Annotated[EntryQueryParams, Depends(query_params(EntryQueryParams))]

_SIMILAR_ENTRY_RESPONSE = {
    409: {
        "description": "An identical entry exists",
        "content": {"application/json": {"example": {"correspondingEntryFound": "7"}}},
    },
    422: {"description": "Inventory not found"},
}


@router.get("/{entry_id}", response_model=EntryResponse)
async def get_entry(entry_id: int, user: LoggedUserDep, db: DbSession) -> EntryResponse:
    entry = await find_entry(db, entry_id, user)
    if entry is None:
        raise HTTPException(status_code=404, detail="Entry not found")
    return await enrich_entry(db, entry, user)


@router.get(
    "",
    response_model=PaginatedResponse[EntryResponse],
    responses={403: {"description": "fromAllUsers requires canViewAllEntries"}},
)
async def list_entries(
    params: EntryParams, user: LoggedUserDep, db: DbSession
) -> PaginatedResponse[EntryResponse]:
    entries, count = await find_paginated_entries(db, user, params)
    return PaginatedResponse[EntryResponse](
        data=await enrich_entries(db, entries, user),
        meta=get_pagination_metadata(count, params),
    )


@router.post("", response_model=EntryResponse, responses=_SIMILAR_ENTRY_RESPONSE)
async def create_entry_endpoint(
    data: EntryInput, user: LoggedUserDep, db: DbSession
) -> EntryResponse:
    entry = await create_entry(db, data, user)
    return await enrich_entry(db, entry, user)


@router.put(
    "/{entry_id}", response_model=EntryResponse, responses=_SIMILAR_ENTRY_RESPONSE
)
async def update_entry_endpoint(
    entry_id: int, data: EntryInput, user: LoggedUserDep, db: DbSession
) -> EntryResponse:
    entry = await update_entry(db, entry_id, data, user)
    if entry is None:
        raise HTTPException(status_code=404, detail="Entry not found")
    return await enrich_entry(db, entry, user)


@router.delete("/{entry_id}", response_model=EntityIdResponse)
async def delete_entry_endpoint(
    entry_id: int, user: LoggedUserDep, db: DbSession
) -> EntityIdResponse:
    entry = await delete_entry(db, entry_id, user)
    if entry is None:
        raise HTTPException(status_code=404, detail="Entry not found")
    return EntityIdResponse(id=entry.id)
