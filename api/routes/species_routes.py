"""Species endpoints. Responses embed the species class."""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException

from core.auth import LoggedUserDep
from core.database import DbSession
from routes.params import query_params
from schemas import (
    EntityIdResponse,
    PaginatedResponse,
    SpeciesInfo,
    SpeciesInput,
    SpeciesQueryParams,
    SpeciesResponse,
    get_pagination_metadata,
)
from services.enrichment_service import enrich_species, enrich_species_list
from services.species_service import species_service

router = APIRouter(prefix="/api/v1/species", tags=["species"])

SpeciesParams = Annotated[SpeciesQueryParams, Depends(query_params(SpeciesQueryParams))]


@router.get("/{species_id}", response_model=SpeciesResponse)
async def get_species(
    species_id: int, user: LoggedUserDep, db: DbSession
) -> SpeciesResponse:
    species = await species_service.find(db, species_id, user)
    if species is None:
        raise HTTPException(status_code=404, detail="Species not found")
    return await enrich_species(db, species, user)


@router.get(
    "/{species_id}/info",
    response_model=SpeciesInfo,
    response_model_exclude_none=True,
)
async def get_species_info(
    species_id: int, user: LoggedUserDep, db: DbSession
) -> SpeciesInfo:
    """``totalEntriesCount`` is only present for users who can view all entries."""
    if await species_service.find(db, species_id, user) is None:
        raise HTTPException(status_code=404, detail="Species not found")
    return await species_service.get_info(db, species_id, user)


@router.get("", response_model=PaginatedResponse[SpeciesResponse])
async def list_species(
    params: SpeciesParams, user: LoggedUserDep, db: DbSession
) -> PaginatedResponse[SpeciesResponse]:
    """Paginated species, restricted to those with matching entries when
    any entries criterion is given."""
    species = await species_service.find_paginated(db, user, params)
    count = await species_service.get_count(db, user, params)
    return PaginatedResponse[SpeciesResponse](
        data=await enrich_species_list(db, species, user),
        meta=get_pagination_metadata(count, params),
    )


@router.post("", response_model=SpeciesResponse)
async def create_species(
    data: SpeciesInput, user: LoggedUserDep, db: DbSession
) -> SpeciesResponse:
    species = await species_service.create(db, data, user)
    return await enrich_species(db, species, user)


@router.put("/{species_id}", response_model=SpeciesResponse)
async def update_species(
    species_id: int, data: SpeciesInput, user: LoggedUserDep, db: DbSession
) -> SpeciesResponse:
    species = await species_service.update(db, species_id, data, user)
    if species is None:
        raise HTTPException(status_code=404, detail="Species not found")
    return await enrich_species(db, species, user)


@router.delete("/{species_id}", response_model=EntityIdResponse)
async def delete_species(
    species_id: int, user: LoggedUserDep, db: DbSession
) -> EntityIdResponse:
    species = await species_service.delete(db, species_id, user)
    if species is None:
        raise HTTPException(status_code=404, detail="Species not found")
    return EntityIdResponse(id=species.id)
