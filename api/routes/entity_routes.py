"""Router factory for the reference entities.

Every kind gets the same six endpoints:

    GET    /{id}        one record
    GET    /{id}/info   deletability and entries count
    GET    /            paginated list
    POST   /            create
    PUT    /{id}        update
    DELETE /{id}        delete, returns {id}
"""

from typing import Annotated, Any

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from core.auth import LoggedUserDep
from core.database import DbSession
from routes.params import query_params
from schemas import (
    EntityIdResponse,
    EntityInfo,
    PaginatedResponse,
    PaginationQuery,
    get_pagination_metadata,
)
from services.entity_service import EntityService


def build_entity_router(
    *,
    prefix: str,
    tag: str,
    service: EntityService,
    input_model: type[BaseModel],
    response_model: type[BaseModel],
    query_model: type[PaginationQuery],
    info_model: type[EntityInfo] = EntityInfo,
    filter_names: tuple[str, ...] = (),
) -> APIRouter:
    router = APIRouter(prefix=f"/api/v1/{prefix}", tags=[tag])
    not_found = f"{tag.capitalize()} not found"
    QueryParams = Annotated[query_model, Depends(query_params(query_model))]

    def _filters(params: Any) -> dict[str, Any]:
        return {name: getattr(params, name) for name in filter_names}

    @router.get(
        "/{entity_id}",
        response_model=response_model,
        responses={404: {"description": not_found}},
    )
    async def get_entity(entity_id: int, user: LoggedUserDep, db: DbSession):
        entity = await service.find(db, entity_id, user)
        if entity is None:
            raise HTTPException(status_code=404, detail=not_found)
        return response_model.model_validate(entity)

    @router.get(
        "/{entity_id}/info",
        response_model=info_model,
        responses={404: {"description": not_found}},
    )
    async def get_entity_info(entity_id: int, user: LoggedUserDep, db: DbSession):
        if await service.find(db, entity_id, user) is None:
            raise HTTPException(status_code=404, detail=not_found)
        info = await service.get_info(db, entity_id, user)
        if info is None:
            raise HTTPException(status_code=404, detail=not_found)
        return info

    @router.get("", response_model=PaginatedResponse[response_model])
    async def list_entities(
        params: QueryParams, user: LoggedUserDep, db: DbSession
    ):
        filters = _filters(params)
        entities = await service.find_paginated(db, user, params, **filters)
        count = await service.get_count(db, user, params.q, **filters)
        return PaginatedResponse[response_model](
            data=[response_model.model_validate(e) for e in entities],
            meta=get_pagination_metadata(count, params),
        )

    @router.post(
        "",
        response_model=response_model,
        responses={403: {"description": "Not allowed"}, 409: {"description": "Already exists"}},
    )
    async def create_entity(
        data: input_model,  # type: ignore[valid-type]
        user: LoggedUserDep,
        db: DbSession,
    ):
        entity = await service.create(db, data, user)
        return response_model.model_validate(entity)

    @router.put(
        "/{entity_id}",
        response_model=response_model,
        responses={
            403: {"description": "Not allowed"},
            404: {"description": not_found},
            409: {"description": "Already exists"},
        },
    )
    async def update_entity(
        entity_id: int,
        data: input_model,  # type: ignore[valid-type]
        user: LoggedUserDep,
        db: DbSession,
    ):
        entity = await service.update(db, entity_id, data, user)
        if entity is None:
            raise HTTPException(status_code=404, detail=not_found)
        return response_model.model_validate(entity)

    @router.delete(
        "/{entity_id}",
        response_model=EntityIdResponse,
        responses={
            403: {"description": "Not allowed"},
            404: {"description": not_found},
            409: {"description": "Still referenced"},
        },
    )
    async def delete_entity(entity_id: int, user: LoggedUserDep, db: DbSession):
        entity = await service.delete(db, entity_id, user)
        if entity is None:
            raise HTTPException(status_code=404, detail=not_found)
        return EntityIdResponse(id=entity.id)

    return router
