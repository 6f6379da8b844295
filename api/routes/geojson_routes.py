"""GeoJSON endpoints for the map view."""

from typing import Annotated

from fastapi import APIRouter, Header, Response
from starlette import status

from core.auth import LoggedUserDep
from core.database import DbSession
from services.geojson_service import get_localities_geojson

router = APIRouter(prefix="/api/v1/geojson", tags=["location"])

CACHE_CONTROL = "private, max-age=300"


@router.get(
    "/localities",
    responses={
        200: {"description": "GeoJSON FeatureCollection of every locality"},
        304: {"description": "Unchanged since the given ETag"},
    },
)
async def get_localities(
    user: LoggedUserDep,
    db: DbSession,
    if_none_match: Annotated[str | None, Header()] = None,
) -> Response:
    content, etag = await get_localities_geojson(db, user)
    headers = {"ETag": etag, "Cache-Control": CACHE_CONTROL}

    if if_none_match is not None and etag in (
        tag.strip() for tag in if_none_match.split(",")
    ):
        return Response(status_code=status.HTTP_304_NOT_MODIFIED, headers=headers)

    return Response(
        content=content,
        media_type="application/json; charset=utf-8",
        headers=headers,
    )
