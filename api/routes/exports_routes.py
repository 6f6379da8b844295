"""Export generation and download endpoints.

POST /api/v1/generate-export/{kind} answers 201 with the download URL in the
``Location`` header. The file stays downloadable for one hour.
"""

from typing import Annotated
from urllib.parse import quote

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from starlette import status

from core.auth import LoggedUserDep
from core.database import DbSession
from core.ratelimit import EXPORT_LIMIT, limiter
from routes.params import query_params
from schemas import EntrySearchCriteria
from services.export_service import EXPORT_KINDS, generate_export, get_export

router = APIRouter(tags=["exports"])

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

EntriesCriteria = Annotated[
    EntrySearchCriteria, Depends(query_params(EntrySearchCriteria))
]


def _content_disposition(filename: str) -> str:
    """RFC 6266 header; non-ASCII names go in filename* with an ASCII fallback."""
    quoted = quote(filename, safe="")
    if quoted == filename:
        return f'attachment; filename="{filename}"'
    fallback = "".join(
        c for c in filename if c.isascii() and c.isprintable() and c not in '"\\'
    )
    fallback = fallback or "export.xlsx"
    return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quoted}"


def _created(request: Request, export_id: str) -> Response:
    return Response(
        status_code=status.HTTP_201_CREATED,
        headers={"Location": f"{request.base_url}download/{export_id}"},
    )


@router.post(
    "/api/v1/generate-export/entries",
    status_code=status.HTTP_201_CREATED,
    responses={201: {"description": "Location header holds the download URL"}},
)
@limiter.limit(EXPORT_LIMIT)
async def generate_entries_export(
    request: Request, criteria: EntriesCriteria, user: LoggedUserDep, db: DbSession
) -> Response:
    """Caller's entries, or everyone's with fromAllUsers and canManageAllEntries.

    fromAllUsers without canViewAllEntries is rejected with 403.
    """
    export_id = await generate_export(db, "entries", user, criteria)
    return _created(request, export_id)


@router.post(
    "/api/v1/generate-export/{kind}",
    status_code=status.HTTP_201_CREATED,
    responses={
        201: {"description": "Location header holds the download URL"},
        404: {"description": "Unknown export kind"},
    },
)
@limiter.limit(EXPORT_LIMIT)
async def generate_entities_export(
    request: Request, kind: str, user: LoggedUserDep, db: DbSession
) -> Response:
    if kind not in EXPORT_KINDS:
        raise HTTPException(status_code=404, detail=f"Unknown export kind: {kind}")
    export_id = await generate_export(db, kind, user)
    return _created(request, export_id)


@router.get("/download/{export_id}", responses={404: {"description": "Expired"}})
async def download_export(export_id: str, filename: str | None = None) -> Response:
    content = get_export(export_id)
    if content is None:
        raise HTTPException(status_code=404, detail="Export not found or expired")

    name = filename or f"{export_id}.xlsx"
    return Response(
        content=content,
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": _content_disposition(name)},
    )
