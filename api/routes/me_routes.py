"""Current user endpoints and account creation."""

from fastapi import APIRouter, HTTPException
from starlette import status

from core.auth import LoggedUserDep, OIDCUser, OidcUserDep
from core.database import DbSession
from core.permissions import LoggedUser, get_highest_role
from schemas import EntityIdResponse, MeResponse, OidcUserResponse, UserSettings
from services.user_service import create_user, get_user_settings, update_user_settings

router = APIRouter(prefix="/api/v1", tags=["users"])


@router.post(
    "/user/create",
    response_model=EntityIdResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        403: {"description": "No role granted"},
        409: {"description": "Account already exists"},
    },
)
async def create_account(oidc_user: OidcUserDep, db: DbSession) -> EntityIdResponse:
    """Creates the internal account of the authenticated identity."""
    if get_highest_role(oidc_user.roles) is None:
        raise HTTPException(status_code=403, detail="No role granted")

    user = await create_user(db, oidc_user.provider, oidc_user.sub)
    return EntityIdResponse(id=user.id)


def _me_response(
    user: LoggedUser, oidc_user: OIDCUser, settings: UserSettings | None
) -> MeResponse:
    if settings is None:
        raise HTTPException(status_code=404, detail="User not found")
    return MeResponse(
        id=user.id,
        settings=settings,
        user=OidcUserResponse(
            sub=oidc_user.sub,
            provider=oidc_user.provider,
            name=oidc_user.name,
            email=oidc_user.email,
            roles=oidc_user.roles,
        ),
        permissions=user.permissions,
    )


@router.get("/me", response_model=MeResponse)
async def get_me(
    user: LoggedUserDep, oidc_user: OidcUserDep, db: DbSession
) -> MeResponse:
    return _me_response(user, oidc_user, await get_user_settings(db, user.id))


@router.put("/me", response_model=MeResponse)
async def update_me(
    settings: UserSettings, user: LoggedUserDep, oidc_user: OidcUserDep, db: DbSession
) -> MeResponse:
    updated = await update_user_settings(db, user.id, settings)
    return _me_response(user, oidc_user, updated)
