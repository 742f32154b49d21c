"""Auth and profile API routers: Discord sign-in, session, profile.

All JSON endpoints return ApiResponse[T]. request_id is read from
request.state (injected by RequestLogMiddleware).
"""

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.ff_common.database import get_db_session
from src.ff_common.response import ApiResponse, success_response
from src.ff_gateway.auth.dependencies import get_current_user
from src.ff_gateway.auth.discord import DiscordOAuthClient, build_authorize_url
from src.ff_gateway.auth.jwt_handler import (
    create_access_token,
    create_state_token,
    decode_token,
)
from src.ff_gateway.user.db_models import UserModel
from src.ff_gateway.user.schemas import (
    ProfileResponse,
    ProfileUpdateRequest,
    SessionInfo,
    TokenResponse,
)
from src.ff_gateway.user.service import UserService

router = APIRouter(prefix="/auth", tags=["auth"])
profile_router = APIRouter(prefix="/profile", tags=["profile"])
_service = UserService()
_discord = DiscordOAuthClient()


@router.get(
    "/discord/login",
    status_code=status.HTTP_307_TEMPORARY_REDIRECT,
    summary="Start Discord sign-in",
)
async def discord_login() -> RedirectResponse:
    return RedirectResponse(build_authorize_url(create_state_token()))


@router.get("/discord/callback", response_model=ApiResponse, summary="Finish Discord sign-in")
async def discord_callback(
    request: Request,
    code: str = Query(..., min_length=1),
    state: str = Query(..., min_length=1),
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse:
    decode_token(state, expected_type="oauth_state")
    profile = await _discord.fetch_profile_for_code(code)
    user = await _service.upsert_discord_user(profile, db)

    data = TokenResponse(
        access_token=create_access_token(user.discord_id),
        expires_in=settings.JWT_EXPIRE_MINUTES * 60,
        user=SessionInfo.from_user(user),
    )
    return success_response(data.model_dump(), message="Signed in", request=request)


@router.get("/session", response_model=ApiResponse, summary="Current session")
async def get_session(
    request: Request,
    current_user: UserModel = Depends(get_current_user),
) -> ApiResponse:
    return success_response(SessionInfo.from_user(current_user).model_dump(), request=request)


@profile_router.get("", response_model=ApiResponse, summary="Read own profile")
async def get_profile(
    request: Request,
    current_user: UserModel = Depends(get_current_user),
) -> ApiResponse:
    return success_response(ProfileResponse.from_user(current_user).model_dump(), request=request)


@profile_router.patch("", response_model=ApiResponse, summary="Update own profile")
async def update_profile(
    request: Request,
    body: ProfileUpdateRequest,
    current_user: UserModel = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse:
    user = await _service.update_profile(current_user, body, db)
    return success_response(
        ProfileResponse.from_user(user).model_dump(), message="Profile updated", request=request
    )
