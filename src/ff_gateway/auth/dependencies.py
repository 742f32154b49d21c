"""FastAPI dependencies: get_current_user and the role gates built on it.

Usage in any protected router:
    from src.ff_gateway.auth.dependencies import get_current_user

    @router.get("/protected")
    async def protected(user: UserModel = Depends(get_current_user)):
        ...
"""

from fastapi import Depends, HTTPException, Query, status
from fastapi.security import OAuth2AuthorizationCodeBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.ff_common.database import get_db_session
from src.ff_common.errors import (
    AdminRequiredError,
    InvalidCredentialsError,
    ProfileIncompleteError,
)
from src.ff_gateway.auth.jwt_handler import decode_token
from src.ff_gateway.user.db_models import UserModel

# Swagger UI "Authorize" runs the Discord code flow through these routes
oauth2_scheme = OAuth2AuthorizationCodeBearer(
    authorizationUrl="/api/v1/auth/discord/login",
    tokenUrl="/api/v1/auth/discord/callback",
)
_optional_oauth2_scheme = OAuth2AuthorizationCodeBearer(
    authorizationUrl="/api/v1/auth/discord/login",
    tokenUrl="/api/v1/auth/discord/callback",
    auto_error=False,
)

# Reusable 401 exception with WWW-Authenticate header (OAuth2 standard)
_CREDENTIALS_EXCEPTION = HTTPException(
    status_code=status.HTTP_401_UNAUTHORIZED,
    detail="Invalid or expired token",
    headers={"WWW-Authenticate": "Bearer"},
)


async def _resolve_user(token: str, db: AsyncSession) -> UserModel:
    try:
        payload = decode_token(token, expected_type="access")
    except InvalidCredentialsError:
        raise _CREDENTIALS_EXCEPTION from None

    discord_id: str | None = payload.get("sub")
    if not discord_id:
        raise _CREDENTIALS_EXCEPTION

    result = await db.execute(select(UserModel).where(UserModel.discord_id == discord_id))
    user = result.scalar_one_or_none()
    if user is None:
        raise _CREDENTIALS_EXCEPTION
    return user


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db_session),
) -> UserModel:
    """Extract and validate the JWT Bearer token, return the UserModel.

    Raises HTTP 401 if the token is missing, invalid, expired, or names a
    user that no longer exists.
    """
    return await _resolve_user(token, db)


async def get_stream_user(
    header_token: str | None = Depends(_optional_oauth2_scheme),
    token: str | None = Query(None, description="Session token (EventSource cannot send headers)"),
    db: AsyncSession = Depends(get_db_session),
) -> UserModel:
    """Like get_current_user, but also accepts the token as a query parameter."""
    raw = header_token or token
    if not raw:
        raise _CREDENTIALS_EXCEPTION
    return await _resolve_user(raw, db)


async def require_profile(
    current_user: UserModel = Depends(get_current_user),
) -> UserModel:
    """Setup gate: trading requires an in-game name."""
    if not current_user.in_game_name:
        raise ProfileIncompleteError()
    return current_user


async def require_admin(
    current_user: UserModel = Depends(get_current_user),
) -> UserModel:
    if not current_user.is_admin:
        raise AdminRequiredError()
    return current_user
