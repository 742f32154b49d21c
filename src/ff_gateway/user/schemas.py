"""Pydantic request/response schemas for ff_gateway.

All responses are wrapped in ApiResponse[T] at the router layer.
"""

from pydantic import BaseModel, Field, field_validator

from src.ff_gateway.user.db_models import UserModel

IN_GAME_NAME_MAX = 50


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "Bearer"
    expires_in: int
    user: "SessionInfo"


class SessionInfo(BaseModel):
    """The caller's session view."""

    user_id: str
    discord_id: str
    discord_name: str
    name: str | None = None
    image: str | None = None
    in_game_name: str | None = None
    is_admin: bool = False
    setup_complete: bool = False

    @classmethod
    def from_user(cls, user: UserModel) -> "SessionInfo":
        return cls(
            user_id=str(user.id),
            discord_id=user.discord_id,
            discord_name=user.discord_name,
            name=user.name,
            image=user.image,
            in_game_name=user.in_game_name,
            is_admin=user.is_admin,
            setup_complete=bool(user.in_game_name),
        )


class ProfileResponse(BaseModel):
    discord_id: str
    discord_name: str
    in_game_name: str | None = None
    notifications_enabled: bool = True
    audio_enabled: bool = True

    @classmethod
    def from_user(cls, user: UserModel) -> "ProfileResponse":
        return cls(
            discord_id=user.discord_id,
            discord_name=user.discord_name,
            in_game_name=user.in_game_name,
            notifications_enabled=user.notifications_enabled,
            audio_enabled=user.audio_enabled,
        )


class ProfileUpdateRequest(BaseModel):
    """Partial update: omitted fields are left alone, blank in_game_name clears it."""

    in_game_name: str | None = Field(None, max_length=200)
    notifications_enabled: bool | None = None
    audio_enabled: bool | None = None

    @field_validator("in_game_name")
    @classmethod
    def normalize_in_game_name(cls, v: str | None) -> str | None:
        if v is None:
            return None
        v = v.strip()
        if len(v) > IN_GAME_NAME_MAX:
            raise ValueError(f"In-game name must be {IN_GAME_NAME_MAX} characters or less")
        return v


class AdminUserOut(BaseModel):
    """Row of the admin claimer picker."""

    id: str
    discord_id: str
    discord_name: str
    in_game_name: str | None = None
    display_name: str

    @classmethod
    def from_user(cls, user: UserModel) -> "AdminUserOut":
        return cls(
            id=str(user.id),
            discord_id=user.discord_id,
            discord_name=user.discord_name,
            in_game_name=user.in_game_name,
            display_name=user.display_name,
        )


TokenResponse.model_rebuild()
