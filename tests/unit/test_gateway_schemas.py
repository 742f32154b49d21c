"""Unit tests for ff_gateway Pydantic schemas."""

import uuid

import pytest
from pydantic import ValidationError

from src.ff_gateway.user.db_models import UserModel
from src.ff_gateway.user.schemas import (
    AdminUserOut,
    ProfileResponse,
    ProfileUpdateRequest,
    SessionInfo,
)


def _make_user(in_game_name: str | None = "Alice") -> UserModel:
    user = UserModel()
    user.id = uuid.uuid4()
    user.discord_id = "1001"
    user.discord_name = "alice#1"
    user.name = "Alice A"
    user.image = None
    user.in_game_name = in_game_name
    user.is_admin = False
    user.notifications_enabled = True
    user.audio_enabled = False
    return user


class TestProfileUpdateRequest:
    def test_name_is_trimmed(self) -> None:
        assert ProfileUpdateRequest(in_game_name="  Alice  ").in_game_name == "Alice"

    def test_name_too_long(self) -> None:
        with pytest.raises(ValidationError):
            ProfileUpdateRequest(in_game_name="a" * 51)

    def test_fifty_characters_allowed(self) -> None:
        assert len(ProfileUpdateRequest(in_game_name="a" * 50).in_game_name) == 50

    def test_omitted_fields_not_set(self) -> None:
        req = ProfileUpdateRequest(audio_enabled=False)
        assert req.model_fields_set == {"audio_enabled"}


class TestSessionInfo:
    def test_setup_complete_follows_in_game_name(self) -> None:
        assert SessionInfo.from_user(_make_user()).setup_complete is True
        assert SessionInfo.from_user(_make_user(None)).setup_complete is False

    def test_ids_are_strings(self) -> None:
        user = _make_user()
        info = SessionInfo.from_user(user)
        assert info.user_id == str(user.id)
        assert info.discord_id == "1001"


class TestOtherViews:
    def test_profile_response(self) -> None:
        resp = ProfileResponse.from_user(_make_user())
        assert resp.audio_enabled is False
        assert resp.notifications_enabled is True

    def test_admin_user_display_name(self) -> None:
        assert AdminUserOut.from_user(_make_user(None)).display_name == "alice#1"
