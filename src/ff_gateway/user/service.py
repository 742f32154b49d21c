"""User domain service: Discord upsert, profile edits, admin grant.

All DB operations use the injected AsyncSession. Reads share the session that
get_current_user already opened, so mutating methods commit explicitly.
"""

import hmac
import logging

from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.ff_common.errors import InvalidAdminPasswordError, UserNotFoundError
from src.ff_gateway.auth.discord import DiscordProfile
from src.ff_gateway.user.db_models import UserModel
from src.ff_gateway.user.schemas import ProfileUpdateRequest

logger = logging.getLogger(__name__)


class UserService:
    """Stateless service: instantiate once, reuse across requests."""

    async def upsert_discord_user(self, profile: DiscordProfile, db: AsyncSession) -> UserModel:
        """Create the user on first sign-in, refresh Discord-owned fields afterwards.

        Profile fields the user edits here (in-game name, preferences, admin
        flag) are never touched by sign-in.
        """
        values = {
            "discord_id": profile.id,
            "discord_name": profile.username,
            "name": profile.global_name or profile.username,
            "email": profile.email,
            "image": profile.image_url,
        }
        stmt = (
            pg_insert(UserModel)
            .values(**values)
            .on_conflict_do_update(
                index_elements=[UserModel.discord_id],
                set_={
                    "discord_name": values["discord_name"],
                    "name": values["name"],
                    "email": values["email"],
                    "image": values["image"],
                    "updated_at": func.now(),
                },
            )
            .returning(UserModel)
        )
        orm_stmt = (
            select(UserModel).from_statement(stmt).execution_options(populate_existing=True)
        )
        user = (await db.execute(orm_stmt)).scalar_one()
        await db.commit()
        logger.info("Discord sign-in for %s (%s)", user.discord_name, user.discord_id)
        return user

    async def get_by_discord_id(self, discord_id: str, db: AsyncSession) -> UserModel:
        result = await db.execute(select(UserModel).where(UserModel.discord_id == discord_id))
        user = result.scalar_one_or_none()
        if user is None:
            raise UserNotFoundError(discord_id)
        return user

    async def find_id_by_discord_id(self, discord_id: str, db: AsyncSession) -> str | None:
        """Internal user id for a Discord id, or None if nobody signed in with it."""
        result = await db.execute(select(UserModel.id).where(UserModel.discord_id == discord_id))
        user_id = result.scalar_one_or_none()
        return str(user_id) if user_id is not None else None

    async def exists(self, user_id: str, db: AsyncSession) -> bool:
        result = await db.execute(select(UserModel.id).where(UserModel.id == user_id))
        return result.scalar_one_or_none() is not None

    async def update_profile(
        self, user: UserModel, body: ProfileUpdateRequest, db: AsyncSession
    ) -> UserModel:
        fields = body.model_fields_set
        if "in_game_name" in fields:
            # blank clears the name and re-arms the setup gate
            user.in_game_name = body.in_game_name or None
        if "notifications_enabled" in fields and body.notifications_enabled is not None:
            user.notifications_enabled = body.notifications_enabled
        if "audio_enabled" in fields and body.audio_enabled is not None:
            user.audio_enabled = body.audio_enabled
        await db.commit()
        await db.refresh(user)
        return user

    async def grant_admin(self, user: UserModel, password: str, db: AsyncSession) -> UserModel:
        """Persist the admin flag if ``password`` matches the shared secret.

        Grants are permanent; an already-admin caller is returned unchanged.
        """
        if user.is_admin:
            return user
        if not hmac.compare_digest(password.encode(), settings.ADMIN_SECRET.encode()):
            logger.warning("Rejected admin grant for %s", user.discord_id)
            raise InvalidAdminPasswordError()
        user.is_admin = True
        await db.commit()
        await db.refresh(user)
        logger.info("Admin granted to %s", user.discord_id)
        return user

    async def list_users(self, db: AsyncSession) -> list[UserModel]:
        result = await db.execute(
            select(UserModel).order_by(
                UserModel.in_game_name.asc().nulls_last(), UserModel.discord_name.asc()
            )
        )
        return list(result.scalars().all())
