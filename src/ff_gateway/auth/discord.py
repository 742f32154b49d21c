"""Discord OAuth2 code-flow client.

Only the three calls sign-in needs: build the authorize URL, exchange the
code for a Discord access token, read the profile behind it.
"""

import logging
from dataclasses import dataclass
from urllib.parse import urlencode

import httpx

from config.settings import settings
from src.ff_common.errors import OAuthExchangeError

logger = logging.getLogger(__name__)

_SCOPES = "identify email"
_TIMEOUT = httpx.Timeout(10.0)


@dataclass
class DiscordProfile:
    id: str
    username: str
    global_name: str | None = None
    email: str | None = None
    avatar: str | None = None

    @property
    def image_url(self) -> str | None:
        if not self.avatar:
            return None
        return f"https://cdn.discordapp.com/avatars/{self.id}/{self.avatar}.png"


def build_authorize_url(state: str) -> str:
    query = urlencode(
        {
            "client_id": settings.DISCORD_CLIENT_ID,
            "redirect_uri": settings.DISCORD_REDIRECT_URI,
            "response_type": "code",
            "scope": _SCOPES,
            "state": state,
        }
    )
    return f"{settings.DISCORD_AUTHORIZE_URL}?{query}"


class DiscordOAuthClient:
    def __init__(self, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=settings.DISCORD_API_BASE, timeout=_TIMEOUT, transport=self._transport
        )

    async def fetch_profile_for_code(self, code: str) -> DiscordProfile:
        async with self._client() as client:
            access_token = await self._exchange_code(client, code)
            return await self._fetch_profile(client, access_token)

    async def _exchange_code(self, client: httpx.AsyncClient, code: str) -> str:
        try:
            resp = await client.post(
                "/oauth2/token",
                data={
                    "client_id": settings.DISCORD_CLIENT_ID,
                    "client_secret": settings.DISCORD_CLIENT_SECRET,
                    "grant_type": "authorization_code",
                    "code": code,
                    "redirect_uri": settings.DISCORD_REDIRECT_URI,
                },
                headers={"Content-Type": "application/x-www-form-urlencoded"},
            )
            resp.raise_for_status()
        except httpx.HTTPError as exc:
            logger.warning("Discord token exchange failed: %s", exc)
            raise OAuthExchangeError("token exchange rejected") from exc

        token = resp.json().get("access_token")
        if not token:
            raise OAuthExchangeError("no access token in response")
        return str(token)

    async def _fetch_profile(self, client: httpx.AsyncClient, access_token: str) -> DiscordProfile:
        try:
            resp = await client.get(
                "/users/@me", headers={"Authorization": f"Bearer {access_token}"}
            )
            resp.raise_for_status()
        except httpx.HTTPError as exc:
            logger.warning("Discord profile fetch failed: %s", exc)
            raise OAuthExchangeError("profile unavailable") from exc

        data = resp.json()
        return DiscordProfile(
            id=str(data["id"]),
            username=data["username"],
            global_name=data.get("global_name"),
            email=data.get("email"),
            avatar=data.get("avatar"),
        )
