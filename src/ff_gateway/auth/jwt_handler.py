"""JWT session and OAuth state tokens.

Session tokens carry the Discord id as ``sub``; the same id keys the push
notification hub, so both sides of a notification agree on identity.

State tokens are short-lived and bind an OAuth round trip to this server.
"""

import secrets
from datetime import UTC, datetime, timedelta

from jose import JWTError, jwt

from config.settings import settings
from src.ff_common.errors import InvalidCredentialsError

_ALGORITHM = settings.JWT_ALGORITHM  # "HS256"
_ACCESS_EXPIRE = timedelta(minutes=settings.JWT_EXPIRE_MINUTES)
_STATE_EXPIRE = timedelta(minutes=settings.OAUTH_STATE_EXPIRE_MINUTES)


def create_access_token(discord_id: str) -> str:
    """Issue a session token for a signed-in Discord user."""
    now = datetime.now(UTC)
    payload = {
        "sub": discord_id,
        "type": "access",
        "iat": now,
        "exp": now + _ACCESS_EXPIRE,
    }
    return str(jwt.encode(payload, settings.JWT_SECRET, algorithm=_ALGORITHM))


def create_state_token() -> str:
    """Issue the opaque ``state`` value for the Discord authorize redirect."""
    now = datetime.now(UTC)
    payload = {
        "sub": secrets.token_urlsafe(16),
        "type": "oauth_state",
        "iat": now,
        "exp": now + _STATE_EXPIRE,
    }
    return str(jwt.encode(payload, settings.JWT_SECRET, algorithm=_ALGORITHM))


def decode_token(token: str, expected_type: str) -> dict[str, str]:
    """Decode and validate a JWT token.

    Args:
        token: Raw JWT string.
        expected_type: "access" or "oauth_state". Strictly enforced so a state
                       token can never be replayed as a session.

    Raises:
        InvalidCredentialsError: Token invalid, expired or of the wrong type.
    """
    try:
        payload: dict[str, str] = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[_ALGORITHM],  # Explicit list prevents algorithm confusion
        )
    except JWTError:
        raise InvalidCredentialsError() from None

    if payload.get("type") != expected_type:
        raise InvalidCredentialsError()

    return payload
