from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class ClientSettings(BaseSettings):
    """Notification consumer settings, read from FF_CLIENT_* variables."""

    model_config = SettingsConfigDict(
        env_prefix="FF_CLIENT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    BASE_URL: str = "http://localhost:8000/api/v1"
    ACCESS_TOKEN: str = ""

    # Device-local notification history
    STORAGE_PATH: Path = Path.home() / ".farmyfishfry" / "notifications.json"
    HISTORY_LIMIT: int = 50

    POLL_INTERVAL_SECONDS: float = 30.0
    RECONNECT_DELAY_SECONDS: float = 5.0
    # Three missed heartbeats and the stream is treated as dead
    STREAM_READ_TIMEOUT_SECONDS: float = 90.0


client_settings = ClientSettings()
