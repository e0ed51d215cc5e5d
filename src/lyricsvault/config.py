"""Service configuration using pydantic-settings."""

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """LyricsVault service configuration."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True)

    # Storage
    LYRICSVAULT_DB_PATH: Path = Path("data/lyricsvault.db")
    LYRICSVAULT_JOBS_DB_PATH: Path = Path("data/jobs.db")

    # API Security (shared secret with the boundary gateway)
    LYRICSVAULT_API_KEY: str = ""

    # Logging
    LYRICSVAULT_LOG_DIR: Path = Path("logs")
    LYRICSVAULT_LOG_LEVEL: str = "INFO"

    # External lyrics provider (lyrics.ovh-compatible)
    LYRICS_PROVIDER_URL: str = "https://api.lyrics.ovh/v1"
    LYRICS_PROVIDER_TIMEOUT_SECONDS: float = 10.0

    # Fetch pipeline
    FETCH_ENABLED: bool = True
    FETCH_MAX_ATTEMPTS: int = 3
    FETCH_BACKOFF_SECONDS: float = 5.0
    MAX_CONCURRENT_FETCH_JOBS: int = 2
    RUN_WORKER_IN_PROCESS: bool = True


settings = Settings()
